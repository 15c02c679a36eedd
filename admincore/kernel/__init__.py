"""
Stable Kernel Layer

- Capability model and permission resolver
- Module registry (descriptors seeded from the build manifest)
- Identity (actors from bearer tokens)
- Append-only audit trail

Invariants:
- Module ids are unique; a manifest that repeats one aborts start-up
- Descriptor status changes only through reconciliation
- Audit entries are never updated or deleted
"""
