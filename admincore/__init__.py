"""
Admin Console Core

Access control and module orchestration for the administrative console:
capability resolution, the module registry, permission-gated navigation,
reconciliation of declared against compiled modules, and the audit trail.
"""

__version__ = "2.0.0"
