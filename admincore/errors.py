"""
Error taxonomy for the admin console core.

Every error except ManifestError has a local containment strategy and is
never allowed to take the shell down; ManifestError aborts start-up.
"""

from typing import Optional


class AdminCoreError(Exception):
    """Base class for all admin core errors."""


class PermissionDenied(AdminCoreError):
    """The actor's capability set does not cover the requested capability."""

    def __init__(self, module_id: Optional[str], required_capability: Optional[str] = None):
        self.module_id = module_id
        self.required_capability = required_capability
        if required_capability:
            message = f"Access to '{module_id}' requires capability '{required_capability}'"
        else:
            message = f"Access to '{module_id}' denied"
        super().__init__(message)


class ModuleNotFound(AdminCoreError, LookupError):
    """No descriptor with the given id exists in the registry."""

    def __init__(self, module_id: str):
        self.module_id = module_id
        super().__init__(f"Unknown module: {module_id!r}")


class ModuleInstantiationFailure(AdminCoreError):
    """A compiled module could not be instantiated."""

    def __init__(self, module_id: str, reason: str):
        self.module_id = module_id
        self.reason = reason
        super().__init__(f"Module {module_id!r} failed to instantiate: {reason}")


class AuditSinkUnavailable(AdminCoreError):
    """The audit store rejected or could not accept a batch."""


class StatsSourceFailure(AdminCoreError):
    """A single stats source failed or timed out."""

    def __init__(self, field: str, reason: str):
        self.field = field
        self.reason = reason
        super().__init__(f"Stats source {field!r} failed: {reason}")


class ManifestError(AdminCoreError):
    """The module manifest is corrupt or declares duplicate ids. Fatal."""
