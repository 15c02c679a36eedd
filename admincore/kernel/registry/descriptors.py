"""
Module descriptor types.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional, Tuple


class ModuleStatus(str, Enum):
    """Health of a declared module as last observed by reconciliation."""
    ACTIVE = "active"        # Present in the build and instantiable
    INACTIVE = "inactive"    # Declared but absent from the build
    BROKEN = "broken"        # Present but failed to instantiate


@dataclass(frozen=True)
class ModuleDescriptor:
    """
    Registry entry for one administrative module.

    Frozen: the registry swaps in a new instance when status or
    last_synced_at change, so a descriptor someone already holds never
    changes under them.
    """

    id: str
    display_name: str
    required_capability: Optional[str]
    version: str
    status: ModuleStatus = ModuleStatus.ACTIVE
    dependencies: Tuple[str, ...] = field(default_factory=tuple)
    last_synced_at: Optional[datetime] = None

    @property
    def is_open(self) -> bool:
        """Open modules need no capability (the dashboard)."""
        return self.required_capability is None
