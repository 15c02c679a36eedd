"""
Module registry schemas.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from admincore.kernel.registry.descriptors import ModuleStatus


class ModuleResponse(BaseModel):
    """One module descriptor as shown in the menu."""
    
    model_config = ConfigDict(from_attributes=True)
    
    id: str
    display_name: str
    required_capability: Optional[str] = None
    version: str
    status: ModuleStatus
    dependencies: List[str] = []
    last_synced_at: Optional[datetime] = None


class ModuleListResponse(BaseModel):
    """Visible modules for the current actor, in menu order."""
    
    items: List[ModuleResponse]
    total: int
    query: Optional[str] = None


class ActivityRequest(BaseModel):
    """A completed action reported by a module."""
    
    action: str = Field(..., min_length=1, max_length=100)
    detail: Dict[str, Any] = Field(default_factory=dict)
