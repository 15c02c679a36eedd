"""
Navigation schemas.
"""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from admincore.orchestration.navigation import NavigationOutcome, NavigationPhase
from admincore.orchestration.console import ViewKind


class NavigateRequest(BaseModel):
    """Navigate to a module by id."""
    
    module_id: str = Field(..., min_length=1, max_length=200)


class LocatorRequest(BaseModel):
    """Follow an external locator (deep link, back/forward)."""
    
    locator: Optional[str] = Field(None, max_length=2048)


class NavigationStateResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    
    phase: NavigationPhase
    active_module_id: Optional[str] = None
    denied_module_id: Optional[str] = None
    external_locator: Optional[str] = None


class ModuleViewResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    
    kind: ViewKind
    module_id: Optional[str] = None
    content: Any = None
    reason: Optional[str] = None


class NavigationResponse(BaseModel):
    """Outcome of a navigation attempt plus the resulting state."""
    
    outcome: Optional[NavigationOutcome] = None
    state: NavigationStateResponse
    detail: Optional[str] = None
    view: Optional[ModuleViewResponse] = None
