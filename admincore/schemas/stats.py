"""
Dashboard stats schema.
"""

from typing import Any, Dict

from pydantic import BaseModel


class StatsResponse(BaseModel):
    """Best-effort figures; `failures` names every field that fell back to its default."""
    
    values: Dict[str, Any]
    degraded: bool
    failures: Dict[str, str] = {}
