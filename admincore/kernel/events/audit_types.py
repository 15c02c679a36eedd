"""
Audit entry and query filter types.
"""

import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Width of the actor_id/module_id/action columns
MAX_FIELD_LENGTH = 100


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    # Naive datetimes are taken to be UTC
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def json_safe(value: Any) -> Any:
    """Convert a detail value to JSON-serializable types; anything unknown becomes its str()."""
    if value is None or isinstance(value, (bool, int, float)):
        return value
    if hasattr(value, "value") and isinstance(getattr(value, "value"), (str, int)):
        return value.value
    if isinstance(value, str):
        return value
    if isinstance(value, uuid.UUID):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, dict):
        return {str(k): json_safe(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [json_safe(v) for v in value]
    return str(value)


class AuditEntry(BaseModel):
    """
    One administrative action. Write-once.

    The detail is normalized to JSON types when the entry is built, so
    every entry the logger accepts can be stored by a sink.
    """

    model_config = ConfigDict(frozen=True)

    actor_id: str
    module_id: str
    action: str
    detail: Dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime = Field(default_factory=_utcnow)

    @field_validator("actor_id", "module_id", "action")
    @classmethod
    def _fit_column(cls, value: str) -> str:
        return value[:MAX_FIELD_LENGTH]

    @field_validator("detail", mode="before")
    @classmethod
    def _json_detail(cls, value: Any) -> Any:
        if isinstance(value, dict):
            return json_safe(value)
        return value

    @field_validator("timestamp")
    @classmethod
    def _utc_timestamp(cls, value: datetime) -> datetime:
        return _as_utc(value)


class AuditFilter(BaseModel):
    """Read-side filter; every field is optional and ANDed."""

    actor_id: Optional[str] = None
    module_id: Optional[str] = None
    action: Optional[str] = None
    since: Optional[datetime] = None
    until: Optional[datetime] = None
    limit: Optional[int] = Field(None, ge=1)
    newest_first: bool = False

    @field_validator("since", "until")
    @classmethod
    def _utc_bounds(cls, value: Optional[datetime]) -> Optional[datetime]:
        return _as_utc(value)

    def matches(self, entry: AuditEntry) -> bool:
        if self.actor_id is not None and entry.actor_id != self.actor_id:
            return False
        if self.module_id is not None and entry.module_id != self.module_id:
            return False
        if self.action is not None and entry.action != self.action:
            return False
        if self.since is not None and entry.timestamp < self.since:
            return False
        if self.until is not None and entry.timestamp > self.until:
            return False
        return True
