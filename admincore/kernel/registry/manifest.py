"""
Build-time module manifest.

The manifest is the list of modules the console declares. It is parsed
and validated before the registry is built; any problem is fatal.
"""

import json
import re
from pathlib import Path
from typing import Any, Iterable, List, Mapping, Optional, Union

from pydantic import BaseModel, Field, ValidationError, field_validator

from admincore.errors import ManifestError
from admincore.kernel.registry.descriptors import ModuleDescriptor, ModuleStatus

_SEMVER = re.compile(
    r"^(0|[1-9]\d*)\.(0|[1-9]\d*)\.(0|[1-9]\d*)"
    r"(?:-[0-9A-Za-z.-]+)?(?:\+[0-9A-Za-z.-]+)?$"
)


class ManifestEntry(BaseModel):
    """One declared module."""

    id: str = Field(..., min_length=1, max_length=100)
    display_name: str = Field(..., min_length=1)
    required_capability: Optional[str] = None
    version: str = "1.0.0"
    dependencies: List[str] = Field(default_factory=list)
    status: ModuleStatus = ModuleStatus.ACTIVE

    @field_validator("id")
    @classmethod
    def _strip_id(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("module id must not be blank")
        return value

    @field_validator("version")
    @classmethod
    def _check_semver(cls, value: str) -> str:
        if not _SEMVER.match(value):
            raise ValueError(f"version {value!r} is not semver")
        return value

    def to_descriptor(self) -> ModuleDescriptor:
        return ModuleDescriptor(
            id=self.id,
            display_name=self.display_name,
            required_capability=self.required_capability,
            version=self.version,
            status=self.status,
            dependencies=tuple(self.dependencies),
        )


# Built-in manifest for the stock console build
DEFAULT_MANIFEST: List[dict] = [
    {"id": "dashboard", "display_name": "Dashboard", "required_capability": None, "version": "2.0.0"},
    {"id": "users-roles", "display_name": "Users & Roles", "required_capability": "users", "version": "1.4.0"},
    {"id": "polls-system", "display_name": "Polls System", "required_capability": "polls", "version": "2.1.0"},
    {"id": "company-directory", "display_name": "Company Directory", "required_capability": "companies", "version": "1.8.0"},
    {"id": "billionaire-tracker", "display_name": "Billionaire Tracker", "required_capability": "companies", "version": "1.5.0",
     "dependencies": ["company-directory"]},
    {"id": "debt-monitor", "display_name": "Debt Monitor", "required_capability": "analytics", "version": "2.0.0"},
    {"id": "civic-officials", "display_name": "Civic & Officials", "required_capability": "civic-tools", "version": "1.2.0"},
    {"id": "messenger", "display_name": "Pulse Messenger", "required_capability": "messenger", "version": "1.9.0"},
    {"id": "sentiment-system", "display_name": "Sentiment System", "required_capability": "analytics", "version": "2.2.0"},
    {"id": "analytics-logs", "display_name": "Analytics & Logs", "required_capability": "analytics", "version": "1.3.0"},
    {"id": "news-system", "display_name": "News System", "required_capability": "content", "version": "1.1.0"},
    {"id": "marketplace", "display_name": "Marketplace", "required_capability": "marketplace", "version": "1.0.0"},
    {"id": "elections", "display_name": "Elections", "required_capability": "elections", "version": "1.0.0"},
    {"id": "donations", "display_name": "Donations", "required_capability": "finance", "version": "1.0.0"},
    {"id": "regional-analytics", "display_name": "Regional Analytics", "required_capability": "analytics", "version": "1.0.0"},
    {"id": "poll-templates", "display_name": "Poll Templates", "required_capability": "content", "version": "1.0.0",
     "dependencies": ["polls-system"]},
    {"id": "security-audit", "display_name": "Security Audit", "required_capability": "all", "version": "1.0.0"},
    {"id": "settings-sync", "display_name": "Settings & Sync", "required_capability": "all", "version": "1.0.0"},
    {"id": "system-health", "display_name": "System Health", "required_capability": "all", "version": "1.0.0"},
]


def parse_manifest(entries: Iterable[Union[Mapping[str, Any], ManifestEntry]]) -> List[ManifestEntry]:
    """
    Validate raw manifest entries.

    Raises:
        ManifestError: on an invalid entry or a duplicated id
    """
    parsed: List[ManifestEntry] = []
    seen: set = set()
    for index, raw in enumerate(entries):
        try:
            entry = raw if isinstance(raw, ManifestEntry) else ManifestEntry.model_validate(raw)
        except ValidationError as e:
            raise ManifestError(f"Manifest entry #{index} is invalid: {e}") from e
        if entry.id in seen:
            raise ManifestError(f"Duplicate module id in manifest: {entry.id!r}")
        seen.add(entry.id)
        parsed.append(entry)
    return parsed


def load_manifest(path: Optional[Union[str, Path]] = None) -> List[ManifestEntry]:
    """
    Load the manifest from a JSON file, or the built-in one when no path is given.

    The file holds either a list of entries or {"modules": [...]}.
    """
    if path is None:
        return parse_manifest(DEFAULT_MANIFEST)

    try:
        raw = json.loads(Path(path).read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise ManifestError(f"Cannot read module manifest {path}: {e}") from e

    if isinstance(raw, dict):
        raw = raw.get("modules")
    if not isinstance(raw, list):
        raise ManifestError(f"Module manifest {path} must contain a list of modules")
    return parse_manifest(raw)
