"""
Module registry - authoritative catalog of module descriptors.
"""

from dataclasses import replace
from datetime import datetime
from typing import Dict, Iterable, Iterator, List

from admincore.errors import ManifestError, ModuleNotFound
from admincore.kernel.registry.descriptors import ModuleDescriptor, ModuleStatus
from admincore.kernel.registry.manifest import ManifestEntry, parse_manifest
from admincore.logging_config import get_logger

logger = get_logger(__name__)


class ModuleRegistry:
    """
    Ordered catalog of module descriptors keyed by id.

    Insertion order is menu order. Descriptors are frozen; update_status
    swaps in a new instance. update_status has exactly one caller, the
    reconciliation engine, so there is a single writer and any number of
    readers.
    """

    def __init__(self, descriptors: Iterable[ModuleDescriptor]):
        self._descriptors: Dict[str, ModuleDescriptor] = {}
        for descriptor in descriptors:
            if descriptor.id in self._descriptors:
                raise ManifestError(f"Duplicate module id: {descriptor.id!r}")
            self._descriptors[descriptor.id] = descriptor

    @classmethod
    def from_manifest(cls, entries: Iterable) -> "ModuleRegistry":
        """Build a registry from raw or parsed manifest entries. Fatal on duplicates."""
        parsed: List[ManifestEntry] = parse_manifest(entries)
        registry = cls(entry.to_descriptor() for entry in parsed)
        logger.info("Module registry seeded", extra={"module_count": len(registry)})
        return registry

    def list(self) -> List[ModuleDescriptor]:
        """All descriptors in manifest order."""
        return list(self._descriptors.values())

    def get(self, module_id: str) -> ModuleDescriptor:
        """
        Look up a descriptor.

        Raises:
            ModuleNotFound: when no descriptor has this id
        """
        try:
            return self._descriptors[module_id]
        except KeyError:
            raise ModuleNotFound(module_id) from None

    def update_status(
        self,
        module_id: str,
        status: ModuleStatus,
        observed_at: datetime,
    ) -> ModuleDescriptor:
        """Record an observed status and sync time. Reconciliation only."""
        current = self.get(module_id)
        updated = replace(current, status=ModuleStatus(status), last_synced_at=observed_at)
        self._descriptors[module_id] = updated
        if current.status != updated.status:
            logger.info(
                "Module status changed",
                extra={
                    "module_id": module_id,
                    "from_status": current.status.value,
                    "to_status": updated.status.value,
                },
            )
        return updated

    def ids(self) -> List[str]:
        return list(self._descriptors)

    def __contains__(self, module_id: object) -> bool:
        return module_id in self._descriptors

    def __len__(self) -> int:
        return len(self._descriptors)

    def __iter__(self) -> Iterator[ModuleDescriptor]:
        return iter(self.list())
