"""
Module Registry - descriptors, manifest and the registry itself.
"""

from admincore.kernel.registry.descriptors import ModuleDescriptor, ModuleStatus
from admincore.kernel.registry.manifest import (
    DEFAULT_MANIFEST,
    ManifestEntry,
    load_manifest,
    parse_manifest,
)
from admincore.kernel.registry.module_registry import ModuleRegistry

__all__ = [
    "ModuleDescriptor",
    "ModuleStatus",
    "DEFAULT_MANIFEST",
    "ManifestEntry",
    "load_manifest",
    "parse_manifest",
    "ModuleRegistry",
]
