"""
Stock module implementations compiled into the console build.

Presentation lives outside the core; each stock module only produces a
view descriptor the presentation layer renders.
"""

from typing import Any, Dict, Iterable

from admincore.kernel.registry.manifest import ManifestEntry
from admincore.plugins.base import CallableModule
from admincore.plugins.catalog import ModuleCatalog
from admincore.plugins.context import ModuleContext


def _view_factory(entry: ManifestEntry):
    def build(context: ModuleContext) -> Dict[str, Any]:
        return {
            "module_id": entry.id,
            "display_name": entry.display_name,
            "version": entry.version,
            "admin_controls": context.is_allowed("all"),
        }

    return build


def build_default_catalog(entries: Iterable[ManifestEntry]) -> ModuleCatalog:
    """One stock handle per declared module."""
    return ModuleCatalog(CallableModule(entry.id, _view_factory(entry)) for entry in entries)
