"""
Module catalog - the set of modules compiled into the running shell.
"""

from typing import Dict, Iterable, Iterator, List, Optional

from admincore.plugins.base import ModuleHandle


class ModuleCatalog:
    """Plugin table: module id -> handle."""

    def __init__(self, handles: Iterable[ModuleHandle] = ()):
        self._handles: Dict[str, ModuleHandle] = {}
        for handle in handles:
            self.register(handle)

    def register(self, handle: ModuleHandle) -> None:
        if handle.module_id in self._handles:
            raise ValueError(f"Module {handle.module_id!r} already registered in catalog")
        self._handles[handle.module_id] = handle

    def get(self, module_id: str) -> Optional[ModuleHandle]:
        return self._handles.get(module_id)

    def ids(self) -> List[str]:
        return list(self._handles)

    def __contains__(self, module_id: object) -> bool:
        return module_id in self._handles

    def __iter__(self) -> Iterator[ModuleHandle]:
        return iter(list(self._handles.values()))

    def __len__(self) -> int:
        return len(self._handles)
