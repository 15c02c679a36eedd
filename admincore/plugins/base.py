"""
Module handle - the opaque unit the core hands control to.

The core never branches on module identity. It checks existence and
capability, then calls whatever handle is registered for the id.
"""

import asyncio
import inspect
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Optional, Union

if TYPE_CHECKING:
    from admincore.plugins.context import ModuleContext


class ModuleHandle(ABC):
    """
    Abstract base class for a compiled console module.

    A handle must be able to:
    - instantiate itself against a ModuleContext (returns an opaque view)
    - probe whether it can be instantiated at all (used by reconciliation)
    """

    @property
    @abstractmethod
    def module_id(self) -> str:
        """Id this handle is registered against."""
        pass

    @abstractmethod
    def instantiate(self, context: "ModuleContext") -> Any:
        """Build the module for an actor. May raise; callers contain it."""
        pass

    async def probe(self) -> None:
        """
        Raise if the module cannot be instantiated.

        Default: instantiate against a probe context that denies every
        capability and discards activity. Synchronous instantiation runs in a
        worker thread, where the caller's timeout still applies.
        """
        from admincore.plugins.context import ModuleContext

        result = await asyncio.to_thread(self.instantiate, ModuleContext.probe(self.module_id))
        if inspect.isawaitable(result):
            await result


ModuleFactory = Callable[["ModuleContext"], Any]
ModuleProbe = Callable[[], Union[None, Awaitable[None]]]


class CallableModule(ModuleHandle):
    """Handle built from a plain factory function, optionally with a custom probe."""

    def __init__(
        self,
        module_id: str,
        factory: ModuleFactory,
        probe: Optional[ModuleProbe] = None,
    ):
        self._module_id = module_id
        self._factory = factory
        self._probe = probe

    @property
    def module_id(self) -> str:
        return self._module_id

    def instantiate(self, context: "ModuleContext") -> Any:
        return self._factory(context)

    async def probe(self) -> None:
        if self._probe is None:
            await super().probe()
            return
        if inspect.iscoroutinefunction(self._probe):
            await self._probe()
            return
        result = await asyncio.to_thread(self._probe)
        if inspect.isawaitable(result):
            await result

    def __repr__(self) -> str:
        return f"<CallableModule {self._module_id}>"
