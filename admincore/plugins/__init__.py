"""
Plugin layer - compiled module handles and the context they receive.
"""

from admincore.plugins.base import CallableModule, ModuleHandle
from admincore.plugins.builtin import build_default_catalog
from admincore.plugins.catalog import ModuleCatalog
from admincore.plugins.context import ModuleContext

__all__ = [
    "CallableModule",
    "ModuleHandle",
    "ModuleCatalog",
    "ModuleContext",
    "build_default_catalog",
]
