"""apibridge — compile OpenAPI descriptions into agent-callable tools."""

from __future__ import annotations

from typing import TYPE_CHECKING

__version__ = "0.1.0"

if TYPE_CHECKING:
    from apibridge.bootstrap import build_registry as build_registry
    from apibridge.tools.filter import ToolFilter as ToolFilter
    from apibridge.tools.registry import ToolRegistry as ToolRegistry

_EXPORTS = {
    "ToolFilter": "apibridge.tools.filter",
    "ToolRegistry": "apibridge.tools.registry",
    "build_registry": "apibridge.bootstrap",
}


def __getattr__(name: str) -> object:
    module_path = _EXPORTS.get(name)
    if module_path is not None:
        import importlib

        mod = importlib.import_module(module_path)
        return getattr(mod, name)
    raise AttributeError(f"module 'apibridge' has no attribute {name!r}")
