"""Tool layer — filtering, registration and execution of OpenAPI tools."""

from apibridge.tools.dashboard import dashboard_tools
from apibridge.tools.filter import DEFAULT_ALLOWED_TOOLS, ToolFilter
from apibridge.tools.models import Tool, ToolCallback
from apibridge.tools.registry import ToolRegistry

__all__ = [
    "DEFAULT_ALLOWED_TOOLS",
    "Tool",
    "ToolCallback",
    "ToolFilter",
    "ToolRegistry",
    "dashboard_tools",
]
