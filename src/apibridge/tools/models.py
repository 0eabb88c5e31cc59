"""Tool model — one callable procedure backed by one operation."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import Any

from pydantic import BaseModel, ConfigDict

from apibridge.gateway.models import ToolResult

ToolCallback = Callable[[dict[str, Any]], Awaitable[ToolResult]]


class Tool(BaseModel):
    """A registered tool: name, description, input schema and callback."""

    model_config = ConfigDict(frozen=True)

    name: str
    description: str = ""
    input_schema: dict[str, Any]
    callback: ToolCallback

    def to_function_schema(self) -> dict[str, Any]:
        """Convert to an OpenAI-compatible function schema."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.input_schema,
            },
        }
