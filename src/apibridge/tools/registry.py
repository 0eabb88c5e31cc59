"""ToolRegistry — compiles operations into tools and routes calls to them.

The registry is filled once at startup and then frozen.  After
:meth:`ToolRegistry.freeze` the tool table is read-only and safe to share
between any number of concurrent invocations.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any

from apibridge.errors import DuplicateToolError, RegistrationError, ToolNotFoundError
from apibridge.gateway.inputs import compile_operation_input
from apibridge.gateway.invoker import OperationInvoker
from apibridge.tools.models import Tool

if TYPE_CHECKING:
    import httpx

    from apibridge.gateway.credentials import CredentialResolver
    from apibridge.gateway.middleware import RequestMiddleware
    from apibridge.gateway.models import HeaderNames, ToolResult
    from apibridge.openapi.models import ApiDescription
    from apibridge.tools.filter import ToolFilter

logger = logging.getLogger(__name__)


class ToolRegistry:
    """Maintains the name-to-tool table.

    Usage::

        registry = ToolRegistry()
        registry.register_tools(search_description, ToolFilter.default(), resolver)
        registry.register_tools(usage_description, ToolFilter.default(), resolver,
                                middlewares=[explode_query_param("name")])
        registry.freeze()

        result = await registry.execute_tool("getSettings", {...})
    """

    def __init__(self, *, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self._tools: dict[str, Tool] = {}
        self._frozen = False
        self._transport = transport

    @property
    def frozen(self) -> bool:
        return self._frozen

    def freeze(self) -> None:
        """Make the tool table read-only for the rest of the process."""
        self._frozen = True
        logger.debug("Tool registry frozen with %d tools", len(self._tools))

    def register_tools(
        self,
        description: ApiDescription,
        tool_filter: ToolFilter,
        resolver: CredentialResolver,
        middlewares: Sequence[RequestMiddleware] = (),
        headers: HeaderNames | None = None,
    ) -> list[str]:
        """Compile every allowed operation of *description* into a tool.

        Returns the registered names.  Nothing is registered if any allowed
        operationId is already taken.

        Raises:
            DuplicateToolError: If an operationId is already registered.
            RegistrationError: If the registry is frozen.
        """
        if self._frozen:
            msg = f"Cannot register tools from {description.title or 'description'}: registry is frozen"
            raise RegistrationError(msg)
        operations = [
            op for op in description.operations if tool_filter.is_allowed(op.operation_id)
        ]
        seen: set[str] = set()
        for op in operations:
            if op.operation_id in self._tools or op.operation_id in seen:
                raise DuplicateToolError(op.operation_id)
            seen.add(op.operation_id)

        tools: list[Tool] = []
        for op in operations:
            input_schema = compile_operation_input(
                op,
                description.server,
                require_application_id=resolver.requires_application_id,
            )
            invoker = OperationInvoker(
                op,
                description.server,
                input_schema,
                resolver,
                middlewares=middlewares,
                headers=headers,
                transport=self._transport,
            )
            tools.append(
                Tool(
                    name=op.operation_id,
                    description=op.tool_description,
                    input_schema=input_schema.shape,
                    callback=invoker,
                )
            )

        for tool in tools:
            self.add_tool(tool)
        logger.debug(
            "Registered %d of %d operations from %s",
            len(tools),
            len(description.operations),
            description.title or description.server.url,
        )
        return [tool.name for tool in tools]

    def add_tool(self, tool: Tool) -> None:
        """Add a single, already built tool."""
        if self._frozen:
            msg = f"Cannot register {tool.name}: registry is frozen"
            raise RegistrationError(msg)
        if tool.name in self._tools:
            raise DuplicateToolError(tool.name)
        self._tools[tool.name] = tool

    def get(self, name: str) -> Tool:
        tool = self._tools.get(name)
        if tool is None:
            raise ToolNotFoundError(name)
        return tool

    def list_tools(self) -> list[Tool]:
        return list(self._tools.values())

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)

    async def discover_tools(self) -> list[dict[str, Any]]:
        """Return every tool as an OpenAI-compatible function schema."""
        return [tool.to_function_schema() for tool in self._tools.values()]

    async def execute_tool(self, name: str, arguments: dict[str, Any]) -> ToolResult:
        """Run the named tool's callback."""
        return await self.get(name).callback(arguments)

    async def execute_all(
        self, calls: Sequence[tuple[str, dict[str, Any]]]
    ) -> list[ToolResult | BaseException]:
        """Execute several calls concurrently; one failure never affects the others."""
        return list(
            await asyncio.gather(
                *[self.execute_tool(name, args) for name, args in calls],
                return_exceptions=True,
            )
        )
