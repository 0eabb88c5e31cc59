"""Assemble a frozen :class:`ToolRegistry` from a :class:`BridgeConfig`."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

from apibridge.gateway.credentials import SessionCredentialResolver, select_resolver
from apibridge.gateway.middleware import explode_query_param, make_region_middleware
from apibridge.openapi.loader import load_description
from apibridge.tools.dashboard import dashboard_tools
from apibridge.tools.registry import ToolRegistry

if TYPE_CHECKING:
    import httpx

    from apibridge.config import BridgeConfig, DescriptionRef
    from apibridge.gateway.credentials import CredentialResolver, DashboardSession
    from apibridge.gateway.middleware import RequestMiddleware

logger = logging.getLogger(__name__)


def build_registry(
    config: BridgeConfig,
    *,
    session: DashboardSession | None = None,
    base_dir: Path | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> ToolRegistry:
    """Load every description, register its allowed tools and freeze the registry.

    Relative description paths resolve against *base_dir* (default: cwd).
    With a dashboard *session*, the dashboard tools are registered first.

    Raises:
        ConfigError: If no credential strategy can be selected.
        SpecError: If a description cannot be loaded or expanded.
        DuplicateToolError: If two descriptions share an operationId.
    """
    root = base_dir or Path.cwd()
    resolver = select_resolver(config.credentials, session)
    tool_filter = config.tool_filter()
    registry = ToolRegistry(transport=transport)

    if session is not None:
        for tool in dashboard_tools(session, resolver, headers=config.headers, transport=transport):
            if tool_filter.is_allowed(tool.name):
                registry.add_tool(tool)

    for ref in config.descriptions:
        path = Path(ref.path)
        if not path.is_absolute():
            path = root / path
        description = load_description(path)
        registered = registry.register_tools(
            description,
            tool_filter,
            resolver,
            middlewares=_middlewares_for(ref, resolver),
            headers=config.headers,
        )
        logger.info("%s: %d tools", path.name, len(registered))

    registry.freeze()
    return registry


def _middlewares_for(ref: DescriptionRef, resolver: CredentialResolver) -> list[RequestMiddleware]:
    middlewares: list[RequestMiddleware] = [
        explode_query_param(name) for name in ref.explode_query_params
    ]
    if ref.region_rewrite:
        # Static credentials carry no application list to look regions up in.
        if isinstance(resolver, SessionCredentialResolver):
            middlewares.append(make_region_middleware(resolver))
        else:
            logger.warning("%s: region_rewrite ignored without a dashboard session", ref.path)
    return middlewares
