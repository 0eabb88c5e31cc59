"""Request middlewares — ordered rewrites applied before dispatch.

A middleware is an async callable ``(request, params) -> request``.  It
returns either the same :class:`CallContext` or a replacement.  Middlewares
run strictly in registration order and may await network calls.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Sequence
from typing import TYPE_CHECKING, Protocol

import httpx

from apibridge.errors import TransportError

if TYPE_CHECKING:
    from apibridge.gateway.credentials import SessionCredentialResolver
    from apibridge.gateway.models import CallContext, CallParams

logger = logging.getLogger(__name__)


class RequestMiddleware(Protocol):
    async def __call__(self, request: CallContext, params: CallParams) -> CallContext: ...


async def apply_middlewares(
    middlewares: Sequence[RequestMiddleware],
    request: CallContext,
    params: CallParams,
) -> CallContext:
    """Run *middlewares* in order, feeding each the previous one's output."""
    for middleware in middlewares:
        try:
            request = await middleware(request, params)
        except httpx.TransportError as exc:
            raise TransportError(request.url, str(exc)) from exc
    return request


def explode_query_param(name: str) -> RequestMiddleware:
    """Split a comma-joined ``name`` query value into repeated keys.

    ``?name=a,b`` becomes ``?name=a&name=b`` for endpoints that expect
    repeated-key encoding.
    """

    async def middleware(request: CallContext, params: CallParams) -> CallContext:
        if not any(request.query_values(name)):
            return request

        query: list[tuple[str, str]] = []
        for key, value in request.query:
            if key != name:
                query.append((key, value))
                continue
            query.extend((key, part) for part in value.split(",") if part)
        return request.with_query(query)

    return middleware


def make_region_middleware(
    resolver: SessionCredentialResolver,
    *,
    domain: str = "algolia.com",
    region_map: dict[str, str] | None = None,
    default_region: str = "us",
) -> RequestMiddleware:
    """Point ``data.<region>.<domain>`` hosts at the tenant's residency region.

    The region comes from a side lookup of the application list.  A
    ``data_residency_region`` found in *region_map* maps to its value; any
    other value maps to *default_region*.
    """
    mapping = {"de": "eu"} if region_map is None else region_map
    host_pattern = re.compile(rf"^data\.([^.]+)\.{re.escape(domain)}$")

    async def middleware(request: CallContext, params: CallParams) -> CallContext:
        application = await resolver.get_application(params.application_id)
        region = mapping.get(application.data_residency_region or "", default_region)

        match = host_pattern.match(request.host)
        current = match.group(1) if match else None
        if current == region:
            return request

        logger.warning(
            "Adjusting region for %s from %s to %s", params.application_id, current, region
        )
        return request.with_host(f"data.{region}.{domain}")

    return middleware
