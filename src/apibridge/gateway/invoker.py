"""OperationInvoker — the callback behind every OpenAPI tool.

Each call runs a fixed pipeline and stops at the first failure:

1. validate arguments against the compiled input schema,
2. reject structurally invalid calls (a body on GET) before any I/O,
3. resolve the tenant credential,
4. build the base :class:`CallContext`,
5. apply middlewares in registration order,
6. dispatch with :mod:`httpx` and wrap the parsed response.

Non-success HTTP statuses are returned as results.  Only network failures
raise (:class:`~apibridge.errors.TransportError`).  Nothing is retried.
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any
from urllib.parse import quote

import httpx

from apibridge.errors import TransportError, UsageError
from apibridge.gateway.inputs import APPLICATION_ID_ARG, REQUEST_BODY_ARG
from apibridge.gateway.middleware import apply_middlewares
from apibridge.gateway.models import CallContext, CallParams, Credential, HeaderNames, ToolResult
from apibridge.schema.nodes import StringSchema
from apibridge.utils.telemetry import (
    ATTR_APPLICATION_ID,
    ATTR_HTTP_METHOD,
    ATTR_HTTP_STATUS,
    ATTR_MIDDLEWARE_COUNT,
    ATTR_TOOL_NAME,
    get_tracer,
)

if TYPE_CHECKING:
    from apibridge.gateway.credentials import CredentialResolver
    from apibridge.gateway.middleware import RequestMiddleware
    from apibridge.openapi.models import Operation, Server
    from apibridge.schema.compiler import CompiledSchema

logger = logging.getLogger(__name__)
_tracer = get_tracer(__name__)

_TEMPLATE_SLOT = re.compile(r"\{([^}]+)\}")


class OperationInvoker:
    """Turns tool arguments into one upstream HTTP call."""

    def __init__(
        self,
        operation: Operation,
        server: Server,
        input_schema: CompiledSchema,
        resolver: CredentialResolver,
        *,
        middlewares: Sequence[RequestMiddleware] = (),
        headers: HeaderNames | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._operation = operation
        self._server = server
        self._input = input_schema
        self._resolver = resolver
        self._middlewares = tuple(middlewares)
        self._headers = headers or HeaderNames()
        self._transport = transport

    @property
    def operation(self) -> Operation:
        return self._operation

    async def __call__(self, arguments: dict[str, Any]) -> ToolResult:
        with _tracer.start_as_current_span("apibridge.tool.invoke") as span:
            span.set_attribute(ATTR_TOOL_NAME, self._operation.operation_id)
            span.set_attribute(ATTR_HTTP_METHOD, self._operation.method.upper())
            span.set_attribute(ATTR_MIDDLEWARE_COUNT, len(self._middlewares))

            values = self.validate(arguments)
            self.check_usage(values)

            credential = await self._resolver.resolve(values.get(APPLICATION_ID_ARG))
            span.set_attribute(ATTR_APPLICATION_ID, credential.application_id)

            request = self.build_request(values, credential)
            params = CallParams(
                operation_id=self._operation.operation_id,
                application_id=credential.application_id,
                credential=credential,
                arguments=values,
            )
            request = await apply_middlewares(self._middlewares, request, params)

            result = await self._dispatch(request)
            if result.status_code is not None:
                span.set_attribute(ATTR_HTTP_STATUS, result.status_code)
            return result

    def validate(self, arguments: dict[str, Any]) -> dict[str, Any]:
        """Validate *arguments*; a JSON-text body is parsed for validation only.

        The returned values keep the body exactly as the caller sent it.
        """
        raw_body = arguments.get(REQUEST_BODY_ARG) if isinstance(arguments, dict) else None
        candidate = arguments
        if self._accepts_json_text(raw_body):
            candidate = {**arguments, REQUEST_BODY_ARG: json.loads(raw_body)}

        values: dict[str, Any] = self._input.validate(candidate)
        if candidate is not arguments:
            values[REQUEST_BODY_ARG] = raw_body
        return values

    def check_usage(self, values: dict[str, Any]) -> None:
        """Reject calls that cannot be sent whatever the upstream says."""
        if self._operation.method == "get" and _has_body(values.get(REQUEST_BODY_ARG)):
            msg = f"{self._operation.operation_id}: requestBody is not supported for GET requests"
            raise UsageError(msg)

    def build_request(self, values: dict[str, Any], credential: Credential) -> CallContext:
        """Build the base request before any middleware runs."""
        base_url = _substitute(self._server.url, lambda name: self._server_value(name, values))
        path = _substitute(
            self._operation.path, lambda name: quote(str(self._path_value(name, values)), safe="")
        )

        query: list[tuple[str, str]] = []
        for parameter in self._operation.parameters:
            if parameter.location != "query":
                continue
            value = values.get(parameter.name)
            if value is not None:
                query.append((parameter.name, _query_value(value)))

        headers = {
            self._headers.application_id: credential.application_id,
            self._headers.api_key: credential.api_key,
        }
        body = _serialize_body(values.get(REQUEST_BODY_ARG))
        if body is not None:
            headers["Content-Type"] = "application/json"

        return CallContext(
            method=self._operation.method.upper(),
            url=base_url.rstrip("/") + path,
            query=tuple(query),
            headers=headers,
            body=body,
        )

    async def _dispatch(self, request: CallContext) -> ToolResult:
        logger.debug("%s %s", request.method, request.full_url())
        try:
            async with httpx.AsyncClient(transport=self._transport) as client:
                response = await client.request(
                    method=request.method,
                    url=request.url,
                    params=list(request.query),
                    headers=request.headers,
                    content=request.body,
                )
        except httpx.HTTPError as exc:
            raise TransportError(request.url, str(exc)) from exc

        if not response.is_success:
            logger.warning(
                "%s returned HTTP %d", self._operation.operation_id, response.status_code
            )

        try:
            text = json.dumps(response.json())
        except ValueError:
            text = response.text
        return ToolResult(text=text, status_code=response.status_code)

    def _accepts_json_text(self, raw_body: Any) -> bool:
        body = self._operation.request_body
        if body is None or isinstance(body.schema_, StringSchema):
            return False
        return is_json_text(raw_body)

    def _server_value(self, name: str, values: dict[str, Any]) -> str:
        value = values.get(name)
        if value is None:
            variable = self._server.variables.get(name)
            value = variable.default if variable is not None else None
        if value is None:
            msg = f"{self._operation.operation_id}: no value for server variable {name!r}"
            raise UsageError(msg)
        return str(value)

    def _path_value(self, name: str, values: dict[str, Any]) -> Any:
        value = values.get(name)
        if value is None:
            msg = f"{self._operation.operation_id}: no value for path parameter {name!r}"
            raise UsageError(msg)
        return value


def is_json_text(value: Any) -> bool:
    """Return ``True`` if *value* is a string holding valid JSON."""
    if not isinstance(value, str):
        return False
    try:
        json.loads(value)
    except ValueError:
        return False
    return True


def _has_body(value: Any) -> bool:
    return value is not None and value != ""


def _serialize_body(value: Any) -> str | None:
    if not _has_body(value):
        return None
    # Callers often pre-serialize the body; send it untouched.
    if is_json_text(value):
        return value
    return json.dumps(value)


def _query_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, list):
        return ",".join(_query_value(item) for item in value)
    if isinstance(value, dict):
        return json.dumps(value)
    return str(value)


def _substitute(template: str, lookup: Any) -> str:
    return _TEMPLATE_SLOT.sub(lambda match: lookup(match.group(1)), template)
