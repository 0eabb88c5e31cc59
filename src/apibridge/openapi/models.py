"""Typed view of an expanded OpenAPI description.

Only the parts needed to build tools are modelled: servers, operations,
path/query parameters and JSON request bodies.
"""

from __future__ import annotations

import logging
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from apibridge.errors import DescriptionError
from apibridge.schema.nodes import AnySchema, SchemaNode, parse_schema

logger = logging.getLogger(__name__)

HTTP_METHODS = ("get", "post", "put", "patch", "delete")
JSON_CONTENT_TYPE = "application/json"


class ServerVariable(BaseModel):
    """A ``{slot}`` in a server URL template."""

    default: str | None = None
    enum: list[str] | None = None
    description: str | None = None


class Server(BaseModel):
    url: str
    variables: dict[str, ServerVariable] = {}


class Parameter(BaseModel):
    """A path or query parameter of an operation."""

    model_config = ConfigDict(populate_by_name=True)

    name: str
    location: Literal["path", "query"] = Field(alias="in")
    required: bool = False
    description: str | None = None
    schema_: SchemaNode = Field(default_factory=AnySchema, alias="schema")

    @field_validator("schema_", mode="before")
    @classmethod
    def _parse_schema(cls, value: Any) -> Any:
        if isinstance(value, BaseModel):
            return value
        return parse_schema(value)

    @property
    def is_required(self) -> bool:
        return self.required or self.location == "path"


class RequestBody(BaseModel):
    """The ``application/json`` body of an operation."""

    model_config = ConfigDict(populate_by_name=True)

    required: bool = False
    description: str | None = None
    schema_: SchemaNode = Field(default_factory=AnySchema, alias="schema")


class Operation(BaseModel):
    """One ``(path, method)`` pair, keyed by its operationId."""

    operation_id: str
    path: str
    method: str
    summary: str | None = None
    description: str | None = None
    parameters: list[Parameter] = []
    request_body: RequestBody | None = None

    @property
    def tool_description(self) -> str:
        return self.summary or self.description or ""


class ApiDescription(BaseModel):
    """An expanded OpenAPI document reduced to its callable operations."""

    title: str = ""
    servers: list[Server]
    operations: list[Operation] = []

    @property
    def server(self) -> Server:
        return self.servers[0]

    def operation_ids(self) -> list[str]:
        return [op.operation_id for op in self.operations]

    @classmethod
    def from_document(cls, document: Any) -> ApiDescription:
        """Build an :class:`ApiDescription` from an already expanded document.

        Raises:
            DescriptionError: If servers, paths or operations are malformed.
        """
        if not isinstance(document, dict):
            msg = "API description must be a mapping"
            raise DescriptionError(msg)

        servers = document.get("servers") or []
        if not servers:
            msg = "API description declares no servers"
            raise DescriptionError(msg)

        paths = document.get("paths") or {}
        if not isinstance(paths, dict):
            msg = "'paths' must be a mapping"
            raise DescriptionError(msg)

        operations: list[Operation] = []
        for path, path_item in paths.items():
            if not isinstance(path_item, dict):
                msg = f"path item for {path!r} must be a mapping"
                raise DescriptionError(msg)
            shared = path_item.get("parameters") or []
            for method in HTTP_METHODS:
                raw_op = path_item.get(method)
                if raw_op is not None:
                    operations.append(_parse_operation(path, method, raw_op, shared))

        try:
            return cls(
                title=str((document.get("info") or {}).get("title", "")),
                servers=[Server.model_validate(s) for s in servers],
                operations=operations,
            )
        except PydanticValidationError as exc:
            raise DescriptionError(str(exc)) from exc


def _parse_operation(
    path: str, method: str, raw: Any, shared: list[dict[str, Any]]
) -> Operation:
    if not isinstance(raw, dict) or not raw.get("operationId"):
        msg = f"{method.upper()} {path} has no operationId"
        raise DescriptionError(msg)
    operation_id = raw["operationId"]

    # Operation-level parameters override path-level ones with the same (name, in).
    merged: dict[tuple[str, str], dict[str, Any]] = {}
    for param in [*shared, *(raw.get("parameters") or [])]:
        merged[(param.get("name", ""), param.get("in", ""))] = param

    parameters: list[Parameter] = []
    for raw_param in merged.values():
        if raw_param.get("in") not in ("path", "query"):
            logger.debug(
                "Skipping %s parameter %r of %s", raw_param.get("in"), raw_param.get("name"),
                operation_id,
            )
            continue
        try:
            parameters.append(Parameter.model_validate(raw_param))
        except PydanticValidationError as exc:
            msg = f"invalid parameter in {operation_id}: {exc}"
            raise DescriptionError(msg) from exc

    return Operation(
        operation_id=operation_id,
        path=path,
        method=method,
        summary=raw.get("summary"),
        description=raw.get("description"),
        parameters=parameters,
        request_body=_parse_request_body(raw.get("requestBody")),
    )


def _parse_request_body(raw: Any) -> RequestBody | None:
    if not isinstance(raw, dict):
        return None
    content = (raw.get("content") or {}).get(JSON_CONTENT_TYPE)
    if content is None:
        return None
    return RequestBody(
        required=bool(raw.get("required", False)),
        description=raw.get("description"),
        schema_=parse_schema(content.get("schema")),
    )
