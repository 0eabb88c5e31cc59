"""OpenAPI layer — reference expansion, description model and loading."""

from apibridge.openapi.loader import load_description, load_document, parse_description
from apibridge.openapi.models import (
    ApiDescription,
    Operation,
    Parameter,
    RequestBody,
    Server,
    ServerVariable,
)
from apibridge.openapi.refs import expand_refs, resolve_pointer

__all__ = [
    "ApiDescription",
    "Operation",
    "Parameter",
    "RequestBody",
    "Server",
    "ServerVariable",
    "expand_refs",
    "load_description",
    "load_document",
    "parse_description",
    "resolve_pointer",
]
