"""Build the input schema of a tool from its operation."""

from __future__ import annotations

from apibridge.openapi.models import Operation, Server, ServerVariable
from apibridge.schema.compiler import CompiledSchema, compile_schema
from apibridge.schema.nodes import EnumSchema, ObjectSchema, SchemaNode, StringSchema

APPLICATION_ID_ARG = "applicationId"
REQUEST_BODY_ARG = "requestBody"

_APPLICATION_ID_DESCRIPTION = "The application ID that owns the resources to manipulate"


def build_input_node(
    operation: Operation,
    server: Server,
    *,
    require_application_id: bool = True,
) -> ObjectSchema:
    """Describe every argument a tool accepts as one object node.

    Arguments are ``applicationId``, the operation's parameters, the server
    URL variables and ``requestBody`` when the operation declares one.
    """
    properties: dict[str, SchemaNode] = {
        APPLICATION_ID_ARG: StringSchema(description=_APPLICATION_ID_DESCRIPTION),
    }
    required: list[str] = [APPLICATION_ID_ARG] if require_application_id else []

    for name, variable in server.variables.items():
        properties[name] = _server_variable_node(variable)
        if variable.default is None:
            required.append(name)

    for parameter in operation.parameters:
        node = parameter.schema_
        if parameter.description and not node.description:
            node = node.model_copy(update={"description": parameter.description})
        properties[parameter.name] = node
        if parameter.is_required and parameter.name not in required:
            required.append(parameter.name)

    body = operation.request_body
    if body is not None:
        node = body.schema_
        if body.description and not node.description:
            node = node.model_copy(update={"description": body.description})
        properties[REQUEST_BODY_ARG] = node
        if body.required:
            required.append(REQUEST_BODY_ARG)

    return ObjectSchema(properties=properties, required=tuple(required))


def compile_operation_input(
    operation: Operation,
    server: Server,
    *,
    require_application_id: bool = True,
) -> CompiledSchema:
    """Compile :func:`build_input_node` into a validator named after the operation."""
    node = build_input_node(operation, server, require_application_id=require_application_id)
    return compile_schema(node, name=f"{operation.operation_id}Input")


def _server_variable_node(variable: ServerVariable) -> SchemaNode:
    common = {
        "description": variable.description,
        "default": variable.default,
        "has_default": variable.default is not None,
    }
    if variable.enum:
        return EnumSchema(values=tuple(variable.enum), base_type="string", **common)
    return StringSchema(**common)
