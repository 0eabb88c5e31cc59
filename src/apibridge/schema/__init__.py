"""Schema layer — schema node kinds and their pydantic compiler."""

from apibridge.schema.compiler import CompiledSchema, compile_schema, violations_from
from apibridge.schema.nodes import (
    AnySchema,
    ArraySchema,
    BooleanSchema,
    EnumSchema,
    IntegerSchema,
    NumberSchema,
    ObjectSchema,
    SchemaNode,
    StringSchema,
    UnionSchema,
    parse_schema,
)

__all__ = [
    "AnySchema",
    "ArraySchema",
    "BooleanSchema",
    "CompiledSchema",
    "EnumSchema",
    "IntegerSchema",
    "NumberSchema",
    "ObjectSchema",
    "SchemaNode",
    "StringSchema",
    "UnionSchema",
    "compile_schema",
    "parse_schema",
    "violations_from",
]
