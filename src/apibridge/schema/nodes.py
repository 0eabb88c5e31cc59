"""Schema nodes — a closed set of JSON Schema kinds.

Raw JSON Schema dicts (after ``$ref`` expansion) are parsed once into these
models with :func:`parse_schema`.  The compiler and the documentation shape
only ever see these kinds, never the raw dicts.
"""

from __future__ import annotations

from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from apibridge.errors import DescriptionError

_UNSET: Any = None


class _Node(BaseModel):
    model_config = ConfigDict(frozen=True)

    description: str | None = None
    default: Any = _UNSET
    has_default: bool = False
    nullable: bool = False

    def to_json_schema(self) -> dict[str, Any]:
        """Return the JSON Schema documenting this node."""
        shape = self._shape()
        if self.nullable and "type" in shape:
            shape["type"] = [shape["type"], "null"]
        if self.description:
            shape["description"] = self.description
        if self.has_default:
            shape["default"] = self.default
        return shape

    def _shape(self) -> dict[str, Any]:
        return {}


class AnySchema(_Node):
    kind: Literal["any"] = "any"


class StringSchema(_Node):
    kind: Literal["string"] = "string"
    min_length: int | None = None
    max_length: int | None = None
    pattern: str | None = None

    def _shape(self) -> dict[str, Any]:
        return _drop_none(
            {
                "type": "string",
                "minLength": self.min_length,
                "maxLength": self.max_length,
                "pattern": self.pattern,
            }
        )


class _NumericSchema(_Node):
    minimum: float | None = None
    maximum: float | None = None
    exclusive_minimum: float | None = None
    exclusive_maximum: float | None = None

    def _shape(self) -> dict[str, Any]:
        return _drop_none(
            {
                "type": self.kind,  # type: ignore[attr-defined]
                "minimum": self.minimum,
                "maximum": self.maximum,
                "exclusiveMinimum": self.exclusive_minimum,
                "exclusiveMaximum": self.exclusive_maximum,
            }
        )


class NumberSchema(_NumericSchema):
    kind: Literal["number"] = "number"


class IntegerSchema(_NumericSchema):
    kind: Literal["integer"] = "integer"


class BooleanSchema(_Node):
    kind: Literal["boolean"] = "boolean"

    def _shape(self) -> dict[str, Any]:
        return {"type": "boolean"}


class EnumSchema(_Node):
    kind: Literal["enum"] = "enum"
    values: tuple[Any, ...]
    base_type: str | None = None

    def _shape(self) -> dict[str, Any]:
        shape: dict[str, Any] = {"enum": list(self.values)}
        if self.base_type:
            shape["type"] = self.base_type
        return shape


class ArraySchema(_Node):
    kind: Literal["array"] = "array"
    items: SchemaNode = Field(default_factory=AnySchema)
    min_items: int | None = None
    max_items: int | None = None

    def _shape(self) -> dict[str, Any]:
        return _drop_none(
            {
                "type": "array",
                "items": self.items.to_json_schema(),
                "minItems": self.min_items,
                "maxItems": self.max_items,
            }
        )


class ObjectSchema(_Node):
    kind: Literal["object"] = "object"
    properties: dict[str, SchemaNode] = {}
    required: tuple[str, ...] = ()
    additional: SchemaNode | None = None

    def _shape(self) -> dict[str, Any]:
        shape: dict[str, Any] = {
            "type": "object",
            "properties": {name: node.to_json_schema() for name, node in self.properties.items()},
        }
        if self.required:
            shape["required"] = list(self.required)
        if self.additional is not None:
            shape["additionalProperties"] = self.additional.to_json_schema()
        return shape


class UnionSchema(_Node):
    kind: Literal["union"] = "union"
    variants: tuple[SchemaNode, ...]

    def _shape(self) -> dict[str, Any]:
        return {"anyOf": [variant.to_json_schema() for variant in self.variants]}


SchemaNode = Annotated[
    AnySchema
    | StringSchema
    | NumberSchema
    | IntegerSchema
    | BooleanSchema
    | EnumSchema
    | ArraySchema
    | ObjectSchema
    | UnionSchema,
    Field(discriminator="kind"),
]

ArraySchema.model_rebuild()
ObjectSchema.model_rebuild()
UnionSchema.model_rebuild()


# ---------------------------------------------------------------------------
# Parsing raw JSON Schema
# ---------------------------------------------------------------------------

_SCALAR_TYPES = ("string", "number", "integer", "boolean", "array", "object")


def parse_schema(raw: Any) -> SchemaNode:
    """Parse an expanded JSON Schema dict into a :data:`SchemaNode`.

    ``None`` or an empty dict yields :class:`AnySchema`.
    """
    if raw is None:
        return AnySchema()
    if not isinstance(raw, dict):
        msg = f"schema must be an object, got {type(raw).__name__}"
        raise DescriptionError(msg)

    common = _common(raw)

    if "enum" in raw:
        values = raw["enum"]
        if not isinstance(values, list) or not values:
            msg = "'enum' must be a non-empty list"
            raise DescriptionError(msg)
        base_type, nullable = _type_of(raw)
        return EnumSchema(
            values=tuple(values),
            base_type=base_type,
            **{**common, "nullable": common["nullable"] or nullable},
        )

    if "allOf" in raw:
        return _merge_all_of(raw, common)

    for key in ("oneOf", "anyOf"):
        if key in raw:
            variants = tuple(parse_schema(part) for part in raw[key])
            if len(variants) == 1:
                return variants[0].model_copy(update=_overrides(common))
            return UnionSchema(variants=variants, **common)

    type_name, nullable = _type_of(raw)
    if nullable:
        common["nullable"] = True
    if type_name is None:
        if "properties" in raw:
            type_name = "object"
        elif "items" in raw:
            type_name = "array"

    if type_name == "string":
        return StringSchema(
            min_length=raw.get("minLength"),
            max_length=raw.get("maxLength"),
            pattern=raw.get("pattern"),
            **common,
        )
    if type_name in ("number", "integer"):
        cls = NumberSchema if type_name == "number" else IntegerSchema
        return cls(
            minimum=raw.get("minimum"),
            maximum=raw.get("maximum"),
            exclusive_minimum=_exclusive(raw, "exclusiveMinimum", "minimum"),
            exclusive_maximum=_exclusive(raw, "exclusiveMaximum", "maximum"),
            **common,
        )
    if type_name == "boolean":
        return BooleanSchema(**common)
    if type_name == "array":
        return ArraySchema(
            items=parse_schema(raw.get("items")),
            min_items=raw.get("minItems"),
            max_items=raw.get("maxItems"),
            **common,
        )
    if type_name == "object":
        return _parse_object(raw, common)
    return AnySchema(**common)


def _parse_object(raw: dict[str, Any], common: dict[str, Any]) -> ObjectSchema:
    properties = raw.get("properties") or {}
    if not isinstance(properties, dict):
        msg = "'properties' must be an object"
        raise DescriptionError(msg)
    additional = raw.get("additionalProperties")
    return ObjectSchema(
        properties={name: parse_schema(prop) for name, prop in properties.items()},
        required=tuple(raw.get("required") or ()),
        additional=parse_schema(additional) if isinstance(additional, dict) else None,
        **common,
    )


def _merge_all_of(raw: dict[str, Any], common: dict[str, Any]) -> SchemaNode:
    """Merge ``allOf`` parts that are all objects; anything else stays open."""
    parts = [parse_schema(part) for part in raw["allOf"]]
    if len(parts) == 1:
        return parts[0].model_copy(update=_overrides(common))
    if not all(isinstance(part, ObjectSchema) for part in parts):
        return AnySchema(**common)

    properties: dict[str, SchemaNode] = {}
    required: list[str] = []
    for part in parts:
        assert isinstance(part, ObjectSchema)
        properties.update(part.properties)
        required.extend(name for name in part.required if name not in required)
    return ObjectSchema(properties=properties, required=tuple(required), **common)


def _common(raw: dict[str, Any]) -> dict[str, Any]:
    return {
        "description": raw.get("description"),
        "default": raw.get("default"),
        "has_default": "default" in raw,
        "nullable": bool(raw.get("nullable", False)),
    }


def _overrides(common: dict[str, Any]) -> dict[str, Any]:
    update: dict[str, Any] = {}
    if common["description"]:
        update["description"] = common["description"]
    if common["has_default"]:
        update["default"] = common["default"]
        update["has_default"] = True
    if common["nullable"]:
        update["nullable"] = True
    return update


def _type_of(raw: dict[str, Any]) -> tuple[str | None, bool]:
    """Return ``(type, nullable)`` for the ``type`` keyword."""
    declared = raw.get("type")
    if declared is None:
        return None, False
    if isinstance(declared, str):
        return (declared if declared in _SCALAR_TYPES else None), False
    if isinstance(declared, list):
        concrete = [t for t in declared if t != "null"]
        nullable = len(concrete) != len(declared)
        if len(concrete) == 1 and concrete[0] in _SCALAR_TYPES:
            return concrete[0], nullable
        return None, nullable
    return None, False


def _exclusive(raw: dict[str, Any], key: str, bound: str) -> float | None:
    # OpenAPI 3.0 uses a boolean flag next to minimum/maximum.
    value = raw.get(key)
    if isinstance(value, bool):
        return raw.get(bound) if value else None
    return value


def _drop_none(shape: dict[str, Any]) -> dict[str, Any]:
    return {key: value for key, value in shape.items() if value is not None}
