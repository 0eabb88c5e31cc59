"""Compile schema nodes into pydantic validators.

Each :data:`~apibridge.schema.nodes.SchemaNode` becomes a pydantic
annotation.  Leaves are strict (no coercion), objects are dynamic models
built with :func:`pydantic.create_model` that allow unknown keys.  Validated
values are dumped back to plain data with ``exclude_unset`` so callers get
exactly what they sent.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Annotated, Any, Optional, Union

from pydantic import AfterValidator, ConfigDict, Field, TypeAdapter, create_model
from pydantic import ValidationError as PydanticValidationError
from pydantic.fields import FieldInfo

from apibridge.errors import DescriptionError, FieldViolation, ValidationError
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
)

_OPEN_OBJECT = ConfigDict(extra="allow")


@dataclass(frozen=True)
class CompiledSchema:
    """A compiled schema node: pydantic annotation, validator and JSON shape."""

    node: SchemaNode
    annotation: Any
    adapter: TypeAdapter[Any] = field(repr=False)

    @property
    def shape(self) -> dict[str, Any]:
        """JSON Schema used to document the value to the calling agent."""
        return self.node.to_json_schema()

    def field_info(self, *, required: bool, alias: str | None = None) -> FieldInfo:
        """Return the pydantic field carrying this node's description/default."""
        return _field_for(self.node, required=required, alias=alias)

    def validate(self, value: Any) -> Any:
        """Validate *value* and return it as plain data, unchanged.

        Raises:
            ValidationError: With every violated path, not just the first.
        """
        try:
            validated = self.adapter.validate_python(value)
        except PydanticValidationError as exc:
            raise ValidationError(violations_from(exc, self.node)) from exc
        return self.adapter.dump_python(validated, by_alias=True, exclude_unset=True)


def compile_schema(node: SchemaNode, name: str = "Value") -> CompiledSchema:
    """Compile *node* into a :class:`CompiledSchema`.

    *name* seeds the class names of generated object models.
    """
    annotation = _annotation(node, _model_name(name))
    return CompiledSchema(node=node, annotation=annotation, adapter=TypeAdapter(annotation))


def violations_from(
    exc: PydanticValidationError, node: SchemaNode | None = None
) -> list[FieldViolation]:
    """Convert a pydantic error into field-indexed violations.

    pydantic prefixes the errors of every union branch with a branch label.
    When *node* is given, ``loc`` is walked along it and the label sitting
    at each union position is dropped, so paths only name real fields.
    """
    violations: list[FieldViolation] = []
    for error in exc.errors():
        loc = list(error["loc"])
        if node is not None:
            walked = _field_loc(node, loc)
            if walked is not None:
                loc = walked
        path = ".".join(str(part) for part in loc)
        violations.append(FieldViolation(path=path, reason=error["msg"]))
    return violations


# ---------------------------------------------------------------------------
# Node → annotation
# ---------------------------------------------------------------------------


def _annotation(node: SchemaNode, name: str) -> Any:
    annotation = _base_annotation(node, name)
    if node.nullable and not isinstance(node, AnySchema):
        return Optional[annotation]  # noqa: UP007
    return annotation


def _base_annotation(node: SchemaNode, name: str) -> Any:
    if isinstance(node, StringSchema):
        constraints = Field(strict=True, min_length=node.min_length, max_length=node.max_length)
        if node.pattern is not None:
            return Annotated[str, constraints, AfterValidator(_matches(node.pattern))]
        return Annotated[str, constraints]

    if isinstance(node, IntegerSchema):
        return Annotated[int, Field(strict=True, **_bounds(node))]

    if isinstance(node, NumberSchema):
        bounds = _bounds(node)
        return Union[  # noqa: UP007
            Annotated[int, Field(strict=True, **bounds)],
            Annotated[float, Field(strict=True, **bounds)],
        ]

    if isinstance(node, BooleanSchema):
        return Annotated[bool, Field(strict=True)]

    if isinstance(node, EnumSchema):
        return Annotated[Any, AfterValidator(_one_of(node.values))]

    if isinstance(node, ArraySchema):
        items = _annotation(node.items, f"{name}Item")
        return Annotated[
            list[items],  # type: ignore[valid-type]
            Field(strict=True, min_length=node.min_items, max_length=node.max_items),
        ]

    if isinstance(node, ObjectSchema):
        return _object_annotation(node, name)

    if isinstance(node, UnionSchema):
        variants = tuple(
            _annotation(variant, f"{name}Option{i}") for i, variant in enumerate(node.variants)
        )
        return Union[variants]  # noqa: UP007

    return Any


def _object_annotation(node: ObjectSchema, name: str) -> Any:
    if not node.properties:
        values = Any if node.additional is None else _annotation(node.additional, f"{name}Value")
        return Annotated[dict[str, values], Field(strict=True)]  # type: ignore[valid-type]

    fields: dict[str, Any] = {}
    for index, (prop, prop_node) in enumerate(node.properties.items()):
        annotation = _annotation(prop_node, f"{name}{_model_name(prop)}")
        required = prop in node.required
        # Defaults are not validated; an unset optional key is never dumped.
        fields[f"field_{index}"] = (
            annotation,
            _field_for(prop_node, required=required, alias=prop),
        )

    # Required keys that are not declared as properties still have to be present.
    for extra_index, prop in enumerate(r for r in node.required if r not in node.properties):
        fields[f"required_{extra_index}"] = (Any, Field(..., alias=prop))

    return create_model(name, __config__=_OPEN_OBJECT, **fields)


def _field_for(node: SchemaNode, *, required: bool, alias: str | None) -> FieldInfo:
    kwargs: dict[str, Any] = {"description": node.description}
    if alias is not None:
        kwargs["alias"] = alias
    if required:
        return Field(..., **kwargs)
    return Field(default=node.default if node.has_default else None, **kwargs)


def _bounds(node: IntegerSchema | NumberSchema) -> dict[str, Any]:
    return {
        "ge": node.minimum,
        "le": node.maximum,
        "gt": node.exclusive_minimum,
        "lt": node.exclusive_maximum,
    }


def _matches(pattern: str) -> Any:
    try:
        compiled = re.compile(pattern)
    except re.error as exc:
        msg = f"unsupported pattern {pattern!r}: {exc}"
        raise DescriptionError(msg) from exc

    def check(value: str) -> str:
        if compiled.search(value) is None:
            msg = f"String should match pattern '{pattern}'"
            raise ValueError(msg)
        return value

    return check


def _one_of(values: tuple[Any, ...]) -> Any:
    def check(value: Any) -> Any:
        for allowed in values:
            if type(allowed) is type(value) and allowed == value:
                return value
            if _is_number(allowed) and _is_number(value) and allowed == value:
                return value
        msg = "Input should be one of " + ", ".join(repr(v) for v in values)
        raise ValueError(msg)

    return check


def _is_number(value: Any) -> bool:
    return isinstance(value, int | float) and not isinstance(value, bool)


def _field_loc(node: SchemaNode, loc: list[Any]) -> list[Any] | None:
    """Return *loc* without branch labels, or ``None`` if it does not fit *node*."""
    if not loc:
        return []

    if isinstance(node, UnionSchema):
        rest = loc[1:]
        for variant in _flat_variants(node):
            walked = _field_loc(variant, rest)
            if walked is not None:
                return walked
        return None

    if isinstance(node, NumberSchema):
        # int | float: the only element is the branch label.
        return [] if len(loc) == 1 else None

    head, rest = loc[0], loc[1:]
    if isinstance(node, ArraySchema):
        if not isinstance(head, int):
            return None
        child: SchemaNode = node.items
    elif isinstance(node, ObjectSchema):
        if not isinstance(head, str):
            return None
        if node.properties:
            child = node.properties.get(head, AnySchema())
        else:
            child = node.additional or AnySchema()
    else:
        return None

    walked = _field_loc(child, rest)
    return None if walked is None else [head, *walked]


def _flat_variants(node: UnionSchema) -> list[SchemaNode]:
    # typing flattens nested unions into one, so their labels share one position.
    variants: list[SchemaNode] = []
    for variant in node.variants:
        if isinstance(variant, UnionSchema):
            variants.extend(_flat_variants(variant))
        else:
            variants.append(variant)
    return variants


def _model_name(raw: str) -> str:
    parts = re.split(r"[^0-9A-Za-z]+", raw)
    name = "".join(p[:1].upper() + p[1:] for p in parts if p)
    return name or "Value"
