"""Typed schema nodes parsed from resolved OpenAPI schema mappings.

Every schema the generator consumes is one of the frozen variants below, so
generation dispatches on the variant class instead of on raw ``type`` strings.
Fields shared by every variant (``example``, ``nullable``, ``enum``,
``default``) live on :class:`SchemaNode`.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Optional

from .json_types import JSONValue


@dataclass(frozen=True, kw_only=True)
class SchemaNode:
    """Fields common to every schema variant."""

    example: JSONValue = None
    has_example: bool = False
    nullable: bool = False
    enum: tuple[JSONValue, ...] = ()
    default: JSONValue = None


@dataclass(frozen=True, kw_only=True)
class StringSchema(SchemaNode):
    """A ``type: string`` node."""

    format: Optional[str] = None
    pattern: Optional[str] = None
    min_length: Optional[int] = None
    max_length: Optional[int] = None


@dataclass(frozen=True, kw_only=True)
class NumberSchema(SchemaNode):
    """A ``type: number`` node."""

    minimum: Optional[float] = None
    maximum: Optional[float] = None


@dataclass(frozen=True, kw_only=True)
class IntegerSchema(NumberSchema):
    """A ``type: integer`` node."""


@dataclass(frozen=True, kw_only=True)
class BooleanSchema(SchemaNode):
    """A ``type: boolean`` node."""


@dataclass(frozen=True, kw_only=True)
class NullSchema(SchemaNode):
    """A ``type: null`` node."""


@dataclass(frozen=True, kw_only=True)
class ArraySchema(SchemaNode):
    """A ``type: array`` node."""

    items: Optional[SchemaNode] = None
    min_items: Optional[int] = None
    max_items: Optional[int] = None


@dataclass(frozen=True, kw_only=True)
class ObjectSchema(SchemaNode):
    """A ``type: object`` node with properties kept in declared order."""

    properties: Mapping[str, SchemaNode] = field(default_factory=dict)
    required: frozenset[str] = frozenset()


@dataclass(frozen=True, kw_only=True)
class AllOfSchema(SchemaNode):
    """An ``allOf`` composition."""

    members: tuple[SchemaNode, ...] = ()


@dataclass(frozen=True, kw_only=True)
class ChoiceSchema(SchemaNode):
    """A ``oneOf`` or ``anyOf`` composition; generation picks one member."""

    keyword: str = "oneOf"
    members: tuple[SchemaNode, ...] = ()


@dataclass(frozen=True, kw_only=True)
class RefSchema(SchemaNode):
    """A reference left unexpanded because it points back into its own chain."""

    ref: str = ""


@dataclass(frozen=True, kw_only=True)
class AnySchema(SchemaNode):
    """A node whose type is absent or unrecognized."""

    declared_type: Optional[str] = None


def parse_schema(node: Any) -> SchemaNode:
    """Convert a resolved schema mapping into a typed schema node.

    Args:
        node (Any): Schema mapping; non-mappings become :class:`AnySchema`.

    Returns:
        SchemaNode: The typed variant for the node.
    """
    if not isinstance(node, dict):
        return AnySchema()

    common = _common_fields(node)
    ref = node.get("$ref")
    if isinstance(ref, str):
        return RefSchema(ref=ref, **common)

    all_of = _member_list(node.get("allOf"))
    if all_of:
        return AllOfSchema(members=all_of, **common)
    for keyword in ("oneOf", "anyOf"):
        members = _member_list(node.get(keyword))
        if members:
            return ChoiceSchema(keyword=keyword, members=members, **common)

    schema_type, type_nullable = _declared_type(node)
    if type_nullable:
        common["nullable"] = True

    if schema_type == "string":
        return StringSchema(
            format=_str_or_none(node.get("format")),
            pattern=_str_or_none(node.get("pattern")),
            min_length=_int_or_none(node.get("minLength")),
            max_length=_int_or_none(node.get("maxLength")),
            **common,
        )
    if schema_type in ("number", "integer"):
        variant = IntegerSchema if schema_type == "integer" else NumberSchema
        return variant(
            minimum=_number_or_none(node.get("minimum")),
            maximum=_number_or_none(node.get("maximum")),
            **common,
        )
    if schema_type == "boolean":
        return BooleanSchema(**common)
    if schema_type == "null":
        return NullSchema(**common)
    if schema_type == "array":
        items = node.get("items")
        return ArraySchema(
            items=parse_schema(items) if isinstance(items, dict) else None,
            min_items=_int_or_none(node.get("minItems")),
            max_items=_int_or_none(node.get("maxItems")),
            **common,
        )
    if schema_type == "object":
        raw_properties = node.get("properties")
        properties: dict[str, SchemaNode] = {}
        if isinstance(raw_properties, dict):
            for name, child in raw_properties.items():
                if isinstance(name, str):
                    properties[name] = parse_schema(child)
        raw_required = node.get("required")
        required = frozenset(
            name for name in (raw_required if isinstance(raw_required, list) else []) if isinstance(name, str)
        )
        return ObjectSchema(properties=properties, required=required, **common)

    return AnySchema(declared_type=schema_type, **common)


def _common_fields(node: dict[str, Any]) -> dict[str, Any]:
    enum = node.get("enum")
    return {
        "example": node.get("example"),
        "has_example": "example" in node,
        "nullable": node.get("nullable") is True,
        "enum": tuple(enum) if isinstance(enum, list) else (),
        "default": node.get("default"),
    }


def _declared_type(node: dict[str, Any]) -> tuple[Optional[str], bool]:
    raw_type = node.get("type")
    nullable = False
    if isinstance(raw_type, list):
        # OpenAPI 3.1 spells nullability as a type union with "null".
        non_null = [item for item in raw_type if item != "null"]
        nullable = len(non_null) < len(raw_type)
        raw_type = non_null[0] if non_null else "null"

    if isinstance(raw_type, str):
        return raw_type, nullable
    if isinstance(node.get("properties"), dict):
        return "object", nullable
    if isinstance(node.get("items"), dict):
        return "array", nullable
    return None, nullable


def _member_list(raw: Any) -> tuple[SchemaNode, ...]:
    if not isinstance(raw, list):
        return ()
    return tuple(parse_schema(item) for item in raw if isinstance(item, dict))


def _str_or_none(value: Any) -> Optional[str]:
    return value if isinstance(value, str) and value else None


def _int_or_none(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return None


def _number_or_none(value: Any) -> Optional[float]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return value
