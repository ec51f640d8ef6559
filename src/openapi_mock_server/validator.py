"""Request-body validation against OpenAPI schemas."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional

from jsonschema.exceptions import SchemaError
from jsonschema.protocols import Validator
from jsonschema.validators import Draft4Validator, Draft202012Validator
from referencing.exceptions import Unresolvable

logger = logging.getLogger(__name__)

_DOC_ONLY_KEYS: frozenset[str] = frozenset({"example", "examples", "nullable", "xml", "discriminator"})
_SCHEMA_MAP_KEYS: tuple[str, ...] = ("properties", "patternProperties", "$defs", "definitions")
_SCHEMA_LIST_KEYS: tuple[str, ...] = ("allOf", "oneOf", "anyOf", "prefixItems")
_SCHEMA_VALUE_KEYS: tuple[str, ...] = ("items", "not", "additionalProperties", "contains")


@dataclass(frozen=True)
class FieldError:
    """One validation problem located by a JSON pointer into the body."""

    field: str
    message: str

    def as_dict(self) -> dict[str, str]:
        """Serialize for a response payload."""
        return {"field": self.field, "message": self.message}


@dataclass(frozen=True)
class ValidationOutcome:
    """Result of validating one request body."""

    valid: bool
    errors: tuple[FieldError, ...] = ()


def validate_request_body(
    body: Any,
    schema: Optional[dict[str, Any]],
    document: dict[str, Any],
) -> ValidationOutcome:
    """Validate a request body against its declared schema.

    Schemas the validator cannot compile or resolve let the body through; the
    failure is logged instead of reported to the client.

    Args:
        body (Any): Decoded JSON request body.
        schema (Optional[dict[str, Any]]): Resolved request-body schema.
        document (dict[str, Any]): The OpenAPI document the schema came from.

    Returns:
        ValidationOutcome: Validity and per-field errors.
    """
    if schema is None:
        return ValidationOutcome(valid=True)

    validator_cls = validator_class_for(document)
    validation_schema = prepare_validation_schema(schema)
    components = document.get("components")
    if isinstance(components, dict):
        # Cyclic references stay as local "#/components/..." pointers.
        validation_schema["components"] = components

    try:
        validator_cls.check_schema(validation_schema)
        validator = validator_cls(validation_schema, format_checker=validator_cls.FORMAT_CHECKER)
        errors = tuple(_to_field_error(error) for error in validator.iter_errors(body))
    except (SchemaError, Unresolvable, TypeError, ValueError) as exc:
        logger.warning("Request schema could not be used for validation, allowing request: %s", exc)
        return ValidationOutcome(valid=True)

    return ValidationOutcome(valid=not errors, errors=errors)


def validator_class_for(document: dict[str, Any]) -> type[Validator]:
    """Pick the JSON Schema dialect matching the document's OpenAPI version."""
    version = document.get("openapi")
    if isinstance(version, str) and version.startswith("3.1"):
        return Draft202012Validator
    return Draft4Validator


def prepare_validation_schema(schema: dict[str, Any]) -> dict[str, Any]:
    """Translate OpenAPI-only schema keywords into plain JSON Schema.

    ``nullable`` becomes a ``null`` type alternative, documentation-only keys
    are dropped, and ``readOnly`` properties are no longer required.
    """
    clean: dict[str, Any] = {}
    for key, value in schema.items():
        if key in _DOC_ONLY_KEYS:
            continue
        if key in _SCHEMA_MAP_KEYS and isinstance(value, dict):
            clean[key] = {
                name: prepare_validation_schema(child) if isinstance(child, dict) else child
                for name, child in value.items()
            }
        elif key in _SCHEMA_LIST_KEYS and isinstance(value, list):
            clean[key] = [
                prepare_validation_schema(child) if isinstance(child, dict) else child for child in value
            ]
        elif key in _SCHEMA_VALUE_KEYS and isinstance(value, dict):
            clean[key] = prepare_validation_schema(value)
        else:
            clean[key] = value

    if schema.get("nullable") is True:
        _allow_null(clean)

    properties = schema.get("properties")
    required = clean.get("required")
    if isinstance(properties, dict) and isinstance(required, list):
        read_only = {
            name for name, child in properties.items() if isinstance(child, dict) and child.get("readOnly") is True
        }
        if read_only:
            clean["required"] = [name for name in required if name not in read_only]
            if not clean["required"]:
                del clean["required"]
    return clean


def _allow_null(schema: dict[str, Any]) -> None:
    schema_type = schema.get("type")
    if isinstance(schema_type, str):
        schema["type"] = [schema_type, "null"]
    elif isinstance(schema_type, list) and "null" not in schema_type:
        schema["type"] = [*schema_type, "null"]
    enum = schema.get("enum")
    if isinstance(enum, list) and None not in enum:
        schema["enum"] = [*enum, None]


def _to_field_error(error: Any) -> FieldError:
    pointer = "/".join(str(part) for part in error.absolute_path)
    return FieldError(field=f"/{pointer}", message=error.message)
