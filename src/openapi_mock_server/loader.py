"""OpenAPI document loading and basic validation."""

from __future__ import annotations

import json
import logging
from copy import deepcopy
from pathlib import Path
from typing import Any

import yaml
from openapi_python_client.schema import OpenAPI
from pydantic import ValidationError

from .json_types import JSONValue

logger = logging.getLogger(__name__)

_SWAGGER2_METHODS: tuple[str, ...] = ("get", "put", "post", "delete", "options", "head", "patch")
_PARAMETER_SCHEMA_KEYS: tuple[str, ...] = (
    "type",
    "format",
    "items",
    "enum",
    "default",
    "minimum",
    "maximum",
    "exclusiveMinimum",
    "exclusiveMaximum",
    "minLength",
    "maxLength",
    "pattern",
    "minItems",
    "maxItems",
    "uniqueItems",
    "multipleOf",
)
_REF_PREFIXES: tuple[tuple[str, str], ...] = (
    ("#/definitions/", "#/components/schemas/"),
    ("#/parameters/", "#/components/parameters/"),
    ("#/responses/", "#/components/responses/"),
)


class OpenAPILoadError(RuntimeError):
    """Raised when a source OpenAPI document cannot be loaded."""


def load_openapi_document(path: Path) -> dict[str, Any]:
    """Load, upgrade and check an OpenAPI document from a JSON or YAML file."""
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise OpenAPILoadError(f"Failed to read OpenAPI file {path}: {exc}") from exc
    return prepare_document(parse_document_text(text, source=str(path)))


def parse_document_text(text: str, *, source: str = "") -> dict[str, Any]:
    """Parse document text.

    ``.json`` sources are JSON and ``.yaml``/``.yml`` sources YAML; anything
    else is tried as JSON first, then as YAML.
    """
    suffix = Path(source).suffix.lower() if source else ""
    try:
        payload: JSONValue
        if suffix == ".json":
            payload = json.loads(text)
        elif suffix in (".yaml", ".yml"):
            payload = yaml.safe_load(text)
        else:
            payload = _parse_json_or_yaml(text)
    except json.JSONDecodeError as exc:
        raise OpenAPILoadError(f"Failed to parse JSON in {source}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise OpenAPILoadError(f"Failed to parse YAML in {source or 'document'}: {exc}") from exc

    if not isinstance(payload, dict):
        raise OpenAPILoadError(f"OpenAPI document must deserialize to a mapping, got {type(payload)!r}")
    return payload


def _parse_json_or_yaml(text: str) -> JSONValue:
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        return yaml.safe_load(text)


def prepare_document(document: dict[str, Any]) -> dict[str, Any]:
    """Upgrade Swagger 2.0 input and check the fields the server relies on."""
    if document.get("swagger") == "2.0":
        logger.info("Detected Swagger 2.0, converting to OpenAPI 3.0")
        document = upgrade_swagger2(document)

    ensure_supported_version(get_openapi_version(document))

    info = document.get("info")
    if not isinstance(info, dict):
        raise OpenAPILoadError("Missing required 'info' field")
    for key in ("title", "version"):
        if not info.get(key):
            raise OpenAPILoadError(f"Missing required 'info.{key}' field")
    if not isinstance(document.get("paths"), dict):
        raise OpenAPILoadError("OpenAPI document missing 'paths' object")

    try:
        OpenAPI.model_validate(document)
    except ValidationError as exc:
        logger.warning("OpenAPI schema validation reported problems; continuing: %s", exc)
    return document


def get_openapi_version(document: dict[str, Any]) -> str:
    """Return the declared OpenAPI version string."""
    version = document.get("openapi")
    if not isinstance(version, str) or not version.strip():
        raise OpenAPILoadError("Missing 'openapi' field. Is this a valid OpenAPI spec?")
    return version.strip()


def ensure_supported_version(version: str) -> None:
    """Validate that the input version is OpenAPI 3.x."""
    major_text = version.split(".", maxsplit=1)[0]
    try:
        major = int(major_text)
    except ValueError as exc:
        raise OpenAPILoadError(f"Unable to parse OpenAPI version: {version}") from exc
    if major != 3:
        raise OpenAPILoadError(f"Unsupported OpenAPI version: {version}. Supported: 3.0.x, 3.1.x")


def upgrade_swagger2(document: dict[str, Any]) -> dict[str, Any]:
    """Convert a Swagger 2.0 document into an equivalent OpenAPI 3.0 shape."""
    source = deepcopy(document)
    consumes = _string_list(source.get("consumes")) or ["application/json"]
    produces = _string_list(source.get("produces")) or ["application/json"]
    shared_parameters = source.get("parameters") if isinstance(source.get("parameters"), dict) else {}

    components: dict[str, Any] = {}
    if isinstance(source.get("definitions"), dict):
        components["schemas"] = source["definitions"]
    non_body_parameters = {
        name: _convert_parameter(parameter)
        for name, parameter in shared_parameters.items()
        if isinstance(parameter, dict) and parameter.get("in") not in ("body", "formData")
    }
    if non_body_parameters:
        components["parameters"] = non_body_parameters
    if isinstance(source.get("responses"), dict):
        components["responses"] = {
            name: _convert_response(response, produces) for name, response in source["responses"].items()
        }
    if isinstance(source.get("securityDefinitions"), dict):
        components["securitySchemes"] = source["securityDefinitions"]

    paths: dict[str, Any] = {}
    for path, path_item in (source.get("paths") or {}).items():
        if not isinstance(path_item, dict):
            continue
        converted_item: dict[str, Any] = {}
        for key, value in path_item.items():
            if key in _SWAGGER2_METHODS and isinstance(value, dict):
                converted_item[key] = _convert_operation(
                    value,
                    inherited=path_item.get("parameters"),
                    shared=shared_parameters,
                    consumes=_string_list(value.get("consumes")) or consumes,
                    produces=_string_list(value.get("produces")) or produces,
                )
            elif key != "parameters":
                converted_item[key] = value
        paths[path] = converted_item

    upgraded: dict[str, Any] = {
        "openapi": "3.0.3",
        "info": source.get("info", {}),
        "servers": [{"url": _server_url(source)}],
        "paths": paths,
    }
    if components:
        upgraded["components"] = components
    for key in ("security", "tags", "externalDocs"):
        if key in source:
            upgraded[key] = source[key]
    return _rewrite_refs(upgraded)


def _convert_operation(
    operation: dict[str, Any],
    *,
    inherited: Any,
    shared: dict[str, Any],
    consumes: list[str],
    produces: list[str],
) -> dict[str, Any]:
    converted = {key: value for key, value in operation.items() if key not in ("parameters", "consumes", "produces")}
    parameters: list[dict[str, Any]] = []
    form_properties: dict[str, Any] = {}
    form_required: list[str] = []

    raw_parameters = [*(inherited if isinstance(inherited, list) else []), *(operation.get("parameters") or [])]
    for raw in raw_parameters:
        parameter = _inline_shared_parameter(raw, shared)
        if not isinstance(parameter, dict):
            continue
        location = parameter.get("in")
        if location == "body":
            schema = parameter.get("schema") if isinstance(parameter.get("schema"), dict) else {}
            converted["requestBody"] = {
                "required": bool(parameter.get("required")),
                "content": {media_type: {"schema": schema} for media_type in consumes},
            }
        elif location == "formData":
            form_properties[parameter.get("name", "field")] = _parameter_schema(parameter)
            if parameter.get("required"):
                form_required.append(parameter.get("name", "field"))
        elif "$ref" in parameter:
            parameters.append(parameter)
        else:
            parameters.append(_convert_parameter(parameter))

    if form_properties and "requestBody" not in converted:
        form_schema: dict[str, Any] = {"type": "object", "properties": form_properties}
        if form_required:
            form_schema["required"] = form_required
        converted["requestBody"] = {"content": {"application/x-www-form-urlencoded": {"schema": form_schema}}}
    if parameters:
        converted["parameters"] = parameters

    responses = operation.get("responses")
    if isinstance(responses, dict):
        converted["responses"] = {
            str(code): _convert_response(response, produces) for code, response in responses.items()
        }
    return converted


def _inline_shared_parameter(parameter: Any, shared: dict[str, Any]) -> Any:
    if not isinstance(parameter, dict):
        return parameter
    ref = parameter.get("$ref")
    if isinstance(ref, str) and ref.startswith("#/parameters/"):
        target = shared.get(ref.split("/", 2)[2])
        if isinstance(target, dict) and target.get("in") in ("body", "formData"):
            return target
    return parameter


def _convert_parameter(parameter: dict[str, Any]) -> dict[str, Any]:
    converted = {
        key: value for key, value in parameter.items() if key not in _PARAMETER_SCHEMA_KEYS and key != "collectionFormat"
    }
    converted["schema"] = _parameter_schema(parameter)
    return converted


def _parameter_schema(parameter: dict[str, Any]) -> dict[str, Any]:
    schema = {key: parameter[key] for key in _PARAMETER_SCHEMA_KEYS if key in parameter}
    if schema.get("type") == "file":
        schema = {"type": "string", "format": "binary"}
    return schema or {"type": "string"}


def _convert_response(response: Any, produces: list[str]) -> Any:
    if not isinstance(response, dict) or "$ref" in response:
        return response
    converted = {key: value for key, value in response.items() if key not in ("schema", "examples", "headers")}
    converted.setdefault("description", "")
    schema = response.get("schema")
    if isinstance(schema, dict):
        converted["content"] = {media_type: {"schema": schema} for media_type in produces}
    return converted


def _server_url(source: dict[str, Any]) -> str:
    base_path = source.get("basePath") if isinstance(source.get("basePath"), str) else ""
    host = source.get("host")
    if not isinstance(host, str) or not host:
        return base_path or "/"
    schemes = _string_list(source.get("schemes")) or ["https"]
    return f"{schemes[0]}://{host}{base_path}"


def _string_list(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, str)]


def _rewrite_refs(node: Any) -> Any:
    if isinstance(node, list):
        return [_rewrite_refs(item) for item in node]
    if not isinstance(node, dict):
        return node
    rewritten: dict[str, Any] = {}
    for key, value in node.items():
        if key == "$ref" and isinstance(value, str):
            for old_prefix, new_prefix in _REF_PREFIXES:
                if value.startswith(old_prefix):
                    value = new_prefix + value[len(old_prefix) :]
                    break
            rewritten[key] = value
        else:
            rewritten[key] = _rewrite_refs(value)
    return rewritten
