"""Path-template and operation naming helpers."""

from __future__ import annotations

import keyword
import re
from typing import Any, Optional

from .model_types import EndpointOverrides, OperationSpec

HTTP_METHODS: tuple[str, ...] = (
    "get",
    "post",
    "put",
    "patch",
    "delete",
)

_IDENTIFIER_SANITIZE_RE = re.compile(r"[^0-9a-zA-Z_]+")
_MULTIPLE_UNDERSCORES_RE = re.compile(r"_+")
_PATH_PARAM_RE = re.compile(r"\{(?P<name>[^{}]+)\}")


def sanitize_identifier(raw: str) -> str:
    """Convert arbitrary text into a valid Python identifier."""
    text = _IDENTIFIER_SANITIZE_RE.sub("_", raw)
    text = _MULTIPLE_UNDERSCORES_RE.sub("_", text).strip("_")
    if not text:
        text = "param"
    if text[0].isdigit():
        text = f"p_{text}"
    if keyword.iskeyword(text):
        text = f"{text}_"
    return text


def path_parameter_names(path: str) -> list[str]:
    """Return the parameter names of a path template in order."""
    return [match.group("name") for match in _PATH_PARAM_RE.finditer(path)]


def has_path_parameters(path: str) -> bool:
    """Whether a path template addresses a single item."""
    return bool(_PATH_PARAM_RE.search(path))


def transport_path(path: str) -> tuple[str, dict[str, str]]:
    """Rewrite a path template so every parameter is a routable identifier.

    Returns:
        tuple[str, dict[str, str]]: The rewritten template and a mapping from
            rewritten parameter names back to the declared ones.
    """
    mapping: dict[str, str] = {}

    def _replace(match: re.Match[str]) -> str:
        original = match.group("name")
        candidate = sanitize_identifier(original)
        while candidate in mapping and mapping[candidate] != original:
            candidate = f"{candidate}_"
        mapping[candidate] = original
        return "{" + candidate + "}"

    return _PATH_PARAM_RE.sub(_replace, path), mapping


def item_id_parameter(path_params: dict[str, str]) -> Optional[str]:
    """Pick the path parameter that identifies the addressed item.

    The last parameter whose name contains ``id`` wins; without one, the last
    parameter is used.
    """
    names = list(path_params)
    if not names:
        return None
    id_like = [name for name in names if "id" in name.lower()]
    return id_like[-1] if id_like else names[-1]


def route_sort_key(path: str) -> tuple[int, ...]:
    """Order routes so literal segments are matched before parameters."""
    segments = [segment for segment in path.split("/") if segment]
    return tuple(1 if _PATH_PARAM_RE.fullmatch(segment) else 0 for segment in segments)


def collect_operations(raw_paths: dict[str, Any]) -> list[OperationSpec]:
    """Extract every supported operation from a ``paths`` object."""
    operations: list[OperationSpec] = []
    for path, path_item in raw_paths.items():
        if not isinstance(path, str) or not isinstance(path_item, dict):
            continue
        for method in HTTP_METHODS:
            operation = path_item.get(method)
            if not isinstance(operation, dict):
                continue
            operations.append(
                OperationSpec(
                    path=path,
                    method=method,
                    operation=operation,
                    path_item=path_item,
                    operation_id=_normalize_operation_id(operation.get("operationId")),
                    overrides=EndpointOverrides.from_operation(operation),
                )
            )
    return operations


def _normalize_operation_id(operation_id_raw: Any) -> Optional[str]:
    if isinstance(operation_id_raw, str) and operation_id_raw.strip():
        return operation_id_raw.strip()
    return None
