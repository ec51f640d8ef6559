"""Reference resolution for schemas inside an OpenAPI document."""

from __future__ import annotations

import threading
from copy import deepcopy
from typing import Any, Optional

from .schema_model import SchemaNode, parse_schema


class ResolveError(RuntimeError):
    """Raised when resolving OpenAPI references fails."""


class UnresolvedReferenceError(ResolveError):
    """Raised when a ``$ref`` points at a location missing from the document."""

    def __init__(self, ref: str) -> None:
        super().__init__(f"Unresolvable reference: {ref}")
        self.ref = ref


_JSON_MEDIA_TYPES: tuple[str, ...] = (
    "application/json",
    "application/*+json",
    "*/*",
)


class Resolver:
    """Resolve local references against one document.

    Resolved references are memoized by their literal ``$ref`` string for the
    lifetime of the resolver. A reference met again inside its own expansion is
    kept as a ``{"$ref": ...}`` node so cyclic schemas stay finite; consumers
    expand those lazily through :meth:`resolve_ref`.
    """

    def __init__(self, document: dict[str, Any]) -> None:
        self._document = deepcopy(document)
        self._cache: dict[str, Any] = {}
        self._schema_cache: dict[str, SchemaNode] = {}
        self._lock = threading.RLock()

    @property
    def document(self) -> dict[str, Any]:
        """The document references are resolved against."""
        return self._document

    def resolve_node(self, node: Any) -> Any:
        """Recursively inline references in a node."""
        with self._lock:
            return self._resolve(node, stack=())

    def resolve_schema(self, node: Any) -> SchemaNode:
        """Inline references in a schema mapping and parse it into a typed node."""
        return parse_schema(self.resolve_node(node))

    def resolve_ref(self, ref: str) -> SchemaNode:
        """Return the typed schema a reference points at.

        Raises:
            UnresolvedReferenceError: The reference path does not exist.
        """
        with self._lock:
            cached = self._schema_cache.get(ref)
            if cached is None:
                cached = parse_schema(self._resolve_ref(ref, stack=()))
                self._schema_cache[ref] = cached
            return cached

    def clear(self) -> None:
        """Drop every memoized reference."""
        with self._lock:
            self._cache.clear()
            self._schema_cache.clear()

    def _resolve(self, node: Any, stack: tuple[str, ...]) -> Any:
        if isinstance(node, list):
            return [self._resolve(item, stack) for item in node]
        if not isinstance(node, dict):
            return node

        ref_value = node.get("$ref")
        if isinstance(ref_value, str):
            resolved_ref = self._resolve_ref(ref_value, stack)
            siblings = {key: value for key, value in node.items() if key != "$ref"}
            if siblings and isinstance(resolved_ref, dict) and "$ref" not in resolved_ref:
                merged = deepcopy(resolved_ref)
                for key, value in siblings.items():
                    merged[key] = self._resolve(value, stack)
                return merged
            return resolved_ref

        return {key: self._resolve(value, stack) for key, value in node.items()}

    def _resolve_ref(self, ref: str, stack: tuple[str, ...]) -> Any:
        if ref in stack:
            return {"$ref": ref}

        if ref in self._cache:
            return deepcopy(self._cache[ref])

        if not ref.startswith("#/"):
            raise ResolveError(f"Only local references are currently supported: {ref}")

        current: Any = self._document
        for token in ref[2:].split("/"):
            token = token.replace("~1", "/").replace("~0", "~")
            if isinstance(current, list) and token.isdigit() and int(token) < len(current):
                current = current[int(token)]
                continue
            if not isinstance(current, dict) or token not in current:
                raise UnresolvedReferenceError(ref)
            current = current[token]

        resolved = self._resolve(deepcopy(current), (*stack, ref))
        # Expansions cut short by an outer cycle are only valid inside that chain.
        if not stack:
            self._cache[ref] = deepcopy(resolved)
        return resolved

    def request_body_schema(self, operation: dict[str, Any]) -> Optional[dict[str, Any]]:
        """Return the resolved JSON request-body schema of an operation."""
        request_body = operation.get("requestBody")
        if not isinstance(request_body, dict):
            return None
        resolved_body = self.resolve_node(request_body)
        if not isinstance(resolved_body, dict):
            return None
        return self._content_schema(resolved_body.get("content"))

    def response_schema(self, response_node: Any) -> Optional[dict[str, Any]]:
        """Return the resolved JSON content schema of one response object."""
        if not isinstance(response_node, dict):
            return None
        resolved_response = self.resolve_node(response_node)
        if not isinstance(resolved_response, dict):
            return None
        return self._content_schema(resolved_response.get("content"))

    def _content_schema(self, content: Any) -> Optional[dict[str, Any]]:
        if not isinstance(content, dict):
            return None

        candidates: list[dict[str, Any]] = []
        for media_type in _JSON_MEDIA_TYPES:
            media = content.get(media_type)
            if isinstance(media, dict):
                candidates.append(media)
        for media_type, media in content.items():
            if isinstance(media, dict) and media not in candidates and "json" in str(media_type):
                candidates.append(media)

        for media in candidates:
            schema_node = media.get("schema")
            if isinstance(schema_node, dict):
                return schema_node
        return None
