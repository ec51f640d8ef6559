"""Request handlers assembled from the operations of an OpenAPI document."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Optional

from .generator import GenerationContext, ValueGenerator
from .json_types import JSONValue, MutableJSONObject
from .model_types import MockRequest, MockResponse, OperationSpec, RouteInfo
from .naming import collect_operations, has_path_parameters, item_id_parameter, route_sort_key
from .resolver import Resolver
from .schema_model import AnySchema, ArraySchema, SchemaNode, parse_schema
from .state import StateStore
from .validator import validate_request_body

logger = logging.getLogger(__name__)

_WRITE_METHODS: frozenset[str] = frozenset({"post", "put", "patch"})
_NOT_FOUND_BODY: dict[str, str] = {"error": "Not Found"}
_INTERNAL_ERROR_BODY: dict[str, str] = {
    "error": "Internal Server Error",
    "message": "Failed to generate mock response",
}


class OperationHandler:
    """Answer requests for one (path, method) pair.

    Handlers keep nothing between calls; stateful data lives in the shared
    :class:`StateStore` and reference resolution is memoized by the shared
    :class:`Resolver`.
    """

    def __init__(
        self,
        operation: OperationSpec,
        *,
        resolver: Resolver,
        generator: ValueGenerator,
        store: StateStore,
        stateful: bool,
    ) -> None:
        self.operation = operation
        self._resolver = resolver
        self._generator = generator
        self._store = store
        self._stateful = stateful

    @property
    def route(self) -> RouteInfo:
        """Display information for this handler."""
        return RouteInfo(
            method=self.operation.method.upper(),
            path=self.operation.path,
            operation_id=self.operation.operation_id,
        )

    async def __call__(self, request: MockRequest) -> MockResponse:
        """Produce the mock response for one request; never raises."""
        try:
            response = self.respond(request)
        except Exception:
            logger.exception(
                "Error generating response for %s %s",
                self.operation.method.upper(),
                self.operation.path,
            )
            return MockResponse(status=500, body=dict(_INTERNAL_ERROR_BODY))

        delay_ms = self.operation.overrides.delay_ms
        if delay_ms:
            await asyncio.sleep(delay_ms / 1000)
        return response

    def respond(self, request: MockRequest) -> MockResponse:
        """Build the response synchronously; errors propagate to the caller."""
        method = self.operation.method
        success_status = 201 if method == "post" else 200
        response_node = self._select_response(success_status)
        schema: Optional[SchemaNode] = None
        if response_node is not None:
            raw_schema = self._resolver.response_schema(response_node)
            schema = parse_schema(raw_schema) if raw_schema is not None else None

        if method in _WRITE_METHODS and _has_content(request.body):
            outcome = validate_request_body(
                request.body,
                self._resolver.request_body_schema(self.operation.operation),
                self._resolver.document,
            )
            if not outcome.valid:
                return MockResponse(
                    status=400,
                    body={
                        "error": "Validation failed",
                        "details": [error.as_dict() for error in outcome.errors],
                    },
                )

        if self._stateful:
            stateful_response = self._respond_stateful(request, schema)
            if stateful_response is not None:
                return stateful_response

        if response_node is None:
            return MockResponse(status=204)
        return self._respond_stateless(request, schema, success_status)

    def _select_response(self, success_status: int) -> Optional[Any]:
        responses = self.operation.responses
        for status_code in (str(success_status), "200", "default"):
            if status_code in responses:
                return responses[status_code]
        return None

    def _new_context(self) -> GenerationContext:
        stable_key = None
        if self.operation.overrides.stable_seed:
            stable_key = f"{self.operation.path}:{self.operation.method}"
        return self._generator.new_context(stable_key=stable_key)

    def _respond_stateful(
        self,
        request: MockRequest,
        schema: Optional[SchemaNode],
    ) -> Optional[MockResponse]:
        path = self.operation.path
        method = self.operation.method

        if method == "get" and not has_path_parameters(path):
            return MockResponse(status=200, body=self._list_collection(schema))
        if method == "post":
            data = request.body if isinstance(request.body, dict) else {}
            return MockResponse(status=201, body=self._store.create(path, data))

        id_param = item_id_parameter(request.path_params)
        item_id = request.path_params.get(id_param) if id_param is not None else None
        if not item_id:
            return None

        if method == "get":
            item = self._store.get_by_id(path, item_id)
            if item is None:
                return MockResponse(status=404, body=dict(_NOT_FOUND_BODY))
            return MockResponse(status=200, body=item)
        if method in ("put", "patch"):
            data = request.body if isinstance(request.body, dict) else {}
            updated = self._store.update(path, item_id, data)
            if updated is None:
                return MockResponse(status=404, body=dict(_NOT_FOUND_BODY))
            return MockResponse(status=200, body=updated)
        if method == "delete":
            if self._store.delete(path, item_id):
                return MockResponse(status=204)
            return MockResponse(status=404, body=dict(_NOT_FOUND_BODY))
        return None

    def _list_collection(self, schema: Optional[SchemaNode]) -> list[MutableJSONObject]:
        path = self.operation.path
        if schema is None:
            return self._store.get_all(path)

        def _initial_items() -> list[MutableJSONObject]:
            ctx = self._new_context()
            generated = self._apply_count(self._generator.generate(schema, ctx), schema, ctx)
            if not isinstance(generated, list):
                return []
            return [{**item, "id": ctx.session.new_id()} for item in generated if isinstance(item, dict)]

        return self._store.seed_if_absent(path, _initial_items)

    def _respond_stateless(
        self,
        request: MockRequest,
        schema: Optional[SchemaNode],
        success_status: int,
    ) -> MockResponse:
        method = self.operation.method
        if schema is None:
            if method == "delete":
                return MockResponse(status=204)
            return MockResponse(status=success_status, body={})

        ctx = self._new_context()
        data = self._apply_count(self._generator.generate(schema, ctx), schema, ctx)

        if isinstance(data, dict):
            if request.path_params:
                _inject_path_params(data, request.path_params)
            if method in _WRITE_METHODS and isinstance(request.body, dict):
                data.update(request.body)
        return MockResponse(status=success_status, body=data)

    def _apply_count(self, data: JSONValue, schema: SchemaNode, ctx: GenerationContext) -> JSONValue:
        target = self.operation.overrides.count
        if target is None or not isinstance(data, list):
            return data

        item_schema: SchemaNode = AnySchema()
        if isinstance(schema, ArraySchema) and schema.items is not None:
            item_schema = schema.items
        items = data[:target]
        while len(items) < target:
            items.append(self._generator.generate(item_schema, ctx.for_item(len(items))))
        return items


class RouteAssembler:
    """Build one handler per operation declared in a document.

    The resolver, generator and store are owned by the assembler instance, so
    independent assemblers never share state.
    """

    def __init__(
        self,
        document: dict[str, Any],
        *,
        stateful: bool = False,
        seed: Optional[int] = None,
        resolver: Optional[Resolver] = None,
        store: Optional[StateStore] = None,
    ) -> None:
        self.resolver = resolver or Resolver(document)
        self.generator = ValueGenerator(self.resolver, seed=seed)
        self.store = store or StateStore()
        self.stateful = stateful

        raw_paths = document.get("paths")
        operations = collect_operations(raw_paths if isinstance(raw_paths, dict) else {})
        operations.sort(key=lambda operation: route_sort_key(operation.path))
        self.handlers: list[OperationHandler] = []
        for operation in operations:
            self.handlers.append(
                OperationHandler(
                    operation,
                    resolver=self.resolver,
                    generator=self.generator,
                    store=self.store,
                    stateful=stateful,
                )
            )
            logger.debug("Registered route: %s %s", operation.method.upper(), operation.path)

    @property
    def routes(self) -> list[RouteInfo]:
        """Every registered route."""
        return [handler.route for handler in self.handlers]

    @property
    def endpoint_count(self) -> int:
        """Number of distinct (method, path) pairs registered."""
        return len(self.handlers)

    def handler_for(self, method: str, path: str) -> Optional[OperationHandler]:
        """Return the handler registered for a method and path template."""
        for handler in self.handlers:
            if handler.operation.method == method.lower() and handler.operation.path == path:
                return handler
        return None


def count_endpoints(document: dict[str, Any]) -> int:
    """Count the supported operations declared in a document."""
    raw_paths = document.get("paths")
    return len(collect_operations(raw_paths if isinstance(raw_paths, dict) else {}))


def _has_content(body: JSONValue) -> bool:
    if body is None:
        return False
    if isinstance(body, (dict, list, str)):
        return len(body) > 0
    return True


def _inject_path_params(data: MutableJSONObject, path_params: dict[str, str]) -> None:
    for name, value in path_params.items():
        if name == "id" or name.endswith("Id"):
            data["id"] = value
