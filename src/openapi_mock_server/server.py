"""FastAPI application exposing mock routes for an OpenAPI document."""

from __future__ import annotations

import json
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from http import HTTPStatus
from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.responses import Response

from .config import MockServerConfig
from .middleware import install_middleware
from .model_types import MockRequest, RouteInfo
from .naming import transport_path
from .routes import OperationHandler, RouteAssembler
from .state import StateStore

logger = logging.getLogger(__name__)

HEALTH_PATH = "/_mock/health"


@dataclass(frozen=True)
class MockServer:
    """A mock application together with the objects it owns."""

    app: FastAPI
    assembler: RouteAssembler
    config: MockServerConfig

    @property
    def routes(self) -> list[RouteInfo]:
        """Every mock route, in registration order."""
        return self.assembler.routes

    @property
    def endpoint_count(self) -> int:
        """Number of (method, path) pairs served."""
        return self.assembler.endpoint_count

    @property
    def store(self) -> StateStore:
        """State store backing stateful mode."""
        return self.assembler.store


def create_server(document: dict[str, Any], config: Optional[MockServerConfig] = None) -> MockServer:
    """Build the FastAPI application serving a document's operations.

    Args:
        document (dict[str, Any]): Loaded OpenAPI 3.x document.
        config (Optional[MockServerConfig]): Server options; defaults apply when omitted.

    Returns:
        MockServer: Application, route assembler and configuration.
    """
    config = config or MockServerConfig()
    assembler = RouteAssembler(document, stateful=config.stateful, seed=config.generation_seed)
    info = document.get("info") if isinstance(document.get("info"), dict) else {}

    app = FastAPI(
        title=str(info.get("title", "Mock API")),
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    install_middleware(app, config)

    async def health() -> dict[str, Any]:
        payload: dict[str, Any] = {
            "status": "ok",
            "spec": info.get("title"),
            "version": info.get("version"),
        }
        if config.stateful:
            payload["collections"] = assembler.store.stats()
        return payload

    app.add_api_route(HEALTH_PATH, health, methods=["GET"], include_in_schema=False)

    for handler in assembler.handlers:
        template, parameter_names = transport_path(handler.operation.path)
        app.add_api_route(
            template,
            _build_endpoint(handler, parameter_names),
            methods=[handler.operation.method.upper()],
            include_in_schema=False,
        )

    app.add_exception_handler(StarletteHTTPException, _http_error)
    app.add_exception_handler(Exception, _unexpected_error)
    return MockServer(app=app, assembler=assembler, config=config)


def _build_endpoint(
    handler: OperationHandler,
    parameter_names: dict[str, str],
) -> Callable[[Request], Awaitable[Response]]:
    async def endpoint(request: Request) -> Response:
        raw_body = await request.body()
        body: Any = None
        if raw_body.strip():
            try:
                body = json.loads(raw_body)
            except ValueError:
                return JSONResponse(
                    status_code=400,
                    content={"error": "Bad Request", "message": "Request body is not valid JSON"},
                )

        result = await handler(
            MockRequest(
                method=request.method.lower(),
                path_params={
                    parameter_names.get(name, name): str(value) for name, value in request.path_params.items()
                },
                query=dict(request.query_params),
                headers=dict(request.headers),
                body=body,
            )
        )
        if not result.has_body:
            return Response(status_code=result.status)
        return JSONResponse(status_code=result.status, content=result.body)

    return endpoint


async def _http_error(request: Request, exc: Exception) -> Response:
    if not isinstance(exc, StarletteHTTPException):
        return await _unexpected_error(request, exc)
    if exc.status_code == 404:
        return JSONResponse(
            status_code=404,
            content={
                "error": "Not Found",
                "message": "The requested endpoint does not exist in the mock spec",
            },
        )
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": HTTPStatus(exc.status_code).phrase, "message": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


async def _unexpected_error(request: Request, exc: Exception) -> Response:
    logger.error("Request error on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(
        status_code=500,
        content={"error": "Internal Server Error", "message": "An error occurred"},
    )
