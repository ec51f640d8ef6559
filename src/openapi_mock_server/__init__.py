"""OpenAPI mock server package."""

from __future__ import annotations

from .cli import main
from .config import MockServerConfig, build_config
from .loader import load_openapi_document
from .routes import RouteAssembler
from .server import MockServer, create_server

__all__ = [
    "MockServer",
    "MockServerConfig",
    "RouteAssembler",
    "build_config",
    "create_server",
    "load_openapi_document",
    "main",
]
