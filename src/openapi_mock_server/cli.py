"""Command line interface for the OpenAPI mock server."""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Any, Optional

import uvicorn

from .config import ConfigError, MockServerConfig, build_config
from .loader import OpenAPILoadError, load_openapi_document
from .model_types import RouteInfo
from .server import HEALTH_PATH, create_server

_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def build_parser() -> argparse.ArgumentParser:
    """Build the CLI parser."""
    parser = argparse.ArgumentParser(
        prog="openapi-mock-server",
        description="Serve a mock API generated from an OpenAPI or Swagger 2.0 document",
    )
    parser.add_argument("spec", help="Path to an OpenAPI JSON or YAML file")
    parser.add_argument("--host", default="127.0.0.1", help="Interface to bind")
    parser.add_argument("-p", "--port", type=int, default=3001, help="Port number")
    parser.add_argument("--stateful", action="store_true", help="Persist writes in memory")
    parser.add_argument("--deterministic", action="store_true", help="Use reproducible data generation")
    parser.add_argument("--seed", type=int, default=None, help="Seed for deterministic mode")
    parser.add_argument("--delay", default=None, help="Simulated latency range in ms, e.g. 200-500")
    parser.add_argument("--error-rate", type=float, default=0, help="Percentage of requests that fail (0-100)")
    parser.add_argument("--require-auth", action="store_true", help="Require a Bearer token on every request")
    parser.add_argument("--no-cors", action="store_true", help="Disable permissive CORS headers")
    parser.add_argument(
        "--log-level",
        default="info",
        choices=("critical", "error", "warning", "info", "debug"),
        help="Logging verbosity",
    )
    return parser


def configure_logging(level: str) -> None:
    """Send package logs to stderr at the given level."""
    package_logger = logging.getLogger("openapi_mock_server")
    package_logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    package_logger.handlers.clear()
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(_LOG_FORMAT))
    package_logger.addHandler(handler)


def config_from_args(args: argparse.Namespace) -> MockServerConfig:
    """Translate parsed arguments into a validated configuration."""
    values: dict[str, Any] = {
        "host": args.host,
        "port": args.port,
        "cors": not args.no_cors,
        "stateful": bool(args.stateful),
        "deterministic": bool(args.deterministic),
        "seed": args.seed,
        "delay": args.delay,
        "error_rate": args.error_rate,
        "require_auth": bool(args.require_auth),
        "log_level": args.log_level,
    }
    return build_config(**values)


def format_routes(routes: list[RouteInfo]) -> str:
    """Render the route table shown at startup."""
    lines = [f"Endpoints: {len(routes)}"]
    for route in routes:
        suffix = f"  ({route.operation_id})" if route.operation_id else ""
        lines.append(f"  {route.method:<7}{route.path}{suffix}")
    return "\n".join(lines)


def main(argv: Optional[list[str]] = None) -> int:
    """Run CLI and return process exit code."""
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = config_from_args(args)
        document = load_openapi_document(Path(args.spec))
    except (ConfigError, OpenAPILoadError) as exc:
        parser.error(str(exc))
        return 2

    configure_logging(config.log_level)
    server = create_server(document, config)

    base_url = f"http://{config.host}:{config.port}"
    print(format_routes(server.routes))
    print(f"Mock server listening on {base_url} (health: {base_url}{HEALTH_PATH})")
    if config.stateful:
        print("Stateful mode: writes persist in memory")
    if config.deterministic:
        print(f"Deterministic mode: seed {config.seed}")

    uvicorn.run(server.app, host=config.host, port=config.port, log_level=config.log_level)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
