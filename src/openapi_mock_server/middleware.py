"""HTTP middleware simulating auth, latency and failures around mock routes."""

from __future__ import annotations

import asyncio
import logging
import random
import time
from collections.abc import Awaitable, Callable
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.responses import Response

from .config import MockServerConfig

logger = logging.getLogger(__name__)

type CallNext = Callable[[Request], Awaitable[Response]]

ERROR_RESPONSES: tuple[tuple[int, str, str], ...] = (
    (500, "Internal Server Error", "Unexpected server error"),
    (502, "Bad Gateway", "Upstream server error"),
    (503, "Service Unavailable", "Server is overloaded"),
    (504, "Gateway Timeout", "Request timeout"),
    (429, "Too Many Requests", "Rate limit exceeded"),
)


def install_middleware(app: FastAPI, config: MockServerConfig, *, rng: Optional[random.Random] = None) -> None:
    """Attach the configured middleware to an application.

    Starlette runs the most recently added middleware first, so the stack is
    added innermost-first: request logging, error rate, delay, auth, CORS.
    """
    source = rng or random.Random()

    app.middleware("http")(_log_requests)
    if config.error_rate > 0:
        app.middleware("http")(_error_rate(config.error_rate, source))
    if config.delay is not None:
        app.middleware("http")(_random_delay(config.delay[0], config.delay[1], source))
    if config.require_auth:
        app.middleware("http")(_require_bearer_token)
    if config.cors:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=["*"],
            allow_methods=["*"],
            allow_headers=["*"],
        )


async def _require_bearer_token(request: Request, call_next: CallNext) -> Response:
    # Only presence is checked; any bearer token is accepted.
    header = request.headers.get("authorization", "")
    if not header.startswith("Bearer "):
        return JSONResponse(
            status_code=401,
            content={"error": "Unauthorized", "message": "Missing or invalid Bearer token"},
        )
    return await call_next(request)


def _random_delay(min_ms: int, max_ms: int, rng: random.Random) -> Callable[[Request, CallNext], Awaitable[Response]]:
    async def _delay(request: Request, call_next: CallNext) -> Response:
        await asyncio.sleep(rng.randint(min_ms, max_ms) / 1000)
        return await call_next(request)

    return _delay


def _error_rate(percent: float, rng: random.Random) -> Callable[[Request, CallNext], Awaitable[Response]]:
    async def _inject(request: Request, call_next: CallNext) -> Response:
        if rng.random() * 100 < percent:
            status, error, message = rng.choice(ERROR_RESPONSES)
            return JSONResponse(status_code=status, content={"error": error, "message": message})
        return await call_next(request)

    return _inject


async def _log_requests(request: Request, call_next: CallNext) -> Response:
    started = time.perf_counter()
    response = await call_next(request)
    duration_ms = (time.perf_counter() - started) * 1000
    url = request.url.path + (f"?{request.url.query}" if request.url.query else "")
    logger.info("%s %s %d %.0fms", request.method, url, response.status_code, duration_ms)
    return response
