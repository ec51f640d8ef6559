"""Internal datatypes for route assembly and request handling."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

from .json_types import JSONObject, JSONValue

COUNT_EXTENSION = "x-mock-count"
DELAY_EXTENSION = "x-mock-delay"
DETERMINISTIC_EXTENSION = "x-mock-deterministic"


@dataclass(frozen=True)
class EndpointOverrides:
    """Per-operation generation overrides read from vendor extensions."""

    count: Optional[int] = None
    delay_ms: Optional[int] = None
    stable_seed: bool = False

    @classmethod
    def from_operation(cls, operation: JSONObject) -> EndpointOverrides:
        """Read overrides from an operation object."""
        count = operation.get(COUNT_EXTENSION)
        delay = operation.get(DELAY_EXTENSION)
        return cls(
            count=count if isinstance(count, int) and not isinstance(count, bool) and count >= 0 else None,
            delay_ms=delay if isinstance(delay, int) and not isinstance(delay, bool) and delay > 0 else None,
            stable_seed=operation.get(DETERMINISTIC_EXTENSION) is True,
        )


@dataclass(frozen=True)
class OperationSpec:
    """One HTTP method bound to one path template."""

    path: str
    method: str
    operation: dict[str, Any]
    path_item: dict[str, Any]
    operation_id: Optional[str] = None
    overrides: EndpointOverrides = field(default_factory=EndpointOverrides)

    @property
    def responses(self) -> dict[str, Any]:
        """Declared responses keyed by status code."""
        responses = self.operation.get("responses")
        if not isinstance(responses, dict):
            return {}
        return {str(code): response for code, response in responses.items()}


@dataclass(frozen=True)
class RouteInfo:
    """A registered route, for display and diagnostics."""

    method: str
    path: str
    operation_id: Optional[str] = None


@dataclass(frozen=True)
class MockRequest:
    """Transport-independent view of an inbound request."""

    method: str
    path_params: dict[str, str] = field(default_factory=dict)
    query: dict[str, str] = field(default_factory=dict)
    headers: dict[str, str] = field(default_factory=dict)
    body: JSONValue = None


@dataclass(frozen=True)
class MockResponse:
    """Status and JSON payload produced by a handler; ``body`` is unused for 204."""

    status: int
    body: JSONValue = None

    @property
    def has_body(self) -> bool:
        """Whether a JSON payload should be sent."""
        return self.status != 204
