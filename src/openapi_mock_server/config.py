"""Mock server configuration."""

from __future__ import annotations

import re
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

DEFAULT_SEED = 12345
MAX_DELAY_MS = 10_000

_DELAY_RANGE_RE = re.compile(r"^\s*(?P<min>\d+)\s*-\s*(?P<max>\d+)\s*$")


class ConfigError(RuntimeError):
    """Raised when configuration values are invalid."""


class MockServerConfig(BaseModel):
    """Options controlling how the mock server answers requests."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    host: str = "127.0.0.1"
    port: int = Field(default=3001, ge=1024, le=65535)
    cors: bool = True
    stateful: bool = False
    deterministic: bool = False
    seed: Optional[int] = None
    delay: Optional[tuple[int, int]] = None
    error_rate: float = Field(default=0, ge=0, le=100)
    require_auth: bool = False
    log_level: str = "info"

    @field_validator("delay", mode="before")
    @classmethod
    def _parse_delay(cls, value: Any) -> Any:
        if isinstance(value, str):
            return parse_delay_range(value)
        return value

    @field_validator("delay")
    @classmethod
    def _check_delay(cls, value: Optional[tuple[int, int]]) -> Optional[tuple[int, int]]:
        if value is None:
            return None
        minimum, maximum = value
        if minimum < 0:
            raise ValueError("Delay cannot be negative")
        if minimum > maximum:
            raise ValueError("Min delay cannot be greater than max delay")
        if maximum > MAX_DELAY_MS:
            raise ValueError("Max delay cannot exceed 10 seconds")
        return value

    @field_validator("log_level")
    @classmethod
    def _check_log_level(cls, value: str) -> str:
        normalized = value.strip().lower()
        if normalized not in {"critical", "error", "warning", "info", "debug"}:
            raise ValueError(f"Unknown log level: {value}")
        return normalized

    @model_validator(mode="before")
    @classmethod
    def _default_seed(cls, values: Any) -> Any:
        if isinstance(values, dict) and values.get("deterministic") is True and values.get("seed") is None:
            return {**values, "seed": DEFAULT_SEED}
        return values

    @property
    def generation_seed(self) -> Optional[int]:
        """Seed for the value generator; ``None`` outside deterministic mode."""
        return self.seed if self.deterministic else None


def parse_delay_range(value: str) -> tuple[int, int]:
    """Parse a ``MIN-MAX`` millisecond range such as ``200-500``."""
    match = _DELAY_RANGE_RE.match(value)
    if match is None:
        raise ValueError("Delay must be in format: min-max (e.g., 200-500)")
    return int(match.group("min")), int(match.group("max"))


def build_config(**values: Any) -> MockServerConfig:
    """Validate configuration values.

    Raises:
        ConfigError: A value is missing, malformed or out of range.
    """
    try:
        return MockServerConfig.model_validate(values)
    except ValidationError as exc:
        messages = "; ".join(
            f"{'.'.join(str(part) for part in error['loc']) or 'config'}: {error['msg']}" for error in exc.errors()
        )
        raise ConfigError(f"Invalid configuration: {messages}") from exc
