"""Tests for the command line entry point."""

from __future__ import annotations

import logging
import subprocess
import sys
from typing import Any

import pytest

from openapi_mock_server import cli
from openapi_mock_server.model_types import RouteInfo
from .fixture_helpers import fixture_dir


def test_cli_help_screen() -> None:
    """Running the CLI help should succeed and print usage information."""
    result = subprocess.run(
        [sys.executable, "-m", "openapi_mock_server", "--help"],
        check=False,
        capture_output=True,
        text=True,
    )
    assert result.returncode == 0
    assert "usage:" in result.stdout.lower()
    assert "--stateful" in result.stdout


def test_main_builds_server_and_runs_uvicorn(monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]) -> None:
    """The CLI should hand the assembled app to uvicorn with the configured address."""
    captured: dict[str, Any] = {}

    def _fake_run(app: Any, **kwargs: Any) -> None:
        captured["app"] = app
        captured.update(kwargs)

    monkeypatch.setattr(cli.uvicorn, "run", _fake_run)

    exit_code = cli.main(
        [
            str(fixture_dir() / "users_api.yaml"),
            "--port",
            "4010",
            "--stateful",
            "--deterministic",
            "--seed",
            "9",
        ]
    )

    assert exit_code == 0
    assert captured["port"] == 4010
    assert captured["host"] == "127.0.0.1"
    assert captured["log_level"] == "info"
    output = capsys.readouterr().out
    assert "Endpoints: 10" in output
    assert "GET    /users/{id}  (getUser)" in output
    assert "Deterministic mode: seed 9" in output


@pytest.mark.parametrize(
    "argv",
    [
        ["missing.yaml"],
        ["users_api.yaml", "--delay", "fast"],
        ["users_api.yaml", "--port", "80"],
    ],
)
def test_invalid_input_exits_with_usage_error(argv: list[str], monkeypatch: pytest.MonkeyPatch) -> None:
    """Load and configuration errors should be reported through argparse."""
    monkeypatch.chdir(fixture_dir())
    monkeypatch.setattr(cli.uvicorn, "run", lambda *args, **kwargs: pytest.fail("server should not start"))

    with pytest.raises(SystemExit) as excinfo:
        cli.main(argv)

    assert excinfo.value.code == 2


def test_format_routes_lists_operation_ids() -> None:
    """Route tables should include operation ids when declared."""
    table = cli.format_routes([RouteInfo("GET", "/a", "listA"), RouteInfo("DELETE", "/a/{id}")])

    assert table.splitlines() == ["Endpoints: 2", "  GET    /a  (listA)", "  DELETE /a/{id}"]


def test_configure_logging_sets_package_level() -> None:
    """The package logger should follow the requested level."""
    cli.configure_logging("debug")

    package_logger = logging.getLogger("openapi_mock_server")
    assert package_logger.level == logging.DEBUG
    assert len(package_logger.handlers) == 1
