"""Allow ``python -m openapi_mock_server``."""

from __future__ import annotations

from .cli import main

raise SystemExit(main())
