"""
Global mutable state shared across the application.

All modules access these via ``import app.state as state`` and then
``state._bulk_results``, ``state._in_flight``, etc. so that rebinding in
tests is visible everywhere.

The platform client is NOT stored here: it is built in the lifespan and
attached to ``app.state.platform`` (see ``app.deps``).
"""

from __future__ import annotations

import os
from typing import Any

# Last successful bulk results per template ("students" / "scholarships").
# Replaced wholesale on success; left untouched when a submission fails.
_bulk_results: dict[str, list[Any]] = {}

# Operations currently awaiting the platform (best-effort double-submit guard).
_in_flight: set[str] = set()


def _env_float(name: str) -> float | None:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return None
    return float(raw)


# Platform connection. Unset URL/key is allowed at import so tests can inject
# a fake; the lifespan refuses to build a real client without them.
PLATFORM_ID = os.environ.get("BACKOFFICE_PLATFORM", "postgrest")
PLATFORM_URL = os.environ.get("BACKOFFICE_PLATFORM_URL", "")
PLATFORM_KEY = os.environ.get("BACKOFFICE_PLATFORM_KEY", "")
# No timeout unless configured: in-flight calls run to completion or failure.
PLATFORM_TIMEOUT = _env_float("BACKOFFICE_PLATFORM_TIMEOUT")

_cors_raw = os.environ.get("BACKOFFICE_CORS_ORIGINS", "")
CORS_ORIGINS = [o.strip() for o in _cors_raw.split(",") if o.strip()] or [
    "http://localhost:8080",
    "http://127.0.0.1:8080",
    "http://localhost:5173",
    "http://127.0.0.1:5173",
]
