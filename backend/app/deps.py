"""FastAPI dependencies and the per-operation in-flight guard."""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

from fastapi import HTTPException, Request

import app.state as state
from backoffice.errors import OperationInFlight
from backoffice.platform import PlatformClient


def get_platform(request: Request) -> PlatformClient:
    platform = getattr(request.app.state, "platform", None)
    if platform is None:
        raise HTTPException(
            status_code=503,
            detail="Platform is not configured. Set BACKOFFICE_PLATFORM_URL and BACKOFFICE_PLATFORM_KEY.",
        )
    return platform


@contextmanager
def exclusive(operation: str) -> Iterator[None]:
    """Refuse to start *operation* while the same one is still awaiting the platform."""
    if operation in state._in_flight:
        raise OperationInFlight(f"'{operation}' is already in progress")
    state._in_flight.add(operation)
    try:
        yield
    finally:
        state._in_flight.discard(operation)
