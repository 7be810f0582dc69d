"""Platform call wrappers that turn ``PlatformError`` into ``RemoteOperationError``.

Every wrapper logs the underlying platform message and re-raises with the
caller's generic *failure* text, which is what the HTTP layer shows.
"""

from __future__ import annotations

import logging
from typing import Any

from backoffice.errors import RemoteOperationError
from backoffice.platform import PlatformClient, PlatformError

_log = logging.getLogger(__name__)


def _fail(operation: str, failure: str, exc: PlatformError) -> RemoteOperationError:
    _log.error("%s (%s): %s", failure, operation, exc.message)
    return RemoteOperationError(failure, operation)


async def rpc(
    platform: PlatformClient, function: str, params: dict[str, Any] | None, *, failure: str,
) -> Any:
    try:
        return await platform.rpc(function, params)
    except PlatformError as exc:
        raise _fail(function, failure, exc) from exc


async def select(
    platform: PlatformClient, table: str, *, failure: str, **kwargs: Any,
) -> list[dict[str, Any]]:
    try:
        return await platform.select(table, **kwargs)
    except PlatformError as exc:
        raise _fail(f"select {table}", failure, exc) from exc


async def insert_one(
    platform: PlatformClient, table: str, row: dict[str, Any], *, failure: str,
) -> dict[str, Any]:
    try:
        rows = await platform.insert(table, row)
    except PlatformError as exc:
        raise _fail(f"insert {table}", failure, exc) from exc
    if not rows:
        _log.error("%s (insert %s): no row returned", failure, table)
        raise RemoteOperationError(failure, f"insert {table}")
    return rows[0]


async def update(
    platform: PlatformClient,
    table: str,
    values: dict[str, Any],
    *,
    filters: dict[str, Any],
    failure: str,
) -> list[dict[str, Any]]:
    try:
        return await platform.update(table, values, filters=filters)
    except PlatformError as exc:
        raise _fail(f"update {table}", failure, exc) from exc


async def delete(
    platform: PlatformClient, table: str, *, filters: dict[str, Any], failure: str,
) -> None:
    try:
        await platform.delete(table, filters=filters)
    except PlatformError as exc:
        raise _fail(f"delete {table}", failure, exc) from exc


def first_row(data: Any, *, operation: str, failure: str) -> dict[str, Any]:
    """First row of a table-returning RPC result."""
    if isinstance(data, dict):
        return data
    if isinstance(data, list) and data and isinstance(data[0], dict):
        return data[0]
    _log.error("%s (%s): unexpected result %r", failure, operation, data)
    raise RemoteOperationError(failure, operation)


async def insert_many(
    platform: PlatformClient, table: str, rows: list[dict[str, Any]], *, failure: str,
) -> list[dict[str, Any]]:
    try:
        return await platform.insert(table, rows)
    except PlatformError as exc:
        raise _fail(f"insert {table}", failure, exc) from exc
