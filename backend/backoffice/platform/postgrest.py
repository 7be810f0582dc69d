"""PostgREST (Supabase-style) platform client over httpx.

Tables live under ``/rest/v1/<table>`` and stored procedures under
``/rest/v1/rpc/<function>``.  Errors come back as JSON bodies shaped like
``{"message", "code", "details", "hint"}``.
"""

from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Any

import httpx

from backoffice.platform._base import PlatformAdapter, PlatformError

_log = logging.getLogger(__name__)


def _filter_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return "null"
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return str(value)


def _eq_params(filters: dict[str, Any] | None) -> dict[str, str]:
    params: dict[str, str] = {}
    for column, value in (filters or {}).items():
        op = "is" if value is None else "eq"
        params[column] = f"{op}.{_filter_value(value)}"
    return params


def _error_from_response(resp: httpx.Response, what: str) -> PlatformError:
    code = details = None
    message = f"{what} failed with HTTP {resp.status_code}"
    try:
        payload = resp.json()
    except ValueError:
        payload = None
    if isinstance(payload, dict):
        message = str(payload.get("message") or message)
        code = payload.get("code")
        details = payload.get("details")
    return PlatformError(message, status_code=resp.status_code, code=code, details=details)


class PostgrestClient:
    def __init__(
        self,
        *,
        url: str,
        api_key: str,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base = url.rstrip("/") + "/rest/v1"
        self._client = httpx.AsyncClient(
            base_url=self._base,
            headers={
                "apikey": api_key,
                "Authorization": f"Bearer {api_key}",
                "Content-Type": "application/json",
            },
            timeout=timeout,
            transport=transport,
        )

    async def _send(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, str] | None = None,
        json: Any = None,
        headers: dict[str, str] | None = None,
    ) -> Any:
        what = f"{method} {path}"
        try:
            resp = await self._client.request(method, path, params=params, json=json, headers=headers)
        except httpx.HTTPError as exc:
            _log.error("Platform transport error on %s: %s", what, exc)
            raise PlatformError(f"{what} failed: {exc}") from exc
        if resp.is_error:
            raise _error_from_response(resp, what)
        if not resp.content:
            return None
        return resp.json()

    async def rpc(self, function: str, params: dict[str, Any] | None = None) -> Any:
        return await self._send("POST", f"/rpc/{function}", json=params or {})

    async def select(
        self,
        table: str,
        *,
        columns: str = "*",
        filters: dict[str, Any] | None = None,
        order: str | None = None,
        ascending: bool = True,
    ) -> list[dict[str, Any]]:
        params = {"select": columns, **_eq_params(filters)}
        if order:
            params["order"] = f"{order}.{'asc' if ascending else 'desc'}"
        data = await self._send("GET", f"/{table}", params=params)
        return list(data or [])

    async def insert(
        self, table: str, rows: dict[str, Any] | list[dict[str, Any]],
    ) -> list[dict[str, Any]]:
        data = await self._send(
            "POST", f"/{table}", json=rows, headers={"Prefer": "return=representation"},
        )
        if isinstance(data, dict):
            return [data]
        return list(data or [])

    async def update(
        self, table: str, values: dict[str, Any], *, filters: dict[str, Any],
    ) -> list[dict[str, Any]]:
        data = await self._send(
            "PATCH", f"/{table}", params=_eq_params(filters), json=values,
            headers={"Prefer": "return=representation"},
        )
        return list(data or [])

    async def delete(self, table: str, *, filters: dict[str, Any]) -> None:
        await self._send("DELETE", f"/{table}", params=_eq_params(filters))

    async def aclose(self) -> None:
        await self._client.aclose()


def build_client(*, url: str, api_key: str, timeout: float | None = None) -> PostgrestClient:
    return PostgrestClient(url=url, api_key=api_key, timeout=timeout)


ADAPTER = PlatformAdapter(
    platform_id="postgrest",
    label="PostgREST / Supabase",
    factory=build_client,
)
