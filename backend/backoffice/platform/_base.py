"""Platform contract: the request/response surface every service depends on."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Protocol


class PlatformError(RuntimeError):
    """A platform call failed (transport error or backend exception)."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        code: str | None = None,
        details: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.code = code
        self.details = details


class PlatformClient(Protocol):
    """Hosted database/RPC platform as seen by the services.

    ``filters`` are column equality filters; ``order`` is a column name.
    """

    async def rpc(self, function: str, params: dict[str, Any] | None = None) -> Any: ...

    async def select(
        self,
        table: str,
        *,
        columns: str = "*",
        filters: dict[str, Any] | None = None,
        order: str | None = None,
        ascending: bool = True,
    ) -> list[dict[str, Any]]: ...

    async def insert(
        self, table: str, rows: dict[str, Any] | list[dict[str, Any]],
    ) -> list[dict[str, Any]]: ...

    async def update(
        self, table: str, values: dict[str, Any], *, filters: dict[str, Any],
    ) -> list[dict[str, Any]]: ...

    async def delete(self, table: str, *, filters: dict[str, Any]) -> None: ...

    async def aclose(self) -> None: ...


@dataclass(frozen=True)
class PlatformAdapter:
    """Everything needed to build a client for one platform flavour.

    Each supported platform module exports one instance as ``ADAPTER``.
    """

    platform_id: str                    # e.g. "postgrest"
    label: str                          # e.g. "PostgREST / Supabase"
    factory: Callable[..., PlatformClient]

    def build(self, *, url: str, api_key: str, timeout: float | None = None) -> PlatformClient:
        return self.factory(url=url, api_key=api_key, timeout=timeout)
