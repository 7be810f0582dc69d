"""PostgREST client tests over httpx.MockTransport, plus the platform registry."""

from __future__ import annotations

import asyncio
import json
from typing import Any, Callable

import httpx
import pytest

from backoffice.platform import PlatformError, resolve_platform
from backoffice.platform.postgrest import PostgrestClient


def _client(handler: Callable[[httpx.Request], httpx.Response]) -> PostgrestClient:
    return PostgrestClient(
        url="https://example.supabase.co/",
        api_key="anon-key",
        transport=httpx.MockTransport(handler),
    )


def _run(client: PostgrestClient, call: Callable[[PostgrestClient], Any]) -> Any:
    async def go() -> Any:
        try:
            return await call(client)
        finally:
            await client.aclose()

    return asyncio.run(go())


class Recorder:
    def __init__(self, response: httpx.Response) -> None:
        self.response = response
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.response


# ── Requests ─────────────────────────────────────────────────────────────────

class TestRequests:
    def test_rpc_posts_json_with_auth_headers(self) -> None:
        rec = Recorder(httpx.Response(200, json=[{"success": True}]))
        result = _run(_client(rec), lambda c: c.rpc("process_bank_slip_payment", {"p_bank_slip_id": "s1"}))

        assert result == [{"success": True}]
        (req,) = rec.requests
        assert req.method == "POST"
        assert req.url.path == "/rest/v1/rpc/process_bank_slip_payment"
        assert json.loads(req.content) == {"p_bank_slip_id": "s1"}
        assert req.headers["apikey"] == "anon-key"
        assert req.headers["authorization"] == "Bearer anon-key"

    def test_rpc_without_params_sends_empty_object(self) -> None:
        rec = Recorder(httpx.Response(200, json=[]))
        _run(_client(rec), lambda c: c.rpc("get_financial_dashboard"))
        assert json.loads(rec.requests[0].content) == {}

    def test_scalar_rpc_result(self) -> None:
        rec = Recorder(httpx.Response(200, json="batch-123"))
        assert _run(_client(rec), lambda c: c.rpc("generate_bank_slips_batch", {})) == "batch-123"

    def test_void_rpc_result(self) -> None:
        rec = Recorder(httpx.Response(204))
        assert _run(_client(rec), lambda c: c.rpc("send_bank_slips_batch", {})) is None

    def test_select_filters_and_order(self) -> None:
        rec = Recorder(httpx.Response(200, json=[{"id": "a"}]))
        rows = _run(
            _client(rec),
            lambda c: c.select(
                "bank_slips",
                filters={"status": "paid", "batch_id": None, "email_sent": True},
                order="due_date",
                ascending=False,
            ),
        )
        assert rows == [{"id": "a"}]
        params = rec.requests[0].url.params
        assert rec.requests[0].url.path == "/rest/v1/bank_slips"
        assert params["select"] == "*"
        assert params["status"] == "eq.paid"
        assert params["batch_id"] == "is.null"
        assert params["email_sent"] == "eq.true"
        assert params["order"] == "due_date.desc"

    def test_insert_asks_for_representation(self) -> None:
        rec = Recorder(httpx.Response(201, json=[{"id": "new", "name": "Bolsa"}]))
        rows = _run(_client(rec), lambda c: c.insert("scholarships", {"name": "Bolsa"}))
        assert rows == [{"id": "new", "name": "Bolsa"}]
        assert rec.requests[0].headers["prefer"] == "return=representation"

    def test_update_and_delete_filter_by_column(self) -> None:
        rec = Recorder(httpx.Response(200, json=[]))
        _run(_client(rec), lambda c: c.update("financial_transactions", {"status": "paid"}, filters={"id": "t1"}))
        _run(_client(rec), lambda c: c.delete("financial_transactions", filters={"id": "t1"}))
        update, delete = rec.requests
        assert update.method == "PATCH"
        assert update.url.params["id"] == "eq.t1"
        assert delete.method == "DELETE"
        assert delete.url.params["id"] == "eq.t1"


# ── Errors ───────────────────────────────────────────────────────────────────

class TestErrors:
    def test_backend_error_body_is_mapped(self) -> None:
        body = {"message": "function does not exist", "code": "42883", "details": None, "hint": None}
        rec = Recorder(httpx.Response(404, json=body))
        with pytest.raises(PlatformError) as excinfo:
            _run(_client(rec), lambda c: c.rpc("nope", {}))
        assert excinfo.value.message == "function does not exist"
        assert excinfo.value.code == "42883"
        assert excinfo.value.status_code == 404

    def test_non_json_error(self) -> None:
        rec = Recorder(httpx.Response(502, text="Bad Gateway"))
        with pytest.raises(PlatformError) as excinfo:
            _run(_client(rec), lambda c: c.select("profiles"))
        assert "HTTP 502" in excinfo.value.message

    def test_transport_error(self) -> None:
        def boom(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(PlatformError) as excinfo:
            _run(_client(boom), lambda c: c.rpc("anything", {}))
        assert excinfo.value.status_code is None


# ── Registry ─────────────────────────────────────────────────────────────────

class TestRegistry:
    def test_resolve_postgrest(self) -> None:
        adapter = resolve_platform("postgrest")
        assert adapter.platform_id == "postgrest"
        assert adapter.label == "PostgREST / Supabase"

    def test_resolve_ignores_case_and_spaces(self) -> None:
        assert resolve_platform(" PostgREST ").platform_id == "postgrest"

    def test_unknown_platform(self) -> None:
        with pytest.raises(ValueError, match="expected one of"):
            resolve_platform("firebase")

    def test_adapter_builds_client(self) -> None:
        client = resolve_platform("postgrest").build(url="https://x.test", api_key="k", timeout=5.0)
        assert isinstance(client, PostgrestClient)
        asyncio.run(client.aclose())
