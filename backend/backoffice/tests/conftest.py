"""Shared pytest fixtures for service and API tests.

Provides:
- FakePlatform: in-memory platform honouring the table and RPC contracts
- platform: fresh FakePlatform per test
- test_client: session-scoped FastAPI TestClient with lifespan handling
- api: TestClient wired to the per-test FakePlatform
- make_slip / STUDENT_*: canned identifiers and bank slip rows
"""

from __future__ import annotations

import uuid
from datetime import date, datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Callable

import pytest
from starlette.testclient import TestClient

import app.state as state
from app.deps import get_platform
from app.main import app
from backoffice.platform import PlatformError


STUDENT_A = "0b6a1c52-8f3e-4c1d-9a2b-3c4d5e6f7a8b"
STUDENT_B = "1c7b2d63-9a4f-4d2e-8b3c-4d5e6f7a8b9c"
STUDENT_C = "2d8c3e74-0b5a-4e3f-9c4d-5e6f7a8b9c0d"


def _cents(value: Decimal) -> float:
    return float(value.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


class FakePlatform:
    """In-memory stand-in for the hosted platform.

    ``calls`` records every RPC as ``(function, params)``; ``fail`` makes the
    named functions raise ``PlatformError``; ``rpc_results`` supplies canned
    answers for functions without a built-in handler.
    """

    def __init__(self) -> None:
        self.tables: dict[str, list[dict[str, Any]]] = {}
        self.calls: list[tuple[str, dict[str, Any] | None]] = []
        self.fail: set[str] = set()
        self.rpc_results: dict[str, Any] = {}
        self.unknown_students: set[str] = set()
        self.today: date = date.today()
        self.closed = False
        self._handlers: dict[str, Callable[[dict[str, Any]], Any]] = {
            "bulk_register_student_financial_data": self._bulk_students,
            "bulk_register_scholarship_students": self._bulk_scholarships,
            "generate_bank_slips_batch": self._generate_batch,
            "send_bank_slips_batch": self._send_batch,
            "process_bank_slip_payment": self._pay,
            "calculate_late_fees": self._late_fees,
        }

    # ── RPC ──

    def rpc_calls(self, function: str) -> list[dict[str, Any] | None]:
        return [params for name, params in self.calls if name == function]

    async def rpc(self, function: str, params: dict[str, Any] | None = None) -> Any:
        self.calls.append((function, params))
        if function in self.fail:
            raise PlatformError(f"{function} exploded", status_code=500, code="P0001")
        handler = self._handlers.get(function)
        if handler is not None:
            return handler(params or {})
        return self.rpc_results.get(function, [])

    def _bulk_result(self, row: dict[str, Any], **extra: Any) -> dict[str, Any]:
        if row["student_id"] in self.unknown_students:
            return {**extra, "student_id": row["student_id"], "status": "error",
                    "error_message": "studentId not found"}
        return {**extra, "student_id": row["student_id"], "status": "success", "error_message": None}

    def _bulk_students(self, params: dict[str, Any]) -> list[dict[str, Any]]:
        return [self._bulk_result(r) for r in params["p_student_data"]]

    def _bulk_scholarships(self, params: dict[str, Any]) -> list[dict[str, Any]]:
        return [
            self._bulk_result(r, scholarship_id=r.get("scholarship_id"))
            for r in params["p_scholarship_data"]
        ]

    def _generate_batch(self, params: dict[str, Any]) -> str:
        batch_id = str(uuid.uuid4())
        for student_id in params["p_student_ids"]:
            self.add("bank_slips", make_slip(
                student_id=student_id,
                amount=params["p_amount"],
                final_amount=params["p_amount"],
                due_date=params["p_due_date"],
                batch_id=batch_id,
                notes=params["p_description"] or None,
            ))
        return batch_id

    def _send_batch(self, params: dict[str, Any]) -> None:
        for slip in self.tables.get("bank_slips", []):
            if slip.get("batch_id") == params["p_batch_id"]:
                slip["email_sent"] = True
        return None

    def _pay(self, params: dict[str, Any]) -> list[dict[str, Any]]:
        slip = next(
            (s for s in self.tables.get("bank_slips", []) if s["id"] == params["p_bank_slip_id"]),
            None,
        )
        if slip is None:
            return [{"success": False, "message": "Bank slip not found", "transaction_id": None}]
        if slip["status"] in {"paid", "canceled"}:
            return [{"success": False, "message": f"Bank slip is {slip['status']}", "transaction_id": None}]
        slip["status"] = "paid"
        slip["payment_date"] = params["p_payment_date"]
        return [{"success": True, "message": "Payment processed", "transaction_id": str(uuid.uuid4())}]

    def _late_fees(self, params: dict[str, Any]) -> list[dict[str, Any]]:
        amount = Decimal(str(params["p_original_amount"]))
        due = date.fromisoformat(params["p_due_date"])
        days = max((self.today - due).days, 0)
        if days == 0:
            late_fee = interest = Decimal("0")
        else:
            late_fee = amount * Decimal(str(params["p_late_fee_rate"]))
            interest = amount * Decimal(str(params["p_interest_rate"])) * days / 30
        return [{
            "late_fee": _cents(late_fee),
            "interest": _cents(interest),
            "total_amount": _cents(amount + late_fee + interest),
        }]

    # ── Tables ──

    def add(self, table: str, row: dict[str, Any]) -> dict[str, Any]:
        row = dict(row)
        row.setdefault("id", str(uuid.uuid4()))
        row.setdefault("created_at", datetime.now(timezone.utc).isoformat())
        self.tables.setdefault(table, []).append(row)
        return row

    def _matching(self, table: str, filters: dict[str, Any] | None) -> list[dict[str, Any]]:
        rows = self.tables.get(table, [])
        return [r for r in rows if all(r.get(k) == v for k, v in (filters or {}).items())]

    def _check(self, operation: str) -> None:
        if operation in self.fail:
            raise PlatformError(f"{operation} exploded", status_code=500)

    async def select(
        self,
        table: str,
        *,
        columns: str = "*",
        filters: dict[str, Any] | None = None,
        order: str | None = None,
        ascending: bool = True,
    ) -> list[dict[str, Any]]:
        self._check(f"select {table}")
        rows = [dict(r) for r in self._matching(table, filters)]
        if order:
            rows.sort(key=lambda r: str(r.get(order) or ""), reverse=not ascending)
        return rows

    async def insert(
        self, table: str, rows: dict[str, Any] | list[dict[str, Any]],
    ) -> list[dict[str, Any]]:
        self._check(f"insert {table}")
        batch = [rows] if isinstance(rows, dict) else rows
        return [dict(self.add(table, r)) for r in batch]

    async def update(
        self, table: str, values: dict[str, Any], *, filters: dict[str, Any],
    ) -> list[dict[str, Any]]:
        self._check(f"update {table}")
        matched = self._matching(table, filters)
        for row in matched:
            row.update(values)
        return [dict(r) for r in matched]

    async def delete(self, table: str, *, filters: dict[str, Any]) -> None:
        self._check(f"delete {table}")
        doomed = self._matching(table, filters)
        self.tables[table] = [r for r in self.tables.get(table, []) if r not in doomed]

    async def aclose(self) -> None:
        self.closed = True


def make_slip(**overrides: Any) -> dict[str, Any]:
    """A pending 100.00 slip row as the platform stores it."""
    row: dict[str, Any] = {
        "id": str(uuid.uuid4()),
        "student_id": STUDENT_A,
        "amount": 100.0,
        "due_date": "2024-03-10",
        "barcode": None,
        "status": "pending",
        "batch_id": None,
        "email_sent": False,
        "email_sent_at": None,
        "payment_method": None,
        "pix_key": None,
        "qr_code_url": None,
        "late_fee": None,
        "interest_rate": None,
        "discount_amount": None,
        "final_amount": 100.0,
        "bank_integration_id": None,
        "external_id": None,
        "notes": None,
        "payment_date": None,
        "updated_at": None,
    }
    row.update(overrides)
    return row


# ── Fixtures ───────────────────────────────────────────────────────────────

@pytest.fixture()
def platform() -> FakePlatform:
    return FakePlatform()


@pytest.fixture(scope="session")
def test_client():
    """Session-scoped TestClient; triggers app lifespan."""
    with TestClient(app) as client:
        yield client


@pytest.fixture()
def api(test_client: TestClient, platform: FakePlatform):
    """TestClient whose platform dependency resolves to this test's fake."""
    app.dependency_overrides[get_platform] = lambda: platform
    state._bulk_results.clear()
    state._in_flight.clear()
    yield test_client
    app.dependency_overrides.pop(get_platform, None)
    state._bulk_results.clear()
    state._in_flight.clear()
