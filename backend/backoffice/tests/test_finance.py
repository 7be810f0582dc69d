"""Finance pass-throughs: transactions, scholarships, invoices, declarations,
automatic billing and backups."""

from __future__ import annotations

import asyncio
from datetime import date, datetime, timezone

import pytest

from app.schemas import (
    AutomaticBillingConfigRequest,
    DeclarationRequest,
    NewFinancialTransaction,
    NewInvoice,
    NewProfileScholarship,
    NewScholarship,
    UpdateFinancialTransaction,
)
from app.services import finance
from backoffice.errors import NotFound, RemoteOperationError, ValidationFailure
from backoffice.tests.conftest import STUDENT_A, FakePlatform


def _tx(**overrides) -> NewFinancialTransaction:
    fields = {
        "description": "Mensalidade",
        "amount": 350.0,
        "type": "income",
        "due_date": date(2024, 4, 10),
    }
    fields.update(overrides)
    return NewFinancialTransaction(**fields)


# ── Transactions ─────────────────────────────────────────────────────────────

class TestTransactions:
    def test_create_and_list_newest_due_first(self, platform: FakePlatform) -> None:
        asyncio.run(finance.create_transaction(platform, _tx(due_date=date(2024, 1, 10))))
        created = asyncio.run(finance.create_transaction(platform, _tx(due_date=date(2024, 5, 10))))
        assert created.status == "pending"
        assert platform.tables["financial_transactions"][1]["due_date"] == "2024-05-10"

        listed = asyncio.run(finance.list_transactions(platform))
        assert [t.due_date for t in listed] == [date(2024, 5, 10), date(2024, 1, 10)]

    def test_batch_insert(self, platform: FakePlatform) -> None:
        sent = asyncio.run(finance.create_transactions(platform, [_tx(), _tx(type="expense")]))
        assert sent == 2
        assert len(platform.tables["financial_transactions"]) == 2

    def test_empty_batch(self, platform: FakePlatform) -> None:
        with pytest.raises(ValidationFailure):
            asyncio.run(finance.create_transactions(platform, []))

    def test_update_only_sends_given_fields(self, platform: FakePlatform) -> None:
        row = platform.add("financial_transactions", _tx().model_dump(mode="json"))
        now = datetime(2024, 4, 11, 9, 0, tzinfo=timezone.utc)
        updated = asyncio.run(finance.update_transaction(
            platform, row["id"], UpdateFinancialTransaction(status="paid"), now=now,
        ))
        assert updated.status == "paid"
        assert updated.amount == 350.0
        assert updated.updated_at == now.isoformat()

    def test_update_missing(self, platform: FakePlatform) -> None:
        with pytest.raises(NotFound):
            asyncio.run(finance.update_transaction(platform, "nope", UpdateFinancialTransaction(amount=1)))

    def test_delete(self, platform: FakePlatform) -> None:
        row = platform.add("financial_transactions", _tx().model_dump(mode="json"))
        asyncio.run(finance.delete_transaction(platform, row["id"]))
        assert platform.tables["financial_transactions"] == []

    def test_remote_failure(self, platform: FakePlatform) -> None:
        platform.fail.add("select financial_transactions")
        with pytest.raises(RemoteOperationError) as excinfo:
            asyncio.run(finance.list_transactions(platform))
        assert excinfo.value.message == "Failed to fetch financial transactions."


# ── Scholarships ─────────────────────────────────────────────────────────────

class TestScholarships:
    def test_delete_removes_assignments_first(self, platform: FakePlatform) -> None:
        bolsa = asyncio.run(finance.create_scholarship(
            platform, NewScholarship(name="Bolsa Mérito", discount_percentage=50),
        ))
        other = platform.add("scholarships", {"name": "Outra", "discount_percentage": 10})
        platform.add("profile_scholarships", {"profile_id": STUDENT_A, "scholarship_id": bolsa.id})
        platform.add("profile_scholarships", {"profile_id": STUDENT_A, "scholarship_id": other["id"]})

        asyncio.run(finance.delete_scholarship(platform, bolsa.id))
        assert [s["id"] for s in platform.tables["scholarships"]] == [other["id"]]
        assert [a["scholarship_id"] for a in platform.tables["profile_scholarships"]] == [other["id"]]

    def test_assignment_period_is_checked(self, platform: FakePlatform) -> None:
        with pytest.raises(ValidationFailure):
            asyncio.run(finance.assign_scholarship(platform, NewProfileScholarship(
                profile_id=STUDENT_A, scholarship_id="b1",
                start_date=date(2024, 6, 1), end_date=date(2024, 1, 1),
            )))
        assert "profile_scholarships" not in platform.tables

    def test_assignments_carry_embedded_names(self, platform: FakePlatform) -> None:
        platform.add("profile_scholarships", {
            "profile_id": STUDENT_A,
            "scholarship_id": "b1",
            "start_date": "2024-01-01",
            "profiles": {"name": "Ana"},
            "scholarships": {"name": "Bolsa Mérito"},
        })
        (assignment,) = asyncio.run(finance.list_assignments(platform))
        assert assignment.profile_name == "Ana"
        assert assignment.scholarship_name == "Bolsa Mérito"
        assert assignment.start_date == date(2024, 1, 1)


# ── Invoices & declarations ──────────────────────────────────────────────────

class TestDocuments:
    def test_invoice_total_defaults_to_amount(self, platform: FakePlatform) -> None:
        invoice = asyncio.run(finance.create_invoice(platform, NewInvoice(
            profile_id=STUDENT_A, invoice_number="NF-1", amount=200,
            due_date=date(2024, 4, 30), description="Curso",
        )))
        assert invoice.total_amount == 200.0
        assert invoice.service_description == "Curso"
        assert invoice.issue_date == invoice.created_at

    def test_declarations_filter_by_profile(self, platform: FakePlatform) -> None:
        platform.add("financial_declarations", {"profile_id": STUDENT_A, "authentication_code": "ABC"})
        platform.add("financial_declarations", {"profile_id": "someone-else"})
        (decl,) = asyncio.run(finance.list_declarations(platform, STUDENT_A))
        assert decl.title == "Declaração Financeira"
        assert decl.auth_code == "ABC"

    def test_nothing_owed_declaration(self, platform: FakePlatform) -> None:
        platform.rpc_results["generate_nothing_owed_declaration"] = [
            {"success": True, "message": "ok", "declaration_id": "d1", "auth_code": "XYZ"},
        ]
        out = asyncio.run(finance.generate_nothing_owed_declaration(
            platform, DeclarationRequest(profile_id=STUDENT_A, start_date=date(2024, 1, 1)),
        ))
        assert out.auth_code == "XYZ"
        assert platform.rpc_calls("generate_nothing_owed_declaration") == [{
            "p_profile_id": STUDENT_A,
            "p_reference_period_start": "2024-01-01",
            "p_reference_period_end": None,
        }]

    def test_unexpected_rpc_shape(self, platform: FakePlatform) -> None:
        with pytest.raises(RemoteOperationError):
            asyncio.run(finance.generate_nothing_owed_declaration(
                platform, DeclarationRequest(profile_id=STUDENT_A),
            ))


# ── Billing & backup ─────────────────────────────────────────────────────────

class TestBillingAndBackup:
    def test_setup_automatic_billing_arguments(self, platform: FakePlatform) -> None:
        platform.rpc_results["setup_automatic_billing"] = {"success": True, "message": "configured"}
        out = asyncio.run(finance.setup_automatic_billing(
            platform, STUDENT_A, AutomaticBillingConfigRequest(days_before=3, preferred_contact="email"),
        ))
        assert out.success
        (params,) = platform.rpc_calls("setup_automatic_billing")
        assert params["p_profile_id"] == STUDENT_A
        assert params["p_days_before_due"] == 3
        assert params["p_days_after_due"] is None

    def test_process_automatic_billing(self, platform: FakePlatform) -> None:
        platform.rpc_results["process_automatic_billing"] = [
            {"success": True, "processed_count": 7, "message": "done"},
        ]
        out = asyncio.run(finance.process_automatic_billing(platform))
        assert out.processed_count == 7

    def test_backup_rejects_reversed_period(self, platform: FakePlatform) -> None:
        with pytest.raises(ValidationFailure):
            asyncio.run(finance.backup_financial_data(platform, date(2024, 2, 1), date(2024, 1, 1)))
        assert platform.calls == []
