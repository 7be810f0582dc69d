"""Non-core finance pass-throughs: transactions, scholarships, invoices,
declarations, automatic billing, backups and the financial reports.

Each function maps API fields to platform columns, makes one (rarely two)
platform calls, and maps the answer back.  Business rules stay on the
platform; the only local logic is the report reductions.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any

from app.parsers.transforms import _to_text
from app.schemas import (
    AutomaticBillingConfigRequest,
    AutomaticBillingRunOutcome,
    BackupOutcome,
    ClassDelinquencyReport,
    DebtSettlementReport,
    DeclarationOutcome,
    DeclarationRequest,
    FinancialBalanceLine,
    FinancialBalanceReport,
    FinancialDashboardSummary,
    FinancialDeclaration,
    FinancialSummaryReport,
    FinancialTransaction,
    Invoice,
    NewFinancialTransaction,
    NewInvoice,
    NewProfileScholarship,
    NewScholarship,
    OperationOutcome,
    ProfileScholarship,
    Scholarship,
    UpdateFinancialTransaction,
)
from app.services import _remote
from backoffice.core import to_money
from backoffice.errors import NotFound, ValidationFailure
from backoffice.platform import PlatformClient

_log = logging.getLogger(__name__)


def _iso(value: date | None) -> str | None:
    return value.isoformat() if value is not None else None


def _money_sum(rows: list[dict[str, Any]], column: str) -> Decimal:
    return sum((to_money(r.get(column)) for r in rows), Decimal("0.00"))


# ── Transactions ────────────────────────────────────────────────────────────

_TRANSACTION_COLUMNS = (
    "description", "amount", "type", "status", "due_date", "paid_at",
    "profile_id", "provider_id", "related_contract_id",
)


def _transaction_from_row(row: dict[str, Any]) -> FinancialTransaction:
    return FinancialTransaction(
        id=str(row["id"]),
        created_at=_to_text(row.get("created_at")),
        updated_at=_to_text(row.get("updated_at")),
        **{c: row.get(c) for c in _TRANSACTION_COLUMNS},
    )


async def list_transactions(platform: PlatformClient) -> list[FinancialTransaction]:
    rows = await _remote.select(
        platform, "financial_transactions", order="due_date", ascending=False,
        failure="Failed to fetch financial transactions.",
    )
    return [_transaction_from_row(r) for r in rows]


async def create_transaction(
    platform: PlatformClient, transaction: NewFinancialTransaction,
) -> FinancialTransaction:
    row = await _remote.insert_one(
        platform, "financial_transactions", transaction.model_dump(mode="json"),
        failure="Failed to create financial transaction.",
    )
    return _transaction_from_row(row)


async def create_transactions(
    platform: PlatformClient, transactions: list[NewFinancialTransaction],
) -> int:
    """Insert several transactions in one call; returns how many were sent."""
    if not transactions:
        raise ValidationFailure("nothing to process", ["no transactions were supplied"])
    await _remote.insert_many(
        platform, "financial_transactions", [t.model_dump(mode="json") for t in transactions],
        failure="Failed to create batch transactions.",
    )
    return len(transactions)


async def update_transaction(
    platform: PlatformClient,
    transaction_id: str,
    updates: UpdateFinancialTransaction,
    *,
    now: datetime | None = None,
) -> FinancialTransaction:
    values = updates.model_dump(mode="json", exclude_unset=True)
    values["updated_at"] = (now or datetime.now(timezone.utc)).isoformat()
    rows = await _remote.update(
        platform, "financial_transactions", values, filters={"id": transaction_id},
        failure="Failed to update financial transaction.",
    )
    if not rows:
        raise NotFound(f"Financial transaction '{transaction_id}' not found")
    return _transaction_from_row(rows[0])


async def delete_transaction(platform: PlatformClient, transaction_id: str) -> None:
    await _remote.delete(
        platform, "financial_transactions", filters={"id": transaction_id},
        failure="Failed to delete financial transaction.",
    )


# ── Scholarships ────────────────────────────────────────────────────────────

def _scholarship_from_row(row: dict[str, Any]) -> Scholarship:
    return Scholarship(
        id=str(row["id"]),
        name=str(row.get("name") or ""),
        description=_to_text(row.get("description")),
        discount_percentage=float(row.get("discount_percentage") or 0),
        created_at=_to_text(row.get("created_at")),
        updated_at=_to_text(row.get("updated_at")),
    )


async def list_scholarships(platform: PlatformClient) -> list[Scholarship]:
    rows = await _remote.select(
        platform, "scholarships", order="name",
        failure="Failed to fetch scholarships.",
    )
    return [_scholarship_from_row(r) for r in rows]


async def create_scholarship(platform: PlatformClient, scholarship: NewScholarship) -> Scholarship:
    row = await _remote.insert_one(
        platform, "scholarships", scholarship.model_dump(mode="json"),
        failure="Failed to create scholarship.",
    )
    return _scholarship_from_row(row)


async def delete_scholarship(platform: PlatformClient, scholarship_id: str) -> None:
    """Remove a scholarship together with every assignment referencing it."""
    failure = "Failed to delete scholarship."
    await _remote.delete(
        platform, "profile_scholarships", filters={"scholarship_id": scholarship_id},
        failure=failure,
    )
    await _remote.delete(platform, "scholarships", filters={"id": scholarship_id}, failure=failure)


def _embedded_name(row: dict[str, Any], relation: str) -> str | None:
    embedded = row.get(relation)
    if isinstance(embedded, dict):
        return _to_text(embedded.get("name"))
    return None


def _assignment_from_row(row: dict[str, Any]) -> ProfileScholarship:
    return ProfileScholarship(
        id=str(row["id"]),
        profile_id=str(row.get("profile_id") or ""),
        scholarship_id=str(row.get("scholarship_id") or ""),
        start_date=row.get("start_date"),
        end_date=row.get("end_date"),
        created_at=_to_text(row.get("created_at")),
        profile_name=_embedded_name(row, "profiles"),
        scholarship_name=_embedded_name(row, "scholarships"),
    )


async def list_assignments(platform: PlatformClient) -> list[ProfileScholarship]:
    rows = await _remote.select(
        platform,
        "profile_scholarships",
        columns="*,profiles!profile_id(name),scholarships!scholarship_id(name)",
        failure="Failed to fetch profile scholarships.",
    )
    return [_assignment_from_row(r) for r in rows]


async def assign_scholarship(
    platform: PlatformClient, assignment: NewProfileScholarship,
) -> ProfileScholarship:
    if assignment.end_date is not None and assignment.end_date < assignment.start_date:
        raise ValidationFailure("end_date must not be before start_date")
    row = await _remote.insert_one(
        platform, "profile_scholarships", assignment.model_dump(mode="json"),
        failure="Failed to assign scholarship.",
    )
    return _assignment_from_row(row)


async def remove_assignment(platform: PlatformClient, assignment_id: str) -> None:
    await _remote.delete(
        platform, "profile_scholarships", filters={"id": assignment_id},
        failure="Failed to remove scholarship assignment.",
    )


# ── Invoices ────────────────────────────────────────────────────────────────

def _invoice_from_row(row: dict[str, Any]) -> Invoice:
    amount = float(row.get("amount") or 0)
    description = _to_text(row.get("description"))
    return Invoice(
        id=str(row["id"]),
        profile_id=str(row.get("profile_id") or ""),
        invoice_number=_to_text(row.get("invoice_number")),
        issue_date=_to_text(row.get("issue_date")) or _to_text(row.get("created_at")),
        due_date=_to_text(row.get("due_date")),
        amount=amount,
        tax_amount=float(row.get("tax_amount") or 0),
        discount_amount=row.get("discount_amount"),
        total_amount=float(row.get("total_amount") or amount),
        status=str(row.get("status") or ""),
        description=description,
        notes=_to_text(row.get("notes")),
        recipient_name=row.get("recipient_name") or "",
        recipient_tax_id=row.get("recipient_tax_id") or "",
        recipient_address=row.get("recipient_address") or "",
        service_description=_to_text(row.get("service_description")) or description,
        xml_data=_to_text(row.get("xml_data")),
        pdf_url=_to_text(row.get("pdf_url")),
        created_at=_to_text(row.get("created_at")),
        updated_at=_to_text(row.get("updated_at")),
    )


async def list_invoices(platform: PlatformClient) -> list[Invoice]:
    rows = await _remote.select(
        platform, "invoices", order="created_at", ascending=False,
        failure="Failed to fetch invoices.",
    )
    return [_invoice_from_row(r) for r in rows]


async def create_invoice(platform: PlatformClient, invoice: NewInvoice) -> Invoice:
    row = await _remote.insert_one(
        platform, "invoices", invoice.model_dump(mode="json"),
        failure="Failed to create invoice.",
    )
    return _invoice_from_row(row)


# ── Declarations ────────────────────────────────────────────────────────────

def _declaration_from_row(row: dict[str, Any]) -> FinancialDeclaration:
    return FinancialDeclaration(
        id=str(row["id"]),
        profile_id=str(row.get("profile_id") or ""),
        declaration_type=str(row.get("declaration_type") or ""),
        title=_to_text(row.get("title")) or "Declaração Financeira",
        content=row.get("content") or "",
        reference_period_start=_to_text(row.get("reference_period_start")),
        reference_period_end=_to_text(row.get("reference_period_end")),
        auth_code=_to_text(row.get("authentication_code")) or _to_text(row.get("auth_code")),
        status=str(row.get("status") or ""),
        valid_until=_to_text(row.get("valid_until")),
        created_at=_to_text(row.get("created_at")),
        updated_at=_to_text(row.get("updated_at")),
    )


async def list_declarations(
    platform: PlatformClient, profile_id: str | None = None,
) -> list[FinancialDeclaration]:
    rows = await _remote.select(
        platform,
        "financial_declarations",
        filters={"profile_id": profile_id} if profile_id else None,
        order="created_at",
        ascending=False,
        failure="Failed to fetch financial declarations.",
    )
    return [_declaration_from_row(r) for r in rows]


async def generate_nothing_owed_declaration(
    platform: PlatformClient, request: DeclarationRequest,
) -> DeclarationOutcome:
    if request.start_date and request.end_date and request.end_date < request.start_date:
        raise ValidationFailure("end_date must not be before start_date")
    function = "generate_nothing_owed_declaration"
    failure = "Failed to generate nothing owed declaration."
    data = await _remote.rpc(
        platform,
        function,
        {
            "p_profile_id": request.profile_id,
            "p_reference_period_start": _iso(request.start_date),
            "p_reference_period_end": _iso(request.end_date),
        },
        failure=failure,
    )
    row = _remote.first_row(data, operation=function, failure=failure)
    return DeclarationOutcome(
        success=bool(row.get("success")),
        message=str(row.get("message") or ""),
        declaration_id=_to_text(row.get("declaration_id")),
        auth_code=_to_text(row.get("auth_code")),
    )


# ── Automatic billing ───────────────────────────────────────────────────────

async def setup_automatic_billing(
    platform: PlatformClient, profile_id: str, config: AutomaticBillingConfigRequest,
) -> OperationOutcome:
    function = "setup_automatic_billing"
    failure = "Failed to setup automatic billing."
    data = await _remote.rpc(
        platform,
        function,
        {
            "p_profile_id": profile_id,
            "p_days_before_due": config.days_before,
            "p_days_after_due": config.days_after,
            "p_enable_reminders": config.enable_reminders,
            "p_preferred_contact": config.preferred_contact,
            "p_max_reminders": config.max_reminders,
            "p_custom_message": config.custom_message,
        },
        failure=failure,
    )
    row = _remote.first_row(data, operation=function, failure=failure)
    return OperationOutcome(success=bool(row.get("success")), message=str(row.get("message") or ""))


async def process_automatic_billing(platform: PlatformClient) -> AutomaticBillingRunOutcome:
    function = "process_automatic_billing"
    failure = "Failed to process automatic billing."
    data = await _remote.rpc(platform, function, None, failure=failure)
    row = _remote.first_row(data, operation=function, failure=failure)
    return AutomaticBillingRunOutcome(
        success=bool(row.get("success")),
        processed_count=int(row.get("processed_count") or 0),
        message=str(row.get("message") or ""),
    )


async def backup_financial_data(
    platform: PlatformClient, start_date: date, end_date: date,
) -> BackupOutcome:
    if end_date < start_date:
        raise ValidationFailure("end_date must not be before start_date")
    function = "backup_financial_data"
    failure = "Failed to backup financial data."
    data = await _remote.rpc(
        platform,
        function,
        {"p_start_date": start_date.isoformat(), "p_end_date": end_date.isoformat()},
        failure=failure,
    )
    row = _remote.first_row(data, operation=function, failure=failure)
    return BackupOutcome(
        success=bool(row.get("success")),
        message=str(row.get("message") or ""),
        backup_data=row.get("backup_data"),
    )


# ── Financial reports ───────────────────────────────────────────────────────

async def financial_balance(
    platform: PlatformClient,
    start_date: date | None = None,
    end_date: date | None = None,
    *,
    today: date | None = None,
) -> FinancialBalanceReport:
    """Income/expense balance per origin; defaults to month-to-date."""
    today = today or date.today()
    start = start_date or today.replace(day=1)
    end = end_date or today
    rows = await _remote.rpc(
        platform,
        "get_financial_balance_report",
        {"p_start_date": start.isoformat(), "p_end_date": end.isoformat(), "p_origin_destination": None},
        failure="Failed to fetch financial balance.",
    ) or []

    lines = [
        FinancialBalanceLine(
            origin=_to_text(r.get("origin_destination")) or "Transação",
            income=float(to_money(r.get("total_income"))),
            expenses=float(to_money(r.get("total_expenses"))),
            balance=float(to_money(r.get("net_balance"))),
        )
        for r in rows
    ]
    return FinancialBalanceReport(
        period=f"{start.isoformat()} - {end.isoformat()}",
        total_income=float(_money_sum(rows, "total_income")),
        total_expenses=float(_money_sum(rows, "total_expenses")),
        net_balance=float(_money_sum(rows, "net_balance")),
        transactions=lines,
    )


async def financial_summary(
    platform: PlatformClient, start_date: date, end_date: date,
) -> FinancialSummaryReport:
    """Totals over every monthly period the platform returns."""
    rows = await _remote.rpc(
        platform,
        "get_financial_summary_report",
        {"p_start_date": start_date.isoformat(), "p_end_date": end_date.isoformat(), "p_period_type": "monthly"},
        failure="Failed to fetch financial summary.",
    ) or []

    income = _money_sum(rows, "total_income")
    expenses = _money_sum(rows, "total_expenses")
    count = sum(int(r.get("income_count") or 0) + int(r.get("expense_count") or 0) for r in rows)
    average = to_money((income + expenses) / count) if count else Decimal("0.00")
    return FinancialSummaryReport(
        period=f"{start_date.isoformat()} - {end_date.isoformat()}",
        period_type="monthly",
        total_income=float(income),
        total_expenses=float(expenses),
        net_result=float(_money_sum(rows, "net_result")),
        average_transaction_value=float(average),
        transaction_count=count,
    )


async def debt_settlement(platform: PlatformClient, student_id: str) -> DebtSettlementReport:
    rows = await _remote.rpc(
        platform,
        "get_debt_settlement_report",
        {"p_student_id": student_id, "p_start_date": None, "p_end_date": None},
        failure="Failed to fetch debt settlement report.",
    ) or []
    row = rows[0] if rows else {}
    return DebtSettlementReport(
        student_id=_to_text(row.get("student_id")) or student_id,
        student_name=_to_text(row.get("student_name")) or "",
        total_debt=float(to_money(row.get("total_debt"))),
        paid_amount=float(to_money(row.get("paid_amount"))),
        pending_amount=float(to_money(row.get("pending_amount"))),
        overdue_amount=float(to_money(row.get("overdue_amount"))),
        debt_status=row.get("debt_status") or "current",
        last_payment_date=_to_text(row.get("last_payment_date")),
    )


async def class_delinquency(platform: PlatformClient, class_id: str) -> ClassDelinquencyReport:
    rows = await _remote.rpc(
        platform,
        "get_class_delinquency_report",
        {"p_course_id": class_id},
        failure="Failed to fetch class delinquency report.",
    ) or []
    row = rows[0] if rows else {}
    return ClassDelinquencyReport(
        class_id=_to_text(row.get("class_id")) or class_id,
        class_name=_to_text(row.get("class_name")) or "",
        total_students=int(row.get("total_students") or 0),
        delinquent_students=int(row.get("delinquent_students") or 0),
        overdue_amount=float(to_money(row.get("total_overdue_amount"))),
        delinquency_rate=float(row.get("delinquency_rate") or 0),
        delinquency_level=row.get("delinquency_level") or "low",
    )


# Metric names as reported by get_financial_dashboard.
_DASHBOARD_METRICS = {
    "Receitas do Mês": "monthly_revenue",
    "Despesas do Mês": "monthly_expenses",
    "Valores em Atraso": "total_overdue",
    "Estudantes Inadimplentes": "delinquent_students",
}


async def financial_dashboard(platform: PlatformClient) -> FinancialDashboardSummary:
    metrics = await _remote.rpc(
        platform, "get_financial_dashboard", None,
        failure="Failed to fetch financial dashboard.",
    ) or []

    values: dict[str, Any] = {}
    for metric in metrics:
        key = _DASHBOARD_METRICS.get(metric.get("metric_name"))
        if key is None:
            _log.debug("Ignoring dashboard metric %r", metric.get("metric_name"))
            continue
        values[key] = metric.get("value")

    revenue = to_money(values.get("monthly_revenue"))
    overdue = to_money(values.get("total_overdue"))
    rate = float(overdue / revenue * 100) if revenue > 0 else 0.0
    return FinancialDashboardSummary(
        current_month_revenue=float(revenue),
        current_month_expenses=float(to_money(values.get("monthly_expenses"))),
        pending_receivables=0.0,
        overdue_amount=float(overdue),
        active_students=0,
        delinquent_students=int(to_money(values.get("delinquent_students"))),
        average_delinquency_rate=round(rate, 2),
    )
