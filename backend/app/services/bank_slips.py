"""Bank slips: listing, batch generation, payment settlement, late fees.

Money is computed in ``Decimal`` (half-up to cents) and only converted to
float at the schema boundary.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, Iterable

from app.parsers.transforms import _is_timestamp, _to_date, _to_text
from app.schemas import (
    BankSlip,
    GenerateBatchResponse,
    LateFeeQuote,
    OperationOutcome,
    PayableAmount,
    PaymentOutcome,
)
from app.services import _remote
from backoffice.core import (
    DEFAULT_INTEREST_RATE,
    DEFAULT_LATE_FEE_RATE,
    final_amount,
    format_brl,
    invalid_uuids,
    is_overdue,
    to_money,
    to_rate,
)
from backoffice.errors import NotFound, RemoteOperationError, ValidationFailure
from backoffice.platform import PlatformClient

_log = logging.getLogger(__name__)

_TABLE = "bank_slips"


# ── Row mapping ─────────────────────────────────────────────────────────────

def _slip_from_row(row: dict[str, Any]) -> BankSlip:
    amount = to_money(row.get("amount"))
    discount = to_money(row.get("discount_amount"))
    late_fee = to_money(row.get("late_fee"))
    recorded_final = row.get("final_amount")
    final = (
        to_money(recorded_final)
        if recorded_final is not None
        else final_amount(amount, discount, late_fee)
    )
    return BankSlip(
        id=str(row["id"]),
        student_id=str(row.get("student_id") or ""),
        amount=float(amount),
        due_date=_to_date(row.get("due_date")),
        barcode=_to_text(row.get("barcode")),
        status=row.get("status") or "pending",
        batch_id=_to_text(row.get("batch_id")),
        email_sent=bool(row.get("email_sent")),
        email_sent_at=_to_text(row.get("email_sent_at")),
        payment_method=row.get("payment_method") or None,
        pix_key=_to_text(row.get("pix_key")),
        qr_code_url=_to_text(row.get("qr_code_url")),
        late_fee=float(late_fee),
        interest_rate=float(row.get("interest_rate") or 0),
        discount_amount=float(discount),
        final_amount=float(final),
        bank_integration_id=_to_text(row.get("bank_integration_id")),
        external_id=_to_text(row.get("external_id")),
        notes=_to_text(row.get("notes")),
        payment_date=_to_text(row.get("payment_date")),
        created_at=_to_text(row.get("created_at")),
        updated_at=_to_text(row.get("updated_at")),
    )


# ── Listing ─────────────────────────────────────────────────────────────────

async def list_bank_slips(platform: PlatformClient) -> list[BankSlip]:
    """All slips, most distant due date first."""
    rows = await _remote.select(
        platform, _TABLE, order="due_date", ascending=False,
        failure="Failed to fetch bank slips.",
    )
    return [_slip_from_row(r) for r in rows]


async def get_bank_slip(platform: PlatformClient, slip_id: str) -> BankSlip:
    rows = await _remote.select(
        platform, _TABLE, filters={"id": slip_id},
        failure="Failed to fetch bank slip.",
    )
    if not rows:
        raise NotFound(f"Bank slip '{slip_id}' not found")
    return _slip_from_row(rows[0])


def filter_bank_slips(
    slips: Iterable[BankSlip],
    *,
    status: str | None = None,
    search: str | None = None,
    date_from: date | None = None,
    date_to: date | None = None,
) -> list[BankSlip]:
    """Console-side filtering: status, free text on slip/student id, due-date range."""
    needle = (search or "").strip().lower()
    out: list[BankSlip] = []
    for slip in slips:
        if status and status != "all" and slip.status != status:
            continue
        if needle and needle not in slip.id.lower() and needle not in slip.student_id.lower():
            continue
        if date_from is not None and slip.due_date < date_from:
            continue
        if date_to is not None and slip.due_date > date_to:
            continue
        out.append(slip)
    return out


# ── Batch generation ────────────────────────────────────────────────────────

def _is_positive_amount(value: Any) -> bool:
    try:
        return to_money(value) > 0
    except ValueError:
        return False


def _batch_id(data: Any) -> str | None:
    if isinstance(data, list):
        data = data[0] if data else None
    if isinstance(data, dict):
        data = data.get("batch_id") or data.get("generate_bank_slips_batch")
    return _to_text(data)


async def generate_batch(
    platform: PlatformClient,
    student_ids: list[str] | None,
    amount: float | None,
    due_date: date | None,
    description: str = "",
) -> GenerateBatchResponse:
    """Create one slip per recipient and return the platform's batch id.

    Nothing is submitted unless every recipient id is a well-formed UUID.
    Not idempotent: each call creates a new batch.
    """
    problems: list[str] = []
    if not student_ids:
        problems.append("select at least one student")
    if amount is None:
        problems.append("amount is required")
    elif not _is_positive_amount(amount):
        problems.append("amount must be greater than zero")
    if due_date is None:
        problems.append("due_date is required")
    if problems:
        raise ValidationFailure("Missing or invalid batch fields", problems)

    bad = invalid_uuids(student_ids)
    if bad:
        raise ValidationFailure(
            f"Invalid student id(s): {', '.join(bad)}",
            [f"'{v}' is not a valid UUID" for v in bad],
        )

    function = "generate_bank_slips_batch"
    failure = "Failed to generate bank slips batch."
    data = await _remote.rpc(
        platform,
        function,
        {
            "p_student_ids": list(student_ids),
            "p_amount": float(to_money(amount)),
            "p_due_date": due_date.isoformat(),
            "p_description": description or "",
        },
        failure=failure,
    )
    batch_id = _batch_id(data)
    if batch_id is None:
        _log.error("%s: platform returned no batch id (%r)", failure, data)
        raise RemoteOperationError(failure, function)
    _log.info("Generated bank slip batch %s for %d students", batch_id, len(student_ids))
    return GenerateBatchResponse(batch_id=batch_id, recipients=len(student_ids))


async def send_batch(
    platform: PlatformClient, batch_id: str, email_template: str = "default",
) -> OperationOutcome:
    if not (batch_id or "").strip():
        raise ValidationFailure("batch_id is required")
    await _remote.rpc(
        platform,
        "send_bank_slips_batch",
        {"p_batch_id": batch_id, "p_email_template": email_template},
        failure="Failed to send bank slips batch.",
    )
    return OperationOutcome(success=True, message=f"Batch {batch_id} sent")


# ── Payments ────────────────────────────────────────────────────────────────

def _utc_timestamp(moment: datetime) -> str:
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    text = moment.astimezone(timezone.utc).isoformat(timespec="milliseconds")
    return text.replace("+00:00", "Z")


async def process_payment(
    platform: PlatformClient,
    slip_id: str,
    payment_amount: float | None,
    payment_date: str | None = None,
    *,
    now: datetime | None = None,
) -> PaymentOutcome:
    """Settle a slip. ``success=False`` from the platform is returned as-is.

    A supplied *payment_date* is forwarded verbatim; otherwise the call time
    (UTC, ISO-8601) is used.
    """
    if payment_amount is None or not _is_positive_amount(payment_amount):
        raise ValidationFailure("payment_amount must be greater than zero")
    if payment_date is not None and not _is_timestamp(payment_date):
        raise ValidationFailure(f"Invalid payment_date: '{payment_date}'")
    if payment_date is None:
        payment_date = _utc_timestamp(now or datetime.now(timezone.utc))

    function = "process_bank_slip_payment"
    failure = "Failed to process bank slip payment."
    data = await _remote.rpc(
        platform,
        function,
        {
            "p_bank_slip_id": slip_id,
            "p_payment_amount": float(to_money(payment_amount)),
            "p_payment_date": payment_date,
        },
        failure=failure,
    )
    row = _remote.first_row(data, operation=function, failure=failure)
    outcome = PaymentOutcome(
        success=bool(row.get("success")),
        message=str(row.get("message") or ""),
        transaction_id=_to_text(row.get("transaction_id")),
    )
    if not outcome.success:
        _log.info("Payment for slip %s rejected: %s", slip_id, outcome.message)
    return outcome


# ── Late fees & payable amount ──────────────────────────────────────────────

async def quote_late_fees(
    platform: PlatformClient,
    original_amount: float,
    due_date: date,
    interest_rate: float | None = None,
    late_fee_rate: float | None = None,
    *,
    as_of: date | None = None,
) -> LateFeeQuote:
    """Late fee and interest owed on *original_amount* as of *as_of* (default today).

    On or before the due date nothing accrues and the platform is not called.
    """
    try:
        amount = to_money(original_amount)
        interest = to_rate(interest_rate, DEFAULT_INTEREST_RATE)
        late_rate = to_rate(late_fee_rate, DEFAULT_LATE_FEE_RATE)
    except ValueError as exc:
        raise ValidationFailure(str(exc))
    if amount < 0:
        raise ValidationFailure("original_amount must be >= 0")

    as_of = as_of or date.today()
    if not is_overdue(due_date, as_of):
        return LateFeeQuote(late_fee=0.0, interest=0.0, total_amount=float(amount))

    function = "calculate_late_fees"
    failure = "Failed to calculate late fees."
    data = await _remote.rpc(
        platform,
        function,
        {
            "p_original_amount": float(amount),
            "p_due_date": due_date.isoformat(),
            "p_interest_rate": float(interest),
            "p_late_fee_rate": float(late_rate),
        },
        failure=failure,
    )
    row = _remote.first_row(data, operation=function, failure=failure)
    late_fee = to_money(row.get("late_fee"))
    accrued = to_money(row.get("interest"))
    return LateFeeQuote(
        late_fee=float(late_fee),
        interest=float(accrued),
        total_amount=float(final_amount(amount, 0, late_fee, accrued)),
    )


async def payable_amount(
    platform: PlatformClient, slip: BankSlip, *, as_of: date | None = None,
) -> PayableAmount:
    """What the slip costs if paid on *as_of*, computed fresh on every call.

    paid     -> the recorded final amount, no fee lookup
    canceled -> not payable
    on time  -> amount - discount
    late     -> quoted total (amount + late fee + interest, no discount)
    """
    as_of = as_of or date.today()
    overdue = is_overdue(slip.due_date, as_of)

    if slip.status == "canceled":
        raise ValidationFailure(f"Bank slip '{slip.id}' is canceled and cannot be paid")

    if slip.status == "paid":
        # Interest is not stored per slip; the recorded total already holds it.
        amount = to_money(slip.amount)
        discount = to_money(slip.discount_amount)
        late_fee = to_money(slip.late_fee)
        interest = Decimal("0.00")
        total = to_money(slip.final_amount)
    elif not overdue:
        amount = to_money(slip.amount)
        discount = to_money(slip.discount_amount)
        late_fee = interest = Decimal("0.00")
        total = final_amount(amount, discount)
    else:
        quote = await quote_late_fees(
            platform,
            slip.amount,
            slip.due_date,
            interest_rate=slip.interest_rate or None,
            as_of=as_of,
        )
        amount = to_money(slip.amount)
        discount = Decimal("0.00")
        late_fee = to_money(quote.late_fee)
        interest = to_money(quote.interest)
        total = to_money(quote.total_amount)

    return PayableAmount(
        slip_id=slip.id,
        status=slip.status,
        as_of=as_of,
        overdue=overdue,
        amount=float(amount),
        discount_amount=float(discount),
        late_fee=float(late_fee),
        interest=float(interest),
        final_amount=float(total),
        display=format_brl(total),
    )
