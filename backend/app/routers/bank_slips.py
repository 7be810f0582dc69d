"""Bank slip routes: directory, listing, batches, payments and fee quotes."""

from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends

from app.deps import exclusive, get_platform
from app.schemas import (
    BankSlip,
    BankSlipListResponse,
    GenerateBatchRequest,
    GenerateBatchResponse,
    LateFeeQuote,
    LateFeeQuoteRequest,
    OperationOutcome,
    PayableAmount,
    PaymentOutcome,
    PaymentRequest,
    SendBatchRequest,
    Student,
)
from app.services import bank_slips
from app.services.directory import list_students
from backoffice.platform import PlatformClient

router = APIRouter()


@router.get("/api/students", response_model=list[Student])
async def students(platform: PlatformClient = Depends(get_platform)) -> list[Student]:
    return await list_students(platform)


@router.get("/api/bank-slips", response_model=BankSlipListResponse)
async def list_slips(
    status: str | None = None,
    search: str | None = None,
    date_from: date | None = None,
    date_to: date | None = None,
    platform: PlatformClient = Depends(get_platform),
) -> BankSlipListResponse:
    slips = await bank_slips.list_bank_slips(platform)
    filtered = bank_slips.filter_bank_slips(
        slips, status=status, search=search, date_from=date_from, date_to=date_to,
    )
    return BankSlipListResponse(total=len(filtered), slips=filtered)


@router.post("/api/bank-slips/batches", response_model=GenerateBatchResponse)
async def generate_batch(
    req: GenerateBatchRequest,
    platform: PlatformClient = Depends(get_platform),
) -> GenerateBatchResponse:
    with exclusive("bank-slips:generate"):
        return await bank_slips.generate_batch(
            platform, req.student_ids, req.amount, req.due_date, req.description,
        )


@router.post("/api/bank-slips/batches/{batch_id}/send", response_model=OperationOutcome)
async def send_batch(
    batch_id: str,
    req: SendBatchRequest | None = None,
    platform: PlatformClient = Depends(get_platform),
) -> OperationOutcome:
    template = req.email_template if req is not None else "default"
    with exclusive(f"bank-slips:send:{batch_id}"):
        return await bank_slips.send_batch(platform, batch_id, template)


@router.get("/api/bank-slips/{slip_id}", response_model=BankSlip)
async def get_slip(slip_id: str, platform: PlatformClient = Depends(get_platform)) -> BankSlip:
    return await bank_slips.get_bank_slip(platform, slip_id)


@router.get("/api/bank-slips/{slip_id}/payable", response_model=PayableAmount)
async def get_payable(
    slip_id: str,
    as_of: date | None = None,
    platform: PlatformClient = Depends(get_platform),
) -> PayableAmount:
    slip = await bank_slips.get_bank_slip(platform, slip_id)
    return await bank_slips.payable_amount(platform, slip, as_of=as_of)


@router.post("/api/bank-slips/{slip_id}/payments", response_model=PaymentOutcome)
async def pay_slip(
    slip_id: str,
    req: PaymentRequest,
    platform: PlatformClient = Depends(get_platform),
) -> PaymentOutcome:
    with exclusive(f"bank-slips:pay:{slip_id}"):
        amount = req.payment_amount
        if amount is None:
            slip = await bank_slips.get_bank_slip(platform, slip_id)
            amount = (await bank_slips.payable_amount(platform, slip)).final_amount
        return await bank_slips.process_payment(platform, slip_id, amount, req.payment_date)


@router.post("/api/late-fees/quote", response_model=LateFeeQuote)
async def quote(
    req: LateFeeQuoteRequest,
    platform: PlatformClient = Depends(get_platform),
) -> LateFeeQuote:
    return await bank_slips.quote_late_fees(
        platform, req.original_amount, req.due_date, req.interest_rate, req.late_fee_rate,
    )
