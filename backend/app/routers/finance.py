"""Finance pass-through routes: transactions, scholarships, invoices,
declarations, automatic billing and backups."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Response

from app.deps import exclusive, get_platform
from app.schemas import (
    AutomaticBillingConfigRequest,
    AutomaticBillingRunOutcome,
    BackupOutcome,
    BackupRequest,
    DeclarationOutcome,
    DeclarationRequest,
    FinancialDeclaration,
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
from app.services import finance
from backoffice.platform import PlatformClient

router = APIRouter()


# ── Transactions ────────────────────────────────────────────────────────────

@router.get("/api/transactions", response_model=list[FinancialTransaction])
async def list_transactions(platform: PlatformClient = Depends(get_platform)) -> list[FinancialTransaction]:
    return await finance.list_transactions(platform)


@router.post("/api/transactions", response_model=FinancialTransaction)
async def create_transaction(
    req: NewFinancialTransaction,
    platform: PlatformClient = Depends(get_platform),
) -> FinancialTransaction:
    return await finance.create_transaction(platform, req)


@router.post("/api/transactions/batch")
async def create_transactions(
    req: list[NewFinancialTransaction],
    platform: PlatformClient = Depends(get_platform),
) -> dict[str, int]:
    return {"created": await finance.create_transactions(platform, req)}


@router.patch("/api/transactions/{transaction_id}", response_model=FinancialTransaction)
async def update_transaction(
    transaction_id: str,
    req: UpdateFinancialTransaction,
    platform: PlatformClient = Depends(get_platform),
) -> FinancialTransaction:
    return await finance.update_transaction(platform, transaction_id, req)


@router.delete("/api/transactions/{transaction_id}", status_code=204)
async def delete_transaction(
    transaction_id: str,
    platform: PlatformClient = Depends(get_platform),
) -> Response:
    await finance.delete_transaction(platform, transaction_id)
    return Response(status_code=204)


# ── Scholarships ────────────────────────────────────────────────────────────

@router.get("/api/scholarships", response_model=list[Scholarship])
async def list_scholarships(platform: PlatformClient = Depends(get_platform)) -> list[Scholarship]:
    return await finance.list_scholarships(platform)


@router.post("/api/scholarships", response_model=Scholarship)
async def create_scholarship(
    req: NewScholarship,
    platform: PlatformClient = Depends(get_platform),
) -> Scholarship:
    return await finance.create_scholarship(platform, req)


@router.get("/api/scholarships/assignments", response_model=list[ProfileScholarship])
async def list_assignments(platform: PlatformClient = Depends(get_platform)) -> list[ProfileScholarship]:
    return await finance.list_assignments(platform)


@router.post("/api/scholarships/assignments", response_model=ProfileScholarship)
async def assign_scholarship(
    req: NewProfileScholarship,
    platform: PlatformClient = Depends(get_platform),
) -> ProfileScholarship:
    return await finance.assign_scholarship(platform, req)


@router.delete("/api/scholarships/assignments/{assignment_id}", status_code=204)
async def remove_assignment(
    assignment_id: str,
    platform: PlatformClient = Depends(get_platform),
) -> Response:
    await finance.remove_assignment(platform, assignment_id)
    return Response(status_code=204)


@router.delete("/api/scholarships/{scholarship_id}", status_code=204)
async def delete_scholarship(
    scholarship_id: str,
    platform: PlatformClient = Depends(get_platform),
) -> Response:
    await finance.delete_scholarship(platform, scholarship_id)
    return Response(status_code=204)


# ── Invoices & declarations ─────────────────────────────────────────────────

@router.get("/api/invoices", response_model=list[Invoice])
async def list_invoices(platform: PlatformClient = Depends(get_platform)) -> list[Invoice]:
    return await finance.list_invoices(platform)


@router.post("/api/invoices", response_model=Invoice)
async def create_invoice(req: NewInvoice, platform: PlatformClient = Depends(get_platform)) -> Invoice:
    return await finance.create_invoice(platform, req)


@router.get("/api/declarations", response_model=list[FinancialDeclaration])
async def list_declarations(
    profile_id: str | None = None,
    platform: PlatformClient = Depends(get_platform),
) -> list[FinancialDeclaration]:
    return await finance.list_declarations(platform, profile_id)


@router.post("/api/declarations/nothing-owed", response_model=DeclarationOutcome)
async def nothing_owed(
    req: DeclarationRequest,
    platform: PlatformClient = Depends(get_platform),
) -> DeclarationOutcome:
    return await finance.generate_nothing_owed_declaration(platform, req)


# ── Automatic billing & backup ──────────────────────────────────────────────

@router.post("/api/billing/automatic/run", response_model=AutomaticBillingRunOutcome)
async def run_automatic_billing(
    platform: PlatformClient = Depends(get_platform),
) -> AutomaticBillingRunOutcome:
    with exclusive("billing:automatic"):
        return await finance.process_automatic_billing(platform)


@router.post("/api/billing/automatic/{profile_id}", response_model=OperationOutcome)
async def setup_automatic_billing(
    profile_id: str,
    req: AutomaticBillingConfigRequest,
    platform: PlatformClient = Depends(get_platform),
) -> OperationOutcome:
    return await finance.setup_automatic_billing(platform, profile_id, req)


@router.post("/api/finance/backup", response_model=BackupOutcome)
async def backup(req: BackupRequest, platform: PlatformClient = Depends(get_platform)) -> BackupOutcome:
    return await finance.backup_financial_data(platform, req.start_date, req.end_date)
