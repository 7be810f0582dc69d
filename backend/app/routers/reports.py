"""Report routes."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from app.deps import get_platform
from app.schemas import ReportKind, ReportRequest, ReportResponse
from app.services.reports import available_reports, run_report
from backoffice.platform import PlatformClient

router = APIRouter()


@router.get("/api/reports/kinds", response_model=list[ReportKind])
def report_kinds() -> list[ReportKind]:
    return available_reports()


@router.post("/api/reports/run", response_model=ReportResponse)
async def run(req: ReportRequest, platform: PlatformClient = Depends(get_platform)) -> ReportResponse:
    return await run_report(platform, req.params)
