"""Bulk CSV routes: template download, parse preview, submission, last results."""

from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, File, Form, HTTPException, Response, UploadFile

import app.state as state
from app.config import TEMPLATE_KINDS, TEMPLATE_SCHOLARSHIPS
from app.deps import exclusive, get_platform
from app.parsers.csv_records import parse_records, render_template
from app.schemas import BulkOperationResponse, BulkParseResponse
from app.services.bulk_operations import submit_records, summarize
from backoffice.errors import ValidationFailure
from backoffice.platform import PlatformClient

router = APIRouter()


def _assert_kind(kind: str) -> None:
    if kind not in TEMPLATE_KINDS:
        raise HTTPException(
            status_code=404,
            detail=f"Unknown template: '{kind}'. Available: {list(TEMPLATE_KINDS)}",
        )


async def _read_csv_upload(file: UploadFile) -> str:
    filename = file.filename or ""
    if not filename.lower().endswith(".csv"):
        raise ValidationFailure("Only .csv files are supported", [f"received '{filename}'"])
    raw = await file.read()
    if not raw.strip():
        raise ValidationFailure("CSV file is empty")
    try:
        return raw.decode("utf-8-sig")
    except UnicodeDecodeError as exc:
        raise ValidationFailure("CSV file must be UTF-8 encoded", [str(exc)])


def _defaults(kind: str, start_date: date | None, end_date: date | None) -> dict[str, date | None]:
    if kind != TEMPLATE_SCHOLARSHIPS:
        return {}
    return {"start_date": start_date, "end_date": end_date}


@router.get("/api/bulk/templates/{kind}")
def download_template(kind: str) -> Response:
    _assert_kind(kind)
    return Response(
        content=render_template(kind),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="template_{kind}.csv"'},
    )


@router.post("/api/bulk/{kind}/parse", response_model=BulkParseResponse)
async def parse_upload(
    kind: str,
    file: UploadFile = File(...),
    start_date: date | None = Form(None),
    end_date: date | None = Form(None),
) -> BulkParseResponse:
    _assert_kind(kind)
    text = await _read_csv_upload(file)
    records = parse_records(kind, text, **_defaults(kind, start_date, end_date))
    return BulkParseResponse(
        template=kind,
        count=len(records),
        records=[r.model_dump(mode="json") for r in records],
    )


@router.post("/api/bulk/{kind}", response_model=BulkOperationResponse)
async def submit_upload(
    kind: str,
    file: UploadFile = File(...),
    start_date: date | None = Form(None),
    end_date: date | None = Form(None),
    platform: PlatformClient = Depends(get_platform),
) -> BulkOperationResponse:
    _assert_kind(kind)
    text = await _read_csv_upload(file)
    records = parse_records(kind, text, **_defaults(kind, start_date, end_date))
    with exclusive(f"bulk:{kind}"):
        results = await submit_records(platform, kind, records)
    state._bulk_results[kind] = results
    return summarize(kind, results)


@router.get("/api/bulk/{kind}/results", response_model=BulkOperationResponse)
def last_results(kind: str) -> BulkOperationResponse:
    _assert_kind(kind)
    return summarize(kind, state._bulk_results.get(kind, []))
