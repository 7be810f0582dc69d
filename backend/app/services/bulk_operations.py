"""Bulk submission: one platform call per batch of parsed template records."""

from __future__ import annotations

import logging
from collections import Counter
from typing import Any, Sequence

from pydantic import BaseModel

from app.config import BULK_RPC, TEMPLATE_SCHOLARSHIPS, TEMPLATE_STUDENTS
from app.parsers.transforms import _to_text
from app.schemas import BulkOperationResult, BulkOperationResponse
from backoffice.errors import RemoteOperationError, ValidationFailure
from backoffice.platform import PlatformClient, PlatformError

_log = logging.getLogger(__name__)

_FAILURE_MESSAGES = {
    TEMPLATE_STUDENTS: "Failed to register student financial data in bulk.",
    TEMPLATE_SCHOLARSHIPS: "Failed to register scholarships in bulk.",
}


def _payload(records: Sequence[BaseModel]) -> list[dict[str, Any]]:
    return [r.model_dump(mode="json") for r in records]


def _map_result(row: dict[str, Any]) -> BulkOperationResult:
    status = "success" if str(row.get("status") or "").lower() == "success" else "error"
    return BulkOperationResult(
        student_id=_to_text(row.get("student_id")),
        scholarship_id=_to_text(row.get("scholarship_id")),
        status=status,
        error_message=_to_text(row.get("error_message")),
    )


def _attribution_key(template: str, student_id: str | None, scholarship_id: str | None) -> tuple:
    if template == TEMPLATE_SCHOLARSHIPS:
        return (student_id, scholarship_id)
    return (student_id,)


def _check_attribution(
    template: str,
    records: Sequence[BaseModel],
    results: Sequence[BulkOperationResult],
) -> None:
    """Warn when results cannot be matched one-to-one with the input records.

    Results are returned unchanged either way.
    """
    if len(results) != len(records):
        _log.warning(
            "Bulk %s: platform returned %d results for %d records",
            template, len(results), len(records),
        )
        return

    expected = Counter(
        _attribution_key(template, r.student_id, getattr(r, "scholarship_id", None))
        for r in records
    )
    returned = Counter(
        _attribution_key(template, r.student_id, r.scholarship_id) for r in results
    )
    if expected != returned:
        unmatched = sorted(str(k) for k in (returned - expected))
        _log.warning("Bulk %s: results not attributable to input records: %s", template, unmatched)


async def submit_records(
    platform: PlatformClient,
    template: str,
    records: Sequence[BaseModel],
) -> list[BulkOperationResult]:
    """Forward *records* as one batch and return one outcome per record.

    Raises ``ValidationFailure`` for an empty batch (platform not called) and
    ``RemoteOperationError`` when the call fails as a whole.
    """
    try:
        function, param = BULK_RPC[template]
    except KeyError:
        raise ValidationFailure(f"Unknown template: '{template}'")
    if not records:
        raise ValidationFailure("nothing to process", [f"no {template} records were supplied"])

    _log.info("Submitting %d %s records via %s", len(records), template, function)
    try:
        data = await platform.rpc(function, {param: _payload(records)})
    except PlatformError as exc:
        _log.error("Bulk %s registration failed: %s", template, exc.message)
        raise RemoteOperationError(_FAILURE_MESSAGES[template], function) from exc

    results = [_map_result(row) for row in (data or [])]
    _check_attribution(template, records, results)
    return results


def summarize(template: str, results: Sequence[BulkOperationResult]) -> BulkOperationResponse:
    succeeded = sum(1 for r in results if r.status == "success")
    return BulkOperationResponse(
        template=template,
        total=len(results),
        succeeded=succeeded,
        failed=len(results) - succeeded,
        results=list(results),
    )
