"""Bulk-template CSV parsing: header aliasing, typed records, strict rejection.

The templates are plain comma-delimited text. Quoting/escaping is not
supported: a value must not contain a comma, a newline or a double quote.
Instead of yielding a best-effort record for a malformed line, the parser
collects every problem and raises one ``CsvFormatError`` listing them.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Any, Sequence

from pydantic import BaseModel

from app.config import (
    CSV_TEMPLATES,
    REQUIRED_HEADERS,
    SCHOLARSHIP_HEADERS,
    STUDENT_FINANCIAL_HEADERS,
    TEMPLATE_SCHOLARSHIPS,
    TEMPLATE_STUDENTS,
)
from app.parsers.transforms import _norm_key, _serialize_value_for_csv, _to_date, _to_float, _to_text
from app.schemas import BulkScholarshipRecord, BulkStudentFinancialRecord
from backoffice.errors import CsvFormatError

_log = logging.getLogger(__name__)


def _alias_table(headers: dict[str, tuple[str, ...]]) -> dict[str, str]:
    return {_norm_key(alias): field for field, aliases in headers.items() for alias in aliases}


_ALIASES: dict[str, dict[str, str]] = {
    TEMPLATE_STUDENTS: _alias_table(STUDENT_FINANCIAL_HEADERS),
    TEMPLATE_SCHOLARSHIPS: _alias_table(SCHOLARSHIP_HEADERS),
}


def _aliases_for(template: str) -> dict[str, str]:
    try:
        return _ALIASES[template]
    except KeyError:
        raise ValueError(f"Unknown template: '{template}'. Available: {sorted(_ALIASES)}")


# ── Row splitting ───────────────────────────────────────────────────────────

def _non_blank_lines(text: str) -> list[tuple[int, str]]:
    """(1-based line number, line) for every non-blank line."""
    return [
        (lineno, line)
        for lineno, line in enumerate(text.lstrip("\ufeff").splitlines(), start=1)
        if line.strip()
    ]


def _read_rows(
    text: str, template: str,
) -> tuple[list[tuple[int, dict[str, str | None]]], list[str]]:
    """Split *text* into canonical-field rows; returns (rows, problems).

    Header problems raise immediately since no row can be mapped without
    a valid header.
    """
    aliases = _aliases_for(template)
    lines = _non_blank_lines(text)
    if not lines:
        raise CsvFormatError("CSV file is empty", ["line 1: missing header row"])

    header_lineno, header_line = lines[0]
    headers = [h.strip() for h in header_line.split(",")]
    fields = [aliases.get(_norm_key(h)) for h in headers]

    problems: list[str] = []
    if '"' in header_line:
        problems.append(f"line {header_lineno}: quoted headers are not supported")

    seen: set[str] = set()
    for header, field in zip(headers, fields):
        if field is None:
            continue
        if field in seen:
            problems.append(f"line {header_lineno}: column '{field}' appears more than once")
        seen.add(field)

    missing = sorted(REQUIRED_HEADERS[template] - seen)
    if missing:
        problems.append(f"line {header_lineno}: missing required column(s): {', '.join(missing)}")
    if problems:
        raise CsvFormatError("Malformed CSV header", problems)

    ignored = [h for h, f in zip(headers, fields) if f is None]
    if ignored:
        _log.info("Ignoring unknown %s columns: %s", template, ignored)

    rows: list[tuple[int, dict[str, str | None]]] = []
    for lineno, line in lines[1:]:
        if '"' in line:
            problems.append(f"line {lineno}: quoted values are not supported")
            continue
        values = [v.strip() for v in line.split(",")]
        if len(values) != len(headers):
            problems.append(
                f"line {lineno}: expected {len(headers)} fields, found {len(values)}"
            )
            continue
        row = {field: _to_text(value) for field, value in zip(fields, values) if field is not None}
        if row.get("student_id") is None:
            problems.append(f"line {lineno}: student_id is empty")
            continue
        rows.append((lineno, row))
    return rows, problems


# ── Typed records ───────────────────────────────────────────────────────────

def parse_student_financial_csv(text: str) -> list[BulkStudentFinancialRecord]:
    rows, problems = _read_rows(text, TEMPLATE_STUDENTS)
    if problems:
        raise CsvFormatError("Malformed student financial CSV", problems)
    return [BulkStudentFinancialRecord(**row) for _, row in rows]


def parse_scholarship_csv(
    text: str,
    *,
    start_date: date | None = None,
    end_date: date | None = None,
) -> list[BulkScholarshipRecord]:
    """Parse scholarship rows.

    *start_date* / *end_date* fill rows whose date column is absent or empty;
    a row left without a start date is rejected.
    ``discount_percentage`` reads as 0 when missing or unparseable.
    """
    rows, problems = _read_rows(text, TEMPLATE_SCHOLARSHIPS)
    records: list[BulkScholarshipRecord] = []

    for lineno, row in rows:
        row_problems: list[str] = []
        dates: dict[str, date | None] = {}
        for field, default in (("start_date", start_date), ("end_date", end_date)):
            raw = row.get(field)
            if raw is None:
                dates[field] = default
                continue
            parsed = _to_date(raw)
            if parsed is None:
                row_problems.append(f"line {lineno}: invalid {field} '{raw}'")
            dates[field] = parsed

        start, end = dates["start_date"], dates["end_date"]
        if row.get("start_date") is None and start is None:
            row_problems.append(f"line {lineno}: start_date is missing")
        if start is not None and end is not None and end < start:
            row_problems.append(f"line {lineno}: end_date {end} is before start_date {start}")

        discount = _to_float(row.get("discount_percentage"))
        if discount is None:
            discount = 0.0
        if not 0 <= discount <= 100:
            row_problems.append(f"line {lineno}: discount_percentage {discount:g} is outside 0-100")

        if row_problems:
            problems.extend(row_problems)
            continue
        records.append(
            BulkScholarshipRecord(
                student_id=row["student_id"],
                scholarship_id=row.get("scholarship_id"),
                start_date=start,
                end_date=end,
                discount_percentage=discount,
            )
        )

    if problems:
        raise CsvFormatError("Malformed scholarship CSV", problems)
    return records


def parse_records(template: str, text: str, **defaults: Any) -> list[BaseModel]:
    if template == TEMPLATE_STUDENTS:
        return list(parse_student_financial_csv(text))
    if template == TEMPLATE_SCHOLARSHIPS:
        return list(parse_scholarship_csv(text, **defaults))
    _aliases_for(template)
    return []


# ── Serialization ───────────────────────────────────────────────────────────

def serialize_records(records: Sequence[BaseModel], header: Sequence[str], template: str) -> str:
    """Write *records* back as CSV using *header* (any accepted spelling).

    Values are written from the parsed records, so numbers come out in their
    shortest form: a source cell of ``50.00`` is written as ``50``.
    """
    aliases = _aliases_for(template)
    fields = [aliases.get(_norm_key(h)) for h in header]
    lines = [",".join(h.strip() for h in header)]
    for record in records:
        data = record.model_dump()
        lines.append(
            ",".join(_serialize_value_for_csv(data.get(f)) if f else "" for f in fields)
        )
    return "\n".join(lines) + "\n"


def render_template(template: str) -> str:
    try:
        return CSV_TEMPLATES[template]
    except KeyError:
        raise ValueError(f"Unknown template: '{template}'. Available: {sorted(CSV_TEMPLATES)}")
