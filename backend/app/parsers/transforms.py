"""Value normalization helpers used across parsers and services."""

from __future__ import annotations

from datetime import date, datetime
from typing import Any

import numpy as np
import pandas as pd


def _norm_key(text: str) -> str:
    return str(text).strip().lower()


def _to_text(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, float) and np.isnan(value):
        return None

    text = str(value).strip()
    return text if text != "" else None


def _to_float(value: Any) -> float | None:
    if value is None:
        return None
    if isinstance(value, str):
        value = value.strip()
        if value == "":
            return None

    try:
        number = float(value)
    except (TypeError, ValueError):
        return None

    if np.isnan(number) or np.isinf(number):
        return None
    return number


def _to_date(value: Any) -> date | None:
    if value is None:
        return None

    if isinstance(value, pd.Timestamp):
        if pd.isna(value):
            return None
        return value.date()

    if isinstance(value, datetime):
        return value.date()

    if isinstance(value, date):
        return value

    text = _to_text(value)
    if text is None:
        return None

    parsed = pd.to_datetime(text, format="ISO8601", errors="coerce")
    if pd.isna(parsed):
        return None
    return parsed.date()


def _to_iso_date(value: Any) -> str | None:
    parsed = _to_date(value)
    return parsed.isoformat() if parsed is not None else None


def _is_timestamp(value: Any) -> bool:
    text = _to_text(value)
    if text is None:
        return False
    return not pd.isna(pd.to_datetime(text, format="ISO8601", errors="coerce", utc=True))


def _format_number(value: float) -> str:
    """Shortest text for a parsed number: 50.0 -> "50", 12.5 -> "12.5"."""
    if float(value).is_integer():
        return str(int(value))
    return repr(float(value))


def _serialize_value_for_csv(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, float):
        return _format_number(value)
    return str(value)
