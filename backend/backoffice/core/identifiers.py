"""Recipient identifier checks applied before any batch submission."""

from __future__ import annotations

import re
from typing import Iterable

# 8-4-4-4-12 hex groups; version nibble 1-5, variant nibble 8/9/a/b.
UUID_PATTERN = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[1-5][0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}$",
    re.IGNORECASE,
)


def is_valid_uuid(value: object) -> bool:
    if not isinstance(value, str):
        return False
    return UUID_PATTERN.fullmatch(value) is not None


def invalid_uuids(values: Iterable[object]) -> list[str]:
    """Return the offending identifiers in input order (duplicates kept once)."""
    seen: set[str] = set()
    bad: list[str] = []
    for value in values:
        if is_valid_uuid(value):
            continue
        text = str(value)
        if text not in seen:
            seen.add(text)
            bad.append(text)
    return bad
