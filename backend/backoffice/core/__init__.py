"""Core helpers: money arithmetic and recipient identifier validation."""

from backoffice.core.identifiers import UUID_PATTERN, invalid_uuids, is_valid_uuid
from backoffice.core.money import (
    DEFAULT_INTEREST_RATE,
    DEFAULT_LATE_FEE_RATE,
    final_amount,
    format_brl,
    is_overdue,
    to_money,
    to_rate,
)

__all__ = [
    "DEFAULT_INTEREST_RATE",
    "DEFAULT_LATE_FEE_RATE",
    "UUID_PATTERN",
    "final_amount",
    "format_brl",
    "invalid_uuids",
    "is_overdue",
    "is_valid_uuid",
    "to_money",
    "to_rate",
]
