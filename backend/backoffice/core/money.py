from __future__ import annotations

from datetime import date
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any


CENT = Decimal("0.01")

# Fallback rates used by the platform's accrual rule when a slip carries none.
DEFAULT_INTEREST_RATE = Decimal("0.02")
DEFAULT_LATE_FEE_RATE = Decimal("0.05")


def to_money(value: Any) -> Decimal:
    """Coerce *value* to a Decimal rounded half-up to cents.

    ``None`` and blank strings read as zero, matching how the platform
    reports absent fee columns.
    """
    if value is None:
        return Decimal("0.00")
    if isinstance(value, str):
        value = value.strip()
        if value == "":
            return Decimal("0.00")
    if isinstance(value, float):
        value = repr(value)
    try:
        number = Decimal(value)
    except (InvalidOperation, TypeError, ValueError):
        raise ValueError(f"Not a monetary amount: {value!r}")
    if not number.is_finite():
        raise ValueError(f"Not a monetary amount: {value!r}")
    return number.quantize(CENT, rounding=ROUND_HALF_UP)


def to_rate(value: Any, default: Decimal) -> Decimal:
    if value is None:
        return default
    try:
        number = Decimal(repr(value)) if isinstance(value, float) else Decimal(value)
    except (InvalidOperation, TypeError, ValueError):
        raise ValueError(f"Not a rate: {value!r}")
    if not number.is_finite():
        raise ValueError(f"Not a rate: {value!r}")
    if number < 0:
        raise ValueError(f"Rate must be >= 0, got {value!r}")
    return number if number != 0 else default


def final_amount(
    amount: Any,
    discount_amount: Any = 0,
    late_fee: Any = 0,
    interest: Any = 0,
) -> Decimal:
    """amount - discount + late fee + interest, rounded to cents."""
    return to_money(
        to_money(amount) - to_money(discount_amount) + to_money(late_fee) + to_money(interest)
    )


def is_overdue(due_date: date, as_of: date) -> bool:
    # Due-date day itself is still on time.
    return as_of > due_date


def format_brl(value: Any) -> str:
    """Render an amount the way the console displays it, e.g. ``R$ 1.234,56``."""
    amount = to_money(value)
    sign = "-" if amount < 0 else ""
    integer, _, cents = f"{abs(amount):.2f}".partition(".")
    groups: list[str] = []
    while len(integer) > 3:
        groups.insert(0, integer[-3:])
        integer = integer[:-3]
    groups.insert(0, integer)
    return f"{sign}R$ {'.'.join(groups)},{cents}"
