"""Money arithmetic and recipient identifier checks."""

from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest

from backoffice.core import (
    DEFAULT_INTEREST_RATE,
    DEFAULT_LATE_FEE_RATE,
    final_amount,
    format_brl,
    invalid_uuids,
    is_overdue,
    is_valid_uuid,
    to_money,
    to_rate,
)


# ── Money ────────────────────────────────────────────────────────────────────

class TestToMoney:
    def test_rounds_half_up_to_cents(self) -> None:
        assert to_money("1.005") == Decimal("1.01")
        assert to_money(2.675) == Decimal("2.68")
        assert to_money("-1.005") == Decimal("-1.01")

    def test_absent_values_read_as_zero(self) -> None:
        assert to_money(None) == Decimal("0.00")
        assert to_money("  ") == Decimal("0.00")

    def test_integers_and_decimals(self) -> None:
        assert to_money(100) == Decimal("100.00")
        assert to_money(Decimal("9.999")) == Decimal("10.00")

    @pytest.mark.parametrize("bad", ["abc", float("nan"), float("inf"), [1]])
    def test_rejects_non_amounts(self, bad: object) -> None:
        with pytest.raises(ValueError):
            to_money(bad)


class TestRates:
    def test_absent_or_zero_rate_uses_default(self) -> None:
        assert to_rate(None, DEFAULT_INTEREST_RATE) == Decimal("0.02")
        assert to_rate(0, DEFAULT_LATE_FEE_RATE) == Decimal("0.05")

    def test_explicit_rate_is_kept(self) -> None:
        assert to_rate(0.1, DEFAULT_INTEREST_RATE) == Decimal("0.1")

    def test_negative_rate_rejected(self) -> None:
        with pytest.raises(ValueError):
            to_rate(-0.01, DEFAULT_INTEREST_RATE)

    @pytest.mark.parametrize("bad", [float("nan"), float("inf"), "abc"])
    def test_non_rates_rejected(self, bad: object) -> None:
        with pytest.raises(ValueError):
            to_rate(bad, DEFAULT_INTEREST_RATE)


class TestFinalAmount:
    def test_components(self) -> None:
        assert final_amount(100, 10, 5, "1.50") == Decimal("96.50")

    def test_defaults(self) -> None:
        assert final_amount("100.004") == Decimal("100.00")

    def test_float_noise_does_not_leak(self) -> None:
        assert final_amount(0.1, 0, 0.2) == Decimal("0.30")


class TestOverdue:
    def test_due_date_itself_is_on_time(self) -> None:
        assert not is_overdue(date(2024, 3, 10), date(2024, 3, 10))
        assert not is_overdue(date(2024, 3, 10), date(2024, 3, 9))

    def test_day_after_is_overdue(self) -> None:
        assert is_overdue(date(2024, 3, 10), date(2024, 3, 11))


class TestFormatBrl:
    @pytest.mark.parametrize(
        "value, expected",
        [
            (0, "R$ 0,00"),
            (1234.56, "R$ 1.234,56"),
            (1234567.8, "R$ 1.234.567,80"),
            ("999.999", "R$ 1.000,00"),
            (-10, "-R$ 10,00"),
        ],
    )
    def test_format(self, value: object, expected: str) -> None:
        assert format_brl(value) == expected


# ── Identifiers ──────────────────────────────────────────────────────────────

VALID = "0b6a1c52-8f3e-4c1d-9a2b-3c4d5e6f7a8b"


class TestUuidGate:
    def test_valid(self) -> None:
        assert is_valid_uuid(VALID)
        assert is_valid_uuid(VALID.upper())

    @pytest.mark.parametrize(
        "value",
        [
            "not-a-uuid",
            "",
            "0b6a1c52-8f3e-6c1d-9a2b-3c4d5e6f7a8b",   # version 6
            "0b6a1c52-8f3e-4c1d-ca2b-3c4d5e6f7a8b",   # variant c
            "0b6a1c528f3e4c1d9a2b3c4d5e6f7a8b",
            VALID + "\n",
            " " + VALID,
            None,
            12345,
        ],
    )
    def test_invalid(self, value: object) -> None:
        assert not is_valid_uuid(value)

    def test_invalid_uuids_keeps_order_and_dedupes(self) -> None:
        values = ["b", VALID, "a", "b", VALID]
        assert invalid_uuids(values) == ["b", "a"]

    def test_all_valid(self) -> None:
        assert invalid_uuids([VALID, VALID.upper()]) == []
