"""Tests for calendar and money helpers."""

from datetime import date
from decimal import Decimal

import pytest

from lease_calc.money import allocate, as_decimal, from_cents, quantize, round_running, sum_money, to_cents
from lease_calc.utils import (
    add_months,
    decimal_from_str,
    first_of_next_month,
    month_key,
    months_between,
    parse_iso_date,
    parse_year_month,
)


class TestCalendar:
    @pytest.mark.parametrize(
        "start,months,expected",
        [
            (date(2026, 1, 31), 1, date(2026, 2, 28)),
            (date(2028, 1, 31), 1, date(2028, 2, 29)),
            (date(2026, 11, 15), 2, date(2027, 1, 15)),
            (date(2026, 3, 31), -1, date(2026, 2, 28)),
        ],
    )
    def test_add_months(self, start: date, months: int, expected: date) -> None:
        assert add_months(start, months) == expected

    def test_first_of_next_month(self) -> None:
        assert first_of_next_month(date(2026, 12, 15)) == date(2027, 1, 1)
        assert first_of_next_month(date(2026, 1, 31)) == date(2026, 2, 1)

    def test_month_key(self) -> None:
        assert month_key(date(2028, 2, 10)) == (2028, 2)

    @pytest.mark.parametrize(
        "start,end,expected",
        [
            (date(2026, 1, 1), date(2026, 4, 1), Decimal("3.0")),
            (date(2026, 1, 31), date(2026, 2, 28), Decimal("1.0")),
            (date(2026, 10, 19), date(2027, 7, 1), Decimal("8.4")),
            (date(2026, 4, 1), date(2026, 4, 16), Decimal("0.5")),
            (date(2026, 4, 1), date(2026, 1, 1), Decimal("-3.0")),
            (date(2026, 4, 1), date(2026, 4, 1), Decimal("0.0")),
        ],
    )
    def test_months_between(self, start: date, end: date, expected: Decimal) -> None:
        assert months_between(start, end) == expected


class TestParsing:
    def test_parse_year_month(self) -> None:
        assert parse_year_month("2026-11") == date(2026, 11, 1)
        assert parse_year_month("2026-11-20") == date(2026, 11, 1)

    @pytest.mark.parametrize("value", ["2026", "2026-13", "abc", None])
    def test_parse_year_month_invalid(self, value) -> None:
        with pytest.raises(ValueError):
            parse_year_month(value)

    def test_parse_iso_date(self) -> None:
        assert parse_iso_date("2026-11-01") == date(2026, 11, 1)
        assert parse_iso_date("2026-11-01T10:30:00Z") == date(2026, 11, 1)

    def test_parse_iso_date_invalid(self) -> None:
        with pytest.raises(ValueError):
            parse_iso_date("01/11/2026")

    def test_decimal_from_str(self) -> None:
        assert decimal_from_str("1,250.50") == Decimal("1250.50")
        with pytest.raises(ValueError):
            decimal_from_str("twelve")


class TestMoney:
    def test_quantize_half_up(self) -> None:
        assert quantize(Decimal("0.125")) == Decimal("0.13")
        assert quantize("2") == Decimal("2.00")

    def test_cents(self) -> None:
        assert to_cents(Decimal("7466.665")) == 746667
        assert from_cents(746667) == Decimal("7466.67")
        assert from_cents(-5) == Decimal("-0.05")

    def test_sum_money(self) -> None:
        assert sum_money([Decimal("0.1")] * 10) == Decimal("1.00")

    @pytest.mark.parametrize("total,parts", [(8_000_000, 12), (100, 3), (61, 61), (5, 7), (0, 4)])
    def test_allocate(self, total: int, parts: int) -> None:
        shares = allocate(total, parts)

        assert len(shares) == parts
        assert sum(shares) == total
        assert max(shares) - min(shares) <= 1

    def test_allocate_nothing(self) -> None:
        assert allocate(100, 0) == []

    def test_round_running_keeps_fractions(self) -> None:
        # rounding each 0.4 on its own would lose the whole cent
        assert round_running([Decimal("0.4")] * 3) == [0, 1, 0]

    def test_round_running_total(self) -> None:
        amounts = [Decimal(800000) / 3 / 365] * 365

        assert sum(round_running(amounts)) == round(sum(amounts))

    def test_as_decimal_float(self) -> None:
        assert as_decimal(0.1) == Decimal("0.1")
        assert as_decimal(5) == Decimal(5)
