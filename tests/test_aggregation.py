"""Tests for daily-schedule detection and monthly aggregation."""

from datetime import date, timedelta
from decimal import Decimal

import pytest

from lease_calc.aggregation import (
    aggregate_daily_to_monthly,
    convert_schedule_interval,
    looks_daily,
    normalize_interval,
)
from lease_calc.data_models import Installment, InstallmentStatus, PaymentMethod, ScheduleInterval


def _days(start: date, count: int):
    return [start + timedelta(days=i) for i in range(count)]


@pytest.fixture
def daily_schedule():
    """January 2028 (29 paid, 2 upcoming) followed by all of February 2028."""
    rows = []
    for day in _days(date(2028, 1, 1), 31):
        if day.day <= 29:
            rows.append(Installment(day, Decimal("100.01"), InstallmentStatus.PAID, paid_date=day))
        else:
            rows.append(Installment(day, Decimal("100.01")))
    for day in _days(date(2028, 2, 1), 29):
        rows.append(Installment(day, Decimal("50.00")))
    return rows


class TestNormalizeInterval:
    @pytest.mark.parametrize(
        "value,expected",
        [
            ("Daily", ScheduleInterval.DAILY),
            (" monthly ", ScheduleInterval.MONTHLY),
            ("weekly", None),
            (None, None),
        ],
    )
    def test_values(self, value, expected) -> None:
        assert normalize_interval(value) == expected


class TestLooksDaily:
    def test_daily_gaps(self, daily_schedule) -> None:
        assert looks_daily(daily_schedule)

    def test_monthly_gaps(self, seasoned_schedule) -> None:
        assert not looks_daily(seasoned_schedule)

    def test_more_rows_than_tenure(self) -> None:
        weekly = [Installment(d, Decimal("10")) for d in _days(date(2028, 1, 1), 70)[::7]]

        assert not looks_daily(weekly)
        assert looks_daily(weekly, tenure_months=2)

    def test_explicit_interval_wins(self, daily_schedule, seasoned_schedule) -> None:
        assert looks_daily(seasoned_schedule, interval="Daily")
        assert not looks_daily(daily_schedule, interval="Monthly")

    def test_unknown_interval_falls_back_to_detection(self, daily_schedule) -> None:
        assert looks_daily(daily_schedule, interval="fortnightly")

    def test_gap_threshold(self) -> None:
        every_fourth = [Installment(d, Decimal("10")) for d in _days(date(2028, 1, 1), 40)[::4]]

        assert not looks_daily(every_fourth)
        assert looks_daily(every_fourth, gap_days=4)

    def test_tiny_schedules(self) -> None:
        assert not looks_daily([])
        assert not looks_daily([Installment(date(2028, 1, 1), Decimal("10"))])


class TestAggregateDailyToMonthly:
    def test_one_row_per_month(self, daily_schedule) -> None:
        result = aggregate_daily_to_monthly(daily_schedule)

        assert len(result) == 2
        assert [row.due_date for row in result] == [date(2028, 1, 1), date(2028, 2, 1)]

    def test_amounts_are_exact(self, daily_schedule) -> None:
        result = aggregate_daily_to_monthly(daily_schedule)

        assert result[0].amount == Decimal("3100.31")
        assert result[1].amount == Decimal("1450.00")
        assert sum(row.amount for row in result) == sum(row.amount for row in daily_schedule)

    def test_partly_paid_month_is_upcoming(self, daily_schedule) -> None:
        result = aggregate_daily_to_monthly(daily_schedule)

        assert result[0].status == InstallmentStatus.UPCOMING
        assert result[0].paid_date is None

    def test_paid_month_takes_latest_paid_date(self) -> None:
        rows = [
            Installment(date(2028, 3, 1), Decimal("5"), InstallmentStatus.PAID, paid_date=date(2028, 3, 4)),
            Installment(date(2028, 3, 2), Decimal("5"), InstallmentStatus.PAID, paid_date=date(2028, 3, 9)),
            Installment(date(2028, 3, 3), Decimal("5"), InstallmentStatus.PAID, paid_date=date(2028, 3, 3)),
        ]

        (month,) = aggregate_daily_to_monthly(rows)

        assert month.status == InstallmentStatus.PAID
        assert month.paid_date == date(2028, 3, 9)
        assert month.amount == Decimal("15.00")

    def test_payment_method_kept_only_when_uniform(self) -> None:
        def paid(day: int, method: PaymentMethod) -> Installment:
            d = date(2028, 3, day)
            return Installment(d, Decimal("5"), InstallmentStatus.PAID, paid_date=d, payment_method=method)

        same = aggregate_daily_to_monthly([paid(1, PaymentMethod.CASH), paid(2, PaymentMethod.CASH)])
        mixed = aggregate_daily_to_monthly([paid(1, PaymentMethod.CASH), paid(2, PaymentMethod.CHEQUE)])

        assert same[0].payment_method == PaymentMethod.CASH
        assert mixed[0].payment_method is None

    def test_paid_and_active_is_active(self) -> None:
        rows = [
            Installment(date(2028, 3, 1), Decimal("5"), InstallmentStatus.PAID, paid_date=date(2028, 3, 1)),
            Installment(date(2028, 3, 2), Decimal("5"), InstallmentStatus.ACTIVE),
        ]

        assert aggregate_daily_to_monthly(rows)[0].status == InstallmentStatus.ACTIVE

    def test_unsorted_input(self, daily_schedule) -> None:
        assert aggregate_daily_to_monthly(list(reversed(daily_schedule))) == aggregate_daily_to_monthly(
            daily_schedule
        )

    def test_idempotent(self, daily_schedule) -> None:
        once = aggregate_daily_to_monthly(daily_schedule)

        assert aggregate_daily_to_monthly(once) == once

    def test_monthly_schedule_unchanged(self, seasoned_schedule) -> None:
        assert aggregate_daily_to_monthly(seasoned_schedule) == seasoned_schedule

    def test_empty(self) -> None:
        assert aggregate_daily_to_monthly([]) == []


class TestConvertScheduleInterval:
    def test_daily_is_aggregated(self, daily_schedule) -> None:
        schedule, label = convert_schedule_interval(daily_schedule, interval="Daily")

        assert len(schedule) == 2
        assert label == "Monthly"

    def test_monthly_is_kept(self, seasoned_schedule) -> None:
        schedule, label = convert_schedule_interval(seasoned_schedule, interval=None, tenure_months=12)

        assert schedule == seasoned_schedule
        assert label == "Monthly"
