"""Core schedule engine for the lease calculator.

This module turns a set of ``LoanTerms`` into a dated installment schedule.
The financed amount is repaid in equal (to the cent) principal portions and
every installment adds rent on the financier's outstanding share of the
vehicle:

    rent(i) = (vehicle_price - down_payment - principal_per_month * i) * rate / 12

This is a straight-line principal with a declining rent, not an annuity.
Monthly schedules have one installment per month; daily schedules spread each
month's principal over its calendar days and charge rent at ``rate / 365``
on the balance left that day. Rent is rounded on the running total, so the
rows add up to the loan plus the exact total rent rounded once.

Besides generation, the module offers the whole-schedule transformations the
record store relies on: marking an installment paid and validating a stored
schedule against its terms.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import date
from decimal import Decimal, getcontext
from typing import Dict, List, Optional, Sequence, Tuple

from .data_models import (
    CalculationMethod,
    Installment,
    InstallmentStatus,
    LoanTerms,
    PaymentMethod,
    ProofDocument,
    Schedule,
    ScheduleInterval,
)
from .exceptions import InvalidInstallmentStateError, InvalidTermsError
from .logging import get_logger
from .money import allocate, from_cents, round_cents, round_running, to_cents
from .utils import add_months, first_of_next_month, month_key

getcontext().prec = 28  # increase precision for financial calculations

logger = get_logger(__name__)

DAYS_PER_YEAR = Decimal(365)
MONTHS_PER_YEAR = Decimal(12)

# Tolerance for the "installments add up to loan plus rent" check.
CONSERVATION_TOLERANCE_CENTS = 1


def default_start_date(today: date) -> date:
    """Return the first due date for a schedule generated on ``today``.

    Customers get a grace period: the first installment falls due on the
    first day of the following month.
    """
    return first_of_next_month(today)


def _financier_balance(terms: LoanTerms, principal_repaid: Decimal) -> Decimal:
    """Financier's outstanding share once ``principal_repaid`` has been paid back."""
    return terms.vehicle_price - terms.down_payment - principal_repaid


def _principal_cents(terms: LoanTerms) -> List[int]:
    return allocate(to_cents(terms.loan_amount), terms.tenure_months)


def _month_days(start_date: date, month_index: int) -> List[date]:
    """Calendar days belonging to month ``month_index`` of a daily schedule."""
    first = add_months(start_date, month_index)
    end = add_months(start_date, month_index + 1)
    return [date.fromordinal(o) for o in range(first.toordinal(), end.toordinal())]


def _rows(terms: LoanTerms, start_date: date, interval: ScheduleInterval) -> List[Tuple[date, int, Decimal]]:
    """Due date, principal cents and unrounded rent (in cents) of every row.

    Daily rows accrue principal day by day: a day's rent is charged on the
    balance left after the principal of the earlier days of its month, each
    day repaying ``principal_per_month / days_in_month``.
    """
    principal_per_month = terms.loan_amount / Decimal(terms.tenure_months)
    principal = _principal_cents(terms)
    rows: List[Tuple[date, int, Decimal]] = []
    for month in range(terms.tenure_months):
        repaid = principal_per_month * month
        if interval == ScheduleInterval.DAILY:
            days = _month_days(start_date, month)
            per_day = principal_per_month / len(days)
            shares = allocate(principal[month], len(days))
            for offset, (day, share) in enumerate(zip(days, shares)):
                balance = _financier_balance(terms, repaid + per_day * offset)
                rows.append((day, share, balance * 100 * terms.annual_rent_rate / DAYS_PER_YEAR))
        else:
            rent = _financier_balance(terms, repaid) * 100 * terms.annual_rent_rate / MONTHS_PER_YEAR
            rows.append((add_months(start_date, month), principal[month], rent))
    return rows


def _status_for(due_date: date, today: date, interval: ScheduleInterval) -> Tuple[InstallmentStatus, Optional[date]]:
    """Initial status of a freshly generated installment.

    Monthly rows compare calendar months, daily rows compare days. Rows that
    fall before ``today`` are back-filled as paid on their due date.
    """
    if interval == ScheduleInterval.DAILY:
        due, now = due_date, today
    else:
        due, now = month_key(due_date), month_key(today)
    if due < now:
        return InstallmentStatus.PAID, due_date
    if due == now:
        return InstallmentStatus.ACTIVE, None
    return InstallmentStatus.UPCOMING, None


def schedule_totals(
    terms: LoanTerms,
    start_date: Optional[date] = None,
    interval: ScheduleInterval = ScheduleInterval.MONTHLY,
) -> Tuple[Decimal, Decimal]:
    """Return ``(loan_amount, total_rent)`` for ``terms``.

    The rent total is the exact sum of the rent formula over every row,
    rounded once, so it can be used to check a schedule. Daily totals depend
    on the calendar and therefore need ``start_date``.
    """
    terms.validate()
    interval = ScheduleInterval(interval)
    if interval == ScheduleInterval.DAILY and start_date is None:
        raise ValueError("Daily totals need a start date")
    # monthly rent does not depend on the due dates
    rows = _rows(terms, start_date or date.today(), interval)
    rent = sum((exact for _, _, exact in rows), Decimal(0))
    return from_cents(to_cents(terms.loan_amount)), from_cents(round_cents(rent))


def generate_schedule(
    terms: LoanTerms,
    start_date: Optional[date] = None,
    today: Optional[date] = None,
    existing: Optional[Sequence[Installment]] = None,
    interval: ScheduleInterval = ScheduleInterval.MONTHLY,
) -> Schedule:
    """Generate the installment schedule for ``terms``.

    Parameters
    ----------
    terms: LoanTerms
        Financing terms of the application.
    start_date: date, optional
        First due date. Defaults to :func:`default_start_date` of ``today``.
    today: date, optional
        Reference date for the initial paid/active/upcoming classification.
        Defaults to the current date.
    existing: sequence of Installment, optional
        Schedule already stored for the application. When it is non-empty it
        is returned unchanged; a schedule is never regenerated implicitly.
    interval: ScheduleInterval
        ``monthly`` (one row per month) or ``daily`` (one row per day).

    Returns
    -------
    Schedule
        Installments ordered by due date, or an empty list when the terms are
        not yet schedulable (non-positive price or tenure).
    """
    if existing:
        logger.info("Schedule already exists (%d rows); skipping generation", len(existing))
        return list(existing)
    try:
        terms.validate()
    except InvalidTermsError as exc:
        logger.info("Terms not schedulable: %s", exc)
        return []

    today = today or date.today()
    start_date = start_date or default_start_date(today)
    interval = ScheduleInterval(interval)
    rows = _rows(terms, start_date, interval)
    rents = round_running(exact for _, _, exact in rows)

    schedule: Schedule = [
        _installment(due_date, principal + rent, today, interval)
        for (due_date, principal, _), rent in zip(rows, rents)
    ]

    logger.debug(
        "Generated %s schedule: %d rows starting %s", interval.value, len(schedule), start_date.isoformat()
    )
    return schedule


def _installment(due_date: date, amount_cents: int, today: date, interval: ScheduleInterval) -> Installment:
    status, paid_date = _status_for(due_date, today, interval)
    return Installment(due_date=due_date, amount=from_cents(amount_cents), status=status, paid_date=paid_date)


def mark_installment_paid(
    schedule: Sequence[Installment],
    index: int,
    paid_date: date,
    payment_method: Optional[PaymentMethod] = None,
    proof_document: Optional[ProofDocument] = None,
) -> Schedule:
    """Return a copy of ``schedule`` with installment ``index`` marked paid.

    Each installment is paid exactly once; paying an already paid row raises
    ``InvalidInstallmentStateError``.
    """
    if not 0 <= index < len(schedule):
        raise IndexError(f"Installment index {index} out of range for {len(schedule)} rows")
    current = schedule[index]
    if current.is_paid:
        raise InvalidInstallmentStateError(f"Installment {index} due {current.due_date} is already paid")
    updated = replace(
        current,
        status=InstallmentStatus.PAID,
        paid_date=paid_date,
        payment_method=PaymentMethod(payment_method) if payment_method else None,
        proof_document=proof_document,
    )
    result = list(schedule)
    result[index] = updated
    return result


def validate_schedule(
    schedule: Sequence[Installment],
    terms: Optional[LoanTerms] = None,
    interval: ScheduleInterval = ScheduleInterval.MONTHLY,
) -> List[str]:
    """Return a list of problems found in ``schedule`` (empty when valid).

    Checks ordering, one row per month for monthly schedules, the
    paid/paid-date pairing and, when ``terms`` are given, that the rows add
    up to loan amount plus rent within one cent.
    """
    errors: List[str] = []
    for i in range(1, len(schedule)):
        previous, current = schedule[i - 1], schedule[i]
        if current.due_date < previous.due_date:
            errors.append(f"Installment {i + 1} due {current.due_date} precedes {previous.due_date}")
        if interval == ScheduleInterval.MONTHLY and month_key(current.due_date) == month_key(previous.due_date):
            errors.append(f"Installments {i} and {i + 1} fall in the same month {current.due_date:%Y-%m}")

    for i, row in enumerate(schedule):
        if row.is_paid and row.paid_date is None:
            errors.append(f"Installment {i + 1} is paid but has no paid date")
        if not row.is_paid and row.paid_date is not None:
            errors.append(f"Installment {i + 1} is {row.status.value} but has a paid date")
        if row.amount < 0:
            errors.append(f"Installment {i + 1} has a negative amount")

    if terms is not None and schedule:
        try:
            loan_amount, total_rent = schedule_totals(terms, schedule[0].due_date, interval)
        except InvalidTermsError as exc:
            errors.append(str(exc))
        else:
            expected = to_cents(loan_amount + total_rent)
            actual = sum(to_cents(row.amount) for row in schedule)
            if abs(actual - expected) > CONSERVATION_TOLERANCE_CENTS:
                errors.append(
                    f"Schedule total {from_cents(actual)} does not match loan plus rent {from_cents(expected)}"
                )
    return errors


def summarize_schedule(terms: LoanTerms, schedule: Sequence[Installment]) -> Dict[str, object]:
    """Aggregate figures for a schedule, in the shape used by exports."""
    total_cents = sum(to_cents(row.amount) for row in schedule)
    paid_cents = sum(to_cents(row.amount) for row in schedule if row.is_paid)
    loan_cents = to_cents(terms.loan_amount)
    return {
        "vehicle_price": from_cents(to_cents(terms.vehicle_price)),
        "down_payment": from_cents(to_cents(terms.down_payment)),
        "loan_amount": from_cents(loan_cents),
        "total_rent": from_cents(total_cents - loan_cents) if schedule else from_cents(0),
        "total_payable": from_cents(total_cents),
        "total_paid": from_cents(paid_cents),
        "outstanding": from_cents(total_cents - paid_cents),
        "installments": len(schedule),
        "paid_installments": sum(1 for row in schedule if row.is_paid),
        "first_payment": schedule[0].amount if schedule else from_cents(0),
        "first_due_date": schedule[0].due_date.isoformat() if schedule else None,
        "last_due_date": schedule[-1].due_date.isoformat() if schedule else None,
        "calculation_method": CalculationMethod(terms.calculation_method).value,
    }
