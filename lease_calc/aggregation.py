"""Schedule interval detection and daily-to-monthly aggregation.

Older applications may carry a daily schedule, sometimes without a reliable
``interval`` field on the record. ``looks_daily`` guesses the granularity from
the due dates and ``aggregate_daily_to_monthly`` folds such a schedule into one
installment per calendar month without losing a cent.
"""

from __future__ import annotations

from statistics import median
from typing import List, Optional, Sequence, Tuple

from .data_models import Installment, InstallmentStatus, Schedule, ScheduleInterval
from .logging import get_logger
from .money import sum_money
from .utils import month_key

logger = get_logger(__name__)

DEFAULT_DAILY_GAP_DAYS = 3

# Entries per tenure month above which a schedule cannot be monthly.
EXCESS_ENTRIES_FACTOR = 1.5


def normalize_interval(interval: Optional[str]) -> Optional[ScheduleInterval]:
    """Map a stored interval string ("Daily", "monthly", ...) to an enum, or ``None``."""
    value = (interval or "").strip().lower()
    if value == ScheduleInterval.DAILY.value:
        return ScheduleInterval.DAILY
    if value == ScheduleInterval.MONTHLY.value:
        return ScheduleInterval.MONTHLY
    return None


def looks_daily(
    schedule: Sequence[Installment],
    tenure_months: Optional[int] = None,
    interval: Optional[str] = None,
    gap_days: int = DEFAULT_DAILY_GAP_DAYS,
) -> bool:
    """Return True when ``schedule`` appears to have daily granularity.

    An explicit ``interval`` ("Daily" / "Monthly") always wins. Otherwise the
    schedule is daily-like when the median gap between consecutive due dates
    is at most ``gap_days`` days, or when it has materially more rows than
    ``tenure_months`` monthly installments would produce.
    """
    explicit = normalize_interval(interval)
    if explicit is not None:
        return explicit == ScheduleInterval.DAILY
    if not schedule:
        return False

    if tenure_months and len(schedule) > tenure_months * EXCESS_ENTRIES_FACTOR:
        return True

    dates = sorted(row.due_date for row in schedule)
    gaps = [(b - a).days for a, b in zip(dates, dates[1:])]
    if not gaps:
        return False
    return median(gaps) <= gap_days


def _aggregate_status(items: Sequence[Installment]) -> InstallmentStatus:
    statuses = {row.status for row in items}
    if InstallmentStatus.UPCOMING in statuses:
        return InstallmentStatus.UPCOMING
    if InstallmentStatus.ACTIVE in statuses:
        return InstallmentStatus.ACTIVE
    return InstallmentStatus.PAID


def _merge_month(items: List[Installment]) -> Installment:
    status = _aggregate_status(items)
    paid_date = None
    payment_method = None
    proof_document = None
    if status == InstallmentStatus.PAID:
        # the month is settled on the day its last installment was paid
        paid_date = max((row.paid_date or row.due_date) for row in items)
        methods = {row.payment_method for row in items}
        if len(methods) == 1:
            payment_method = methods.pop()
        proofs = [row.proof_document for row in items if row.proof_document is not None]
        proof_document = proofs[-1] if proofs else None

    types = {row.payment_type for row in items}
    return Installment(
        due_date=items[0].due_date,
        amount=sum_money(row.amount for row in items),
        status=status,
        paid_date=paid_date,
        payment_method=payment_method,
        proof_document=proof_document,
        payment_type=types.pop() if len(types) == 1 else "installment",
    )


def aggregate_daily_to_monthly(schedule: Sequence[Installment]) -> Schedule:
    """Fold ``schedule`` into one installment per calendar month.

    Amounts are summed in cents, the due date is the earliest in the month
    and the month is ``paid`` only if every row in it is paid (any upcoming
    row makes it upcoming, otherwise any active row makes it active). A
    schedule that already has one row per month comes back unchanged.
    """
    if not schedule:
        return []

    groups: dict = {}
    for row in sorted(schedule, key=lambda r: r.due_date):
        groups.setdefault(month_key(row.due_date), []).append(row)

    result = [_merge_month(items) for _, items in sorted(groups.items())]
    if len(result) != len(schedule):
        logger.info("Aggregated %d daily rows into %d monthly rows", len(schedule), len(result))
    return result


def convert_schedule_interval(
    schedule: Sequence[Installment],
    interval: Optional[str] = None,
    tenure_months: Optional[int] = None,
    gap_days: int = DEFAULT_DAILY_GAP_DAYS,
) -> Tuple[Schedule, str]:
    """Return the schedule to store and the interval label to record.

    Daily-like schedules are aggregated and labelled ``"Monthly"``; anything
    else is returned as is with its current label (``"Monthly"`` when unset).
    """
    if looks_daily(schedule, tenure_months=tenure_months, interval=interval, gap_days=gap_days):
        return aggregate_daily_to_monthly(schedule), "Monthly"
    return list(schedule), interval or "Monthly"
