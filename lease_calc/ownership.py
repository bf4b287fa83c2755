"""Ownership accounting.

At every point of a lease-to-own schedule the vehicle's value is split
between the customer (down payment plus the principal repaid so far) and the
financier (everything else). These values are derived on demand for display
and export and are never stored.

Prices and down payments are rounded to the cent (half up) before anything
is derived from them, so the two shares always add up to the cent-rounded
vehicle price.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import List, Optional, Sequence, Union

from .data_models import Installment, LoanTerms, OwnershipMilestone, OwnershipSplit, OwnershipTimeline
from .money import as_decimal, quantize
from .utils import add_months

HUNDRED = Decimal(100)
ZERO = Decimal("0")

# (threshold percentage, milestone key, label), highest first
MILESTONES = [
    (Decimal(100), "full_owner", "100% Ownership - Full Owner!"),
    (Decimal(95), "almost_there", "95% Ownership - Almost There!"),
    (Decimal(75), "three_quarters", "75% Ownership"),
    (Decimal(50), "halfway", "50% Ownership - Halfway!"),
    (Decimal(25), "quarter", "25% Ownership"),
]


def principal_per_month(vehicle_price: Decimal, down_payment: Decimal, tenure_months: int) -> Decimal:
    """Straight-line principal credited per installment, rounded to the cent."""
    if tenure_months <= 0:
        return ZERO
    return quantize((vehicle_price - down_payment) / Decimal(tenure_months))


def _split(vehicle_price: Decimal, down_payment: Decimal, per_month: Decimal, payment_index: int) -> OwnershipSplit:
    vehicle_price = quantize(vehicle_price)
    down_payment = quantize(down_payment)
    payments_counted = max(payment_index + 1, 0)
    customer = quantize(down_payment + per_month * payments_counted)
    customer = max(min(customer, vehicle_price), ZERO) if vehicle_price > 0 else ZERO
    financier = vehicle_price - customer
    if vehicle_price > 0:
        percentage = min(max(customer / vehicle_price * HUNDRED, ZERO), HUNDRED)
    else:
        percentage = ZERO
    return OwnershipSplit(
        customer_share=quantize(customer),
        financier_share=quantize(financier),
        ownership_percentage=quantize(percentage),
        principal_per_month=per_month,
    )


def ownership_at(
    vehicle_price: Union[Decimal, int, str],
    down_payment: Union[Decimal, int, str],
    tenure_months: int,
    payment_index: int,
) -> OwnershipSplit:
    """Return the ownership split after payment ``payment_index`` (0-based).

    The customer is credited with the down payment plus one principal portion
    for every installment up to and including ``payment_index``, capped at the
    vehicle price. An index of ``-1`` means no installment has been paid yet.
    A non-positive price yields a zero split with 0 %. Sub-cent amounts are
    rounded to the cent first; ``customer_share + financier_share`` equals
    ``quantize(vehicle_price)``.
    """
    price = as_decimal(vehicle_price)
    down = as_decimal(down_payment)
    return _split(price, down, principal_per_month(price, down, tenure_months), payment_index)


def ownership_schedule(terms: LoanTerms, count: Optional[int] = None) -> List[OwnershipSplit]:
    """Ownership splits for the first ``count`` payments (default: the tenure)."""
    count = terms.tenure_months if count is None else count
    per_month = principal_per_month(terms.vehicle_price, terms.down_payment, terms.tenure_months)
    return [_split(terms.vehicle_price, terms.down_payment, per_month, i) for i in range(count)]


def milestone_label(percentage: Decimal) -> str:
    if percentage >= 100:
        return "Full Owner"
    if percentage >= 95:
        return "Almost There"
    if percentage >= 75:
        return "Three Quarters"
    if percentage >= 50:
        return "Halfway"
    if percentage >= 25:
        return "Quarter"
    return "Getting Started"


def _milestone_for(index: int, percentage: Decimal):
    if index == 0:
        return "first_payment", "First Payment"
    for threshold, key, label in MILESTONES:
        if percentage >= threshold:
            return key, label
    return None, f"Payment {index + 1}"


def ownership_timeline(
    terms: LoanTerms, schedule: Sequence[Installment], today: Optional[date] = None
) -> OwnershipTimeline:
    """Build the customer-facing ownership timeline for a schedule.

    Each row gets the ownership reached once it is paid and a milestone tag.
    Current ownership follows the last paid row; with nothing paid it is the
    down-payment share. The completion estimate assumes one payment per month
    after the last paid row.
    """
    if not schedule or terms.vehicle_price <= 0:
        return OwnershipTimeline(total_payments=len(schedule))

    today = today or date.today()
    splits = ownership_schedule(terms, len(schedule))
    milestones: List[OwnershipMilestone] = []
    completed = 0
    last_paid = -1
    for index, (row, split) in enumerate(zip(schedule, splits)):
        if row.is_paid:
            status = "paid"
            completed += 1
            last_paid = index
        elif row.due_date < today:
            status = "missed"
        else:
            status = "upcoming"
        key, label = _milestone_for(index, split.ownership_percentage)
        milestones.append(
            OwnershipMilestone(
                due_date=row.due_date,
                payment_index=index,
                ownership_amount=split.customer_share,
                ownership_percentage=split.ownership_percentage,
                payment_status=status,
                label=label,
                milestone=key,
            )
        )

    if last_paid >= 0:
        current = milestones[last_paid].ownership_percentage
    else:
        current = ownership_at(terms.vehicle_price, terms.down_payment, terms.tenure_months, -1).ownership_percentage

    remaining = len(schedule) - completed
    completion = None
    if remaining > 0 and last_paid >= 0:
        completion = add_months(schedule[last_paid].due_date, remaining)

    return OwnershipTimeline(
        milestones=milestones,
        current_ownership=current,
        completed_payments=completed,
        total_payments=len(schedule),
        estimated_completion_date=completion,
    )
