"""Data models for the lease calculator.

This module defines the dataclasses and enumerations used throughout the
engine: the loan terms an application is financed under, the individual
installments of a schedule and the derived (never persisted) ownership and
settlement values. Money is always a two-place ``Decimal``; dates are
``datetime.date``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import List, Optional

from .exceptions import InvalidInstallmentStateError, InvalidTermsError


class CalculationMethod(str, Enum):
    AMORTIZED_FIXED = "amortized_fixed"
    DECLINING = "declining"


class InstallmentStatus(str, Enum):
    UPCOMING = "upcoming"
    ACTIVE = "active"
    PAID = "paid"


class PaymentMethod(str, Enum):
    BANK_ACCOUNT = "bank_account"
    CHEQUE = "cheque"
    CASH = "cash"


class ScheduleInterval(str, Enum):
    DAILY = "daily"
    MONTHLY = "monthly"


@dataclass(frozen=True)
class LoanTerms:
    """Financing terms of one application.

    Attributes
    ----------
    vehicle_price: Decimal
        Full price of the vehicle.
    down_payment: Decimal
        Amount paid up front by the customer. Must not exceed the price.
    tenure_months: int
        Number of monthly installments.
    annual_rent_rate: Decimal
        Annual rental rate as a fraction (``Decimal("0.12")`` for 12 %).
    calculation_method: CalculationMethod
        How the schedule was calculated. Recorded alongside the schedule.
    """

    vehicle_price: Decimal
    down_payment: Decimal
    tenure_months: int
    annual_rent_rate: Decimal = Decimal("0")
    calculation_method: CalculationMethod = CalculationMethod.AMORTIZED_FIXED

    @property
    def loan_amount(self) -> Decimal:
        """Financed amount; always derived from price and down payment."""
        return self.vehicle_price - self.down_payment

    def validate(self) -> None:
        """Raise ``InvalidTermsError`` if these terms cannot be scheduled."""
        if self.tenure_months < 1:
            raise InvalidTermsError(f"Tenure must be at least one month, got {self.tenure_months}")
        if self.vehicle_price <= 0:
            raise InvalidTermsError(f"Vehicle price must be positive, got {self.vehicle_price}")
        if self.down_payment < 0:
            raise InvalidTermsError(f"Down payment cannot be negative, got {self.down_payment}")
        if self.down_payment > self.vehicle_price:
            raise InvalidTermsError(
                f"Down payment {self.down_payment} exceeds vehicle price {self.vehicle_price}"
            )
        if self.annual_rent_rate < 0:
            raise InvalidTermsError(f"Annual rent rate cannot be negative, got {self.annual_rent_rate}")


@dataclass(frozen=True)
class ProofDocument:
    """Reference to an uploaded proof of payment."""

    name: str
    url: str
    uploaded_at: Optional[str] = None


@dataclass(frozen=True)
class Installment:
    """One scheduled payment obligation.

    ``paid_date`` is set exactly when ``status`` is ``paid``; construction
    fails otherwise.
    """

    due_date: date
    amount: Decimal
    status: InstallmentStatus = InstallmentStatus.UPCOMING
    paid_date: Optional[date] = None
    payment_method: Optional[PaymentMethod] = None
    proof_document: Optional[ProofDocument] = None
    payment_type: str = "installment"

    def __post_init__(self) -> None:
        if self.status == InstallmentStatus.PAID and self.paid_date is None:
            raise InvalidInstallmentStateError(f"Paid installment due {self.due_date} has no paid date")
        if self.status != InstallmentStatus.PAID and self.paid_date is not None:
            raise InvalidInstallmentStateError(
                f"Installment due {self.due_date} is {self.status.value} but has a paid date"
            )

    @property
    def is_paid(self) -> bool:
        return self.status == InstallmentStatus.PAID


Schedule = List[Installment]


@dataclass(frozen=True)
class OwnershipSplit:
    """Notional division of the vehicle's value after a given payment."""

    customer_share: Decimal
    financier_share: Decimal
    ownership_percentage: Decimal
    principal_per_month: Decimal


@dataclass(frozen=True)
class SettlementQuote:
    """Early-settlement payoff figures.

    ``final_amount`` is always ``original_remaining - discount`` and neither
    value is ever negative.
    """

    original_remaining: Decimal
    discount: Decimal
    final_amount: Decimal
    percentage: Decimal = Decimal("0")
    months_early: Decimal = Decimal("0")
    remaining_payments: int = 0
    as_of: Optional[date] = None


@dataclass
class OwnershipMilestone:
    """Ownership reached after one row of the schedule."""

    due_date: date
    payment_index: int
    ownership_amount: Decimal
    ownership_percentage: Decimal
    payment_status: str  # "paid", "upcoming" or "missed"
    label: str
    milestone: Optional[str] = None


@dataclass
class OwnershipTimeline:
    milestones: List[OwnershipMilestone] = field(default_factory=list)
    current_ownership: Decimal = Decimal("0")
    completed_payments: int = 0
    total_payments: int = 0
    estimated_completion_date: Optional[date] = None
