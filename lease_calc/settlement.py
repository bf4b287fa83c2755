"""Early-settlement quotes.

A customer may pay off every remaining installment at once. The payoff can be
discounted according to a settlement policy configured by the financier: a
flat percentage, or tiers keyed by how many months early the settlement
happens, with optional eligibility minimums and caps. Whatever the policy
says, a settlement always has a defined amount; when no discount applies the
customer simply pays the remaining balance.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol, Sequence

from .data_models import Installment, LoanTerms, SettlementQuote
from .exceptions import ConfigurationError, PolicyResolutionError
from .logging import get_logger
from .money import as_decimal, from_cents, round_cents, to_cents
from .utils import months_between, parse_iso_date

logger = get_logger(__name__)

ZERO = Decimal("0")
ONE = Decimal("1")


class DiscountPolicy(Protocol):
    """Anything that can turn a settlement situation into a discount fraction."""

    def resolve(
        self,
        as_of: date,
        months_early: Decimal,
        remaining_payments: int = 0,
        original_remaining: Decimal = ZERO,
    ) -> Decimal:
        ...


def parse_fraction(value: Any) -> Decimal:
    """Parse a percentage given either as a fraction (0.05) or in percent (5)."""
    fraction = as_decimal(value)
    if fraction < 0:
        raise ConfigurationError(f"Discount percentage cannot be negative: {value}")
    if fraction > 1:
        fraction = fraction / 100
    if fraction > 1:
        raise ConfigurationError(f"Discount percentage above 100%: {value}")
    return fraction


@dataclass
class FlatDiscountPolicy:
    """The same discount for every eligible settlement."""

    percentage: Decimal

    def resolve(self, as_of, months_early, remaining_payments=0, original_remaining=ZERO) -> Decimal:
        return self.percentage


@dataclass
class SettlementTier:
    """Discount for settlements between ``min_months_early`` and ``max_months_early``."""

    min_months_early: Decimal
    percentage: Decimal
    max_months_early: Optional[Decimal] = None

    def matches(self, months_early: Decimal) -> bool:
        if months_early < self.min_months_early:
            return False
        return self.max_months_early is None or months_early <= self.max_months_early


@dataclass
class SettlementPolicy:
    """Configurable settlement-discount settings.

    Attributes
    ----------
    is_active: bool
        Inactive policies never grant a discount.
    discount_percentage: Decimal, optional
        Flat discount fraction used when no tier matches.
    tiers: list of SettlementTier
        Checked in order; the first tier matching ``months_early`` wins.
    min_months_early: Decimal
        Settlements less than this many months before the last due date are
        not discounted.
    min_settlement_amount: Decimal
        Smallest remaining balance that qualifies.
    min_remaining_payments: int
        Fewest unpaid installments that qualify.
    max_discount_percentage: Decimal, optional
        Upper bound on the resolved fraction.
    max_discount_amount: Decimal, optional
        Upper bound on the discount in money; applied by the quote.
    valid_from, valid_until: date, optional
        Promotion window (inclusive).
    """

    is_active: bool = True
    discount_percentage: Optional[Decimal] = None
    tiers: List[SettlementTier] = field(default_factory=list)
    min_months_early: Decimal = ONE
    min_settlement_amount: Decimal = ZERO
    min_remaining_payments: int = 0
    max_discount_percentage: Optional[Decimal] = None
    max_discount_amount: Optional[Decimal] = None
    valid_from: Optional[date] = None
    valid_until: Optional[date] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SettlementPolicy":
        """Build a policy from a plain mapping (e.g. a JSON document)."""

        def optional(key, convert):
            value = data.get(key)
            return convert(value) if value is not None else None

        try:
            tiers = [
                SettlementTier(
                    min_months_early=as_decimal(tier.get("min_months_early", 1)),
                    max_months_early=(
                        as_decimal(tier["max_months_early"]) if tier.get("max_months_early") is not None else None
                    ),
                    percentage=parse_fraction(tier["percentage"]),
                )
                for tier in data.get("tiers") or []
            ]
            return cls(
                is_active=bool(data.get("is_active", True)),
                discount_percentage=optional("discount_percentage", parse_fraction),
                tiers=tiers,
                min_months_early=as_decimal(data.get("min_months_early", 1)),
                min_settlement_amount=as_decimal(data.get("min_settlement_amount", 0)),
                min_remaining_payments=int(data.get("min_remaining_payments", 0)),
                max_discount_percentage=optional("max_discount_percentage", parse_fraction),
                max_discount_amount=optional("max_discount_amount", as_decimal),
                valid_from=optional("valid_from", parse_iso_date),
                valid_until=optional("valid_until", parse_iso_date),
            )
        except (KeyError, TypeError, ValueError, ArithmeticError) as exc:
            raise ConfigurationError(f"Invalid settlement policy: {exc}") from exc

    def resolve(
        self,
        as_of: date,
        months_early: Decimal,
        remaining_payments: int = 0,
        original_remaining: Decimal = ZERO,
    ) -> Decimal:
        """Return the discount fraction for this settlement.

        Raises ``PolicyResolutionError`` when the settlement is not eligible or
        no rule applies.
        """
        if not self.is_active:
            raise PolicyResolutionError("Settlement policy is inactive")
        if self.valid_from and as_of < self.valid_from:
            raise PolicyResolutionError(f"Policy not valid before {self.valid_from}")
        if self.valid_until and as_of > self.valid_until:
            raise PolicyResolutionError(f"Policy expired on {self.valid_until}")
        if months_early < self.min_months_early:
            raise PolicyResolutionError(f"Settlement only {months_early} months early")
        if original_remaining < self.min_settlement_amount:
            raise PolicyResolutionError(f"Remaining balance {original_remaining} below minimum")
        if remaining_payments < self.min_remaining_payments:
            raise PolicyResolutionError(f"Only {remaining_payments} payments remaining")

        percentage = next((t.percentage for t in self.tiers if t.matches(months_early)), None)
        if percentage is None:
            percentage = self.discount_percentage
        if percentage is None:
            raise PolicyResolutionError(f"No discount rule for {months_early} months early")
        if self.max_discount_percentage is not None:
            percentage = min(percentage, self.max_discount_percentage)
        return percentage


def load_policy(path: Path) -> SettlementPolicy:
    """Load a ``SettlementPolicy`` from a JSON file."""
    try:
        with Path(path).open("r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as exc:
        raise ConfigurationError(f"Cannot read settlement policy {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigurationError(f"Settlement policy {path} must be a JSON object")
    return SettlementPolicy.from_dict(data)


def months_early_for(unpaid: Sequence[Installment], as_of: date, tenure_months: int = 0) -> Decimal:
    """Months between ``as_of`` and the last unpaid due date, never negative.

    Capped at ``tenure_months`` when it is positive.
    """
    if not unpaid:
        return ZERO
    last_due = max(row.due_date for row in unpaid)
    months = max(months_between(as_of, last_due), ZERO)
    if tenure_months > 0:
        months = min(months, Decimal(tenure_months))
    return months


def _resolve_fraction(
    policy: DiscountPolicy,
    as_of: date,
    months_early: Decimal,
    remaining_payments: int,
    original_remaining: Decimal,
) -> Decimal:
    """The policy's fraction clamped to [0, 1]; zero when it has none to give."""
    try:
        resolved = policy.resolve(as_of, months_early, remaining_payments, original_remaining)
    except PolicyResolutionError as exc:
        logger.info("No settlement discount: %s", exc)
        return ZERO
    if resolved is None:
        logger.info("No settlement discount: policy returned no percentage")
        return ZERO
    try:
        fraction: Optional[Decimal] = as_decimal(resolved)
    except (TypeError, ValueError, ArithmeticError):
        fraction = None
    if fraction is None or not fraction.is_finite():
        logger.warning("Ignoring unusable settlement discount %r", resolved)
        return ZERO
    return min(max(fraction, ZERO), ONE)


def quote_settlement(
    terms: LoanTerms,
    installments: Sequence[Installment],
    policy: Optional[DiscountPolicy],
    as_of: Optional[date] = None,
) -> SettlementQuote:
    """Quote an early payoff of every unpaid installment.

    ``installments`` may be the whole schedule; paid rows are ignored. The
    policy's fraction is applied to the unpaid total in cents. A missing
    policy, a ``PolicyResolutionError``, a missing or unusable fraction
    and a non-positive fraction all mean no discount.
    """
    as_of = as_of or date.today()
    unpaid = [row for row in installments if not row.is_paid]
    remaining_cents = sum(to_cents(row.amount) for row in unpaid)
    original_remaining = from_cents(remaining_cents)
    months_early = months_early_for(unpaid, as_of, terms.tenure_months)

    percentage = ZERO
    if policy is not None and unpaid:
        percentage = _resolve_fraction(policy, as_of, months_early, len(unpaid), original_remaining)

    discount_cents = round_cents(Decimal(remaining_cents) * percentage)
    cap = getattr(policy, "max_discount_amount", None)
    if cap is not None:
        discount_cents = min(discount_cents, max(to_cents(cap), 0))

    return SettlementQuote(
        original_remaining=original_remaining,
        discount=from_cents(discount_cents),
        final_amount=from_cents(remaining_cents - discount_cents),
        percentage=percentage,
        months_early=months_early,
        remaining_payments=len(unpaid),
        as_of=as_of,
    )
