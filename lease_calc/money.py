"""Fixed-point money helpers.

Amounts are exchanged as ``Decimal`` values with two places, but every sum
inside the engine is done on integer minor units (cents) so that totals are
exact regardless of how many installments are involved.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, List, Union

CENT = Decimal("0.01")

Number = Union[Decimal, int, str]


def quantize(value: Number) -> Decimal:
    """Round ``value`` to two decimal places (half up)."""
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def to_cents(value: Number) -> int:
    """Convert a money amount into integer cents, rounding half up."""
    return int((Decimal(value) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def from_cents(cents: int) -> Decimal:
    """Convert integer cents back into a two-place ``Decimal``."""
    return (Decimal(cents) / 100).quantize(CENT)


def round_cents(value: Decimal) -> int:
    """Round a fractional cent amount to a whole number of cents."""
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def sum_money(amounts: Iterable[Number]) -> Decimal:
    """Exact sum of money amounts."""
    return from_cents(sum(to_cents(a) for a in amounts))


def allocate(total_cents: int, parts: int) -> List[int]:
    """Split ``total_cents`` into ``parts`` shares by cumulative rounding.

    Share ``i`` is ``round(T*(i+1)/n) - round(T*i/n)``: the shares always sum to
    ``total_cents`` and each one is within a cent of ``T/n``.
    """
    if parts <= 0:
        return []
    total = Decimal(total_cents)
    shares = []
    previous = 0
    for i in range(1, parts + 1):
        cumulative = round_cents(total * i / parts)
        shares.append(cumulative - previous)
        previous = cumulative
    return shares


def as_decimal(value: Union[Number, float]) -> Decimal:
    """Coerce ``value`` to ``Decimal``; floats go through ``str`` to avoid binary noise."""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    return Decimal(value)


def round_running(amounts: Iterable[Decimal]) -> List[int]:
    """Round exact cent amounts so that every running total stays rounded.

    Entry ``i`` is ``round(S_i) - round(S_{i-1})`` where ``S_i`` is the exact
    sum of the first ``i + 1`` amounts. The result therefore adds up to the
    exact total rounded once, however long the sequence is.
    """
    shares = []
    running = Decimal(0)
    previous = 0
    for amount in amounts:
        running += amount
        cumulative = round_cents(running)
        shares.append(cumulative - previous)
        previous = cumulative
    return shares
