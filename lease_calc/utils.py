"""Utility functions for the lease calculator.

This module provides helpers for parsing user input into Python data types and
for handling calendar arithmetic: adding months, locating the first day of the
following month, measuring fractional month distances and parsing ISO-8601
dates. It uses Python's ``datetime`` and ``calendar`` modules only.
"""

from __future__ import annotations

import calendar
from datetime import date
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Tuple


def parse_year_month(ym: str) -> date:
    """Parse a YYYY-MM string into a ``date`` object (first day of month).

    Parameters
    ----------
    ym: str
        A string in the form ``"YYYY-MM"``. The day component, if present,
        will be ignored.

    Raises
    ------
    ValueError
        If the string is not a valid year-month.
    """
    try:
        parts = ym.split("-")
        if len(parts) < 2:
            raise ValueError
        return date(int(parts[0]), int(parts[1]), 1)
    except (AttributeError, TypeError, ValueError) as exc:
        raise ValueError(f"Invalid year-month string: {ym}") from exc


def parse_iso_date(value: str) -> date:
    """Parse a ``YYYY-MM-DD`` string (a trailing time component is ignored)."""
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError as exc:
        raise ValueError(f"Invalid ISO date: {value}") from exc


def add_months(dt: date, months: int) -> date:
    """Return a new date a number of months after ``dt``.

    The day of the month is clamped to the last valid day if needed (e.g.,
    adding one month to Jan 31 yields Feb 28 or 29).
    """
    year = dt.year + (dt.month - 1 + months) // 12
    month = (dt.month - 1 + months) % 12 + 1
    day = min(dt.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def first_of_next_month(dt: date) -> date:
    """Return the first day of the month following ``dt``."""
    return add_months(dt.replace(day=1), 1)


def month_key(dt: date) -> Tuple[int, int]:
    return dt.year, dt.month


def months_between(start: date, end: date) -> Decimal:
    """Return the fractional number of months from ``start`` to ``end``.

    Whole months are counted with :func:`add_months`; the remainder is the
    fraction of the following month that has elapsed. The result is rounded
    to one decimal place and is negative when ``end`` precedes ``start``.
    """
    if end < start:
        return -months_between(end, start)
    whole = (end.year - start.year) * 12 + (end.month - start.month)
    if add_months(start, whole) > end:
        whole -= 1
    anchor = add_months(start, whole)
    next_anchor = add_months(start, whole + 1)
    fraction = Decimal((end - anchor).days) / Decimal((next_anchor - anchor).days)
    return (Decimal(whole) + fraction).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP)


def decimal_from_str(value: str) -> Decimal:
    """Convert a numeric string into a ``Decimal``.

    The function strips any commas and handles both integer and float-like
    strings. It raises ``ValueError`` if conversion fails.
    """
    try:
        cleaned = str(value).replace(",", "").strip()
        return Decimal(cleaned)
    except InvalidOperation as exc:
        raise ValueError(f"Invalid numeric value: {value}") from exc
