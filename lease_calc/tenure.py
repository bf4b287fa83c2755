"""Tenure parsing and formatting.

Tenures are entered by people ("12 Months", "2 years", "1 Year 6 Months") and
stored as strings on the application record. The engine works in whole
months, so this module converts between the two representations.
"""

from __future__ import annotations

import re
from typing import Optional

from .exceptions import FormatError
from .logging import get_logger

logger = get_logger(__name__)

DEFAULT_TENURE = "12 Months"

_TENURE_RE = re.compile(
    r"^\s*(?:(?P<years>\d+)\s*years?)?\s*(?:(?P<months>\d+)\s*months?)?\s*$",
    re.IGNORECASE,
)


def parse_tenure_to_months(text: str) -> int:
    """Return the number of months described by ``text``.

    Accepts ``"<n> Years"``, ``"<n> Months"`` and the combination
    ``"<n> Years <m> Months"``; the unit is case-insensitive and the plural
    ``s`` optional. Raises ``FormatError`` for anything else, including a
    total of zero months.
    """
    if not isinstance(text, str):
        raise FormatError(f"Tenure must be a string, got {type(text).__name__}")
    match = _TENURE_RE.match(text)
    if not match or (match.group("years") is None and match.group("months") is None):
        raise FormatError(f"Unrecognised tenure: {text!r}")
    years = int(match.group("years") or 0)
    months = int(match.group("months") or 0)
    total = years * 12 + months
    if total < 1:
        raise FormatError(f"Tenure must be at least one month: {text!r}")
    return total


def parse_tenure(text: Optional[str], default: str = DEFAULT_TENURE) -> int:
    """Parse ``text`` and fall back to ``default`` when it is missing or invalid.

    The default itself must be valid; a bad default raises ``FormatError``.
    """
    if text:
        try:
            return parse_tenure_to_months(text)
        except FormatError:
            logger.warning("Unparseable tenure %r, falling back to %r", text, default)
    return parse_tenure_to_months(default)


def format_months_to_tenure(months: int) -> str:
    """Render a month count as a canonical tenure string.

    Whole years render as ``"N Years"`` (``"1 Year"`` for one), everything
    else as ``"M Months"``.
    """
    if months < 1:
        raise FormatError(f"Tenure must be at least one month, got {months}")
    if months % 12 == 0:
        years = months // 12
        return f"{years} Year" if years == 1 else f"{years} Years"
    return f"{months} Months"
