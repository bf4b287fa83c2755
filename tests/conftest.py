"""Pytest configuration and fixtures."""

import logging
from datetime import date
from decimal import Decimal

import pytest

from lease_calc.data_models import LoanTerms
from lease_calc.engine import generate_schedule


@pytest.fixture
def today() -> date:
    """Fixed reference date for status classification."""
    return date(2026, 10, 19)


@pytest.fixture
def terms() -> LoanTerms:
    """100,000 vehicle, 20,000 down, 12 months at 12 % rent."""
    return LoanTerms(
        vehicle_price=Decimal("100000"),
        down_payment=Decimal("20000"),
        tenure_months=12,
        annual_rent_rate=Decimal("0.12"),
    )


@pytest.fixture
def seasoned_schedule(terms: LoanTerms, today: date):
    """Schedule started in August: two paid rows, October active, the rest upcoming."""
    return generate_schedule(terms, start_date=date(2026, 8, 1), today=today)


@pytest.fixture(autouse=True)
def restore_root_logger():
    """Undo handler and level changes made by setup_logging."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
