"""Configuration management for lease-calc."""

from __future__ import annotations

import os
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Optional

from .exceptions import ConfigurationError


@dataclass
class LeaseCalcConfig:
    """Main configuration for lease-calc."""

    database_url: str = "sqlite:///lease_calc.sqlite3"
    log_level: str = "INFO"
    log_format: str = "standard"
    default_tenure: str = "12 Months"
    default_annual_rent_rate: Decimal = Decimal("0.12")
    daily_gap_days: int = 3
    settlement_policy_file: Optional[Path] = None

    @classmethod
    def from_env(cls) -> "LeaseCalcConfig":
        """Create config from environment variables."""
        try:
            rent_rate = Decimal(os.getenv("DEFAULT_ANNUAL_RENT_RATE", "0.12"))
        except InvalidOperation as exc:
            raise ConfigurationError("DEFAULT_ANNUAL_RENT_RATE must be a decimal fraction") from exc
        try:
            gap_days = int(os.getenv("DAILY_GAP_DAYS", "3"))
        except ValueError as exc:
            raise ConfigurationError("DAILY_GAP_DAYS must be an integer") from exc
        if gap_days < 1:
            raise ConfigurationError("DAILY_GAP_DAYS must be at least 1")

        policy_file = os.getenv("SETTLEMENT_POLICY_FILE")

        return cls(
            database_url=os.getenv("LEASE_CALC_DATABASE_URL", "sqlite:///lease_calc.sqlite3"),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            log_format=os.getenv("LOG_FORMAT", "standard"),
            default_tenure=os.getenv("DEFAULT_TENURE", "12 Months"),
            default_annual_rent_rate=rent_rate,
            daily_gap_days=gap_days,
            settlement_policy_file=Path(policy_file) if policy_file else None,
        )
