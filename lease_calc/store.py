"""Persistence layer for applications and their schedules.

This is a reference implementation of the record store the engine reads
terms from and writes schedules to. It accepts any SQLAlchemy-compatible URL
and defaults to SQLite for local use. Money figures are stored as integer
cents and the schedule as a JSON array on the application row.

Schedules are only ever rewritten as a whole. Every write names the version
it was based on; a write against a stale version is rejected so that two
concurrent payment confirmations cannot silently overwrite each other.
"""

from __future__ import annotations

import json
from datetime import date, datetime
from typing import Any, Dict, Optional, Tuple
from uuid import uuid4

from sqlalchemy import Column, DateTime, Integer, String, Text, create_engine, update
from sqlalchemy.orm import declarative_base, sessionmaker

from .aggregation import DEFAULT_DAILY_GAP_DAYS, convert_schedule_interval, normalize_interval
from .config import LeaseCalcConfig
from .data_models import (
    CalculationMethod,
    LoanTerms,
    PaymentMethod,
    ProofDocument,
    Schedule,
    ScheduleInterval,
)
from .engine import generate_schedule, mark_installment_paid
from .exceptions import ApplicationNotFoundError, ScheduleConflictError
from .logging import get_logger
from .money import as_decimal, from_cents, to_cents
from .serialization import (
    parse_calculation_method,
    schedule_from_records,
    schedule_to_records,
    terms_from_record,
)
from .tenure import DEFAULT_TENURE, format_months_to_tenure, parse_tenure

logger = get_logger(__name__)

Base = declarative_base()


class ApplicationModel(Base):
    __tablename__ = "applications"

    id = Column(String(64), primary_key=True)
    vehicle_price_cents = Column(Integer, nullable=False)
    down_payment_cents = Column(Integer, nullable=False, default=0)
    tenure = Column(String(32), nullable=True)
    annual_rent_rate = Column(String(32), nullable=False, default="0")
    calculation_method = Column(String(32), nullable=False, default=CalculationMethod.AMORTIZED_FIXED.value)
    interval = Column(String(16), nullable=True)
    schedule_json = Column(Text, nullable=False, default="[]")
    version = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class ApplicationStore:
    """Database-backed application store."""

    def __init__(
        self,
        url: str,
        *,
        default_tenure: str = DEFAULT_TENURE,
        daily_gap_days: int = DEFAULT_DAILY_GAP_DAYS,
    ) -> None:
        self._engine = create_engine(url, future=True)
        Base.metadata.create_all(self._engine)
        self._session_factory = sessionmaker(self._engine, expire_on_commit=False, future=True)
        self._default_tenure = default_tenure
        self._daily_gap_days = daily_gap_days

    def add_application(
        self,
        terms: LoanTerms,
        *,
        tenure: Optional[str] = None,
        interval: str = "Monthly",
        application_id: Optional[str] = None,
    ) -> str:
        """Store a new application and return its id.

        ``tenure`` is the human-entered string; it defaults to the canonical
        rendering of ``terms.tenure_months``.
        """
        if tenure is None:
            tenure = format_months_to_tenure(terms.tenure_months) if terms.tenure_months >= 1 else None
        row = ApplicationModel(
            id=application_id or uuid4().hex,
            vehicle_price_cents=to_cents(terms.vehicle_price),
            down_payment_cents=to_cents(terms.down_payment),
            tenure=tenure,
            annual_rent_rate=str(terms.annual_rent_rate),
            calculation_method=CalculationMethod(terms.calculation_method).value,
            interval=interval,
            schedule_json="[]",
            version=0,
        )
        with self._session_factory() as session:
            session.add(row)
            session.commit()
        logger.info("Stored application %s", row.id)
        return row.id

    def import_application(self, record: Dict[str, Any]) -> str:
        """Store an application record exported from the intake system.

        Terms come from ``vehicle``, ``downPayment`` and ``installmentPlan``;
        a schedule already present under ``installmentPlan.schedule`` is kept
        as is (after the usual record repairs).
        """
        plan = record.get("installmentPlan") or {}
        terms = terms_from_record(record, self._default_tenure)
        schedule = schedule_from_records(plan.get("schedule"))
        row = ApplicationModel(
            id=str(record.get("id") or uuid4().hex),
            vehicle_price_cents=to_cents(terms.vehicle_price),
            down_payment_cents=to_cents(terms.down_payment),
            tenure=plan.get("tenure"),
            annual_rent_rate=str(terms.annual_rent_rate),
            calculation_method=terms.calculation_method.value,
            interval=plan.get("interval"),
            schedule_json=json.dumps(schedule_to_records(schedule)),
            version=0,
        )
        with self._session_factory() as session:
            session.add(row)
            session.commit()
        logger.info("Imported application %s with %d installments", row.id, len(schedule))
        return row.id

    def _load(self, application_id: str) -> ApplicationModel:
        with self._session_factory() as session:
            row = session.get(ApplicationModel, application_id)
        if row is None:
            raise ApplicationNotFoundError(f"Application {application_id} not found")
        return row

    def get_terms(self, application_id: str) -> LoanTerms:
        row = self._load(application_id)
        return LoanTerms(
            vehicle_price=from_cents(row.vehicle_price_cents),
            down_payment=from_cents(row.down_payment_cents),
            tenure_months=parse_tenure(row.tenure, self._default_tenure),
            annual_rent_rate=as_decimal(row.annual_rent_rate),
            calculation_method=parse_calculation_method(row.calculation_method),
        )

    def get_interval(self, application_id: str) -> Optional[str]:
        return self._load(application_id).interval

    def get_schedule(self, application_id: str) -> Tuple[Schedule, int]:
        """Return the stored schedule and the version it was read at."""
        row = self._load(application_id)
        return schedule_from_records(json.loads(row.schedule_json)), row.version

    def save_schedule(
        self,
        application_id: str,
        schedule: Schedule,
        expected_version: int,
        *,
        interval: Optional[str] = None,
    ) -> int:
        """Replace the stored schedule and return the new version.

        Raises ``ScheduleConflictError`` if the application was written since
        ``expected_version`` was read.
        """
        values = {
            "schedule_json": json.dumps(schedule_to_records(schedule)),
            "version": expected_version + 1,
            "updated_at": datetime.utcnow(),
        }
        if interval is not None:
            values["interval"] = interval
        with self._session_factory() as session:
            result = session.execute(
                update(ApplicationModel)
                .where(ApplicationModel.id == application_id)
                .where(ApplicationModel.version == expected_version)
                .values(**values)
            )
            session.commit()
        if result.rowcount == 0:
            current = self._load(application_id)
            raise ScheduleConflictError(
                f"Application {application_id} is at version {current.version}, not {expected_version}"
            )
        return expected_version + 1

    def ensure_schedule(
        self,
        application_id: str,
        *,
        today: Optional[date] = None,
        start_date: Optional[date] = None,
    ) -> Schedule:
        """Generate and store a schedule unless one already exists."""
        existing, version = self.get_schedule(application_id)
        if existing:
            logger.info("Application %s already has a schedule", application_id)
            return existing
        terms = self.get_terms(application_id)
        interval = normalize_interval(self.get_interval(application_id)) or ScheduleInterval.MONTHLY
        schedule = generate_schedule(terms, start_date=start_date, today=today, interval=interval)
        if schedule:
            self.save_schedule(application_id, schedule, version)
        return schedule

    def record_payment(
        self,
        application_id: str,
        index: int,
        paid_date: date,
        payment_method: Optional[PaymentMethod] = None,
        proof_document: Optional[ProofDocument] = None,
    ) -> Schedule:
        """Mark one installment paid (read-modify-write of the whole schedule)."""
        schedule, version = self.get_schedule(application_id)
        updated = mark_installment_paid(schedule, index, paid_date, payment_method, proof_document)
        self.save_schedule(application_id, updated, version)
        logger.info("Recorded payment %d for application %s", index, application_id)
        return updated

    def convert_to_monthly(self, application_id: str) -> Schedule:
        """Aggregate a daily schedule in place and set the interval to Monthly."""
        schedule, version = self.get_schedule(application_id)
        interval = self.get_interval(application_id)
        tenure_months = self.get_terms(application_id).tenure_months
        converted, label = convert_schedule_interval(
            schedule, interval=interval, tenure_months=tenure_months, gap_days=self._daily_gap_days
        )
        if label != interval or len(converted) != len(schedule):
            self.save_schedule(application_id, converted, version, interval=label)
        return converted


def create_store_from_config(config: Optional[LeaseCalcConfig] = None) -> ApplicationStore:
    config = config or LeaseCalcConfig.from_env()
    return ApplicationStore(
        config.database_url,
        default_tenure=config.default_tenure,
        daily_gap_days=config.daily_gap_days,
    )
