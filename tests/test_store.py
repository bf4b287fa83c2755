"""Tests for the SQLAlchemy application store."""

from datetime import date
from decimal import Decimal

import pytest

from lease_calc.config import LeaseCalcConfig
from lease_calc.data_models import CalculationMethod, InstallmentStatus, LoanTerms, PaymentMethod
from lease_calc.exceptions import ApplicationNotFoundError, InvalidInstallmentStateError, ScheduleConflictError
from lease_calc.store import ApplicationStore, create_store_from_config

TODAY = date(2026, 10, 19)


@pytest.fixture
def store(tmp_path) -> ApplicationStore:
    return ApplicationStore(f"sqlite:///{tmp_path / 'applications.sqlite3'}")


@pytest.fixture
def app_id(store: ApplicationStore, terms: LoanTerms) -> str:
    return store.add_application(terms, application_id="app-1")


class TestApplications:
    def test_terms_are_stored(self, store: ApplicationStore, app_id: str, terms: LoanTerms) -> None:
        stored = store.get_terms(app_id)

        assert stored == terms
        assert stored.vehicle_price == Decimal("100000.00")
        assert stored.annual_rent_rate == Decimal("0.12")

    def test_generated_id(self, store: ApplicationStore, terms: LoanTerms) -> None:
        app_id = store.add_application(terms)

        assert len(app_id) == 32
        assert store.get_interval(app_id) == "Monthly"

    def test_unparseable_tenure_uses_default(self, tmp_path, terms: LoanTerms) -> None:
        store = ApplicationStore(f"sqlite:///{tmp_path / 'db.sqlite3'}", default_tenure="2 Years")
        app_id = store.add_application(terms, tenure="forever")

        assert store.get_terms(app_id).tenure_months == 24

    def test_missing_application(self, store: ApplicationStore) -> None:
        with pytest.raises(ApplicationNotFoundError):
            store.get_terms("nope")
        with pytest.raises(ApplicationNotFoundError):
            store.save_schedule("nope", [], 0)

    def test_method_is_stored(self, store: ApplicationStore) -> None:
        terms = LoanTerms(Decimal("5000"), Decimal("0"), 6, Decimal("0.1"), CalculationMethod.DECLINING)
        app_id = store.add_application(terms)

        assert store.get_terms(app_id).calculation_method == CalculationMethod.DECLINING


class TestSchedules:
    def test_ensure_schedule_generates_once(self, store: ApplicationStore, app_id: str) -> None:
        schedule = store.ensure_schedule(app_id, today=TODAY, start_date=date(2026, 8, 1))
        stored, version = store.get_schedule(app_id)

        assert len(schedule) == 12
        assert stored == schedule
        assert version == 1

        again = store.ensure_schedule(app_id, today=date(2027, 5, 1))

        assert again == schedule
        assert store.get_schedule(app_id)[1] == 1

    def test_no_schedule_for_unschedulable_terms(self, store: ApplicationStore) -> None:
        app_id = store.add_application(LoanTerms(Decimal("0"), Decimal("0"), 12))

        assert store.ensure_schedule(app_id, today=TODAY) == []
        assert store.get_schedule(app_id) == ([], 0)

    def test_record_payment(self, store: ApplicationStore, app_id: str) -> None:
        store.ensure_schedule(app_id, today=TODAY, start_date=date(2026, 8, 1))

        updated = store.record_payment(app_id, 2, date(2026, 10, 20), PaymentMethod.BANK_ACCOUNT)
        stored, version = store.get_schedule(app_id)

        assert updated[2].status == InstallmentStatus.PAID
        assert stored[2].paid_date == date(2026, 10, 20)
        assert stored[2].payment_method == PaymentMethod.BANK_ACCOUNT
        assert version == 2

    def test_record_payment_twice(self, store: ApplicationStore, app_id: str) -> None:
        store.ensure_schedule(app_id, today=TODAY, start_date=date(2026, 8, 1))
        store.record_payment(app_id, 2, date(2026, 10, 20))

        with pytest.raises(InvalidInstallmentStateError):
            store.record_payment(app_id, 2, date(2026, 10, 21))

    def test_stale_write_is_rejected(self, store: ApplicationStore, app_id: str) -> None:
        store.ensure_schedule(app_id, today=TODAY, start_date=date(2026, 8, 1))
        schedule, version = store.get_schedule(app_id)
        store.record_payment(app_id, 2, date(2026, 10, 20))

        with pytest.raises(ScheduleConflictError):
            store.save_schedule(app_id, schedule, version)

        assert store.get_schedule(app_id)[0][2].status == InstallmentStatus.PAID


class TestConvertToMonthly:
    def test_daily_schedule_is_aggregated(self, store: ApplicationStore) -> None:
        terms = LoanTerms(Decimal("100000"), Decimal("20000"), 2, Decimal("0.12"))
        app_id = store.add_application(terms, interval="Daily")
        daily = store.ensure_schedule(app_id, today=TODAY)

        monthly = store.convert_to_monthly(app_id)
        stored, version = store.get_schedule(app_id)

        assert len(daily) == 61
        assert len(monthly) == 2
        assert stored == monthly
        assert sum(row.amount for row in monthly) == sum(row.amount for row in daily)
        assert store.get_interval(app_id) == "Monthly"
        assert version == 2

    def test_monthly_schedule_is_left_alone(self, store: ApplicationStore, app_id: str) -> None:
        schedule = store.ensure_schedule(app_id, today=TODAY)

        assert store.convert_to_monthly(app_id) == schedule
        assert store.get_schedule(app_id)[1] == 1


def test_create_store_from_config(tmp_path, terms: LoanTerms) -> None:
    config = LeaseCalcConfig(database_url=f"sqlite:///{tmp_path / 'cfg.sqlite3'}", default_tenure="6 Months")
    store = create_store_from_config(config)
    app_id = store.add_application(terms, tenure="")

    assert store.get_terms(app_id).tenure_months == 6


class TestImportApplication:
    def test_record_with_daily_schedule(self, store: ApplicationStore) -> None:
        days = [date(2027, 1, 1), date(2027, 1, 2), date(2027, 2, 1), date(2027, 2, 2)]
        record = {
            "id": "imported-1",
            "vehicle": {"price": 2000},
            "downPayment": 0,
            "installmentPlan": {
                "tenure": "2 Months",
                "annualRentalRate": 0,
                "calculationMethod": "dynamic_rent",
                "schedule": [{"dueDate": d.isoformat(), "amount": "500.00", "status": "upcoming"} for d in days],
            },
        }

        app_id = store.import_application(record)
        schedule, version = store.get_schedule(app_id)

        assert app_id == "imported-1"
        assert len(schedule) == 4
        assert version == 0
        assert store.get_interval(app_id) is None
        assert store.get_terms(app_id).calculation_method == CalculationMethod.DECLINING

        monthly = store.convert_to_monthly(app_id)

        assert [row.amount for row in monthly] == [Decimal("1000.00"), Decimal("1000.00")]
        assert store.get_interval(app_id) == "Monthly"

    def test_record_without_schedule(self, store: ApplicationStore) -> None:
        app_id = store.import_application({"vehicle": {"price": "12000"}, "installmentPlan": {"tenure": "1 Year"}})

        assert store.get_schedule(app_id) == ([], 0)
        assert len(store.ensure_schedule(app_id, today=TODAY)) == 12
