"""Tests for record conversion."""

from datetime import date
from decimal import Decimal

import pytest

from lease_calc.data_models import (
    CalculationMethod,
    Installment,
    InstallmentStatus,
    PaymentMethod,
    ProofDocument,
)
from lease_calc.serialization import (
    installment_from_record,
    installment_to_record,
    parse_calculation_method,
    schedule_from_records,
    schedule_to_records,
    terms_from_record,
)


class TestInstallmentRecords:
    def test_to_record(self) -> None:
        row = Installment(
            due_date=date(2026, 11, 1),
            amount=Decimal("7466.67"),
            status=InstallmentStatus.PAID,
            paid_date=date(2026, 11, 3),
            payment_method=PaymentMethod.BANK_ACCOUNT,
            proof_document=ProofDocument("slip.png", "https://files.example/slip.png", "2026-11-03T09:00:00Z"),
        )

        record = installment_to_record(row)

        assert record == {
            "dueDate": "2026-11-01",
            "amount": "7466.67",
            "status": "paid",
            "paymentType": "installment",
            "paidDate": "2026-11-03",
            "paymentMethod": "bank_account",
            "proofDocument": {
                "name": "slip.png",
                "url": "https://files.example/slip.png",
                "uploadedAt": "2026-11-03T09:00:00Z",
            },
        }
        assert installment_from_record(record) == row

    def test_unpaid_record_has_no_paid_fields(self) -> None:
        record = installment_to_record(Installment(date(2026, 11, 1), Decimal("10.00")))

        assert "paidDate" not in record
        assert "paymentMethod" not in record
        assert record["status"] == "upcoming"

    def test_float_amount_is_rounded(self) -> None:
        row = installment_from_record({"dueDate": "2026-11-01", "amount": 7466.666666, "status": "upcoming"})

        assert row.amount == Decimal("7466.67")

    def test_paid_without_paid_date_uses_due_date(self) -> None:
        row = installment_from_record({"dueDate": "2026-11-01", "amount": "10", "status": "paid"})

        assert row.paid_date == date(2026, 11, 1)

    def test_unpaid_with_paid_date_drops_it(self) -> None:
        row = installment_from_record(
            {"dueDate": "2026-11-01", "amount": "10", "status": "Active", "paidDate": "2026-11-02"}
        )

        assert row.status == InstallmentStatus.ACTIVE
        assert row.paid_date is None

    def test_missing_status_is_upcoming(self) -> None:
        assert installment_from_record({"dueDate": "2026-11-01", "amount": "10"}).status == InstallmentStatus.UPCOMING

    def test_missing_due_date(self) -> None:
        with pytest.raises(KeyError):
            installment_from_record({"amount": "10"})

    def test_schedule_records(self, seasoned_schedule) -> None:
        assert schedule_from_records(schedule_to_records(seasoned_schedule)) == seasoned_schedule
        assert schedule_from_records(None) == []


class TestTermsFromRecord:
    def test_full_record(self) -> None:
        terms = terms_from_record(
            {
                "vehicle": {"price": 100000},
                "downPayment": "20000",
                "installmentPlan": {
                    "tenure": "1 Year",
                    "annualRentalRate": 0.12,
                    "calculationMethod": "dynamic_rent",
                },
            }
        )

        assert terms.vehicle_price == Decimal("100000.00")
        assert terms.down_payment == Decimal("20000.00")
        assert terms.tenure_months == 12
        assert terms.annual_rent_rate == Decimal("0.12")
        assert terms.calculation_method == CalculationMethod.DECLINING

    def test_down_payment_from_plan(self) -> None:
        terms = terms_from_record({"vehicle": {"price": "5000"}, "installmentPlan": {"downPayment": "500"}})

        assert terms.down_payment == Decimal("500.00")

    def test_defaults(self) -> None:
        terms = terms_from_record({}, default_tenure="2 Years")

        assert terms.vehicle_price == Decimal("0")
        assert terms.down_payment == Decimal("0")
        assert terms.tenure_months == 24
        assert terms.calculation_method == CalculationMethod.AMORTIZED_FIXED


class TestParseCalculationMethod:
    @pytest.mark.parametrize(
        "value,expected",
        [
            ("amortized_fixed", CalculationMethod.AMORTIZED_FIXED),
            ("Declining", CalculationMethod.DECLINING),
            ("dynamic_rent", CalculationMethod.DECLINING),
            ("balloon", CalculationMethod.AMORTIZED_FIXED),
            (None, CalculationMethod.AMORTIZED_FIXED),
        ],
    )
    def test_values(self, value, expected) -> None:
        assert parse_calculation_method(value) == expected
