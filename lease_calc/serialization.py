"""Conversion between engine objects and stored records.

The record store keeps schedules as JSON arrays on the application record.
Money crosses this boundary as decimal strings and dates as ISO-8601
``YYYY-MM-DD`` strings, so nothing is ever rounded through a float.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional

from .data_models import (
    CalculationMethod,
    Installment,
    InstallmentStatus,
    LoanTerms,
    PaymentMethod,
    ProofDocument,
    Schedule,
)
from .logging import get_logger
from .money import as_decimal, quantize
from .tenure import DEFAULT_TENURE, parse_tenure
from .utils import parse_iso_date

logger = get_logger(__name__)

# historical name of the declining-rent method
_METHOD_ALIASES = {"dynamic_rent": CalculationMethod.DECLINING}


def installment_to_record(row: Installment) -> Dict[str, Any]:
    record: Dict[str, Any] = {
        "dueDate": row.due_date.isoformat(),
        "amount": str(row.amount),
        "status": row.status.value,
        "paymentType": row.payment_type,
    }
    if row.paid_date is not None:
        record["paidDate"] = row.paid_date.isoformat()
    if row.payment_method is not None:
        record["paymentMethod"] = row.payment_method.value
    if row.proof_document is not None:
        record["proofDocument"] = {
            "name": row.proof_document.name,
            "url": row.proof_document.url,
            "uploadedAt": row.proof_document.uploaded_at,
        }
    return record


def installment_from_record(record: Dict[str, Any]) -> Installment:
    """Build an ``Installment`` from a stored record.

    Historical records are repaired where the intent is unambiguous: a paid
    row without a paid date is taken as paid on its due date, and a paid date
    on an unpaid row is dropped.
    """
    due_date = parse_iso_date(record["dueDate"])
    status = InstallmentStatus(str(record.get("status") or "upcoming").lower())
    paid_date = parse_iso_date(record["paidDate"]) if record.get("paidDate") else None
    if status == InstallmentStatus.PAID and paid_date is None:
        logger.warning("Paid installment due %s has no paid date; using due date", due_date)
        paid_date = due_date
    elif status != InstallmentStatus.PAID and paid_date is not None:
        paid_date = None

    proof = record.get("proofDocument")
    return Installment(
        due_date=due_date,
        amount=quantize(as_decimal(record.get("amount", 0))),
        status=status,
        paid_date=paid_date,
        payment_method=PaymentMethod(record["paymentMethod"]) if record.get("paymentMethod") else None,
        proof_document=(
            ProofDocument(name=proof.get("name", ""), url=proof.get("url", ""), uploaded_at=proof.get("uploadedAt"))
            if proof
            else None
        ),
        payment_type=record.get("paymentType") or "installment",
    )


def schedule_to_records(schedule: Iterable[Installment]) -> List[Dict[str, Any]]:
    return [installment_to_record(row) for row in schedule]


def schedule_from_records(records: Optional[Iterable[Dict[str, Any]]]) -> Schedule:
    return [installment_from_record(r) for r in records or []]


def parse_calculation_method(value: Optional[str]) -> CalculationMethod:
    text = (value or "").strip().lower()
    if text in _METHOD_ALIASES:
        return _METHOD_ALIASES[text]
    try:
        return CalculationMethod(text)
    except ValueError:
        if text:
            logger.warning("Unknown calculation method %r; using amortized_fixed", value)
        return CalculationMethod.AMORTIZED_FIXED


def terms_from_record(record: Dict[str, Any], default_tenure: str = DEFAULT_TENURE) -> LoanTerms:
    """Read ``LoanTerms`` from an application record.

    Uses ``vehicle.price``, ``downPayment`` and the ``installmentPlan`` fields
    ``tenure``, ``annualRentalRate`` and ``calculationMethod``. Missing
    figures default to zero and an unparseable tenure to ``default_tenure``.
    """
    vehicle = record.get("vehicle") or {}
    plan = record.get("installmentPlan") or {}
    down_payment = record.get("downPayment")
    if down_payment is None:
        down_payment = plan.get("downPayment", 0)
    return LoanTerms(
        vehicle_price=quantize(as_decimal(vehicle.get("price") or 0)),
        down_payment=quantize(as_decimal(down_payment or 0)),
        tenure_months=parse_tenure(plan.get("tenure"), default_tenure),
        annual_rent_rate=as_decimal(plan.get("annualRentalRate") or 0),
        calculation_method=parse_calculation_method(plan.get("calculationMethod")),
    )
