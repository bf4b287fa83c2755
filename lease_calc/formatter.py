"""Output helpers for the lease calculator.

This module provides simple functions to render schedules, ownership splits
and settlement quotes in a tabular text format using built-in printing and
string formatting.
"""

from __future__ import annotations

from typing import Dict, Iterable, Optional, Sequence

from .data_models import Installment, OwnershipSplit, OwnershipTimeline, SettlementQuote
from .ownership import milestone_label


def print_summary(summary: Dict[str, object]) -> None:
    """Print a summary of schedule figures in a human-readable format."""
    print("Summary")
    print("-" * 72)
    print(f"Vehicle price      : {summary['vehicle_price']:.2f}")
    print(f"Down payment       : {summary['down_payment']:.2f}")
    print(f"Loan amount        : {summary['loan_amount']:.2f}")
    print(f"Total rent         : {summary['total_rent']:.2f}")
    print(f"Total payable      : {summary['total_payable']:.2f}")
    if summary.get("paid_installments"):
        print(f"Already paid       : {summary['total_paid']:.2f} ({summary['paid_installments']} installments)")
        print(f"Outstanding        : {summary['outstanding']:.2f}")
    print(f"Installments       : {summary['installments']}")
    print(f"First payment      : {summary['first_payment']:.2f}")
    print(f"First due date     : {summary['first_due_date']}")
    print(f"Last due date      : {summary['last_due_date']}")
    print("-" * 72)


def print_schedule(
    schedule: Iterable[Installment], ownership: Optional[Sequence[OwnershipSplit]] = None
) -> None:
    """Print the installment schedule as a simple table.

    Parameters
    ----------
    schedule: Iterable[Installment]
        The installments to print.
    ownership: sequence of OwnershipSplit, optional
        Per-row ownership; when given, customer/financier columns are added.
    """
    headers = ["No", "Due", "Amount", "Status", "Paid"]
    if ownership is not None:
        headers += ["Customer", "Financier", "Own%"]
    print("\t".join(headers))
    for index, entry in enumerate(schedule):
        row = [
            str(index + 1),
            entry.due_date.isoformat(),
            f"{entry.amount:.2f}",
            entry.status.value,
            entry.paid_date.isoformat() if entry.paid_date else "-",
        ]
        if ownership is not None and index < len(ownership):
            split = ownership[index]
            row += [
                f"{split.customer_share:.2f}",
                f"{split.financier_share:.2f}",
                f"{split.ownership_percentage:.2f}",
            ]
        print("\t".join(row))


def print_ownership(splits: Sequence[OwnershipSplit], start_index: int = 0) -> None:
    print("Payment\tCustomer\tFinancier\tOwn%")
    for offset, split in enumerate(splits):
        print(
            f"{start_index + offset + 1}\t{split.customer_share:.2f}\t"
            f"{split.financier_share:.2f}\t{split.ownership_percentage:.2f}"
        )


def print_timeline(timeline: OwnershipTimeline) -> None:
    """Print the ownership timeline of a schedule, one row per payment."""
    print(
        f"Current ownership  : {timeline.current_ownership:.2f}% "
        f"({milestone_label(timeline.current_ownership)})"
    )
    print(f"Payments completed : {timeline.completed_payments}/{timeline.total_payments}")
    if timeline.estimated_completion_date:
        print(f"Estimated complete : {timeline.estimated_completion_date.isoformat()}")
    print("-" * 72)
    print("No\tDue\tStatus\tOwned\tOwn%\tMilestone")
    for m in timeline.milestones:
        print(
            f"{m.payment_index + 1}\t{m.due_date.isoformat()}\t{m.payment_status}\t"
            f"{m.ownership_amount:.2f}\t{m.ownership_percentage:.2f}\t{m.label}"
        )


def print_quote(quote: SettlementQuote) -> None:
    """Print an early-settlement quote."""
    print("Settlement quote")
    print("=" * 72)
    print(f"As of              : {quote.as_of.isoformat() if quote.as_of else '-'}")
    print(f"Remaining payments : {quote.remaining_payments}")
    print(f"Months early       : {quote.months_early}")
    print(f"Remaining balance  : {quote.original_remaining:.2f}")
    print(f"Discount ({quote.percentage * 100:.2f}%)  : {quote.discount:.2f}")
    print(f"Amount to pay      : {quote.final_amount:.2f}")
    print("=" * 72)
