"""
Delinquency aging and statistics.

"Now" is always passed in by the caller so results are deterministic.
"""
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Iterable

from condo_finance.core.money import ZERO, percentage
from condo_finance.core.periods import days_between

# Actions on the financial record paired with a delinquency record
PAIR_INSERT = "insert"
PAIR_DELETE = "delete"
PAIR_UPDATE = "update"
PAIR_NOOP = "noop"


@dataclass(frozen=True)
class DelinquencyItem:
    id: int
    unit_id: int | None
    category_id: int
    amount: Decimal
    amount_paid: Decimal
    due_date: date
    payment_date: date | None = None

    @property
    def is_paid(self) -> bool:
        return self.payment_date is not None


def days_late(due_date: date, payment_date: date | None, today: date) -> int:
    """Days between due date and payment (or today when unpaid). Negative when paid early."""
    return days_between(payment_date or today, due_date)


@dataclass
class DelinquencySummary:
    total_installments: int = 0
    total_days_overdue: int = 0
    unpaid_count: int = 0
    total_amount_to_receive: Decimal = ZERO
    total_units: int = 0
    units: set[int] = field(default_factory=set)

    @property
    def unique_units(self) -> int:
        return len(self.units)

    @property
    def average_days_overdue(self) -> int:
        if self.total_installments == 0:
            return 0
        return self.total_days_overdue // self.total_installments

    @property
    def delinquency_percentage(self) -> str:
        return f"{percentage(Decimal(self.unique_units), Decimal(self.total_units)):.2f}"


def summarize(items: Iterable[DelinquencyItem], total_units: int, now: date) -> DelinquencySummary:
    summary = DelinquencySummary(total_units=total_units)
    for item in items:
        summary.total_installments += 1
        summary.total_days_overdue += days_late(item.due_date, item.payment_date, now)
        if not item.is_paid:
            summary.unpaid_count += 1
            summary.total_amount_to_receive += item.amount
        if item.unit_id is not None:
            summary.units.add(item.unit_id)
    return summary


def pairing_action(has_paired_record: bool, payment_date: date | None) -> str:
    """
    What to do with the financial record paired to a delinquency record
    once its payment date becomes `payment_date`.
    """
    if payment_date is not None:
        return PAIR_UPDATE if has_paired_record else PAIR_INSERT
    return PAIR_DELETE if has_paired_record else PAIR_NOOP


@dataclass
class CategoryDelinquency:
    id: int
    name: str
    count: int = 0
    unpaid_count: int = 0
    amount: Decimal = ZERO
    amount_paid: Decimal = ZERO


def distribution_by_category(
    items: Iterable[DelinquencyItem], category_names: dict[int, str]
) -> list[CategoryDelinquency]:
    """Delinquency grouped by category, largest amount first."""
    result: dict[int, CategoryDelinquency] = {}
    for item in items:
        entry = result.setdefault(
            item.category_id,
            CategoryDelinquency(item.category_id, category_names.get(item.category_id, "")),
        )
        entry.count += 1
        entry.amount += item.amount
        entry.amount_paid += item.amount_paid
        if not item.is_paid:
            entry.unpaid_count += 1
    return sorted(result.values(), key=lambda c: c.amount, reverse=True)
