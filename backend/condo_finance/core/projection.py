"""
Forward projection from recurring records.

Recurring records of the current month are taken as the steady monthly
pattern and assumed to repeat unchanged into the future.
"""
from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable

from condo_finance.core.categories import EXPENSE, INCOME, kind_label
from condo_finance.core.ledger import LedgerEntry
from condo_finance.core.money import ZERO


@dataclass
class Projection:
    incomes_total: Decimal = ZERO
    expenses_total: Decimal = ZERO
    months_ahead: int = 0
    balance_accumulated: Decimal = ZERO

    @property
    def balance(self) -> Decimal:
        return self.incomes_total - self.expenses_total


@dataclass
class CategoryTotal:
    id: int
    name: str
    total: Decimal
    type: str  # 'Receita' | 'Despesa'


def recurring_pattern(entries: Iterable[LedgerEntry]) -> Projection:
    """Monthly income/expense pattern from the recurring entries (by `amount`)."""
    projection = Projection()
    for entry in entries:
        if not entry.is_recurring:
            continue
        if entry.kind == INCOME:
            projection.incomes_total += entry.amount
        elif entry.kind == EXPENSE:
            projection.expenses_total += entry.amount
    return projection


def project(
    entries: Iterable[LedgerEntry],
    accumulated_to_date: Decimal,
    months_ahead: int,
) -> Projection:
    """
    Cumulative forward-looking balance: the fund position up to now plus the
    recurring monthly balance repeated for each month up to the target
    (at least once, so a target in the current month adds one month).
    """
    projection = recurring_pattern(entries)
    projection.months_ahead = max(months_ahead, 0)
    projection.balance_accumulated = accumulated_to_date + projection.balance * max(months_ahead, 1)
    return projection


def totals_by_category(entries: Iterable[LedgerEntry]) -> list[CategoryTotal]:
    """Recurring entries grouped by category, in first-seen order."""
    result: dict[int, CategoryTotal] = {}
    for entry in entries:
        if not entry.is_recurring:
            continue
        current = result.get(entry.category_id)
        if current is None:
            result[entry.category_id] = CategoryTotal(
                id=entry.category_id,
                name=entry.category_name,
                total=entry.amount,
                type=kind_label(entry.kind),
            )
        else:
            current.total += entry.amount
    return list(result.values())
