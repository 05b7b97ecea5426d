"""
Chart data derived from the ledger: category breakdowns, fixed vs variable
split and the monthly balance curve.
"""
from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable

from condo_finance.core.categories import FIXED, VARIABLE
from condo_finance.core.ledger import LedgerEntry, MonthBalance, running_balances
from condo_finance.core.money import ZERO, percentage
from condo_finance.utils.constants_loader import get_labels, get_short_months


@dataclass
class CategoryValue:
    id: int
    name: str
    value: Decimal


@dataclass
class ShareValue:
    name: str
    value: Decimal


@dataclass
class MonthPoint:
    month: str  # 'Jan/25'
    income: Decimal
    expense: Decimal
    total: Decimal  # running balance since January


def breakdown_by_category(entries: Iterable[LedgerEntry], kind: str) -> list[CategoryValue]:
    """amount_paid per category for entries of `kind`, largest first."""
    by_category: dict[int, CategoryValue] = {}
    for entry in entries:
        if entry.kind != kind:
            continue
        item = by_category.setdefault(
            entry.category_id, CategoryValue(entry.category_id, entry.category_name, ZERO)
        )
        item.value += entry.amount_paid
    return sorted(by_category.values(), key=lambda c: c.value, reverse=True)


def fixed_variable_split(entries: Iterable[LedgerEntry], kind: str) -> list[ShareValue]:
    """Share of `amount` in fixed vs variable categories, in percent."""
    total = fixed = variable = ZERO
    for entry in entries:
        if entry.kind != kind:
            continue
        total += entry.amount
        if entry.record_type == FIXED:
            fixed += entry.amount
        elif entry.record_type == VARIABLE:
            variable += entry.amount
    labels = get_labels()
    return [
        ShareValue(labels[FIXED], percentage(fixed, total)),
        ShareValue(labels[VARIABLE], percentage(variable, total)),
    ]


def monthly_balance_curve(months: list[MonthBalance]) -> list[MonthPoint]:
    short_months = get_short_months()
    points = []
    for month, running in zip(months, running_balances(months)):
        label = f"{short_months[month.month.month - 1]}/{str(month.month.year)[-2:]}"
        points.append(MonthPoint(label, month.income, month.expenses, running))
    return points
