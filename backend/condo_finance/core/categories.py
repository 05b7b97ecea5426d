"""
Category classifier: maps a category reference to income/expense and
fixed/variable. Pure lookup over the reference table.
"""
from dataclasses import dataclass
from typing import Iterable

from condo_finance.utils.constants_loader import (
    get_income_expense_types,
    get_labels,
    get_record_types,
)

INCOME = "income"
EXPENSE = "expense"
FIXED = "fixed"
VARIABLE = "variable"


@dataclass(frozen=True)
class CategoryInfo:
    id: int
    name: str
    income_expense_type_id: int
    record_type_id: int | None = None


@dataclass(frozen=True)
class Classification:
    category_id: int
    category_name: str
    kind: str | None  # 'income' | 'expense' | None for an unknown type id
    record_type: str | None  # 'fixed' | 'variable'


def kind_for_type_id(income_expense_type_id: int | None) -> str | None:
    types = get_income_expense_types()
    if income_expense_type_id == types["income"]:
        return INCOME
    if income_expense_type_id == types["expense"]:
        return EXPENSE
    return None


def record_type_for_id(record_type_id: int | None) -> str | None:
    record_types = get_record_types()
    if record_type_id == record_types["fixed"]:
        return FIXED
    if record_type_id == record_types["variable"]:
        return VARIABLE
    return None


def kind_label(kind: str | None) -> str:
    """'Receita' for income, 'Despesa' for everything else."""
    labels = get_labels()
    return labels[INCOME] if kind == INCOME else labels[EXPENSE]


class CategoryClassifier:
    def __init__(self, categories: Iterable[CategoryInfo]):
        self._by_id = {c.id: c for c in categories}

    def __contains__(self, category_id: int) -> bool:
        return category_id in self._by_id

    def classify(self, category_id: int) -> Classification | None:
        info = self._by_id.get(category_id)
        if info is None:
            return None
        return Classification(
            category_id=info.id,
            category_name=info.name,
            kind=kind_for_type_id(info.income_expense_type_id),
            record_type=record_type_for_id(info.record_type_id),
        )

    def kind(self, category_id: int) -> str | None:
        classification = self.classify(category_id)
        return classification.kind if classification else None
