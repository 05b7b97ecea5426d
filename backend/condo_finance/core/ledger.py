"""
Ledger engine: reconciles manual monthly overrides with sums of itemized
financial records and walks months to build balances.

A month's income (or expenses) is either a manual value entered by the
manager or the sum of `amount_paid` over that month's non-deleted records.
The choice is carried as `Manual(value) | Computed` so the fallback is an
explicit branch, not a null check.

Records are placed in a month by their effective date: payment date when
the record was paid, due date otherwise.
"""
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Iterable

from condo_finance.core.categories import EXPENSE, INCOME
from condo_finance.core.money import ZERO
from condo_finance.core.periods import iter_months, month_end, same_month


@dataclass(frozen=True)
class Manual:
    value: Decimal


@dataclass(frozen=True)
class Computed:
    pass


COMPUTED = Computed()

MonthFigure = Manual | Computed


def figure_from_override(value: Decimal | None) -> MonthFigure:
    return COMPUTED if value is None else Manual(Decimal(value))


def resolve(figure: MonthFigure, computed: Decimal) -> Decimal:
    if isinstance(figure, Manual):
        return figure.value
    return computed


@dataclass(frozen=True)
class LedgerEntry:
    """One non-deleted financial record with its category already classified."""

    category_id: int
    kind: str | None  # 'income' | 'expense'
    amount: Decimal
    amount_paid: Decimal
    due_date: date
    payment_date: date | None = None
    is_recurring: bool = False
    category_name: str = ""
    record_type: str | None = None  # 'fixed' | 'variable'

    @property
    def effective_date(self) -> date:
        return self.payment_date or self.due_date


@dataclass(frozen=True)
class MonthOverride:
    reference_month: date
    income: Decimal | None = None
    income_target: Decimal | None = None
    expenses: Decimal | None = None
    expenses_target: Decimal | None = None

    def figure(self, kind: str) -> MonthFigure:
        return figure_from_override(self.income if kind == INCOME else self.expenses)

    def target(self, kind: str) -> Decimal | None:
        return self.income_target if kind == INCOME else self.expenses_target


@dataclass(frozen=True)
class MonthBalance:
    month: date
    income: Decimal = ZERO
    expenses: Decimal = ZERO

    @property
    def balance(self) -> Decimal:
        return self.income - self.expenses


@dataclass
class PeriodTotals:
    """Totals for a closed date range of one condominium."""

    start_date: date
    end_date: date
    total_income: Decimal = ZERO
    total_expenses: Decimal = ZERO
    income_target: Decimal | None = None
    expenses_target: Decimal | None = None
    accumulated_balance: Decimal = ZERO
    months: list[MonthBalance] = field(default_factory=list)

    @property
    def balance(self) -> Decimal:
        return self.total_income - self.total_expenses

    @property
    def is_same_month(self) -> bool:
        return same_month(self.start_date, self.end_date)


def sum_paid(entries: Iterable[LedgerEntry], kind: str, start: date, end: date) -> Decimal:
    """Sum of amount_paid for entries of `kind` whose effective date is in [start, end]."""
    total = ZERO
    for entry in entries:
        if entry.kind == kind and start <= entry.effective_date <= end:
            total += entry.amount_paid
    return total


def resolve_month(
    month: date,
    override: MonthOverride | None,
    entries: Iterable[LedgerEntry],
    window: tuple[date, date] | None = None,
) -> MonthBalance:
    """
    Income and expenses of one month. A manual figure wins over the computed
    sum; `window` narrows the computed sum to part of the month.
    """
    start, end = window or (month, month_end(month))
    entries = list(entries)
    values = {}
    for kind in (INCOME, EXPENSE):
        figure = override.figure(kind) if override else COMPUTED
        values[kind] = resolve(figure, sum_paid(entries, kind, start, end))
    return MonthBalance(month=month, income=values[INCOME], expenses=values[EXPENSE])


def period_totals(
    start: date,
    end: date,
    overrides: dict[date, MonthOverride],
    entries: Iterable[LedgerEntry],
) -> PeriodTotals:
    """
    Income/expense totals for [start, end], resolved month by month.

    `overrides` is keyed by reference month (first of month). Targets are a
    single-month concept and are only surfaced when start and end share a month.
    """
    entries = list(entries)
    totals = PeriodTotals(start_date=start, end_date=end)
    for month in iter_months(start, end):
        window = (max(start, month), min(end, month_end(month)))
        resolved = resolve_month(month, overrides.get(month), entries, window)
        totals.months.append(resolved)
        totals.total_income += resolved.income
        totals.total_expenses += resolved.expenses

    if totals.is_same_month:
        override = overrides.get(start.replace(day=1))
        if override:
            totals.income_target = override.income_target
            totals.expenses_target = override.expenses_target
    return totals


def accumulated_balance(months: Iterable[MonthBalance]) -> Decimal:
    """Running fund position: sum of (income - expenses) over the given months."""
    return sum((m.balance for m in months), ZERO)


def running_balances(months: Iterable[MonthBalance]) -> list[Decimal]:
    """Cumulative balance after each month, in order."""
    result = []
    running = ZERO
    for m in months:
        running += m.balance
        result.append(running)
    return result
