"""Ledger service: store access for totals, balances, overrides and projections.

Month figures (income/expenses after override resolution) are memoised per
(condominium, month) for the lifetime of one request, so the year walks behind
totals, projections and maintenance cards share one load. Writes made through
the same request invalidate the months they touch.
"""

import logging
from datetime import date
from decimal import Decimal

from sqlalchemy import func
from sqlalchemy.orm import Session

from condo_finance.core.categories import (
    EXPENSE,
    INCOME,
    CategoryClassifier,
    CategoryInfo,
)
from condo_finance.core.errors import NotFoundError, ValidationError
from condo_finance.core.indicators import (
    breakdown_by_category,
    fixed_variable_split,
    monthly_balance_curve,
)
from condo_finance.core.ledger import (
    LedgerEntry,
    MonthBalance,
    MonthOverride,
    PeriodTotals,
    accumulated_balance,
    period_totals,
    resolve_month,
)
from condo_finance.core.periods import (
    iter_months,
    month_end,
    month_interval,
    month_start,
    months_between,
    validate_range,
    year_bounds,
)
from condo_finance.core.projection import CategoryTotal, Projection, project, totals_by_category
from condo_finance.models.category import Category
from condo_finance.models.condominium import Unit
from condo_finance.models.financial_record import FinancialRecord
from condo_finance.models.monthly_override import MonthlyFinanceOverride
from condo_finance.services.store import store_errors
from condo_finance.utils.constants_loader import get_payment_status

logger = logging.getLogger(__name__)

OVERRIDE_FIELDS = {INCOME: ("income", "income_target"), EXPENSE: ("expenses", "expenses_target")}
_UNSET = object()


class MonthlyBalanceCache:
    """Resolved month figures keyed by (condominium_id, first day of month)."""

    def __init__(self):
        self._data: dict[tuple[int, date], MonthBalance] = {}

    def get(self, condominium_id: int, month: date) -> MonthBalance | None:
        return self._data.get((condominium_id, month))

    def put(self, condominium_id: int, balance: MonthBalance) -> None:
        self._data[(condominium_id, balance.month)] = balance

    def invalidate(self, condominium_id: int, *days: date | None) -> None:
        """Drop the months containing `days`; every month of the condominium when none given."""
        if not days:
            for key in [k for k in self._data if k[0] == condominium_id]:
                del self._data[key]
            return
        for d in days:
            if d is not None:
                self._data.pop((condominium_id, month_start(d)), None)

    def clear(self) -> None:
        self._data.clear()

    def __len__(self) -> int:
        return len(self._data)


def get_month_cache() -> MonthlyBalanceCache:
    """Request-scoped dependency: a fresh cache per request."""
    return MonthlyBalanceCache()


def effective_date_column():
    return func.coalesce(FinancialRecord.payment_date, FinancialRecord.due_date)


class LedgerService:
    def __init__(self, db: Session, cache: MonthlyBalanceCache | None = None):
        self.db = db
        self.cache = cache if cache is not None else MonthlyBalanceCache()
        self._classifier: CategoryClassifier | None = None

    # ---- reference data -------------------------------------------------

    @property
    def classifier(self) -> CategoryClassifier:
        if self._classifier is None:
            with store_errors(self.db, "load categories"):
                rows = self.db.query(Category).all()
            self._classifier = CategoryClassifier(
                CategoryInfo(c.id, c.name, c.income_expense_type_id, c.record_type_id) for c in rows
            )
        return self._classifier

    def categories(self) -> list[Category]:
        with store_errors(self.db, "list categories"):
            return self.db.query(Category).order_by(Category.id).all()

    def units(self, condominium_id: int) -> list[Unit]:
        with store_errors(self.db, "list units"):
            return (
                self.db.query(Unit)
                .filter(Unit.condominium_id == condominium_id)
                .order_by(Unit.number)
                .all()
            )

    # ---- loading --------------------------------------------------------

    def to_entry(self, record: FinancialRecord) -> LedgerEntry:
        classification = self.classifier.classify(record.category_id)
        return LedgerEntry(
            category_id=record.category_id,
            kind=classification.kind if classification else None,
            amount=Decimal(record.amount),
            amount_paid=Decimal(record.amount_paid or 0),
            due_date=record.due_date,
            payment_date=record.payment_date,
            is_recurring=bool(record.is_recurring),
            category_name=classification.category_name if classification else "",
            record_type=classification.record_type if classification else None,
        )

    def _records(
        self,
        condominium_id: int,
        start: date,
        end: date,
        by_due_date: bool = False,
        recurring_only: bool = False,
    ) -> list[FinancialRecord]:
        column = FinancialRecord.due_date if by_due_date else effective_date_column()
        q = self.db.query(FinancialRecord).filter(
            FinancialRecord.condominium_id == condominium_id,
            FinancialRecord.is_deleted.is_(False),
            column >= start,
            column <= end,
        )
        if recurring_only:
            q = q.filter(FinancialRecord.is_recurring.is_(True))
        with store_errors(self.db, "load financial records"):
            return q.all()

    def entries(self, condominium_id: int, start: date, end: date, **filters) -> list[LedgerEntry]:
        return [self.to_entry(r) for r in self._records(condominium_id, start, end, **filters)]

    def overrides(self, condominium_id: int, start: date, end: date) -> dict[date, MonthOverride]:
        """Override rows whose reference month lies in [first of start's month, end]."""
        with store_errors(self.db, "load monthly overrides"):
            rows = (
                self.db.query(MonthlyFinanceOverride)
                .filter(
                    MonthlyFinanceOverride.condominium_id == condominium_id,
                    MonthlyFinanceOverride.reference_month >= month_start(start),
                    MonthlyFinanceOverride.reference_month <= end,
                )
                .all()
            )
        return {
            r.reference_month: MonthOverride(
                reference_month=r.reference_month,
                income=r.income,
                income_target=r.income_target,
                expenses=r.expenses,
                expenses_target=r.expenses_target,
            )
            for r in rows
        }

    # ---- aggregation ----------------------------------------------------

    def month_balances(self, condominium_id: int, start: date, end: date) -> list[MonthBalance]:
        """Resolved figures for every month from start's month to end's month."""
        months = iter_months(start, end)
        missing = [m for m in months if self.cache.get(condominium_id, m) is None]
        if missing:
            span_start, span_end = missing[0], month_end(missing[-1])
            logger.debug(
                f"Month cache miss for condominium {condominium_id}: "
                f"{len(missing)} month(s) from {span_start} to {span_end}"
            )
            overrides = self.overrides(condominium_id, span_start, span_end)
            entries = self.entries(condominium_id, span_start, span_end)
            for month in missing:
                self.cache.put(
                    condominium_id, resolve_month(month, overrides.get(month), entries)
                )
        return [self.cache.get(condominium_id, m) for m in months]

    def accumulated_balance(self, condominium_id: int, start: date, end: date) -> Decimal:
        """Sum of monthly balances from Jan 1 of start's year to Dec 31 of end's year."""
        first, last = year_bounds(start, end)
        return accumulated_balance(self.month_balances(condominium_id, first, last))

    def totals(self, condominium_id: int, start: date, end: date) -> PeriodTotals:
        validate_range(start, end)
        overrides = self.overrides(condominium_id, start, end)
        entries = self.entries(condominium_id, start, end)
        totals = period_totals(start, end, overrides, entries)
        totals.accumulated_balance = self.accumulated_balance(condominium_id, start, end)
        return totals

    def monthly_balance(self, condominium_id: int, year: int):
        months = self.month_balances(condominium_id, date(year, 1, 1), date(year, 12, 31))
        return monthly_balance_curve(months)

    def category_breakdown(self, condominium_id: int, kind: str, start: date, end: date):
        validate_range(start, end)
        return breakdown_by_category(self.entries(condominium_id, start, end), kind)

    def fixed_variable(self, condominium_id: int, kind: str, start: date, end: date):
        validate_range(start, end)
        return fixed_variable_split(self.entries(condominium_id, start, end), kind)

    # ---- overrides ------------------------------------------------------

    def override_month(
        self,
        condominium_id: int,
        month: date,
        kind: str,
        value: Decimal | None,
        target=_UNSET,
    ) -> MonthlyFinanceOverride:
        """
        Set the manual income/expenses of a month (value=None redefines it to
        the calculated sum). The target is only touched when passed.
        """
        if kind not in OVERRIDE_FIELDS:
            raise ValidationError(f"Campo inválido: {kind!r}.", code="invalid_field")
        value_field, target_field = OVERRIDE_FIELDS[kind]
        reference_month = month_start(month)
        with store_errors(self.db, "override month"):
            row = (
                self.db.query(MonthlyFinanceOverride)
                .filter(
                    MonthlyFinanceOverride.condominium_id == condominium_id,
                    MonthlyFinanceOverride.reference_month == reference_month,
                )
                .first()
            )
            if row is None:
                row = MonthlyFinanceOverride(
                    condominium_id=condominium_id, reference_month=reference_month
                )
                self.db.add(row)
            setattr(row, value_field, value)
            if target is not _UNSET:
                setattr(row, target_field, target)
            self.db.commit()
            self.db.refresh(row)
        self.cache.invalidate(condominium_id, reference_month)
        logger.info(
            f"Override {value_field} for condominium {condominium_id} "
            f"{reference_month:%Y-%m} set to {'calculated' if value is None else value}"
        )
        return row

    def redefine_to_calculated(self, condominium_id: int, month: date, kind: str):
        return self.override_month(condominium_id, month, kind, None)

    # ---- projection -----------------------------------------------------

    def _current_recurring(self, condominium_id: int, today: date) -> list[LedgerEntry]:
        start, end = month_interval(today)
        return self.entries(condominium_id, start, end, by_due_date=True, recurring_only=True)

    def projection(self, condominium_id: int, target: date, today: date) -> Projection:
        entries = self._current_recurring(condominium_id, today)
        to_date = accumulated_balance(
            self.month_balances(condominium_id, date(today.year, 1, 1), today)
        )
        return project(entries, to_date, months_between(today, target))

    def projection_registers(self, condominium_id: int, today: date) -> list[CategoryTotal]:
        return totals_by_category(self._current_recurring(condominium_id, today))

    # ---- records --------------------------------------------------------

    def list_records(
        self, condominium_id: int, start: date, end: date, kinds: list[str] | None = None
    ) -> list[FinancialRecord]:
        validate_range(start, end)
        records = self._records(condominium_id, start, end)
        if kinds:
            records = [r for r in records if self.classifier.kind(r.category_id) in kinds]
        return sorted(records, key=lambda r: r.payment_date or r.due_date, reverse=True)

    def _check_category(self, category_id: int) -> None:
        if category_id not in self.classifier:
            raise ValidationError(f"Categoria {category_id} inexistente.", code="unknown_category")

    def get_record(self, record_id: int) -> FinancialRecord:
        with store_errors(self.db, "load financial record"):
            record = (
                self.db.query(FinancialRecord)
                .filter(FinancialRecord.id == record_id, FinancialRecord.is_deleted.is_(False))
                .first()
            )
        if not record:
            raise NotFoundError("Registro financeiro não encontrado.")
        return record

    def create_record(self, condominium_id: int, data: dict) -> FinancialRecord:
        self._check_category(data["category_id"])
        if data.get("status_id") is None:
            statuses = get_payment_status()
            data["status_id"] = statuses["paid"] if data.get("payment_date") else statuses["pending"]
        with store_errors(self.db, "create financial record"):
            record = FinancialRecord(condominium_id=condominium_id, **data)
            self.db.add(record)
            self.db.commit()
            self.db.refresh(record)
        self.cache.invalidate(condominium_id, record.payment_date or record.due_date)
        logger.info(f"Created financial record {record.id} for condominium {condominium_id}")
        return record

    def update_record(self, record_id: int, data: dict) -> FinancialRecord:
        record = self.get_record(record_id)
        if "category_id" in data:
            self._check_category(data["category_id"])
        before = record.payment_date or record.due_date
        with store_errors(self.db, "update financial record"):
            for field, value in data.items():
                setattr(record, field, value)
            self.db.commit()
            self.db.refresh(record)
        self.cache.invalidate(record.condominium_id, before, record.payment_date or record.due_date)
        return record

    def delete_record(self, record_id: int) -> None:
        record = self.get_record(record_id)
        with store_errors(self.db, "delete financial record"):
            record.is_deleted = True
            self.db.commit()
        self.cache.invalidate(record.condominium_id, record.payment_date or record.due_date)
        logger.info(f"Soft-deleted financial record {record_id}")
