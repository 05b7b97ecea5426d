import logging
from dataclasses import dataclass
from datetime import date

from sqlalchemy.orm import Session

from condo_finance.core.delinquency import (
    PAIR_DELETE,
    PAIR_INSERT,
    PAIR_UPDATE,
    DelinquencyItem,
    DelinquencySummary,
    days_late,
    distribution_by_category,
    pairing_action,
    summarize,
)
from condo_finance.core.errors import NotFoundError, ValidationError
from condo_finance.core.periods import month_interval, validate_range
from condo_finance.models.category import Category
from condo_finance.models.condominium import Unit
from condo_finance.models.delinquency import DelinquencyRecord
from condo_finance.models.financial_record import FinancialRecord
from condo_finance.services.ledger_service import MonthlyBalanceCache
from condo_finance.services.store import store_errors
from condo_finance.utils.constants_loader import (
    get_delinquency_payment_method_id,
    get_payment_status,
)

logger = logging.getLogger(__name__)

# Fields copied onto the paired financial record
SYNCED_FIELDS = ("category_id", "unit_id", "amount", "amount_paid", "due_date", "payment_date")


@dataclass
class DelinquencyRow:
    record: DelinquencyRecord
    days_late: int

    @property
    def category_name(self) -> str:
        return self.record.category.name if self.record.category else ""


def to_item(record: DelinquencyRecord) -> DelinquencyItem:
    return DelinquencyItem(
        id=record.id,
        unit_id=record.unit_id,
        category_id=record.category_id,
        amount=record.amount,
        amount_paid=record.amount_paid or 0,
        due_date=record.due_date,
        payment_date=record.payment_date,
    )


class DelinquencyService:
    def __init__(self, db: Session, cache: MonthlyBalanceCache | None = None):
        self.db = db
        self.cache = cache if cache is not None else MonthlyBalanceCache()

    def _query(self, condominium_id: int):
        return self.db.query(DelinquencyRecord).filter(
            DelinquencyRecord.condominium_id == condominium_id
        )

    def _rows(self, records: list[DelinquencyRecord], today: date) -> list[DelinquencyRow]:
        return [DelinquencyRow(r, days_late(r.due_date, r.payment_date, today)) for r in records]

    def register(self, condominium_id: int, month: date, today: date) -> list[DelinquencyRow]:
        """Records due in the month, newest due date first."""
        start, end = month_interval(month)
        with store_errors(self.db, "load delinquency register"):
            records = (
                self._query(condominium_id)
                .filter(DelinquencyRecord.due_date >= start, DelinquencyRecord.due_date <= end)
                .order_by(DelinquencyRecord.due_date.desc(), DelinquencyRecord.id.desc())
                .all()
            )
        return self._rows(records, today)

    def register_all_period(self, condominium_id: int, today: date) -> list[DelinquencyRow]:
        with store_errors(self.db, "load delinquency register"):
            records = (
                self._query(condominium_id)
                .order_by(DelinquencyRecord.due_date.desc(), DelinquencyRecord.id.desc())
                .all()
            )
        return self._rows(records, today)

    def _in_range(self, condominium_id: int, start: date, end: date) -> list[DelinquencyRecord]:
        validate_range(start, end)
        with store_errors(self.db, "load delinquency records"):
            return (
                self._query(condominium_id)
                .filter(DelinquencyRecord.due_date >= start, DelinquencyRecord.due_date <= end)
                .all()
            )

    def resume(self, condominium_id: int, start: date, end: date, now: date) -> DelinquencySummary:
        records = self._in_range(condominium_id, start, end)
        with store_errors(self.db, "count units"):
            total_units = self.db.query(Unit).filter(Unit.condominium_id == condominium_id).count()
        return summarize((to_item(r) for r in records), total_units, now)

    def distribution(self, condominium_id: int, start: date, end: date):
        records = self._in_range(condominium_id, start, end)
        with store_errors(self.db, "load categories"):
            names = {c.id: c.name for c in self.db.query(Category).all()}
        return distribution_by_category((to_item(r) for r in records), names)

    def get(self, delinquency_id: int) -> DelinquencyRecord:
        with store_errors(self.db, "load delinquency record"):
            record = self.db.get(DelinquencyRecord, delinquency_id)
        if record is None:
            raise NotFoundError(f"Inadimplência {delinquency_id} não encontrada.")
        return record

    def _check_category(self, category_id: int | None) -> None:
        if category_id is None:
            return
        with store_errors(self.db, "load category"):
            exists = self.db.get(Category, category_id) is not None
        if not exists:
            raise ValidationError(f"Categoria {category_id} inexistente.", code="unknown_category")

    def _new_pair(self, record: DelinquencyRecord) -> FinancialRecord:
        return FinancialRecord(
            condominium_id=record.condominium_id,
            status_id=get_payment_status()["paid"],
            payment_method_id=get_delinquency_payment_method_id(),
            is_recurring=False,
            delinquency_record_id=record.id,
            **{f: getattr(record, f) for f in SYNCED_FIELDS},
        )

    def create(self, condominium_id: int, data: dict) -> DelinquencyRecord:
        """Insert the record; one created already paid gets its paired financial record too."""
        self._check_category(data.get("category_id"))
        with store_errors(self.db, "create delinquency record"):
            record = DelinquencyRecord(condominium_id=condominium_id, **data)
            self.db.add(record)
            self.db.flush()
            action = pairing_action(False, record.payment_date)
            if action == PAIR_INSERT:
                self.db.add(self._new_pair(record))
            self.db.commit()
            self.db.refresh(record)
        if action == PAIR_INSERT:
            self.cache.invalidate(condominium_id, record.payment_date)
        logger.info(
            f"Created delinquency record {record.id} for condominium {condominium_id}, "
            f"paired record action: {action}"
        )
        return record

    def paired_record(self, delinquency_id: int) -> FinancialRecord | None:
        with store_errors(self.db, "load paired financial record"):
            return (
                self.db.query(FinancialRecord)
                .filter(
                    FinancialRecord.delinquency_record_id == delinquency_id,
                    FinancialRecord.is_deleted.is_(False),
                )
                .first()
            )

    def update(self, delinquency_id: int, patch: dict) -> DelinquencyRecord:
        """
        Apply `patch` and keep the paired financial record in sync with the
        resulting payment date. Both writes are committed together.
        """
        record = self.get(delinquency_id)
        self._check_category(patch.get("category_id"))
        paired = self.paired_record(delinquency_id)
        touched = [record.payment_date or record.due_date]

        with store_errors(self.db, "update delinquency record"):
            for field, value in patch.items():
                setattr(record, field, value)

            action = pairing_action(paired is not None, record.payment_date)
            if action == PAIR_INSERT:
                self.db.add(self._new_pair(record))
            elif action == PAIR_DELETE:
                touched.append(paired.payment_date or paired.due_date)
                self.db.delete(paired)
            elif action == PAIR_UPDATE:
                touched.append(paired.payment_date or paired.due_date)
                for field in SYNCED_FIELDS:
                    setattr(paired, field, getattr(record, field))

            self.db.commit()
            self.db.refresh(record)

        touched.append(record.payment_date or record.due_date)
        self.cache.invalidate(record.condominium_id, *touched)
        logger.info(f"Updated delinquency record {delinquency_id}, paired record action: {action}")
        return record

    def delete(self, delinquency_id: int) -> None:
        """Delete the paired financial record, then the delinquency record."""
        record = self.get(delinquency_id)
        with store_errors(self.db, "delete delinquency record"):
            # soft-deleted pairs still reference the row
            paired = (
                self.db.query(FinancialRecord)
                .filter(FinancialRecord.delinquency_record_id == delinquency_id)
                .all()
            )
            for financial in paired:
                self.cache.invalidate(
                    record.condominium_id, financial.payment_date or financial.due_date
                )
                self.db.delete(financial)
            self.db.flush()
            self.db.delete(record)
            self.db.commit()
        logger.info(f"Deleted delinquency record {delinquency_id}")
