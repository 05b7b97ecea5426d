"""
Maintenance and improvement records with their payment schedules.

Schedule edits are applied as a diff keyed by installment index so payment
rows keep their identity and confirmation flag across edits. A completed
preventive maintenance can spawn exactly one next occurrence.
"""

import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from sqlalchemy.orm import Session, selectinload

from condo_finance.core.errors import NotFoundError, ValidationError
from condo_finance.core.installments import (
    ChainNode,
    MaintenanceChain,
    ScheduledPayment,
    build_schedule,
    diff_schedule,
    should_spawn_successor,
)
from condo_finance.core.money import CENT, ZERO, percentage
from condo_finance.core.periods import days_between, month_interval
from condo_finance.models.maintenance import Maintenance, MaintenancePayment
from condo_finance.services.ledger_service import LedgerService, MonthlyBalanceCache
from condo_finance.services.store import store_errors
from condo_finance.utils.constants_loader import get_maintenance_constants

logger = logging.getLogger(__name__)

# Descriptive fields carried over to the next occurrence
CLONED_FIELDS = (
    "type_id",
    "maintenance_kind_id",
    "description",
    "area",
    "supplier",
    "contact",
    "amount",
    "priority_id",
    "payment_method_id",
    "execution_time",
    "is_installment",
    "number_of_installments",
)


@dataclass
class MaintenanceCards:
    new_monthly_fixed_costs: Decimal
    approved_improvements_cost: Decimal
    balance: Decimal


@dataclass
class MaintenanceIndicators:
    average_execution_days_improvements: Decimal
    improvements_implemented: int
    improvements_cost: Decimal
    average_improvement_cost: Decimal
    maintenance_performed: int
    maintenance_cost: Decimal
    average_maintenance_cost: Decimal
    percentage_impact_improvements: Decimal
    percentage_impact_maintenances: Decimal


def average(total: Decimal, count: int) -> Decimal:
    if not count:
        return ZERO
    return (Decimal(total) / count).quantize(CENT)


def schedule_for(maintenance: Maintenance) -> list[ScheduledPayment]:
    """Payments the row should have; none until both payment date and amount are known."""
    if maintenance.payment_date is None or maintenance.amount is None:
        return []
    installments = (maintenance.number_of_installments or 1) if maintenance.is_installment else 1
    return build_schedule(
        maintenance.amount,
        maintenance.payment_date,
        installments,
        bool(maintenance.is_installment),
    )


def normalize_installments(maintenance: Maintenance) -> None:
    if not maintenance.is_installment:
        maintenance.number_of_installments = None
    elif maintenance.number_of_installments is not None and maintenance.number_of_installments < 1:
        raise ValidationError(
            "O número de parcelas deve ser maior ou igual a 1.", code="invalid_installments"
        )


class MaintenanceService:
    def __init__(self, db: Session, cache: MonthlyBalanceCache | None = None):
        self.db = db
        self.ledger = LedgerService(db, cache)
        self.constants = get_maintenance_constants()

    def get(self, maintenance_id: int) -> Maintenance:
        with store_errors(self.db, "load maintenance"):
            maintenance = self.db.get(Maintenance, maintenance_id)
        if maintenance is None:
            raise NotFoundError(f"Manutenção {maintenance_id} não encontrada.")
        return maintenance

    def list_maintenances(self, condominium_id: int, year: int) -> list[Maintenance]:
        """Rows with at least one payment dated in `year`."""
        start, end = date(year, 1, 1), date(year, 12, 31)
        with store_errors(self.db, "list maintenances"):
            return (
                self.db.query(Maintenance)
                .options(selectinload(Maintenance.payments))
                .filter(
                    Maintenance.condominium_id == condominium_id,
                    Maintenance.payments.any(
                        (MaintenancePayment.payment_date >= start)
                        & (MaintenancePayment.payment_date <= end)
                    ),
                )
                .order_by(Maintenance.id)
                .all()
            )

    def _apply_schedule(self, maintenance: Maintenance) -> None:
        schedule = schedule_for(maintenance)
        existing = {p.id: p for p in maintenance.payments}
        diff = diff_schedule(
            [(p.id, p.installment_number) for p in maintenance.payments], schedule
        )
        # a confirmed payment keeps its date and amount
        changed = [existing[i] for i in diff.to_delete] + [
            existing[i]
            for i, planned in diff.to_update
            if existing[i].payment_date != planned.payment_date
            or existing[i].amount != planned.amount
        ]
        confirmed = sorted(p.installment_number + 1 for p in changed if p.is_confirmed)
        if confirmed:
            raise ValidationError(
                f"Parcela(s) já confirmada(s) não podem ser alteradas: {confirmed}.",
                code="confirmed_payment",
            )
        for payment_id in diff.to_delete:
            maintenance.payments.remove(existing[payment_id])
        for payment_id, planned in diff.to_update:
            payment = existing[payment_id]
            payment.payment_date = planned.payment_date
            payment.amount = planned.amount
            payment.is_installment = planned.is_installment
        for planned in diff.to_insert:
            maintenance.payments.append(
                MaintenancePayment(
                    installment_number=planned.installment_number,
                    payment_date=planned.payment_date,
                    amount=planned.amount,
                    is_installment=planned.is_installment,
                )
            )
        logger.debug(
            f"Schedule of maintenance {maintenance.id}: {len(diff.to_update)} updated, "
            f"{len(diff.to_insert)} inserted, {len(diff.to_delete)} deleted"
        )

    def create(self, condominium_id: int, data: dict) -> Maintenance:
        maintenance = Maintenance(condominium_id=condominium_id, **data)
        normalize_installments(maintenance)
        schedule = schedule_for(maintenance)
        with store_errors(self.db, "create maintenance"):
            self.db.add(maintenance)
            for planned in schedule:
                maintenance.payments.append(
                    MaintenancePayment(
                        installment_number=planned.installment_number,
                        payment_date=planned.payment_date,
                        amount=planned.amount,
                        is_installment=planned.is_installment,
                    )
                )
            self.db.commit()
            self.db.refresh(maintenance)
        logger.info(
            f"Created maintenance {maintenance.id} for condominium {condominium_id} "
            f"with {len(schedule)} payment(s)"
        )
        return maintenance

    def _chain(self, condominium_id: int) -> MaintenanceChain:
        rows = (
            self.db.query(Maintenance.id, Maintenance.planned_start, Maintenance.next_maintenance_id)
            .filter(Maintenance.condominium_id == condominium_id)
            .all()
        )
        return MaintenanceChain(ChainNode(r[0], r[1], r[2]) for r in rows)

    def _spawn_successor(self, maintenance: Maintenance, planned_start: date) -> Maintenance:
        self.db.flush()
        successor = Maintenance(
            condominium_id=maintenance.condominium_id,
            status_id=self.constants["statuses"]["planned"],
            planned_start=planned_start,
            **{f: getattr(maintenance, f) for f in CLONED_FIELDS},
        )
        chain = self._chain(maintenance.condominium_id)
        self.db.add(successor)
        self.db.flush()
        chain.link(maintenance.id, ChainNode(successor.id, planned_start))
        maintenance.next_maintenance_id = successor.id
        return successor

    def update(
        self, maintenance_id: int, patch: dict, next_maintenance: date | None = None
    ) -> Maintenance:
        maintenance = self.get(maintenance_id)
        successor = None
        with store_errors(self.db, "update maintenance"):
            try:
                for field, value in patch.items():
                    setattr(maintenance, field, value)
                normalize_installments(maintenance)
                self._apply_schedule(maintenance)
                spawn = next_maintenance is not None and should_spawn_successor(
                    maintenance.type_id,
                    maintenance.maintenance_kind_id,
                    maintenance.status_id,
                    maintenance.next_maintenance_id,
                    self.constants,
                )
                if spawn:
                    successor = self._spawn_successor(maintenance, next_maintenance)
            except ValidationError:
                self.db.rollback()
                raise
            self.db.commit()
            self.db.refresh(maintenance)
        logger.info(f"Updated maintenance {maintenance_id}")
        if successor is not None:
            logger.info(f"Maintenance {maintenance_id} spawned next occurrence {successor.id}")
        return maintenance

    def delete(self, maintenance_id: int) -> None:
        """Unlink every predecessor, then delete the row and its payments."""
        maintenance = self.get(maintenance_id)
        with store_errors(self.db, "delete maintenance"):
            chain = self._chain(maintenance.condominium_id)
            predecessors = chain.detach(maintenance_id)
            if predecessors:
                self.db.query(Maintenance).filter(Maintenance.id.in_(predecessors)).update(
                    {Maintenance.next_maintenance_id: None}, synchronize_session="fetch"
                )
                self.db.flush()
            self.db.delete(maintenance)
            self.db.commit()
        logger.info(
            f"Deleted maintenance {maintenance_id}"
            + (f", unlinked predecessors {predecessors}" if predecessors else "")
        )

    def confirm_payment(self, payment_id: int) -> MaintenancePayment:
        with store_errors(self.db, "confirm maintenance payment"):
            payment = self.db.get(MaintenancePayment, payment_id)
            if payment is None:
                raise NotFoundError(f"Pagamento {payment_id} não encontrado.")
            payment.is_confirmed = True
            self.db.commit()
            self.db.refresh(payment)
        return payment

    def cards(self, condominium_id: int, reference: date, today: date) -> MaintenanceCards:
        """
        new_monthly_fixed_costs: payments due this month on non-cancelled rows.
        approved_improvements_cost: amount of each non-cancelled improvement with a
        payment in the reference year, counted once.
        balance: accumulated fund position of the current year.
        """
        cancelled = self.constants["statuses"]["cancelled"]
        improvement = self.constants["types"]["improvement"]
        month_start, month_end = month_interval(today)
        year_start, year_end = date(reference.year, 1, 1), date(reference.year, 12, 31)
        with store_errors(self.db, "load maintenance payments"):
            rows = (
                self.db.query(MaintenancePayment, Maintenance)
                .join(Maintenance, MaintenancePayment.maintenance_id == Maintenance.id)
                .filter(
                    Maintenance.condominium_id == condominium_id,
                    Maintenance.status_id != cancelled,
                )
                .all()
            )

        monthly = ZERO
        approved: dict[int, Decimal] = {}
        for payment, maintenance in rows:
            if month_start <= payment.payment_date <= month_end:
                monthly += payment.amount
            if maintenance.type_id == improvement and year_start <= payment.payment_date <= year_end:
                approved[maintenance.id] = maintenance.amount or ZERO

        return MaintenanceCards(
            new_monthly_fixed_costs=monthly,
            approved_improvements_cost=sum(approved.values(), ZERO),
            balance=self.ledger.accumulated_balance(condominium_id, month_start, month_end),
        )

    def indicators_resume(self, condominium_id: int, year: int) -> MaintenanceIndicators:
        """Maintenance vs improvement figures for rows planned in `year`."""
        types = self.constants["types"]
        with store_errors(self.db, "load maintenances"):
            rows = (
                self.db.query(Maintenance)
                .filter(
                    Maintenance.condominium_id == condominium_id,
                    Maintenance.planned_start >= date(year, 1, 1),
                    Maintenance.planned_start <= date(year, 12, 31),
                )
                .all()
            )
        months = self.ledger.month_balances(condominium_id, date(year, 1, 1), date(year, 12, 31))
        total_expenses = sum((m.expenses for m in months), ZERO)

        improvements = [m for m in rows if m.type_id == types["improvement"]]
        maintenances = [m for m in rows if m.type_id == types["maintenance"]]
        finished = [m for m in improvements if m.actual_start and m.actual_end]
        execution_days = sum(days_between(m.actual_end, m.actual_start) for m in finished)
        improvements_cost = sum((m.amount or ZERO for m in improvements), ZERO)
        maintenance_cost = sum((m.amount or ZERO for m in maintenances), ZERO)

        return MaintenanceIndicators(
            average_execution_days_improvements=average(Decimal(execution_days), len(finished)),
            improvements_implemented=len(improvements),
            improvements_cost=improvements_cost,
            average_improvement_cost=average(improvements_cost, len(improvements)),
            maintenance_performed=len(maintenances),
            maintenance_cost=maintenance_cost,
            average_maintenance_cost=average(maintenance_cost, len(maintenances)),
            percentage_impact_improvements=percentage(improvements_cost, total_expenses),
            percentage_impact_maintenances=percentage(maintenance_cost, total_expenses),
        )
