"""
Installment schedules for maintenance payments and the chain of recurring
preventive maintenance occurrences.
"""
from dataclasses import dataclass, field
from datetime import date
from decimal import ROUND_DOWN, Decimal
from typing import Iterable

from condo_finance.core.errors import ValidationError
from condo_finance.core.money import CENT
from condo_finance.core.periods import add_months


def split_amount(amount: Decimal, installments: int) -> list[Decimal]:
    """
    Split `amount` into equal shares rounded down to the cent.
    The last share absorbs the remainder so the shares sum to exactly `amount`.
    """
    if installments < 1:
        raise ValidationError(
            "O número de parcelas deve ser maior ou igual a 1.", code="invalid_installments"
        )
    amount = Decimal(amount)
    share = (amount / installments).quantize(CENT, rounding=ROUND_DOWN)
    shares = [share] * installments
    shares[-1] = amount - share * (installments - 1)
    return shares


@dataclass(frozen=True)
class ScheduledPayment:
    installment_number: int  # 0-based
    payment_date: date
    amount: Decimal
    is_installment: bool


def build_schedule(
    amount: Decimal,
    first_payment_date: date,
    installments: int = 1,
    is_installment: bool = False,
) -> list[ScheduledPayment]:
    """One payment per month starting at `first_payment_date`."""
    return [
        ScheduledPayment(
            installment_number=i,
            payment_date=add_months(first_payment_date, i),
            amount=share,
            is_installment=is_installment,
        )
        for i, share in enumerate(split_amount(amount, installments))
    ]


@dataclass
class ScheduleDiff:
    to_update: list[tuple[int, ScheduledPayment]] = field(default_factory=list)
    to_insert: list[ScheduledPayment] = field(default_factory=list)
    to_delete: list[int] = field(default_factory=list)


def diff_schedule(
    existing: Iterable[tuple[int, int]], schedule: list[ScheduledPayment]
) -> ScheduleDiff:
    """
    Patch plan turning the stored rows into `schedule`, keyed by installment index.

    existing: (payment_id, installment_number) pairs of the stored rows.
    Rows whose index is still scheduled are updated in place; surplus and
    duplicate indexes are deleted; missing indexes are inserted.
    """
    diff = ScheduleDiff()
    by_index: dict[int, int] = {}
    for payment_id, number in sorted(existing, key=lambda row: row[0]):
        if number in by_index or number >= len(schedule):
            diff.to_delete.append(payment_id)
        else:
            by_index[number] = payment_id
    for payment in schedule:
        payment_id = by_index.get(payment.installment_number)
        if payment_id is None:
            diff.to_insert.append(payment)
        else:
            diff.to_update.append((payment_id, payment))
    return diff


@dataclass
class ChainNode:
    id: int
    planned_start: date | None
    next_id: int | None = None


class MaintenanceChain:
    """
    Maintenance rows of a condominium seen as a linked list of occurrences.
    Every row has at most one successor, planned strictly later, and the
    chain never loops back.
    """

    def __init__(self, nodes: Iterable[ChainNode]):
        self._nodes = {n.id: n for n in nodes}

    def successor(self, node_id: int) -> int | None:
        node = self._nodes.get(node_id)
        return node.next_id if node else None

    def predecessors(self, node_id: int) -> list[int]:
        return sorted(n.id for n in self._nodes.values() if n.next_id == node_id)

    def occurrences(self, node_id: int) -> list[int]:
        """Ids from `node_id` following successors to the end of the chain."""
        result = []
        current = node_id
        while current is not None and current not in result:
            result.append(current)
            current = self.successor(current)
        return result

    def link(self, parent_id: int, child: ChainNode) -> None:
        parent = self._nodes.get(parent_id)
        if parent is None:
            raise ValidationError(f"Manutenção {parent_id} fora da cadeia.", code="invalid_chain")
        if parent.next_id is not None:
            raise ValidationError(
                f"A manutenção {parent_id} já possui uma próxima ocorrência.", code="invalid_chain"
            )
        if (
            parent.planned_start is not None
            and (child.planned_start is None or child.planned_start <= parent.planned_start)
        ):
            raise ValidationError(
                "A próxima manutenção deve ser planejada para depois da atual.",
                code="invalid_chain",
            )
        self._nodes.setdefault(child.id, child)
        if parent_id in self.occurrences(child.id):
            raise ValidationError("A cadeia de manutenções não pode formar ciclo.", code="invalid_chain")
        parent.next_id = child.id

    def detach(self, node_id: int) -> list[int]:
        """Clear every link pointing at `node_id`; returns the affected predecessors."""
        affected = self.predecessors(node_id)
        for pred_id in affected:
            self._nodes[pred_id].next_id = None
        return affected


def should_spawn_successor(
    type_id: int | None,
    kind_id: int | None,
    status_id: int | None,
    next_maintenance_id: int | None,
    constants: dict,
) -> bool:
    """A completed preventive maintenance without successor spawns its next occurrence."""
    return (
        type_id == constants["types"]["maintenance"]
        and kind_id == constants["kinds"]["preventive"]
        and status_id == constants["statuses"]["completed"]
        and next_maintenance_id is None
    )
