"""Tests for installment schedules and the maintenance chain."""
from datetime import date
from decimal import Decimal

import pytest

from condo_finance.core.errors import ValidationError
from condo_finance.core.installments import (
    ChainNode,
    MaintenanceChain,
    build_schedule,
    diff_schedule,
    should_spawn_successor,
    split_amount,
)
from condo_finance.utils.constants_loader import get_maintenance_constants


class TestSplit:
    def test_even_split(self):
        assert split_amount(Decimal("300.00"), 3) == [Decimal("100.00")] * 3

    def test_last_share_absorbs_remainder(self):
        shares = split_amount(Decimal("100.00"), 3)
        assert shares == [Decimal("33.33"), Decimal("33.33"), Decimal("33.34")]
        assert sum(shares) == Decimal("100.00")

    @pytest.mark.parametrize("n", [1, 2, 3, 6, 7, 11, 12, 24])
    def test_sum_is_exact(self, n):
        amount = Decimal("1234.57")
        assert sum(split_amount(amount, n)) == amount
        assert len(split_amount(amount, n)) == n

    def test_rejects_zero_installments(self):
        with pytest.raises(ValidationError):
            split_amount(Decimal("10"), 0)


class TestSchedule:
    def test_three_installments_from_january(self):
        schedule = build_schedule(Decimal("300.00"), date(2025, 1, 15), 3, True)
        assert [p.payment_date for p in schedule] == [
            date(2025, 1, 15),
            date(2025, 2, 15),
            date(2025, 3, 15),
        ]
        assert [p.amount for p in schedule] == [Decimal("100.00")] * 3
        assert [p.installment_number for p in schedule] == [0, 1, 2]
        assert all(p.is_installment for p in schedule)

    def test_month_end_dates_clamp(self):
        schedule = build_schedule(Decimal("90.00"), date(2025, 1, 31), 3, True)
        assert [p.payment_date for p in schedule] == [
            date(2025, 1, 31),
            date(2025, 2, 28),
            date(2025, 3, 31),
        ]

    def test_single_payment_default(self):
        schedule = build_schedule(Decimal("80.00"), date(2025, 5, 2))
        assert len(schedule) == 1
        assert schedule[0].amount == Decimal("80.00")
        assert not schedule[0].is_installment


class TestDiff:
    def test_shrink(self):
        schedule = build_schedule(Decimal("100.00"), date(2025, 1, 1), 2, True)
        diff = diff_schedule([(10, 0), (11, 1), (12, 2)], schedule)
        assert [pid for pid, _ in diff.to_update] == [10, 11]
        assert diff.to_insert == []
        assert diff.to_delete == [12]

    def test_grow(self):
        schedule = build_schedule(Decimal("100.00"), date(2025, 1, 1), 4, True)
        diff = diff_schedule([(10, 0), (11, 1)], schedule)
        assert [pid for pid, _ in diff.to_update] == [10, 11]
        assert [p.installment_number for p in diff.to_insert] == [2, 3]
        assert diff.to_delete == []

    def test_duplicate_indexes_deleted(self):
        schedule = build_schedule(Decimal("100.00"), date(2025, 1, 1), 1)
        diff = diff_schedule([(10, 0), (11, 0)], schedule)
        assert diff.to_update[0][0] == 10
        assert diff.to_delete == [11]

    def test_empty_schedule_deletes_all(self):
        diff = diff_schedule([(1, 0), (2, 1)], [])
        assert diff.to_delete == [1, 2]


class TestChain:
    def _chain(self):
        return MaintenanceChain(
            [
                ChainNode(1, date(2025, 1, 10), 2),
                ChainNode(2, date(2025, 7, 10), None),
                ChainNode(3, date(2025, 3, 1), None),
            ]
        )

    def test_occurrences(self):
        assert self._chain().occurrences(1) == [1, 2]

    def test_link_later_successor(self):
        chain = self._chain()
        chain.link(2, ChainNode(4, date(2026, 1, 10)))
        assert chain.successor(2) == 4
        assert chain.occurrences(1) == [1, 2, 4]

    def test_second_successor_rejected(self):
        with pytest.raises(ValidationError):
            self._chain().link(1, ChainNode(4, date(2026, 1, 1)))

    def test_non_later_successor_rejected(self):
        with pytest.raises(ValidationError):
            self._chain().link(2, ChainNode(4, date(2025, 7, 10)))

    def test_cycle_rejected(self):
        chain = MaintenanceChain([ChainNode(1, None, 2), ChainNode(2, None, None)])
        with pytest.raises(ValidationError):
            chain.link(2, ChainNode(1, None, 2))

    def test_detach(self):
        chain = self._chain()
        assert chain.detach(2) == [1]
        assert chain.successor(1) is None
        assert chain.detach(3) == []


class TestSuccessorRule:
    def test_completed_preventive_spawns(self):
        c = get_maintenance_constants()
        assert should_spawn_successor(1, 1, c["statuses"]["completed"], None, c)

    @pytest.mark.parametrize(
        "type_id,kind_id,status_key,next_id",
        [
            (2, 1, "completed", None),
            (1, 2, "completed", None),
            (1, 1, "in_progress", None),
            (1, 1, "completed", 99),
        ],
    )
    def test_no_spawn(self, type_id, kind_id, status_key, next_id):
        c = get_maintenance_constants()
        assert not should_spawn_successor(type_id, kind_id, c["statuses"][status_key], next_id, c)
