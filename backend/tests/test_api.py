"""Integration tests for the FastAPI endpoints."""
from datetime import date
from decimal import Decimal

import pytest

from condo_finance.api.deps import get_today
from condo_finance.core.categories import EXPENSE, INCOME
from condo_finance.main import app
from condo_finance.models import DelinquencyRecord, FinancialRecord, Maintenance, MaintenancePayment
from condo_finance.services.ledger_service import LedgerService, MonthlyBalanceCache, get_month_cache

TODAY = date(2025, 7, 20)


@pytest.fixture
def today(client):
    app.dependency_overrides[get_today] = lambda: TODAY
    return TODAY


def _money(value) -> Decimal:
    return Decimal(str(value))


def _record(client, condo_id, **overrides):
    data = {
        "categoryId": 1,
        "amount": "100.00",
        "amountPaid": "100.00",
        "dueDate": "2025-07-05",
    }
    data.update(overrides)
    r = client.post(f"/api/finance/records/{condo_id}", json=data)
    assert r.status_code == 201, r.text
    return r.json()


class TestHealth:
    def test_health(self, client):
        r = client.get("/health")
        assert r.status_code == 200
        assert r.json()["status"] == "ok"


class TestTotals:
    def test_july_scenario(self, client, condo_id):
        _record(client, condo_id, amountPaid="100.00")
        _record(client, condo_id, amount="250,50", amountPaid="250,50", dueDate="2025-07-10")
        _record(client, condo_id, amount=49.5, amountPaid=49.5, dueDate="2025-07-31")

        r = client.get(f"/api/finance/totals/{condo_id}/2025-07-01/2025-07-31")
        assert r.status_code == 200
        data = r.json()
        assert _money(data["totalIncome"]) == Decimal("400.00")
        assert _money(data["totalExpenses"]) == Decimal("0")
        assert _money(data["balance"]) == Decimal("400.00")
        assert _money(data["accumulatedBalance"]) == Decimal("400.00")
        assert data["isSameMonth"] is True

    def test_zero_rows_is_zero(self, client, condo_id):
        r = client.get(f"/api/finance/totals/{condo_id}/2025-07-01/2025-07-31")
        assert r.status_code == 200
        assert _money(r.json()["totalIncome"]) == Decimal("0")
        assert _money(r.json()["accumulatedBalance"]) == Decimal("0")

    def test_soft_deleted_records_excluded(self, client, condo_id):
        created = _record(client, condo_id)
        _record(client, condo_id, categoryId=5, amount="30.00", amountPaid="30.00")
        assert client.delete(f"/api/finance/records/{created['id']}").status_code == 204

        data = client.get(f"/api/finance/totals/{condo_id}/2025-07-01/2025-07-31").json()
        assert _money(data["totalIncome"]) == Decimal("0")
        assert _money(data["totalExpenses"]) == Decimal("30.00")
        assert _money(data["balance"]) == Decimal("-30.00")

    def test_accumulated_balance_spans_year(self, client, condo_id):
        _record(client, condo_id, dueDate="2025-02-10")
        _record(client, condo_id, categoryId=6, amount="40.00", amountPaid="40.00", dueDate="2025-11-10")
        _record(client, condo_id, dueDate="2024-12-10")

        data = client.get(f"/api/finance/totals/{condo_id}/2025-07-01/2025-07-31").json()
        assert _money(data["totalIncome"]) == Decimal("0")
        assert _money(data["accumulatedBalance"]) == Decimal("60.00")

    def test_revenue_and_expenses_halves(self, client, condo_id):
        _record(client, condo_id)
        _record(client, condo_id, categoryId=7, amount="12.00", amountPaid="12.00")
        r = client.get(f"/api/finance/revenue-total/{condo_id}/2025-07-01/2025-07-31")
        assert _money(r.json()["totalIncome"]) == Decimal("100.00")
        r = client.get(f"/api/finance/expenses-total/{condo_id}/2025-07-01/2025-07-31")
        assert _money(r.json()["totalExpenses"]) == Decimal("12.00")

    def test_invalid_date_is_422(self, client, condo_id):
        r = client.get(f"/api/finance/totals/{condo_id}/2025-13-01/2025-07-31")
        assert r.status_code == 422
        assert r.json()["detail"]["code"] == "invalid_date"

    def test_inverted_range_is_422(self, client, condo_id):
        r = client.get(f"/api/finance/totals/{condo_id}/2025-08-01/2025-07-31")
        assert r.status_code == 422
        assert r.json()["detail"]["code"] == "invalid_range"


class TestOverrides:
    def test_override_precedence_and_redefine(self, client, condo_id):
        _record(client, condo_id, amountPaid="500.00", amount="500.00")
        url = f"/api/finance/totals/{condo_id}/2025-07-01/2025-07-31"
        assert _money(client.get(url).json()["totalIncome"]) == Decimal("500.00")

        r = client.patch(f"/api/finance/overrides/{condo_id}/2025-07/income", json={"value": "1.234,56"})
        assert r.status_code == 200, r.text
        assert _money(r.json()["income"]) == Decimal("1234.56")
        data = client.get(url).json()
        assert _money(data["totalIncome"]) == Decimal("1234.56")
        assert _money(data["accumulatedBalance"]) == Decimal("1234.56")

        r = client.delete(f"/api/finance/overrides/{condo_id}/2025-07/income")
        assert r.status_code == 200
        assert r.json()["income"] is None
        assert _money(client.get(url).json()["totalIncome"]) == Decimal("500.00")

    def test_targets_only_for_single_month(self, client, condo_id):
        r = client.patch(
            f"/api/finance/overrides/{condo_id}/2025-07-01/expenses",
            json={"value": None, "target": "800.00"},
        )
        assert r.status_code == 200
        single = client.get(f"/api/finance/totals/{condo_id}/2025-07-01/2025-07-31").json()
        assert _money(single["expensesTarget"]) == Decimal("800.00")
        assert single["incomeTarget"] is None

        multi = client.get(f"/api/finance/totals/{condo_id}/2025-06-01/2025-07-31").json()
        assert multi["expensesTarget"] is None
        assert multi["isSameMonth"] is False

    def test_target_kept_when_not_sent(self, client, condo_id):
        url = f"/api/finance/overrides/{condo_id}/2025-07/income"
        client.patch(url, json={"value": "10.00", "target": "20.00"})
        r = client.patch(url, json={"value": "15.00"})
        assert _money(r.json()["incomeTarget"]) == Decimal("20.00")

    def test_invalid_field(self, client, condo_id):
        r = client.patch(f"/api/finance/overrides/{condo_id}/2025-07/profit", json={"value": "1"})
        assert r.status_code == 422
        assert r.json()["detail"]["code"] == "invalid_field"

    def test_invalid_month(self, client, condo_id):
        r = client.patch(f"/api/finance/overrides/{condo_id}/2025-7/income", json={"value": "1"})
        assert r.status_code == 422
        assert r.json()["detail"]["code"] == "invalid_period"

    def test_bad_money_is_422(self, client, condo_id):
        r = client.patch(f"/api/finance/overrides/{condo_id}/2025-07/income", json={"value": "abc"})
        assert r.status_code == 422


class TestRecords:
    def test_update_moves_record_between_months(self, client, condo_id):
        created = _record(client, condo_id)
        july = f"/api/finance/totals/{condo_id}/2025-07-01/2025-07-31"
        august = f"/api/finance/totals/{condo_id}/2025-08-01/2025-08-31"
        assert _money(client.get(july).json()["totalIncome"]) == Decimal("100.00")
        assert _money(client.get(august).json()["totalIncome"]) == Decimal("0")

        r = client.put(f"/api/finance/records/{created['id']}", json={"paymentDate": "2025-08-02"})
        assert r.status_code == 200
        assert _money(client.get(july).json()["totalIncome"]) == Decimal("0")
        assert _money(client.get(august).json()["totalIncome"]) == Decimal("100.00")

    def test_list_records(self, client, condo_id):
        _record(client, condo_id, dueDate="2025-07-01")
        _record(client, condo_id, categoryId=5, dueDate="2025-07-09")
        r = client.get(f"/api/finance/records/{condo_id}", params={"start": "2025-07-01", "end": "2025-07-31"})
        assert r.status_code == 200
        data = r.json()
        assert [d["dueDate"] for d in data] == ["2025-07-09", "2025-07-01"]
        assert data[0]["categoryName"] == "Folha de pagamento"

        r = client.get(
            f"/api/finance/records/{condo_id}",
            params={"start": "2025-07-01", "end": "2025-07-31", "kinds": "income"},
        )
        assert len(r.json()) == 1

    def test_status_defaults(self, client, condo_id):
        pending = _record(client, condo_id)
        paid = _record(client, condo_id, paymentDate="2025-07-06")
        assert pending["statusId"] == 1
        assert paid["statusId"] == 2

    def test_unknown_category(self, client, condo_id):
        r = client.post(
            f"/api/finance/records/{condo_id}",
            json={"categoryId": 99, "amount": "1", "dueDate": "2025-07-01"},
        )
        assert r.status_code == 422
        assert r.json()["detail"]["code"] == "unknown_category"

    def test_update_null_required_field_is_422(self, client, db, condo_id):
        created = _record(client, condo_id)
        for field in ("amount", "amountPaid", "dueDate", "categoryId", "isRecurring"):
            r = client.put(f"/api/finance/records/{created['id']}", json={field: None})
            assert r.status_code == 422, field
        db.expire_all()
        assert db.get(FinancialRecord, created["id"]).amount == Decimal("100.00")

    def test_update_clears_optional_field(self, client, condo_id):
        created = _record(client, condo_id, paymentDate="2025-07-06")
        r = client.put(f"/api/finance/records/{created['id']}", json={"paymentDate": None})
        assert r.status_code == 200
        assert r.json()["paymentDate"] is None

    def test_update_not_found(self, client, condo_id):
        r = client.put("/api/finance/records/9999", json={"amount": "1"})
        assert r.status_code == 404
        assert r.json()["detail"]["code"] == "not_found"

    def test_options(self, client, condo_id):
        categories = client.get("/api/finance/categories-options").json()
        assert len(categories) == 8
        assert categories[0]["incomeExpenseTypeId"] == 4
        units = client.get(f"/api/finance/units/{condo_id}").json()
        assert [u["number"] for u in units] == ["101", "102", "103", "104"]


class TestMonthCache:
    def test_reads_fill_cache_and_writes_invalidate(self, db, condo_id):
        cache = MonthlyBalanceCache()
        ledger = LedgerService(db, cache)
        ledger.totals(condo_id, date(2025, 7, 1), date(2025, 7, 31))
        assert cache.get(condo_id, date(2025, 7, 1)) is not None
        assert len(cache) == 12

        ledger.override_month(condo_id, date(2025, 7, 1), EXPENSE, Decimal("5.00"))
        assert cache.get(condo_id, date(2025, 7, 1)) is None
        assert cache.get(condo_id, date(2025, 6, 1)) is not None

    def test_each_request_gets_its_own_cache(self):
        assert get_month_cache() is not get_month_cache()

    def test_write_from_another_session_is_seen_by_next_read(self, db, other_db, condo_id):
        july = date(2025, 7, 1)
        reader = LedgerService(db)
        reader.month_balances(condo_id, date(2025, 1, 1), date(2025, 12, 31))
        assert reader.cache.get(condo_id, july).income == Decimal("0")

        LedgerService(other_db).override_month(condo_id, july, INCOME, Decimal("5000.00"))

        fresh = LedgerService(db)
        assert fresh.cache is not reader.cache
        totals = fresh.totals(condo_id, july, date(2025, 7, 31))
        assert totals.total_income == Decimal("5000.00")
        assert totals.accumulated_balance == totals.total_income

    def test_accumulated_balance_follows_overrides_across_requests(self, client, condo_id):
        _record(client, condo_id)
        url = f"/api/finance/totals/{condo_id}/2025-07-01/2025-07-31"
        assert _money(client.get(url).json()["accumulatedBalance"]) == Decimal("100.00")

        client.patch(f"/api/finance/overrides/{condo_id}/2025-07/income", json={"value": "5000.00"})
        data = client.get(url).json()
        assert _money(data["totalIncome"]) == Decimal("5000.00")
        assert _money(data["accumulatedBalance"]) == Decimal("5000.00")


class TestProjection:
    def test_projection_cards(self, client, condo_id, today):
        _record(client, condo_id, amount="1000.00", amountPaid="1000.00", isRecurring=True)
        _record(client, condo_id, categoryId=5, amount="700.00", amountPaid="700.00", isRecurring=True)
        _record(client, condo_id, categoryId=3, amount="50.00", amountPaid="50.00")

        r = client.get(f"/api/finance/projection/cards/{condo_id}/2025-07-31")
        assert r.status_code == 200
        data = r.json()
        assert _money(data["incomesTotal"]) == Decimal("1000.00")
        assert _money(data["expensesTotal"]) == Decimal("700.00")
        assert _money(data["balance"]) == Decimal("300.00")
        assert data["monthsAhead"] == 0
        # 350 to date + one month of recurring balance
        assert _money(data["balanceAccumulated"]) == Decimal("650.00")

        data = client.get(f"/api/finance/projection/cards/{condo_id}/2025-10-15").json()
        assert data["monthsAhead"] == 3
        assert _money(data["balanceAccumulated"]) == Decimal("1250.00")

    def test_projection_registers(self, client, condo_id, today):
        _record(client, condo_id, amount="1000.00", isRecurring=True)
        _record(client, condo_id, amount="200.00", isRecurring=True)
        _record(client, condo_id, categoryId=5, amount="700.00", isRecurring=True)
        _record(client, condo_id, categoryId=5, amount="99.00", isRecurring=True, dueDate="2025-06-05")

        data = client.get(f"/api/finance/projection/registers/{condo_id}/2025-12-01").json()
        by_id = {d["id"]: d for d in data}
        assert _money(by_id[1]["total"]) == Decimal("1200.00")
        assert by_id[1]["type"] == "Receita"
        assert _money(by_id[5]["total"]) == Decimal("700.00")
        assert by_id[5]["type"] == "Despesa"


class TestDelinquency:
    def _create(self, client, condo_id, **overrides):
        data = {
            "unitId": 1,
            "categoryId": 1,
            "amount": "350,00",
            "dueDate": "2025-07-10",
        }
        data.update(overrides)
        r = client.post(f"/api/delinquency/create/{condo_id}", json=data)
        assert r.status_code == 201, r.text
        return r.json()

    def _paired(self, db, delinquency_id):
        db.expire_all()
        return (
            db.query(FinancialRecord)
            .filter(FinancialRecord.delinquency_record_id == delinquency_id)
            .all()
        )

    def test_register_days_late(self, client, condo_id, today):
        self._create(client, condo_id)
        self._create(client, condo_id, unitId=2, dueDate="2025-07-15", paymentDate="2025-07-12")
        self._create(client, condo_id, dueDate="2025-06-15")

        r = client.get(f"/api/delinquency/{condo_id}/2025-07")
        assert r.status_code == 200
        data = r.json()
        assert [d["dueDate"] for d in data] == ["2025-07-15", "2025-07-10"]
        assert [d["daysLate"] for d in data] == [-3, 10]
        assert data[0]["categoryName"] == "Taxa condominial"

        all_period = client.get(f"/api/delinquency/{condo_id}/all-period").json()
        assert len(all_period) == 3

    def test_pairing_state_machine(self, client, db, condo_id):
        created = self._create(client, condo_id)
        url = f"/api/delinquency/update/{created['id']}"

        # none + absent: no-op
        r = client.patch(url, json={"amountPaid": "0"})
        assert r.status_code == 200
        assert self._paired(db, created["id"]) == []

        # none + present: insert paid record
        client.patch(url, json={"paymentDate": "2025-07-12", "amountPaid": "350,00"})
        paired = self._paired(db, created["id"])
        assert len(paired) == 1
        assert paired[0].status_id == 2
        assert paired[0].payment_method_id == 2
        assert paired[0].amount_paid == Decimal("350.00")
        assert paired[0].payment_date == date(2025, 7, 12)
        assert paired[0].unit_id == 1
        paired_id = paired[0].id

        # exists + present: update in place
        client.patch(url, json={"paymentDate": "2025-07-14", "amount": "360.00", "categoryId": 3})
        paired = self._paired(db, created["id"])
        assert [p.id for p in paired] == [paired_id]
        assert paired[0].amount == Decimal("360.00")
        assert paired[0].category_id == 3
        assert paired[0].payment_date == date(2025, 7, 14)

        # exists + absent: delete
        r = client.patch(url, json={"paymentDate": None})
        assert r.status_code == 200
        assert r.json()["paymentDate"] is None
        assert self._paired(db, created["id"]) == []

    def test_paid_delinquency_counts_as_income(self, client, condo_id):
        created = self._create(client, condo_id)
        client.patch(
            f"/api/delinquency/update/{created['id']}",
            json={"paymentDate": "2025-07-12", "amountPaid": "350.00"},
        )
        data = client.get(f"/api/finance/totals/{condo_id}/2025-07-01/2025-07-31").json()
        assert _money(data["totalIncome"]) == Decimal("350.00")

    def test_created_paid_gets_pair(self, client, db, condo_id):
        created = self._create(client, condo_id, paymentDate="2025-07-12", amountPaid="350,00")
        paired = self._paired(db, created["id"])
        assert len(paired) == 1
        assert paired[0].status_id == 2
        assert paired[0].payment_date == date(2025, 7, 12)
        data = client.get(f"/api/finance/totals/{condo_id}/2025-07-01/2025-07-31").json()
        assert _money(data["totalIncome"]) == Decimal("350.00")

        # a later edit updates the same pair instead of inserting another
        client.patch(f"/api/delinquency/update/{created['id']}", json={"amount": "360.00"})
        assert [p.id for p in self._paired(db, created["id"])] == [paired[0].id]

    def test_created_unpaid_has_no_pair(self, client, db, condo_id):
        created = self._create(client, condo_id)
        assert self._paired(db, created["id"]) == []

    def test_delete_removes_pair_first(self, client, db, condo_id):
        created = self._create(client, condo_id, paymentDate=None)
        client.patch(
            f"/api/delinquency/update/{created['id']}",
            json={"paymentDate": "2025-07-12", "amountPaid": "350.00"},
        )
        r = client.delete(f"/api/delinquency/{created['id']}")
        assert r.status_code == 204
        assert self._paired(db, created["id"]) == []
        assert db.get(DelinquencyRecord, created["id"]) is None

    def test_update_not_found(self, client, condo_id):
        r = client.patch("/api/delinquency/update/9999", json={"amount": "1"})
        assert r.status_code == 404

    def test_delete_not_found(self, client, condo_id):
        assert client.delete("/api/delinquency/9999").status_code == 404

    def test_resume(self, client, condo_id, auth, today):
        self._create(client, condo_id, amount="100.00")
        self._create(client, condo_id, unitId=2, dueDate="2025-07-01", paymentDate="2025-07-04")
        r = client.get("/api/delinquency/resume/2025-07-01/2025-07-31", headers=auth)
        assert r.status_code == 200
        data = r.json()
        assert data["totalInstallments"] == 2
        assert data["totalDaysOverdue"] == 13
        assert data["averageDaysOverdue"] == 6
        assert data["unpaidCount"] == 1
        assert _money(data["totalAmountToReceive"]) == Decimal("100.00")
        assert data["uniqueUnits"] == 2
        assert data["totalUnits"] == 4
        assert data["delinquencyPercentage"] == "50.00"

    def test_resume_zero_units(self, client, condo_factory, today):
        condo = condo_factory(units=0, token="empty-token")
        self._create(client, condo, unitId=None)
        r = client.get(
            "/api/delinquency/resume/2025-07-01/2025-07-31",
            headers={"Authorization": "Bearer empty-token"},
        )
        assert r.status_code == 200
        assert r.json()["delinquencyPercentage"] == "0.00"
        assert r.json()["averageDaysOverdue"] == 10

    def test_resume_requires_token(self, client, condo_id):
        r = client.get("/api/delinquency/resume/2025-07-01/2025-07-31")
        assert r.status_code == 401
        assert r.json()["detail"]["code"] == "unauthorized"
        r = client.get(
            "/api/delinquency/resume/2025-07-01/2025-07-31",
            headers={"Authorization": "Bearer nope"},
        )
        assert r.status_code == 401

    def test_distribution(self, client, condo_id, auth):
        self._create(client, condo_id, amount="100.00")
        self._create(client, condo_id, categoryId=3, amount="300.00")
        data = client.get("/api/delinquency/distribution/2025-07-01/2025-07-31", headers=auth).json()
        assert [d["id"] for d in data] == [3, 1]
        assert data[0]["name"] == "Multas e juros"


class TestMaintenance:
    def _create(self, client, condo_id, **overrides):
        data = {
            "typeId": 1,
            "typeMaintenance": 1,
            "description": "Revisão dos elevadores",
            "statusId": 1,
            "amount": "300.00",
            "paymentDate": "2025-01-15",
            "plannedStart": "2025-01-10",
            "isInstallment": True,
            "numberOfInstallments": 3,
        }
        data.update(overrides)
        r = client.post(f"/api/maintenance/create/{condo_id}", json=data)
        assert r.status_code == 201, r.text
        return r.json()["maintenanceId"]

    def _payments(self, db, maintenance_id):
        db.expire_all()
        return (
            db.query(MaintenancePayment)
            .filter(MaintenancePayment.maintenance_id == maintenance_id)
            .order_by(MaintenancePayment.installment_number)
            .all()
        )

    def test_create_schedule(self, client, db, condo_id):
        maintenance_id = self._create(client, condo_id)
        payments = self._payments(db, maintenance_id)
        assert [p.payment_date for p in payments] == [
            date(2025, 1, 15),
            date(2025, 2, 15),
            date(2025, 3, 15),
        ]
        assert [p.amount for p in payments] == [Decimal("100.00")] * 3
        assert all(p.is_installment for p in payments)

    def test_create_uneven_split_sums_exactly(self, client, db, condo_id):
        maintenance_id = self._create(client, condo_id, amount="100.00")
        payments = self._payments(db, maintenance_id)
        assert sum(p.amount for p in payments) == Decimal("100.00")
        assert payments[-1].amount == Decimal("33.34")

    def test_create_without_payment_date(self, client, db, condo_id):
        maintenance_id = self._create(client, condo_id, paymentDate=None)
        assert self._payments(db, maintenance_id) == []

    def test_create_single_payment(self, client, db, condo_id):
        maintenance_id = self._create(client, condo_id, isInstallment=False, numberOfInstallments=4)
        payments = self._payments(db, maintenance_id)
        assert len(payments) == 1
        assert payments[0].amount == Decimal("300.00")
        assert db.get(Maintenance, maintenance_id).number_of_installments is None

    def test_reschedule_preserves_confirmation(self, client, db, condo_id):
        maintenance_id = self._create(client, condo_id)
        first = self._payments(db, maintenance_id)[0]
        r = client.patch(f"/api/maintenance/payments/{first.id}/confirm")
        assert r.status_code == 200
        assert r.json()["isConfirmed"] is True

        r = client.put(
            f"/api/maintenance/update/{maintenance_id}",
            json={"numberOfInstallments": 2, "amount": "200.00"},
        )
        assert r.status_code == 200, r.text
        payments = self._payments(db, maintenance_id)
        assert len(payments) == 2
        assert [p.amount for p in payments] == [Decimal("100.00"), Decimal("100.00")]
        assert payments[0].id == first.id
        assert payments[0].is_confirmed is True
        assert len(r.json()["payments"]) == 2

        r = client.put(
            f"/api/maintenance/update/{maintenance_id}",
            json={"numberOfInstallments": 5, "amount": "500.00"},
        )
        assert r.status_code == 200, r.text
        payments = self._payments(db, maintenance_id)
        assert len(payments) == 5
        assert sum(p.amount for p in payments) == Decimal("500.00")
        assert payments[0].is_confirmed is True

    def test_reschedule_cannot_change_confirmed_payment(self, client, db, condo_id):
        maintenance_id = self._create(client, condo_id)
        first = self._payments(db, maintenance_id)[0]
        client.patch(f"/api/maintenance/payments/{first.id}/confirm")

        r = client.put(
            f"/api/maintenance/update/{maintenance_id}",
            json={"numberOfInstallments": 2, "amount": "500.00"},
        )
        assert r.status_code == 422
        assert r.json()["detail"]["code"] == "confirmed_payment"
        payments = self._payments(db, maintenance_id)
        assert [p.amount for p in payments] == [Decimal("100.00")] * 3
        assert db.get(Maintenance, maintenance_id).amount == Decimal("300.00")

    def test_reschedule_cannot_drop_confirmed_payment(self, client, db, condo_id):
        maintenance_id = self._create(client, condo_id)
        last = self._payments(db, maintenance_id)[-1]
        client.patch(f"/api/maintenance/payments/{last.id}/confirm")

        r = client.put(
            f"/api/maintenance/update/{maintenance_id}",
            json={"numberOfInstallments": 2, "amount": "200.00"},
        )
        assert r.status_code == 422
        assert len(self._payments(db, maintenance_id)) == 3

    def test_null_required_field_is_422(self, client, db, condo_id):
        maintenance_id = self._create(client, condo_id)
        for field in ("statusId", "typeId", "isInstallment"):
            r = client.put(f"/api/maintenance/update/{maintenance_id}", json={field: None})
            assert r.status_code == 422, field
        assert db.get(Maintenance, maintenance_id).status_id == 1

    def test_update_to_single_payment(self, client, db, condo_id):
        maintenance_id = self._create(client, condo_id)
        r = client.put(f"/api/maintenance/update/{maintenance_id}", json={"isInstallment": False})
        assert r.status_code == 200
        assert r.json()["numberOfInstallments"] is None
        payments = self._payments(db, maintenance_id)
        assert len(payments) == 1
        assert payments[0].amount == Decimal("300.00")

    def test_successor_chaining_is_idempotent(self, client, db, condo_id):
        maintenance_id = self._create(client, condo_id)
        body = {"statusId": 3, "nextMaintenance": "2025-07-10"}

        r = client.put(f"/api/maintenance/update/{maintenance_id}", json=body)
        assert r.status_code == 200, r.text
        successor_id = r.json()["nextMaintenanceId"]
        assert successor_id is not None

        successor = db.get(Maintenance, successor_id)
        assert successor.planned_start == date(2025, 7, 10)
        assert successor.status_id == 1
        assert successor.actual_start is None
        assert self._payments(db, successor_id) == []

        r = client.put(f"/api/maintenance/update/{maintenance_id}", json=body)
        assert r.status_code == 200
        assert r.json()["nextMaintenanceId"] == successor_id
        assert db.query(Maintenance).count() == 2

    def test_no_successor_without_date(self, client, db, condo_id):
        maintenance_id = self._create(client, condo_id)
        r = client.put(f"/api/maintenance/update/{maintenance_id}", json={"statusId": 3})
        assert r.json()["nextMaintenanceId"] is None
        assert db.query(Maintenance).count() == 1

    def test_corrective_never_spawns(self, client, db, condo_id):
        maintenance_id = self._create(client, condo_id, typeMaintenance=2)
        client.put(
            f"/api/maintenance/update/{maintenance_id}",
            json={"statusId": 3, "nextMaintenance": "2025-07-10"},
        )
        assert db.query(Maintenance).count() == 1

    def test_successor_must_be_later(self, client, db, condo_id):
        maintenance_id = self._create(client, condo_id)
        r = client.put(
            f"/api/maintenance/update/{maintenance_id}",
            json={"statusId": 3, "nextMaintenance": "2025-01-01"},
        )
        assert r.status_code == 422
        assert r.json()["detail"]["code"] == "invalid_chain"
        db.expire_all()
        assert db.query(Maintenance).count() == 1
        assert db.get(Maintenance, maintenance_id).status_id == 1

    def test_delete_successor_unlinks_predecessor(self, client, db, condo_id):
        maintenance_id = self._create(client, condo_id)
        r = client.put(
            f"/api/maintenance/update/{maintenance_id}",
            json={"statusId": 3, "nextMaintenance": "2025-07-10"},
        )
        successor_id = r.json()["nextMaintenanceId"]

        r = client.delete(f"/api/maintenance/delete/{successor_id}")
        assert r.status_code == 204
        db.expire_all()
        assert db.get(Maintenance, successor_id) is None
        assert db.get(Maintenance, maintenance_id).next_maintenance_id is None

    def test_delete_cascades_payments(self, client, db, condo_id):
        maintenance_id = self._create(client, condo_id)
        assert client.delete(f"/api/maintenance/delete/{maintenance_id}").status_code == 204
        assert self._payments(db, maintenance_id) == []

    def test_not_found(self, client, condo_id):
        assert client.put("/api/maintenance/update/9999", json={"statusId": 2}).status_code == 404
        assert client.delete("/api/maintenance/delete/9999").status_code == 404
        assert client.patch("/api/maintenance/payments/9999/confirm").status_code == 404

    def test_invalid_installments(self, client, condo_id):
        r = client.post(
            f"/api/maintenance/create/{condo_id}",
            json={"typeId": 1, "statusId": 1, "isInstallment": True, "numberOfInstallments": 0},
        )
        assert r.status_code == 422

    def test_list_by_year(self, client, condo_id, auth):
        self._create(client, condo_id)
        self._create(client, condo_id, paymentDate="2024-12-15", isInstallment=False)
        self._create(client, condo_id, paymentDate=None)
        r = client.get("/api/maintenance/2025-03-01", headers=auth)
        assert r.status_code == 200
        data = r.json()
        assert len(data) == 1
        assert data[0]["typeMaintenance"] == 1
        assert len(data[0]["payments"]) == 3

    def test_cards(self, client, condo_id, auth, today):
        self._create(client, condo_id, paymentDate="2025-07-05", isInstallment=False)
        self._create(client, condo_id, typeId=2, typeMaintenance=None, amount="1000.00",
                     paymentDate="2025-06-01", numberOfInstallments=2)
        _record(client, condo_id, amount="900.00", amountPaid="900.00")

        r = client.get("/api/maintenance/cards/2025-07-01", headers=auth)
        assert r.status_code == 200
        data = r.json()
        assert _money(data["newMonthlyFixedCosts"]) == Decimal("800.00")
        assert _money(data["approvedImprovementsCost"]) == Decimal("1000.00")
        assert _money(data["balance"]) == Decimal("900.00")

    def test_indicators_resume(self, client, condo_id, auth):
        self._create(client, condo_id, amount="200.00")
        self._create(client, condo_id, typeId=2, amount="600.00", plannedStart="2025-03-01",
                     actualStart="2025-03-01", actualEnd="2025-03-11")
        _record(client, condo_id, categoryId=5, amount="1000.00", amountPaid="1000.00")

        r = client.get("/api/maintenance/indicators/resume/2025-01-01", headers=auth)
        assert r.status_code == 200
        data = r.json()
        assert data["maintenancePerformed"] == 1
        assert data["improvementsImplemented"] == 1
        assert _money(data["improvementsCost"]) == Decimal("600.00")
        assert _money(data["averageExecutionDaysImprovements"]) == Decimal("10")
        assert _money(data["percentageImpactImprovements"]) == Decimal("60.00")
        assert _money(data["percentageImpactMaintenances"]) == Decimal("20.00")


class TestIndicators:
    def test_category_charts(self, client, condo_id):
        _record(client, condo_id, categoryId=1, amountPaid="100.00")
        _record(client, condo_id, categoryId=3, amountPaid="300.00")
        _record(client, condo_id, categoryId=5, amount="300.00", amountPaid="300.00")
        _record(client, condo_id, categoryId=7, amount="100.00", amountPaid="100.00")

        data = client.get(f"/api/indicators/revenue-by-category/{condo_id}/2025-07-01/2025-07-31").json()
        assert [d["id"] for d in data] == [3, 1]

        data = client.get(f"/api/indicators/expense/fixed-vs-variable/{condo_id}/2025-07-01/2025-07-31").json()
        assert [d["name"] for d in data] == ["Fixo", "Variavel"]
        assert [_money(d["value"]) for d in data] == [Decimal("75.00"), Decimal("25.00")]

    def test_monthly_balance(self, client, condo_id):
        _record(client, condo_id, dueDate="2025-01-05")
        _record(client, condo_id, categoryId=5, amount="30.00", amountPaid="30.00", dueDate="2025-03-05")
        data = client.get(f"/api/indicators/monthly-balance/{condo_id}/2025").json()
        assert len(data) == 12
        assert data[0]["month"] == "Jan/25"
        assert _money(data[0]["total"]) == Decimal("100.00")
        assert _money(data[2]["expense"]) == Decimal("30.00")
        assert _money(data[11]["total"]) == Decimal("70.00")
