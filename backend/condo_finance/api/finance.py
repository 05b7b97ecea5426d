from datetime import date
from decimal import Decimal

from fastapi import APIRouter, Depends, Query, status
from pydantic import field_validator
from sqlalchemy.orm import Session

from condo_finance.api.deps import CamelModel, get_today
from condo_finance.core.categories import EXPENSE, INCOME
from condo_finance.core.errors import ValidationError
from condo_finance.core.money import parse_amount
from condo_finance.core.periods import parse_date, parse_month
from condo_finance.db.database import get_db
from condo_finance.services.ledger_service import (
    LedgerService,
    MonthlyBalanceCache,
    get_month_cache,
)

router = APIRouter()

# Path names of the overridable month fields
OVERRIDE_FIELDS = {"income": INCOME, "expenses": EXPENSE}


def get_ledger(
    db: Session = Depends(get_db), cache: MonthlyBalanceCache = Depends(get_month_cache)
) -> LedgerService:
    return LedgerService(db, cache)


class TotalsResponse(CamelModel):
    total_income: Decimal
    income_target: Decimal | None = None
    total_expenses: Decimal
    expenses_target: Decimal | None = None
    balance: Decimal
    accumulated_balance: Decimal
    is_same_month: bool


class RevenueTotalResponse(CamelModel):
    total_income: Decimal
    income_target: Decimal | None = None


class ExpensesTotalResponse(CamelModel):
    total_expenses: Decimal
    expenses_target: Decimal | None = None


class OverrideBody(CamelModel):
    value: Decimal | None = None
    target: Decimal | None = None

    @field_validator("value", "target", mode="before")
    @classmethod
    def parse_money(cls, v):
        return parse_amount(v)


class OverrideResponse(CamelModel):
    reference_month: date
    income: Decimal | None
    income_target: Decimal | None
    expenses: Decimal | None
    expenses_target: Decimal | None


class RecordCreate(CamelModel):
    category_id: int
    unit_id: int | None = None
    amount: Decimal
    amount_paid: Decimal = Decimal("0")
    due_date: date
    payment_date: date | None = None
    is_recurring: bool = False
    status_id: int | None = None
    payment_method_id: int | None = None
    notes: str | None = None

    @field_validator("amount", "amount_paid", mode="before")
    @classmethod
    def parse_money(cls, v):
        parsed = parse_amount(v)
        if parsed is None:
            raise ValueError("Valor monetário obrigatório.")
        return parsed


class RecordUpdate(CamelModel):
    category_id: int | None = None
    unit_id: int | None = None
    amount: Decimal | None = None
    amount_paid: Decimal | None = None
    due_date: date | None = None
    payment_date: date | None = None
    is_recurring: bool | None = None
    status_id: int | None = None
    payment_method_id: int | None = None
    notes: str | None = None

    @field_validator("amount", "amount_paid", mode="before")
    @classmethod
    def parse_money(cls, v):
        return parse_amount(v)

    @field_validator("category_id", "amount", "amount_paid", "due_date", "is_recurring")
    @classmethod
    def not_null(cls, v):
        if v is None:
            raise ValueError("Campo obrigatório.")
        return v


class RecordResponse(CamelModel):
    id: int
    condominium_id: int
    category_id: int
    category_name: str | None = None
    unit_id: int | None
    amount: Decimal
    amount_paid: Decimal
    due_date: date
    payment_date: date | None
    is_recurring: bool
    status_id: int | None
    payment_method_id: int | None
    notes: str | None
    delinquency_record_id: int | None


class CategoryOption(CamelModel):
    id: int
    name: str
    income_expense_type_id: int
    record_type_id: int | None


class UnitOption(CamelModel):
    id: int
    number: str


class ProjectionResponse(CamelModel):
    incomes_total: Decimal
    expenses_total: Decimal
    balance: Decimal
    months_ahead: int
    balance_accumulated: Decimal


class CategoryTotalResponse(CamelModel):
    id: int
    name: str
    total: Decimal
    type: str


def record_response(record) -> RecordResponse:
    response = RecordResponse.model_validate(record)
    response.category_name = record.category.name if record.category else None
    return response


def override_kind(field: str) -> str:
    if field not in OVERRIDE_FIELDS:
        raise ValidationError(
            f"Campo inválido: {field!r}. Use 'income' ou 'expenses'.", code="invalid_field"
        )
    return OVERRIDE_FIELDS[field]


@router.get("/totals/{condominium_id}/{start}/{end}", response_model=TotalsResponse)
def get_totals(condominium_id: int, start: str, end: str, ledger: LedgerService = Depends(get_ledger)):
    totals = ledger.totals(condominium_id, parse_date(start), parse_date(end))
    return TotalsResponse(
        total_income=totals.total_income,
        income_target=totals.income_target,
        total_expenses=totals.total_expenses,
        expenses_target=totals.expenses_target,
        balance=totals.balance,
        accumulated_balance=totals.accumulated_balance,
        is_same_month=totals.is_same_month,
    )


@router.get("/revenue-total/{condominium_id}/{start}/{end}", response_model=RevenueTotalResponse)
def get_revenue_total(
    condominium_id: int, start: str, end: str, ledger: LedgerService = Depends(get_ledger)
):
    totals = ledger.totals(condominium_id, parse_date(start), parse_date(end))
    return RevenueTotalResponse(total_income=totals.total_income, income_target=totals.income_target)


@router.get("/expenses-total/{condominium_id}/{start}/{end}", response_model=ExpensesTotalResponse)
def get_expenses_total(
    condominium_id: int, start: str, end: str, ledger: LedgerService = Depends(get_ledger)
):
    totals = ledger.totals(condominium_id, parse_date(start), parse_date(end))
    return ExpensesTotalResponse(
        total_expenses=totals.total_expenses, expenses_target=totals.expenses_target
    )


@router.patch("/overrides/{condominium_id}/{month}/{field}", response_model=OverrideResponse)
def override_month(
    condominium_id: int,
    month: str,
    field: str,
    data: OverrideBody,
    ledger: LedgerService = Depends(get_ledger),
):
    kind = override_kind(field)
    reference_month = parse_month(month)
    if "target" in data.model_fields_set:
        return ledger.override_month(condominium_id, reference_month, kind, data.value, data.target)
    return ledger.override_month(condominium_id, reference_month, kind, data.value)


@router.delete("/overrides/{condominium_id}/{month}/{field}", response_model=OverrideResponse)
def redefine_to_calculated(
    condominium_id: int, month: str, field: str, ledger: LedgerService = Depends(get_ledger)
):
    return ledger.redefine_to_calculated(condominium_id, parse_month(month), override_kind(field))


@router.get("/records/{condominium_id}", response_model=list[RecordResponse])
def list_records(
    condominium_id: int,
    start: str,
    end: str,
    kinds: list[str] | None = Query(None),
    ledger: LedgerService = Depends(get_ledger),
):
    records = ledger.list_records(condominium_id, parse_date(start), parse_date(end), kinds)
    return [record_response(r) for r in records]


@router.post(
    "/records/{condominium_id}",
    response_model=RecordResponse,
    status_code=status.HTTP_201_CREATED,
)
def create_record(condominium_id: int, data: RecordCreate, ledger: LedgerService = Depends(get_ledger)):
    return record_response(ledger.create_record(condominium_id, data.model_dump()))


@router.put("/records/{record_id}", response_model=RecordResponse)
def update_record(record_id: int, data: RecordUpdate, ledger: LedgerService = Depends(get_ledger)):
    return record_response(ledger.update_record(record_id, data.model_dump(exclude_unset=True)))


@router.delete("/records/{record_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_record(record_id: int, ledger: LedgerService = Depends(get_ledger)):
    ledger.delete_record(record_id)


@router.get("/categories-options", response_model=list[CategoryOption])
def categories_options(ledger: LedgerService = Depends(get_ledger)):
    return ledger.categories()


@router.get("/units/{condominium_id}", response_model=list[UnitOption])
def units_options(condominium_id: int, ledger: LedgerService = Depends(get_ledger)):
    return ledger.units(condominium_id)


@router.get("/projection/cards/{condominium_id}/{target}", response_model=ProjectionResponse)
def projection_cards(
    condominium_id: int,
    target: str,
    today: date = Depends(get_today),
    ledger: LedgerService = Depends(get_ledger),
):
    projection = ledger.projection(condominium_id, parse_date(target), today)
    return ProjectionResponse(
        incomes_total=projection.incomes_total,
        expenses_total=projection.expenses_total,
        balance=projection.balance,
        months_ahead=projection.months_ahead,
        balance_accumulated=projection.balance_accumulated,
    )


@router.get(
    "/projection/registers/{condominium_id}/{target}",
    response_model=list[CategoryTotalResponse],
)
def projection_registers(
    condominium_id: int,
    target: str,
    today: date = Depends(get_today),
    ledger: LedgerService = Depends(get_ledger),
):
    parse_date(target)
    return [
        CategoryTotalResponse(id=c.id, name=c.name, total=c.total, type=c.type)
        for c in ledger.projection_registers(condominium_id, today)
    ]
