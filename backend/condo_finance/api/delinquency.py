from datetime import date
from decimal import Decimal

from fastapi import APIRouter, Depends, status
from pydantic import field_validator
from sqlalchemy.orm import Session

from condo_finance.api.deps import CamelModel, get_current_condominium_id, get_today
from condo_finance.core.money import parse_amount
from condo_finance.core.periods import parse_date, parse_month
from condo_finance.db.database import get_db
from condo_finance.services.delinquency_service import DelinquencyRow, DelinquencyService
from condo_finance.services.ledger_service import MonthlyBalanceCache, get_month_cache

router = APIRouter()


def get_service(
    db: Session = Depends(get_db), cache: MonthlyBalanceCache = Depends(get_month_cache)
) -> DelinquencyService:
    return DelinquencyService(db, cache)


class DelinquencyCreate(CamelModel):
    unit_id: int | None = None
    category_id: int
    amount: Decimal
    amount_paid: Decimal = Decimal("0")
    due_date: date
    payment_date: date | None = None

    @field_validator("amount", "amount_paid", mode="before")
    @classmethod
    def parse_money(cls, v):
        parsed = parse_amount(v)
        if parsed is None:
            raise ValueError("Valor monetário obrigatório.")
        return parsed


class DelinquencyPatch(CamelModel):
    """Only the fields sent are changed; send paymentDate: null to mark as unpaid."""

    unit_id: int | None = None
    category_id: int | None = None
    amount: Decimal | None = None
    amount_paid: Decimal | None = None
    due_date: date | None = None
    payment_date: date | None = None

    @field_validator("amount", "amount_paid", mode="before")
    @classmethod
    def parse_money(cls, v):
        return parse_amount(v)

    @field_validator("category_id", "amount", "due_date")
    @classmethod
    def not_null(cls, v):
        if v is None:
            raise ValueError("Campo obrigatório.")
        return v


class DelinquencyResponse(CamelModel):
    id: int
    condominium_id: int
    unit_id: int | None
    category_id: int
    amount: Decimal
    amount_paid: Decimal
    due_date: date
    payment_date: date | None


class DelinquencyRowResponse(DelinquencyResponse):
    category_name: str
    days_late: int


class ResumeResponse(CamelModel):
    total_installments: int
    total_days_overdue: int
    average_days_overdue: int
    unpaid_count: int
    total_amount_to_receive: Decimal
    unique_units: int
    total_units: int
    delinquency_percentage: str


class CategoryDistributionResponse(CamelModel):
    id: int
    name: str
    count: int
    unpaid_count: int
    amount: Decimal
    amount_paid: Decimal


def row_response(row: DelinquencyRow) -> DelinquencyRowResponse:
    record = row.record
    return DelinquencyRowResponse(
        id=record.id,
        condominium_id=record.condominium_id,
        unit_id=record.unit_id,
        category_id=record.category_id,
        category_name=row.category_name,
        amount=record.amount,
        amount_paid=record.amount_paid,
        due_date=record.due_date,
        payment_date=record.payment_date,
        days_late=row.days_late,
    )


@router.get("/resume/{start}/{end}", response_model=ResumeResponse)
def get_resume(
    start: str,
    end: str,
    condominium_id: int = Depends(get_current_condominium_id),
    today: date = Depends(get_today),
    service: DelinquencyService = Depends(get_service),
):
    summary = service.resume(condominium_id, parse_date(start), parse_date(end), today)
    return ResumeResponse(
        total_installments=summary.total_installments,
        total_days_overdue=summary.total_days_overdue,
        average_days_overdue=summary.average_days_overdue,
        unpaid_count=summary.unpaid_count,
        total_amount_to_receive=summary.total_amount_to_receive,
        unique_units=summary.unique_units,
        total_units=summary.total_units,
        delinquency_percentage=summary.delinquency_percentage,
    )


@router.get("/distribution/{start}/{end}", response_model=list[CategoryDistributionResponse])
def get_distribution(
    start: str,
    end: str,
    condominium_id: int = Depends(get_current_condominium_id),
    service: DelinquencyService = Depends(get_service),
):
    return [
        CategoryDistributionResponse(
            id=c.id,
            name=c.name,
            count=c.count,
            unpaid_count=c.unpaid_count,
            amount=c.amount,
            amount_paid=c.amount_paid,
        )
        for c in service.distribution(condominium_id, parse_date(start), parse_date(end))
    ]


@router.post(
    "/create/{condominium_id}",
    response_model=DelinquencyResponse,
    status_code=status.HTTP_201_CREATED,
)
def create_delinquency(
    condominium_id: int, data: DelinquencyCreate, service: DelinquencyService = Depends(get_service)
):
    return service.create(condominium_id, data.model_dump())


@router.patch("/update/{delinquency_id}", response_model=DelinquencyResponse)
def update_delinquency(
    delinquency_id: int, data: DelinquencyPatch, service: DelinquencyService = Depends(get_service)
):
    return service.update(delinquency_id, data.model_dump(exclude_unset=True))


@router.get("/{condominium_id}/all-period", response_model=list[DelinquencyRowResponse])
def get_register_all_period(
    condominium_id: int,
    today: date = Depends(get_today),
    service: DelinquencyService = Depends(get_service),
):
    return [row_response(r) for r in service.register_all_period(condominium_id, today)]


@router.get("/{condominium_id}/{month}", response_model=list[DelinquencyRowResponse])
def get_register(
    condominium_id: int,
    month: str,
    today: date = Depends(get_today),
    service: DelinquencyService = Depends(get_service),
):
    return [row_response(r) for r in service.register(condominium_id, parse_month(month), today)]


@router.delete("/{delinquency_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_delinquency(delinquency_id: int, service: DelinquencyService = Depends(get_service)):
    service.delete(delinquency_id)
