from datetime import date
from decimal import Decimal

from fastapi import APIRouter, Depends, status
from pydantic import Field, field_validator
from sqlalchemy.orm import Session

from condo_finance.api.deps import CamelModel, get_current_condominium_id, get_today
from condo_finance.core.money import parse_amount
from condo_finance.core.periods import parse_date
from condo_finance.db.database import get_db
from condo_finance.services.ledger_service import MonthlyBalanceCache, get_month_cache
from condo_finance.services.maintenance_service import MaintenanceService

router = APIRouter()


def get_service(
    db: Session = Depends(get_db), cache: MonthlyBalanceCache = Depends(get_month_cache)
) -> MaintenanceService:
    return MaintenanceService(db, cache)


class MaintenanceBody(CamelModel):
    type_id: int | None = None
    maintenance_kind_id: int | None = Field(None, alias="typeMaintenance")
    description: str | None = None
    area: str | None = None
    supplier: str | None = None
    contact: str | None = None
    amount: Decimal | None = None
    priority_id: int | None = None
    status_id: int | None = None
    payment_method_id: int | None = None
    payment_date: date | None = None
    planned_start: date | None = None
    planned_end: date | None = None
    actual_start: date | None = None
    actual_end: date | None = None
    execution_time: str | None = None
    is_installment: bool | None = None
    number_of_installments: int | None = None
    # planned start of the next occurrence of a preventive maintenance
    next_maintenance: date | None = None

    @field_validator("amount", mode="before")
    @classmethod
    def parse_money(cls, v):
        return parse_amount(v)

    @field_validator("number_of_installments")
    @classmethod
    def positive_installments(cls, v):
        if v is not None and v < 1:
            raise ValueError("O número de parcelas deve ser maior ou igual a 1.")
        return v

    @field_validator("type_id", "status_id", "is_installment")
    @classmethod
    def not_null(cls, v):
        if v is None:
            raise ValueError("Campo obrigatório.")
        return v

    def columns(self, exclude_unset: bool = False) -> dict:
        return self.model_dump(exclude={"next_maintenance"}, exclude_unset=exclude_unset)


class MaintenanceCreate(MaintenanceBody):
    type_id: int
    status_id: int
    is_installment: bool = False


class MaintenanceCreated(CamelModel):
    maintenance_id: int


class PaymentResponse(CamelModel):
    id: int
    maintenance_id: int
    installment_number: int
    payment_date: date
    amount: Decimal
    is_installment: bool
    is_confirmed: bool


class MaintenanceResponse(CamelModel):
    id: int
    condominium_id: int
    type_id: int
    maintenance_kind_id: int | None = Field(None, alias="typeMaintenance")
    description: str | None
    area: str | None
    supplier: str | None
    contact: str | None
    amount: Decimal | None
    priority_id: int | None
    status_id: int
    payment_method_id: int | None
    payment_date: date | None
    planned_start: date | None
    planned_end: date | None
    actual_start: date | None
    actual_end: date | None
    execution_time: str | None
    is_installment: bool
    number_of_installments: int | None
    next_maintenance_id: int | None
    payments: list[PaymentResponse] = []


class CardsResponse(CamelModel):
    new_monthly_fixed_costs: Decimal
    approved_improvements_cost: Decimal
    balance: Decimal


class IndicatorsResumeResponse(CamelModel):
    average_execution_days_improvements: Decimal
    improvements_implemented: int
    improvements_cost: Decimal
    average_improvement_cost: Decimal
    maintenance_performed: int
    maintenance_cost: Decimal
    average_maintenance_cost: Decimal
    percentage_impact_improvements: Decimal
    percentage_impact_maintenances: Decimal


@router.get("/cards/{reference}", response_model=CardsResponse)
def get_cards(
    reference: str,
    condominium_id: int = Depends(get_current_condominium_id),
    today: date = Depends(get_today),
    service: MaintenanceService = Depends(get_service),
):
    cards = service.cards(condominium_id, parse_date(reference), today)
    return CardsResponse.model_validate(cards)


@router.get("/indicators/resume/{reference}", response_model=IndicatorsResumeResponse)
def get_indicators_resume(
    reference: str,
    condominium_id: int = Depends(get_current_condominium_id),
    service: MaintenanceService = Depends(get_service),
):
    resume = service.indicators_resume(condominium_id, parse_date(reference).year)
    return IndicatorsResumeResponse.model_validate(resume)


@router.get("/{reference}", response_model=list[MaintenanceResponse])
def list_maintenances(
    reference: str,
    condominium_id: int = Depends(get_current_condominium_id),
    service: MaintenanceService = Depends(get_service),
):
    return service.list_maintenances(condominium_id, parse_date(reference).year)


@router.post(
    "/create/{condominium_id}",
    response_model=MaintenanceCreated,
    status_code=status.HTTP_201_CREATED,
)
def create_maintenance(
    condominium_id: int, data: MaintenanceCreate, service: MaintenanceService = Depends(get_service)
):
    maintenance = service.create(condominium_id, data.columns())
    return MaintenanceCreated(maintenance_id=maintenance.id)


@router.put("/update/{maintenance_id}", response_model=MaintenanceResponse)
def update_maintenance(
    maintenance_id: int, data: MaintenanceBody, service: MaintenanceService = Depends(get_service)
):
    return service.update(
        maintenance_id, data.columns(exclude_unset=True), next_maintenance=data.next_maintenance
    )


@router.delete("/delete/{maintenance_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_maintenance(maintenance_id: int, service: MaintenanceService = Depends(get_service)):
    service.delete(maintenance_id)


@router.patch("/payments/{payment_id}/confirm", response_model=PaymentResponse)
def confirm_payment(payment_id: int, service: MaintenanceService = Depends(get_service)):
    return service.confirm_payment(payment_id)
