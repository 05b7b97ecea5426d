from decimal import Decimal

from fastapi import APIRouter, Depends

from condo_finance.api.deps import CamelModel
from condo_finance.api.finance import get_ledger
from condo_finance.core.categories import EXPENSE, INCOME
from condo_finance.core.periods import parse_date
from condo_finance.services.ledger_service import LedgerService

router = APIRouter()


class CategoryValueResponse(CamelModel):
    id: int
    name: str
    value: Decimal


class ShareResponse(CamelModel):
    name: str
    value: Decimal


class MonthPointResponse(CamelModel):
    month: str
    income: Decimal
    expense: Decimal
    total: Decimal


def _by_category(ledger: LedgerService, condominium_id: int, kind: str, start: str, end: str):
    return [
        CategoryValueResponse.model_validate(c)
        for c in ledger.category_breakdown(condominium_id, kind, parse_date(start), parse_date(end))
    ]


def _fixed_variable(ledger: LedgerService, condominium_id: int, kind: str, start: str, end: str):
    return [
        ShareResponse.model_validate(s)
        for s in ledger.fixed_variable(condominium_id, kind, parse_date(start), parse_date(end))
    ]


@router.get(
    "/revenue-by-category/{condominium_id}/{start}/{end}",
    response_model=list[CategoryValueResponse],
)
def revenue_by_category(
    condominium_id: int, start: str, end: str, ledger: LedgerService = Depends(get_ledger)
):
    return _by_category(ledger, condominium_id, INCOME, start, end)


@router.get(
    "/expense-by-category/{condominium_id}/{start}/{end}",
    response_model=list[CategoryValueResponse],
)
def expense_by_category(
    condominium_id: int, start: str, end: str, ledger: LedgerService = Depends(get_ledger)
):
    return _by_category(ledger, condominium_id, EXPENSE, start, end)


@router.get(
    "/revenue/fixed-vs-variable/{condominium_id}/{start}/{end}",
    response_model=list[ShareResponse],
)
def revenue_fixed_vs_variable(
    condominium_id: int, start: str, end: str, ledger: LedgerService = Depends(get_ledger)
):
    return _fixed_variable(ledger, condominium_id, INCOME, start, end)


@router.get(
    "/expense/fixed-vs-variable/{condominium_id}/{start}/{end}",
    response_model=list[ShareResponse],
)
def expense_fixed_vs_variable(
    condominium_id: int, start: str, end: str, ledger: LedgerService = Depends(get_ledger)
):
    return _fixed_variable(ledger, condominium_id, EXPENSE, start, end)


@router.get("/monthly-balance/{condominium_id}/{year}", response_model=list[MonthPointResponse])
def monthly_balance(condominium_id: int, year: int, ledger: LedgerService = Depends(get_ledger)):
    return [MonthPointResponse.model_validate(p) for p in ledger.monthly_balance(condominium_id, year)]
