from condo_finance.models.access_token import AccessToken
from condo_finance.models.category import Category
from condo_finance.models.condominium import Condominium, Unit
from condo_finance.models.delinquency import DelinquencyRecord
from condo_finance.models.financial_record import FinancialRecord
from condo_finance.models.maintenance import Maintenance, MaintenancePayment
from condo_finance.models.monthly_override import MonthlyFinanceOverride

__all__ = [
    "AccessToken",
    "Category",
    "Condominium",
    "Unit",
    "DelinquencyRecord",
    "FinancialRecord",
    "Maintenance",
    "MaintenancePayment",
    "MonthlyFinanceOverride",
]
