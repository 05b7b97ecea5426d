from datetime import date
from decimal import Decimal

from sqlalchemy import Date, ForeignKey, Numeric, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from condo_finance.db.database import Base


class MonthlyFinanceOverride(Base):
    """
    Manually entered monthly figures. A non-null income/expenses wins over the
    sum of financial records for that month; null defers to the computed sum.
    """

    __tablename__ = "monthly_finance_overrides"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    condominium_id: Mapped[int] = mapped_column(
        ForeignKey("condominiums.id"), nullable=False, index=True
    )
    reference_month: Mapped[date] = mapped_column(Date, nullable=False)  # first of month
    income: Mapped[Decimal | None] = mapped_column(Numeric(12, 2))
    income_target: Mapped[Decimal | None] = mapped_column(Numeric(12, 2))
    expenses: Mapped[Decimal | None] = mapped_column(Numeric(12, 2))
    expenses_target: Mapped[Decimal | None] = mapped_column(Numeric(12, 2))

    __table_args__ = (
        UniqueConstraint("condominium_id", "reference_month", name="uq_condominium_month"),
    )
