from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import Boolean, Date, DateTime, ForeignKey, Integer, Numeric, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from condo_finance.db.database import Base


class FinancialRecord(Base):
    """One ledger line. Soft-deleted through `is_deleted`."""

    __tablename__ = "financial_records"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    condominium_id: Mapped[int] = mapped_column(
        ForeignKey("condominiums.id"), nullable=False, index=True
    )
    category_id: Mapped[int] = mapped_column(ForeignKey("categories.id"), nullable=False)
    # building-wide when null
    unit_id: Mapped[int | None] = mapped_column(ForeignKey("units.id"))
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    amount_paid: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=0)
    due_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    payment_date: Mapped[date | None] = mapped_column(Date, index=True)
    is_recurring: Mapped[bool] = mapped_column(Boolean, default=False)
    is_deleted: Mapped[bool] = mapped_column(Boolean, default=False)
    # 1 = pending, 2 = paid
    status_id: Mapped[int | None] = mapped_column(Integer)
    payment_method_id: Mapped[int | None] = mapped_column(Integer)
    notes: Mapped[str | None] = mapped_column(Text)
    delinquency_record_id: Mapped[int | None] = mapped_column(
        ForeignKey("delinquency_records.id"), index=True
    )
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now(), onupdate=func.now()
    )

    category: Mapped["Category"] = relationship("Category", lazy="joined")  # noqa: F821
