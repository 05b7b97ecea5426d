from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import Boolean, Date, DateTime, ForeignKey, Integer, Numeric, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from condo_finance.db.database import Base


class Maintenance(Base):
    __tablename__ = "maintenances"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    condominium_id: Mapped[int] = mapped_column(
        ForeignKey("condominiums.id"), nullable=False, index=True
    )
    # 1 = maintenance, 2 = improvement
    type_id: Mapped[int] = mapped_column(Integer, nullable=False)
    # 1 = preventive, 2 = corrective
    maintenance_kind_id: Mapped[int | None] = mapped_column(Integer)
    description: Mapped[str | None] = mapped_column(Text)
    area: Mapped[str | None] = mapped_column(String(100))
    supplier: Mapped[str | None] = mapped_column(String(200))
    contact: Mapped[str | None] = mapped_column(String(200))
    amount: Mapped[Decimal | None] = mapped_column(Numeric(12, 2))
    priority_id: Mapped[int | None] = mapped_column(Integer)
    # 1 = planned, 2 = in progress, 3 = completed, 4 = cancelled
    status_id: Mapped[int] = mapped_column(Integer, nullable=False)
    payment_method_id: Mapped[int | None] = mapped_column(Integer)
    payment_date: Mapped[date | None] = mapped_column(Date)
    planned_start: Mapped[date | None] = mapped_column(Date)
    planned_end: Mapped[date | None] = mapped_column(Date)
    actual_start: Mapped[date | None] = mapped_column(Date)
    actual_end: Mapped[date | None] = mapped_column(Date)
    execution_time: Mapped[str | None] = mapped_column(String(100))
    is_installment: Mapped[bool] = mapped_column(Boolean, default=False)
    number_of_installments: Mapped[int | None] = mapped_column(Integer)
    next_maintenance_id: Mapped[int | None] = mapped_column(ForeignKey("maintenances.id"))
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now(), onupdate=func.now()
    )

    payments: Mapped[list["MaintenancePayment"]] = relationship(
        "MaintenancePayment",
        back_populates="maintenance",
        cascade="all, delete-orphan",
        order_by="MaintenancePayment.installment_number",
    )


class MaintenancePayment(Base):
    __tablename__ = "maintenance_payments"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    maintenance_id: Mapped[int] = mapped_column(
        ForeignKey("maintenances.id", ondelete="CASCADE"), nullable=False, index=True
    )
    installment_number: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    payment_date: Mapped[date] = mapped_column(Date, nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    is_installment: Mapped[bool] = mapped_column(Boolean, default=False)
    is_confirmed: Mapped[bool] = mapped_column(Boolean, default=False)

    maintenance: Mapped["Maintenance"] = relationship("Maintenance", back_populates="payments")
