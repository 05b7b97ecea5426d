from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from condo_finance.db.database import Base


class Condominium(Base):
    __tablename__ = "condominiums"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())

    units: Mapped[list["Unit"]] = relationship(
        "Unit", back_populates="condominium", cascade="all, delete-orphan"
    )


class Unit(Base):
    """An apartment against which charges and delinquency are tracked."""

    __tablename__ = "units"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    condominium_id: Mapped[int] = mapped_column(
        ForeignKey("condominiums.id"), nullable=False, index=True
    )
    number: Mapped[str] = mapped_column(String(20), nullable=False)

    condominium: Mapped["Condominium"] = relationship("Condominium", back_populates="units")
