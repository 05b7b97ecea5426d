from sqlalchemy import Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from condo_finance.db.database import Base


class Category(Base):
    __tablename__ = "categories"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    # 4 = income, 6 = expense (see constants/reference.yaml)
    income_expense_type_id: Mapped[int] = mapped_column(Integer, nullable=False)
    # 1 = fixed, 2 = variable
    record_type_id: Mapped[int | None] = mapped_column(Integer)
