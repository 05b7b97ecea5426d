from sqlalchemy import ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column

from condo_finance.db.database import Base


class AccessToken(Base):
    """Bearer token issued by the identity service, bound to a condominium."""

    __tablename__ = "access_tokens"

    token: Mapped[str] = mapped_column(String(255), primary_key=True)
    condominium_id: Mapped[int] = mapped_column(
        ForeignKey("condominiums.id"), nullable=False, index=True
    )
