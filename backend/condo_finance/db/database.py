import os

from sqlalchemy import create_engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:////data/condominium.db")

# SQLite-specific connect args for thread safety
connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}

engine = create_engine(DATABASE_URL, connect_args=connect_args)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


class Base(DeclarativeBase):
    pass


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db(bind=None):
    from condo_finance.models import (  # noqa: F401
        access_token,
        category,
        condominium,
        delinquency,
        financial_record,
        maintenance,
        monthly_override,
    )
    from condo_finance.db.seed import seed_categories

    bind = bind or engine
    Base.metadata.create_all(bind=bind)
    seed_categories(bind)
