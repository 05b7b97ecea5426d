"""
Seed helpers: reference categories (always) and a demo condominium.
Usage: python -m condo_finance.db.seed
"""
import logging

from sqlalchemy.orm import Session

from condo_finance.db.database import SessionLocal, init_db
from condo_finance.models.access_token import AccessToken
from condo_finance.models.category import Category
from condo_finance.models.condominium import Condominium, Unit
from condo_finance.utils.constants_loader import get_seed_categories

logger = logging.getLogger(__name__)


def seed_categories(bind) -> int:
    """Insert reference categories missing from the table. Returns how many were added."""
    added = 0
    with Session(bind=bind) as db:
        existing = {c.id for c in db.query(Category).all()}
        for cat in get_seed_categories():
            if cat["id"] in existing:
                continue
            db.add(Category(**cat))
            added += 1
        db.commit()
    if added:
        logger.info(f"Seeded {added} reference categories")
    return added


def seed(units: int = 12, token: str = "demo-token"):
    init_db()
    db = SessionLocal()
    try:
        condo = Condominium(name="Condomínio Demonstração")
        db.add(condo)
        db.flush()
        for n in range(1, units + 1):
            db.add(Unit(condominium_id=condo.id, number=f"{100 + n}"))
        db.add(AccessToken(token=token, condominium_id=condo.id))
        db.commit()
        print(f"Seed completed: condominium {condo.id} with {units} units, token '{token}'.")
    finally:
        db.close()


if __name__ == "__main__":
    seed()
