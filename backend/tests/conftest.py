import os
import tempfile

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

# Set env vars BEFORE any app imports
# Use a temp file-based SQLite so all connections share the same database
_db_file = tempfile.NamedTemporaryFile(suffix=".db", delete=False)
_db_file.close()
_TEST_DB_URL = f"sqlite:///{_db_file.name}"
os.environ["DATABASE_URL"] = _TEST_DB_URL

from condo_finance.db.database import Base, get_db, init_db  # noqa: E402
from condo_finance.main import app  # noqa: E402
from condo_finance.models import AccessToken, Condominium, Unit  # noqa: E402

_test_engine = create_engine(_TEST_DB_URL, connect_args={"check_same_thread": False})
_TestSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=_test_engine)

TOKEN = "test-token"


@pytest.fixture(autouse=True)
def setup_db():
    """Create all tables (and reference categories) before each test, drop after."""
    init_db(bind=_test_engine)
    yield
    Base.metadata.drop_all(bind=_test_engine)


@pytest.fixture
def db():
    session = _TestSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def other_db():
    """A second session, standing in for a concurrent request."""
    session = _TestSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(db):
    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


def make_condominium(db, units: int = 4, token: str | None = None) -> int:
    condo = Condominium(name="Residencial Teste")
    db.add(condo)
    db.flush()
    for n in range(1, units + 1):
        db.add(Unit(condominium_id=condo.id, number=f"{100 + n}"))
    if token:
        db.add(AccessToken(token=token, condominium_id=condo.id))
    db.commit()
    return condo.id


@pytest.fixture
def condo_id(db):
    """Condominium with four units, reachable with TOKEN."""
    return make_condominium(db, units=4, token=TOKEN)


@pytest.fixture
def auth():
    return {"Authorization": f"Bearer {TOKEN}"}


@pytest.fixture
def condo_factory(db):
    def factory(units: int = 4, token: str | None = None) -> int:
        return make_condominium(db, units=units, token=token)

    return factory
