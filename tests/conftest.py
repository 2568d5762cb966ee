"""
Shared test fixtures.

Sets up an isolated test database so tests never touch
the real database. Every test starts from empty tables.
"""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

import ledger_book.models  # noqa: F401
from ledger_book.main import app
from ledger_book.models.base import Base, enable_sqlite_savepoints, get_db
from ledger_book.services.ledger_service import LedgerService


# SQLite for tests, no external database needed.
TEST_DATABASE_URL = "sqlite:///./test.db"

engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
)
enable_sqlite_savepoints(engine)

TestSessionLocal = sessionmaker(
    bind=engine,
    autocommit=False,
    autoflush=False,
)


@pytest.fixture(autouse=True)
def setup_database():
    """Create all tables before each test, drop them after."""
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db_session():
    """Provide a database session for direct service testing."""
    session = TestSessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture
def book(db_session):
    """A ledger with USD as base currency and RUB as a second one."""
    service = LedgerService(db_session)
    service.create_currency("USD")
    service.create_currency("RUB")
    db_session.commit()
    return service


@pytest.fixture
def chart(book, db_session):
    """
    The sample chart of accounts:

        Assets
        Assets:usdt
        Assets:bank
        Assets:bank:AlfaBank      (RUB)
        Assets:bank:Huntington
        UserBalances
        UserBalances:1
    """
    book.create_account("Assets")
    book.create_account("Assets:usdt")
    book.create_account("Assets:bank")
    book.create_account("Assets:bank:AlfaBank", "RUB")
    book.create_account("Assets:bank:Huntington")
    book.create_account("UserBalances")
    book.create_account("UserBalances:1")
    db_session.commit()
    return book


@pytest.fixture
def client(db_session):
    """
    Provide a test client with the test database.

    The get_db dependency is overridden so the FastAPI app
    uses the test session instead of the real database.
    """
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def api_chart(client):
    """The sample chart of accounts, created through the HTTP API."""
    client.post("/currencies", json={"code": "USD"})
    client.post("/currencies", json={"code": "RUB"})
    for name, currency in [
        ("Assets", None),
        ("Assets:usdt", None),
        ("Assets:bank", None),
        ("Assets:bank:AlfaBank", "RUB"),
        ("UserBalances", None),
        ("UserBalances:1", None),
    ]:
        response = client.post(
            "/accounts", json={"name": name, "currency": currency}
        )
        assert response.status_code == 201
    return client
