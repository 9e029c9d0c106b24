import os
import tempfile
import uuid
from datetime import date
from decimal import Decimal

# Set environment variables BEFORE any imports that might use settings
# Use a temporary directory for test database to avoid permission issues
_test_db_dir = tempfile.mkdtemp()
_test_db_path = os.path.join(_test_db_dir, "test_invoiceme.db")
os.environ["DATABASE_URL"] = f"sqlite:///{_test_db_path}"
os.environ["LOG_LEVEL"] = "INFO"
os.environ["DEFAULT_CURRENCY"] = "USD"

import pytest
from alembic import command
from alembic.config import Config
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, sessionmaker

from invoiceme.main import app
from invoiceme.domain.invoice import Invoice, InvoiceNumber
from invoiceme.domain.line_item import LineItem
from invoiceme.domain.money import Money


class RecordingEventPublisher:
    """Keeps every published batch in memory."""

    def __init__(self):
        self.batches = []

    def publish(self, events):
        self.batches.append(list(events))

    @property
    def events(self):
        return [event for batch in self.batches for event in batch]

    @property
    def event_types(self):
        return [event.event_type for event in self.events]


class FailingEventPublisher:
    """Always raises, like a broker that is down."""

    def __init__(self):
        self.calls = 0

    def publish(self, events):
        self.calls += 1
        raise RuntimeError("event bus unavailable")


@pytest.fixture(scope="function")
def db_session():
    """Create a fresh database for each test and run migrations."""
    temp_db_dir = tempfile.mkdtemp()
    test_db_path = os.path.join(temp_db_dir, "test.db")
    test_db_url = f"sqlite:///{test_db_path}"

    test_engine = create_engine(
        test_db_url,
        connect_args={"check_same_thread": False},
    )

    # Enable WAL mode to reduce locking issues
    @event.listens_for(test_engine, "connect")
    def set_sqlite_pragma(dbapi_conn, connection_record):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.close()

    TestingSessionLocal = sessionmaker(
        autocommit=False, autoflush=False, bind=test_engine
    )

    # Run Alembic migrations to set up the database schema
    alembic_cfg = Config("alembic.ini")
    alembic_cfg.set_main_option("sqlalchemy.url", test_db_url)
    command.upgrade(alembic_cfg, "head")

    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        test_engine.dispose()

        for suffix in ["", "-wal", "-shm"]:
            path = f"{test_db_path}{suffix}"
            if os.path.exists(path):
                os.remove(path)
        if os.path.exists(temp_db_dir):
            os.rmdir(temp_db_dir)


@pytest.fixture(scope="function")
def db(db_session):
    """Alias for db_session to match test naming conventions."""
    return db_session


@pytest.fixture(scope="function")
def publisher() -> RecordingEventPublisher:
    return RecordingEventPublisher()


@pytest.fixture(scope="function")
def client(db_session, publisher):
    """Create a test client with database and publisher overrides."""

    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    from invoiceme.api.deps import get_db, get_event_publisher

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_event_publisher] = lambda: publisher

    yield TestClient(app)

    app.dependency_overrides.clear()


@pytest.fixture(scope="function")
def customer(db: Session):
    """Create a customer for testing."""
    from invoiceme.services.customer import create_customer

    return create_customer(db, name="Acme Corp", email="billing@acme.example.com")


# ============================================================================
# DOMAIN HELPERS
# ============================================================================


def make_line_item(
    description: str = "Consulting",
    quantity="1",
    unit_price="100.00",
    currency: str = "USD",
) -> LineItem:
    return LineItem.of(description, Decimal(quantity), Money.of(unit_price, currency))


def make_invoice(
    line_items=None,
    tax_rate="0",
    customer_id=None,
    due_date: date = date(2025, 2, 14),
) -> Invoice:
    """A fresh DRAFT invoice built directly on the aggregate."""
    return Invoice.create(
        id=uuid.uuid4(),
        customer_id=customer_id or uuid.uuid4(),
        invoice_number=InvoiceNumber("INV-2025-0001"),
        issue_date=date(2025, 1, 15),
        due_date=due_date,
        line_items=line_items if line_items is not None else [make_line_item()],
        tax_rate=Decimal(tax_rate),
    )
