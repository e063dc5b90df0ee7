"""
Test Configuration and Fixtures
Shared testing infrastructure for Shop Ledger
"""

import os

# Settings are read at import time; point them at throwaway resources first
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("LOG_TO_FILE", "false")

import pytest
from datetime import datetime
from decimal import Decimal
from typing import Generator, Dict, Any, Callable
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

from shopledger.main import app
from shopledger.api.deps import get_clock
from shopledger.core.database import get_db, Base
from shopledger.models import Customer, Supplier, SaleRecord
from shopledger.services.recovery.recovery_entry import RecoveryService
from shopledger.services.sales.sale_entry import SaleEntryService

# Test database URL - in-memory SQLite shared through a single connection
TEST_DATABASE_URL = "sqlite://"

# Create test engine
engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

# Create test session
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Pinned "now" for due-date and overdue checks
NOW = datetime(2024, 3, 15, 12, 0, 0)


@pytest.fixture(scope="function")
def db_session() -> Generator[Session, None, None]:
    """Create a fresh database session for each test"""
    # Create all tables
    Base.metadata.create_all(bind=engine)

    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        # Drop all tables after test
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def file_engine(tmp_path):
    """File-backed SQLite engine for tests that need one session per thread"""
    file_db = create_engine(
        f"sqlite:///{tmp_path / 'ledger.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    Base.metadata.create_all(bind=file_db)
    yield file_db
    Base.metadata.drop_all(bind=file_db)
    file_db.dispose()


@pytest.fixture
def clock() -> Callable[[], datetime]:
    return lambda: NOW


@pytest.fixture(scope="function")
def client(db_session: Session, clock) -> Generator[TestClient, None, None]:
    """Create a test client with database dependency override"""
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_clock] = lambda: clock
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def customer(db_session: Session) -> Customer:
    customer = Customer(name="Ayesha Traders", phone="0300-1234567", email="ayesha@example.com",
                        address="12 Mall Road", status="active")
    db_session.add(customer)
    db_session.commit()
    return customer


@pytest.fixture
def other_customer(db_session: Session) -> Customer:
    customer = Customer(name="Bilal Stores", phone="0321-7654321", email="bilal@example.com",
                        address="4 Canal View", status="active")
    db_session.add(customer)
    db_session.commit()
    return customer


@pytest.fixture
def supplier(db_session: Session) -> Supplier:
    supplier = Supplier(name="Lahore Wholesale", phone="042-111222", email="orders@wholesale.example",
                        status="active")
    db_session.add(supplier)
    db_session.commit()
    return supplier


@pytest.fixture
def sale_service(db_session: Session, clock) -> SaleEntryService:
    return SaleEntryService(db_session, clock=clock)


@pytest.fixture
def recovery_service(db_session: Session, clock) -> RecoveryService:
    return RecoveryService(db_session, clock=clock)


@pytest.fixture
def sale_data(customer: Customer, supplier: Supplier) -> Dict[str, Any]:
    """A 100.00 sale with 40.00 paid up front"""
    return {
        "customer_id": customer.id,
        "supplier_id": supplier.id,
        "items": [
            {
                "product_id": 501,
                "product_name": "Basmati Rice 5kg",
                "quantity": 2,
                "unit_price": Decimal("50.00"),
                "actual_price": Decimal("42.00"),
            }
        ],
        "discount_type": "none",
        "discount_value": Decimal("0"),
        "tax_rate": Decimal("0"),
        "amount_paid": Decimal("40.00"),
        "payment_method": "cash",
    }


@pytest.fixture
def open_sale(sale_service: SaleEntryService, sale_data: Dict[str, Any]) -> SaleRecord:
    """Sale with 60.00 outstanding"""
    return sale_service.create_sale(sale_data).sale


@pytest.fixture
def make_legacy_sale(db_session: Session, customer: Customer, supplier: Supplier):
    """Insert a sale the way it was stored before recovery tracking existed"""
    counter = {"n": 0}

    def _make(grand_total, amount_paid, payment_status=None, sale_date=NOW, total_recovered=None):
        counter["n"] += 1
        sale = SaleRecord(
            sale_number=f"LEG-{counter['n']:04d}",
            customer_id=customer.id,
            supplier_id=supplier.id,
            subtotal=Decimal(str(grand_total)),
            grand_total=Decimal(str(grand_total)),
            amount_paid=Decimal(str(amount_paid)),
            payment_status=payment_status,
            total_recovered=total_recovered,
            sale_date=sale_date,
        )
        db_session.add(sale)
        db_session.commit()
        return sale

    return _make


class LedgerAssertions:
    """Helper class for ledger consistency checks"""

    @staticmethod
    def assert_balance_identity(sale: SaleRecord):
        expected = max(Decimal("0"), sale.grand_total - sale.amount_paid - sale.total_recovered)
        assert sale.outstanding_amount == expected

    @staticmethod
    def assert_status_consistent(sale: SaleRecord):
        fully_paid = sale.outstanding_amount == 0 and (sale.amount_paid > 0 or sale.total_recovered > 0)
        assert (sale.recovery_status == "fully_paid") == fully_paid


@pytest.fixture
def ledger_assert():
    return LedgerAssertions
