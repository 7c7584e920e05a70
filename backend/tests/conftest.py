"""Shared test fixtures for all test modules."""

import contextlib
import uuid
from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy import create_engine, text
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

import copay_ledger.models  # noqa: F401
from copay_ledger.core import database as db_module
from copay_ledger.core.database import Base, get_db
from copay_ledger.models.copay import Copay, CopayStatus
from copay_ledger.models.patient import Patient
from copay_ledger.models.payment_method import PaymentMethod, PaymentMethodType
from copay_ledger.models.visit import Visit, VisitType

# Create an in-memory SQLite engine with StaticPool so all connections
# share the same database state and there are no file-locking issues.
_test_engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
_TestSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=_test_engine)


@pytest.fixture(autouse=True)
def setup_database():
    """Create tables before each test and truncate all data after.

    Patches the module-level engine and SessionLocal so all application code
    uses the in-memory test database. Clears data after each test.
    """
    original_engine = db_module.engine
    original_session = db_module.SessionLocal
    db_module.engine = _test_engine
    db_module.SessionLocal = _TestSessionLocal

    Base.metadata.create_all(bind=_test_engine)

    yield
    with _test_engine.connect() as conn:
        conn.execute(text("PRAGMA foreign_keys = OFF"))
        for table in reversed(Base.metadata.sorted_tables):
            with contextlib.suppress(OperationalError):
                conn.execute(table.delete())
        conn.execute(text("PRAGMA foreign_keys = ON"))
        conn.commit()

    db_module.engine = original_engine
    db_module.SessionLocal = original_session


@pytest.fixture
def db_session():
    """Create a database session for direct repository and service testing."""
    gen = get_db()
    db = next(gen)
    try:
        yield db
    finally:
        for _ in gen:
            pass


def create_patient(db: Session, first_name: str = "Jane", last_name: str = "Doe") -> Patient:
    patient = Patient(
        first_name=first_name,
        last_name=last_name,
        email=f"{first_name.lower()}.{uuid.uuid4().hex[:8]}@example.com",
        phone="555-0100",
    )
    db.add(patient)
    db.commit()
    db.refresh(patient)
    return patient


def create_copay(
    db: Session,
    patient: Patient,
    amount: str = "25.00",
    remaining: str | None = None,
    status: CopayStatus = CopayStatus.PAYABLE,
    visit_date: date = date(2026, 9, 1),
    department: str = "Primary Care",
) -> Copay:
    visit = Visit(
        patient_id=patient.id,
        visit_date=visit_date,
        doctor_name="Dr. Smith",
        department=department,
        visit_type=VisitType.OFFICE_VISIT.value,
    )
    db.add(visit)
    db.flush()
    copay = Copay(
        visit_id=visit.id,
        amount=Decimal(amount),
        remaining_balance=Decimal(remaining if remaining is not None else amount),
        status=status.value,
    )
    db.add(copay)
    db.commit()
    db.refresh(copay)
    return copay


def create_payment_method(
    db: Session, patient: Patient, is_active: bool = True, last_four: str = "4242"
) -> PaymentMethod:
    method = PaymentMethod(
        patient_id=patient.id,
        type=PaymentMethodType.CARD.value,
        provider="VISA",
        last_four=last_four,
        is_active=is_active,
    )
    db.add(method)
    db.commit()
    db.refresh(method)
    return method


@pytest.fixture
def patient(db_session):
    return create_patient(db_session)


@pytest.fixture
def other_patient(db_session):
    return create_patient(db_session, first_name="John", last_name="Roe")


@pytest.fixture
def copay(db_session, patient):
    """A $25.00 copay with nothing paid yet."""
    return create_copay(db_session, patient)


@pytest.fixture
def payment_method(db_session, patient):
    return create_payment_method(db_session, patient)
