"""Pytest configuration and shared fixtures for ledger tests."""

import os
from decimal import Decimal

# Set test database URL BEFORE any imports from patient_ledger
# This ensures the module-level engine and SessionLocal never touch a real file
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ.setdefault("LOG_FILE", "logs/test_server.log")

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from patient_ledger.api.app import app  # noqa: E402
from patient_ledger.models import Base  # noqa: E402
from patient_ledger.services import build_engine, get_db  # noqa: E402
from patient_ledger.services.patient_service import PatientService  # noqa: E402


@pytest.fixture
def engine():
    """In-memory SQLite engine shared by every connection of one test."""
    test_engine = create_engine(
        "sqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(bind=test_engine)
    yield test_engine
    Base.metadata.drop_all(bind=test_engine)
    test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db_session(session_factory):
    """Create test database session."""
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def client(db_session):
    """Create test client with database dependency override."""

    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def make_patient(db_session):
    """Factory creating patients through the billing profile store."""

    def _make_patient(name="Test Patient", periodic_fee=Decimal("5000"), **kwargs):
        return PatientService(db_session).create_patient(name, periodic_fee, **kwargs)

    return _make_patient


@pytest.fixture
def patient(make_patient):
    """Patient with a 5000 monthly fee and no ancillary charges."""
    return make_patient()


@pytest.fixture
def file_engine(tmp_path):
    """File-backed SQLite engine built the way the application builds it."""
    test_engine = build_engine(f"sqlite:///{tmp_path / 'ledger.db'}")
    Base.metadata.create_all(bind=test_engine)
    yield test_engine
    test_engine.dispose()


@pytest.fixture
def file_session_factory(file_engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=file_engine)
