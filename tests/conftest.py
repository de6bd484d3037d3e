# tests/conftest.py

import os

# Settings are read at import time; keep the test run self-contained.
os.environ.setdefault("ENV", "local")
os.environ.setdefault("DATABASE_URL_LOCAL", "sqlite:///./test_collaborations.db")
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("INTERNAL_API_KEY", "test-internal-key")
os.environ.setdefault("SCHEDULER_ENABLED", "false")
os.environ.pop("KAFKA_BOOTSTRAP_SERVERS_LOCAL", None)
os.environ.pop("STRIPE_SECRET_KEY", None)

import pytest
from unittest.mock import AsyncMock, MagicMock
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from starlette.testclient import TestClient

from app.main import app
from app.api import deps
from app.db.base_class import Base
from app import models  # noqa: F401  registers every table on Base.metadata
from app.services.collaboration_engine import CollaborationService
from app.services.offer_engine import OfferService
from app.services.payment.gateway_interface import ChargeResult, ChargeStatus


# --- Database Setup ---
# A file-backed SQLite database per test, so tests can open competing sessions.
@pytest.fixture(scope="function")
def engine(tmp_path):
    engine = create_engine(
        f"sqlite:///{tmp_path / 'ledger.db'}",
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture(scope="function")
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="function")
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


# --- Collaborator Mocks ---
@pytest.fixture
def notifier():
    """Records notify(event_type, entity_id, recipient_id) calls."""
    return MagicMock()


@pytest.fixture
def gateway():
    """Payment gateway whose charges succeed unless a test says otherwise."""
    gateway = MagicMock()
    gateway.code = "mock"
    gateway.charge = AsyncMock(
        return_value=ChargeResult(status=ChargeStatus.SUCCEEDED, charge_id="pi_test_123")
    )
    return gateway


# --- Services ---
@pytest.fixture
def collaboration_service(db, notifier, gateway):
    return CollaborationService(db, notifier=notifier, gateway=gateway)


@pytest.fixture
def offer_service(db, collaboration_service):
    return OfferService(db, collaborations=collaboration_service)


# --- Test Client Fixtures ---
@pytest.fixture(scope="function")
def test_client(session_factory, notifier, gateway):
    """
    TestClient backed by the per-test SQLite database, with the notifier and
    payment gateway mocked. Authentication uses real JWTs (see utils.auth).
    """

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[deps.get_db] = override_get_db
    app.dependency_overrides[deps.get_notifier_dep] = lambda: notifier
    app.dependency_overrides[deps.get_payment_gateway_dep] = lambda: gateway

    with TestClient(app) as client:
        yield client

    app.dependency_overrides.clear()
