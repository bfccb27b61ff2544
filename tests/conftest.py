# tests/conftest.py

import os

# Settings are read from the environment at import time, so these must be in
# place before anything under `app` is imported.
os.environ.setdefault("ENV", "local")
os.environ.setdefault("DATABASE_URL_LOCAL", "sqlite://")
os.environ.setdefault("DATABASE_URL_PROD", "sqlite://")
os.environ.setdefault("JWT_SECRET", "test-jwt-secret")
os.environ.setdefault("PAYMENT_GATEWAY_KEY_ID", "rzp_test_key")
os.environ.setdefault("PAYMENT_GATEWAY_KEY_SECRET", "test-gateway-secret")
os.environ.setdefault("QR_SIGNING_SECRET", "test-qr-signing-secret")

import pytest
from datetime import datetime, timezone
from starlette.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from unittest.mock import MagicMock

from app.main import app
from app.api import deps
from app.db.base import Base
from app.schemas.token import TokenPayload, UserRole
from app.services.payment import PaymentGatewayClient
from tests.utils.auth import (
    ORGANIZER_ID,
    OTHER_ORGANIZER_ID,
    OTHER_PARTICIPANT_ID,
    PARTICIPANT_ID,
    make_token,
)


# --- Test Database Setup ---
# A single in-memory SQLite connection shared by every session in a test.
engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="function")
def db_session():
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    yield session
    session.close()
    Base.metadata.drop_all(bind=engine)


# --- Actors ---

@pytest.fixture
def organizer() -> TokenPayload:
    return make_token(ORGANIZER_ID, UserRole.organizer)


@pytest.fixture
def participant() -> TokenPayload:
    return make_token(PARTICIPANT_ID)


@pytest.fixture
def other_participant() -> TokenPayload:
    return make_token(OTHER_PARTICIPANT_ID)


@pytest.fixture
def other_organizer() -> TokenPayload:
    return make_token(OTHER_ORGANIZER_ID, UserRole.organizer)


# --- Clock ---
class FrozenClock:
    """Replaces app.utils.time.utcnow; tests move it with `set`."""

    def __init__(self, now: datetime):
        self.now = now

    def set(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture
def clock(monkeypatch):
    frozen = FrozenClock(datetime(2030, 6, 1, 12, 0, tzinfo=timezone.utc))
    monkeypatch.setattr("app.utils.time.utcnow", frozen)
    return frozen


# --- Gateway ---
@pytest.fixture
def gateway():
    """A gateway double that hands out sequential order ids."""
    mock = MagicMock(spec=PaymentGatewayClient)
    mock.key_id = "rzp_test_key"
    counter = {"n": 0}

    def _create_order(amount, currency, reference):
        counter["n"] += 1
        return f"order_test{counter['n']:04d}"

    mock.create_order.side_effect = _create_order
    return mock


# --- Test Client Fixtures ---
@pytest.fixture(scope="function")
def current_user():
    """Mutable holder for the authenticated actor; tests assign `.value`."""
    holder = MagicMock()
    holder.value = make_token(PARTICIPANT_ID)
    return holder


@pytest.fixture(scope="function")
def test_client(db_session, current_user, gateway):
    """
    Provides a TestClient backed by the per-test SQLite database, with
    authentication and the payment gateway replaced.
    """

    def override_get_db():
        yield db_session

    app.dependency_overrides[deps.get_db] = override_get_db
    app.dependency_overrides[deps.get_current_user] = lambda: current_user.value
    app.dependency_overrides[deps.get_payment_gateway] = lambda: gateway

    with TestClient(app) as client:
        yield client

    app.dependency_overrides.clear()
