"""
Pytest configuration and fixtures for testing.

This file provides reusable test fixtures for:
- Database setup/teardown
- A controllable clock and a recording notification sender
- The reset code manager and the FastAPI test client
"""

import os

# Settings are read when the app is imported: use SQLite and local accounts
os.environ.setdefault("IDENTITY_BACKEND", "local")
os.environ.setdefault("SQLALCHEMY_DATABASE_URI", "sqlite://")
os.environ.setdefault("JSON_LOGS", "false")

import uuid
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.database import Base, get_db
from app.core.security import get_password_hash
from app.core.verification import VerificationCodeManager
from app.models.account import Account
from app.services.identity_service import LocalIdentityDelegate
from main import app
from tests.fakes import FakeClock, RecordingSender


# Use in-memory SQLite for testing (fast, isolated)
SQLALCHEMY_TEST_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db_session():
    """
    Create a fresh database for each test.
    """
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def sender():
    return RecordingSender()


@pytest.fixture
def identity(db_session):
    """Local identity delegate backed by the test database"""
    return LocalIdentityDelegate(TestingSessionLocal)


@pytest.fixture
def manager(identity, sender, clock):
    return VerificationCodeManager(identity=identity, sender=sender, clock=clock)


@pytest.fixture
def create_account(db_session):
    """Factory for local accounts"""
    def _create(email: str = "a@x.com", password: str = "OldPass1!", is_active: bool = True) -> Account:
        account = Account(
            id=uuid.uuid4(),
            email=email,
            hashed_password=get_password_hash(password),
            is_active=is_active
        )
        db_session.add(account)
        db_session.commit()
        return account

    return _create


@pytest.fixture(autouse=True)
def no_rate_limits(monkeypatch):
    """Rate limits need Redis; tests exercise the limiter separately"""
    monkeypatch.setattr(
        "app.core.rate_limiter.rate_limiter.check_rate_limit",
        lambda *args, **kwargs: None
    )
    monkeypatch.setattr(
        "app.core.rate_limiter.rate_limiter.reset_limit",
        lambda *args, **kwargs: None
    )


@pytest.fixture
def client(db_session, manager):
    """
    FastAPI test client with overridden database dependency and code manager.
    """
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.state.verification_manager = manager

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()
    app.state.verification_manager = None
