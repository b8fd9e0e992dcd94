"""Pytest configuration and fixtures."""

import os
from datetime import timedelta

# Set test environment variables BEFORE importing app modules
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("SECRET_KEY", "test-secret-key-for-testing-only-32chars")
os.environ.setdefault("ENVIRONMENT", "testing")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("TOKEN_CLEANUP_ENABLED", "false")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.config import settings
from app.core.database import Base, get_db, utcnow
from app.core.security import PasswordHasher
from app.api.deps import get_email_service
from app.services.auth_service import build_auth_service
from app.services.email_service import EmailService
from app.services.user_service import UserStore
from main import app

# Create in-memory SQLite database for testing
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


class RecordingEmailService(EmailService):
    """Email service that keeps messages in memory instead of sending them."""

    def __init__(self):
        super().__init__(
            from_email="noreply@example.com",
            frontend_url="http://localhost:5173",
            environment="testing",
        )
        self.sent = []
        self.reset_tokens = []

    def send(self, to, subject, text, html=None):
        self.sent.append({"to": to, "subject": subject, "text": text})

    def send_password_reset(self, email, name, reset_token):
        self.reset_tokens.append(reset_token)
        super().send_password_reset(email, name, reset_token)


class FrozenClock:
    """Controllable clock for expiry boundary tests."""

    def __init__(self, now=None):
        self.now = now or utcnow().replace(microsecond=0)

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture(scope="function")
def db_session():
    """Create a fresh database session for each test."""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def email_service():
    return RecordingEmailService()


@pytest.fixture
def clock():
    return FrozenClock()


@pytest.fixture
def hasher():
    return PasswordHasher(rounds=settings.BCRYPT_ROUNDS)


@pytest.fixture
def auth_service(db_session, email_service):
    return build_auth_service(db_session, settings, email_service=email_service)


@pytest.fixture
def user_store(db_session):
    return UserStore(db_session)


@pytest.fixture
def create_user(db_session, user_store, hasher):
    """Factory for users written straight to the store."""

    def _create_user(email="jane@example.com", password="Secret123", full_name="Jane Doe", role="user"):
        user = user_store.create(
            email=email,
            password_hash=hasher.hash(password),
            full_name=full_name,
            role=role,
        )
        db_session.commit()
        db_session.refresh(user)
        return user

    return _create_user


@pytest.fixture(scope="function")
def client(db_session, email_service):
    """Create a test client with database and email overrides."""
    app.dependency_overrides[get_db] = lambda: db_session
    app.dependency_overrides[get_email_service] = lambda: email_service
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def signup_data():
    """Sample signup payload."""
    return {
        "email": "a@x.com",
        "password": "Abcdefg1",
        "full_name": "A B",
    }


@pytest.fixture
def auth_headers(client, signup_data):
    """Sign up the sample user and return bearer headers for them."""
    response = client.post("/api/auth/signup", json=signup_data)
    token = response.json()["access_token"]
    return {"Authorization": f"Bearer {token}"}
