"""Pytest configuration and fixtures."""

import os
import uuid

# Set test environment variables BEFORE importing app modules
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("SECRET_KEY", "test-secret-key-for-testing-only-32chars")
os.environ.setdefault("ENVIRONMENT", "testing")

# Disable rate limiting for tests by monkey-patching BEFORE imports
from slowapi import Limiter
from slowapi.util import get_remote_address

# Create disabled limiters
_disabled_limiter = Limiter(key_func=get_remote_address, enabled=False)

# Patch the rate_limit module before it's imported elsewhere
import app.core.rate_limit as rate_limit_module
rate_limit_module.limiter = _disabled_limiter
rate_limit_module.public_limiter = _disabled_limiter

# Patch PostgreSQL types for SQLite compatibility BEFORE importing models
from sqlalchemy import String, TypeDecorator
import sqlalchemy.dialects.postgresql as pg_dialect


class SQLiteUUID(TypeDecorator):
    """Platform-independent UUID type that works with SQLite."""
    impl = String(36)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is not None:
            if isinstance(value, uuid.UUID):
                return str(value)
            return str(uuid.UUID(value))
        return value

    def process_result_value(self, value, dialect):
        if value is not None:
            return uuid.UUID(value)
        return value


# Monkey-patch the PostgreSQL UUID class before any models are imported
class MockUUID(SQLiteUUID):
    """Mock PostgreSQL UUID that works with SQLite for testing."""
    def __init__(self, as_uuid=True):
        super().__init__()
        self.as_uuid = as_uuid


pg_dialect.UUID = MockUUID

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import main
from app.core.database import Base
from app.core.rate_limit import LoginAttemptLimiter, MemoryAttemptStore, get_login_limiter
from app.core.security import get_password_hash
from app.api.deps import get_db
from app.models import AdminUser
from app.services.magic_link_service import get_magic_link_sender
from main import app

# Create in-memory SQLite database for testing
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

ADMIN_EMAIL = "admin@example.com"
ADMIN_PASSWORD = "correct-horse-battery"


class RecordingSender:
    """Magic link sender that keeps links instead of delivering them."""

    def __init__(self):
        self.sent = []

    def send(self, email, link):
        self.sent.append((email, link))


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
def session_factory():
    """Session factory bound to the test database, for code that opens its own sessions."""
    return TestingSessionLocal


@pytest.fixture
def login_limiter():
    """A fresh per-test sign-in limiter."""
    return LoginAttemptLimiter(MemoryAttemptStore(), max_attempts=5)


@pytest.fixture
def magic_link_sender():
    return RecordingSender()


@pytest.fixture(scope="function")
def client(db_session, login_limiter, magic_link_sender, monkeypatch):
    """Create a test client with database override."""
    # Startup token purge must hit the test database
    monkeypatch.setattr(main, "SessionLocal", TestingSessionLocal)

    app.dependency_overrides[get_db] = lambda: db_session
    app.dependency_overrides[get_login_limiter] = lambda: login_limiter
    app.dependency_overrides[get_magic_link_sender] = lambda: magic_link_sender
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def admin_user(db_session):
    """An active admin with a password."""
    user = AdminUser(
        email=ADMIN_EMAIL,
        password_hash=get_password_hash(ADMIN_PASSWORD),
        name="Site Admin",
        is_active=True,
    )
    db_session.add(user)
    db_session.commit()
    db_session.refresh(user)
    return user


@pytest.fixture
def admin_credentials():
    """Sample admin login credentials."""
    return {
        "email": ADMIN_EMAIL,
        "password": ADMIN_PASSWORD,
    }


@pytest.fixture
def auth_client(client, admin_user, admin_credentials):
    """Test client holding a signed-in admin session in its cookie jar."""
    response = client.post("/admin/login", json=admin_credentials)
    assert response.status_code == 200
    return client


@pytest.fixture
def sample_post_data():
    return {
        "title": "Hello World",
        "slug": "hello-world",
        "excerpt": "A first post.",
        "content": "Body of the first post.",
        "image_url": "https://images.example.com/hello.png",
        "published": False,
    }
