"""
Test Configuration and Fixtures
================================

Central configuration for pytest with all shared fixtures.

Features:
- SQLite in-memory database for testing
- TestClient setup
- User factory plus one fixture per role
- Dependency overrides for database session
"""

import os
import uuid
from functools import lru_cache
from typing import Callable, Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

# Set testing environment before importing app modules
os.environ["ENVIRONMENT"] = "testing"
os.environ["SECRET_KEY"] = "test-secret-key-for-testing-only-min-32-chars"
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["RATE_LIMIT_ENABLED"] = "false"  # Disable rate limiting in tests

from consultancy.core.enums import AccountStatus
from consultancy.db.base import Base
from consultancy.db.session import get_db
from consultancy.models.role_enum import Role
from consultancy.models.user import User
from consultancy.services.auth_service import AuthService
from consultancy.main import app as main_app


TEST_PASSWORD = "TestPassword123!"


@lru_cache
def hashed_test_password() -> str:
    """Argon2 is slow by design; hash the shared test password once."""
    return AuthService.hash_password(TEST_PASSWORD)


# =====================================
# Database Configuration
# =====================================

# StaticPool is used to maintain the same connection across tests
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)


@event.listens_for(engine, "connect")
def set_sqlite_pragma(dbapi_connection, connection_record):
    """Enable foreign key constraints for SQLite."""
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


TestingSessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)


# =====================================
# Database Fixtures
# =====================================

@pytest.fixture(scope="function")
def db_session() -> Generator[Session, None, None]:
    """
    Create a fresh database session for each test.

    Creates all tables before each test and drops them after.
    """
    Base.metadata.create_all(bind=engine)

    session = TestingSessionLocal()

    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def client(db_session: Session) -> Generator[TestClient, None, None]:
    """Create a TestClient with database dependency override."""
    def override_get_db():
        yield db_session

    main_app.dependency_overrides[get_db] = override_get_db

    with TestClient(main_app) as test_client:
        yield test_client

    main_app.dependency_overrides.clear()


# =====================================
# User Fixtures
# =====================================

@pytest.fixture
def make_user(db_session: Session) -> Callable[..., User]:
    """
    Factory creating persisted users.

    Usage:
        editor = make_user(Role.EDITOR)
        suspended = make_user(Role.AUTHOR, status=AccountStatus.SUSPENDED)
    """
    def _make(
        role: Role = Role.VIEWER,
        status: AccountStatus = AccountStatus.ACTIVE,
        email: str = None,
        **extra,
    ) -> User:
        user = User(
            id=uuid.uuid4(),
            email=email or f"{role.value.lower()}-{uuid.uuid4().hex[:8]}@example.com",
            role=role,
            status=status,
            **{
                "name": f"Test {role.value.title()}",
                "hashed_password": hashed_test_password(),
                **extra,
            },
        )
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user

    return _make


@pytest.fixture
def super_admin(make_user) -> User:
    return make_user(Role.SUPER_ADMIN, email="superadmin@example.com")


@pytest.fixture
def admin(make_user) -> User:
    return make_user(Role.ADMIN, email="admin@example.com")


@pytest.fixture
def editor(make_user) -> User:
    return make_user(Role.EDITOR, email="editor@example.com")


@pytest.fixture
def author(make_user) -> User:
    return make_user(Role.AUTHOR, email="author@example.com")


@pytest.fixture
def contributor(make_user) -> User:
    return make_user(Role.CONTRIBUTOR, email="contributor@example.com")


@pytest.fixture
def viewer(make_user) -> User:
    return make_user(Role.VIEWER, email="viewer@example.com")


@pytest.fixture
def locked_user(make_user) -> User:
    return make_user(Role.VIEWER, email="locked@example.com", is_locked=True, failed_attempts=5)


# =====================================
# Token & Header Fixtures
# =====================================

def headers_for(user: User) -> dict:
    """Authorization headers carrying a fresh access token for ``user``."""
    token = AuthService.create_access_token(
        user_id=user.id,
        token_version=user.token_version,
    )
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def super_admin_headers(super_admin: User) -> dict:
    return headers_for(super_admin)


@pytest.fixture
def admin_headers(admin: User) -> dict:
    return headers_for(admin)


@pytest.fixture
def editor_headers(editor: User) -> dict:
    return headers_for(editor)


@pytest.fixture
def viewer_headers(viewer: User) -> dict:
    return headers_for(viewer)


# =====================================
# Utility Fixtures
# =====================================

@pytest.fixture
def test_password() -> str:
    """Return a test password that meets all requirements."""
    return TEST_PASSWORD


@pytest.fixture
def weak_password() -> str:
    """Return a weak password for validation testing."""
    return "weak"


@pytest.fixture
def auth_headers_for() -> Callable[[User], dict]:
    """Build headers for an arbitrary user created via ``make_user``."""
    return headers_for
