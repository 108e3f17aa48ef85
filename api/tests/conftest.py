"""
Pytest fixtures for API tests.
"""
import os
import tempfile
from decimal import Decimal
from typing import Callable, Generator
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

# Set test environment before the app (and its settings) are imported
_TEST_DIR = tempfile.mkdtemp(prefix="investigation-hub-tests-")
os.environ["ENV"] = "test"
os.environ["JWT_SECRET_KEY"] = "test-secret-key-for-testing-only-32chars"
os.environ["DATABASE_URL"] = os.getenv("TEST_DATABASE_URL", f"sqlite:///{_TEST_DIR}/hub_test.db")
os.environ.setdefault("REDIS_URL", "redis://localhost:6379/15")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from app.main import app
from app.db.base import Base
from app.db.session import SessionLocal, engine
from app.models.investigation import InvestigationRequest
from app.models.user import User
from app.core import lifecycle
from app.core.roles import ensure_roles_seeded, grant_role
from app.core.security import hash_password, create_access_token
from shared.enums import UserRole


# Header to bypass rate limiting in tests
BYPASS_HEADERS = {"X-Test-Bypass-RateLimit": "1"}

DEFAULT_PASSWORD = "TestPassword123!"


# =============================================================================
# Database Setup
# =============================================================================

@pytest.fixture(scope="session", autouse=True)
def setup_database():
    """Create tables and seed roles once per test session."""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        ensure_roles_seeded(session)
        session.commit()
    finally:
        session.close()
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db() -> Generator[Session, None, None]:
    """Get database session."""
    session = SessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture
def client() -> TestClient:
    """Get test client (rate limiting bypassed)."""
    return TestClient(app, headers=BYPASS_HEADERS)


# =============================================================================
# Users
# =============================================================================

def auth_headers_for(user: User, role: UserRole | None = None) -> dict:
    """Bearer headers for a user acting as ``role``."""
    token = create_access_token(
        user_id=user.id,
        email=user.email,
        role=role.value if role else None,
    )
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def make_user(db: Session) -> Callable[..., User]:
    """Factory creating a user with the given role grants."""

    def _make(*roles: UserRole, password: str = DEFAULT_PASSWORD, prefix: str = "user") -> User:
        user = User(
            id=uuid4(),
            email=f"{prefix}-{uuid4()}@example.com",
            password_hash=hash_password(password),
            first_name="Test",
            last_name=prefix.capitalize(),
            is_active=True,
        )
        db.add(user)
        db.flush()
        for role in roles:
            grant_role(db, user.id, role.value)
        db.commit()
        db.refresh(user)
        return user

    return _make


@pytest.fixture
def client_user(make_user) -> tuple[User, dict]:
    """A user holding only the client role."""
    user = make_user(UserRole.CLIENT, prefix="client")
    return user, auth_headers_for(user, UserRole.CLIENT)


@pytest.fixture
def investigator_user(make_user) -> tuple[User, dict]:
    """A user holding only the investigator role."""
    user = make_user(UserRole.INVESTIGATOR, prefix="investigator")
    return user, auth_headers_for(user, UserRole.INVESTIGATOR)


@pytest.fixture
def other_investigator(make_user) -> tuple[User, dict]:
    """A second investigator, for exclusivity tests."""
    user = make_user(UserRole.INVESTIGATOR, prefix="rival")
    return user, auth_headers_for(user, UserRole.INVESTIGATOR)


@pytest.fixture
def dual_user(make_user) -> User:
    """A user holding both roles."""
    return make_user(UserRole.CLIENT, UserRole.INVESTIGATOR, prefix="dual")


# =============================================================================
# Investigation requests
# =============================================================================

@pytest.fixture
def submitted_investigation(db: Session, client_user) -> InvestigationRequest:
    """An open request posted by ``client_user``."""
    user, _ = client_user
    return lifecycle.create_request(
        db,
        client_id=user.id,
        title="Locate missing shipment",
        description="Container left the port on Monday and never arrived.",
        budget=Decimal("1500.00"),
    )


@pytest.fixture
def pending_investigation(db: Session, submitted_investigation, investigator_user) -> InvestigationRequest:
    """``submitted_investigation`` accepted by ``investigator_user``."""
    user, _ = investigator_user
    return lifecycle.accept_request(db, submitted_investigation.id, user.id)


@pytest.fixture
def completed_investigation(db: Session, pending_investigation, investigator_user) -> InvestigationRequest:
    """``pending_investigation`` completed by its investigator."""
    user, _ = investigator_user
    return lifecycle.complete_request(db, pending_investigation.id, user.id)


@pytest.fixture
def reported_investigation(db: Session, completed_investigation, investigator_user) -> InvestigationRequest:
    """``completed_investigation`` with a submitted report."""
    user, _ = investigator_user
    lifecycle.submit_report(db, completed_investigation.id, user.id, "Shipment found in a bonded warehouse.")
    return completed_investigation


@pytest.fixture
def headers_for() -> Callable[..., dict]:
    """Build bearer headers for an arbitrary user and active role."""
    return auth_headers_for
