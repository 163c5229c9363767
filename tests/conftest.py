"""
Test configuration and fixtures for Assessment Service.
"""

import os

# Configuration must be in place before the service modules are imported
os.environ["JWT_SECRET"] = "test-secret-key-for-testing-only-0123456789"
os.environ["JWT_ALGORITHM"] = "HS256"
os.environ["ORGANIZATION_TIMEZONE"] = "Asia/Kolkata"
os.environ["DATABASE_URL"] = "sqlite:///./test_assessment.db"
os.environ.pop("ZERO_TOKEN", None)

import pytest
import jwt
from contextlib import contextmanager
from datetime import datetime, timezone, timedelta
from unittest.mock import AsyncMock, MagicMock, patch
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from assessment_service.models.assessment import (
    Base, Test, User, SpecialUser, Organization,
    CallerRole, EducationLevel, EmploymentStatus
)
from assessment_service.schemas.identity import CallerIdentity
from assessment_service.services.booking_service import BookingService

SQLALCHEMY_DATABASE_URL = "sqlite:///./test_assessment.db"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)

TEST_JWT_SECRET = "test-secret-key-for-testing-only-0123456789"

# Every module that imports the global db_manager
DB_MANAGER_TARGETS = (
    "assessment_service.db.database.db_manager",
    "assessment_service.services.booking_service.db_manager",
    "assessment_service.services.organization_token_service.db_manager",
    "assessment_service.services.organization_service.db_manager",
    "assessment_service.services.profile_service.db_manager",
    "assessment_service.api.dependencies.db_manager",
)


@pytest.fixture
def db_session():
    """Create a database session for testing."""
    Base.metadata.create_all(bind=engine)

    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def initialized_db_manager(db_session):
    """Mock the global database manager for testing."""
    mock_db_manager = MagicMock()
    mock_db_manager._initialized = True

    @contextmanager
    def mock_get_transaction_session():
        session = TestingSessionLocal()
        try:
            yield session
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    @contextmanager
    def mock_get_session():
        session = TestingSessionLocal()
        try:
            yield session
        finally:
            session.close()

    mock_db_manager.get_transaction_session = mock_get_transaction_session
    mock_db_manager.get_session = mock_get_session

    patchers = [patch(target, mock_db_manager) for target in DB_MANAGER_TARGETS]
    for patcher in patchers:
        patcher.start()
    try:
        yield mock_db_manager
    finally:
        for patcher in reversed(patchers):
            patcher.stop()


@pytest.fixture
def mock_redis_manager():
    """Mock Redis manager for testing."""
    mock_redis = AsyncMock()
    mock_redis.initialize = AsyncMock()
    mock_redis.publish = AsyncMock(return_value=1)
    return mock_redis


@pytest.fixture
def mock_distributed_lock():
    """Mock distributed lock for testing."""
    mock_lock = AsyncMock()
    mock_lock.__aenter__ = AsyncMock(return_value=mock_lock)
    mock_lock.__aexit__ = AsyncMock(return_value=None)
    return mock_lock


@pytest.fixture
def booking_service(initialized_db_manager, mock_redis_manager):
    """Create booking service instance with test configuration."""
    service = BookingService()
    service.consistency_config = {
        "lock_timeout_seconds": 5,
        "lock_blocking_timeout_seconds": 1,
        "enable_distributed_locks": False
    }
    service.booking_config = {"allowed_roles": ["Candidate"], "expose_error_details": True}
    service.timezone_name = "Asia/Kolkata"

    with patch("assessment_service.services.booking_service.redis_manager", mock_redis_manager):
        yield service


@pytest.fixture
def organization(db_session):
    """Organization with an active token."""
    org = Organization(
        sap_id="2000020000",
        name="Acme Assessments",
        email="admin@acme.example",
        contact_person="Acme Admin",
        phone_number="+91-9000000000",
        address="1 Test Street",
        website="https://acme.example",
        description="Acme test organization",
        logo_url="https://acme.example/logo.png",
        username="acme",
        password_hash="not-a-real-hash",
        organization_token="ORG_existing-token",
        token_generated_at=datetime.now(timezone.utc) - timedelta(days=1),
        is_token_active=True
    )
    db_session.add(org)
    db_session.commit()
    return org


@pytest.fixture
def other_organization(db_session):
    """Second organization used to check scoping."""
    org = Organization(
        sap_id="3000030000",
        name="Other Org",
        email="admin@other.example",
        contact_person="Other Admin",
        username="other",
        password_hash="not-a-real-hash",
        is_token_active=False
    )
    db_session.add(org)
    db_session.commit()
    return org


@pytest.fixture
def candidate(db_session, organization):
    """Candidate account registered under the organization."""
    user = User(
        sap_id="5000050001",
        username="asha",
        email="Asha@Example.com",
        password_hash="not-a-real-hash",
        role=CallerRole.CANDIDATE.value,
        first_name="Asha",
        last_name="Rao",
        photo_url="/img/asha.png",
        key_skills="Python, SQL",
        employment=EmploymentStatus.STUDENT,
        education=EducationLevel.GRADUATE,
        category="Engineering",
        organization_sap_id=organization.sap_id
    )
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture
def special_user(db_session, organization):
    """Special user created by the organization."""
    special = SpecialUser(
        users_sap_id="7000070001",
        email="special@example.com",
        username="special",
        full_name="Special Person",
        password_hash="not-a-real-hash",
        organization_sap_id=organization.sap_id,
        is_active=True,
        mobile_number="9876543210",
        education=EducationLevel.POST_GRADUATE,
        employment=EmploymentStatus.EMPLOYED,
        category="Reviewer",
        description="Reviews candidate results",
        created_by=organization.sap_id
    )
    db_session.add(special)
    db_session.commit()
    return special


@pytest.fixture
def sample_test(db_session, organization):
    """Test with free capacity."""
    test = Test(
        title="Python Fundamentals",
        description="Basics of Python",
        domain="Programming",
        duration_minutes=60,
        created_by_sap_id=organization.sap_id,
        current_user_count=0,
        max_users_per_slot=200
    )
    db_session.add(test)
    db_session.commit()
    return test


@pytest.fixture
def candidate_caller(candidate):
    """Caller identity for the candidate, subject is the numeric account id."""
    return CallerIdentity(
        subject=str(candidate.id),
        role=CallerRole.CANDIDATE,
        email=candidate.email,
        username=candidate.username
    )


def make_token(subject=None, role=None, email=None, username=None, expires_in_minutes=30) -> str:
    """Issue a bearer token the way the authentication service does."""
    payload = {"exp": datetime.now(timezone.utc) + timedelta(minutes=expires_in_minutes)}
    if subject is not None:
        payload["sub"] = subject
    if role is not None:
        payload["role"] = role
    if email is not None:
        payload["email"] = email
    if username is not None:
        payload["username"] = username
    return jwt.encode(payload, TEST_JWT_SECRET, algorithm="HS256")


def auth_headers(**claims) -> dict:
    return {"Authorization": f"Bearer {make_token(**claims)}"}


@pytest.fixture
def token_factory():
    """Factory for signed bearer tokens."""
    return make_token


@pytest.fixture
def headers_for():
    """Factory for Authorization headers from claims."""
    return auth_headers
