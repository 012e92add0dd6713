"""
Test configuration and fixtures for Taskboard API tests.

Provides:
- Test database with SQLite in-memory for speed
- FastAPI test client with database dependency override
- Authentication helpers (JWT tokens and admin basic auth)
- Common fixtures for users, projects, tags and tasks
"""

import base64
import os
import sys
import logging
from datetime import timedelta
from typing import Generator, Dict

# Settings are read at import time, so they must be in place first
os.environ.setdefault("BASIC_SECRET", "test-secret")
os.environ.setdefault("JWT_SECRET_KEY", "test-jwt-secret")
os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

# Add backend directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from database import Base, get_db
from main import app
import models
from auth.security import hash_password, create_access_token
from time_utils import utc_now

# Configure logging for tests
logging.basicConfig(level=logging.WARNING)
logger = logging.getLogger(__name__)

# SQLite in-memory database for fast testing
SQLALCHEMY_TEST_DATABASE_URL = "sqlite:///:memory:"

BASIC_SECRET = os.environ["BASIC_SECRET"]


@pytest.fixture(scope="function")
def test_db() -> Generator[Session, None, None]:
    """
    Create a fresh in-memory SQLite database for each test.

    This ensures test isolation and fast execution.
    """
    engine = create_engine(
        SQLALCHEMY_TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)

    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    db = TestingSessionLocal()

    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def client(test_db: Session) -> TestClient:
    """
    Create FastAPI test client with database dependency override.
    """
    def override_get_db():
        try:
            yield test_db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


def make_user(
    db: Session,
    email: str,
    roles=None,
    password: str = "password123",
    first_name: str = "Test",
    last_name: str = "User",
) -> models.User:
    user = models.User(
        email=email,
        password_hash=hash_password(password),
        first_name=first_name,
        last_name=last_name,
        roles=[role.value for role in (roles or [models.Role.ROLE_USER])],
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture(scope="function")
def owner_user(test_db: Session) -> models.User:
    """The user who creates the projects in most tests."""
    return make_user(test_db, "owner@test.com", first_name="Olive", last_name="Owner")


@pytest.fixture(scope="function")
def member_user(test_db: Session) -> models.User:
    return make_user(test_db, "member@test.com", first_name="Milo", last_name="Member")


@pytest.fixture(scope="function")
def outsider_user(test_db: Session) -> models.User:
    """A regular user with no relation to any project."""
    return make_user(test_db, "outsider@test.com", first_name="Oscar", last_name="Outsider")


@pytest.fixture(scope="function")
def manager_user(test_db: Session) -> models.User:
    return make_user(
        test_db, "manager@test.com", roles=[models.Role.ROLE_MANAGER],
        first_name="Mia", last_name="Manager",
    )


def create_auth_token(user: models.User, expires_delta: timedelta = None) -> str:
    """
    Helper to create JWT access token for a user.

    Args:
        user: User to create token for
        expires_delta: Optional expiration time override

    Returns:
        JWT access token string
    """
    return create_access_token({"sub": str(user.id)}, expires_delta)


def auth_headers_for(user: models.User) -> Dict[str, str]:
    return {"Authorization": f"Bearer {create_auth_token(user)}"}


def basic_auth_headers(secret: str = BASIC_SECRET, username: str = "admin") -> Dict[str, str]:
    encoded = base64.b64encode(f"{username}:{secret}".encode("utf-8")).decode("ascii")
    return {"Authorization": f"Basic {encoded}"}


@pytest.fixture(scope="function")
def owner_headers(owner_user: models.User) -> Dict[str, str]:
    return auth_headers_for(owner_user)


@pytest.fixture(scope="function")
def member_headers(member_user: models.User) -> Dict[str, str]:
    return auth_headers_for(member_user)


@pytest.fixture(scope="function")
def outsider_headers(outsider_user: models.User) -> Dict[str, str]:
    return auth_headers_for(outsider_user)


@pytest.fixture(scope="function")
def manager_headers(manager_user: models.User) -> Dict[str, str]:
    return auth_headers_for(manager_user)


@pytest.fixture(scope="function")
def project(test_db: Session, owner_user: models.User, member_user: models.User) -> models.Project:
    """
    Create a project owned by owner_user with member_user as member.
    """
    project = models.Project(
        title="Website relaunch",
        description="Rebuild the marketing site",
        start_date=utc_now() + timedelta(days=1),
        status=models.ProjectStatus.ACTIVE,
        created_by=owner_user.id,
        members=[member_user],
    )
    test_db.add(project)
    test_db.commit()
    test_db.refresh(project)
    logger.info(f"Created project with ID: {project.id}")
    return project


@pytest.fixture(scope="function")
def other_project(test_db: Session, outsider_user: models.User) -> models.Project:
    """A project that owner_user and member_user cannot see."""
    project = models.Project(
        title="Secret project",
        description="Owned by the outsider",
        start_date=utc_now() + timedelta(days=1),
        status=models.ProjectStatus.ACTIVE,
        created_by=outsider_user.id,
    )
    test_db.add(project)
    test_db.commit()
    test_db.refresh(project)
    return project


@pytest.fixture(scope="function")
def tag(test_db: Session, project: models.Project) -> models.Tag:
    tag = models.Tag(name="frontend", project_id=project.id)
    test_db.add(tag)
    test_db.commit()
    test_db.refresh(tag)
    return tag


@pytest.fixture(scope="function")
def task(test_db: Session, project: models.Project) -> models.Task:
    task = models.Task(
        title="Write landing page copy",
        description="Draft hero and feature sections",
        priority=models.TaskPriority.MEDIUM,
        state=models.TaskState.OPEN,
        project_id=project.id,
    )
    test_db.add(task)
    test_db.commit()
    test_db.refresh(task)
    return task
