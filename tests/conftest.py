import os
from datetime import date

# Settings are read at import time; keep tests off the real database and scheduler
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("ENABLE_SCHEDULER", "false")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from subtracker.auth import create_access_token, hash_password
from subtracker.db import Base, get_db
from subtracker.dependencies import get_today
from subtracker.main import app
from subtracker.models.user import User

# Pinned "today" for API tests
TODAY = date(2024, 3, 15)


@pytest.fixture
def db_session():
    """Create an in-memory SQLite database for testing."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.create_all(bind=engine)

    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


def _override_db(db_session):
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    return override_get_db


@pytest.fixture
def client(db_session):
    """Create a test client with database session override."""
    app.dependency_overrides[get_db] = _override_db(db_session)
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def _make_user(db_session, email: str, username: str, monthly_budget=None) -> User:
    user = User(
        email=email,
        username=username,
        hashed_password=hash_password("Password123!"),
        monthly_budget=monthly_budget,
    )
    db_session.add(user)
    db_session.commit()
    db_session.refresh(user)
    return user


@pytest.fixture
def auth_client(db_session):
    """Create a test client with an authenticated user and a pinned today."""
    test_user = _make_user(db_session, "test@example.com", "test")

    # Create access token (sub must be string)
    token = create_access_token(data={"sub": str(test_user.id)})

    app.dependency_overrides[get_db] = _override_db(db_session)
    app.dependency_overrides[get_today] = lambda: TODAY
    with TestClient(app) as test_client:
        test_client.headers["Authorization"] = f"Bearer {token}"
        test_client.test_user = test_user  # Attach user for assertions
        test_client.today = TODAY
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def second_auth_client(db_session):
    """Create a test client with a second authenticated user (for isolation tests)."""
    second_user = _make_user(db_session, "second@example.com", "second")

    token = create_access_token(data={"sub": str(second_user.id)})

    app.dependency_overrides[get_db] = _override_db(db_session)
    app.dependency_overrides[get_today] = lambda: TODAY
    with TestClient(app) as test_client:
        test_client.headers["Authorization"] = f"Bearer {token}"
        test_client.test_user = second_user
        yield test_client
    app.dependency_overrides.clear()
