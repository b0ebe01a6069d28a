"""Pytest configuration and fixtures."""

import os

# Must be set before any taskflow module reads its settings
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("APP_ENV", "development")
os.environ.setdefault("JWT_SECRET", "test-access-secret")
os.environ.setdefault("REFRESH_SECRET", "test-refresh-secret")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("SMTP_HOST", "")

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import Session, sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from taskflow.database import Base, get_db  # noqa: E402
from taskflow.models.todo import Todo  # noqa: E402, F401
from taskflow.models.user import User  # noqa: E402, F401
from taskflow.schemas.user import SignupRequest  # noqa: E402
from taskflow.services.auth import AuthService  # noqa: E402

TEST_PASSWORD = "password123"


@pytest.fixture(name="engine")
def engine_fixture():
    """Create an in-memory SQLite database for tests."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(name="db_session")
def db_session_fixture(engine):
    testing_session_local = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    session = testing_session_local()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(name="app")
def app_fixture(db_session: Session):
    """The FastAPI app with the DB dependency overridden and rate limiting disabled."""
    from main import app
    from taskflow.rate_limit import limiter

    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    limiter.enabled = False
    yield app
    limiter.enabled = True
    limiter.reset()
    app.dependency_overrides.clear()


@pytest.fixture(name="client")
def client_fixture(app):
    with TestClient(app) as c:
        yield c


def make_user(db: Session, email: str = "test@example.com", username: str = "tester") -> User:
    return AuthService().signup(
        db,
        SignupRequest(
            first_name="Test",
            last_name="User",
            email=email,
            password=TEST_PASSWORD,
            username=username,
        ),
    )


@pytest.fixture(name="test_user")
def test_user_fixture(db_session: Session) -> dict:
    """Create a test user and return its public data."""
    user = make_user(db_session)
    return {"user_id": user.id, "email": user.email, "username": user.username, "password": TEST_PASSWORD}


@pytest.fixture(name="auth_client")
def auth_client_fixture(client: TestClient, test_user: dict) -> TestClient:
    """A client that has logged in and holds both session cookies."""
    response = client.post("/api/v1/user/login", json={"email": test_user["email"], "password": TEST_PASSWORD})
    assert response.status_code == 200
    return client
