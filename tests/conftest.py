"""Shared test fixtures for the NOC Dashboard Service tests.

Provides a test database (in-memory SQLite), test session, a FastAPI app
built from test settings with the router monitor disabled, and a test
client with the database dependency overridden.
"""

import hashlib

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.config import Settings
from app.database import Base, get_db, init_db
from app.main import create_app
from app.models import AdminUser
from app.services.credentials import hash_password

# Use in-memory SQLite for tests
TEST_DATABASE_URL = "sqlite:///:memory:"
TEST_SECRET = "test-secret"


class FakeClock:
    """Manually advanced clock returning seconds since the epoch."""

    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def test_settings():
    """Settings for an isolated app: fixed secret, no upstream connection."""
    return Settings(
        DATABASE_URL=TEST_DATABASE_URL,
        AUTH_SECRET=TEST_SECRET,
        ROUTER_MONITOR_ENABLED=False,
        _env_file=None,
    )


@pytest.fixture()
def test_engine():
    """Create a test database engine with in-memory SQLite.

    Uses StaticPool so a single connection is shared across threads,
    which is required because TestClient dispatches requests in a
    separate thread while the test runs on the main thread.
    """
    engine = create_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture()
def test_session(test_engine):
    """Create a test database session."""
    TestSession = sessionmaker(autocommit=False, autoflush=False, bind=test_engine)
    session = TestSession()
    yield session
    session.close()


@pytest.fixture()
def test_app(test_settings):
    return create_app(test_settings)


@pytest.fixture()
def client(test_app, test_session):
    """Create a FastAPI test client with the test database injected.

    The client is not entered as a context manager, so the lifespan (table
    creation on the real engine, monitor start) does not run.
    """

    def override_get_db():
        yield test_session

    test_app.dependency_overrides[get_db] = override_get_db
    yield TestClient(test_app)
    test_app.dependency_overrides.clear()


@pytest.fixture()
def admin_users(test_session):
    """Insert admin accounts covering every stored password format.

    Users:
        - admin: bcrypt hash of "s3cret"
        - legacy_plain: plain text "plainpass"
        - legacy_sha: SHA-256 hex digest of "shapass"
        - legacy_md5: MD5 hex digest of "md5pass"
        - disabled: empty password
    """
    users = [
        AdminUser(username="admin", password=hash_password("s3cret")),
        AdminUser(username="legacy_plain", password="plainpass"),
        AdminUser(
            username="legacy_sha",
            password=hashlib.sha256(b"shapass").hexdigest(),
        ),
        AdminUser(
            username="legacy_md5",
            password=hashlib.md5(b"md5pass").hexdigest().upper(),
        ),
        AdminUser(username="disabled", password=""),
    ]
    test_session.add_all(users)
    test_session.commit()
    return {user.username: user for user in users}


@pytest.fixture()
def auth_client(client, admin_users):
    """A test client that is already signed in as ``admin``."""
    response = client.post("/api/login", json={"username": "admin", "password": "s3cret"})
    assert response.status_code == 200
    return client
