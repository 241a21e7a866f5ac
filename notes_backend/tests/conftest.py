import os
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# The app reads its settings at import time.
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("JWT_SECRET", "test-secret-key-32-chars-long!!")
os.environ.setdefault("FRONTEND_URL", "http://frontend.test")
os.environ.setdefault("OTP_RESEND_COOLDOWN_SECONDS", "0")
os.environ.setdefault("APP_ENV", "test")

from notes_api.config import get_settings
from notes_api.deps import get_db, get_identity_provider, get_mailer
from notes_api.exceptions import DeliveryError
from notes_api.main import app
from notes_api.oauth import ExternalProfile, IdentityProviderError
from notes_database.models import Base


class RecordingMailer:
    """Captures OTP emails instead of sending them."""

    def __init__(self):
        self.sent = []
        self.fail = False

    def send_otp(self, email, otp, ttl_minutes):
        if self.fail:
            raise DeliveryError()
        self.sent.append((email, otp))

    def last_code(self, email):
        codes = [otp for to, otp in self.sent if to == email]
        assert codes, f"no OTP sent to {email}"
        return codes[-1]


class FakeIdentityProvider:
    """Stands in for Google: maps authorization codes to profiles."""

    display_name = "Google"

    def __init__(self):
        self.profiles = {}

    def authorization_url(self, state):
        return f"https://idp.test/authorize?state={state}"

    def fetch_profile(self, code):
        if code not in self.profiles:
            raise IdentityProviderError("unknown code")
        return self.profiles[code]

    def add(self, code, **fields):
        self.profiles[code] = ExternalProfile(**fields)


@pytest.fixture
def engine():
    """Fixture for a fresh in-memory SQLite engine per test."""
    engine = create_engine(
        "sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db_session(engine):
    """Provide a SQLAlchemy session for isolated test usage."""
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture
def mailer():
    return RecordingMailer()


@pytest.fixture
def identity_provider():
    return FakeIdentityProvider()


@pytest.fixture
def settings():
    return get_settings()


@pytest.fixture
def client(db_session, mailer, identity_provider, settings):
    """Fixture for FastAPI TestClient with test DB and fake collaborators."""
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_mailer] = lambda: mailer
    app.dependency_overrides[get_identity_provider] = lambda: identity_provider
    app.dependency_overrides[get_settings] = lambda: settings

    with TestClient(app) as c:
        yield c

    app.dependency_overrides.clear()


@pytest.fixture
def user_data():
    """Returns default user data for registration."""
    return {
        "name": "Alice",
        "email": "alice@example.com",
        "password": "alicepassword123"
    }


@pytest.fixture
def second_user_data():
    """Returns a second user's data."""
    return {
        "name": "Bob",
        "email": "bob@example.com",
        "password": "bobpassword456"
    }


def register_and_auth(client, mailer, name, email, password):
    """Helper for registering, verifying the OTP and logging in to get a JWT."""
    r1 = client.post("/auth/register", json={
        "name": name, "email": email, "password": password
    })
    assert r1.status_code == 201
    user_id = r1.json()["userId"]

    r2 = client.post("/auth/verify-otp", json={
        "userId": user_id, "otp": mailer.last_code(email)
    })
    assert r2.status_code == 200

    r3 = client.post("/auth/login", json={"email": email, "password": password})
    assert r3.status_code == 200
    return r3.json()["token"]


@pytest.fixture
def auth_header(client, mailer, user_data):
    """Returns {'Authorization': 'Bearer <token>'} for default user."""
    token = register_and_auth(client, mailer, **user_data)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def second_auth_header(client, mailer, second_user_data):
    """Returns auth header for second user."""
    token = register_and_auth(client, mailer, **second_user_data)
    return {"Authorization": f"Bearer {token}"}
