import os

# Must be set before the package creates its engine
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("JWT_SECRET", "test-jwt-secret")
os.environ.setdefault("ENVIRONMENT", "test")

import httpx
import pytest
from fastapi.testclient import TestClient

from dental_booking.config import Settings
from dental_booking.database import Base, SessionLocal, engine
from dental_booking.main import create_app
from dental_booking.recaptcha import RecaptchaVerifier

# Import models so Base.metadata is populated for create_all.
import dental_booking.models  # noqa: F401

ADMIN_TOKEN = "test-admin-token"
RECAPTCHA_SECRET = "test-recaptcha-secret"


@pytest.fixture(autouse=True)
def _tables():
    Base.metadata.create_all(engine)
    yield
    Base.metadata.drop_all(engine)


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


class FakeRecaptcha:
    """Stands in for the siteverify endpoint and records every call"""

    def __init__(self):
        self.calls: list[dict] = []
        self.reply = {"success": True, "score": 0.9}
        self.status_code = 200
        self.error: Exception | None = None

    def handler(self, request: httpx.Request) -> httpx.Response:
        form = dict(httpx.QueryParams(request.content.decode()))
        self.calls.append(form)
        if self.error is not None:
            raise self.error
        return httpx.Response(self.status_code, json=self.reply)

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


@pytest.fixture
def recaptcha():
    return FakeRecaptcha()


@pytest.fixture
def make_client(recaptcha):
    clients = []

    def _make(**overrides):
        values = {
            "environment": "test",
            "require_captcha": True,
            "recaptcha_secret_key": RECAPTCHA_SECRET,
            "rate_limit_enabled": True,
            "rate_limit_max": 50,
            "rate_limit_window_seconds": 900,
            "redis_url": None,
            "admin_auth_strategy": "shared_secret",
            "admin_api_token": ADMIN_TOKEN,
            "jwt_secret": "test-jwt-secret",
            "admin_registration_enabled": True,
        }
        values.update(overrides)
        app = create_app(Settings(**values))
        if app.state.recaptcha_verifier is not None:
            app.state.recaptcha_verifier = RecaptchaVerifier(
                RECAPTCHA_SECRET, transport=recaptcha.transport()
            )
        client = TestClient(app)
        client.__enter__()
        clients.append(client)
        return client

    yield _make

    for client in clients:
        client.__exit__(None, None, None)


@pytest.fixture
def client(make_client):
    return make_client()


@pytest.fixture
def admin_headers():
    return {"Authorization": f"Bearer {ADMIN_TOKEN}"}


@pytest.fixture
def submission():
    return {
        "recaptchaToken": "token-123",
        "name": "Nguyen Van A",
        "email": "Patient@Example.com",
        "phone": "0901234567",
        "date": "2030-05-01",
        "service": "Teeth Cleaning",
        "message": "Morning please",
        "language": "Vietnamese",
    }
