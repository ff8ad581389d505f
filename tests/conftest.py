"""Shared pytest fixtures for the application tests."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest
from flask import Flask
from flask.testing import FlaskClient

ROOT_DIR = Path(__file__).resolve().parent.parent
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from app import create_app  # noqa: E402
from config import Config  # noqa: E402
from models import db  # noqa: E402
from models.user import User  # noqa: E402
from services import mailer  # noqa: E402
from utils.errors import EmailDispatchError  # noqa: E402


class _BaseTestConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SECRET_KEY = "test-secret"
    JWT_SECRET_KEY = "test-jwt-secret-with-enough-length"
    RATE_LIMIT = "1000 per minute"
    SERVER_URL = "https://docs.example"
    CONVERSION_API_URL = "http://converter.test"
    CONVERSION_API_KEY = "converter-key"
    OPENAI_API_KEY = None
    OPENAI_MODEL = "gpt-4o"
    OPENAI_BASE_URL = None
    ADMIN_EMAIL = None
    ADMIN_PASSWORD = None


@pytest.fixture()
def app(tmp_path) -> Flask:
    """Create a Flask application instance for tests."""

    upload_dir = tmp_path / "uploads"

    class TestConfig(_BaseTestConfig):
        UPLOAD_DIR = str(upload_dir)

    application = create_app(TestConfig)

    with application.app_context():
        db.create_all()

    yield application

    with application.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(app: Flask) -> FlaskClient:
    """Return a test client for the Flask app."""

    return app.test_client()


@pytest.fixture()
def outbox(monkeypatch) -> list[dict]:
    """Capture outgoing mail instead of talking to an SMTP server."""

    sent: list[dict] = []

    def _record(to, subject, html):
        sent.append({"to": to, "subject": subject, "html": html})
        return f"<test-{len(sent)}@docs.example>"

    monkeypatch.setattr(mailer, "send_email", _record)
    return sent


@pytest.fixture()
def failing_mailer(monkeypatch) -> list[str]:
    """Make every send fail; records the recipients that were attempted."""

    attempts: list[str] = []

    def _fail(to, subject, html):
        attempts.append(to)
        raise EmailDispatchError("connection refused")

    monkeypatch.setattr(mailer, "send_email", _fail)
    return attempts


DEFAULT_PASSWORD = "Passw0rd!"


@pytest.fixture()
def make_user(app: Flask):
    """Persist a user and return its id."""

    def _create_user(
        email: str,
        password: str = DEFAULT_PASSWORD,
        *,
        name: str = "Test User",
        role: str = "user",
        verified: bool = True,
        approved: bool = True,
        verification_token: str | None = None,
    ) -> int:
        with app.app_context():
            user = User(
                name=name,
                email=email,
                role=role,
                is_verified=verified,
                is_approved=approved,
                verification_token=verification_token,
            )
            user.set_password(password)
            db.session.add(user)
            db.session.commit()
            return user.id

    return _create_user


@pytest.fixture()
def auth_headers(client: FlaskClient):
    """Log in through the API and return the Authorization header."""

    def _auth_headers(email: str, password: str = DEFAULT_PASSWORD) -> dict[str, str]:
        response = client.post("/api/auth/login", json={"email": email, "password": password})
        assert response.status_code == 200, response.get_json()
        return {"Authorization": f"Bearer {response.get_json()['token']}"}

    return _auth_headers
