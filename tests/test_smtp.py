"""Tests for SMTP configuration routes."""

from __future__ import annotations

from flask.testing import FlaskClient

from models import db
from models.smtp_config import SmtpConfig
from services import mailer
from utils.errors import EmailDispatchError

CONFIG = {
    "host": "smtp.example.com",
    "port": 465,
    "secure": True,
    "auth": {"user": "mailer@example.com", "pass": "hunter2"},
    "from_email": "noreply@example.com",
    "from_name": "Docs",
}


def test_create_never_returns_password(client: FlaskClient, make_user, auth_headers):
    admin_id = make_user("admin@example.com", role="admin", name="Admin")
    headers = auth_headers("admin@example.com")

    response = client.post("/api/smtp", json=CONFIG, headers=headers)

    assert response.status_code == 201
    body = response.get_data(as_text=True)
    assert "hunter2" not in body
    config = response.get_json()
    assert config["auth"] == {"user": "mailer@example.com"}
    assert config["created_by"]["id"] == admin_id

    listing = client.get("/api/smtp", headers=headers)
    assert "hunter2" not in listing.get_data(as_text=True)
    active = client.get("/api/smtp/active", headers=headers)
    assert active.get_json()["id"] == config["id"]


def test_create_requires_fields(client: FlaskClient, make_user, auth_headers):
    make_user("admin@example.com", role="admin")

    response = client.post(
        "/api/smtp", json={"host": "smtp.example.com"}, headers=auth_headers("admin@example.com")
    )

    assert response.status_code == 400


def test_only_one_active_config(app, client: FlaskClient, make_user, auth_headers):
    make_user("admin@example.com", role="admin")
    headers = auth_headers("admin@example.com")

    first = client.post("/api/smtp", json=CONFIG, headers=headers).get_json()
    second = client.post("/api/smtp", json={**CONFIG, "host": "smtp2.example.com"}, headers=headers).get_json()

    with app.app_context():
        assert SmtpConfig.query.filter_by(is_active=True).count() == 1
        assert SmtpConfig.active().id == second["id"]

    client.patch(f"/api/smtp/{first['id']}/toggle", headers=headers)
    with app.app_context():
        assert SmtpConfig.active().id == first["id"]
        assert SmtpConfig.query.filter_by(is_active=True).count() == 1


def test_update_keeps_password_when_blank(app, client: FlaskClient, make_user, auth_headers):
    make_user("admin@example.com", role="admin")
    headers = auth_headers("admin@example.com")
    config_id = client.post("/api/smtp", json=CONFIG, headers=headers).get_json()["id"]

    response = client.put(
        f"/api/smtp/{config_id}",
        json={"host": "mail.example.com", "auth": {"user": "other@example.com", "pass": ""}},
        headers=headers,
    )

    assert response.status_code == 200
    with app.app_context():
        config = db.session.get(SmtpConfig, config_id)
        assert config.host == "mail.example.com"
        assert config.auth_user == "other@example.com"
        assert config.auth_pass == "hunter2"

    assert client.delete(f"/api/smtp/{config_id}", headers=headers).status_code == 200
    assert client.get("/api/smtp/active", headers=headers).status_code == 404


def test_smtp_routes_are_admin_only(client: FlaskClient, make_user, auth_headers):
    make_user("user@example.com")

    response = client.get("/api/smtp", headers=auth_headers("user@example.com"))

    assert response.status_code == 403


def test_send_test_with_active_config(client: FlaskClient, make_user, auth_headers, monkeypatch):
    make_user("admin@example.com", role="admin")
    headers = auth_headers("admin@example.com")
    client.post("/api/smtp", json=CONFIG, headers=headers)
    sent = []

    def _deliver(settings, to, subject, html):
        sent.append((settings, to))
        return "<id@example.com>"

    monkeypatch.setattr(mailer, "deliver", _deliver)

    response = client.post(
        "/api/smtp/test-active", json={"testEmail": "me@example.com"}, headers=headers
    )

    assert response.status_code == 200
    settings, to = sent[0]
    assert to == "me@example.com"
    assert settings.host == "smtp.example.com"
    assert settings.password == "hunter2"


def test_send_test_failure_is_reported(client: FlaskClient, make_user, auth_headers, monkeypatch):
    make_user("admin@example.com", role="admin")

    def _deliver(settings, to, subject, html):
        raise EmailDispatchError("535 authentication failed")

    monkeypatch.setattr(mailer, "deliver", _deliver)

    response = client.post(
        "/api/smtp/test",
        json={**CONFIG, "testEmail": "me@example.com"},
        headers=auth_headers("admin@example.com"),
    )

    assert response.status_code == 500
    assert "535 authentication failed" in response.get_json()["detail"]
