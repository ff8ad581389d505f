"""Tests for runtime settings."""

from __future__ import annotations

from flask.testing import FlaskClient

from models.user import User


def test_get_settings_shows_effective_values(client: FlaskClient, make_user, auth_headers):
    make_user("admin@example.com", role="admin")

    response = client.get("/api/settings", headers=auth_headers("admin@example.com"))

    assert response.status_code == 200
    assert response.get_json() == {
        "SERVER_URL": "https://docs.example",
        "CONVERSION_API_URL": "http://converter.test",
        "OPENAI_MODEL": "gpt-4o",
    }


def test_server_url_override_changes_links(app, client: FlaskClient, outbox, make_user, auth_headers):
    make_user("admin@example.com", role="admin")
    headers = auth_headers("admin@example.com")

    response = client.put(
        "/api/settings", json={"SERVER_URL": "https://new.example/"}, headers=headers
    )
    assert response.status_code == 200
    assert response.get_json()["settings"]["SERVER_URL"] == "https://new.example"
    assert app.config["SERVER_URL"] == "https://docs.example"

    client.post(
        "/api/auth/register",
        json={"name": "Kim", "email": "kim@example.com", "password": "KimPass123"},
    )
    with app.app_context():
        token = User.query.filter_by(email="kim@example.com").one().verification_token
    assert f"https://new.example/verify-email/{token}" in outbox[-1]["html"]

    verify = client.get(f"/api/auth/verify/{token}")
    assert verify.headers["Location"] == "https://new.example/verification-success"


def test_update_requires_server_url(client: FlaskClient, make_user, auth_headers):
    make_user("admin@example.com", role="admin")

    response = client.put(
        "/api/settings", json={"OTHER": "x"}, headers=auth_headers("admin@example.com")
    )

    assert response.status_code == 400


def test_settings_are_admin_only(client: FlaskClient, make_user, auth_headers):
    make_user("user@example.com")

    response = client.get("/api/settings", headers=auth_headers("user@example.com"))

    assert response.status_code == 403


def test_link_base_falls_back_to_request_host(app, client: FlaskClient, outbox):
    app.config["SERVER_URL"] = ""

    client.post(
        "/api/auth/register",
        json={"name": "Kim", "email": "kim@example.com", "password": "KimPass123"},
    )

    assert "http://localhost/verify-email/" in outbox[-1]["html"]
