"""Tests for the session and admin gates on protected routes."""

from __future__ import annotations

from flask.testing import FlaskClient
from flask_jwt_extended import create_access_token

from models import db
from models.user import User


def _token_for(app, user_id: int, role: str = "user") -> dict[str, str]:
    with app.app_context():
        token = create_access_token(identity=str(user_id), additional_claims={"role": role})
    return {"Authorization": f"Bearer {token}"}


def test_missing_token(client: FlaskClient):
    response = client.get("/api/auth/me")

    assert response.status_code == 401
    assert response.get_json()["reason"] == "NoToken"


def test_non_bearer_header_counts_as_missing(client: FlaskClient):
    response = client.get("/api/auth/me", headers={"Authorization": "Basic abc"})

    assert response.get_json()["reason"] == "NoToken"


def test_garbage_token(client: FlaskClient):
    response = client.get("/api/auth/me", headers={"Authorization": "Bearer nonsense"})

    assert response.status_code == 401
    assert response.get_json()["reason"] == "InvalidToken"


def test_token_for_deleted_user(app, client: FlaskClient, make_user):
    user_id = make_user("gone@example.com")
    headers = _token_for(app, user_id)
    with app.app_context():
        db.session.delete(db.session.get(User, user_id))
        db.session.commit()

    response = client.get("/api/auth/me", headers=headers)

    assert response.status_code == 401
    assert response.get_json()["reason"] == "UserNotFound"


def test_unverified_user_with_token(app, client: FlaskClient, make_user):
    user_id = make_user("new@example.com", verified=False)

    response = client.get("/api/auth/me", headers=_token_for(app, user_id))

    assert response.status_code == 403
    assert response.get_json()["reason"] == "EmailNotVerified"


def test_unapproved_user_with_token(app, client: FlaskClient, make_user):
    user_id = make_user("new@example.com", approved=False)

    response = client.get("/api/auth/me", headers=_token_for(app, user_id))

    assert response.status_code == 403
    assert response.get_json()["reason"] == "NotApproved"


def test_admin_route_rejects_regular_user(client: FlaskClient, make_user, auth_headers):
    make_user("user@example.com")

    response = client.get("/api/auth/users", headers=auth_headers("user@example.com"))

    assert response.status_code == 403
    assert response.get_json()["reason"] == "Forbidden"


def test_admin_route_rejects_missing_token(client: FlaskClient):
    response = client.get("/api/auth/users")

    assert response.status_code == 401
    assert response.get_json()["reason"] == "NoToken"


def test_role_claim_alone_does_not_grant_admin(app, client: FlaskClient, make_user):
    user_id = make_user("user@example.com")

    response = client.get("/api/auth/users", headers=_token_for(app, user_id, role="admin"))

    assert response.status_code == 403


def test_demoted_admin_loses_access_with_old_token(
    client: FlaskClient, make_user, auth_headers
):
    make_user("boss@example.com", role="admin")
    demoted_id = make_user("former@example.com", role="admin")
    boss = auth_headers("boss@example.com")
    former = auth_headers("former@example.com")

    assert client.get("/api/auth/users", headers=former).status_code == 200

    response = client.put(
        f"/api/auth/users/{demoted_id}/role", json={"role": "user"}, headers=boss
    )
    assert response.status_code == 200
    assert response.get_json()["user"]["role"] == "user"

    assert client.get("/api/auth/users", headers=former).status_code == 403
    assert client.get("/api/auth/me", headers=former).status_code == 200


def test_promoted_user_gains_access_with_old_token(
    client: FlaskClient, make_user, auth_headers
):
    make_user("boss@example.com", role="admin")
    user_id = make_user("user@example.com")
    boss = auth_headers("boss@example.com")
    user = auth_headers("user@example.com")

    client.put(f"/api/auth/users/{user_id}/role", json={"role": "admin"}, headers=boss)

    assert client.get("/api/auth/users", headers=user).status_code == 200


def test_invalid_role_is_rejected(client: FlaskClient, make_user, auth_headers):
    make_user("boss@example.com", role="admin")
    user_id = make_user("user@example.com")

    response = client.put(
        f"/api/auth/users/{user_id}/role",
        json={"role": "superuser"},
        headers=auth_headers("boss@example.com"),
    )

    assert response.status_code == 400
