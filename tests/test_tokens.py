"""Tests for session token issuance and decoding."""

from __future__ import annotations

from datetime import timedelta

import pytest
from flask_jwt_extended import create_access_token, create_refresh_token

from models import db
from models.user import User
from services.tokens import decode_session_token, issue_session_token
from utils.errors import AuthenticationError


def test_round_trip_carries_id_and_role(app, make_user):
    user_id = make_user("token@example.com", role="admin")

    with app.app_context():
        token = issue_session_token(db.session.get(User, user_id))
        claims = decode_session_token(token)

    assert claims.user_id == user_id
    assert claims.role == "admin"


def test_token_signed_with_other_secret_is_rejected(app, make_user):
    user_id = make_user("token@example.com")

    with app.app_context():
        token = issue_session_token(db.session.get(User, user_id))

    app.config["JWT_SECRET_KEY"] = "a-completely-different-secret-value"
    with app.app_context():
        with pytest.raises(AuthenticationError) as excinfo:
            decode_session_token(token)

    assert excinfo.value.reason == "InvalidToken"


def test_expired_token_is_rejected(app):
    with app.app_context():
        token = create_access_token(identity="1", expires_delta=timedelta(seconds=-5))
        with pytest.raises(AuthenticationError) as excinfo:
            decode_session_token(token)

    assert excinfo.value.reason == "InvalidToken"


@pytest.mark.parametrize("token", ["", "garbage", "a.b.c"])
def test_malformed_tokens_are_rejected(app, token):
    with app.app_context():
        with pytest.raises(AuthenticationError):
            decode_session_token(token)


def test_refresh_tokens_are_not_sessions(app):
    with app.app_context():
        token = create_refresh_token(identity="1")
        with pytest.raises(AuthenticationError):
            decode_session_token(token)


def test_non_numeric_subject_is_rejected(app):
    with app.app_context():
        token = create_access_token(identity="not-a-number")
        with pytest.raises(AuthenticationError):
            decode_session_token(token)
