"""Session token issuance and verification."""

from __future__ import annotations

from dataclasses import dataclass

import jwt
from flask import current_app
from flask_jwt_extended import create_access_token, decode_token
from flask_jwt_extended.exceptions import JWTExtendedException

from models.user import User
from utils.errors import AuthenticationError


@dataclass(frozen=True)
class SessionClaims:
    """The claims carried by a session token."""

    user_id: int
    role: str | None


def issue_session_token(user: User) -> str:
    """Mint a signed access token binding the user id and role.

    The expiry comes from ``JWT_ACCESS_TOKEN_EXPIRES`` (one day) and the
    signature from ``JWT_SECRET_KEY``; rotating the secret invalidates every
    token issued before.
    """

    return create_access_token(
        identity=str(user.id),
        additional_claims={"role": user.role},
    )


def decode_session_token(token: str) -> SessionClaims:
    """Validate a session token and return its claims.

    Bad signatures, expiry, malformed tokens and unexpected payloads all raise
    the same :class:`AuthenticationError`; only the log says which one it was.
    """

    try:
        payload = decode_token(token)
    except jwt.ExpiredSignatureError:
        current_app.logger.info("Rejected session token: expired")
        raise AuthenticationError("InvalidToken", "Invalid or expired token.") from None
    except (jwt.PyJWTError, JWTExtendedException) as error:
        current_app.logger.info("Rejected session token: %s", error.__class__.__name__)
        raise AuthenticationError("InvalidToken", "Invalid or expired token.") from None

    if payload.get("type") != "access":
        current_app.logger.info("Rejected session token: wrong token type")
        raise AuthenticationError("InvalidToken", "Invalid or expired token.")

    try:
        user_id = int(payload["sub"])
    except (KeyError, TypeError, ValueError):
        current_app.logger.info("Rejected session token: malformed subject")
        raise AuthenticationError("InvalidToken", "Invalid or expired token.") from None

    return SessionClaims(user_id=user_id, role=payload.get("role"))
