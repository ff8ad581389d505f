"""Access-control decorators for protected routes."""

from __future__ import annotations

from dataclasses import dataclass
from functools import wraps

from flask import current_app, g, request

from models import db
from models.user import User
from services.tokens import decode_session_token
from utils.errors import AuthenticationError, AuthorizationError


@dataclass(frozen=True)
class SessionContext:
    """The authenticated caller of the current request.

    ``user`` is the row reloaded for this request and is authoritative for
    role, name and email. ``token_role`` is whatever the token claimed at
    issuance and is kept for logging only.
    """

    user: User
    token_role: str | None

    @property
    def user_id(self) -> int:
        return self.user.id

    @property
    def is_admin(self) -> bool:
        return self.user.is_admin


def _bearer_token() -> str | None:
    header = request.headers.get("Authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def authenticate_request() -> SessionContext:
    """Resolve the request's bearer token to a live, active user."""

    token = _bearer_token()
    if token is None:
        current_app.logger.info("Auth rejected for %s: no token", request.path)
        raise AuthenticationError("NoToken", "No authentication token provided.")

    claims = decode_session_token(token)

    user = db.session.get(User, claims.user_id)
    if user is None:
        current_app.logger.info(
            "Auth rejected for %s: user %s no longer exists", request.path, claims.user_id
        )
        raise AuthenticationError("UserNotFound", "Invalid token.")

    if not user.is_verified:
        current_app.logger.info("Auth rejected for user %s: email not verified", user.id)
        raise AuthorizationError("EmailNotVerified", "Email verification is required.")

    if not user.is_approved:
        current_app.logger.info("Auth rejected for user %s: not approved", user.id)
        raise AuthorizationError("NotApproved", "Administrator approval is required.")

    return SessionContext(user=user, token_role=claims.role)


def current_session() -> SessionContext:
    """Return the session attached by :func:`session_required`."""

    context = g.get("session_context")
    if context is None:
        raise RuntimeError("current_session() called outside a protected route.")
    return context


def session_required(view):
    """Require a valid token for a verified and approved user."""

    @wraps(view)
    def wrapper(*args, **kwargs):
        g.session_context = authenticate_request()
        return view(*args, **kwargs)

    return wrapper


def admin_required(view):
    """Require :func:`session_required` plus the live ``admin`` role."""

    @wraps(view)
    def wrapper(*args, **kwargs):
        context = authenticate_request()
        if not context.is_admin:
            current_app.logger.info(
                "Admin route %s refused for user %s (token role %s)",
                request.path,
                context.user_id,
                context.token_role,
            )
            raise AuthorizationError("Forbidden", "Administrator privileges required.")
        g.session_context = context
        return view(*args, **kwargs)

    return wrapper
