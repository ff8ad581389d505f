"""Error taxonomy shared by routes and services."""

from __future__ import annotations

import json
import uuid

from flask import g
from werkzeug.exceptions import (
    BadGateway,
    BadRequest,
    Forbidden,
    HTTPException,
    InternalServerError,
    NotFound,
    Unauthorized,
)


class AuthenticationError(Unauthorized):
    """Missing, invalid or expired session token, or an unresolvable user."""

    def __init__(self, reason: str, description: str | None = None):
        super().__init__(description or "Authentication failed.")
        self.reason = reason


class AuthorizationError(Forbidden):
    """Authenticated, but not allowed: unverified, unapproved or wrong role."""

    def __init__(self, reason: str, description: str | None = None):
        super().__init__(description or "You are not allowed to do this.")
        self.reason = reason


class NotFoundError(NotFound):
    def __init__(self, description: str | None = None):
        super().__init__(description)
        self.reason = "NotFound"


class ConflictError(BadRequest):
    """Request conflicts with the current state of the account."""

    def __init__(self, reason: str, description: str | None = None):
        super().__init__(description)
        self.reason = reason


class InvalidTokenError(BadRequest):
    """A one-shot verification or reset token did not match."""

    def __init__(self, reason: str, description: str | None = None):
        super().__init__(description or "The token is invalid.")
        self.reason = reason


class BadCredentialsError(BadRequest):
    reason = "BadCredentials"

    def __init__(self):
        super().__init__("Invalid email or password.")


class DispatchFailedError(InternalServerError):
    reason = "EmailDispatchFailed"

    def __init__(self):
        super().__init__("The email could not be sent.")


class UpstreamError(BadGateway):
    reason = "ConversionFailed"


class EmailDispatchError(Exception):
    """Raised by the mailer when a message could not be handed to SMTP."""


class ConversionError(Exception):
    """Raised when the conversion service or OCR endpoint fails."""


def json_error_response(error: HTTPException):
    """Render an HTTP exception as the JSON error payload with a request id."""

    request_id = g.get("request_id") or str(uuid.uuid4())
    response = error.get_response()
    payload = {
        "error": getattr(error, "name", "Error"),
        "detail": error.description,
        "reason": getattr(error, "reason", None),
        "request_id": request_id,
    }
    response.data = json.dumps(payload)
    response.content_type = "application/json"
    response.headers.setdefault("X-Request-ID", request_id)
    return response
