"""Account lifecycle: registration, verification, approval and password reset.

An account moves ``Registered -> Verified -> Active`` (verified and approved)
and leaves through a hard delete. Transitions only ever move forward; there
is no operation that revokes verification or approval.

Email is a best-effort side effect of registration and approval: a failed
send is logged and the transition stands. Password reset is the exception,
because a reset link nobody received is useless, so a failed send clears
the token again and the failure is reported to the caller.
"""

from __future__ import annotations

import secrets
from datetime import datetime
from typing import Iterable

from flask import current_app
from sqlalchemy.exc import IntegrityError
from werkzeug.exceptions import BadRequest

from models import db
from models.document import Document
from models.user import ROLES, User
from services import mailer
from services.tokens import issue_session_token
from utils.errors import (
    AuthorizationError,
    BadCredentialsError,
    ConflictError,
    EmailDispatchError,
    InvalidTokenError,
    NotFoundError,
)
from utils.request_validation import parse_id_list


def _new_token() -> str:
    return secrets.token_hex(current_app.config.get("VERIFICATION_TOKEN_BYTES", 32))


def _get_user_or_404(user_id: int) -> User:
    user = db.session.get(User, user_id)
    if user is None:
        raise NotFoundError("User not found.")
    return user


def find_by_email(email: str) -> User | None:
    return User.query.filter(User.email == email).first()


# ----------------------------------------------------------------------
# Registration and verification
# ----------------------------------------------------------------------


def register(name: str, email: str, password: str, *, link_base: str) -> User:
    """Create an unverified, unapproved account and mail its verification link."""

    if not name or not email or not password:
        raise BadRequest("Name, email and password are required.")

    if find_by_email(email) is not None:
        current_app.logger.info("Registration refused: %s already exists", email)
        raise ConflictError("DuplicateEmail", "This email is already registered.")

    user = User(name=name, email=email, role="user", verification_token=_new_token())
    user.set_password(password)
    db.session.add(user)
    try:
        db.session.commit()
    except IntegrityError:
        # Lost the race against a concurrent registration for the same email.
        db.session.rollback()
        current_app.logger.info("Registration refused: %s already exists", email)
        raise ConflictError("DuplicateEmail", "This email is already registered.") from None

    current_app.logger.info("Registered user %s (%s)", user.id, user.email)

    verification_url = f"{link_base}/verify-email/{user.verification_token}"
    try:
        mailer.send_verification_email(user, verification_url)
    except EmailDispatchError as error:
        current_app.logger.warning(
            "Verification email to %s not sent: %s", user.email, error
        )

    return user


def verify_by_token(token: str) -> User:
    """Consume a verification token.

    The flag flip and the token removal happen in one conditional UPDATE, so a
    token verifies at most once even under concurrent requests.
    """

    user = User.query.filter(User.verification_token == token).first() if token else None
    if user is None:
        raise InvalidTokenError("InvalidToken", "Invalid verification token.")

    updated = (
        User.query.filter(User.id == user.id, User.verification_token == token)
        .update(
            {User.is_verified: True, User.verification_token: None},
            synchronize_session=False,
        )
    )
    db.session.commit()
    if updated != 1:
        raise InvalidTokenError("InvalidToken", "Invalid verification token.")

    db.session.refresh(user)
    current_app.logger.info("User %s verified their email", user.id)
    return user


def manual_verify(user_id: int) -> User:
    """Admin override: mark the email verified without the token."""

    user = _get_user_or_404(user_id)
    if user.is_verified:
        raise ConflictError("AlreadyVerified", "This user is already verified.")

    user.mark_verified()
    db.session.commit()
    current_app.logger.info("User %s verified manually", user.id)
    return user


def approve(user_id: int, *, link_base: str) -> User:
    """Admin approval; mails a best-effort notification."""

    user = _get_user_or_404(user_id)
    if user.is_approved:
        raise ConflictError("AlreadyApproved", "This user is already approved.")

    user.is_approved = True
    db.session.commit()
    current_app.logger.info("User %s approved", user.id)

    try:
        mailer.send_approval_email(user, f"{link_base}/login")
    except EmailDispatchError as error:
        current_app.logger.warning("Approval email to %s not sent: %s", user.email, error)

    return user


# ----------------------------------------------------------------------
# Sessions
# ----------------------------------------------------------------------


def authenticate(email: str, password: str) -> tuple[str, User]:
    """Check credentials and lifecycle state; return a session token and user."""

    if not email or not password:
        raise BadRequest("Email and password are required.")

    user = find_by_email(email)
    if user is None or not user.check_password(password):
        current_app.logger.info("Login failed for %s: bad credentials", email)
        raise BadCredentialsError()

    if not user.is_verified:
        current_app.logger.info("Login refused for %s: not verified", email)
        raise AuthorizationError("NotVerified", "Email verification is required.")

    if not user.is_approved:
        current_app.logger.info("Login refused for %s: not approved", email)
        raise AuthorizationError("NotApproved", "Administrator approval is required.")

    current_app.logger.info("User %s logged in", user.id)
    return issue_session_token(user), user


# ----------------------------------------------------------------------
# Password reset
# ----------------------------------------------------------------------


def request_password_reset(email: str, *, link_base: str) -> None:
    """Issue a one-hour reset token and mail it.

    Each request overwrites the previous token and expiry, so only the most
    recent pair is live.
    """

    if not email:
        raise BadRequest("Email is required.")

    user = find_by_email(email)
    if user is None:
        raise NotFoundError("No user is registered with that email.")

    token = _new_token()
    user.reset_password_token = token
    user.reset_password_expires = datetime.utcnow() + current_app.config["RESET_TOKEN_TTL"]
    db.session.commit()

    try:
        mailer.send_password_reset_email(user, f"{link_base}/reset-password/{token}")
    except EmailDispatchError:
        # Only clear the pair this call wrote; a newer request may own the row now.
        User.query.filter(
            User.id == user.id, User.reset_password_token == token
        ).update(
            {User.reset_password_token: None, User.reset_password_expires: None},
            synchronize_session=False,
        )
        db.session.commit()
        current_app.logger.warning("Password reset email to %s failed; token cleared", email)
        raise

    current_app.logger.info("Password reset requested for user %s", user.id)


def reset_password(token: str, new_password: str) -> User:
    """Redeem a reset token. Unknown and expired tokens fail the same way."""

    user = None
    if token:
        user = User.query.filter(
            User.reset_password_token == token,
            User.reset_password_expires > datetime.utcnow(),
        ).first()
    if user is None:
        raise InvalidTokenError("InvalidOrExpiredToken", "Invalid or expired token.")

    if not new_password:
        raise BadRequest("A new password is required.")

    user.set_password(new_password)
    user.clear_reset_token()
    db.session.commit()
    current_app.logger.info("Password reset completed for user %s", user.id)
    return user


# ----------------------------------------------------------------------
# Administration
# ----------------------------------------------------------------------


def list_users() -> list[User]:
    return User.query.order_by(User.created_at.desc(), User.id.desc()).all()


def change_role(user_id: int, role: str | None) -> User:
    """Set the role. Takes effect on the user's next request."""

    if role not in ROLES:
        raise BadRequest("Role must be one of: user, admin.")

    user = _get_user_or_404(user_id)
    user.role = role
    db.session.commit()
    current_app.logger.info("User %s role changed to %s", user.id, role)
    return user


def delete_user(user_id: int, *, acting_user: User) -> None:
    user = _get_user_or_404(user_id)
    if user.id == acting_user.id:
        raise ConflictError("SelfDeletion", "You cannot delete your own account.")

    _detach_documents([user.id])
    db.session.delete(user)
    db.session.commit()
    current_app.logger.info("User %s deleted by %s", user_id, acting_user.id)


def delete_users(raw_ids: Iterable, *, acting_user: User) -> int:
    """Delete a set of users and return how many rows were removed."""

    ids = parse_id_list(raw_ids)
    if acting_user.id in ids:
        raise ConflictError("SelfDeletion", "You cannot delete your own account.")

    _detach_documents(ids)
    deleted = User.query.filter(User.id.in_(ids)).delete(synchronize_session=False)
    db.session.commit()
    current_app.logger.info("%s users deleted by %s", deleted, acting_user.id)
    return deleted


def _detach_documents(user_ids: list[int]) -> None:
    Document.query.filter(Document.author_id.in_(user_ids)).update(
        {Document.author_id: None}, synchronize_session=False
    )
