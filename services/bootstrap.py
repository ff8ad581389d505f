"""Create or refresh the configured administrator account."""

from __future__ import annotations

from flask import current_app

from models import db
from models.user import User


def ensure_admin(email: str | None, password: str | None, name: str | None = None) -> User | None:
    """Make sure an active admin exists for ``email``.

    Existing accounts are promoted, verified and approved; the password is
    only rehashed when it no longer matches. Returns ``None`` when no admin
    credentials are configured.
    """

    if not email or not password:
        current_app.logger.info("No admin credentials configured; skipping bootstrap")
        return None

    admin = User.query.filter_by(email=email).first()
    if admin is None:
        admin = User(email=email, name=name or "Administrator")
        admin.set_password(password)
        db.session.add(admin)
        action = "created"
    else:
        if name:
            admin.name = name
        if not admin.check_password(password):
            admin.set_password(password)
        action = "updated"

    admin.role = "admin"
    admin.is_approved = True
    admin.mark_verified()
    db.session.commit()
    current_app.logger.info("Admin account %s: %s", action, email)
    return admin
