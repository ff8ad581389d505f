"""Admin-editable runtime settings."""

from datetime import datetime

from . import db


class AppSetting(db.Model):
    """A key/value override edited from the admin settings page."""

    __tablename__ = "app_settings"

    key = db.Column(db.String(64), primary_key=True)
    value = db.Column(db.Text, nullable=False)
    updated_at = db.Column(
        db.DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow
    )
