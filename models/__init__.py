"""Database initialization and model exports."""

from flask_sqlalchemy import SQLAlchemy


db = SQLAlchemy()

# Import models to register them with SQLAlchemy metadata.
from .user import User  # noqa: E402,F401
from .document import Document  # noqa: E402,F401
from .api_key import ApiKey  # noqa: E402,F401
from .smtp_config import SmtpConfig  # noqa: E402,F401
from .app_setting import AppSetting  # noqa: E402,F401

__all__ = [
    "db",
    "User",
    "Document",
    "ApiKey",
    "SmtpConfig",
    "AppSetting",
]
