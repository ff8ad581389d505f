"""Application configuration module."""

import os
from datetime import timedelta
from pathlib import Path


class Config:
    """Base configuration for the Flask application."""

    # Core
    SECRET_KEY = os.getenv("SECRET_KEY", "change-me")
    JWT_SECRET_KEY = os.getenv("JWT_SECRET", os.getenv("JWT_SECRET_KEY", SECRET_KEY))
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(days=1)
    DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///markitdown.db")
    SQLALCHEMY_DATABASE_URI = DATABASE_URL
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    # Public URL used in email links and post-verification redirects
    SERVER_URL = os.getenv("SERVER_URL", "")

    # Uploads
    UPLOAD_DIR = os.getenv("UPLOAD_PATH", str(Path("workspace") / "uploads"))
    MAX_UPLOAD_FILES = 10
    MAX_UPLOAD_FILE_SIZE = int(os.getenv("MAX_UPLOAD_SIZE", 50 * 1024 * 1024))
    # Whole-request cap: every file at its limit plus 1 MB for form fields.
    MAX_CONTENT_LENGTH = MAX_UPLOAD_FILES * MAX_UPLOAD_FILE_SIZE + 1024 * 1024

    # Account lifecycle
    VERIFICATION_TOKEN_BYTES = 32
    RESET_TOKEN_TTL = timedelta(hours=1)

    # Admin bootstrap
    ADMIN_EMAIL = os.getenv("ADMIN_EMAIL")
    ADMIN_PASSWORD = os.getenv("ADMIN_PASSWORD")
    ADMIN_NAME = os.getenv("ADMIN_NAME", "Administrator")

    # Conversion service
    CONVERSION_API_URL = os.getenv("API_URL", "http://localhost:8000")
    CONVERSION_API_KEY = os.getenv("API_KEY", "")
    CONVERSION_TIMEOUT = int(os.getenv("CONVERSION_TIMEOUT", 120))

    # OpenAI
    OPENAI_API_KEY = os.getenv("OPENAI_API_KEY")
    OPENAI_MODEL = os.getenv("OPENAI_MODEL", "gpt-4o")
    OPENAI_BASE_URL = os.getenv("OPENAI_BASE_URL")

    # CORS
    _raw_origins = os.getenv("ORIGINS", "*")
    if _raw_origins.strip() == "*":
        CORS_ORIGINS = "*"
    else:
        CORS_ORIGINS = [o.strip() for o in _raw_origins.split(",") if o.strip()]

    # Rate limiting
    RATE_LIMIT = os.getenv("RATE_LIMIT", "120 per minute")
    RATELIMIT_HEADERS_ENABLED = True
    RATELIMIT_STORAGE_URI = os.getenv("RATELIMIT_STORAGE_URI", "memory://")
    RATELIMIT_KEY_PREFIX = os.getenv("RATELIMIT_KEY_PREFIX", "")
