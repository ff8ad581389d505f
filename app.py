"""Application factory."""

import logging
import os
import uuid

from flask import Flask, g, jsonify, request
from flask_cors import CORS
from flask_jwt_extended import JWTManager
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_migrate import Migrate
from werkzeug.exceptions import HTTPException

from config import Config
from models import db
from routes.api_keys import api_keys_bp
from routes.auth import auth_bp
from routes.documents import documents_bp
from routes.openai import openai_bp
from routes.settings import settings_bp
from routes.smtp import smtp_bp
from services.bootstrap import ensure_admin
from utils.errors import json_error_response

migrate = Migrate()
jwt = JWTManager()
limiter = Limiter(key_func=get_remote_address)


def create_app(config_class: type[Config] = Config) -> Flask:
    """Create and configure the Flask application."""
    app = Flask(__name__)
    app.config.from_object(config_class)
    app.logger.setLevel(getattr(logging, str(app.config.get("LOG_LEVEL", "INFO")).upper(), logging.INFO))

    # Core subsystems
    db.init_app(app)
    migrate.init_app(app, db)
    jwt.init_app(app)

    # CORS
    CORS(
        app,
        resources={r"/*": {"origins": app.config.get("CORS_ORIGINS", "*")}},
        supports_credentials=True,
    )

    # Rate limiting
    storage_uri = app.config.get("RATELIMIT_STORAGE_URI", "memory://")
    headers_enabled = app.config.get("RATELIMIT_HEADERS_ENABLED", True)
    key_prefix = app.config.get("RATELIMIT_KEY_PREFIX") or str(uuid.uuid4())

    global limiter
    limiter = Limiter(
        key_func=get_remote_address,
        default_limits=[lambda: app.config.get("RATE_LIMIT", "120 per minute")],
        storage_uri=storage_uri,
        headers_enabled=headers_enabled,
        key_prefix=key_prefix,
    )
    limiter.init_app(app)
    app.config["RATELIMIT_KEY_PREFIX"] = key_prefix

    upload_dir = app.config.get("UPLOAD_DIR")
    if upload_dir:
        os.makedirs(upload_dir, exist_ok=True)

    # Blueprints
    app.register_blueprint(auth_bp, url_prefix="/api/auth")
    app.register_blueprint(documents_bp, url_prefix="/api/documents")
    app.register_blueprint(openai_bp, url_prefix="/api/openai")
    app.register_blueprint(api_keys_bp, url_prefix="/api/api-keys")
    app.register_blueprint(smtp_bp, url_prefix="/api/smtp")
    app.register_blueprint(settings_bp, url_prefix="/api/settings")

    @app.route("/", methods=["GET"])
    def index():
        return jsonify({"message": "MarkItDown web API"})

    @app.route("/health", methods=["GET"])
    def health_check():
        return jsonify({"status": "ok"})

    @app.cli.command("bootstrap-admin")
    def bootstrap_admin_command():
        """Create or refresh the administrator from ADMIN_* settings."""
        _bootstrap_admin(app)

    _register_error_handlers(app)

    return app


def _bootstrap_admin(app: Flask):
    return ensure_admin(
        app.config.get("ADMIN_EMAIL"),
        app.config.get("ADMIN_PASSWORD"),
        app.config.get("ADMIN_NAME"),
    )


def _register_error_handlers(app: Flask) -> None:
    """Register JSON error handlers with request IDs."""

    @app.before_request
    def _assign_request_id():
        g.request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())

    @app.after_request
    def _add_request_id_header(response):
        request_id = g.get("request_id")
        if request_id:
            response.headers.setdefault("X-Request-ID", request_id)
        return response

    @app.errorhandler(HTTPException)
    def _handle_http_exception(error: HTTPException):
        return json_error_response(error)

    @app.errorhandler(Exception)
    def _handle_unexpected(error: Exception):
        request_id = g.get("request_id") or str(uuid.uuid4())
        app.logger.exception("Unhandled application error", exc_info=error)
        db.session.rollback()
        payload = {
            "error": "Internal Server Error",
            "detail": "An unexpected error occurred.",
            "reason": None,
            "request_id": request_id,
        }
        response = jsonify(payload)
        response.status_code = 500
        response.headers.setdefault("X-Request-ID", request_id)
        return response


if __name__ == "__main__":
    application = create_app()
    with application.app_context():
        db.create_all()
        _bootstrap_admin(application)
    application.run(host="0.0.0.0", port=int(os.environ.get("PORT", 5000)))
