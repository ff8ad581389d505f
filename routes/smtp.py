"""SMTP configuration blueprint (admin only)."""

from __future__ import annotations

from http import HTTPStatus

from flask import Blueprint, current_app, jsonify, request
from werkzeug.exceptions import BadRequest, InternalServerError

from models import db
from models.smtp_config import SmtpConfig
from services import mailer
from utils.auth import admin_required, current_session
from utils.errors import EmailDispatchError, NotFoundError
from utils.request_validation import parse_json_request

smtp_bp = Blueprint("smtp", __name__)

REQUIRED_FIELDS = ("host", "port", "auth_user", "auth_pass", "from_email", "from_name")


def _get_config_or_404(config_id: int) -> SmtpConfig:
    config = db.session.get(SmtpConfig, config_id)
    if config is None:
        raise NotFoundError("SMTP configuration not found.")
    return config


def _fields(payload: dict) -> dict:
    """Flatten ``{auth: {user, pass}}`` and coerce the port."""

    data = dict(payload)
    auth = data.pop("auth", None)
    if isinstance(auth, dict):
        data.setdefault("auth_user", auth.get("user"))
        data.setdefault("auth_pass", auth.get("pass"))
    if "port" in data:
        try:
            data["port"] = int(data["port"])
        except (TypeError, ValueError):
            raise BadRequest("port must be an integer.") from None
    return data


def _send_test(settings: mailer.SmtpSettings, to: str):
    try:
        message_id = mailer.send_test_email(settings, to)
    except EmailDispatchError as error:
        raise InternalServerError(f"Test email failed: {error}") from error
    return jsonify({"message": f"Test email sent to {to}.", "message_id": message_id})


@smtp_bp.route("", methods=["GET"])
@admin_required
def list_configs():
    configs = SmtpConfig.query.order_by(SmtpConfig.created_at.desc(), SmtpConfig.id.desc()).all()
    return jsonify([config.to_dict() for config in configs])


@smtp_bp.route("/active", methods=["GET"])
@admin_required
def active_config():
    config = SmtpConfig.active()
    if config is None:
        raise NotFoundError("No active SMTP configuration.")
    return jsonify(config.to_dict())


@smtp_bp.route("", methods=["POST"])
@admin_required
def create_config():
    data = _fields(parse_json_request(request))
    missing = [field for field in REQUIRED_FIELDS if data.get(field) in (None, "")]
    if missing:
        raise BadRequest(f"Missing required fields: {', '.join(missing)}.")

    is_active = bool(data.get("is_active", True))
    config = SmtpConfig(
        host=data["host"],
        port=data["port"],
        secure=bool(data.get("secure", True)),
        auth_user=data["auth_user"],
        auth_pass=data["auth_pass"],
        from_email=data["from_email"],
        from_name=data["from_name"],
        is_active=is_active,
        created_by=current_session().user_id,
    )
    if is_active:
        SmtpConfig.deactivate_all()
    db.session.add(config)
    db.session.commit()
    current_app.logger.info("SMTP configuration %s created", config.id)
    return jsonify(config.to_dict()), HTTPStatus.CREATED


@smtp_bp.route("/<int:config_id>", methods=["PUT"])
@admin_required
def update_config(config_id: int):
    config = _get_config_or_404(config_id)
    data = _fields(parse_json_request(request))

    for field in ("host", "port", "auth_user", "from_email", "from_name"):
        if data.get(field) not in (None, ""):
            setattr(config, field, data[field])
    # An empty password keeps the stored one.
    if data.get("auth_pass"):
        config.auth_pass = data["auth_pass"]
    if "secure" in data:
        config.secure = bool(data["secure"])
    if "is_active" in data:
        config.is_active = bool(data["is_active"])

    if config.is_active:
        SmtpConfig.deactivate_all(exclude_id=config.id)
    db.session.commit()
    return jsonify(config.to_dict())


@smtp_bp.route("/<int:config_id>", methods=["DELETE"])
@admin_required
def delete_config(config_id: int):
    db.session.delete(_get_config_or_404(config_id))
    db.session.commit()
    return jsonify({"message": "SMTP configuration deleted."})


@smtp_bp.route("/<int:config_id>/toggle", methods=["PATCH"])
@admin_required
def toggle_config(config_id: int):
    config = _get_config_or_404(config_id)
    config.is_active = not config.is_active
    if config.is_active:
        SmtpConfig.deactivate_all(exclude_id=config.id)
    db.session.commit()
    return jsonify(config.to_dict())


@smtp_bp.route("/test-active", methods=["POST"])
@admin_required
def test_active_config():
    """Send a test message through the active configuration."""

    payload = parse_json_request(request, required_keys=("testEmail",))
    config = SmtpConfig.active()
    if config is None:
        raise NotFoundError("No active SMTP configuration.")
    return _send_test(mailer.SmtpSettings.from_config(config), payload["testEmail"])


@smtp_bp.route("/test", methods=["POST"])
@admin_required
def test_config():
    """Send a test message with unsaved settings from the request body."""

    data = _fields(parse_json_request(request, required_keys=("testEmail",)))
    missing = [field for field in REQUIRED_FIELDS if data.get(field) in (None, "")]
    if missing:
        raise BadRequest(f"Missing required fields: {', '.join(missing)}.")

    settings = mailer.SmtpSettings(
        host=data["host"],
        port=data["port"],
        secure=bool(data.get("secure", True)),
        user=data["auth_user"],
        password=data["auth_pass"],
        from_email=data["from_email"],
        from_name=data["from_name"],
    )
    return _send_test(settings, data["testEmail"])
