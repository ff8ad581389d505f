"""Runtime settings blueprint."""

from flask import Blueprint, current_app, jsonify, request

from services import settings as settings_service
from utils.auth import admin_required
from utils.request_validation import parse_json_request

settings_bp = Blueprint("settings", __name__)


@settings_bp.route("", methods=["GET"])
@admin_required
def get_settings():
    return jsonify(settings_service.public_settings())


@settings_bp.route("", methods=["PUT"])
@admin_required
def update_settings():
    payload = parse_json_request(request, required_keys=("SERVER_URL",))
    server_url = str(payload["SERVER_URL"]).strip().rstrip("/")
    settings_service.set_setting("SERVER_URL", server_url)
    current_app.logger.info("SERVER_URL override set to %s", server_url)
    return jsonify(
        {
            "message": "Settings updated.",
            "settings": settings_service.public_settings(),
        }
    )
