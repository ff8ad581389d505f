"""API key management blueprint."""

from __future__ import annotations

from http import HTTPStatus

from flask import Blueprint, jsonify, request
from werkzeug.exceptions import BadRequest

from models import db
from models.api_key import API_KEY_SERVICES, ApiKey
from utils.auth import admin_required, session_required
from utils.errors import NotFoundError
from utils.request_validation import clean_string, parse_json_request

api_keys_bp = Blueprint("api_keys", __name__)


def _get_key_or_404(key_id: int) -> ApiKey:
    api_key = db.session.get(ApiKey, key_id)
    if api_key is None:
        raise NotFoundError("API key not found.")
    return api_key


def _service(value) -> str:
    if value is None:
        return "openai"
    service = value.strip().lower() if isinstance(value, str) else ""
    if service not in API_KEY_SERVICES:
        raise BadRequest(f"service must be one of: {', '.join(API_KEY_SERVICES)}.")
    return service


@api_keys_bp.route("", methods=["GET"])
@admin_required
def list_api_keys():
    keys = ApiKey.query.order_by(ApiKey.created_at.desc(), ApiKey.id.desc()).all()
    return jsonify([api_key.to_dict() for api_key in keys])


@api_keys_bp.route("/active/<service>", methods=["GET"])
@session_required
def active_api_key(service: str):
    api_key = ApiKey.active_for(service)
    if api_key is None:
        raise NotFoundError(f"No active key for {service.lower()}.")
    return jsonify(api_key.to_dict())


@api_keys_bp.route("/<int:key_id>", methods=["GET"])
@admin_required
def get_api_key(key_id: int):
    return jsonify(_get_key_or_404(key_id).to_dict())


@api_keys_bp.route("", methods=["POST"])
@admin_required
def create_api_key():
    payload = parse_json_request(request, required_keys=("name", "key"))
    name = clean_string(payload.get("name"))
    key = clean_string(payload.get("key"))
    if not name or not key:
        raise BadRequest("name and key must be non-empty strings.")
    service = _service(payload.get("service"))
    is_active = bool(payload.get("is_active", True))

    api_key = ApiKey(
        name=name,
        service=service,
        key=key,
        model=clean_string(payload.get("model")),
        is_active=is_active,
    )
    if is_active:
        ApiKey.deactivate_service(service)
    db.session.add(api_key)
    db.session.commit()
    return jsonify(api_key.to_dict()), HTTPStatus.CREATED


@api_keys_bp.route("/<int:key_id>", methods=["PUT"])
@admin_required
def update_api_key(key_id: int):
    api_key = _get_key_or_404(key_id)
    payload = parse_json_request(request)

    for field in ("name", "key", "model"):
        if isinstance(payload.get(field), str):
            setattr(api_key, field, payload[field].strip())
    if "service" in payload:
        api_key.service = _service(payload["service"])
    if "is_active" in payload:
        api_key.is_active = bool(payload["is_active"])
    if not api_key.name or not api_key.key:
        raise BadRequest("name and key must not be empty.")

    if api_key.is_active:
        ApiKey.deactivate_service(api_key.service, exclude_id=api_key.id)
    db.session.commit()
    return jsonify(api_key.to_dict())


@api_keys_bp.route("/<int:key_id>/toggle", methods=["PATCH"])
@admin_required
def toggle_api_key(key_id: int):
    api_key = _get_key_or_404(key_id)
    api_key.is_active = not api_key.is_active
    if api_key.is_active:
        ApiKey.deactivate_service(api_key.service, exclude_id=api_key.id)
    db.session.commit()
    return jsonify(api_key.to_dict())


@api_keys_bp.route("/<int:key_id>", methods=["DELETE"])
@admin_required
def delete_api_key(key_id: int):
    db.session.delete(_get_key_or_404(key_id))
    db.session.commit()
    return jsonify({"message": "API key deleted."})
