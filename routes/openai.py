"""OpenAI blueprint: ad hoc OCR and key checks."""

from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request
from werkzeug.exceptions import BadRequest

from services.ocr import OcrClient
from utils.auth import session_required
from utils.errors import ConversionError, UpstreamError
from utils.request_validation import parse_json_request

openai_bp = Blueprint("openai", __name__)


def _client(api_key: str, model: str | None = None) -> OcrClient:
    return OcrClient(
        api_key,
        model or current_app.config["OPENAI_MODEL"],
        current_app.config.get("OPENAI_BASE_URL"),
    )


@openai_bp.route("/ocr", methods=["POST"])
@session_required
def ocr():
    """Extract markdown from one uploaded image."""

    image = request.files.get("image")
    if image is None or not image.filename:
        raise BadRequest("An image file is required.")
    api_key = request.form.get("openai_api_key")
    if not api_key:
        raise BadRequest("openai_api_key is required.")

    client = _client(api_key, request.form.get("openai_model"))
    try:
        markdown, usage, _elapsed = client.extract_markdown(
            image.read(), image.mimetype or "image/png"
        )
    except ConversionError as error:
        raise UpstreamError(f"OCR failed: {error}") from error

    return jsonify({"result": markdown, "model": client.model, "usage": usage})


@openai_bp.route("/models", methods=["POST"])
@session_required
def list_models():
    payload = parse_json_request(request, required_keys=("openai_api_key",))
    try:
        models = _client(payload["openai_api_key"]).list_models()
    except ConversionError as error:
        raise UpstreamError(f"Could not list models: {error}") from error
    return jsonify({"data": models})


@openai_bp.route("/test", methods=["POST"])
@session_required
def test_key():
    payload = parse_json_request(request, required_keys=("openai_api_key",))
    client = _client(payload["openai_api_key"], payload.get("openai_model"))
    try:
        completion = client.ping()
    except ConversionError as error:
        raise UpstreamError(f"OpenAI test failed: {error}") from error

    choices = completion.get("choices") or [{}]
    return jsonify(
        {
            "model": completion.get("model", client.model),
            "message": (choices[0].get("message") or {}).get("content"),
            "usage": completion.get("usage"),
        }
    )
