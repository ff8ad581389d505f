"""Documents blueprint: conversion uploads, browsing and downloads."""

from __future__ import annotations

import time
import uuid
from pathlib import Path

from flask import Blueprint, current_app, jsonify, request, send_file
from werkzeug.datastructures import FileStorage
from werkzeug.exceptions import BadRequest, Forbidden, RequestEntityTooLarge

from models import db
from models.api_key import ApiKey
from models.document import Document
from services.converter import ConversionClient
from services.ocr import OcrClient
from storage import LocalStorage
from utils.auth import admin_required, current_session, session_required
from utils.errors import ConversionError, NotFoundError, UpstreamError
from utils.request_validation import clean_string, parse_id_list, parse_json_request

documents_bp = Blueprint("documents", __name__)


def _storage() -> LocalStorage:
    return LocalStorage(current_app.config["UPLOAD_DIR"])


def _build_unique_filename(original: str) -> str:
    return f"{int(time.time() * 1000)}-{uuid.uuid4().hex[:12]}{Path(original).suffix}"


def _get_document_or_404(document_id: int) -> Document:
    document = db.session.get(Document, document_id)
    if document is None:
        raise NotFoundError("Document not found.")
    return document


def _get_accessible_document(document_id: int) -> Document:
    document = _get_document_or_404(document_id)
    session = current_session()
    if not session.is_admin and not document.is_owned_by(session.user):
        raise Forbidden("You do not have access to this document.")
    return document


def _openai_credentials() -> tuple[str | None, str]:
    """Pick the OpenAI key/model: request form, active stored key, then config."""

    config = current_app.config
    key = request.form.get("openai_api_key") or None
    model = request.form.get("openai_model") or None
    if key is None:
        stored = ApiKey.active_for("openai")
        if stored is not None:
            key = stored.key
            model = model or stored.model or None
    if key is None:
        key = config.get("OPENAI_API_KEY")
    return key, model or config["OPENAI_MODEL"]


def _convert_upload(file: FileStorage, stored_path: str, api_key: str | None, model: str) -> dict:
    """Convert one stored upload; images go through OCR first when possible."""

    storage = _storage()
    content_type = file.mimetype or "application/octet-stream"
    size = storage.size(stored_path)

    if content_type.startswith("image/") and api_key:
        try:
            with storage.open(stored_path) as handle:
                image = handle.read()
            ocr = OcrClient(api_key, model, current_app.config.get("OPENAI_BASE_URL"))
            markdown, _usage, elapsed = ocr.extract_markdown(image, content_type)
            current_app.logger.info("OCR converted %s", file.filename)
            return {
                "markdown_content": markdown,
                "content_type": content_type,
                "conversion_method": "openai_ocr",
                "processing_time": elapsed,
                "file_size": size,
                "original_url": None,
            }
        except ConversionError as error:
            current_app.logger.warning(
                "OCR failed for %s, falling back to the conversion service: %s",
                file.filename,
                error,
            )

    client = ConversionClient.from_app()
    with storage.open(stored_path) as handle:
        result = client.convert_file(
            handle,
            file.filename or stored_path,
            content_type,
            openai_api_key=api_key,
            openai_model=model if api_key else None,
        )
    return {
        "markdown_content": result.markdown,
        "content_type": result.content_type,
        "conversion_method": result.conversion_method,
        "processing_time": result.processing_time,
        "file_size": size,
        "original_url": result.original_url,
    }


@documents_bp.route("", methods=["GET"])
@session_required
def list_documents():
    """Admins see every document; users see their own."""

    session = current_session()
    query = Document.query
    if not session.is_admin:
        query = query.filter(Document.author_id == session.user_id)
    documents = query.order_by(Document.created_at.desc(), Document.id.desc()).all()
    return jsonify([document.to_dict() for document in documents])


@documents_bp.route("/all", methods=["GET"])
@admin_required
def list_all_documents():
    documents = Document.query.order_by(Document.created_at.desc(), Document.id.desc()).all()
    return jsonify([document.to_dict(include_author=True) for document in documents])


@documents_bp.route("/my", methods=["GET"])
@session_required
def list_my_documents():
    documents = (
        Document.query.filter(Document.author_id == current_session().user_id)
        .order_by(Document.created_at.desc(), Document.id.desc())
        .all()
    )
    return jsonify([document.to_dict() for document in documents])


@documents_bp.route("/<int:document_id>", methods=["GET"])
@session_required
def get_document(document_id: int):
    return jsonify(_get_accessible_document(document_id).to_dict())


@documents_bp.route("/<int:document_id>/download", methods=["GET"])
@session_required
def download_document(document_id: int):
    """Stream the original file back as an attachment."""

    document = _get_accessible_document(document_id)
    storage = _storage()
    if not storage.exists(document.file_path):
        raise NotFoundError("Stored file could not be found.")

    return send_file(
        storage.absolute_path(document.file_path),
        mimetype=document.content_type or "application/octet-stream",
        as_attachment=True,
        download_name=document.original_name,
    )


@documents_bp.route("/<int:document_id>/duplicate", methods=["POST"])
@session_required
def duplicate_document(document_id: int):
    document = _get_accessible_document(document_id)
    storage = _storage()

    new_file_name = f"duplicate-{_build_unique_filename(document.file_name)}"
    new_path = new_file_name
    if storage.exists(document.file_path):
        new_path = storage.copy(document.file_path, new_file_name)

    duplicate = Document(
        author_id=current_session().user_id,
        original_name=f"Copy of {document.original_name}",
        file_name=new_file_name,
        file_path=new_path,
        file_size=document.file_size,
        content_type=document.content_type,
        markdown_content=document.markdown_content,
        conversion_method=document.conversion_method,
        processing_time=document.processing_time,
        original_url=document.original_url,
    )
    db.session.add(duplicate)
    db.session.commit()
    return jsonify(duplicate.to_dict()), 201


@documents_bp.route("/upload", methods=["POST"])
@session_required
def upload_documents():
    """Convert up to ``MAX_UPLOAD_FILES`` uploaded files to markdown."""

    files = [f for f in request.files.getlist("files") if isinstance(f, FileStorage) and f.filename]
    if not files:
        raise BadRequest("No files were provided.")
    limit = current_app.config.get("MAX_UPLOAD_FILES", 10)
    if len(files) > limit:
        raise BadRequest(f"At most {limit} files can be uploaded at once.")

    api_key, model = _openai_credentials()
    storage = _storage()
    author_id = current_session().user_id
    max_size = current_app.config["MAX_UPLOAD_FILE_SIZE"]
    documents = []
    saved_paths = []

    try:
        for file in files:
            stored_name = _build_unique_filename(file.filename)
            stored_path = storage.save(file, stored_name)
            saved_paths.append(stored_path)
            if storage.size(stored_path) > max_size:
                raise RequestEntityTooLarge(
                    f"{file.filename} is larger than {max_size} bytes."
                )

            try:
                converted = _convert_upload(file, stored_path, api_key, model)
            except ConversionError as error:
                raise UpstreamError(f"Conversion failed for {file.filename}: {error}") from error

            document = Document(
                author_id=author_id,
                original_name=file.filename,
                file_name=stored_name,
                file_path=stored_path,
                **converted,
            )
            db.session.add(document)
            documents.append(document)

        db.session.commit()
    except Exception:
        # The batch is all or nothing; no stored file outlives its row.
        db.session.rollback()
        for path in saved_paths:
            storage.delete(path)
        raise

    current_app.logger.info("User %s converted %s files", author_id, len(documents))
    return jsonify([document.to_dict() for document in documents]), 201


@documents_bp.route("/convert-url", methods=["POST"])
@session_required
def convert_url():
    url = clean_string(parse_json_request(request).get("url"))
    if not url:
        raise BadRequest("A URL is required.")

    config = current_app.config
    api_key = config.get("OPENAI_API_KEY")
    try:
        result = ConversionClient.from_app().convert_url(
            url,
            openai_api_key=api_key,
            openai_model=config["OPENAI_MODEL"] if api_key else None,
        )
    except ConversionError as error:
        raise UpstreamError(f"Conversion failed for {url}: {error}") from error

    file_name = f"url-{int(time.time() * 1000)}.md"
    stored_path = _storage().write_text(file_name, result.markdown)

    document = Document(
        author_id=current_session().user_id,
        original_name=url,
        file_name=file_name,
        file_path=stored_path,
        file_size=result.file_size,
        content_type=result.content_type,
        markdown_content=result.markdown,
        conversion_method=result.conversion_method,
        processing_time=result.processing_time,
        original_url=url,
    )
    db.session.add(document)
    db.session.commit()
    return jsonify(document.to_dict()), 201


@documents_bp.route("/<int:document_id>", methods=["DELETE"])
@session_required
def delete_document(document_id: int):
    document = _get_accessible_document(document_id)
    _storage().delete(document.file_path)
    db.session.delete(document)
    db.session.commit()
    return jsonify({"message": "Document deleted."})


@documents_bp.route("", methods=["DELETE"])
@session_required
def delete_documents():
    """Bulk delete; non-admins can only remove their own documents."""

    ids = parse_id_list(parse_json_request(request).get("ids"))

    session = current_session()
    if not session.is_admin:
        owned = Document.query.filter(
            Document.id.in_(ids), Document.author_id == session.user_id
        ).all()
        ids = [document.id for document in owned]
        if not ids:
            raise Forbidden("None of these documents can be deleted by you.")

    storage = _storage()
    results = {"success": 0, "failed": 0, "errors": []}
    for document_id in ids:
        document = db.session.get(Document, document_id)
        if document is None:
            results["failed"] += 1
            results["errors"].append({"id": document_id, "message": "Document not found."})
            continue
        storage.delete(document.file_path)
        db.session.delete(document)
        results["success"] += 1

    db.session.commit()
    results["message"] = f"{results['success']} documents deleted, {results['failed']} failed."
    return jsonify(results)
