"""Uploads and object serving.

Routes:
    POST /api/uploads/base64        store a base64 / data URL image
    POST /api/uploads/extract-zip   unpack an HTML bundle (multipart ``file`` or base64 ``data``)
    POST /api/uploads/request-url   presigned direct upload URL
    POST /api/uploads/epub          store an EPUB privately
    GET  /api/epubs                 stored EPUBs (admin)
    POST /api/epubs/extract         build a content skeleton from a stored EPUB (admin)
    POST /api/epubs/extract-avatar-template  map template avatars onto a wizard tab (admin)
    PUT  /objects/upload/<key>      signed direct upload target
    GET  /objects/<key>             serve a stored object
"""
from __future__ import annotations

from typing import Any

from flask import Blueprint, Response, jsonify, request

from nuagebook.routes.api_helpers import _json_error, _require_admin_json, admin_required, json_body
from nuagebook.services import archive_import, object_storage, storyboard_import
from nuagebook.utils.errors import ValidationError
from nuagebook.utils.logging import get_logger

bp = Blueprint("uploads_api", __name__)
LOG = get_logger("routes.uploads")


@bp.route("/api/uploads/base64", methods=["POST"])
def upload_base64():
    payload = json_body()
    result = object_storage.upload_base64(payload.get("data"), payload.get("contentType"), payload.get("filename"))
    return jsonify(result)


def _archive_bytes() -> bytes:
    uploaded = request.files.get("file")
    if uploaded is not None:
        return uploaded.read()
    payload = json_body()
    data, _hint = object_storage.decode_base64_payload(payload.get("data"))
    return data


@bp.route("/api/uploads/extract-zip", methods=["POST"])
def extract_zip():
    return jsonify(archive_import.extract_zip(_archive_bytes()))


@bp.route("/api/uploads/request-url", methods=["POST"])
def request_upload_url():
    payload = json_body()
    result = object_storage.create_upload_url(
        payload.get("name"),
        payload.get("size"),
        payload.get("contentType"),
        base_url=request.host_url,
    )
    return jsonify(result)


@bp.route("/api/uploads/epub", methods=["POST"])
def upload_epub():
    payload = json_body()
    return jsonify(archive_import.store_epub(payload.get("data"), payload.get("filename"))), 201


@bp.route("/api/epubs", methods=["GET"])
@admin_required
def list_epubs():
    return jsonify(archive_import.list_epubs())


@bp.route("/api/epubs/extract", methods=["POST"])
@admin_required
def extract_epub():
    payload = json_body()
    epub_path = payload.get("epubPath")
    book_id = payload.get("bookId")
    if not epub_path or not book_id:
        raise ValidationError("epub_path_required", "epubPath and bookId are required")
    return jsonify(archive_import.extract_stored_epub(epub_path, book_id))


@bp.route("/api/epubs/extract-avatar-template", methods=["POST"])
@admin_required
def extract_avatar_template():
    payload = json_body()
    result = storyboard_import.extract_avatar_template(
        payload.get("bookId"), payload.get("epubPath"), payload.get("tabId"),
    )
    return jsonify(result)


@bp.route("/objects/upload/<path:key>", methods=["PUT"])
def signed_upload(key: str):
    content_type = request.args.get("contentType") or request.content_type or ""
    ok = object_storage.verify_upload_signature(
        key,
        request.args.get("expires"),
        content_type,
        request.args.get("signature") or "",
    )
    if not ok:
        LOG.warning("Rejected signed upload key=%s", key)
        return _json_error("invalid_signature", 403)
    data = request.get_data(cache=False)
    if len(data) > object_storage.MAX_UPLOAD_BYTES:
        raise ValidationError("file_too_large", "Upload exceeds size limit")
    stored = object_storage.save_object(key, data, content_type or None)
    return jsonify({"objectPath": stored}), 201


@bp.route("/objects/<path:key>", methods=["GET"])
def serve_object(key: str):
    if object_storage.is_private_key(key):
        auth = _require_admin_json()
        if auth is not True:
            return auth
    stored = object_storage.read_object(key)
    response = Response(stored.data, mimetype=stored.content_type)
    if not object_storage.is_private_key(key):
        response.headers["Cache-Control"] = "public, max-age=3600"
    return response


def register_uploads_api(app: Any) -> None:
    if not getattr(app, "_nb_uploads_bp", None):
        app.register_blueprint(bp)
        setattr(app, "_nb_uploads_bp", bp)


__all__ = ["register_uploads_api", "bp"]
