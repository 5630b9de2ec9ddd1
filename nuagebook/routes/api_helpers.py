"""Shared JSON helpers for the admin API blueprints.

Error payloads are ``{"error": code, "message": ..., "details": ...}``;
`register_error_handlers` converts service `AppError`s and unexpected
exceptions into that shape.
"""
from __future__ import annotations

from functools import wraps
from typing import Any, Dict, Optional

from flask import jsonify, request
from flask_babel import gettext as _
from flask_babel import lazy_gettext as _l
from werkzeug.exceptions import HTTPException

from nuagebook.utils import PermissionError, ensure_admin
from nuagebook.utils.errors import AppError, ValidationError
from nuagebook.utils.logging import get_logger

LOG = get_logger("api")

_ERROR_MESSAGES = {
    "permission_denied": _l("Administrator access is required."),
    "internal_error": _l("An unexpected error occurred."),
    "invalid_json": _l("Request body must be a JSON object."),
    "not_found": _l("Resource not found."),
    "book_not_found": _l("Book not found."),
    "customer_not_found": _l("Customer not found."),
    "order_not_found": _l("Order not found."),
    "menu_not_found": _l("Menu not found."),
    "printer_not_found": _l("Printer not found."),
    "shipping_zone_not_found": _l("Shipping zone not found."),
    "setting_not_found": _l("Setting not found."),
    "element_not_found": _l("Element not found."),
    "tab_not_found": _l("Wizard tab not found."),
    "object_not_found": _l("File not found."),
    "no_printer": _l("No printer serves this country."),
    "book_exists": _l("A book with this id already exists."),
    "order_exists": _l("An order with this id already exists."),
    "menu_exists": _l("A menu with this id already exists."),
    "printer_exists": _l("A printer with this id already exists."),
    "shipping_zone_exists": _l("A shipping zone with this id already exists."),
    "customer_email_exists": _l("Another customer already uses this email."),
    "name_required": _l("Name is required."),
    "label_required": _l("Label is required."),
    "invalid_email": _l("Enter a valid email address."),
    "items_required": _l("At least one item is required."),
    "invalid_status": _l("Unknown order status."),
    "invalid_category": _l("Unknown book category."),
    "invalid_archive": _l("The file is not a valid ZIP archive."),
    "invalid_base64": _l("The file content is not valid base64."),
    "file_too_large": _l("The file is too large."),
    "data_required": _l("File data is required."),
    "no_pages": _l("This book has no HTML pages to render."),
    "invalid_signature": _l("The upload link is invalid or has expired."),
    "upload_signing_unavailable": _l("Direct uploads are not configured."),
    "invalid_export_type": _l("This file is not a supported export."),
}


def _error_message_for(code: str) -> Optional[str]:
    message = _ERROR_MESSAGES.get(code)
    return str(message) if message is not None else None


def _json_error(
    code: str,
    status: int = 400,
    *,
    message: Optional[str] = None,
    details: Optional[Dict[str, Any]] = None,
):
    payload: Dict[str, Any] = {"error": code}
    final_message = message or _error_message_for(code)
    if final_message:
        payload["message"] = final_message
    if details is not None:
        payload["details"] = details
    return jsonify(payload), status


def _require_admin_json():
    try:
        ensure_admin()
    except PermissionError:
        return _json_error("permission_denied", 403)
    return True


def admin_required(view):
    """Reject non-admin callers with a 403 JSON error."""

    @wraps(view)
    def wrapper(*args, **kwargs):
        auth = _require_admin_json()
        if auth is not True:
            return auth
        return view(*args, **kwargs)

    return wrapper


def json_body() -> Dict[str, Any]:
    payload = request.get_json(silent=True)
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise ValidationError("invalid_json", _("Request body must be a JSON object."))
    return payload


def no_content():
    return "", 204


def register_error_handlers(app: Any) -> None:
    if getattr(app, "_nb_error_handlers", False):
        return

    @app.errorhandler(AppError)
    def _handle_app_error(exc: AppError):
        if not exc.is_operational:
            LOG.error("Non-operational error %s: %s", exc.code, exc.message)
        return _json_error(exc.code, exc.status_code, message=exc.message, details=exc.details)

    @app.errorhandler(Exception)
    def _handle_unexpected(exc: Exception):
        if isinstance(exc, HTTPException):
            return _json_error(exc.name.lower().replace(" ", "_"), exc.code or 500, message=exc.description)
        LOG.exception("Unhandled error on %s %s", request.method, request.path)
        return _json_error("internal_error", 500)

    setattr(app, "_nb_error_handlers", True)


__all__ = [
    "_json_error",
    "_require_admin_json",
    "admin_required",
    "json_body",
    "no_content",
    "register_error_handlers",
]
