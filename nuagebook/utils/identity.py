"""Identity & permission helpers for the admin API."""
from __future__ import annotations

import hmac
import re
from typing import Any, Optional

from flask import has_request_context, request, session

from nuagebook import config as app_config

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def normalize_email(raw: Any) -> Optional[str]:
    if not isinstance(raw, str):
        return None
    cleaned = raw.strip().lower()
    return cleaned or None


def is_valid_email(raw: Any) -> bool:
    email = normalize_email(raw)
    return bool(email and _EMAIL_RE.match(email))


def _bearer_token() -> Optional[str]:
    header = request.headers.get("Authorization", "")
    if not header.lower().startswith("bearer "):
        return None
    token = header[7:].strip()
    return token or None


def is_admin_user() -> bool:
    if not has_request_context():
        return False
    if session.get("is_admin"):
        return True
    expected = app_config.admin_token()
    supplied = _bearer_token()
    if expected and supplied:
        return hmac.compare_digest(expected.encode("utf-8"), supplied.encode("utf-8"))
    return False


class PermissionError(Exception):
    pass


def ensure_admin() -> None:
    if not is_admin_user():
        raise PermissionError("Admin privileges required")


__all__ = [
    "normalize_email",
    "is_valid_email",
    "is_admin_user",
    "ensure_admin",
    "PermissionError",
]
