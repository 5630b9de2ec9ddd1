"""Application error hierarchy and path guards.

Services raise these; the HTTP layer turns them into JSON error payloads
(see `nuagebook.routes.api_helpers`). `code` is a short snake_case token
the UI maps to a translated message.
"""
from __future__ import annotations

import os
import re
from typing import Any, Dict, Optional

_RESOURCE_ID_RE = re.compile(r"^[a-zA-Z0-9_-]+$")


class AppError(Exception):
    """Base error carrying an HTTP status and a machine readable code."""

    status_code = 500
    default_code = "internal_error"
    is_operational = True

    def __init__(
        self,
        code: Optional[str] = None,
        message: Optional[str] = None,
        *,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.code = code or self.default_code
        self.message = message
        self.details = details
        super().__init__(message or self.code)

    def __str__(self) -> str:
        return self.code


class NotFoundError(AppError):
    status_code = 404
    default_code = "not_found"

    @classmethod
    def for_resource(cls, resource: str, resource_id: Any) -> "NotFoundError":
        code = f"{resource.lower().replace(' ', '_')}_not_found"
        return cls(code, f"{resource} with id '{resource_id}' not found")


class ValidationError(AppError):
    status_code = 400
    default_code = "validation_error"


class UnauthorizedError(AppError):
    status_code = 401
    default_code = "unauthorized"


class ForbiddenError(AppError):
    status_code = 403
    default_code = "forbidden"


class ConflictError(AppError):
    status_code = 409
    default_code = "conflict"


class DatabaseError(AppError):
    status_code = 500
    default_code = "database_error"
    is_operational = False


class ExternalServiceError(AppError):
    status_code = 503
    default_code = "external_service_error"


def validate_resource_id(value: Any, field: str = "id") -> str:
    """Return `value` when it is a safe identifier (letters, digits, - and _)."""
    if not isinstance(value, str) or not _RESOURCE_ID_RE.match(value):
        raise ValidationError(f"invalid_{field}", f"Invalid {field}: only letters, digits, '-' and '_' are allowed")
    return value


def validate_path(base_dir: str, user_path: str) -> str:
    """Resolve `user_path` inside `base_dir`, refusing anything that escapes it."""
    if not user_path or "\x00" in user_path:
        raise ValidationError("invalid_path", "Invalid path")
    root = os.path.realpath(base_dir)
    candidate = os.path.realpath(os.path.join(root, user_path.lstrip("/\\")))
    if candidate != root and not candidate.startswith(root + os.sep):
        raise ValidationError("path_traversal", "Path escapes its base directory")
    return candidate


__all__ = [
    "AppError",
    "NotFoundError",
    "ValidationError",
    "UnauthorizedError",
    "ForbiddenError",
    "ConflictError",
    "DatabaseError",
    "ExternalServiceError",
    "validate_resource_id",
    "validate_path",
]
