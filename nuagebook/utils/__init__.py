"""Utility helpers (identity, errors, text formatting)."""
from .identity import (
    normalize_email,
    is_valid_email,
    is_admin_user,
    ensure_admin,
    PermissionError,
)
from .errors import (
    AppError,
    NotFoundError,
    ValidationError,
    UnauthorizedError,
    ForbiddenError,
    ConflictError,
    DatabaseError,
    ExternalServiceError,
    validate_resource_id,
    validate_path,
)
from .text import slugify, to_money, format_price

__all__ = [
    "normalize_email",
    "is_valid_email",
    "is_admin_user",
    "ensure_admin",
    "PermissionError",
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
    "slugify",
    "to_money",
    "format_price",
]
