"""Application configuration accessors.

Centralizes environment variable parsing & defaults. Callers always go
through these helpers instead of reading os.environ directly so tests can
monkeypatch the environment and see the change on the next call.
"""
from __future__ import annotations

import os
from functools import lru_cache

APP_NAME = "nuagebook"
APP_VERSION = "0.4.0"
APP_DESCRIPTION = "nuagebook storefront administration API"

DEFAULT_DB_PATH = "nuagebook.db"
DEFAULT_LOG_LEVEL = "INFO"
DEFAULT_STORAGE_ROOT = "storage"
DEFAULT_ASSETS_ROOT = "assets"
DEFAULT_PUBLIC_BASE_URL = "http://localhost:5000"
DEFAULT_EMAIL_FROM = "nuagebook <orders@nuagebook.com>"
DEFAULT_EMAIL_API_BASE = "https://api.resend.com"
DEFAULT_UPLOAD_URL_TTL = 900
DEFAULT_MAX_COMBINATIONS = 1000
DEFAULT_SHIPPING_RATE = 5.99
_TRUE = {"1", "true", "yes", "on"}


def _raw_env(name: str, default: str | None = None) -> str | None:
    val = os.getenv(name)
    return val if val is not None else default


def _stripped_env(name: str) -> str | None:
    value = os.getenv(name)
    if value is None:
        return None
    value = value.strip()
    return value or None


def _int_env(name: str, default: int) -> int:
    raw = _raw_env(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw.strip())
    except ValueError:
        return default


def env_bool(name: str, default: bool = False) -> bool:
    raw = _raw_env(name, str(default).lower())
    if raw is None:
        return default
    return raw.lower() in _TRUE


def get_db_path() -> str:
    return _raw_env("NUAGEBOOK_DB_PATH", DEFAULT_DB_PATH)  # type: ignore[return-value]


def log_level_name() -> str:
    return _raw_env("NUAGEBOOK_LOG_LEVEL", DEFAULT_LOG_LEVEL).upper()  # type: ignore[union-attr]


@lru_cache(maxsize=1)
def metadata() -> dict:
    return {
        "name": APP_NAME,
        "version": APP_VERSION,
        "description": APP_DESCRIPTION,
    }


def summarize_runtime_config() -> dict:
    """Non-secret snapshot logged at startup."""
    return {
        "db_path": get_db_path(),
        "log_level": log_level_name(),
        "storage_root": storage_root(),
        "assets_root": assets_root(),
        "public_base_url": public_base_url(),
        "email_enabled": email_api_key() is not None,
        "admin_token_configured": admin_token() is not None,
    }


__all__ = [
    "APP_NAME",
    "APP_VERSION",
    "APP_DESCRIPTION",
    "DEFAULT_SHIPPING_RATE",
    "env_bool",
    "get_db_path",
    "log_level_name",
    "metadata",
    "summarize_runtime_config",
]


def storage_root() -> str:
    """Filesystem root of the object store (NUAGEBOOK_STORAGE_ROOT)."""
    return _stripped_env("NUAGEBOOK_STORAGE_ROOT") or DEFAULT_STORAGE_ROOT


__all__.append("storage_root")


def public_prefix() -> str:
    return (_stripped_env("NUAGEBOOK_PUBLIC_PREFIX") or "public").strip("/")


__all__.append("public_prefix")


def private_prefix() -> str:
    return (_stripped_env("NUAGEBOOK_PRIVATE_PREFIX") or "private").strip("/")


__all__.append("private_prefix")


def assets_root() -> str:
    """Directory holding extracted per-book assets (fonts, EPUB images)."""
    return _stripped_env("NUAGEBOOK_ASSETS_ROOT") or DEFAULT_ASSETS_ROOT


__all__.append("assets_root")


def public_base_url() -> str:
    """Absolute base used when a headless browser must fetch our assets.

    Environment Variable: NUAGEBOOK_PUBLIC_BASE_URL
    Default: http://localhost:5000
    """
    value = _stripped_env("NUAGEBOOK_PUBLIC_BASE_URL") or DEFAULT_PUBLIC_BASE_URL
    return value.rstrip("/")


__all__.append("public_base_url")


def signing_secret() -> str | None:
    """HMAC secret for presigned upload URLs (no default)."""
    return _stripped_env("NUAGEBOOK_SIGNING_SECRET")


__all__.append("signing_secret")


def upload_url_ttl() -> int:
    return _int_env("NUAGEBOOK_UPLOAD_URL_TTL", DEFAULT_UPLOAD_URL_TTL)


__all__.append("upload_url_ttl")


def admin_token() -> str | None:
    """Bearer token accepted on admin API routes (NUAGEBOOK_ADMIN_TOKEN)."""
    return _stripped_env("NUAGEBOOK_ADMIN_TOKEN")


__all__.append("admin_token")


def secret_key() -> str:
    return _raw_env("NUAGEBOOK_SECRET_KEY", "dev-secret-change-in-production")  # type: ignore[return-value]


__all__.append("secret_key")


def email_api_key() -> str | None:
    """Return RESEND_API_KEY from environment (no default).

    Order emails are skipped entirely while this is unset.
    """
    return _stripped_env("RESEND_API_KEY")


__all__.append("email_api_key")


def email_from() -> str:
    return _stripped_env("NUAGEBOOK_EMAIL_FROM") or DEFAULT_EMAIL_FROM


__all__.append("email_from")


def email_api_base() -> str:
    return (_stripped_env("NUAGEBOOK_EMAIL_API_BASE") or DEFAULT_EMAIL_API_BASE).rstrip("/")


__all__.append("email_api_base")


def max_combinations() -> int:
    """Upper bound on generated avatar combinations per wizard tab."""
    value = _int_env("NUAGEBOOK_MAX_COMBINATIONS", DEFAULT_MAX_COMBINATIONS)
    return value if value > 0 else DEFAULT_MAX_COMBINATIONS


__all__.append("max_combinations")
