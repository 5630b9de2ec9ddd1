"""Key/value store settings."""
from __future__ import annotations

from typing import Any, Dict

from nuagebook import config as app_config
from nuagebook.db.repositories import settings_repo
from nuagebook.utils.errors import NotFoundError, ValidationError
from nuagebook.utils.logging import get_logger

LOG = get_logger("settings_service")

DEFAULT_SHIPPING_RATE_KEY = "defaultShippingRate"


def _check_key(key: Any) -> str:
    if not isinstance(key, str) or not key.strip() or len(key) > 120:
        raise ValidationError("invalid_setting_key", "Setting key is required")
    return key.strip()


def get_setting(key: str) -> Dict[str, Any]:
    record = settings_repo.get_setting(_check_key(key))
    if record is None:
        raise NotFoundError("setting_not_found", f"Setting '{key}' not found")
    return {"key": record.key, "value": record.value}


def put_setting(key: str, value: Any) -> Dict[str, Any]:
    record = settings_repo.upsert_setting(_check_key(key), value)
    LOG.info("Setting saved key=%s", record.key)
    return {"key": record.key, "value": record.value}


def default_shipping_rate() -> float:
    """Stored ``defaultShippingRate`` (a number or ``{"value": n}``), else the built-in fallback."""
    record = settings_repo.get_setting(DEFAULT_SHIPPING_RATE_KEY)
    raw = record.value if record is not None else None
    if isinstance(raw, dict):
        raw = raw.get("value")
    try:
        rate = float(raw)
    except (TypeError, ValueError):
        return app_config.DEFAULT_SHIPPING_RATE
    return rate if rate >= 0 else app_config.DEFAULT_SHIPPING_RATE


__all__ = ["DEFAULT_SHIPPING_RATE_KEY", "get_setting", "put_setting", "default_shipping_rate"]
