"""Repository helpers for key/value settings."""
from __future__ import annotations

from typing import Any, Optional

from nuagebook.db import app_session
from nuagebook.db.models import Setting
from nuagebook.db.models.base import utcnow


def get_setting(key: str) -> Optional[Setting]:
    with app_session() as session:
        return session.get(Setting, key)


def upsert_setting(key: str, value: Any) -> Setting:
    with app_session() as session:
        record = session.get(Setting, key)
        if record is None:
            record = Setting(key=key, value=value)
            session.add(record)
        else:
            record.value = value
        record.updated_at = utcnow()
        return record


__all__ = ["get_setting", "upsert_setting"]
