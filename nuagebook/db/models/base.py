"""Declarative base and shared column helpers."""
from __future__ import annotations

import datetime
import uuid
from typing import Optional

from sqlalchemy.orm import declarative_base

Base = declarative_base()


def utcnow() -> datetime.datetime:
    """Naive UTC timestamp (sqlite stores no tz info)."""
    return datetime.datetime.now(datetime.timezone.utc).replace(tzinfo=None)


def new_id() -> str:
    return uuid.uuid4().hex


def iso(value: Optional[datetime.datetime]) -> Optional[str]:
    return value.isoformat() if value else None


__all__ = ["Base", "utcnow", "new_id", "iso"]
