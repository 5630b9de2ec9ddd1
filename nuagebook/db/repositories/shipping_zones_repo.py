"""Repository helpers for shipping zones."""
from __future__ import annotations

from typing import Any, Dict, List, Optional

from nuagebook.db import app_session
from nuagebook.db.models import ShippingZone
from nuagebook.utils.logging import get_logger

LOG = get_logger("shipping_zones_repo")


def list_zones() -> List[ShippingZone]:
    with app_session() as session:
        return session.query(ShippingZone).order_by(ShippingZone.created_at.asc(), ShippingZone.id.asc()).all()


def get_zone(zone_id: str) -> Optional[ShippingZone]:
    with app_session() as session:
        return session.get(ShippingZone, zone_id)


def create_zone(**fields: Any) -> ShippingZone:
    with app_session() as session:
        record = ShippingZone(**fields)
        session.add(record)
        session.flush()
        return record


def update_zone(zone_id: str, changes: Dict[str, Any]) -> Optional[ShippingZone]:
    with app_session() as session:
        record = session.get(ShippingZone, zone_id)
        if record is None:
            return None
        for attr, value in changes.items():
            setattr(record, attr, value)
        return record


def delete_zone(zone_id: str) -> bool:
    with app_session() as session:
        record = session.get(ShippingZone, zone_id)
        if record is None:
            return False
        session.delete(record)
    LOG.info("Deleted shipping zone id=%s", zone_id)
    return True


def count_zones() -> int:
    with app_session() as session:
        return session.query(ShippingZone).count()


__all__ = ["list_zones", "get_zone", "create_zone", "update_zone", "delete_zone", "count_zones"]
