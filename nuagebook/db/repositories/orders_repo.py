"""Repository helpers for orders and the order number sequence."""
from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy.exc import IntegrityError

from nuagebook.db import app_session
from nuagebook.db.models import Order, OrderSequence
from nuagebook.db.models.base import utcnow
from nuagebook.utils.logging import get_logger

LOG = get_logger("orders_repo")
_SEQUENCE_ROW_ID = 1


class OrderExistsError(Exception):
    pass


def list_orders() -> List[Order]:
    with app_session() as session:
        return session.query(Order).order_by(Order.created_at.desc(), Order.id.desc()).all()


def list_orders_by_ids(order_ids: Iterable[str]) -> List[Order]:
    ids = [i for i in order_ids if i]
    if not ids:
        return []
    with app_session() as session:
        return (
            session.query(Order)
            .filter(Order.id.in_(ids))
            .order_by(Order.created_at.desc(), Order.id.desc())
            .all()
        )


def list_orders_for_customer(customer_id: str) -> List[Order]:
    with app_session() as session:
        return (
            session.query(Order)
            .filter(Order.customer_id == customer_id)
            .order_by(Order.created_at.desc(), Order.id.desc())
            .all()
        )


def get_order(order_id: str) -> Optional[Order]:
    with app_session() as session:
        return session.get(Order, order_id)


def create_order(**fields: Any) -> Order:
    try:
        with app_session() as session:
            record = Order(**fields)
            session.add(record)
            session.flush()
            return record
    except IntegrityError as exc:
        raise OrderExistsError(fields.get("id")) from exc


def update_order(order_id: str, changes: Dict[str, Any]) -> Optional[Order]:
    with app_session() as session:
        record = session.get(Order, order_id)
        if record is None:
            return None
        for attr, value in changes.items():
            setattr(record, attr, value)
        record.updated_at = utcnow()
        return record


def delete_order(order_id: str) -> bool:
    with app_session() as session:
        record = session.get(Order, order_id)
        if record is None:
            return False
        session.delete(record)
    LOG.info("Deleted order id=%s", order_id)
    return True


def next_sequence_value() -> int:
    """Increment and return the persisted order counter (starts at 1)."""
    with app_session() as session:
        row = session.get(OrderSequence, _SEQUENCE_ROW_ID)
        if row is None:
            row = OrderSequence(id=_SEQUENCE_ROW_ID, last_value=0)
            session.add(row)
        row.last_value = int(row.last_value or 0) + 1
        return row.last_value


def reset_sequence() -> None:
    with app_session() as session:
        session.query(OrderSequence).delete()
    LOG.info("Order sequence reset")


def count_orders() -> int:
    with app_session() as session:
        return session.query(Order).count()


def delete_all_orders() -> int:
    with app_session() as session:
        return session.query(Order).delete()


__all__ = [
    "OrderExistsError",
    "list_orders",
    "list_orders_by_ids",
    "list_orders_for_customer",
    "get_order",
    "create_order",
    "update_order",
    "delete_order",
    "next_sequence_value",
    "reset_sequence",
    "count_orders",
    "delete_all_orders",
]
