"""Repository helpers for customer records."""
from __future__ import annotations

from typing import Any, Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError

from nuagebook.db import app_session
from nuagebook.db.models import Customer, Order
from nuagebook.utils.logging import get_logger

LOG = get_logger("customers_repo")


class CustomerExistsError(Exception):
    pass


def list_customers() -> List[Customer]:
    with app_session() as session:
        return session.query(Customer).order_by(Customer.created_at.desc()).all()


def get_customer(customer_id: str) -> Optional[Customer]:
    with app_session() as session:
        return session.get(Customer, customer_id)


def get_by_email(email: str) -> Optional[Customer]:
    with app_session() as session:
        return session.query(Customer).filter(Customer.email == email).one_or_none()


def create_customer(**fields: Any) -> Customer:
    try:
        with app_session() as session:
            record = Customer(**fields)
            session.add(record)
            session.flush()
            return record
    except IntegrityError as exc:
        raise CustomerExistsError(fields.get("email")) from exc


def update_customer(customer_id: str, changes: Dict[str, Any]) -> Optional[Customer]:
    try:
        with app_session() as session:
            record = session.get(Customer, customer_id)
            if record is None:
                return None
            for attr, value in changes.items():
                setattr(record, attr, value)
            session.flush()
            return record
    except IntegrityError as exc:
        raise CustomerExistsError(changes.get("email")) from exc


def delete_customer(customer_id: str) -> bool:
    with app_session() as session:
        record = session.get(Customer, customer_id)
        if record is None:
            return False
        session.delete(record)
    LOG.info("Deleted customer id=%s", customer_id)
    return True


def recompute_totals(customer_id: str) -> Optional[Customer]:
    """Recalculate order_count / total_spent from non-cancelled orders."""
    with app_session() as session:
        record = session.get(Customer, customer_id)
        if record is None:
            return None
        count, total = (
            session.query(func.count(Order.id), func.coalesce(func.sum(Order.total_amount), 0.0))
            .filter(Order.customer_id == customer_id, Order.status != "cancelled")
            .one()
        )
        record.order_count = int(count or 0)
        record.total_spent = round(float(total or 0.0), 2)
        return record


def count_customers() -> int:
    with app_session() as session:
        return session.query(Customer).count()


def delete_all_customers() -> int:
    with app_session() as session:
        return session.query(Customer).delete()


__all__ = [
    "CustomerExistsError",
    "list_customers",
    "get_customer",
    "get_by_email",
    "create_customer",
    "update_customer",
    "delete_customer",
    "recompute_totals",
    "count_customers",
    "delete_all_customers",
]
