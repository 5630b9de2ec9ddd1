"""Tests for the commerce repositories using in-memory SQLite."""
from __future__ import annotations

import pytest

from nuagebook.db import app_session
from nuagebook.db.engine import init_engine_once, reset_for_tests
from nuagebook.db.models import Order
from nuagebook.db.repositories import customers_repo, orders_repo


@pytest.fixture(autouse=True)
def in_memory_db(monkeypatch):
    reset_for_tests(drop=True)
    monkeypatch.setenv("NUAGEBOOK_DB_PATH", ":memory:")
    init_engine_once()
    yield
    reset_for_tests(drop=True)


def _customer(customer_id: str = "c1", email: str = "reader@example.com"):
    return customers_repo.create_customer(id=customer_id, first_name="Ada", last_name="Reader", email=email)


def _order(order_id: str, customer_id: str, total: float, status: str = "pending"):
    return orders_repo.create_order(
        id=order_id,
        customer_id=customer_id,
        customer_name="Ada Reader",
        customer_email="reader@example.com",
        status=status,
        items=[{"bookId": "b1", "quantity": 1, "price": total}],
        total_amount=total,
        logs=[],
    )


def test_sequence_starts_at_one_and_increments():
    assert orders_repo.next_sequence_value() == 1
    assert orders_repo.next_sequence_value() == 2

    orders_repo.reset_sequence()

    assert orders_repo.next_sequence_value() == 1


def test_create_order_rejects_duplicate_id():
    _customer()
    _order("ORD-26-0000001", "c1", 10.0)

    with pytest.raises(orders_repo.OrderExistsError):
        _order("ORD-26-0000001", "c1", 12.0)


def test_duplicate_customer_email_raises():
    _customer()

    with pytest.raises(customers_repo.CustomerExistsError):
        _customer("c2")


def test_recompute_totals_ignores_cancelled_orders():
    _customer()
    _order("o1", "c1", 19.9)
    _order("o2", "c1", 5.05)
    _order("o3", "c1", 100.0, status="cancelled")

    record = customers_repo.recompute_totals("c1")

    assert record is not None
    assert record.order_count == 2
    assert record.total_spent == pytest.approx(24.95)


def test_deleting_customer_detaches_orders():
    _customer()
    _order("o1", "c1", 10.0)

    assert customers_repo.delete_customer("c1") is True

    with app_session() as session:
        order = session.get(Order, "o1")
        assert order is not None
        assert order.customer_id is None


def test_list_orders_by_ids_filters_and_skips_blank_ids():
    _customer()
    _order("o1", "c1", 1.0)
    _order("o2", "c1", 2.0)

    found = orders_repo.list_orders_by_ids(["o2", "", "missing"])

    assert [o.id for o in found] == ["o2"]
    assert orders_repo.list_orders_by_ids([]) == []
