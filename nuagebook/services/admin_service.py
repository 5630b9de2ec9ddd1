"""Bulk maintenance operations for the admin console."""
from __future__ import annotations

from typing import Dict

from nuagebook.db.repositories import books_repo, customers_repo, orders_repo, shipping_zones_repo
from nuagebook.utils.logging import get_logger

LOG = get_logger("admin_service")


def reset_books() -> Dict[str, int]:
    removed = books_repo.delete_all_books()
    LOG.warning("Reset books: %s removed", removed)
    return {"books": removed}


def reset_orders() -> Dict[str, int]:
    removed = orders_repo.delete_all_orders()
    orders_repo.reset_sequence()
    LOG.warning("Reset orders: %s removed, sequence reset", removed)
    return {"orders": removed}


def reset_customers() -> Dict[str, int]:
    removed = customers_repo.delete_all_customers()
    LOG.warning("Reset customers: %s removed", removed)
    return {"customers": removed}


def reset_all() -> Dict[str, int]:
    """Orders first, then customers, then books."""
    result: Dict[str, int] = {}
    result.update(reset_orders())
    result.update(reset_customers())
    result.update(reset_books())
    return result


def stats() -> Dict[str, int]:
    return {
        "books": books_repo.count_books(),
        "customers": customers_repo.count_customers(),
        "orders": orders_repo.count_orders(),
        "shippingZones": shipping_zones_repo.count_zones(),
    }


__all__ = ["reset_books", "reset_orders", "reset_customers", "reset_all", "stats"]
