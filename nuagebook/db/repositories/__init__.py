"""Repository modules (one per aggregate)."""
from . import (  # noqa: F401
    books_repo,
    customers_repo,
    orders_repo,
    shipping_zones_repo,
    printers_repo,
    menus_repo,
    settings_repo,
)

__all__ = [
    "books_repo",
    "customers_repo",
    "orders_repo",
    "shipping_zones_repo",
    "printers_repo",
    "menus_repo",
    "settings_repo",
]
