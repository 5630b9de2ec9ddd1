"""Tests for the nuagebook logger hierarchy."""
from __future__ import annotations

import logging

from nuagebook.utils.logging import get_logger


def test_area_loggers_are_children_of_the_app_logger():
    root = get_logger()
    orders = get_logger("orders_service")

    assert root.name == "nuagebook"
    assert orders.name == "nuagebook.orders_service"
    assert orders.parent is root
    assert orders.handlers == []
    assert len(root.handlers) == 1
    assert root.propagate is False


def test_prefixed_area_names_are_not_doubled():
    assert get_logger("nuagebook.db").name == "nuagebook.db"
    assert get_logger("nuagebook.db") is logging.getLogger("nuagebook.db")
