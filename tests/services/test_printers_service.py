"""Tests for printer management and order routing."""
from __future__ import annotations

import datetime

import pytest

from nuagebook.db.engine import init_engine_once, reset_for_tests
from nuagebook.services import printers_service
from nuagebook.utils.errors import ConflictError, NotFoundError, ValidationError


@pytest.fixture(autouse=True)
def in_memory_db(monkeypatch):
    reset_for_tests(drop=True)
    monkeypatch.setenv("NUAGEBOOK_DB_PATH", ":memory:")
    init_engine_once()
    yield
    reset_for_tests(drop=True)


def _printer(**overrides):
    payload = {
        "id": "imprimerie-lyon",
        "name": "Imprimerie Lyon",
        "contactEmail": "Atelier@Imprimerie.fr",
        "countryCodes": ["fr", "be", "FR"],
        "productionDelayDays": 3,
    }
    payload.update(overrides)
    return printers_service.create_printer(payload)


def test_create_printer_normalizes_fields():
    printer = _printer()

    assert printer["contactEmail"] == "atelier@imprimerie.fr"
    assert printer["countryCodes"] == ["FR", "BE"]
    assert printer["productionDelayDays"] == 3


@pytest.mark.parametrize(
    "overrides, code",
    [
        ({"name": ""}, "name_required"),
        ({"contactEmail": "nope"}, "invalid_email"),
        ({"productionDelayDays": -1}, "invalid_production_delay"),
        ({"productionDelayDays": True}, "invalid_production_delay"),
        ({"countryCodes": "FR"}, "invalid_country_codes"),
    ],
)
def test_create_printer_validation(overrides, code):
    with pytest.raises(ValidationError) as exc:
        _printer(**overrides)

    assert exc.value.code == code


def test_duplicate_printer_conflicts():
    _printer()

    with pytest.raises(ConflictError):
        _printer()


@pytest.mark.parametrize("value, expected", [("fr", "FR"), ("Belgique", "BE"), ("États-Unis", "US"), ("Atlantis", None), ("", None)])
def test_country_code(value, expected):
    assert printers_service.country_code(value) == expected


def test_add_business_days_skips_weekends():
    friday = datetime.date(2026, 1, 2)

    assert printers_service.add_business_days(friday, 1) == datetime.date(2026, 1, 5)
    assert printers_service.add_business_days(friday, 3) == datetime.date(2026, 1, 7)
    assert printers_service.add_business_days(friday, 0) == friday


def test_route_order_by_country_name():
    _printer()
    order = {"id": "ORD-26-0000001", "shippingAddress": {"country": "France"}}

    routing = printers_service.route_order(order, today=datetime.date(2026, 1, 2))

    assert routing == {
        "printerId": "imprimerie-lyon",
        "printerName": "Imprimerie Lyon",
        "contactEmail": "atelier@imprimerie.fr",
        "estimatedShipDate": "2026-01-07",
    }


def test_route_order_without_printer():
    _printer()

    with pytest.raises(NotFoundError) as exc:
        printers_service.route_order({"id": "x", "shippingAddress": {"country": "JP"}})

    assert exc.value.code == "no_printer"
