"""Tests for customer records and CSV export."""
from __future__ import annotations

import pytest

from nuagebook.db.engine import init_engine_once, reset_for_tests
from nuagebook.services import customers_service
from nuagebook.utils.errors import ConflictError, NotFoundError, ValidationError


@pytest.fixture(autouse=True)
def in_memory_db(monkeypatch):
    reset_for_tests(drop=True)
    monkeypatch.setenv("NUAGEBOOK_DB_PATH", ":memory:")
    init_engine_once()
    yield
    reset_for_tests(drop=True)


def _create(email="reader@example.com", **extra):
    payload = {"firstName": "Ada", "lastName": "Reader", "email": email}
    payload.update(extra)
    return customers_service.create_customer(payload)


def test_create_customer_is_idempotent_by_email():
    first, created = _create(address={"city": "Lyon", "country": "FR", "extra": "dropped"})
    again, created_again = _create(email="  READER@example.com ")

    assert created is True
    assert created_again is False
    assert again["id"] == first["id"]
    assert first["address"] == {"street": "", "city": "Lyon", "zipCode": "", "country": "FR"}


def test_create_customer_validates_fields():
    with pytest.raises(ValidationError) as exc:
        customers_service.create_customer({"firstName": "Ada", "lastName": "Reader", "email": "nope"})
    assert exc.value.code == "invalid_email"

    with pytest.raises(ValidationError) as exc:
        customers_service.create_customer({"firstName": "", "lastName": "Reader", "email": "a@b.co"})
    assert exc.value.code == "first_name_required"


def test_resolve_customer_splits_single_name():
    customer = customers_service.resolve_customer("solo@example.com", "Cher")

    assert customer["firstName"] == "Cher"
    assert customer["lastName"] == "-"


def test_update_customer_rejects_email_of_another_customer():
    first, _ = _create()
    _create(email="other@example.com")

    with pytest.raises(ConflictError) as exc:
        customers_service.update_customer(first["id"], {"email": "other@example.com"})
    assert exc.value.code == "customer_email_exists"

    updated = customers_service.update_customer(first["id"], {"phone": "+33 6 00 00 00 00"})
    assert updated["phone"] == "+33 6 00 00 00 00"


def test_delete_missing_customer_raises():
    with pytest.raises(NotFoundError) as exc:
        customers_service.delete_customer("missing")

    assert exc.value.code == "customer_not_found"


def test_export_customers_csv():
    _create(address={"city": "Lyon"})

    lines = customers_service.export_customers_csv().strip().split("\n")

    assert lines[0] == "ID,Nom,Email,Téléphone,Ville,Commandes,Total Dépensé"
    assert lines[1].endswith(",Ada Reader,reader@example.com,,Lyon,0,0")
