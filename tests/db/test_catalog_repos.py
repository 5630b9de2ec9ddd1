"""Tests for book and settings repositories."""
from __future__ import annotations

import pytest

from nuagebook.db.engine import init_engine_once, reset_for_tests
from nuagebook.db.repositories import books_repo, settings_repo


@pytest.fixture(autouse=True)
def in_memory_db(monkeypatch):
    reset_for_tests(drop=True)
    monkeypatch.setenv("NUAGEBOOK_DB_PATH", ":memory:")
    init_engine_once()
    yield
    reset_for_tests(drop=True)


def test_create_and_update_book_json_columns():
    books_repo.create_book(id="voyage", name="Le Voyage", price=29.9, content_config={"texts": []})

    updated = books_repo.update_book("voyage", {"content_config": {"texts": [{"id": "t1"}]}})

    assert updated is not None
    fetched = books_repo.get_book("voyage")
    assert fetched.content_config == {"texts": [{"id": "t1"}]}
    assert fetched.updated_at >= fetched.created_at


def test_duplicate_book_id_raises():
    books_repo.create_book(id="voyage", name="Le Voyage", price=0.0)

    with pytest.raises(books_repo.BookExistsError):
        books_repo.create_book(id="voyage", name="Autre", price=0.0)


def test_update_missing_book_returns_none():
    assert books_repo.update_book("missing", {"name": "x"}) is None
    assert books_repo.delete_book("missing") is False


def test_upsert_setting_overwrites_value():
    settings_repo.upsert_setting("defaultShippingRate", 4.5)
    settings_repo.upsert_setting("defaultShippingRate", {"value": 6})

    record = settings_repo.get_setting("defaultShippingRate")

    assert record is not None
    assert record.value == {"value": 6}
