"""Repository helpers for catalog books."""
from __future__ import annotations

from typing import Any, Dict, List, Optional

from sqlalchemy.exc import IntegrityError

from nuagebook.db import app_session
from nuagebook.db.models import Book
from nuagebook.db.models.base import utcnow
from nuagebook.utils.logging import get_logger

LOG = get_logger("books_repo")


class BookExistsError(Exception):
    pass


def list_books() -> List[Book]:
    with app_session() as session:
        return session.query(Book).order_by(Book.created_at.asc(), Book.id.asc()).all()


def get_book(book_id: str) -> Optional[Book]:
    with app_session() as session:
        return session.get(Book, book_id)


def create_book(**fields: Any) -> Book:
    try:
        with app_session() as session:
            record = Book(**fields)
            session.add(record)
            session.flush()
            return record
    except IntegrityError as exc:
        raise BookExistsError(fields.get("id")) from exc


def update_book(book_id: str, changes: Dict[str, Any]) -> Optional[Book]:
    with app_session() as session:
        record = session.get(Book, book_id)
        if record is None:
            return None
        for attr, value in changes.items():
            setattr(record, attr, value)
        record.updated_at = utcnow()
        return record


def delete_book(book_id: str) -> bool:
    with app_session() as session:
        record = session.get(Book, book_id)
        if record is None:
            return False
        session.delete(record)
    LOG.info("Deleted book id=%s", book_id)
    return True


def count_books() -> int:
    with app_session() as session:
        return session.query(Book).count()


def delete_all_books() -> int:
    with app_session() as session:
        return session.query(Book).delete()


__all__ = [
    "BookExistsError",
    "list_books",
    "get_book",
    "create_book",
    "update_book",
    "delete_book",
    "count_books",
    "delete_all_books",
]
