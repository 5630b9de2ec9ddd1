"""Book catalog orchestration: validation, font extraction and cleanup."""
from __future__ import annotations

import datetime
import shutil
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

from nuagebook import config as app_config
from nuagebook.db.repositories import books_repo
from nuagebook.services import css_tools, object_storage
from nuagebook.utils.errors import (
    ConflictError,
    NotFoundError,
    ValidationError,
    validate_path,
    validate_resource_id,
)
from nuagebook.utils.logging import get_logger
from nuagebook.utils.text import slugify, to_money

LOG = get_logger("books_service")

CATEGORIES = ("family", "theme", "activity", "occasion")
CONTENT_EXPORT_TYPE = "content_config"
EXPORT_VERSION = "1.0"

# camelCase payload key -> model attribute
_FIELDS = {
    "name": "name",
    "description": "description",
    "price": "price",
    "oldPrice": "old_price",
    "promoCode": "promo_code",
    "coverImage": "cover_image",
    "theme": "theme",
    "category": "category",
    "badgeText": "badge_text",
    "associatedPaths": "associated_paths",
    "isHidden": "is_hidden",
    "features": "features",
    "wizardConfig": "wizard_config",
    "contentConfig": "content_config",
}


def _require_book(book_id: str):
    book = books_repo.get_book(book_id)
    if book is None:
        raise NotFoundError.for_resource("Book", book_id)
    return book


def _money(value: Any, field: str) -> float:
    try:
        amount = to_money(value)
    except ValueError:
        raise ValidationError(f"invalid_{field}", f"'{field}' must be a number")
    if amount < 0:
        raise ValidationError(f"invalid_{field}", f"'{field}' must be >= 0")
    return amount


def _clean_fields(payload: Mapping[str, Any], *, partial: bool) -> Dict[str, Any]:
    cleaned: Dict[str, Any] = {}
    for key, attr in _FIELDS.items():
        if key in payload:
            cleaned[attr] = payload[key]
    if "name" in cleaned or not partial:
        name = cleaned.get("name")
        if not isinstance(name, str) or not name.strip():
            raise ValidationError("name_required", "Book name is required")
        cleaned["name"] = name.strip()
    if "price" in cleaned:
        cleaned["price"] = _money(cleaned["price"], "price")
    if cleaned.get("old_price") is not None:
        cleaned["old_price"] = _money(cleaned["old_price"], "oldPrice")
    if cleaned.get("category") not in (None, ""):
        if cleaned["category"] not in CATEGORIES:
            raise ValidationError("invalid_category", f"category must be one of {', '.join(CATEGORIES)}")
    if "associated_paths" in cleaned:
        paths = cleaned["associated_paths"] or []
        if not isinstance(paths, list):
            raise ValidationError("invalid_associatedPaths", "associatedPaths must be a list")
        cleaned["associated_paths"] = [str(p) for p in paths]
    if "is_hidden" in cleaned:
        cleaned["is_hidden"] = bool(cleaned["is_hidden"])
    for attr in ("features", "wizard_config", "content_config"):
        if cleaned.get(attr) is not None and not isinstance(cleaned[attr], dict):
            raise ValidationError(f"invalid_{attr}", f"{attr} must be an object")
    return cleaned


def list_books() -> List[Dict[str, Any]]:
    return [b.as_dict() for b in books_repo.list_books()]


def get_book(book_id: str) -> Dict[str, Any]:
    return _require_book(book_id).as_dict()


def create_book(payload: Mapping[str, Any]) -> Dict[str, Any]:
    fields = _clean_fields(payload or {}, partial=False)
    book_id = payload.get("id") or slugify(fields["name"])
    if not book_id:
        raise ValidationError("invalid_id", "Could not derive a book id from the name")
    validate_resource_id(str(book_id))
    fields.setdefault("price", 0.0)
    try:
        record = books_repo.create_book(id=str(book_id), **fields)
    except books_repo.BookExistsError:
        raise ConflictError("book_exists", f"Book '{book_id}' already exists")
    LOG.info("Book created id=%s", record.id)
    return record.as_dict()


def _extract_embedded_fonts(book_id: str, content_config: Dict[str, Any]) -> Dict[str, Any]:
    css = content_config.get("cssContent")
    if not isinstance(css, str) or "@font-face" not in css.lower():
        return content_config
    extraction = css_tools.extract_fonts_from_css(css, book_id)
    if not extraction.fonts:
        return content_config
    updated = dict(content_config)
    updated["cssContent"] = extraction.processed_css
    LOG.info("Extracted %s embedded font(s) for book=%s", len(extraction.fonts), book_id)
    return updated


def update_book(book_id: str, payload: Mapping[str, Any]) -> Dict[str, Any]:
    _require_book(book_id)
    changes = _clean_fields(payload or {}, partial=True)
    if changes.get("content_config"):
        changes["content_config"] = _extract_embedded_fonts(book_id, changes["content_config"])
    record = books_repo.update_book(book_id, changes)
    if record is None:
        raise NotFoundError.for_resource("Book", book_id)
    return record.as_dict()


def book_assets_dir(book_id: str) -> Path:
    validate_resource_id(book_id, "book_id")
    return Path(validate_path(app_config.assets_root(), f"books/{book_id}"))


def delete_book(book_id: str) -> None:
    validate_resource_id(book_id, "book_id")
    if not books_repo.delete_book(book_id):
        raise NotFoundError.for_resource("Book", book_id)
    assets = book_assets_dir(book_id)
    try:
        if assets.is_dir():
            shutil.rmtree(assets)
        object_storage.delete_prefix(object_storage.public_key(f"previews/{book_id}"))
    except OSError as exc:
        LOG.warning("Asset cleanup failed for deleted book=%s: %s", book_id, exc)
    LOG.info("Book deleted id=%s", book_id)


def export_content(book_id: str, now: Optional[datetime.datetime] = None) -> Dict[str, Any]:
    book = _require_book(book_id)
    stamp = now or datetime.datetime.now(datetime.timezone.utc)
    return {
        "version": EXPORT_VERSION,
        "type": CONTENT_EXPORT_TYPE,
        "timestamp": stamp.isoformat(),
        "bookId": book.id,
        "contentConfig": book.content_config or {},
        "features": book.features,
    }


def import_content(book_id: str, payload: Mapping[str, Any]) -> Dict[str, Any]:
    _require_book(book_id)
    content = (payload or {}).get("contentConfig")
    if not isinstance(content, dict):
        raise ValidationError("content_config_required", "contentConfig must be an object")
    changes: Dict[str, Any] = {"content_config": _extract_embedded_fonts(book_id, content)}
    if isinstance(payload.get("features"), dict):
        changes["features"] = payload["features"]
    record = books_repo.update_book(book_id, changes)
    LOG.info("Imported content config for book=%s", book_id)
    return record.as_dict()


def min_cover_price(book: Mapping[str, Any]) -> float:
    """Cheapest cover option from ``features.coverTypes``, else the book price."""
    features = book.get("features") or {}
    prices = []
    for cover in features.get("coverTypes") or []:
        try:
            prices.append(to_money(cover.get("price")))
        except (ValueError, AttributeError):
            continue
    if prices:
        return min(prices)
    return to_money(book.get("price") or 0)


__all__ = [
    "CATEGORIES",
    "list_books",
    "get_book",
    "create_book",
    "update_book",
    "book_assets_dir",
    "delete_book",
    "export_content",
    "import_content",
    "min_cover_price",
]
