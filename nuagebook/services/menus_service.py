"""Storefront navigation menus."""
from __future__ import annotations

from typing import Any, Dict, List, Mapping

from sqlalchemy.exc import IntegrityError

from nuagebook.db.models.base import new_id
from nuagebook.db.repositories import menus_repo
from nuagebook.utils.errors import ConflictError, NotFoundError, ValidationError, validate_resource_id
from nuagebook.utils.logging import get_logger

LOG = get_logger("menus_service")

MENU_TYPES = ("simple", "columns", "grid")
_FIELDS = {"label": "label", "type": "type", "basePath": "base_path", "items": "items", "columns": "columns"}


def _clean_fields(payload: Mapping[str, Any], *, partial: bool) -> Dict[str, Any]:
    cleaned = {attr: payload[key] for key, attr in _FIELDS.items() if key in payload}
    if "label" in cleaned or not partial:
        label = cleaned.get("label")
        if not isinstance(label, str) or not label.strip():
            raise ValidationError("label_required", "Menu label is required")
        cleaned["label"] = label.strip()
    if "type" in cleaned or not partial:
        cleaned["type"] = cleaned.get("type") or "simple"
        if cleaned["type"] not in MENU_TYPES:
            raise ValidationError("invalid_menu_type", f"type must be one of {', '.join(MENU_TYPES)}")
    for attr in ("items", "columns"):
        if attr in cleaned:
            if not isinstance(cleaned[attr] or [], list):
                raise ValidationError(f"invalid_{attr}", f"{attr} must be a list")
            cleaned[attr] = list(cleaned[attr] or [])
    return cleaned


def list_menus() -> List[Dict[str, Any]]:
    return [m.as_dict() for m in menus_repo.list_menus()]


def get_menu(menu_id: str) -> Dict[str, Any]:
    record = menus_repo.get_menu(menu_id)
    if record is None:
        raise NotFoundError.for_resource("Menu", menu_id)
    return record.as_dict()


def create_menu(payload: Mapping[str, Any]) -> Dict[str, Any]:
    fields = _clean_fields(payload or {}, partial=False)
    menu_id = payload.get("id") or new_id()
    validate_resource_id(str(menu_id))
    try:
        record = menus_repo.create_menu(id=str(menu_id), **fields)
    except IntegrityError:
        raise ConflictError("menu_exists", f"Menu '{menu_id}' already exists")
    LOG.info("Menu created id=%s", record.id)
    return record.as_dict()


def update_menu(menu_id: str, payload: Mapping[str, Any]) -> Dict[str, Any]:
    record = menus_repo.update_menu(menu_id, _clean_fields(payload or {}, partial=True))
    if record is None:
        raise NotFoundError.for_resource("Menu", menu_id)
    return record.as_dict()


def delete_menu(menu_id: str) -> None:
    if not menus_repo.delete_menu(menu_id):
        raise NotFoundError.for_resource("Menu", menu_id)


__all__ = ["MENU_TYPES", "list_menus", "get_menu", "create_menu", "update_menu", "delete_menu"]
