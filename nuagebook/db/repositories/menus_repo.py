"""Repository helpers for storefront navigation menus."""
from __future__ import annotations

from typing import Any, Dict, List, Optional

from nuagebook.db import app_session
from nuagebook.db.models import Menu


def list_menus() -> List[Menu]:
    with app_session() as session:
        return session.query(Menu).order_by(Menu.created_at.asc(), Menu.id.asc()).all()


def get_menu(menu_id: str) -> Optional[Menu]:
    with app_session() as session:
        return session.get(Menu, menu_id)


def create_menu(**fields: Any) -> Menu:
    with app_session() as session:
        record = Menu(**fields)
        session.add(record)
        session.flush()
        return record


def update_menu(menu_id: str, changes: Dict[str, Any]) -> Optional[Menu]:
    with app_session() as session:
        record = session.get(Menu, menu_id)
        if record is None:
            return None
        for attr, value in changes.items():
            setattr(record, attr, value)
        return record


def delete_menu(menu_id: str) -> bool:
    with app_session() as session:
        record = session.get(Menu, menu_id)
        if record is None:
            return False
        session.delete(record)
        return True


__all__ = ["list_menus", "get_menu", "create_menu", "update_menu", "delete_menu"]
