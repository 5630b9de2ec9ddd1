"""Repository helpers for print partners."""
from __future__ import annotations

from typing import Any, Dict, List, Optional

from nuagebook.db import app_session
from nuagebook.db.models import Printer
from nuagebook.utils.logging import get_logger

LOG = get_logger("printers_repo")


def list_printers() -> List[Printer]:
    with app_session() as session:
        return session.query(Printer).order_by(Printer.created_at.asc(), Printer.id.asc()).all()


def get_printer(printer_id: str) -> Optional[Printer]:
    with app_session() as session:
        return session.get(Printer, printer_id)


def create_printer(**fields: Any) -> Printer:
    with app_session() as session:
        record = Printer(**fields)
        session.add(record)
        session.flush()
        return record


def update_printer(printer_id: str, changes: Dict[str, Any]) -> Optional[Printer]:
    with app_session() as session:
        record = session.get(Printer, printer_id)
        if record is None:
            return None
        for attr, value in changes.items():
            setattr(record, attr, value)
        return record


def delete_printer(printer_id: str) -> bool:
    with app_session() as session:
        record = session.get(Printer, printer_id)
        if record is None:
            return False
        session.delete(record)
    LOG.info("Deleted printer id=%s", printer_id)
    return True


__all__ = ["list_printers", "get_printer", "create_printer", "update_printer", "delete_printer"]
