"""Print partners and order routing by destination country."""
from __future__ import annotations

import datetime
from typing import Any, Dict, List, Mapping, Optional

from sqlalchemy.exc import IntegrityError

from nuagebook.db.models.base import new_id
from nuagebook.db.repositories import printers_repo
from nuagebook.utils.errors import ConflictError, NotFoundError, ValidationError, validate_resource_id
from nuagebook.utils.identity import is_valid_email, normalize_email
from nuagebook.utils.logging import get_logger

LOG = get_logger("printers_service")

COUNTRY_CODES = {
    "france": "FR",
    "belgique": "BE",
    "belgium": "BE",
    "suisse": "CH",
    "switzerland": "CH",
    "luxembourg": "LU",
    "allemagne": "DE",
    "germany": "DE",
    "espagne": "ES",
    "spain": "ES",
    "italie": "IT",
    "italy": "IT",
    "royaume-uni": "GB",
    "united kingdom": "GB",
    "pays-bas": "NL",
    "netherlands": "NL",
    "portugal": "PT",
    "canada": "CA",
    "monaco": "MC",
    "etats-unis": "US",
    "états-unis": "US",
    "united states": "US",
}


def country_code(value: Any) -> Optional[str]:
    """ISO-3166 alpha-2 code for a code or a known country name."""
    if not isinstance(value, str) or not value.strip():
        return None
    cleaned = value.strip()
    if len(cleaned) == 2 and cleaned.isalpha():
        return cleaned.upper()
    return COUNTRY_CODES.get(cleaned.lower())


def _clean_fields(payload: Mapping[str, Any], *, partial: bool) -> Dict[str, Any]:
    cleaned: Dict[str, Any] = {}
    if "name" in payload or not partial:
        name = payload.get("name")
        if not isinstance(name, str) or not name.strip():
            raise ValidationError("name_required", "Printer name is required")
        cleaned["name"] = name.strip()
    if "contactEmail" in payload:
        email = payload.get("contactEmail")
        if email in (None, ""):
            cleaned["contact_email"] = None
        elif not is_valid_email(email):
            raise ValidationError("invalid_email", "contactEmail must be a valid email")
        else:
            cleaned["contact_email"] = normalize_email(email)
    if "countryCodes" in payload or not partial:
        raw = payload.get("countryCodes") or []
        if not isinstance(raw, list):
            raise ValidationError("invalid_country_codes", "countryCodes must be a list")
        codes: List[str] = []
        for code in raw:
            value = str(code or "").strip().upper()
            if value and value not in codes:
                codes.append(value)
        cleaned["country_codes"] = codes
    if "productionDelayDays" in payload or not partial:
        raw_delay = payload.get("productionDelayDays", 0)
        if isinstance(raw_delay, bool):
            raise ValidationError("invalid_production_delay", "productionDelayDays must be an integer >= 0")
        try:
            delay = int(raw_delay if raw_delay is not None else 0)
        except (TypeError, ValueError):
            raise ValidationError("invalid_production_delay", "productionDelayDays must be an integer >= 0")
        if delay < 0:
            raise ValidationError("invalid_production_delay", "productionDelayDays must be an integer >= 0")
        cleaned["production_delay_days"] = delay
    return cleaned


def list_printers() -> List[Dict[str, Any]]:
    return [p.as_dict() for p in printers_repo.list_printers()]


def get_printer(printer_id: str) -> Dict[str, Any]:
    record = printers_repo.get_printer(printer_id)
    if record is None:
        raise NotFoundError.for_resource("Printer", printer_id)
    return record.as_dict()


def create_printer(payload: Mapping[str, Any]) -> Dict[str, Any]:
    fields = _clean_fields(payload or {}, partial=False)
    printer_id = str(payload.get("id") or new_id())
    validate_resource_id(printer_id)
    try:
        record = printers_repo.create_printer(id=printer_id, **fields)
    except IntegrityError:
        raise ConflictError("printer_exists", f"Printer '{printer_id}' already exists")
    LOG.info("Printer created id=%s countries=%s", record.id, ",".join(record.country_codes or []))
    return record.as_dict()


def update_printer(printer_id: str, payload: Mapping[str, Any]) -> Dict[str, Any]:
    record = printers_repo.update_printer(printer_id, _clean_fields(payload or {}, partial=True))
    if record is None:
        raise NotFoundError.for_resource("Printer", printer_id)
    return record.as_dict()


def delete_printer(printer_id: str) -> None:
    if not printers_repo.delete_printer(printer_id):
        raise NotFoundError.for_resource("Printer", printer_id)


def find_printer_for_country(code: str):
    target = country_code(code)
    if not target:
        return None
    for printer in printers_repo.list_printers():
        if target in [str(c).upper() for c in printer.country_codes or []]:
            return printer
    return None


def add_business_days(start: datetime.date, days: int) -> datetime.date:
    current = start
    remaining = max(0, int(days))
    while remaining > 0:
        current += datetime.timedelta(days=1)
        if current.weekday() < 5:
            remaining -= 1
    return current


def route_order(order: Mapping[str, Any], today: Optional[datetime.date] = None) -> Dict[str, Any]:
    """Printer assignment for an order dict, from its shipping country."""
    address = order.get("shippingAddress") or {}
    code = country_code(address.get("country"))
    printer = find_printer_for_country(code) if code else None
    if printer is None:
        raise NotFoundError("no_printer", f"No printer serves country '{address.get('country') or ''}'")
    ship_date = add_business_days(today or datetime.date.today(), printer.production_delay_days or 0)
    LOG.info("Order %s routed to printer=%s country=%s", order.get("id"), printer.id, code)
    return {
        "printerId": printer.id,
        "printerName": printer.name,
        "contactEmail": printer.contact_email,
        "estimatedShipDate": ship_date.isoformat(),
    }


__all__ = [
    "COUNTRY_CODES",
    "country_code",
    "list_printers",
    "get_printer",
    "create_printer",
    "update_printer",
    "delete_printer",
    "find_printer_for_country",
    "add_business_days",
    "route_order",
]
