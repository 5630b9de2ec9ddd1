"""Customer records and CSV export."""
from __future__ import annotations

import csv
import io
from typing import Any, Dict, List, Mapping, Optional, Tuple

from nuagebook.db.models.base import new_id
from nuagebook.db.repositories import customers_repo
from nuagebook.utils.errors import ConflictError, NotFoundError, ValidationError
from nuagebook.utils.identity import is_valid_email, normalize_email
from nuagebook.utils.logging import get_logger

LOG = get_logger("customers_service")

CSV_HEADER = ("ID", "Nom", "Email", "Téléphone", "Ville", "Commandes", "Total Dépensé")
ADDRESS_KEYS = ("street", "city", "zipCode", "country")
_FIELDS = {
    "firstName": "first_name",
    "lastName": "last_name",
    "email": "email",
    "phone": "phone",
    "address": "address",
    "notes": "notes",
}


def _clean_address(raw: Any) -> Optional[Dict[str, str]]:
    if raw is None:
        return None
    if not isinstance(raw, Mapping):
        raise ValidationError("invalid_address", "address must be an object")
    return {key: str(raw.get(key) or "").strip() for key in ADDRESS_KEYS}


def _clean_fields(payload: Mapping[str, Any], *, partial: bool) -> Dict[str, Any]:
    cleaned = {attr: payload[key] for key, attr in _FIELDS.items() if key in payload}
    for attr, code in (("first_name", "first_name_required"), ("last_name", "last_name_required")):
        if attr in cleaned or not partial:
            value = cleaned.get(attr)
            if not isinstance(value, str) or not value.strip():
                raise ValidationError(code, f"{attr} is required")
            cleaned[attr] = value.strip()
    if "email" in cleaned or not partial:
        if not is_valid_email(cleaned.get("email")):
            raise ValidationError("invalid_email", "A valid email is required")
        cleaned["email"] = normalize_email(cleaned["email"])
    if "address" in cleaned:
        cleaned["address"] = _clean_address(cleaned["address"])
    return cleaned


def _require_customer(customer_id: str):
    record = customers_repo.get_customer(customer_id)
    if record is None:
        raise NotFoundError.for_resource("Customer", customer_id)
    return record


def list_customers() -> List[Dict[str, Any]]:
    return [c.as_dict() for c in customers_repo.list_customers()]


def get_customer(customer_id: str) -> Dict[str, Any]:
    return _require_customer(customer_id).as_dict()


def create_customer(payload: Mapping[str, Any]) -> Tuple[Dict[str, Any], bool]:
    """Create a customer; an existing email returns that record with created=False."""
    fields = _clean_fields(payload or {}, partial=False)
    existing = customers_repo.get_by_email(fields["email"])
    if existing is not None:
        LOG.info("Customer already exists email=%s id=%s", fields["email"], existing.id)
        return existing.as_dict(), False
    try:
        record = customers_repo.create_customer(id=new_id(), **fields)
    except customers_repo.CustomerExistsError:
        existing = customers_repo.get_by_email(fields["email"])
        if existing is None:
            raise ConflictError("customer_exists", "Customer already exists")
        return existing.as_dict(), False
    LOG.info("Customer created id=%s", record.id)
    return record.as_dict(), True


def resolve_customer(email: str, full_name: str, address: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
    """Customer for an incoming order, created from the order details when new."""
    normalized = normalize_email(email)
    existing = customers_repo.get_by_email(normalized) if normalized else None
    if existing is not None:
        return existing.as_dict()
    first, _, last = (full_name or "").strip().partition(" ")
    customer, _created = create_customer({
        "firstName": first or normalized,
        "lastName": last.strip() or "-",
        "email": normalized,
        "address": dict(address) if isinstance(address, Mapping) else None,
    })
    return customer


def update_customer(customer_id: str, payload: Mapping[str, Any]) -> Dict[str, Any]:
    _require_customer(customer_id)
    changes = _clean_fields(payload or {}, partial=True)
    if "email" in changes:
        other = customers_repo.get_by_email(changes["email"])
        if other is not None and other.id != customer_id:
            raise ConflictError("customer_email_exists", "Another customer uses this email")
    record = customers_repo.update_customer(customer_id, changes)
    if record is None:
        raise NotFoundError.for_resource("Customer", customer_id)
    return record.as_dict()


def delete_customer(customer_id: str) -> None:
    if not customers_repo.delete_customer(customer_id):
        raise NotFoundError.for_resource("Customer", customer_id)


def refresh_customer_totals(customer_id: Optional[str]) -> Optional[Dict[str, Any]]:
    if not customer_id:
        return None
    record = customers_repo.recompute_totals(customer_id)
    return record.as_dict() if record is not None else None


def export_customers_csv() -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(CSV_HEADER)
    for customer in customers_repo.list_customers():
        writer.writerow([
            customer.id,
            customer.full_name,
            customer.email,
            customer.phone or "",
            (customer.address or {}).get("city") or "",
            customer.order_count or 0,
            customer.total_spent or 0,
        ])
    return buffer.getvalue()


__all__ = [
    "CSV_HEADER",
    "list_customers",
    "get_customer",
    "create_customer",
    "resolve_customer",
    "update_customer",
    "delete_customer",
    "refresh_customer_totals",
    "export_customers_csv",
]
