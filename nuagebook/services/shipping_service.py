"""Shipping zones and checkout quotes.

A zone lists ISO country codes and shipping methods. Every method is
always offered at its ``price``; when its optional condition holds for
the cart, it costs ``offerPrice`` instead (free shipping over a threshold,
for instance).
"""
from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional

from sqlalchemy.exc import IntegrityError

from nuagebook.db.models.base import new_id
from nuagebook.db.repositories import shipping_zones_repo
from nuagebook.services import settings_service
from nuagebook.utils.errors import ConflictError, NotFoundError, ValidationError, validate_resource_id
from nuagebook.utils.logging import get_logger
from nuagebook.utils.text import to_money

LOG = get_logger("shipping_service")

CONDITION_TYPES = ("weight", "price", "quantity", "none")
CONDITION_OPERATORS = ("greater_than", "less_than", "between")
DEFAULT_METHOD_ID = "default"
DEFAULT_METHOD_NAME = "Livraison standard"


def _money(value: Any, code: str) -> float:
    try:
        amount = to_money(value)
    except ValueError:
        raise ValidationError(code, "Amount must be a number")
    if amount < 0:
        raise ValidationError(code, "Amount must be >= 0")
    return amount


def _clean_condition(raw: Any) -> Optional[Dict[str, Any]]:
    if raw is None:
        return None
    if not isinstance(raw, Mapping):
        raise ValidationError("invalid_condition", "condition must be an object")
    ctype = raw.get("type") or "none"
    if ctype not in CONDITION_TYPES:
        raise ValidationError("invalid_condition", f"condition.type must be one of {', '.join(CONDITION_TYPES)}")
    if ctype == "none":
        return {"type": "none"}
    operator = raw.get("operator")
    if operator not in CONDITION_OPERATORS:
        raise ValidationError("invalid_condition", f"condition.operator must be one of {', '.join(CONDITION_OPERATORS)}")
    try:
        value = float(raw.get("value"))
    except (TypeError, ValueError):
        raise ValidationError("invalid_condition", "condition.value must be a number")
    condition: Dict[str, Any] = {"type": ctype, "operator": operator, "value": value}
    if operator == "between":
        try:
            max_value = float(raw.get("maxValue"))
        except (TypeError, ValueError):
            raise ValidationError("invalid_condition", "condition.maxValue is required for between")
        if max_value < value:
            raise ValidationError("invalid_condition", "condition.maxValue must be >= value")
        condition["maxValue"] = max_value
    return condition


def _clean_method(raw: Any, index: int) -> Dict[str, Any]:
    if not isinstance(raw, Mapping):
        raise ValidationError("invalid_method", f"Method {index} must be an object")
    name = raw.get("name")
    if not isinstance(name, str) or not name.strip():
        raise ValidationError("invalid_method", f"Method {index} requires a name")
    method: Dict[str, Any] = {
        "id": str(raw.get("id") or new_id()[:12]),
        "name": name.strip(),
        "price": _money(raw.get("price", 0), "invalid_method_price"),
        "description": raw.get("description") or "",
        "estimatedDelay": raw.get("estimatedDelay") or "",
    }
    condition = _clean_condition(raw.get("condition"))
    if condition is not None and condition["type"] != "none":
        method["condition"] = condition
        offer = raw.get("offerPrice")
        method["offerPrice"] = _money(offer, "invalid_offer_price") if offer not in (None, "") else 0.0
    elif condition is not None:
        method["condition"] = condition
    return method


def _clean_countries(raw: Any) -> List[str]:
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise ValidationError("invalid_countries", "countries must be a list")
    countries: List[str] = []
    for code in raw:
        value = str(code or "").strip().upper()
        if value and value not in countries:
            countries.append(value)
    return countries


def _clean_fields(payload: Mapping[str, Any], *, partial: bool) -> Dict[str, Any]:
    cleaned: Dict[str, Any] = {}
    if "name" in payload or not partial:
        name = payload.get("name")
        if not isinstance(name, str) or not name.strip():
            raise ValidationError("name_required", "Zone name is required")
        cleaned["name"] = name.strip()
    if "countries" in payload or not partial:
        cleaned["countries"] = _clean_countries(payload.get("countries"))
    if "methods" in payload or not partial:
        methods = payload.get("methods") or []
        if not isinstance(methods, list):
            raise ValidationError("invalid_methods", "methods must be a list")
        cleaned["methods"] = [_clean_method(m, i) for i, m in enumerate(methods)]
    return cleaned


def list_zones() -> List[Dict[str, Any]]:
    return [z.as_dict() for z in shipping_zones_repo.list_zones()]


def get_zone(zone_id: str) -> Dict[str, Any]:
    record = shipping_zones_repo.get_zone(zone_id)
    if record is None:
        raise NotFoundError.for_resource("Shipping zone", zone_id)
    return record.as_dict()


def create_zone(payload: Mapping[str, Any]) -> Dict[str, Any]:
    fields = _clean_fields(payload or {}, partial=False)
    zone_id = str(payload.get("id") or new_id())
    validate_resource_id(zone_id)
    try:
        record = shipping_zones_repo.create_zone(id=zone_id, **fields)
    except IntegrityError:
        raise ConflictError("shipping_zone_exists", f"Shipping zone '{zone_id}' already exists")
    LOG.info("Shipping zone created id=%s countries=%s", record.id, ",".join(record.countries or []))
    return record.as_dict()


def update_zone(zone_id: str, payload: Mapping[str, Any]) -> Dict[str, Any]:
    record = shipping_zones_repo.update_zone(zone_id, _clean_fields(payload or {}, partial=True))
    if record is None:
        raise NotFoundError.for_resource("Shipping zone", zone_id)
    return record.as_dict()


def delete_zone(zone_id: str) -> None:
    if not shipping_zones_repo.delete_zone(zone_id):
        raise NotFoundError.for_resource("Shipping zone", zone_id)


def method_applies(
    condition: Optional[Mapping[str, Any]],
    subtotal: float,
    quantity: int,
    weight: float = 0.0,
) -> bool:
    """True when the cart meets the method's offer condition."""
    if not condition or condition.get("type") in (None, "none"):
        return False
    measured = {"price": subtotal, "quantity": quantity, "weight": weight}.get(condition["type"])
    if measured is None:
        return False
    try:
        value = float(condition.get("value"))
    except (TypeError, ValueError):
        return False
    operator = condition.get("operator")
    if operator == "greater_than":
        return measured > value
    if operator == "less_than":
        return measured < value
    if operator == "between":
        try:
            max_value = float(condition.get("maxValue"))
        except (TypeError, ValueError):
            return False
        return value <= measured <= max_value
    return False


def find_zone_for_country(country: str):
    code = (country or "").strip().upper()
    if not code:
        return None
    for zone in shipping_zones_repo.list_zones():
        if code in [str(c).upper() for c in zone.countries or []]:
            return zone
    return None


def quote_shipping(country: str, subtotal: Any, quantity: Any, weight: Any = 0) -> Dict[str, Any]:
    try:
        subtotal_value = float(subtotal or 0)
        quantity_value = int(quantity or 0)
        weight_value = float(weight or 0)
    except (TypeError, ValueError):
        raise ValidationError("invalid_quote_request", "subtotal, quantity and weight must be numbers")
    zone = find_zone_for_country(country)
    if zone is None:
        rate = settings_service.default_shipping_rate()
        LOG.debug("No shipping zone for country=%s; default rate %s", country, rate)
        return {
            "zoneId": None,
            "zoneName": None,
            "methods": [{
                "id": DEFAULT_METHOD_ID,
                "name": DEFAULT_METHOD_NAME,
                "price": rate,
                "description": "",
                "estimatedDelay": "",
                "offerApplied": False,
            }],
        }
    methods = []
    for method in zone.methods or []:
        applies = method_applies(method.get("condition"), subtotal_value, quantity_value, weight_value)
        price = method.get("offerPrice", 0.0) if applies else method.get("price", 0.0)
        methods.append({
            "id": method.get("id"),
            "name": method.get("name"),
            "price": to_money(price or 0),
            "description": method.get("description") or "",
            "estimatedDelay": method.get("estimatedDelay") or "",
            "offerApplied": applies,
        })
    return {"zoneId": zone.id, "zoneName": zone.name, "methods": methods}


__all__ = [
    "CONDITION_TYPES",
    "CONDITION_OPERATORS",
    "list_zones",
    "get_zone",
    "create_zone",
    "update_zone",
    "delete_zone",
    "method_applies",
    "find_zone_for_country",
    "quote_shipping",
]
