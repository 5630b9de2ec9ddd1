"""Order lifecycle orchestration.

Creation resolves the customer by email, stamps a sequential
``ORD-YY-NNNNNNN`` id and sends the confirmation email. Status changes are
journaled in the order's ``logs`` array; moving to ``shipped`` triggers the
shipping email. Email failures are logged and never fail the order.
"""
from __future__ import annotations

import csv
import datetime
import io
from typing import Any, Dict, Iterable, List, Mapping, Optional

from nuagebook.db.models import ORDER_STATUSES, PAYMENT_STATUSES
from nuagebook.db.models.base import new_id, utcnow
from nuagebook.db.repositories import orders_repo
from nuagebook.services import customers_service, email_delivery, printers_service
from nuagebook.utils.errors import ConflictError, NotFoundError, ValidationError, validate_resource_id
from nuagebook.utils.identity import is_valid_email, normalize_email
from nuagebook.utils.logging import get_logger
from nuagebook.utils.text import to_money

LOG = get_logger("orders_service")

CSV_HEADER = ("ID", "Date", "Client", "Email", "Statut", "Total", "Tracking")
LOG_TYPES = ("status_change", "comment", "system")
SYSTEM_AUTHOR = "Système"
ADMIN_AUTHOR = "Admin"


def next_order_id(today: Optional[datetime.date] = None) -> str:
    seq = orders_repo.next_sequence_value()
    year = (today or datetime.date.today()).strftime("%y")
    return f"ORD-{year}-{seq:07d}"


def _log_entry(entry_type: str, message: str, author: str) -> Dict[str, Any]:
    return {
        "id": new_id()[:12],
        "date": utcnow().isoformat(),
        "type": entry_type,
        "message": message,
        "author": author,
    }


def _clean_items(raw: Any) -> List[Dict[str, Any]]:
    if not isinstance(raw, list) or not raw:
        raise ValidationError("items_required", "At least one item is required")
    items = []
    for index, item in enumerate(raw):
        if not isinstance(item, Mapping):
            raise ValidationError("invalid_item", f"Item {index} must be an object")
        if not item.get("bookId"):
            raise ValidationError("invalid_item", f"Item {index} requires bookId")
        try:
            quantity = int(item.get("quantity", 1))
        except (TypeError, ValueError):
            raise ValidationError("invalid_item", f"Item {index} quantity must be an integer")
        if quantity < 1:
            raise ValidationError("invalid_item", f"Item {index} quantity must be >= 1")
        try:
            price = to_money(item.get("price", 0))
        except ValueError:
            raise ValidationError("invalid_item", f"Item {index} price must be a number")
        if price < 0:
            raise ValidationError("invalid_item", f"Item {index} price must be >= 0")
        cleaned = dict(item)
        cleaned.update({
            "id": str(item.get("id") or new_id()[:12]),
            "bookId": str(item["bookId"]),
            "bookTitle": str(item.get("bookTitle") or ""),
            "quantity": quantity,
            "price": price,
            "configuration": dict(item.get("configuration") or {}),
        })
        items.append(cleaned)
    return items


def _require_order(order_id: str):
    record = orders_repo.get_order(order_id)
    if record is None:
        raise NotFoundError.for_resource("Order", order_id)
    return record


def _notify(sender, order: Mapping[str, Any]) -> None:
    try:
        sender(order)
    except email_delivery.EmailDeliveryError as exc:
        LOG.warning("Order email failed order=%s: %s", order.get("id"), exc)


def list_orders() -> List[Dict[str, Any]]:
    return [o.as_dict() for o in orders_repo.list_orders()]


def get_order(order_id: str) -> Dict[str, Any]:
    return _require_order(order_id).as_dict()


def list_orders_for_customer(customer_id: str) -> List[Dict[str, Any]]:
    return [o.as_dict() for o in orders_repo.list_orders_for_customer(customer_id)]


def create_order(payload: Mapping[str, Any]) -> Dict[str, Any]:
    payload = payload or {}
    email = normalize_email(payload.get("customerEmail"))
    if not is_valid_email(email):
        raise ValidationError("invalid_email", "A valid customerEmail is required")
    name = payload.get("customerName")
    if not isinstance(name, str) or not name.strip():
        raise ValidationError("customer_name_required", "customerName is required")
    items = _clean_items(payload.get("items"))
    if payload.get("totalAmount") is not None:
        try:
            total = to_money(payload["totalAmount"])
        except ValueError:
            raise ValidationError("invalid_total", "totalAmount must be a number")
    else:
        total = to_money(sum(i["price"] * i["quantity"] for i in items))
    status = payload.get("status") or "pending"
    if status not in ORDER_STATUSES:
        raise ValidationError("invalid_status", f"status must be one of {', '.join(ORDER_STATUSES)}")
    payment_status = payload.get("paymentStatus") or "pending"
    if payment_status not in PAYMENT_STATUSES:
        raise ValidationError("invalid_payment_status", f"paymentStatus must be one of {', '.join(PAYMENT_STATUSES)}")

    order_id = payload.get("id")
    if order_id:
        order_id = validate_resource_id(str(order_id))
        if orders_repo.get_order(order_id) is not None:
            raise ConflictError("order_exists", f"Order '{order_id}' already exists")
    address = payload.get("shippingAddress")
    customer = customers_service.resolve_customer(email, name, address)
    order_id = order_id or next_order_id()
    try:
        record = orders_repo.create_order(
            id=str(order_id),
            customer_id=customer["id"],
            customer_name=name.strip(),
            customer_email=email,
            status=status,
            payment_status=payment_status,
            items=items,
            total_amount=total,
            shipping_address=dict(address) if isinstance(address, Mapping) else None,
            tracking_number=payload.get("trackingNumber"),
            logs=[_log_entry("system", "Commande créée", SYSTEM_AUTHOR)],
        )
    except orders_repo.OrderExistsError:
        raise ConflictError("order_exists", f"Order '{order_id}' already exists")
    customers_service.refresh_customer_totals(customer["id"])
    order = record.as_dict()
    LOG.info("Order created id=%s customer=%s total=%s", order["id"], customer["id"], total)
    _notify(email_delivery.send_order_confirmation, order)
    return order


def update_order(order_id: str, patch: Mapping[str, Any], author: str = ADMIN_AUTHOR) -> Dict[str, Any]:
    record = _require_order(order_id)
    patch = patch or {}
    changes: Dict[str, Any] = {}
    logs = list(record.logs or [])
    previous_status = record.status
    new_status = patch.get("status")
    if new_status is not None and new_status != previous_status:
        if new_status not in ORDER_STATUSES:
            raise ValidationError("invalid_status", f"status must be one of {', '.join(ORDER_STATUSES)}")
        changes["status"] = new_status
        logs.append(_log_entry("status_change", f"Statut changé de {previous_status} à {new_status}", author))
    if "paymentStatus" in patch:
        if patch["paymentStatus"] not in PAYMENT_STATUSES:
            raise ValidationError("invalid_payment_status", f"paymentStatus must be one of {', '.join(PAYMENT_STATUSES)}")
        changes["payment_status"] = patch["paymentStatus"]
    if "trackingNumber" in patch:
        changes["tracking_number"] = patch["trackingNumber"] or None
    if "shippingAddress" in patch:
        address = patch["shippingAddress"]
        if address is not None and not isinstance(address, Mapping):
            raise ValidationError("invalid_address", "shippingAddress must be an object")
        changes["shipping_address"] = dict(address) if address else None
    if "items" in patch:
        changes["items"] = _clean_items(patch["items"])
        if "totalAmount" not in patch:
            changes["total_amount"] = to_money(sum(i["price"] * i["quantity"] for i in changes["items"]))
    if "totalAmount" in patch:
        try:
            changes["total_amount"] = to_money(patch["totalAmount"])
        except ValueError:
            raise ValidationError("invalid_total", "totalAmount must be a number")
    for key in ("customerName", "customerEmail"):
        if key in patch:
            value = patch[key]
            if key == "customerEmail":
                if not is_valid_email(value):
                    raise ValidationError("invalid_email", "A valid customerEmail is required")
                value = normalize_email(value)
            elif not isinstance(value, str) or not value.strip():
                raise ValidationError("customer_name_required", "customerName is required")
            changes["customer_email" if key == "customerEmail" else "customer_name"] = value.strip()
    previous_customer_id = record.customer_id
    new_email = changes.get("customer_email")
    if new_email and new_email != record.customer_email:
        customer = customers_service.resolve_customer(
            new_email,
            changes.get("customer_name") or record.customer_name,
            changes.get("shipping_address", record.shipping_address),
        )
        changes["customer_id"] = customer["id"]
    changes["logs"] = logs
    updated = orders_repo.update_order(order_id, changes)
    if previous_customer_id and previous_customer_id != updated.customer_id:
        customers_service.refresh_customer_totals(previous_customer_id)
    customers_service.refresh_customer_totals(updated.customer_id)
    order = updated.as_dict()
    if changes.get("status") == "shipped":
        _notify(email_delivery.send_shipping_confirmation, order)
    return order


def add_order_comment(order_id: str, message: str, author: Optional[str] = None) -> Dict[str, Any]:
    if not isinstance(message, str) or not message.strip():
        raise ValidationError("message_required", "Comment message is required")
    record = _require_order(order_id)
    logs = list(record.logs or [])
    logs.append(_log_entry("comment", message.strip(), author or ADMIN_AUTHOR))
    return orders_repo.update_order(order_id, {"logs": logs}).as_dict()


def get_payment_status(order_id: str) -> Dict[str, Any]:
    record = _require_order(order_id)
    return {"orderId": record.id, "paymentStatus": record.payment_status, "status": record.status}


def delete_order(order_id: str) -> None:
    record = _require_order(order_id)
    customer_id = record.customer_id
    orders_repo.delete_order(order_id)
    customers_service.refresh_customer_totals(customer_id)
    LOG.info("Order deleted id=%s", order_id)


def export_orders_csv(order_ids: Optional[Iterable[str]] = None) -> str:
    ids = [i for i in (order_ids or []) if i]
    records = orders_repo.list_orders_by_ids(ids) if ids else orders_repo.list_orders()
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(CSV_HEADER)
    for order in records:
        writer.writerow([
            order.id,
            order.created_at.isoformat() if order.created_at else "",
            order.customer_name,
            order.customer_email,
            order.status,
            order.total_amount,
            order.tracking_number or "",
        ])
    return buffer.getvalue()


def route_order(order_id: str) -> Dict[str, Any]:
    return printers_service.route_order(_require_order(order_id).as_dict())


__all__ = [
    "CSV_HEADER",
    "next_order_id",
    "list_orders",
    "get_order",
    "list_orders_for_customer",
    "create_order",
    "update_order",
    "add_order_comment",
    "get_payment_status",
    "delete_order",
    "export_orders_csv",
    "route_order",
]
