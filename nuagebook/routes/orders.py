"""Orders API (admin only): lifecycle, exports, routing and printable PDFs."""
from __future__ import annotations

import datetime
from typing import Any

from flask import Blueprint, Response, jsonify, request

from nuagebook.routes.api_helpers import admin_required, json_body, no_content
from nuagebook.services import fulfillment_pdf, orders_service
from nuagebook.utils.logging import get_logger

bp = Blueprint("orders_api", __name__, url_prefix="/api/orders")
LOG = get_logger("routes.orders")


@bp.route("", methods=["GET"])
@admin_required
def list_orders():
    return jsonify(orders_service.list_orders())


@bp.route("", methods=["POST"])
@admin_required
def create_order():
    return jsonify(orders_service.create_order(json_body())), 201


@bp.route("/next-id", methods=["GET"])
@admin_required
def next_id():
    return jsonify({"orderId": orders_service.next_order_id()})


@bp.route("/customer/<customer_id>", methods=["GET"])
@admin_required
def orders_for_customer(customer_id: str):
    return jsonify(orders_service.list_orders_for_customer(customer_id))


@bp.route("/export.csv", methods=["GET"])
@admin_required
def export_orders():
    raw_ids = request.args.get("ids") or ""
    ids = [i.strip() for i in raw_ids.split(",") if i.strip()]
    filename = f"commandes_export_{datetime.date.today().isoformat()}.csv"
    return Response(
        orders_service.export_orders_csv(ids or None),
        mimetype="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@bp.route("/<order_id>", methods=["GET"])
@admin_required
def get_order(order_id: str):
    return jsonify(orders_service.get_order(order_id))


@bp.route("/<order_id>", methods=["PATCH"])
@admin_required
def update_order(order_id: str):
    return jsonify(orders_service.update_order(order_id, json_body()))


@bp.route("/<order_id>", methods=["DELETE"])
@admin_required
def delete_order(order_id: str):
    orders_service.delete_order(order_id)
    return no_content()


@bp.route("/<order_id>/payment-status", methods=["GET"])
@admin_required
def payment_status(order_id: str):
    return jsonify(orders_service.get_payment_status(order_id))


@bp.route("/<order_id>/comments", methods=["POST"])
@admin_required
def add_comment(order_id: str):
    payload = json_body()
    return jsonify(orders_service.add_order_comment(order_id, payload.get("message"), payload.get("author"))), 201


@bp.route("/<order_id>/routing", methods=["GET"])
@admin_required
def routing(order_id: str):
    return jsonify(orders_service.route_order(order_id))


@bp.route("/<order_id>/pdf/<kind>", methods=["GET"])
@admin_required
def order_pdf(order_id: str, kind: str):
    data = fulfillment_pdf.order_pdf(order_id, kind)
    filename = f"{order_id}-{kind}.pdf"
    return Response(
        data,
        mimetype="application/pdf",
        headers={"Content-Disposition": f'inline; filename="{filename}"'},
    )


def register_orders_api(app: Any) -> None:
    if not getattr(app, "_nb_orders_bp", None):
        app.register_blueprint(bp)
        setattr(app, "_nb_orders_bp", bp)


__all__ = ["register_orders_api", "bp"]
