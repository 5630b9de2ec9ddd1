"""Customer records API (admin only)."""
from __future__ import annotations

import datetime
from typing import Any

from flask import Blueprint, Response, jsonify

from nuagebook.routes.api_helpers import admin_required, json_body, no_content
from nuagebook.services import customers_service, orders_service

bp = Blueprint("customers_api", __name__, url_prefix="/api/customers")


@bp.route("", methods=["GET"])
@admin_required
def list_customers():
    return jsonify(customers_service.list_customers())


@bp.route("", methods=["POST"])
@admin_required
def create_customer():
    customer, created = customers_service.create_customer(json_body())
    return jsonify(customer), (201 if created else 200)


@bp.route("/export.csv", methods=["GET"])
@admin_required
def export_customers():
    filename = f"clients_export_{datetime.date.today().isoformat()}.csv"
    return Response(
        customers_service.export_customers_csv(),
        mimetype="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@bp.route("/<customer_id>", methods=["GET"])
@admin_required
def get_customer(customer_id: str):
    return jsonify(customers_service.get_customer(customer_id))


@bp.route("/<customer_id>", methods=["PATCH"])
@admin_required
def update_customer(customer_id: str):
    return jsonify(customers_service.update_customer(customer_id, json_body()))


@bp.route("/<customer_id>", methods=["DELETE"])
@admin_required
def delete_customer(customer_id: str):
    customers_service.delete_customer(customer_id)
    return no_content()


@bp.route("/<customer_id>/orders", methods=["GET"])
@admin_required
def customer_orders(customer_id: str):
    customers_service.get_customer(customer_id)
    return jsonify(orders_service.list_orders_for_customer(customer_id))


def register_customers_api(app: Any) -> None:
    if not getattr(app, "_nb_customers_bp", None):
        app.register_blueprint(bp)
        setattr(app, "_nb_customers_bp", bp)


__all__ = ["register_customers_api", "bp"]
