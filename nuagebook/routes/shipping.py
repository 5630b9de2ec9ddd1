"""Shipping zones API; the quote endpoint is public for checkout."""
from __future__ import annotations

from typing import Any

from flask import Blueprint, jsonify

from nuagebook.routes.api_helpers import admin_required, json_body, no_content
from nuagebook.services import shipping_service

bp = Blueprint("shipping_api", __name__, url_prefix="/api")


@bp.route("/shipping-zones", methods=["GET"])
@admin_required
def list_zones():
    return jsonify(shipping_service.list_zones())


@bp.route("/shipping-zones", methods=["POST"])
@admin_required
def create_zone():
    return jsonify(shipping_service.create_zone(json_body())), 201


@bp.route("/shipping-zones/<zone_id>", methods=["GET"])
@admin_required
def get_zone(zone_id: str):
    return jsonify(shipping_service.get_zone(zone_id))


@bp.route("/shipping-zones/<zone_id>", methods=["PATCH"])
@admin_required
def update_zone(zone_id: str):
    return jsonify(shipping_service.update_zone(zone_id, json_body()))


@bp.route("/shipping-zones/<zone_id>", methods=["DELETE"])
@admin_required
def delete_zone(zone_id: str):
    shipping_service.delete_zone(zone_id)
    return no_content()


@bp.route("/shipping/quote", methods=["POST"])
def quote():
    payload = json_body()
    result = shipping_service.quote_shipping(
        payload.get("country") or "",
        payload.get("subtotal"),
        payload.get("quantity"),
        payload.get("weight", 0),
    )
    return jsonify(result)


def register_shipping_api(app: Any) -> None:
    if not getattr(app, "_nb_shipping_bp", None):
        app.register_blueprint(bp)
        setattr(app, "_nb_shipping_bp", bp)


__all__ = ["register_shipping_api", "bp"]
