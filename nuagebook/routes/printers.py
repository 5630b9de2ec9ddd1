"""Printer partners API (admin only)."""
from __future__ import annotations

from typing import Any

from flask import Blueprint, jsonify

from nuagebook.routes.api_helpers import admin_required, json_body, no_content
from nuagebook.services import printers_service

bp = Blueprint("printers_api", __name__, url_prefix="/api/printers")


@bp.route("", methods=["GET"])
@admin_required
def list_printers():
    return jsonify(printers_service.list_printers())


@bp.route("", methods=["POST"])
@admin_required
def create_printer():
    return jsonify(printers_service.create_printer(json_body())), 201


@bp.route("/<printer_id>", methods=["GET"])
@admin_required
def get_printer(printer_id: str):
    return jsonify(printers_service.get_printer(printer_id))


@bp.route("/<printer_id>", methods=["PATCH"])
@admin_required
def update_printer(printer_id: str):
    return jsonify(printers_service.update_printer(printer_id, json_body()))


@bp.route("/<printer_id>", methods=["DELETE"])
@admin_required
def delete_printer(printer_id: str):
    printers_service.delete_printer(printer_id)
    return no_content()


def register_printers_api(app: Any) -> None:
    if not getattr(app, "_nb_printers_bp", None):
        app.register_blueprint(bp)
        setattr(app, "_nb_printers_bp", bp)


__all__ = ["register_printers_api", "bp"]
