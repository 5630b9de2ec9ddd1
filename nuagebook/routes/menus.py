"""Navigation menus and key/value settings API (admin only)."""
from __future__ import annotations

from typing import Any

from flask import Blueprint, jsonify

from nuagebook.routes.api_helpers import admin_required, json_body, no_content
from nuagebook.services import menus_service, settings_service

bp = Blueprint("menus_api", __name__, url_prefix="/api")


@bp.route("/menus", methods=["GET"])
@admin_required
def list_menus():
    return jsonify(menus_service.list_menus())


@bp.route("/menus", methods=["POST"])
@admin_required
def create_menu():
    return jsonify(menus_service.create_menu(json_body())), 201


@bp.route("/menus/<menu_id>", methods=["GET"])
@admin_required
def get_menu(menu_id: str):
    return jsonify(menus_service.get_menu(menu_id))


@bp.route("/menus/<menu_id>", methods=["PATCH"])
@admin_required
def update_menu(menu_id: str):
    return jsonify(menus_service.update_menu(menu_id, json_body()))


@bp.route("/menus/<menu_id>", methods=["DELETE"])
@admin_required
def delete_menu(menu_id: str):
    menus_service.delete_menu(menu_id)
    return no_content()


@bp.route("/settings/<key>", methods=["GET"])
@admin_required
def get_setting(key: str):
    return jsonify(settings_service.get_setting(key))


@bp.route("/settings/<key>", methods=["PUT"])
@admin_required
def put_setting(key: str):
    payload = json_body()
    return jsonify(settings_service.put_setting(key, payload.get("value")))


def register_menus_api(app: Any) -> None:
    if not getattr(app, "_nb_menus_bp", None):
        app.register_blueprint(bp)
        setattr(app, "_nb_menus_bp", bp)


__all__ = ["register_menus_api", "bp"]
