"""Admin maintenance API: data resets and dashboard counts."""
from __future__ import annotations

from typing import Any

from flask import Blueprint, jsonify

from nuagebook.routes.api_helpers import _json_error, admin_required
from nuagebook.services import admin_service
from nuagebook.utils.logging import get_logger

bp = Blueprint("admin_api", __name__, url_prefix="/api/admin")
LOG = get_logger("routes.admin")

_RESETS = {
    "all": admin_service.reset_all,
    "books": admin_service.reset_books,
    "customers": admin_service.reset_customers,
    "orders": admin_service.reset_orders,
}


@bp.route("/reset/<scope>", methods=["DELETE"])
@admin_required
def reset(scope: str):
    action = _RESETS.get(scope)
    if action is None:
        return _json_error("invalid_reset_scope", 400, message=f"Unknown reset scope '{scope}'")
    removed = action()
    LOG.warning("Admin reset scope=%s removed=%s", scope, removed)
    return jsonify({"status": "ok", "scope": scope, "removed": removed})


@bp.route("/stats", methods=["GET"])
@admin_required
def stats():
    return jsonify(admin_service.stats())


def register_admin_api(app: Any) -> None:
    if not getattr(app, "_nb_admin_bp", None):
        app.register_blueprint(bp)
        setattr(app, "_nb_admin_bp", bp)


__all__ = ["register_admin_api", "bp"]
