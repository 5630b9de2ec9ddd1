"""Health check endpoints.

``/health`` reports database reachability with timing; ``/healthz`` is an
alias kept for container / load balancer checks.
"""
from __future__ import annotations

import datetime
import time
from typing import Any

from flask import Blueprint, jsonify
from sqlalchemy import text

from nuagebook.db.engine import app_session
from nuagebook.utils.logging import get_logger

LOG = get_logger("health")

bp = Blueprint("health", __name__)
_STARTED_AT = time.monotonic()


def _check_database() -> dict:
    started = time.perf_counter()
    try:
        with app_session() as s:
            s.execute(text("SELECT 1"))
    except Exception as exc:
        LOG.warning("Health DB check failed: %s", exc)
        return {"status": "down", "responseTime": None}
    return {"status": "up", "responseTime": round((time.perf_counter() - started) * 1000, 2)}


@bp.route("/health", methods=["GET"])
@bp.route("/healthz", methods=["GET"])
def health():
    database = _check_database()
    healthy = database["status"] == "up"
    payload = {
        "status": "healthy" if healthy else "unhealthy",
        "timestamp": datetime.datetime.now(datetime.timezone.utc).isoformat(),
        "uptime": round(time.monotonic() - _STARTED_AT, 3),
        "checks": {"database": database},
    }
    return jsonify(payload), (200 if healthy else 503)


def register_health(app: Any) -> None:
    if getattr(app, "_nb_health_bp", None):
        return
    app.register_blueprint(bp)
    setattr(app, "_nb_health_bp", bp)
    LOG.debug("health blueprint registered")


__all__ = ["register_health"]
