"""Application factory and startup wiring.

Orchestrates: DB init, Babel, error handlers and blueprint registration.
"""
from __future__ import annotations

from typing import Any, Mapping, Optional

from flask import Flask

from nuagebook import config as app_config
from nuagebook.db import init_engine_once
from nuagebook.i18n import init_babel
from nuagebook.routes.inject import register_all as register_routes
from nuagebook.utils.logging import get_logger

LOG = get_logger("startup")

MAX_REQUEST_BYTES = 210 * 1024 * 1024


def init_app(app: Any) -> None:
    LOG.debug("init_app starting")
    init_engine_once()
    LOG.debug("DB engine initialized")
    init_babel(app)
    register_routes(app)
    LOG.info("App startup wiring complete config=%s", app_config.summarize_runtime_config())


def create_app(overrides: Optional[Mapping[str, Any]] = None) -> Flask:
    app = Flask("nuagebook")
    app.config.update(
        SECRET_KEY=app_config.secret_key(),
        MAX_CONTENT_LENGTH=MAX_REQUEST_BYTES,
        JSON_SORT_KEYS=False,
    )
    if overrides:
        app.config.update(dict(overrides))
    init_app(app)
    return app


__all__ = ["create_app", "init_app"]
