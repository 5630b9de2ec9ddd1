"""Logger hierarchy for nuagebook.

Only the ``nuagebook`` root logger owns a handler. Area loggers such as
``get_logger("orders_service")`` are its children (``nuagebook.orders_service``)
and propagate to it, so the level from `nuagebook.config.log_level_name()`
and the single stream handler apply everywhere.
"""
from __future__ import annotations

import logging
import threading

from nuagebook import config as app_config

ROOT_NAME = app_config.APP_NAME
LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

_LOCK = threading.Lock()
_configured = False


def _configure_root() -> logging.Logger:
    global _configured
    root = logging.getLogger(ROOT_NAME)
    if _configured:
        return root
    with _LOCK:
        if not _configured:
            level = logging.getLevelName(app_config.log_level_name())
            root.setLevel(level if isinstance(level, int) else logging.INFO)
            if not root.handlers:
                handler = logging.StreamHandler()
                handler.setFormatter(logging.Formatter(LOG_FORMAT))
                root.addHandler(handler)
            root.propagate = False
            _configured = True
    return root


def get_logger(area: str = ROOT_NAME) -> logging.Logger:
    root = _configure_root()
    if area in ("", ROOT_NAME):
        return root
    prefix = ROOT_NAME + "."
    return root.getChild(area[len(prefix):] if area.startswith(prefix) else area)


__all__ = ["get_logger"]
