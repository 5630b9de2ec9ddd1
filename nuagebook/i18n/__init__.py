"""Flask-Babel setup and request locale selection."""
from __future__ import annotations

from pathlib import Path
from typing import Any, Optional

from flask import has_request_context, request, session
from flask_babel import Babel

from nuagebook.utils.logging import get_logger

LOG = get_logger("i18n")

SESSION_LOCALE_KEY = "nb_preferred_locale"
SUPPORTED_LANGUAGES = ("fr", "en")
DEFAULT_LANGUAGE = "fr"
TRANSLATIONS_DIR = Path(__file__).resolve().parent.parent / "translations"


def normalize_language_choice(raw: Optional[str]) -> Optional[str]:
    if not isinstance(raw, str):
        return None
    code = raw.strip().lower().replace("_", "-").split("-", 1)[0]
    return code if code in SUPPORTED_LANGUAGES else None


def select_locale() -> str:
    """Session preference, then Accept-Language, then French."""
    if not has_request_context():
        return DEFAULT_LANGUAGE
    preferred = normalize_language_choice(session.get(SESSION_LOCALE_KEY))
    if preferred:
        return preferred
    best = request.accept_languages.best_match(SUPPORTED_LANGUAGES)
    return best or DEFAULT_LANGUAGE


def init_babel(app: Any) -> Babel:
    if getattr(app, "_nb_babel", None):
        return app._nb_babel
    app.config.setdefault("BABEL_DEFAULT_LOCALE", DEFAULT_LANGUAGE)
    app.config.setdefault("BABEL_TRANSLATION_DIRECTORIES", str(TRANSLATIONS_DIR))
    babel = Babel(app, locale_selector=select_locale)
    setattr(app, "_nb_babel", babel)
    LOG.debug("Flask-Babel initialised default=%s", DEFAULT_LANGUAGE)
    return babel


__all__ = [
    "SESSION_LOCALE_KEY",
    "SUPPORTED_LANGUAGES",
    "DEFAULT_LANGUAGE",
    "normalize_language_choice",
    "select_locale",
    "init_babel",
]
