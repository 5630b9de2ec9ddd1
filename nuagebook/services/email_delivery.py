"""Transactional order emails (confirmation, shipping) via the Resend HTTP API."""
from __future__ import annotations

import datetime
import html
import re
from pathlib import Path
from typing import Any, Dict, Mapping

import requests
from jinja2 import Environment, FileSystemLoader, TemplateError, select_autoescape

from nuagebook import config as app_config
from nuagebook.utils.logging import get_logger
from nuagebook.utils.text import format_price

LOG = get_logger("email_delivery")

TEMPLATES_DIR = Path(__file__).resolve().parent.parent / "templates" / "emails"
CONFIRMATION_TEMPLATE = "order_confirmation.html"
SHIPPED_TEMPLATE = "order_shipped.html"
_HTML_BREAK_PATTERN = re.compile(r"</p>|<br\s*/?>", re.IGNORECASE)
_TAG_PATTERN = re.compile(r"<[^>]+>")

_JINJA_ENV = Environment(
    loader=FileSystemLoader(str(TEMPLATES_DIR)),
    autoescape=select_autoescape(["html"]),
    trim_blocks=True,
    lstrip_blocks=True,
)
_JINJA_ENV.filters["price"] = format_price


class EmailDeliveryError(RuntimeError):
    """Base error for email delivery failures."""


def email_enabled() -> bool:
    return app_config.email_api_key() is not None


def render_email(template_name: str, order: Mapping[str, Any]) -> str:
    context = {
        "order": order,
        "year": datetime.date.today().year,
        "logo_url": None,
    }
    try:
        return _JINJA_ENV.get_template(template_name).render(**context)
    except TemplateError as exc:
        raise EmailDeliveryError("template_render_failed") from exc


def _html_to_text(value: str) -> str:
    if not value:
        return ""
    working = _HTML_BREAK_PATTERN.sub("\n", value)
    working = _TAG_PATTERN.sub("", working)
    working = html.unescape(working)
    working = re.sub(r"[ \t]+", " ", working)
    working = re.sub(r"\n\s*\n+", "\n\n", working)
    return working.strip()


def _post_email(recipient: str, subject: str, html_body: str, timeout: int = 15) -> Dict[str, Any]:
    api_key = app_config.email_api_key()
    headers = {"Authorization": f"Bearer {api_key}", "Content-Type": "application/json"}
    body = {
        "from": app_config.email_from(),
        "to": [recipient],
        "subject": subject,
        "html": html_body,
        "text": _html_to_text(html_body),
    }
    try:
        resp = requests.post(f"{app_config.email_api_base()}/emails", json=body, headers=headers, timeout=timeout)
    except requests.RequestException as exc:
        raise EmailDeliveryError("email_transport_failed") from exc
    if resp.status_code >= 400:
        LOG.warning("Email API rejected message status=%s body=%s", resp.status_code, resp.text[:300])
        raise EmailDeliveryError(f"email_api_status_{resp.status_code}")
    try:
        return resp.json()
    except ValueError:
        return {}


def _send(template_name: str, subject: str, order: Mapping[str, Any]) -> bool:
    if not email_enabled():
        LOG.info("Email disabled (no RESEND_API_KEY); skipping %s for order=%s", template_name, order.get("id"))
        return False
    recipient = order.get("customerEmail")
    if not recipient:
        raise EmailDeliveryError("recipient_missing")
    payload = _post_email(str(recipient), subject, render_email(template_name, order))
    LOG.info("Email %s sent order=%s to=%s id=%s", template_name, order.get("id"), recipient, payload.get("id"))
    return True


def send_order_confirmation(order: Mapping[str, Any]) -> bool:
    return _send(CONFIRMATION_TEMPLATE, f"Confirmation de votre commande {order.get('id')}", order)


def send_shipping_confirmation(order: Mapping[str, Any]) -> bool:
    return _send(SHIPPED_TEMPLATE, f"Votre commande {order.get('id')} est en route !", order)


__all__ = [
    "EmailDeliveryError",
    "email_enabled",
    "render_email",
    "send_order_confirmation",
    "send_shipping_confirmation",
]
