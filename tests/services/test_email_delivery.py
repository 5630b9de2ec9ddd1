"""Tests for transactional order emails."""
from __future__ import annotations

from typing import Dict, List

import pytest  # type: ignore[import-not-found]
import requests

from nuagebook.services import email_delivery


def _order(**overrides):
    order = {
        "id": "ORD-26-0000007",
        "customerName": "Ada <Lovelace>",
        "customerEmail": "ada@example.com",
        "items": [{"bookTitle": "Le Voyage", "quantity": 2, "price": 19.9}],
        "totalAmount": 39.8,
        "shippingAddress": {"street": "1 rue de Paris", "zipCode": "69001", "city": "Lyon", "country": "France"},
        "trackingNumber": None,
    }
    order.update(overrides)
    return order


class FakeResponse:
    def __init__(self, status_code=200, payload=None):
        self.status_code = status_code
        self._payload = payload or {"id": "email-1"}
        self.text = "error body"

    def json(self):
        return self._payload


@pytest.fixture
def api_calls(monkeypatch) -> List[Dict[str, object]]:
    monkeypatch.setenv("RESEND_API_KEY", "re_test")
    monkeypatch.setenv("NUAGEBOOK_EMAIL_API_BASE", "https://mail.test/")
    calls: List[Dict[str, object]] = []

    def fake_post(url, json=None, headers=None, timeout=None):
        calls.append({"url": url, "json": json, "headers": headers, "timeout": timeout})
        return FakeResponse()

    monkeypatch.setattr(email_delivery.requests, "post", fake_post)
    return calls


def test_render_confirmation_escapes_and_formats_prices():
    body = email_delivery.render_email(email_delivery.CONFIRMATION_TEMPLATE, _order())

    assert "ORD-26-0000007" in body
    assert "Ada &lt;Lovelace&gt;" in body
    assert "39,80 €" in body
    assert "Lyon" in body


def test_shipped_email_shows_tracking_only_when_set():
    without = email_delivery.render_email(email_delivery.SHIPPED_TEMPLATE, _order())
    with_tracking = email_delivery.render_email(email_delivery.SHIPPED_TEMPLATE, _order(trackingNumber="TRK-42"))

    assert "TRK-42" not in without
    assert "TRK-42" in with_tracking


def test_send_order_confirmation_posts_to_api(api_calls):
    assert email_delivery.send_order_confirmation(_order()) is True

    call = api_calls[0]
    assert call["url"] == "https://mail.test/emails"
    assert call["timeout"] == 15
    assert call["headers"]["Authorization"] == "Bearer re_test"
    assert call["json"]["to"] == ["ada@example.com"]
    assert call["json"]["subject"] == "Confirmation de votre commande ORD-26-0000007"
    assert "Merci pour votre commande" in call["json"]["text"]
    assert "<td" not in call["json"]["text"]


def test_shipping_subject(api_calls):
    email_delivery.send_shipping_confirmation(_order(trackingNumber="TRK-42"))

    assert api_calls[0]["json"]["subject"] == "Votre commande ORD-26-0000007 est en route !"


def test_send_is_skipped_without_api_key(monkeypatch):
    monkeypatch.delenv("RESEND_API_KEY", raising=False)

    def fail_post(*_a, **_k):
        raise AssertionError("should not be called")

    monkeypatch.setattr(email_delivery.requests, "post", fail_post)

    assert email_delivery.send_order_confirmation(_order()) is False


def test_api_error_raises_delivery_error(api_calls, monkeypatch):
    monkeypatch.setattr(email_delivery.requests, "post", lambda *a, **k: FakeResponse(status_code=422))

    with pytest.raises(email_delivery.EmailDeliveryError) as exc:
        email_delivery.send_order_confirmation(_order())

    assert str(exc.value) == "email_api_status_422"


def test_transport_error_raises_delivery_error(api_calls, monkeypatch):
    def broken(*_a, **_k):
        raise requests.ConnectionError("down")

    monkeypatch.setattr(email_delivery.requests, "post", broken)

    with pytest.raises(email_delivery.EmailDeliveryError):
        email_delivery.send_shipping_confirmation(_order())


def test_missing_recipient_raises(api_calls):
    with pytest.raises(email_delivery.EmailDeliveryError):
        email_delivery.send_order_confirmation(_order(customerEmail=""))
