"""Route tests for orders, customers, shipping, menus and admin maintenance."""
from __future__ import annotations

import pytest

from nuagebook.db.engine import init_engine_once, reset_for_tests
from nuagebook.startup import create_app

ADMIN = {"Authorization": "Bearer admin-token"}


@pytest.fixture(autouse=True)
def in_memory_db(monkeypatch, tmp_path):
    reset_for_tests(drop=True)
    monkeypatch.setenv("NUAGEBOOK_DB_PATH", ":memory:")
    monkeypatch.setenv("NUAGEBOOK_ADMIN_TOKEN", "admin-token")
    monkeypatch.setenv("NUAGEBOOK_STORAGE_ROOT", str(tmp_path / "objects"))
    monkeypatch.delenv("RESEND_API_KEY", raising=False)
    init_engine_once()
    yield
    reset_for_tests(drop=True)


@pytest.fixture
def client():
    app = create_app({"TESTING": True})
    return app.test_client()


def _order_payload(**overrides):
    payload = {
        "customerName": "Ada Reader",
        "customerEmail": "reader@example.com",
        "items": [{"bookId": "voyage", "bookTitle": "Le Voyage", "quantity": 2, "price": 19.9}],
        "shippingAddress": {"street": "1 rue de Paris", "city": "Lyon", "zipCode": "69001", "country": "FR"},
    }
    payload.update(overrides)
    return payload


def test_order_lifecycle(client):
    resp = client.post("/api/orders", json=_order_payload(), headers=ADMIN)
    assert resp.status_code == 201
    order = resp.get_json()
    assert order["id"].startswith("ORD-")
    assert order["totalAmount"] == 39.8
    assert order["status"] == "pending"

    resp = client.post(f"/api/orders/{order['id']}/comments", json={"message": "Appel client"}, headers=ADMIN)
    assert resp.status_code == 201
    assert resp.get_json()["logs"][-1]["type"] == "comment"

    status = client.get(f"/api/orders/{order['id']}/payment-status", headers=ADMIN).get_json()
    assert status == {"orderId": order["id"], "paymentStatus": "pending", "status": "pending"}

    customer_orders = client.get(f"/api/orders/customer/{order['customerId']}", headers=ADMIN).get_json()
    assert [o["id"] for o in customer_orders] == [order["id"]]

    assert client.delete(f"/api/orders/{order['id']}", headers=ADMIN).status_code == 204
    assert client.get(f"/api/orders/{order['id']}", headers=ADMIN).status_code == 404


def test_order_validation_error(client):
    resp = client.post("/api/orders", json=_order_payload(items=[]), headers=ADMIN)

    assert resp.status_code == 400
    assert resp.get_json()["error"] == "items_required"


def test_order_csv_export(client):
    first = client.post("/api/orders", json=_order_payload(), headers=ADMIN).get_json()
    client.post("/api/orders", json=_order_payload(customerEmail="other@example.com"), headers=ADMIN)

    resp = client.get(f"/api/orders/export.csv?ids={first['id']}", headers=ADMIN)

    assert resp.status_code == 200
    assert resp.mimetype == "text/csv"
    assert "attachment" in resp.headers["Content-Disposition"]
    lines = resp.get_data(as_text=True).strip().splitlines()
    assert lines[0] == "ID,Date,Client,Email,Statut,Total,Tracking"
    assert len(lines) == 2
    assert lines[1].startswith(first["id"] + ",")


def test_order_pdf(client):
    order = client.post("/api/orders", json=_order_payload(), headers=ADMIN).get_json()

    resp = client.get(f"/api/orders/{order['id']}/pdf/interior", headers=ADMIN)
    assert resp.status_code == 200
    assert resp.mimetype == "application/pdf"
    assert resp.headers["Content-Disposition"].startswith("inline")
    assert resp.data.startswith(b"%PDF")

    resp = client.get(f"/api/orders/{order['id']}/pdf/poster", headers=ADMIN)
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "invalid_pdf_kind"


def test_order_routing(client):
    client.post("/api/printers", json={"id": "imprimerie-lyon", "name": "Imprimerie Lyon",
                                       "countryCodes": ["FR"], "productionDelayDays": 2}, headers=ADMIN)
    order = client.post("/api/orders", json=_order_payload(), headers=ADMIN).get_json()

    resp = client.get(f"/api/orders/{order['id']}/routing", headers=ADMIN)

    assert resp.status_code == 200
    assert resp.get_json()["printerId"] == "imprimerie-lyon"


def test_customer_create_returns_existing(client):
    resp = client.post("/api/customers", json={"firstName": "Ada", "lastName": "Reader", "email": "reader@example.com"}, headers=ADMIN)
    assert resp.status_code == 201
    created = resp.get_json()

    resp = client.post("/api/customers", json={"firstName": "Ada", "lastName": "R.", "email": "READER@example.com"}, headers=ADMIN)
    assert resp.status_code == 200
    assert resp.get_json()["id"] == created["id"]

    resp = client.get("/api/customers/export.csv", headers=ADMIN)
    assert resp.status_code == 200
    assert "reader@example.com" in resp.get_data(as_text=True)


def test_shipping_quote_is_public(client):
    zone = {
        "id": "europe",
        "name": "Europe",
        "countries": ["fr", "BE"],
        "methods": [{
            "id": "colissimo",
            "name": "Colissimo",
            "price": 6.9,
            "offerPrice": 0,
            "condition": {"type": "price", "operator": "greater_than", "value": 50},
        }],
    }
    assert client.post("/api/shipping-zones", json=zone).status_code == 403
    assert client.post("/api/shipping-zones", json=zone, headers=ADMIN).status_code == 201

    cheap = client.post("/api/shipping/quote", json={"country": "FR", "subtotal": 20, "quantity": 1}).get_json()
    free = client.post("/api/shipping/quote", json={"country": "FR", "subtotal": 80, "quantity": 2}).get_json()

    assert cheap["zoneId"] == "europe"
    assert cheap["methods"][0]["price"] == 6.9
    assert free["methods"][0]["price"] == 0.0
    assert free["methods"][0]["offerApplied"] is True


def test_shipping_quote_falls_back_to_default_rate(client):
    client.put("/api/settings/defaultShippingRate", json={"value": 7.5}, headers=ADMIN)

    quote = client.post("/api/shipping/quote", json={"country": "JP", "subtotal": 20, "quantity": 1}).get_json()

    assert quote["zoneId"] is None
    assert quote["methods"][0]["price"] == 7.5


def test_menus_and_settings(client):
    resp = client.post("/api/menus", json={"id": "main", "label": "Livres", "items": []}, headers=ADMIN)
    assert resp.status_code == 201
    assert resp.get_json()["type"] == "simple"

    assert client.get("/api/settings/banner", headers=ADMIN).status_code == 404
    resp = client.put("/api/settings/banner", json={"value": {"text": "Soldes"}}, headers=ADMIN)
    assert resp.get_json() == {"key": "banner", "value": {"text": "Soldes"}}
    assert client.get("/api/settings/banner", headers=ADMIN).get_json()["value"] == {"text": "Soldes"}


def test_admin_reset_and_stats(client):
    client.post("/api/books", json={"id": "voyage", "name": "Voyage"}, headers=ADMIN)
    client.post("/api/orders", json=_order_payload(), headers=ADMIN)

    stats = client.get("/api/admin/stats", headers=ADMIN).get_json()
    assert stats["books"] == 1
    assert stats["orders"] == 1
    assert stats["customers"] == 1

    resp = client.delete("/api/admin/reset/orders", headers=ADMIN)
    assert resp.status_code == 200
    assert resp.get_json() == {"status": "ok", "scope": "orders", "removed": {"orders": 1}}

    resp = client.delete("/api/admin/reset/everything", headers=ADMIN)
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "invalid_reset_scope"


def test_health_endpoints(client):
    for path in ("/health", "/healthz"):
        resp = client.get(path)
        assert resp.status_code == 200
        body = resp.get_json()
        assert body["status"] == "healthy"
        assert body["checks"]["database"]["status"] == "up"
