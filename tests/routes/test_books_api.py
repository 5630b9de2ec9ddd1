"""Route tests for the books API and the admin guard."""
from __future__ import annotations

import contextlib

import pytest

from nuagebook.db.engine import init_engine_once, reset_for_tests
from nuagebook.services import page_renderer
from nuagebook.startup import create_app

ADMIN = {"Authorization": "Bearer admin-token"}


@pytest.fixture(autouse=True)
def in_memory_db(monkeypatch, tmp_path):
    reset_for_tests(drop=True)
    monkeypatch.setenv("NUAGEBOOK_DB_PATH", ":memory:")
    monkeypatch.setenv("NUAGEBOOK_ADMIN_TOKEN", "admin-token")
    monkeypatch.setenv("NUAGEBOOK_ASSETS_ROOT", str(tmp_path / "assets"))
    monkeypatch.setenv("NUAGEBOOK_STORAGE_ROOT", str(tmp_path / "objects"))
    init_engine_once()
    yield
    reset_for_tests(drop=True)


@pytest.fixture
def client():
    app = create_app({"TESTING": True})
    return app.test_client()


def _content():
    return {
        "texts": [{"id": "t1", "position": {"x": 10, "y": 10, "width": 20, "height": 10, "layer": 50}}],
        "imageElements": [],
    }


def test_books_require_admin(client):
    resp = client.get("/api/books")

    assert resp.status_code == 403
    assert resp.get_json()["error"] == "permission_denied"

    resp = client.get("/api/books", headers={"Authorization": "Bearer wrong"})
    assert resp.status_code == 403


def test_session_admin_flag_is_accepted(client):
    with client.session_transaction() as sess:
        sess["is_admin"] = True

    resp = client.get("/api/books")

    assert resp.status_code == 200
    assert resp.get_json() == []


def test_book_crud(client):
    resp = client.post("/api/books", json={"name": "Le Voyage", "price": 29.9}, headers=ADMIN)
    assert resp.status_code == 201
    assert resp.get_json()["id"] == "le-voyage"

    resp = client.patch("/api/books/le-voyage", json={"isHidden": True}, headers=ADMIN)
    assert resp.status_code == 200
    assert resp.get_json()["isHidden"] is True

    resp = client.delete("/api/books/le-voyage", headers=ADMIN)
    assert resp.status_code == 204

    resp = client.get("/api/books/le-voyage", headers=ADMIN)
    assert resp.status_code == 404
    body = resp.get_json()
    assert body["error"] == "book_not_found"
    assert body["message"] == "Book with id 'le-voyage' not found"


def test_validation_errors_are_json(client):
    resp = client.post("/api/books", json={"name": ""}, headers=ADMIN)

    assert resp.status_code == 400
    assert resp.get_json()["error"] == "name_required"


def test_non_object_body_is_rejected(client):
    resp = client.post("/api/books", json=["not", "an", "object"], headers=ADMIN)

    assert resp.status_code == 400
    assert resp.get_json()["error"] == "invalid_json"


def test_element_operation_endpoint(client):
    client.post("/api/books", json={"id": "voyage", "name": "Voyage", "contentConfig": _content()}, headers=ADMIN)

    resp = client.patch(
        "/api/books/voyage/elements/t1",
        json={"op": "rotate", "degrees": 450},
        headers=ADMIN,
    )

    assert resp.status_code == 200
    body = resp.get_json()
    assert body["bookId"] == "voyage"
    assert body["contentConfig"]["texts"][0]["position"]["rotation"] == 90.0


def test_content_export_import_endpoints(client):
    client.post("/api/books", json={"id": "voyage", "name": "Voyage", "contentConfig": _content()}, headers=ADMIN)
    client.post("/api/books", json={"id": "copie", "name": "Copie"}, headers=ADMIN)

    exported = client.get("/api/books/voyage/content-export", headers=ADMIN).get_json()
    resp = client.post("/api/books/copie/content-import", json=exported, headers=ADMIN)

    assert resp.status_code == 200
    assert resp.get_json()["contentConfig"] == _content()


def test_avatar_endpoints(client):
    wizard = {"tabs": [{"id": "hero", "type": "character", "variants": [
        {"id": "skin", "type": "options", "options": [{"id": "light", "label": "Claire"}, {"id": "dark", "label": "Foncée"}]},
    ]}]}
    client.post("/api/books", json={"id": "voyage", "name": "Voyage", "wizardConfig": wizard}, headers=ADMIN)

    combos = client.get("/api/books/voyage/avatar-combinations", headers=ADMIN).get_json()
    assert combos["count"] == 2
    assert combos["truncated"] is False

    exported = client.get("/api/books/voyage/avatar-mappings", headers=ADMIN).get_json()
    exported["avatarMappings"]["light"] = "/objects/public/light.png"
    resp = client.post("/api/books/voyage/avatar-mappings", json=exported, headers=ADMIN)

    assert resp.status_code == 200
    assert sorted(resp.get_json()["applied"]) == ["dark", "light"]


def test_render_pages_without_pages(client):
    client.post("/api/books", json={"id": "voyage", "name": "Voyage"}, headers=ADMIN)

    resp = client.post("/api/books/voyage/render-pages", json={"childName": "Léo"}, headers=ADMIN)

    assert resp.status_code == 400
    assert resp.get_json()["error"] == "no_pages"


def test_unknown_route_returns_json_404(client):
    resp = client.get("/api/nothing-here")

    assert resp.status_code == 404
    assert resp.get_json()["error"] == "not_found"


def test_render_pages_personalizes_child_name(client, monkeypatch):
    documents = []

    class FakePage:
        def set_content(self, document, wait_until=None, timeout=None):
            documents.append(document)

        def screenshot(self, type=None, quality=None, full_page=None):
            return b"jpeg"

        def close(self):
            pass

    class FakeBrowser:
        def new_page(self, viewport=None, device_scale_factor=None):
            return FakePage()

        def close(self):
            pass

    class FakePlaywright:
        class chromium:
            @staticmethod
            def launch(headless=True, args=None):
                return FakeBrowser()

    @contextlib.contextmanager
    def fake_sync_playwright():
        yield FakePlaywright()

    monkeypatch.setattr(page_renderer, "sync_playwright", fake_sync_playwright)
    content = {"rawHtmlPages": ["<p>Bonne nuit {{nom_enfant}}</p>"]}
    client.post("/api/books", json={"id": "voyage", "name": "Voyage", "contentConfig": content}, headers=ADMIN)

    resp = client.post("/api/books/voyage/render-pages", json={"childName": "Léa"}, headers=ADMIN)

    assert resp.status_code == 200
    body = resp.get_json()
    assert body["success"] is True
    assert body["pages"][0]["objectPath"] == "/objects/public/previews/voyage/page-1.jpg"
    assert "Bonne nuit Léa" in documents[0]


def test_resolve_texts_applies_selections(client):
    segments = [
        {"text": "Le petit ", "condition": "TXTCOND_hero-child_gender-boy"},
        {"text": "La petite ", "condition": "TXTCOND_hero-child_gender-girl"},
        {"text": "{TXTVAR_hero-child_name}", "variables": ["TXTVAR_hero-child_name"]},
    ]
    content = {"texts": [{"id": "t1", "content": "raw", "conditionalSegments": segments}]}
    client.post("/api/books", json={"id": "voyage", "name": "Voyage", "contentConfig": content}, headers=ADMIN)

    resp = client.post(
        "/api/books/voyage/resolve-texts",
        json={"selections": {"child": {"gender": "girl", "name": "Lily"}}},
        headers=ADMIN,
    )

    assert resp.status_code == 200
    assert resp.get_json()["texts"][0]["content"] == "La petite Lily"

    resp = client.post("/api/books/voyage/resolve-texts", json={"selections": ["girl"]}, headers=ADMIN)
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "invalid_selections"


def test_check_import_and_storyboard_routes_validate_input(client):
    resp = client.post("/api/books/check-import", json={"idmlPath": "/objects/private/missing.idml"}, headers=ADMIN)

    assert resp.status_code == 200
    assert resp.get_json()["results"]["idml"]["valid"] is False

    resp = client.post("/api/books/import-storyboard", json={"bookId": "voyage"}, headers=ADMIN)
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "storyboard_fields_required"

    resp = client.post("/api/books/import-storyboard", json={})
    assert resp.status_code == 403
