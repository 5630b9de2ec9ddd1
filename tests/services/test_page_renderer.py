"""Tests for page HTML preparation and headless rendering (browser faked)."""
from __future__ import annotations

import contextlib
from typing import Dict, List

import pytest

from nuagebook.db.engine import init_engine_once, reset_for_tests
from nuagebook.db.repositories import books_repo
from nuagebook.services import object_storage, page_renderer
from nuagebook.utils.errors import ValidationError


@pytest.fixture(autouse=True)
def in_memory_db(monkeypatch, tmp_path):
    reset_for_tests(drop=True)
    monkeypatch.setenv("NUAGEBOOK_DB_PATH", ":memory:")
    monkeypatch.setenv("NUAGEBOOK_STORAGE_ROOT", str(tmp_path / "objects"))
    monkeypatch.setenv("NUAGEBOOK_PUBLIC_BASE_URL", "http://render.test")
    init_engine_once()
    yield
    reset_for_tests(drop=True)


class FakePage:
    def __init__(self, browser, viewport):
        self.browser = browser
        self.viewport = viewport
        self.closed = False

    def set_content(self, document, wait_until=None, timeout=None):
        if "boom" in document:
            raise RuntimeError("navigation failed")
        self.browser.documents.append(document)

    def screenshot(self, type=None, quality=None, full_page=None):
        return b"jpeg-bytes"

    def close(self):
        self.closed = True


class FakeBrowser:
    def __init__(self):
        self.documents: List[str] = []
        self.pages: List[FakePage] = []
        self.closed = False

    def new_page(self, viewport=None, device_scale_factor=None):
        page = FakePage(self, viewport)
        self.pages.append(page)
        return page

    def close(self):
        self.closed = True


@pytest.fixture
def browser(monkeypatch):
    fake = FakeBrowser()
    launches: List[Dict[str, object]] = []

    class FakeChromium:
        def launch(self, headless=True, args=None):
            launches.append({"headless": headless})
            return fake

    class FakePlaywright:
        chromium = FakeChromium()

    @contextlib.contextmanager
    def fake_sync_playwright():
        yield FakePlaywright()

    monkeypatch.setattr(page_renderer, "sync_playwright", fake_sync_playwright)
    fake.launches = launches  # type: ignore[attr-defined]
    return fake


def test_prepare_page_html_wraps_fragment_and_escapes_variables():
    document = page_renderer.prepare_page_html(
        "&lt;p&gt;Bonjour {{childName}}&lt;/p&gt;<img src=\"/assets/books/b/a.png\">",
        css="p { color: red; }",
        variables={"childName": "<Léo>"},
        base_url="http://render.test/",
    )

    assert document.startswith("<!DOCTYPE html>")
    assert "<style>p { color: red; }</style></head>" in document
    assert "<p>Bonjour &lt;Léo&gt;</p>" in document
    assert 'src="http://render.test/assets/books/b/a.png"' in document


def test_prepare_page_html_injects_style_in_existing_head_and_maps_images():
    document = page_renderer.prepare_page_html(
        "<html><head><title>p</title></head><body><img src='image/1.png'></body></html>",
        css="body{}",
        image_map={"1.png": "/objects/public/uploads/s/1.png"},
        base_url="",
    )

    assert "<style>body{}</style></head>" in document
    assert "src='/objects/public/uploads/s/1.png'" in document


def test_render_pages_stores_previews_and_reports_failures(browser):
    result = page_renderer.render_pages(
        "voyage",
        [{"html": "<p>ok</p>", "width": 500, "height": 300}, {"html": "<p>boom</p>"}, {"html": "<p>again</p>", "pageIndex": 7}],
    )

    assert result["success"] is False
    assert result["pages"] == [
        {"pageIndex": 1, "objectPath": "/objects/public/previews/voyage/page-1.jpg"},
        {"pageIndex": 7, "objectPath": "/objects/public/previews/voyage/page-7.jpg"},
    ]
    assert result["failed"] == [{"pageIndex": 2, "error": "navigation failed"}]
    assert object_storage.read_object("public/previews/voyage/page-1.jpg").data == b"jpeg-bytes"
    assert browser.pages[0].viewport == {"width": 500, "height": 300}
    assert browser.pages[1].viewport == {"width": 400, "height": 293}
    assert all(page.closed for page in browser.pages)
    assert browser.closed is True
    assert browser.launches == [{"headless": True}]


def test_render_pages_without_pages_skips_browser(browser):
    assert page_renderer.render_pages("voyage", []) == {"success": True, "pages": [], "failed": []}
    assert browser.launches == []


def test_render_book_pages_uses_content_config(browser):
    books_repo.create_book(id="voyage", name="Voyage", price=0.0, content_config={
        "rawHtmlPages": ["<p>Bonjour {childName}</p>"],
        "pages": [{"pageIndex": 1, "width": 640, "height": 480}],
        "cssContent": "p{}",
    })

    result = page_renderer.render_book_pages("voyage", "Zoé")

    assert result["success"] is True
    assert "Bonjour Zoé" in browser.documents[0]
    assert browser.pages[0].viewport == {"width": 640, "height": 480}


def test_render_book_pages_requires_pages():
    books_repo.create_book(id="voyage", name="Voyage", price=0.0, content_config={})

    with pytest.raises(ValidationError) as exc:
        page_renderer.render_book_pages("voyage")

    assert exc.value.code == "no_pages"


def test_prepare_page_html_decodes_ampersand_before_quotes():
    document = page_renderer.prepare_page_html("<p>&amp;quot;ok&amp;quot;</p>", base_url="")

    assert '<p>"ok"</p>' in document


def test_render_book_pages_fills_nom_enfant_placeholders(browser):
    books_repo.create_book(id="voyage", name="Voyage", price=0.0, content_config={
        "rawHtmlPages": ["<p>Il était une fois {{nom_enfant}}</p>", "<p>Bravo {nom_enfant} !</p>"],
    })

    page_renderer.render_book_pages("voyage", "Léa")

    assert "Il était une fois Léa" in browser.documents[0]
    assert "Bravo Léa !" in browser.documents[1]


def test_render_pages_keeps_page_index_zero_and_reports_bad_indexes(browser):
    result = page_renderer.render_pages(
        "voyage",
        [{"html": "<p>cover</p>", "pageIndex": 0}, {"html": "<p>x</p>", "pageIndex": "deux"}, {"html": "<p>y</p>"}],
    )

    assert result["pages"] == [
        {"pageIndex": 0, "objectPath": "/objects/public/previews/voyage/page-0.jpg"},
        {"pageIndex": 3, "objectPath": "/objects/public/previews/voyage/page-3.jpg"},
    ]
    assert [f["pageIndex"] for f in result["failed"]] == ["deux"]
    assert browser.closed is True
