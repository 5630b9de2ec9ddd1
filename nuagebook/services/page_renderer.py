"""Headless-browser rendering of book pages to JPEG previews.

One Chromium instance is launched per `render_pages` call and pages are
rendered one after another. A page that fails is logged and reported in
``failed``; the loop carries on and the browser is closed in every case.
"""
from __future__ import annotations

import html
import re
from typing import Any, Dict, List, Mapping, Optional, Sequence

from playwright.sync_api import sync_playwright

from nuagebook import config as app_config
from nuagebook.db.repositories import books_repo
from nuagebook.services import object_storage
from nuagebook.utils.errors import NotFoundError, ValidationError, validate_resource_id
from nuagebook.utils.logging import get_logger

LOG = get_logger("page_renderer")

DEFAULT_PAGE_WIDTH = 400
DEFAULT_PAGE_HEIGHT = 293
DEVICE_SCALE_FACTOR = 2
JPEG_QUALITY = 85
NAVIGATION_TIMEOUT_MS = 30000

_HEAD_CLOSE_RE = re.compile(r"</head>", re.IGNORECASE)
_DOCUMENT_RE = re.compile(r"<html[\s>]", re.IGNORECASE)
_IMG_SRC_RE = re.compile(r"(<img\b[^>]*?\bsrc=)([\"'])([^\"']*)\2", re.IGNORECASE)


def _unescape_markup(raw: str) -> str:
    for entity, char in (("&lt;", "<"), ("&gt;", ">"), ("&amp;", "&"), ("&quot;", '"')):
        raw = raw.replace(entity, char)
    return raw


def _substitute_variables(content: str, variables: Mapping[str, Any]) -> str:
    for key, value in (variables or {}).items():
        text = html.escape("" if value is None else str(value), quote=False)
        content = content.replace("{{" + key + "}}", text).replace("{" + key + "}", text)
    return content


def _rewrite_mapped_images(content: str, image_map: Mapping[str, str]) -> str:
    if not image_map:
        return content

    def _replace(match: "re.Match[str]") -> str:
        src = match.group(3)
        mapped = image_map.get(src) or image_map.get(src.split("/")[-1])
        if not mapped:
            return match.group(0)
        return f"{match.group(1)}{match.group(2)}{mapped}{match.group(2)}"

    return _IMG_SRC_RE.sub(_replace, content)


def _absolutize(content: str, base_url: str) -> str:
    base = (base_url or "").rstrip("/")
    if not base:
        return content
    for prefix in ("/assets/", "/objects/"):
        content = content.replace(f'src="{prefix}', f'src="{base}{prefix}')
        content = content.replace(f"src='{prefix}", f"src='{base}{prefix}")
        content = content.replace(f"url('{prefix}", f"url('{base}{prefix}")
        content = content.replace(f'url("{prefix}', f'url("{base}{prefix}')
    return content


def prepare_page_html(
    raw_html: str,
    css: str = "",
    variables: Optional[Mapping[str, Any]] = None,
    base_url: Optional[str] = None,
    image_map: Optional[Mapping[str, str]] = None,
) -> str:
    """Self-contained HTML document for one page, ready for the browser."""
    content = _unescape_markup(raw_html or "")
    style = f"<style>{css}</style>" if css else ""
    if _DOCUMENT_RE.search(content):
        if style:
            if _HEAD_CLOSE_RE.search(content):
                content = _HEAD_CLOSE_RE.sub(lambda _m: f"{style}</head>", content, count=1)
            else:
                content = style + content
    else:
        content = (
            "<!DOCTYPE html><html><head><meta charset=\"utf-8\">"
            f"{style}</head><body style=\"margin:0;padding:0\">{content}</body></html>"
        )
    content = _substitute_variables(content, variables or {})
    content = _rewrite_mapped_images(content, image_map or {})
    return _absolutize(content, base_url if base_url is not None else app_config.public_base_url())


def _page_size(page: Mapping[str, Any]) -> Dict[str, int]:
    try:
        width = int(page.get("width") or DEFAULT_PAGE_WIDTH)
        height = int(page.get("height") or DEFAULT_PAGE_HEIGHT)
    except (TypeError, ValueError):
        width, height = DEFAULT_PAGE_WIDTH, DEFAULT_PAGE_HEIGHT
    return {"width": width, "height": height}


def preview_key(book_id: str, page_index: int) -> str:
    return object_storage.public_key(f"previews/{book_id}/page-{page_index}.jpg")


def render_pages(
    book_id: str,
    pages: Sequence[Mapping[str, Any]],
    css: str = "",
    variables: Optional[Mapping[str, Any]] = None,
    image_map: Optional[Mapping[str, str]] = None,
) -> Dict[str, Any]:
    """Screenshot every page as JPEG and store it under ``previews/<book_id>/``.

    Each entry of `pages` carries ``html`` plus optional ``pageIndex``,
    ``width`` and ``height``.
    """
    validate_resource_id(book_id, "book_id")
    rendered: List[Dict[str, Any]] = []
    failed: List[Dict[str, Any]] = []
    if not pages:
        return {"success": True, "pages": rendered, "failed": failed}
    base_url = app_config.public_base_url()
    LOG.info("Rendering %s page(s) for book=%s", len(pages), book_id)
    with sync_playwright() as playwright:
        browser = playwright.chromium.launch(headless=True, args=["--no-sandbox", "--disable-dev-shm-usage"])
        try:
            for offset, page_def in enumerate(pages):
                page_index: Any = page_def.get("pageIndex")
                page = None
                try:
                    page_index = offset + 1 if page_index is None else int(page_index)
                    document = prepare_page_html(
                        str(page_def.get("html") or ""), css, variables, base_url, image_map,
                    )
                    page = browser.new_page(viewport=_page_size(page_def), device_scale_factor=DEVICE_SCALE_FACTOR)
                    page.set_content(document, wait_until="networkidle", timeout=NAVIGATION_TIMEOUT_MS)
                    shot = page.screenshot(type="jpeg", quality=JPEG_QUALITY, full_page=False)
                    stored = object_storage.save_object(preview_key(book_id, page_index), shot, "image/jpeg")
                    rendered.append({"pageIndex": page_index, "objectPath": stored})
                    LOG.debug("Rendered page %s for book=%s", page_index, book_id)
                except Exception as exc:
                    LOG.warning("Rendering page %s failed for book=%s: %s", page_index, book_id, exc)
                    failed.append({"pageIndex": page_index, "error": str(exc)})
                finally:
                    if page is not None:
                        page.close()
        finally:
            browser.close()
    LOG.info("Rendered book=%s ok=%s failed=%s", book_id, len(rendered), len(failed))
    return {"success": not failed, "pages": rendered, "failed": failed}


def render_book_pages(book_id: str, child_name: Optional[str] = None) -> Dict[str, Any]:
    """Render the raw HTML pages stored in a book's content config."""
    book = books_repo.get_book(book_id)
    if book is None:
        raise NotFoundError.for_resource("Book", book_id)
    content = book.content_config or {}
    raw_pages = content.get("rawHtmlPages") or []
    if not raw_pages:
        raise ValidationError("no_pages", "Book has no HTML pages to render")
    sizes = {p.get("pageIndex"): p for p in content.get("pages") or [] if isinstance(p, Mapping)}
    pages: List[Dict[str, Any]] = []
    for offset, raw in enumerate(raw_pages):
        entry = dict(raw) if isinstance(raw, Mapping) else {"html": str(raw)}
        entry.setdefault("pageIndex", offset + 1)
        size = sizes.get(entry["pageIndex"]) or {}
        entry.setdefault("width", size.get("width"))
        entry.setdefault("height", size.get("height"))
        pages.append(entry)
    name = child_name or ""
    variables = {"nom_enfant": name, "childName": name, "name": name}
    return render_pages(book_id, pages, content.get("cssContent") or "", variables, content.get("imageIndexMap") or {})


__all__ = [
    "prepare_page_html",
    "preview_key",
    "render_pages",
    "render_book_pages",
]
