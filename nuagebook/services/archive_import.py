"""ZIP / EPUB import pipeline.

`extract_zip` unpacks an HTML+assets bundle into object storage and returns
path maps the editor uses to rewrite references. `extract_epub` turns an
InDesign-exported fixed layout EPUB into a content config skeleton: page
sizes, text zones and image elements positioned from the CSS, plus wizard
tabs inferred from personalized image file names.
"""
from __future__ import annotations

import io
import posixpath
import re
import uuid
import zipfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Set, Tuple

from bs4 import BeautifulSoup
from werkzeug.utils import secure_filename

from nuagebook import config as app_config
from nuagebook.services import css_tools, object_storage, wizard_service
from nuagebook.utils.errors import ValidationError, validate_path, validate_resource_id
from nuagebook.utils.logging import get_logger

LOG = get_logger("archive_import")

IMAGE_RE = re.compile(r"\.(jpg|jpeg|png|gif|svg|webp)$", re.IGNORECASE)
FONT_RE = re.compile(r"\.(ttf|otf|woff2?|eot)$", re.IGNORECASE)
HTML_RE = re.compile(r"\.(html?|xhtml)$", re.IGNORECASE)
CSS_RE = re.compile(r"\.css$", re.IGNORECASE)
VIEWPORT_RE = re.compile(r"width[=:](\d+).*?height[=:](\d+)", re.IGNORECASE | re.DOTALL)
FONT_FACE_URL_RE = re.compile(r"(@font-face\s*\{[^}]*src\s*:\s*url\([\"']?)([^\"')]+)([\"']?\)[^}]*\})", re.IGNORECASE)
FONT_FAMILY_RE = re.compile(r"font-family\s*:\s*[\"']?([^\"';,]+)", re.IGNORECASE)
DEFAULT_PAGE_WIDTH = 595
DEFAULT_PAGE_HEIGHT = 842
MAX_ARCHIVE_BYTES = 200 * 1024 * 1024
EXCLUDED_PAGE_MARKERS = ("toc", "nav", "cover")
TEXT_SELECTORS = (
    "div.Bloc-de-texte-standard",
    'div[id^="_idContainer"]',
    "div.text-frame",
    "div.textframe",
    'div[class*="text"]',
    "body > div[id]",
)
IMAGE_CONTAINER_SELECTOR = 'div[id^="_idContainer"]'
EPUB_PREFIX = "epubs"
FONT_CONTENT_TYPES = {
    "ttf": "font/ttf",
    "otf": "font/otf",
    "woff": "font/woff",
    "woff2": "font/woff2",
    "eot": "application/vnd.ms-fontobject",
}


def open_archive(data: bytes) -> zipfile.ZipFile:
    if not data:
        raise ValidationError("data_required", "Archive data is required")
    if len(data) > MAX_ARCHIVE_BYTES:
        raise ValidationError("file_too_large", "Archive exceeds size limit")
    try:
        return zipfile.ZipFile(io.BytesIO(data))
    except zipfile.BadZipFile:
        raise ValidationError("invalid_archive", "File is not a valid ZIP archive")


def archive_members(archive: zipfile.ZipFile) -> Iterable[zipfile.ZipInfo]:
    for info in archive.infolist():
        if info.is_dir():
            continue
        name = info.filename
        if name.startswith("__MACOSX/") or posixpath.basename(name).startswith("."):
            continue
        yield info


def _read_text(archive: zipfile.ZipFile, info: zipfile.ZipInfo) -> str:
    return archive.read(info).decode("utf-8", errors="replace")


def register_path_aliases(path_map: Dict[str, str], relative_path: str, target: str) -> None:
    """Map the full path, bare file name and every suffix path to `target`.

    ``OEBPS/image/1.png`` also registers ``image/1.png`` and ``1.png``;
    existing entries are kept (first archive entry wins).
    """
    path_map[relative_path] = target
    parts = relative_path.split("/")
    for index in range(1, len(parts)):
        path_map.setdefault("/".join(parts[index:]), target)


def _clean_reference(raw: str) -> str:
    cleaned = raw.strip().strip("\"'")
    for prefix in ("../", "./"):
        if cleaned.startswith(prefix):
            cleaned = cleaned[len(prefix):]
    return cleaned


def _rewrite_font_urls(css: str, font_map: Dict[str, str], warnings: List[str]) -> str:
    def _replace(match: "re.Match[str]") -> str:
        before, font_path, after = match.group(1), match.group(2), match.group(3)
        cleaned = _clean_reference(font_path)
        stored = font_map.get(cleaned) or font_map.get(cleaned.split("/")[-1])
        if stored:
            return f"{before}{stored}{after}"
        if font_path.startswith("data:"):
            return match.group(0)
        family = FONT_FAMILY_RE.search(match.group(0))
        font_name = family.group(1).strip() if family else re.sub(r"\.[^.]+$", "", cleaned.split("/")[-1])
        warnings.append(f'Police "{font_name}" non trouvée dans l\'EPUB (fichier: {font_path})')
        LOG.warning("Font not found in archive: %s", font_path)
        return match.group(0)

    return FONT_FACE_URL_RE.sub(_replace, css)


def _stored_name(path: str, ext: str) -> str:
    base = secure_filename(path.replace("/", "_"))
    return base or f"{uuid.uuid4().hex[:8]}.{ext}"


def extract_zip(data: bytes, session_id: Optional[str] = None) -> Dict[str, object]:
    """Store archive images/fonts publicly; return path maps, HTML and cleaned CSS.

    ``cssContent`` is the cleaned stylesheets joined in archive order,
    ``cssFiles`` keeps them per path.
    """
    archive = open_archive(data)
    session = session_id or uuid.uuid4().hex[:8]
    images: Dict[str, str] = {}
    fonts: Dict[str, str] = {}
    html_files: List[Dict[str, str]] = []
    raw_css: Dict[str, str] = {}
    font_warnings: List[str] = []
    with archive:
        for info in archive_members(archive):
            path = info.filename
            ext = path.rsplit(".", 1)[-1].lower() if "." in path else ""
            if IMAGE_RE.search(path):
                key = object_storage.public_key(f"uploads/{session}/{_stored_name(path, ext)}")
                stored = object_storage.save_object(key, archive.read(info), object_storage.guess_content_type(path))
                register_path_aliases(images, path, stored)
            elif FONT_RE.search(path):
                key = object_storage.public_key(f"uploads/{session}/fonts/{_stored_name(path, ext)}")
                stored = object_storage.save_object(key, archive.read(info), FONT_CONTENT_TYPES.get(ext))
                register_path_aliases(fonts, path, stored)
            elif HTML_RE.search(path):
                html_files.append({"name": path, "content": _read_text(archive, info)})
            elif CSS_RE.search(path):
                raw_css[path] = _read_text(archive, info)
    css_files = {
        path: _rewrite_font_urls(css_tools.clean_css_syntax(css), fonts, font_warnings)
        for path, css in raw_css.items()
    }
    LOG.info(
        "ZIP extracted session=%s images=%s fonts=%s html=%s css=%s",
        session, len(images), len(fonts), len(html_files), len(css_files),
    )
    return {
        "images": images,
        "fonts": fonts,
        "fontWarnings": font_warnings,
        "htmlFiles": html_files,
        "htmlContent": {f["name"]: f["content"] for f in html_files},
        "cssContent": "\n".join(css_files.values()),
        "cssFiles": css_files,
        "sessionId": session,
    }


@dataclass
class EpubPage:
    page_index: int
    width: int
    height: int
    texts: List[Dict[str, object]] = field(default_factory=list)
    images: List[Dict[str, object]] = field(default_factory=list)


def page_dimensions(html: str) -> Tuple[int, int]:
    match = VIEWPORT_RE.search(html or "")
    if not match:
        return DEFAULT_PAGE_WIDTH, DEFAULT_PAGE_HEIGHT
    return int(match.group(1)), int(match.group(2))


def is_content_page(path: str) -> bool:
    lowered = path.lower()
    return not any(marker in lowered for marker in EXCLUDED_PAGE_MARKERS)


def _rewrite_image_sources(html: str, image_map: Dict[str, str]) -> str:
    def _replace(match: "re.Match[str]") -> str:
        src = match.group(2)
        cleaned = _clean_reference(src)
        mapped = image_map.get(cleaned) or image_map.get(cleaned.split("/")[-1])
        return f'src="{mapped}"' if mapped else match.group(0)

    return re.sub(r"src=([\"'])([^\"']*)\1", _replace, html)


def _text_containers(soup: BeautifulSoup) -> list:
    for selector in TEXT_SELECTORS:
        found = soup.select(selector)
        if found:
            return found
    return []


def parse_epub_page(
    html: str,
    page_index: int,
    css: str,
    image_map: Dict[str, str],
    characteristics_by_file: Dict[str, wizard_service.ImageCharacteristics],
    book_id: str,
) -> EpubPage:
    """Extract text zones and image elements of one XHTML page (1-based `page_index`)."""
    width, height = page_dimensions(html)
    page = EpubPage(page_index=page_index, width=width, height=height)
    soup = BeautifulSoup(_rewrite_image_sources(html, image_map), "html.parser")

    for index, element in enumerate(_text_containers(soup)):
        if element.find("img") is not None or not element.get_text().strip():
            continue
        container_id = element.get("id") or f"textblock-{page_index - 1}-{index}"
        position = css_tools.extract_position_from_css(css, container_id, layer=css_tools.TEXT_LAYER)
        position["pageIndex"] = page_index
        page.texts.append({
            "id": f"text-{page_index}-{container_id}",
            "containerId": container_id,
            "label": container_id,
            "type": "fixed",
            "content": element.get_text(" ", strip=True),
            "combinationKey": wizard_service.DEFAULT_COMBINATION_KEY,
            "pageIndex": page_index,
            "position": position,
        })

    for index, container in enumerate(soup.select(IMAGE_CONTAINER_SELECTOR)):
        img = container.find("img")
        if img is None:
            continue
        container_id = container.get("id") or f"container-{index}"
        src = img.get("src") or ""
        parsed = characteristics_by_file.get(src.split("/")[-1]) or wizard_service.parse_image_filename("")
        position = css_tools.extract_position_from_css(
            css, container_id, css_tools.IMAGE_LAYER, float(width), float(height),
        )
        position["pageIndex"] = page_index
        classes = img.get("class")
        label = " ".join(classes) if isinstance(classes, list) else classes
        element: Dict[str, object] = {
            "id": f"img-{book_id}-{page_index}-{uuid.uuid4().hex[:8]}",
            "type": "personalized" if parsed.characteristics else "static",
            "label": label or img.get("alt") or container_id,
            "url": src,
            "position": position,
            "combinationKey": parsed.combination_key,
        }
        if parsed.characteristics:
            element["characteristics"] = dict(parsed.characteristics)
        page.images.append(element)
    return page


def book_images_dir(book_id: str) -> Path:
    validate_resource_id(book_id, "book_id")
    return Path(validate_path(app_config.assets_root(), f"books/{book_id}/images"))


def extract_epub(data: bytes, book_id: str) -> Dict[str, object]:
    """Unpack an EPUB for `book_id` into assets and build its content skeleton."""
    validate_resource_id(book_id, "book_id")
    archive = open_archive(data)
    images_dir = book_images_dir(book_id)
    image_map: Dict[str, str] = {}
    characteristics_by_file: Dict[str, wizard_service.ImageCharacteristics] = {}
    collected: Dict[str, Set[str]] = {}
    html_content: Dict[str, str] = {}
    css_parts: List[str] = []
    with archive:
        for info in archive_members(archive):
            path = info.filename
            file_name = path.split("/")[-1]
            if IMAGE_RE.search(path):
                images_dir.mkdir(parents=True, exist_ok=True)
                (images_dir / file_name).write_bytes(archive.read(info))
                register_path_aliases(image_map, path, f"/assets/books/{book_id}/images/{file_name}")
                parsed = wizard_service.parse_image_filename(file_name)
                characteristics_by_file[file_name] = parsed
                for key, value in parsed.characteristics.items():
                    collected.setdefault(key, set()).add(value)
            elif HTML_RE.search(path):
                html_content[path] = _read_text(archive, info)
            elif CSS_RE.search(path):
                css_parts.append(_read_text(archive, info))

    css = css_tools.clean_css_syntax("\n".join(css_parts))
    content_paths = sorted(p for p in html_content if is_content_page(p))
    pages: List[Dict[str, int]] = []
    texts: List[Dict[str, object]] = []
    image_elements: List[Dict[str, object]] = []
    for offset, path in enumerate(content_paths):
        page = parse_epub_page(html_content[path], offset + 1, css, image_map, characteristics_by_file, book_id)
        pages.append({"width": page.width, "height": page.height, "pageIndex": page.page_index})
        texts.extend(page.texts)
        image_elements.extend(page.images)

    font_warnings = css_tools.detect_font_issues(css)
    for warning in font_warnings:
        LOG.warning("Font warning book=%s font=%s reason=%s", book_id, warning["fontFamily"], warning["reason"])
    LOG.info(
        "EPUB extracted book=%s pages=%s texts=%s images=%s",
        book_id, len(pages), len(texts), len(image_elements),
    )
    return {
        "success": True,
        "bookId": book_id,
        "assetsPath": f"/assets/books/{book_id}",
        "imageMap": image_map,
        "cssContent": css,
        "pages": pages,
        "texts": texts,
        "imageElements": image_elements,
        "fontWarnings": font_warnings,
        "wizardConfig": {"tabs": wizard_service.build_wizard_config(collected)},
        "detectedCharacteristics": {key: sorted(values) for key, values in collected.items()},
        "cssFontMapping": css_tools.extract_css_font_mapping(css),
    }


def extract_stored_epub(epub_path: str, book_id: str) -> Dict[str, object]:
    """Run `extract_epub` on an EPUB previously saved in object storage."""
    stored = object_storage.read_object(epub_path)
    return extract_epub(stored.data, book_id)


def store_epub(data: str, filename: Optional[str] = None) -> Dict[str, str]:
    """Save a base64 (or data URL) EPUB privately under ``epubs/``."""
    payload, _hint = object_storage.decode_base64_payload(data)
    if not zipfile.is_zipfile(io.BytesIO(payload)):
        raise ValidationError("invalid_archive", "File is not a valid EPUB archive")
    name = secure_filename(filename or "") or f"book_{uuid.uuid4().hex[:8]}.epub"
    if not name.lower().endswith(".epub"):
        name = f"{name}.epub"
    key = object_storage.private_key(f"{EPUB_PREFIX}/{name}")
    stored = object_storage.save_object(key, payload, "application/epub+zip")
    LOG.info("EPUB stored key=%s bytes=%s", key, len(payload))
    return {"objectPath": stored, "filename": name}


def list_epubs() -> List[Dict[str, str]]:
    keys = object_storage.list_objects(object_storage.private_key(EPUB_PREFIX))
    return [
        {"filename": key.rsplit("/", 1)[-1], "objectPath": object_storage.object_path(key)}
        for key in keys
        if key.lower().endswith(".epub")
    ]


__all__ = [
    "open_archive",
    "archive_members",
    "register_path_aliases",
    "extract_zip",
    "EpubPage",
    "page_dimensions",
    "is_content_page",
    "parse_epub_page",
    "book_images_dir",
    "extract_epub",
    "extract_stored_epub",
    "store_epub",
    "list_epubs",
]
