"""CSS helpers for imported book layouts.

Covers syntax cleanup of InDesign/EPUB stylesheets, reading element
geometry out of ``#id { transform: ... }`` rules, extracting base64
``@font-face`` payloads to files, and flagging fonts the headless
renderer will not have.
"""
from __future__ import annotations

import base64
import binascii
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

from nuagebook import config as app_config
from nuagebook.utils.errors import validate_path, validate_resource_id
from nuagebook.utils.logging import get_logger

LOG = get_logger("css_tools")

DEFAULT_TEXT_WIDTH = 100.0
DEFAULT_TEXT_HEIGHT = 30.0
TEXT_LAYER = 50
IMAGE_LAYER = 10

NATIVE_LINUX_FONTS = frozenset({
    "serif", "sans-serif", "monospace", "cursive", "fantasy",
    "system-ui", "ui-serif", "ui-sans-serif", "ui-monospace", "ui-rounded",
    "liberation sans", "liberation serif", "liberation mono",
    "dejavu sans", "dejavu serif", "dejavu sans mono", "dejavu sans condensed",
    "noto sans", "noto serif", "noto mono", "noto color emoji",
    "freesans", "freeserif", "freemono",
    "ubuntu", "ubuntu mono", "ubuntu condensed",
    "droid sans", "droid serif", "droid sans mono",
    "roboto", "roboto mono", "roboto condensed", "roboto slab",
    "open sans", "lato", "source sans pro", "source serif pro", "source code pro",
})
_CSS_WIDE_KEYWORDS = {"inherit", "initial", "unset"}

_FONT_FACE_RE = re.compile(r"@font-face\s*\{([^}]+)\}", re.IGNORECASE)
_FONT_FAMILY_DECL_RE = re.compile(r"font-family\s*:\s*([^;]+);", re.IGNORECASE)
_FAMILY_IN_FACE_RE = re.compile(r"font-family\s*:\s*[\"']?([^;\"']+)[\"']?", re.IGNORECASE)
_DATA_SRC_RE = re.compile(
    r"src\s*:\s*url\s*\(\s*[\"']?(data:font/([^;]+);base64,([^\"')]+))[\"']?\)",
    re.IGNORECASE,
)
_PROP_RE = re.compile(r"([a-z-]+)\s*:\s*([^;]+)", re.IGNORECASE)
_TRANSLATE_RE = re.compile(r"translate\(([^,]+),\s*([^)]+)\)")
_ROTATE_RE = re.compile(r"rotate\(([^)]+)\)")
_SCALE_RE = re.compile(r"scale\(([^,]+),\s*([^)]+)\)")
_LEADING_NUMBER_RE = re.compile(r"^\s*([-+]?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?)")
_RULE_RE = re.compile(r"([\w.#\-\[\]=~^$*|:\"\s,]+)\s*\{([^}]+)\}")
_FILE_SAFE_RE = re.compile(r"[^a-zA-Z0-9_-]")


def clean_css_syntax(css: str) -> str:
    """Normalize spacing around ``:`` and inside parentheses."""
    if not css:
        return ""
    cleaned = re.sub(r"\s+:", ":", css)
    cleaned = re.sub(r":\s+", ": ", cleaned)
    cleaned = re.sub(r"\(\s+", "(", cleaned)
    return re.sub(r"\s+\)", ")", cleaned)


def _parse_float(raw: Optional[str], default: float) -> float:
    """parseFloat-like: reads a leading number (``"12.5px"`` -> 12.5), else default."""
    if not raw:
        return default
    match = _LEADING_NUMBER_RE.match(raw)
    if not match:
        return default
    value = float(match.group(1))
    return value if value != 0 else default


def extract_position_from_css(
    css: str,
    element_id: str,
    layer: Optional[int] = None,
    default_width: float = DEFAULT_TEXT_WIDTH,
    default_height: float = DEFAULT_TEXT_HEIGHT,
) -> Dict[str, float]:
    """Geometry for ``#element_id`` from its CSS rule.

    translate() gives x/y, rotate() the rotation in degrees and scale() the
    scale factors; width/height fall back to the given defaults.
    """
    translate_x = translate_y = rotation = 0.0
    scale_x = scale_y = 1.0
    width, height = float(default_width), float(default_height)
    block_match = re.search(r"#" + re.escape(element_id) + r"[^{]*\{([^}]+)\}", css or "", re.IGNORECASE)
    if block_match:
        props: Dict[str, str] = {}
        for name, value in _PROP_RE.findall(block_match.group(1)):
            props[name.lower().strip()] = value.strip()
        transform = props.get("transform") or props.get("-webkit-transform") or ""
        translate = _TRANSLATE_RE.search(transform)
        if translate:
            translate_x = _parse_float(translate.group(1), 0.0)
            translate_y = _parse_float(translate.group(2), 0.0)
        rotate = _ROTATE_RE.search(transform)
        if rotate:
            rotation = _parse_float(rotate.group(1), 0.0)
        scale = _SCALE_RE.search(transform)
        if scale:
            scale_x = _parse_float(scale.group(1), 1.0)
            scale_y = _parse_float(scale.group(2), 1.0)
        width = _parse_float(props.get("width"), width)
        height = _parse_float(props.get("height"), height)
    if layer is None:
        layer = TEXT_LAYER if default_height == DEFAULT_TEXT_HEIGHT else IMAGE_LAYER
    return {
        "x": translate_x,
        "y": translate_y,
        "width": width,
        "height": height,
        "rotation": rotation,
        "scaleX": scale_x,
        "scaleY": scale_y,
        "layer": layer,
    }


def _fonts_with_base64(css: str) -> set:
    found = set()
    for block in _FONT_FACE_RE.findall(css or ""):
        family = _FAMILY_IN_FACE_RE.search(block)
        if family and ("data:font" in block or "data:application" in block):
            found.add(family.group(1).strip().lower())
    return found


def detect_font_issues(css: str) -> List[Dict[str, str]]:
    """Warnings for font families neither native on the renderer nor embedded."""
    embedded = _fonts_with_base64(css)
    without_faces = _FONT_FACE_RE.sub("", css or "")
    used: List[str] = []
    for declaration in _FONT_FAMILY_DECL_RE.findall(without_faces):
        for name in declaration.split(","):
            font = name.strip().replace('"', "").replace("'", "").lower()
            if font and font not in _CSS_WIDE_KEYWORDS and font not in used:
                used.append(font)
    warnings = []
    for font in used:
        if font in NATIVE_LINUX_FONTS or font in embedded:
            continue
        warnings.append({
            "fontFamily": font,
            "reason": "not_embedded",
            "severity": "error",
            "message": f'La police "{font}" n\'est pas disponible sur le serveur. '
                       "Vous devez uploader les fichiers de polices .ttf/.otf lors de l'import.",
        })
    return warnings


def extract_css_font_mapping(css: str) -> Dict[str, str]:
    """Selector -> first font-family, plus a bare ``.class`` alias per selector."""
    mapping: Dict[str, str] = {}
    for selector_group, declarations in _RULE_RE.findall(css or ""):
        selector_group = selector_group.strip()
        if "font-face" in selector_group.lower() or selector_group.startswith("@"):
            continue
        family_match = re.search(r"font-family\s*:\s*([^;]+)", declarations, re.IGNORECASE)
        if not family_match:
            continue
        family = family_match.group(1).split(",")[0].strip().replace('"', "").replace("'", "")
        if not family:
            continue
        for selector in (s.strip() for s in selector_group.split(",")):
            if not selector:
                continue
            mapping[selector] = family
            class_match = re.search(r"\.([\w-]+)", selector)
            if class_match:
                mapping[f".{class_match.group(1)}"] = family
    return mapping


@dataclass
class ExtractedFont:
    family: str
    weight: str
    style: str
    format: str
    file: str
    url: str

    def to_dict(self) -> Dict[str, str]:
        return {
            "fontFamily": self.family,
            "fontWeight": self.weight,
            "fontStyle": self.style,
            "format": self.format,
            "file": self.file,
            "filePath": self.url,
        }


@dataclass
class FontExtraction:
    processed_css: str
    fonts: List[ExtractedFont] = field(default_factory=list)

    def to_dict(self) -> Dict[str, object]:
        return {"processedCss": self.processed_css, "fonts": [f.to_dict() for f in self.fonts]}


def _font_format(raw_format: str) -> tuple:
    fmt = raw_format.lower()
    if "otf" in fmt or "opentype" in fmt:
        return "otf", "opentype"
    if "woff2" in fmt:
        return "woff2", "woff2"
    if "woff" in fmt:
        return "woff", "woff"
    return "ttf", "truetype"


def book_fonts_dir(book_id: str) -> Path:
    validate_resource_id(book_id, "book_id")
    root = app_config.assets_root()
    return Path(validate_path(root, f"books/{book_id}/fonts"))


def extract_fonts_from_css(css: str, book_id: str) -> FontExtraction:
    """Write embedded base64 fonts to ``assets/books/<id>/fonts`` and point CSS at them."""
    result = FontExtraction(processed_css=css or "")
    if not css or "@font-face" not in css.lower():
        return result
    fonts_dir: Optional[Path] = None
    for match in _FONT_FACE_RE.finditer(css):
        block, body = match.group(0), match.group(1)
        family_match = re.search(r"font-family\s*:\s*([^;]+)", body, re.IGNORECASE)
        src_match = _DATA_SRC_RE.search(body)
        if not family_match or not src_match:
            continue
        family = family_match.group(1).strip().replace('"', "").replace("'", "")
        weight_match = re.search(r"font-weight\s*:\s*([^;]+)", body, re.IGNORECASE)
        style_match = re.search(r"font-style\s*:\s*([^;]+)", body, re.IGNORECASE)
        weight = weight_match.group(1).strip() if weight_match else "normal"
        style = style_match.group(1).strip() if style_match else "normal"
        extension, format_value = _font_format(src_match.group(2))
        try:
            payload = base64.b64decode(src_match.group(3).strip())
        except (binascii.Error, ValueError):
            LOG.warning("Skipping font with undecodable payload family=%s book=%s", family, book_id)
            continue
        file_name = "{0}-{1}-{2}.{3}".format(
            _FILE_SAFE_RE.sub("-", family),
            _FILE_SAFE_RE.sub("-", weight),
            _FILE_SAFE_RE.sub("-", style),
            extension,
        )
        if fonts_dir is None:
            fonts_dir = book_fonts_dir(book_id)
            fonts_dir.mkdir(parents=True, exist_ok=True)
        (fonts_dir / file_name).write_bytes(payload)
        url = f"/assets/books/{book_id}/fonts/{file_name}"
        replacement = (
            "@font-face {\n"
            f"  font-family: '{family}';\n"
            f"  src: url('{url}') format('{format_value}');\n"
            f"  font-weight: {weight};\n"
            f"  font-style: {style};\n"
            "}"
        )
        result.processed_css = result.processed_css.replace(block, replacement)
        result.fonts.append(ExtractedFont(family, weight, style, format_value, file_name, url))
        LOG.info("Extracted font %s (%s/%s) -> %s", family, weight, style, url)
    return result


__all__ = [
    "NATIVE_LINUX_FONTS",
    "TEXT_LAYER",
    "IMAGE_LAYER",
    "clean_css_syntax",
    "extract_position_from_css",
    "detect_font_issues",
    "extract_css_font_mapping",
    "ExtractedFont",
    "FontExtraction",
    "book_fonts_dir",
    "extract_fonts_from_css",
]
