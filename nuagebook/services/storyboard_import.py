"""InDesign storyboard import.

A storyboard is an IDML package (text, fonts and styles) plus the EPUB
export of the same document (page sizes, frame positions and images).
`parse_idml` reads the IDML, `merge_texts` pairs each EPUB text container
with the IDML frame at the same rank on the same page, and
`import_storyboard` stores the merged content config on the book.

Frames whose character ranges carry ``TXTCOND_*`` conditions keep them
as ``conditionalSegments`` for `conditional_text`.
"""
from __future__ import annotations

import io
import re
import uuid
import xml.etree.ElementTree as ET
import zipfile
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from werkzeug.utils import secure_filename

from nuagebook.db.repositories import books_repo
from nuagebook.services import archive_import, conditional_text, css_tools, object_storage, wizard_service
from nuagebook.utils.errors import NotFoundError, ValidationError, validate_resource_id
from nuagebook.utils.logging import get_logger

LOG = get_logger("storyboard_import")

DEFAULT_POINT_SIZE = 12.0
MIN_LINE_HEIGHT = "1.3"
FONT_MAGICS = {
    "ttf": ("00010000", "74727565"),
    "otf": ("4F54544F",),
    "woff": ("774F4646",),
    "woff2": ("774F4632",),
}
JUSTIFICATION = {
    "LeftAlign": "left",
    "CenterAlign": "center",
    "RightAlign": "right",
    "LeftJustified": "justify",
    "RightJustified": "justify",
    "CenterJustified": "justify",
    "FullyJustified": "justify",
    "Justify": "justify",
    "ToBindingSide": "left",
    "AwayFromBindingSide": "right",
}

_STORY_RE = re.compile(r"^Stories/Story_.*\.xml$", re.IGNORECASE)
_SPREAD_RE = re.compile(r"^Spreads/Spread_.*\.xml$", re.IGNORECASE)
_VARIABLE_RE = re.compile(r"\{([^}]+)\}")
_CONTAINER_NUMBER_RE = re.compile(r"\d+")
_STRIPPED_CSS_RES = (
    re.compile(r"@font-face\s*\{[^}]+\}", re.IGNORECASE),
    re.compile(r"(?<![-\w])font-(?:family|size|weight|style)\s*:[^;]+;", re.IGNORECASE),
    re.compile(r"(?<![-\w])color\s*:[^;]+;", re.IGNORECASE),
)


@dataclass
class TextFrame:
    id: str
    content: str
    variables: List[str]
    segments: List[Dict[str, Any]] = field(default_factory=list)
    applied_character_style: str = ""
    applied_paragraph_style: str = ""
    page_index: int = 1
    layout_order: Optional[int] = None
    position: Optional[Dict[str, float]] = None

    @property
    def conditional_segments(self) -> List[Dict[str, Any]]:
        return self.segments if any(s.get("condition") for s in self.segments) else []

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "id": self.id,
            "name": self.id,
            "content": self.content,
            "variables": list(self.variables),
            "appliedCharacterStyle": self.applied_character_style,
            "appliedParagraphStyle": self.applied_paragraph_style,
            "pageIndex": self.page_index,
            "layoutOrder": self.layout_order,
        }
        if self.position is not None:
            data["position"] = dict(self.position)
        if self.conditional_segments:
            data["conditionalSegments"] = [dict(s) for s in self.conditional_segments]
            data["availableConditions"] = conditional_text.extract_unique_conditions(self.segments)
        return data


@dataclass
class IdmlDocument:
    colors: Dict[str, str] = field(default_factory=dict)
    character_styles: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    paragraph_styles: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    text_frames: List[TextFrame] = field(default_factory=list)
    page_dimensions: Dict[int, Dict[str, float]] = field(default_factory=dict)

    @property
    def fonts(self) -> List[str]:
        return sorted({s["fontFamily"] for s in self.character_styles.values() if s.get("fontFamily")})

    def stats(self) -> Dict[str, int]:
        return {
            "textFrames": len(self.text_frames),
            "characterStyles": len(self.character_styles),
            "paragraphStyles": len(self.paragraph_styles),
            "conditionalTextFrames": sum(1 for f in self.text_frames if f.conditional_segments),
        }


def _float(raw: Optional[str], default: float = 0.0) -> float:
    try:
        return float(raw) if raw not in (None, "") else default
    except ValueError:
        return default


def _prop(element: ET.Element, name: str) -> Optional[str]:
    """Attribute `name`, else the text of ``Properties/<name>``."""
    value = element.get(name)
    if value is not None:
        return value
    node = element.find(f"Properties/{name}")
    if node is not None and node.text:
        return node.text.strip()
    return None


def color_to_hex(space: Optional[str], value: Optional[str]) -> str:
    numbers = [_float(v) for v in (value or "").split()]
    if space == "RGB" and len(numbers) >= 3:
        rgb = [round(n) for n in numbers[:3]]
    elif space == "CMYK" and len(numbers) >= 4:
        c, m, y, k = (n / 100 for n in numbers[:4])
        rgb = [round(255 * (1 - c) * (1 - k)), round(255 * (1 - m) * (1 - k)), round(255 * (1 - y) * (1 - k))]
    else:
        return "#000000"
    return "#" + "".join(f"{max(0, min(255, n)):02x}" for n in rgb)


def _parse_colors(root: ET.Element) -> Dict[str, str]:
    colors: Dict[str, str] = {}
    for color in root.iter("Color"):
        self_id, value = color.get("Self"), color.get("ColorValue")
        if not self_id or not value:
            continue
        colors[self_id] = color_to_hex(color.get("Space"), value)
        if color.get("Name"):
            colors[color.get("Name")] = colors[self_id]
    return colors


def _store_by_name(styles: Dict[str, Dict[str, Any]], element: ET.Element, style: Dict[str, Any]) -> None:
    styles[element.get("Self")] = style
    name = element.get("Name")
    if name and name != "[None]":
        styles.setdefault(name, style)


def _parse_character_styles(root: ET.Element, colors: Mapping[str, str]) -> Dict[str, Dict[str, Any]]:
    styles: Dict[str, Dict[str, Any]] = {}
    for element in root.iter("CharacterStyle"):
        if not element.get("Self"):
            continue
        font_style = (_prop(element, "FontStyle") or "").lower()
        decoration = "none"
        if _prop(element, "Underline") == "true":
            decoration = "underline"
        elif _prop(element, "StrikeThru") == "true":
            decoration = "line-through"
        fill = _prop(element, "FillColor")
        style = {
            "fontFamily": _prop(element, "AppliedFont") or _prop(element, "FontFamily"),
            "fontSize": _float(_prop(element, "PointSize"), 0.0) or None,
            "fontWeight": "bold" if "bold" in font_style or "black" in font_style else "normal",
            "fontStyle": "italic" if "italic" in font_style or "oblique" in font_style else "normal",
            "color": colors.get(fill) if fill else None,
            "letterSpacing": _float(_prop(element, "Tracking")) / 1000,
            "baselineShift": _float(_prop(element, "BaselineShift")),
            "textDecoration": decoration,
            "textTransform": "uppercase" if _prop(element, "Capitalization") in ("AllCaps", "SmallCaps") else "none",
        }
        _store_by_name(styles, element, style)
    return styles


def _paragraph_style(element: ET.Element, colors: Mapping[str, str]) -> Dict[str, Any]:
    point_size = _float(_prop(element, "PointSize"), DEFAULT_POINT_SIZE) or DEFAULT_POINT_SIZE
    leading = _prop(element, "Leading")
    line_height = "1"
    if leading and leading != "Auto" and _float(leading) > 0:
        line_height = str(round(_float(leading) / point_size, 4))
    fill = _prop(element, "FillColor")
    justification = _prop(element, "Justification")
    return {
        "textAlign": JUSTIFICATION.get(justification or "", "left"),
        "idmlJustification": justification,
        "lineHeight": line_height,
        "whiteSpace": "nowrap" if _prop(element, "KeepLinesTogether") == "true" else "normal",
        "marginTop": _float(_prop(element, "SpaceBefore")),
        "marginBottom": _float(_prop(element, "SpaceAfter")),
        "textIndent": _float(_prop(element, "FirstLineIndent")),
        "fontFamily": _prop(element, "AppliedFont"),
        "fontSize": _float(_prop(element, "PointSize"), 0.0) or None,
        "color": colors.get(fill) if fill else None,
    }


def _parse_paragraph_styles(root: ET.Element, colors: Mapping[str, str]) -> Dict[str, Dict[str, Any]]:
    styles: Dict[str, Dict[str, Any]] = {}
    for element in root.iter("ParagraphStyle"):
        if element.get("Self"):
            _store_by_name(styles, element, _paragraph_style(element, colors))
    return styles


def _range_condition(char_range: ET.Element) -> Optional[str]:
    for name in (char_range.get("AppliedConditions") or "").split():
        parsed = name[len("Condition/"):] if name.startswith("Condition/") else name
        if parsed.startswith(conditional_text.CONDITION_PREFIX):
            return parsed
    return None


def _range_text(char_range: ET.Element) -> str:
    parts: List[str] = []
    for child in char_range:
        if child.tag == "Content":
            parts.append(child.text or "")
        elif child.tag == "Br":
            parts.append("\n")
        elif child.tag == "TextVariableInstance":
            name = child.get("Name") or ""
            if name.startswith(conditional_text.VARIABLE_PREFIX):
                parts.append("{" + name + "}")
            else:
                parts.append(child.get("ResultText") or "")
    return "".join(parts)


def _story_frame(story: ET.Element) -> Optional[TextFrame]:
    segments: List[Dict[str, Any]] = []
    char_style = para_style = ""
    for paragraph in story.iter("ParagraphStyleRange"):
        para_style = paragraph.get("AppliedParagraphStyle") or para_style
        for char_range in paragraph.iter("CharacterStyleRange"):
            char_style = char_range.get("AppliedCharacterStyle") or char_style
            text = _range_text(char_range)
            if not text:
                continue
            segment: Dict[str, Any] = {"text": text, "appliedCharacterStyle": char_range.get("AppliedCharacterStyle")}
            condition = _range_condition(char_range)
            if condition:
                segment["condition"] = condition
                parsed = conditional_text.parse_condition_name(condition)
                if parsed is not None:
                    segment["parsedCondition"] = parsed.to_dict()
            variables = _VARIABLE_RE.findall(text)
            if variables:
                segment["variables"] = variables
            segments.append(segment)
        if segments:
            segments[-1]["text"] += "\n"
    content = "".join(s["text"] for s in segments).strip()
    if not content:
        return None
    if segments:
        segments[-1]["text"] = segments[-1]["text"].rstrip("\n")
    return TextFrame(
        id=story.get("Self") or "unknown",
        content=content,
        variables=_VARIABLE_RE.findall(content),
        segments=segments,
        applied_character_style=char_style,
        applied_paragraph_style=para_style,
    )


def _bounds(raw: Optional[str]) -> Optional[Tuple[float, float, float, float]]:
    values = (raw or "").split()
    if len(values) != 4:
        return None
    top, left, bottom, right = (_float(v) for v in values)
    return top, left, bottom, right


def _apply_spread(root: ET.Element, document: IdmlDocument, frames: Mapping[str, TextFrame], state: Dict[str, int]) -> None:
    """Record page sizes and place story frames on the page that holds them.

    Frames nested in a ``Page`` take its index; frames directly under the
    spread go to the page whose horizontal bounds contain their left edge.
    """
    for spread in root.iter("Spread"):
        pages: List[Tuple[int, Tuple[float, float, float, float]]] = []
        for page in spread.findall("Page"):
            state["page"] += 1
            index = int(_float(page.get("PageIndex"), state["page"]))
            bounds = _bounds(page.get("GeometricBounds"))
            if bounds is not None:
                top, left, bottom, right = bounds
                document.page_dimensions[index] = {"width": right - left, "height": bottom - top}
                pages.append((index, bounds))
            for nested in page.iter("TextFrame"):
                _place_frame(nested, index, frames, state)
        for loose in spread.findall("TextFrame"):
            bounds = _bounds(loose.get("GeometricBounds"))
            index = pages[0][0] if pages else state["page"] or 1
            if bounds is not None:
                for page_index, (_top, left, _bottom, right) in pages:
                    if left <= bounds[1] < right:
                        index = page_index
                        break
            _place_frame(loose, index, frames, state)


def _place_frame(element: ET.Element, page_index: int, frames: Mapping[str, TextFrame], state: Dict[str, int]) -> None:
    frame = frames.get(element.get("ParentStory") or "")
    if frame is None:
        return
    frame.page_index = page_index
    frame.layout_order = state["order"]
    state["order"] += 1
    bounds = _bounds(element.get("GeometricBounds"))
    if bounds is not None:
        top, left, bottom, right = bounds
        frame.position = {"x": left, "y": top, "width": right - left, "height": bottom - top}


def _parse_member(archive: zipfile.ZipFile, name: str) -> Optional[ET.Element]:
    try:
        return ET.fromstring(archive.read(name))
    except ET.ParseError as exc:
        LOG.warning("Unreadable IDML part %s: %s", name, exc)
        return None


def parse_idml(data: bytes) -> IdmlDocument:
    """Read swatches, styles, stories and spreads of an IDML package."""
    if not data:
        raise ValidationError("data_required", "IDML data is required")
    try:
        archive = zipfile.ZipFile(io.BytesIO(data))
    except zipfile.BadZipFile:
        raise ValidationError("invalid_idml", "File is not a valid IDML package")
    document = IdmlDocument()
    with archive:
        names = archive.namelist()
        if "Resources/Swatches.xml" in names:
            swatches = _parse_member(archive, "Resources/Swatches.xml")
            if swatches is not None:
                document.colors = _parse_colors(swatches)
        if "Resources/Styles.xml" in names:
            styles = _parse_member(archive, "Resources/Styles.xml")
            if styles is not None:
                document.character_styles = _parse_character_styles(styles, document.colors)
                document.paragraph_styles = _parse_paragraph_styles(styles, document.colors)
        for name in sorted(n for n in names if _STORY_RE.match(n)):
            root = _parse_member(archive, name)
            if root is None:
                continue
            for story in root.iter("Story"):
                if story.find("Story") is not None:
                    continue
                frame = _story_frame(story)
                if frame is not None:
                    document.text_frames.append(frame)
        frames = {f.id: f for f in document.text_frames}
        state = {"page": 0, "order": 0}
        for name in sorted(n for n in names if _SPREAD_RE.match(n)):
            root = _parse_member(archive, name)
            if root is not None:
                _apply_spread(root, document, frames, state)
    LOG.info(
        "IDML parsed frames=%s char_styles=%s para_styles=%s colors=%s",
        len(document.text_frames), len(document.character_styles),
        len(document.paragraph_styles), len(document.colors),
    )
    return document


def _resolve_style(styles: Mapping[str, Dict[str, Any]], style_id: str, prefix: str) -> Dict[str, Any]:
    if not style_id:
        return {}
    for candidate in (style_id, style_id[len(prefix):] if style_id.startswith(prefix) else prefix + style_id):
        if candidate in styles:
            return styles[candidate]
    LOG.warning("Style %s not found in IDML styles", style_id)
    return {}


def build_text_style(char_style: Mapping[str, Any], para_style: Mapping[str, Any]) -> Dict[str, Any]:
    """CSS-like style of a merged text; character style wins over paragraph style."""
    font_size = char_style.get("fontSize") or para_style.get("fontSize") or DEFAULT_POINT_SIZE
    letter_spacing = char_style.get("letterSpacing") or 0
    line_height = para_style.get("lineHeight")
    return {
        "fontFamily": char_style.get("fontFamily") or para_style.get("fontFamily"),
        "fontSize": f"{font_size:g}pt",
        "fontWeight": char_style.get("fontWeight") or "normal",
        "fontStyle": char_style.get("fontStyle") or "normal",
        "color": char_style.get("color") or para_style.get("color") or "#000000",
        "letterSpacing": f"{letter_spacing:g}em" if letter_spacing else "normal",
        "textDecoration": char_style.get("textDecoration") or "none",
        "textTransform": char_style.get("textTransform") or "none",
        "textAlign": para_style.get("textAlign") or "left",
        "lineHeight": line_height if line_height and line_height != "1" else MIN_LINE_HEIGHT,
        "whiteSpace": para_style.get("whiteSpace") or "normal",
        "overflow": "visible",
    }


def _container_number(container_id: str) -> int:
    match = _CONTAINER_NUMBER_RE.search(container_id or "")
    return int(match.group(0)) if match else 0


def merge_texts(epub_texts: Iterable[Mapping[str, Any]], document: IdmlDocument, book_id: str) -> List[Dict[str, Any]]:
    """Pair EPUB text containers with IDML frames by rank within each page.

    Containers are ordered by the number in their id (``_idContainer005``),
    frames by their order in the spreads. Unpaired entries on either side
    are dropped with a warning.
    """
    epub_by_page: Dict[int, List[Mapping[str, Any]]] = {}
    for text in epub_texts:
        epub_by_page.setdefault(int(text.get("pageIndex") or 0), []).append(text)
    idml_by_page: Dict[int, List[TextFrame]] = {}
    for frame in document.text_frames:
        idml_by_page.setdefault(frame.page_index, []).append(frame)

    merged: List[Dict[str, Any]] = []
    for page_index in sorted(set(epub_by_page) | set(idml_by_page)):
        containers = sorted(epub_by_page.get(page_index, []), key=lambda t: _container_number(str(t.get("containerId"))))
        frames = sorted(
            idml_by_page.get(page_index, []),
            key=lambda f: f.layout_order if f.layout_order is not None else 0,
        )
        if len(containers) != len(frames):
            LOG.warning(
                "Storyboard page %s: %s EPUB containers vs %s IDML frames",
                page_index, len(containers), len(frames),
            )
        for container, frame in zip(containers, frames):
            merged.append(_merged_text(container, frame, document, book_id))
    return merged


def _merged_text(container: Mapping[str, Any], frame: TextFrame, document: IdmlDocument, book_id: str) -> Dict[str, Any]:
    char_style = _resolve_style(document.character_styles, frame.applied_character_style, "CharacterStyle/")
    para_style = _resolve_style(document.paragraph_styles, frame.applied_paragraph_style, "ParagraphStyle/")
    container_id = str(container.get("containerId"))
    page_index = int(container.get("pageIndex") or frame.page_index)
    position = dict(container.get("position") or {})
    position.update({"pageIndex": page_index, "zoneId": "body"})
    is_variable = bool(frame.variables)
    text: Dict[str, Any] = {
        "id": f"text-{book_id}-{page_index}-{container_id}",
        "type": "variable" if is_variable else "fixed",
        "label": container_id,
        "content": _VARIABLE_RE.sub(r"{{\1}}", frame.content) if is_variable else frame.content,
        "originalContent": frame.content,
        "variables": list(frame.variables),
        "style": build_text_style(char_style, para_style),
        "position": position,
        "cssSelector": f"#{container_id}",
        "combinationKey": wizard_service.DEFAULT_COMBINATION_KEY,
        "idmlFrameId": frame.id,
        "appliedCharacterStyle": frame.applied_character_style,
        "appliedParagraphStyle": frame.applied_paragraph_style,
    }
    if frame.conditional_segments:
        text["conditionalSegments"] = [dict(s) for s in frame.conditional_segments]
    return text


def strip_font_declarations(css: str) -> str:
    """Drop ``@font-face`` blocks and font/colour declarations; IDML styles own them."""
    for pattern in _STRIPPED_CSS_RES:
        css = pattern.sub("", css or "")
    return css


def check_font_bytes(name: str, data: bytes) -> Dict[str, Any]:
    """Compare the magic bytes of a font with its extension.

    InDesign packages ship obfuscated copies that no renderer can load.
    """
    ext = name.rsplit(".", 1)[-1].lower() if "." in name else "ttf"
    magic = data[:4].hex().upper()
    valid = any(magic.startswith(m) for m in FONT_MAGICS.get(ext, FONT_MAGICS["ttf"]))
    result: Dict[str, Any] = {"name": name, "valid": valid, "obfuscated": not valid}
    if valid:
        result["details"] = f"Format valide ({magic})"
    else:
        result["details"] = f"Format invalide: {magic}"
        result["error"] = "Police obfusquée - utilisez le fichier TTF/OTF original"
    return result


def parse_font_file_name(name: str) -> Dict[str, str]:
    """``Quicksand-BoldItalic.ttf`` -> family Quicksand, bold, italic."""
    stem = name.rsplit(".", 1)[0]
    family, _sep, variant = stem.partition("-")
    lowered = variant.lower()
    return {
        "fontFamily": family.replace("_", " ").strip() or stem,
        "fontWeight": "bold" if "bold" in lowered or "black" in lowered else "normal",
        "fontStyle": "italic" if "italic" in lowered or "oblique" in lowered else "normal",
    }


def check_import(
    idml_path: Optional[str] = None,
    epub_path: Optional[str] = None,
    fonts: Optional[List[Mapping[str, Any]]] = None,
) -> Dict[str, Any]:
    """Validate stored IDML, EPUB and font uploads before an import.

    Each part is checked independently; a broken part is reported in its
    own entry and does not fail the others.
    """
    results: Dict[str, Any] = {}
    if idml_path:
        try:
            document = parse_idml(object_storage.read_object(idml_path).data)
            results["idml"] = {"valid": True, "stats": document.stats(), "fonts": document.fonts}
        except (ValidationError, NotFoundError) as exc:
            LOG.warning("check-import IDML %s rejected: %s", idml_path, exc.message)
            results["idml"] = {"valid": False, "error": exc.message}
    if epub_path:
        try:
            data = object_storage.read_object(epub_path).data
            with zipfile.ZipFile(io.BytesIO(data)) as archive:
                pages = [n for n in archive.namelist() if archive_import.HTML_RE.search(n)]
            results["epub"] = {"valid": True, "pages": len(pages)}
        except (ValidationError, NotFoundError) as exc:
            results["epub"] = {"valid": False, "error": exc.message}
        except zipfile.BadZipFile:
            results["epub"] = {"valid": False, "error": "File is not a valid EPUB archive"}
    if fonts:
        checked = []
        for font in fonts:
            name = str(font.get("name") or "")
            try:
                checked.append(check_font_bytes(name, object_storage.read_object(str(font.get("objectPath") or "")).data))
            except (ValidationError, NotFoundError) as exc:
                checked.append({"name": name, "valid": False, "obfuscated": False, "error": exc.message})
        results["fonts"] = checked
    return {"success": True, "results": results}


def _store_fonts(book_id: str, fonts: Iterable[Mapping[str, Any]]) -> Dict[str, Dict[str, str]]:
    stored: Dict[str, Dict[str, str]] = {}
    for font in fonts:
        name = str(font.get("name") or "")
        try:
            data = object_storage.read_object(str(font.get("objectPath") or "")).data
        except (ValidationError, NotFoundError) as exc:
            LOG.warning("Storyboard font %s skipped: %s", name, exc.message)
            continue
        if not check_font_bytes(name, data)["valid"]:
            LOG.warning("Storyboard font %s skipped: obfuscated", name)
            continue
        ext = name.rsplit(".", 1)[-1].lower() if "." in name else "ttf"
        safe = secure_filename(name) or f"font.{ext}"
        key = object_storage.public_key(f"fonts/{book_id}_{uuid.uuid4().hex[:8]}_{safe}")
        url = object_storage.save_object(key, data, archive_import.FONT_CONTENT_TYPES.get(ext))
        parsed = parse_font_file_name(name)
        stored[name] = {"url": url, **parsed, "fontFamily": str(font.get("fontFamily") or parsed["fontFamily"])}
    return stored


def import_storyboard(
    book_id: str,
    epub_path: str,
    idml_path: str,
    fonts: Optional[List[Mapping[str, Any]]] = None,
) -> Dict[str, Any]:
    """Build and save a book's content config from a stored EPUB + IDML pair."""
    if not epub_path or not idml_path or not book_id:
        raise ValidationError("storyboard_fields_required", "epubPath, idmlPath and bookId are required")
    validate_resource_id(book_id, "book_id")
    if books_repo.get_book(book_id) is None:
        raise NotFoundError.for_resource("Book", book_id)
    epub = archive_import.extract_stored_epub(epub_path, book_id)
    uploaded = _store_fonts(book_id, fonts or [])
    document = parse_idml(object_storage.read_object(idml_path).data)
    texts = merge_texts(epub["texts"], document, book_id)
    css = strip_font_declarations(str(epub.get("cssContent") or ""))
    content_config = {
        "pages": epub["pages"],
        "texts": texts,
        "imageElements": epub["imageElements"],
        "cssContent": css,
    }
    books_repo.update_book(book_id, {"content_config": content_config})
    conditional = sum(1 for t in texts if t.get("conditionalSegments"))
    LOG.info(
        "Storyboard imported book=%s pages=%s texts=%s images=%s conditional=%s",
        book_id, len(epub["pages"]), len(texts), len(epub["imageElements"]), conditional,
    )
    return {
        "success": True,
        "bookId": book_id,
        "contentConfig": content_config,
        "wizardConfig": epub.get("wizardConfig") or {"tabs": []},
        "fontWarnings": css_tools.detect_font_issues(css),
        "uploadedFonts": uploaded,
        "detectedFonts": document.fonts,
        "stats": {
            "pages": len(epub["pages"]),
            "texts": len(texts),
            "images": len(epub["imageElements"]),
            "uploadedCustomFonts": len(uploaded),
            "detectedFonts": len(document.fonts),
            "conditionalTextFrames": conditional,
        },
    }


def extract_avatar_template(book_id: str, epub_path: str, tab_id: str) -> Dict[str, Any]:
    """Map the complete avatar images of a template EPUB onto a wizard tab.

    Images named for another hero are ignored. An image is complete when
    its file name sets every option variant of the tab; its mapping key is
    the sorted option ids, as in `wizard_service.generate_avatar_combinations`.
    """
    if not epub_path or not book_id or not tab_id:
        raise ValidationError("avatar_template_fields_required", "epubPath, bookId and tabId are required")
    validate_resource_id(book_id, "book_id")
    validate_resource_id(tab_id, "tab_id")
    book = books_repo.get_book(book_id)
    if book is None:
        raise NotFoundError.for_resource("Book", book_id)
    wizard = dict(book.wizard_config or {})
    tab = next((t for t in wizard.get("tabs") or [] if t.get("id") == tab_id), None)
    if tab is None:
        raise NotFoundError("tab_not_found", f"Tab '{tab_id}' not found")
    variant_ids = [str(v.get("id")) for v in tab.get("variants") or [] if v.get("type") == "options"]

    archive = archive_import.open_archive(object_storage.read_object(epub_path).data)
    target = archive_import.book_images_dir(book_id).parent / "avatars" / tab_id / "images"
    mappings: Dict[str, str] = {}
    skipped: List[str] = []
    with archive:
        for info in archive_import.archive_members(archive):
            file_name = info.filename.split("/")[-1]
            if not archive_import.IMAGE_RE.search(file_name):
                continue
            traits = wizard_service.parse_image_filename(file_name).characteristics
            hero = traits.get("hero")
            if hero and hero != tab_id.lower():
                continue
            if not variant_ids or any(v not in traits for v in variant_ids):
                skipped.append(file_name)
                continue
            target.mkdir(parents=True, exist_ok=True)
            (target / file_name).write_bytes(archive.read(info))
            key = "_".join(sorted(traits[v] for v in variant_ids))
            mappings[key] = f"/assets/books/{book_id}/avatars/{tab_id}/images/{file_name}"
    if not mappings:
        raise ValidationError(
            "no_complete_avatars",
            "Template has no image covering every option of the tab",
            details={"skipped": skipped},
        )
    merged = dict(wizard.get("avatarMappings") or {})
    merged.update(mappings)
    wizard["avatarMappings"] = merged
    books_repo.update_book(book_id, {"wizard_config": wizard})
    LOG.info("Avatar template book=%s tab=%s mapped=%s skipped=%s", book_id, tab_id, len(mappings), len(skipped))
    return {"success": True, "tabId": tab_id, "mapped": len(mappings), "skipped": skipped, "avatarMappings": merged}


__all__ = [
    "TextFrame",
    "IdmlDocument",
    "color_to_hex",
    "parse_idml",
    "build_text_style",
    "merge_texts",
    "strip_font_declarations",
    "check_font_bytes",
    "parse_font_file_name",
    "check_import",
    "import_storyboard",
    "extract_avatar_template",
]
