"""Content editor geometry.

Element positions in a book's content config are stored in percent of the
page (``x``, ``y``, ``width``, ``height``) plus ``rotation`` in degrees and
an integer ``layer``. Pointer deltas arrive in screen pixels and are
converted using the page size and the editor zoom.

All operations return a new config dict; the input is left untouched.
"""
from __future__ import annotations

import copy
import math
from typing import Any, Dict, Mapping, Optional, Tuple

from nuagebook.db.repositories import books_repo
from nuagebook.utils.errors import NotFoundError, ValidationError
from nuagebook.utils.logging import get_logger

LOG = get_logger("content_layout")

ELEMENT_COLLECTIONS = ("texts", "imageElements")
RESIZE_HANDLES = ("nw", "ne", "sw", "se")
MIN_SIZE_PCT = 1.0
PAGE_PCT = 100.0
FIT_STEP_PT = 0.5
FIT_MIN_PT = 1.0
CHAR_WIDTH_FACTOR = 1.2


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(value, max(low, high)))


def _round(value: float) -> float:
    return round(value, 4)


def _locate(config: Mapping[str, Any], element_id: str) -> Tuple[str, int]:
    for collection in ELEMENT_COLLECTIONS:
        for index, element in enumerate(config.get(collection) or []):
            if element.get("id") == element_id:
                return collection, index
    raise NotFoundError("element_not_found", f"Element with id '{element_id}' not found")


def _with_position(config: Mapping[str, Any], element_id: str):
    updated = copy.deepcopy(dict(config or {}))
    collection, index = _locate(updated, element_id)
    element = updated[collection][index]
    position = dict(element.get("position") or {})
    for key, default in (("x", 0.0), ("y", 0.0), ("width", 10.0), ("height", 10.0), ("rotation", 0.0)):
        position[key] = float(position.get(key) or default)
    position["layer"] = int(position.get("layer") or 0)
    element["position"] = position
    return updated, position


def _to_pct(delta_px: float, page_px: float, zoom: float) -> float:
    if page_px <= 0:
        raise ValidationError("invalid_page_size", "Page size must be positive")
    if zoom <= 0:
        raise ValidationError("invalid_zoom", "Zoom must be positive")
    return (float(delta_px) / zoom) / float(page_px) * PAGE_PCT


def move_element(
    config: Mapping[str, Any],
    element_id: str,
    dx_px: float,
    dy_px: float,
    page_width_px: float,
    page_height_px: float,
    zoom: float = 1.0,
) -> Dict[str, Any]:
    """Translate an element, keeping its box inside the page."""
    updated, position = _with_position(config, element_id)
    x = position["x"] + _to_pct(dx_px, page_width_px, zoom)
    y = position["y"] + _to_pct(dy_px, page_height_px, zoom)
    position["x"] = _round(_clamp(x, 0.0, PAGE_PCT - position["width"]))
    position["y"] = _round(_clamp(y, 0.0, PAGE_PCT - position["height"]))
    return updated


def resize_element(
    config: Mapping[str, Any],
    element_id: str,
    handle: str,
    dx_px: float,
    dy_px: float,
    page_width_px: float,
    page_height_px: float,
    zoom: float = 1.0,
) -> Dict[str, Any]:
    """Drag a corner handle; the opposite corner stays fixed."""
    if handle not in RESIZE_HANDLES:
        raise ValidationError("invalid_handle", f"Handle must be one of {', '.join(RESIZE_HANDLES)}")
    updated, position = _with_position(config, element_id)
    dx = _to_pct(dx_px, page_width_px, zoom)
    dy = _to_pct(dy_px, page_height_px, zoom)
    left, top = position["x"], position["y"]
    right, bottom = left + position["width"], top + position["height"]

    if "w" in handle:
        left = _clamp(left + dx, 0.0, right - MIN_SIZE_PCT)
    else:
        right = _clamp(right + dx, left + MIN_SIZE_PCT, PAGE_PCT)
    if "n" in handle:
        top = _clamp(top + dy, 0.0, bottom - MIN_SIZE_PCT)
    else:
        bottom = _clamp(bottom + dy, top + MIN_SIZE_PCT, PAGE_PCT)

    position["x"], position["y"] = _round(left), _round(top)
    position["width"] = _round(max(MIN_SIZE_PCT, right - left))
    position["height"] = _round(max(MIN_SIZE_PCT, bottom - top))
    return updated


def normalize_rotation(degrees: float) -> float:
    value = math.fmod(float(degrees), 360.0)
    if value < 0:
        value += 360.0
    value = _round(value)
    return 0.0 if value >= 360.0 else value


def rotate_element(
    config: Mapping[str, Any],
    element_id: str,
    degrees: float,
    relative: bool = False,
) -> Dict[str, Any]:
    updated, position = _with_position(config, element_id)
    target = position["rotation"] + float(degrees) if relative else float(degrees)
    position["rotation"] = normalize_rotation(target)
    return updated


def rotate_towards(
    config: Mapping[str, Any],
    element_id: str,
    center_px: Tuple[float, float],
    pointer_px: Tuple[float, float],
) -> Dict[str, Any]:
    """Rotation handle drag: 0 deg when the pointer is straight above the center."""
    dx = float(pointer_px[0]) - float(center_px[0])
    dy = float(pointer_px[1]) - float(center_px[1])
    if dx == 0 and dy == 0:
        return copy.deepcopy(dict(config or {}))
    angle = math.degrees(math.atan2(dy, dx)) + 90.0
    return rotate_element(config, element_id, angle)


def _shift_layer(config: Mapping[str, Any], element_id: str, step: int) -> Dict[str, Any]:
    updated, position = _with_position(config, element_id)
    position["layer"] = max(0, position["layer"] + step)
    return updated


def bring_forward(config: Mapping[str, Any], element_id: str) -> Dict[str, Any]:
    return _shift_layer(config, element_id, 1)


def send_backward(config: Mapping[str, Any], element_id: str) -> Dict[str, Any]:
    return _shift_layer(config, element_id, -1)


def remove_element(config: Mapping[str, Any], element_id: str) -> Dict[str, Any]:
    updated = copy.deepcopy(dict(config or {}))
    collection, index = _locate(updated, element_id)
    del updated[collection][index]
    return updated


def _estimate_width(text: str, font_size: float) -> float:
    return len(text) * font_size * CHAR_WIDTH_FACTOR


def _line_count(text: str, container_width: float, font_size: float, indent: float) -> int:
    total = 0
    for paragraph in text.split("\n"):
        if not paragraph.strip():
            total += 1
            continue
        current = 0.0
        lines = 0
        first_line = True
        for word in paragraph.split(" "):
            if not word:
                continue
            word_width = _estimate_width(word + " ", font_size)
            available = container_width - indent if first_line else container_width
            if current + word_width > available and current > 0:
                lines += 1
                current = word_width
                first_line = False
            else:
                current += word_width
        if current > 0:
            lines += 1
        total += lines or 1
    return total


def fit_text_to_container(
    text: str,
    font_size: float,
    line_height: float,
    indent: float,
    width: float,
    height: float,
) -> float:
    """Largest font size (0.5pt steps, min 1pt) whose estimated wrap fits the box."""
    if not text or not text.strip() or width <= 0 or height <= 0:
        return font_size
    current = float(font_size)
    while current > FIT_MIN_PT:
        lines = _line_count(text, width, current, indent)
        if lines * current * line_height <= height:
            return current
        current -= FIT_STEP_PT
    return FIT_MIN_PT


def _number(payload: Mapping[str, Any], key: str, default: Optional[float] = None) -> float:
    raw = payload.get(key, default)
    try:
        return float(raw)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        raise ValidationError(f"invalid_{key}", f"'{key}' must be a number")


def apply_element_operation(book_id: str, element_id: str, payload: Mapping[str, Any]) -> Dict[str, Any]:
    """Apply one editor operation to a stored book and persist the result."""
    book = books_repo.get_book(book_id)
    if book is None:
        raise NotFoundError.for_resource("Book", book_id)
    config = book.content_config or {}
    op = payload.get("op")
    zoom = _number(payload, "zoom", 1.0)
    if op == "move":
        updated = move_element(
            config, element_id,
            _number(payload, "dx"), _number(payload, "dy"),
            _number(payload, "pageWidth"), _number(payload, "pageHeight"), zoom,
        )
    elif op == "resize":
        updated = resize_element(
            config, element_id, str(payload.get("handle") or ""),
            _number(payload, "dx"), _number(payload, "dy"),
            _number(payload, "pageWidth"), _number(payload, "pageHeight"), zoom,
        )
    elif op == "rotate":
        updated = rotate_element(config, element_id, _number(payload, "degrees"), bool(payload.get("relative")))
    elif op == "forward":
        updated = bring_forward(config, element_id)
    elif op == "backward":
        updated = send_backward(config, element_id)
    elif op == "remove":
        updated = remove_element(config, element_id)
    else:
        raise ValidationError("invalid_operation", "op must be one of move, resize, rotate, forward, backward, remove")
    books_repo.update_book(book_id, {"content_config": updated})
    LOG.debug("Applied %s to element=%s book=%s", op, element_id, book_id)
    return updated


__all__ = [
    "MIN_SIZE_PCT",
    "RESIZE_HANDLES",
    "move_element",
    "resize_element",
    "normalize_rotation",
    "rotate_element",
    "rotate_towards",
    "bring_forward",
    "send_backward",
    "remove_element",
    "fit_text_to_container",
    "apply_element_operation",
]
