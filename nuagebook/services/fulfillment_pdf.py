"""Printable A4 PDFs sent to printers for an order.

The cover PDF has one page per item (title and dedication on a pink
background); the interior PDF has one title/story page per item.
"""
from __future__ import annotations

import datetime
import io
from typing import Any, Dict, List, Mapping, Optional

from reportlab.lib.pagesizes import A4
from reportlab.lib.units import mm
from reportlab.lib.utils import simpleSplit
from reportlab.pdfgen import canvas

from nuagebook.db.repositories import orders_repo
from nuagebook.utils.errors import NotFoundError, ValidationError
from nuagebook.utils.logging import get_logger

LOG = get_logger("fulfillment_pdf")

PAGE_WIDTH, PAGE_HEIGHT = A4
CENTER_X = PAGE_WIDTH / 2
DEFAULT_CHILD_NAME = "L'enfant"
COVER_BACKGROUND = (255 / 255.0, 240 / 255.0, 245 / 255.0)
TITLE_COLOR = (50 / 255.0, 50 / 255.0, 50 / 255.0)
NAME_COLOR = (255 / 255.0, 100 / 255.0, 100 / 255.0)
FOOTER_COLOR = (150 / 255.0, 150 / 255.0, 150 / 255.0)
PDF_KINDS = ("cover", "interior")


def _y(top_mm: float) -> float:
    """Distance from the top edge in mm -> reportlab y coordinate."""
    return PAGE_HEIGHT - top_mm * mm


def _configuration(item: Mapping[str, Any]) -> Dict[str, Any]:
    config = item.get("configuration")
    return dict(config) if isinstance(config, Mapping) else {}


def _child_name(item: Mapping[str, Any]) -> str:
    name = _configuration(item).get("childName")
    return str(name).strip() if name and str(name).strip() else DEFAULT_CHILD_NAME


def _items(order: Mapping[str, Any]) -> List[Mapping[str, Any]]:
    items = [i for i in order.get("items") or [] if isinstance(i, Mapping)]
    if not items:
        raise ValidationError("order_has_no_items", "Order has no items")
    return items


def build_cover_pdf(order: Mapping[str, Any], today: Optional[datetime.date] = None) -> bytes:
    items = _items(order)
    stamp = (today or datetime.date.today()).strftime("%d/%m/%Y")
    buffer = io.BytesIO()
    pdf = canvas.Canvas(buffer, pagesize=A4)
    pdf.setTitle(f"Couverture {order.get('id', '')}")
    for index, item in enumerate(items):
        pdf.setFillColorRGB(*COVER_BACKGROUND)
        pdf.rect(0, 0, PAGE_WIDTH, PAGE_HEIGHT, stroke=0, fill=1)

        pdf.setFillColorRGB(*TITLE_COLOR)
        pdf.setFont("Helvetica-Bold", 24)
        pdf.drawCentredString(CENTER_X, _y(80), str(item.get("bookTitle") or ""))
        pdf.setFont("Helvetica-Oblique", 14)
        pdf.drawCentredString(CENTER_X, _y(100), "Une histoire unique pour")

        pdf.setFillColorRGB(*NAME_COLOR)
        pdf.setFont("Helvetica-Bold", 30)
        pdf.drawCentredString(CENTER_X, _y(120), _child_name(item))

        pdf.setFillColorRGB(*FOOTER_COLOR)
        pdf.setFont("Courier", 10)
        pdf.drawCentredString(CENTER_X, _y(280), f"Commande #{order.get('id', '')} - Item {index + 1}/{len(items)}")
        pdf.drawCentredString(CENTER_X, _y(285), f"Généré le {stamp}")
        pdf.showPage()
    pdf.save()
    return buffer.getvalue()


def story_lines(item: Mapping[str, Any]) -> List[str]:
    config = _configuration(item)
    name = _child_name(item)
    kind = "garçon" if config.get("gender") == "boy" else "fille"
    return [
        f"Il était une fois, un enfant nommé {name}.",
        f"C'était un(e) {kind} très courageux(se).",
        f"Un jour, {name} partit à l'aventure...",
    ]


def character_lines(item: Mapping[str, Any]) -> List[str]:
    characters = _configuration(item).get("characters")
    if not isinstance(characters, Mapping):
        return []
    lines = []
    for key, character in characters.items():
        if isinstance(character, Mapping) and character.get("name"):
            lines.append(f"- {character['name']} ({character.get('role') or key})")
    return lines


def build_interior_pdf(order: Mapping[str, Any]) -> bytes:
    items = _items(order)
    buffer = io.BytesIO()
    pdf = canvas.Canvas(buffer, pagesize=A4)
    pdf.setTitle(f"Intérieur {order.get('id', '')}")
    text_width = PAGE_WIDTH - 40 * mm
    for item in items:
        pdf.setFont("Times-Bold", 20)
        pdf.drawCentredString(CENTER_X, _y(50), str(item.get("bookTitle") or ""))
        pdf.setFont("Times-Roman", 12)
        pdf.drawCentredString(CENTER_X, _y(70), "Ce livre appartient à :")
        pdf.setFont("Times-Roman", 16)
        pdf.drawCentredString(CENTER_X, _y(80), _child_name(item))

        y_mm = 120.0
        pdf.setFont("Times-Roman", 12)
        for line in story_lines(item):
            for wrapped in simpleSplit(line, "Times-Roman", 12, text_width):
                pdf.drawString(20 * mm, _y(y_mm), wrapped)
                y_mm += 10

        characters = character_lines(item)
        if characters:
            y_mm += 20
            pdf.setFont("Times-Italic", 12)
            pdf.drawString(20 * mm, _y(y_mm), "Avec la participation de :")
            y_mm += 10
            for line in characters:
                pdf.drawString(25 * mm, _y(y_mm), line)
                y_mm += 7

        pdf.setFont("Times-Roman", 10)
        pdf.drawCentredString(CENTER_X, _y(290), "Page 1")
        pdf.showPage()
    pdf.save()
    return buffer.getvalue()


def order_pdf(order_id: str, kind: str) -> bytes:
    if kind not in PDF_KINDS:
        raise ValidationError("invalid_pdf_kind", f"PDF kind must be one of {', '.join(PDF_KINDS)}")
    order = orders_repo.get_order(order_id)
    if order is None:
        raise NotFoundError.for_resource("Order", order_id)
    payload = order.as_dict()
    data = build_cover_pdf(payload) if kind == "cover" else build_interior_pdf(payload)
    LOG.info("Built %s PDF for order=%s (%s bytes)", kind, order_id, len(data))
    return data


__all__ = [
    "build_cover_pdf",
    "build_interior_pdf",
    "story_lines",
    "character_lines",
    "order_pdf",
]
