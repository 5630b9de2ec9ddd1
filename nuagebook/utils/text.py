"""Small text/number formatting helpers shared by services and templates."""
from __future__ import annotations

import re
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any

_NON_WORD = re.compile(r"[^\w-]+", re.ASCII)
_DASHES = re.compile(r"-{2,}")
_SPACES = re.compile(r"\s+")


def slugify(value: Any) -> str:
    """Lowercase, dash separated identifier (``"Le Grand Voyage"`` -> ``"le-grand-voyage"``)."""
    if value is None:
        return ""
    text = str(value).lower().strip()
    text = _SPACES.sub("-", text)
    text = _NON_WORD.sub("", text)
    text = _DASHES.sub("-", text)
    return text.strip("-")


def to_money(value: Any) -> float:
    """Round to cents; raises ValueError on non-numeric input."""
    try:
        dec = Decimal(str(value)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    except (InvalidOperation, ValueError, TypeError):
        raise ValueError(f"not a number: {value!r}")
    if not dec.is_finite():
        raise ValueError(f"not a number: {value!r}")
    return float(dec)


def format_price(value: Any) -> str:
    """French style EUR amount: ``12.9`` -> ``"12,90 €"``; ``None`` -> ``"0,00 €"``."""
    if value is None or value == "":
        return "0,00 €"
    try:
        amount = to_money(value)
    except ValueError:
        return "0,00 €"
    return f"{amount:.2f}".replace(".", ",") + " €"


__all__ = ["slugify", "to_money", "format_price"]
