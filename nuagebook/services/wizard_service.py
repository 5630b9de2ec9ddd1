"""Wizard configuration helpers.

* avatar combinations: capped cartesian product of a tab's option variants
* avatar mapping export/import (combination key -> image URL)
* filename parsing for personalized illustrations
  (``page1_hero-father_skin-light.png``)
* wizard tabs built from the characteristics found in an import
"""
from __future__ import annotations

import datetime
import itertools
import re
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional

from nuagebook import config as app_config
from nuagebook.db.repositories import books_repo
from nuagebook.utils.errors import NotFoundError, ValidationError
from nuagebook.utils.logging import get_logger

LOG = get_logger("wizard_service")

EXPORT_VERSION = "1.0"
AVATAR_EXPORT_TYPE = "avatar_mappings"
DEFAULT_COMBINATION_KEY = "default"

ORDERED_CHARACTERISTICS = ("hero", "gender", "skin", "hair", "eyes", "outfit", "accessory")
CHARACTERISTIC_LABELS = {
    "hero": "Personnage principal",
    "skin": "Couleur de peau",
    "hair": "Couleur des cheveux",
    "eyes": "Couleur des yeux",
    "gender": "Genre",
    "outfit": "Tenue",
    "accessory": "Accessoire",
}
VALUE_LABELS = {
    "hero": {
        "father": "Papa",
        "mother": "Maman",
        "boy": "Garçon",
        "girl": "Fille",
        "grandpa": "Grand-père",
        "grandma": "Grand-mère",
    },
    "skin": {"light": "Claire", "medium": "Moyenne", "dark": "Foncée", "tan": "Bronzée"},
    "hair": {"brown": "Brun", "black": "Noir", "blonde": "Blond", "red": "Roux", "grey": "Gris", "white": "Blanc"},
    "eyes": {"brown": "Marron", "blue": "Bleu", "green": "Vert", "hazel": "Noisette"},
    "gender": {"male": "Masculin", "female": "Féminin"},
}

_IMAGE_EXT_RE = re.compile(r"\.(jpg|jpeg|png|gif|svg|webp)$", re.IGNORECASE)
_PAGE_RE = re.compile(r"^page(\d+)$", re.IGNORECASE)
_CHARACTERISTIC_RE = re.compile(r"^([a-z]+)-([a-z0-9]+)$", re.IGNORECASE)


@dataclass
class CombinationPart:
    variant_id: str
    variant_label: str
    id: str
    label: str

    def to_dict(self) -> Dict[str, str]:
        return {
            "variantId": self.variant_id,
            "variantLabel": self.variant_label,
            "id": self.id,
            "label": self.label,
        }


@dataclass
class Combination:
    key: str
    parts: List[CombinationPart] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {"key": self.key, "parts": [p.to_dict() for p in self.parts]}


@dataclass
class CombinationResult:
    combinations: List[Combination]
    truncated: bool
    limit: int

    @property
    def keys(self) -> List[str]:
        return [c.key for c in self.combinations]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "combinations": [c.to_dict() for c in self.combinations],
            "count": len(self.combinations),
            "truncated": self.truncated,
            "limit": self.limit,
        }


def _option_variants(tab: Mapping[str, Any]) -> List[Mapping[str, Any]]:
    eligible = []
    for variant in tab.get("variants") or []:
        vtype = variant.get("type")
        if vtype not in (None, "", "options"):
            continue
        if not variant.get("options"):
            continue
        eligible.append(variant)
    return eligible


def generate_avatar_combinations(tab: Mapping[str, Any], limit: Optional[int] = None) -> CombinationResult:
    """Enumerate option combinations of `tab`, stopping after `limit` entries.

    Only variants of type ``options`` (or untyped) with at least one option
    take part. Keys are the option ids sorted and joined with ``_`` so they
    do not depend on variant order.
    """
    cap = limit if limit is not None and limit > 0 else app_config.max_combinations()
    variants = _option_variants(tab or {})
    if not variants:
        return CombinationResult(combinations=[], truncated=False, limit=cap)
    option_lists = [
        [(variant, option) for option in variant.get("options") or []]
        for variant in variants
    ]
    combinations: List[Combination] = []
    truncated = False
    for picked in itertools.product(*option_lists):
        if len(combinations) >= cap:
            truncated = True
            break
        parts = [
            CombinationPart(
                variant_id=str(variant.get("id", "")),
                variant_label=str(variant.get("label", "")),
                id=str(option.get("id", "")),
                label=str(option.get("label", "")),
            )
            for variant, option in picked
        ]
        key = "_".join(sorted(p.id for p in parts))
        combinations.append(Combination(key=key, parts=parts))
    if truncated:
        LOG.warning("Avatar combinations truncated tab=%s limit=%s", tab.get("id"), cap)
    return CombinationResult(combinations=combinations, truncated=truncated, limit=cap)


def _character_tabs(wizard_config: Optional[Mapping[str, Any]]) -> List[Mapping[str, Any]]:
    return [t for t in (wizard_config or {}).get("tabs") or [] if t.get("type") == "character"]


def _all_character_keys(wizard_config: Optional[Mapping[str, Any]]) -> List[str]:
    keys: List[str] = []
    for tab in _character_tabs(wizard_config):
        for key in generate_avatar_combinations(tab).keys:
            if key not in keys:
                keys.append(key)
    return keys


def combinations_for_book(book_id: str, tab_id: Optional[str] = None) -> CombinationResult:
    book = books_repo.get_book(book_id)
    if book is None:
        raise NotFoundError.for_resource("Book", book_id)
    wizard = book.wizard_config or {}
    if tab_id:
        tab = next((t for t in wizard.get("tabs") or [] if t.get("id") == tab_id), None)
        if tab is None:
            raise NotFoundError("tab_not_found", f"Tab '{tab_id}' not found")
    else:
        tabs = _character_tabs(wizard)
        tab = tabs[0] if tabs else None
    return generate_avatar_combinations(tab or {})


def build_avatar_mappings_export(book_id: str, now: Optional[datetime.datetime] = None) -> Dict[str, Any]:
    """Export payload listing every generated key; unmapped keys map to ``""``."""
    book = books_repo.get_book(book_id)
    if book is None:
        raise NotFoundError.for_resource("Book", book_id)
    wizard = book.wizard_config or {}
    mappings: Dict[str, str] = dict(wizard.get("avatarMappings") or {})
    for key in _all_character_keys(wizard):
        if not mappings.get(key):
            mappings[key] = ""
    stamp = now or datetime.datetime.now(datetime.timezone.utc)
    return {
        "version": EXPORT_VERSION,
        "type": AVATAR_EXPORT_TYPE,
        "timestamp": stamp.isoformat(),
        "bookId": book.id,
        "avatarMappings": mappings,
    }


def import_avatar_mappings(book_id: str, payload: Mapping[str, Any]) -> Dict[str, Any]:
    """Merge imported mappings; keys that are not valid combinations are reported and skipped."""
    if not isinstance(payload, Mapping) or payload.get("type") != AVATAR_EXPORT_TYPE:
        raise ValidationError("invalid_export_type", "Expected an avatar_mappings export")
    incoming = payload.get("avatarMappings")
    if not isinstance(incoming, Mapping):
        raise ValidationError("avatar_mappings_required", "avatarMappings must be an object")
    book = books_repo.get_book(book_id)
    if book is None:
        raise NotFoundError.for_resource("Book", book_id)
    wizard = dict(book.wizard_config or {})
    valid_keys = set(_all_character_keys(wizard))
    merged = dict(wizard.get("avatarMappings") or {})
    applied, skipped = [], []
    for key, url in incoming.items():
        if key not in valid_keys or not isinstance(url, str):
            skipped.append(key)
            continue
        merged[key] = url
        applied.append(key)
    wizard["avatarMappings"] = merged
    books_repo.update_book(book_id, {"wizard_config": wizard})
    LOG.info("Imported avatar mappings book=%s applied=%s skipped=%s", book_id, len(applied), len(skipped))
    return {"applied": applied, "skipped": skipped, "avatarMappings": merged}


@dataclass
class ImageCharacteristics:
    page_index: int
    characteristics: Dict[str, str]
    combination_key: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "pageIndex": self.page_index,
            "characteristics": dict(self.characteristics),
            "combinationKey": self.combination_key,
        }


def parse_image_filename(filename: str) -> ImageCharacteristics:
    """``page1_hero-father_skin-light.png`` -> page 1, {hero: father, skin: light}."""
    stem = _IMAGE_EXT_RE.sub("", filename or "")
    page_index = 0
    characteristics: Dict[str, str] = {}
    pairs: List[str] = []
    for part in stem.split("_"):
        page_match = _PAGE_RE.match(part)
        if page_match:
            page_index = int(page_match.group(1))
            continue
        char_match = _CHARACTERISTIC_RE.match(part)
        if char_match:
            key, value = char_match.group(1).lower(), char_match.group(2).lower()
            characteristics[key] = value
            pairs.append(f"{key}:{value}")
    key = "_".join(sorted(pairs)) if pairs else DEFAULT_COMBINATION_KEY
    return ImageCharacteristics(page_index=page_index, characteristics=characteristics, combination_key=key)


def _capitalize_first(value: str) -> str:
    return value[:1].upper() + value[1:]


def _characteristic_order(key: str) -> tuple:
    if key in ORDERED_CHARACTERISTICS:
        return (0, ORDERED_CHARACTERISTICS.index(key), "")
    return (1, 0, key)


def build_wizard_config(characteristics: Mapping[str, Iterable[str]]) -> List[Dict[str, Any]]:
    """One ``character`` tab per detected characteristic, known keys first."""
    tabs: List[Dict[str, Any]] = []
    for key in sorted(characteristics, key=_characteristic_order):
        values = sorted(set(characteristics[key] or ()))
        if not values:
            continue
        labels = VALUE_LABELS.get(key, {})
        options = [{"id": value, "label": labels.get(value) or _capitalize_first(value)} for value in values]
        label = CHARACTERISTIC_LABELS.get(key) or _capitalize_first(key)
        tabs.append({
            "id": key,
            "label": label,
            "type": "character",
            "options": [],
            "variants": [{
                "id": key,
                "label": label,
                "title": label,
                "type": "options",
                "options": options,
            }],
        })
    return tabs


__all__ = [
    "CombinationPart",
    "Combination",
    "CombinationResult",
    "generate_avatar_combinations",
    "combinations_for_book",
    "build_avatar_mappings_export",
    "import_avatar_mappings",
    "ImageCharacteristics",
    "parse_image_filename",
    "build_wizard_config",
]
