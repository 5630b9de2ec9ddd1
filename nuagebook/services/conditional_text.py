"""Conditional text resolution for storyboard text frames.

An imported text frame may carry ``conditionalSegments``: runs of text
tagged with an InDesign condition named ``TXTCOND_<tab>_<variant>-<option>``
(for example ``TXTCOND_hero-child_gender-boy``). At generation time only
segments whose condition matches the wizard selections are kept.

Selections have the shape ``{tabId: {variantId: optionId}}``. Condition tab
ids prefixed with ``hero-`` address the wizard tab without the prefix, so
``hero-child`` reads ``selections["child"]``.

Variables are substituted in kept segments:

* ``{TXTVAR_<tab>_<variant>}``: InDesign text variables. The value is padded
  with a space on each side that does not already touch whitespace, because
  InDesign drops the spaces between character ranges on export.
* ``{<variant>_<tab>}`` / ``{<variant>-<tab>}``: short placeholders.

Unknown variables are left untouched.
"""
from __future__ import annotations

import itertools
import re
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional

from nuagebook.utils.logging import get_logger

LOG = get_logger("conditional_text")

CONDITION_PREFIX = "TXTCOND_"
VARIABLE_PREFIX = "TXTVAR_"
HERO_PREFIX = "hero-"
DEFAULT_VARIANT_KEY = "default"

_CONDITION_RE = re.compile(r"^TXTCOND_([^_]+)_([^-]+)-(.+)$")
_TXTVAR_RE = re.compile(r"\{TXTVAR_([^_}]+)_([^}]+)\}")
_PLACEHOLDER_RE = re.compile(r"\{([^}]+)\}")
_SHORT_NAME_RE = re.compile(r"[_-]")

Selections = Mapping[str, Mapping[str, str]]


@dataclass(frozen=True)
class ParsedCondition:
    tab_id: str
    variant_id: str
    option_id: str

    def to_dict(self) -> Dict[str, str]:
        return {"tabId": self.tab_id, "variantId": self.variant_id, "optionId": self.option_id}


def parse_condition_name(condition: Optional[str]) -> Optional[ParsedCondition]:
    """Parse ``[Condition/]TXTCOND_tab_variant-option``; None for other names."""
    if not condition:
        return None
    name = condition[len("Condition/"):] if condition.startswith("Condition/") else condition
    match = _CONDITION_RE.match(name)
    if not match:
        return None
    return ParsedCondition(match.group(1), match.group(2), match.group(3))


def wizard_tab_id(tab_id: str) -> str:
    return tab_id[len(HERO_PREFIX):] if tab_id.startswith(HERO_PREFIX) else tab_id


def _tab_selections(tab_id: str, selections: Selections) -> Optional[Mapping[str, str]]:
    mapped = wizard_tab_id(tab_id)
    if mapped in selections:
        return selections[mapped]
    if tab_id in selections:
        return selections[tab_id]
    prefixed = HERO_PREFIX + tab_id
    return selections.get(prefixed)


def _segment_condition(segment: Mapping[str, Any]) -> Optional[ParsedCondition]:
    parsed = segment.get("parsedCondition")
    if isinstance(parsed, Mapping) and parsed.get("tabId") and parsed.get("variantId"):
        return ParsedCondition(str(parsed["tabId"]), str(parsed["variantId"]), str(parsed.get("optionId") or ""))
    return parse_condition_name(segment.get("condition"))


def is_condition_active(segment: Mapping[str, Any], selections: Selections) -> bool:
    if not segment.get("condition"):
        return True
    parsed = _segment_condition(segment)
    if parsed is None:
        # Unrecognised condition names never hide text.
        LOG.warning("Unknown condition format: %s", segment.get("condition"))
        return True
    tab = _tab_selections(parsed.tab_id, selections)
    return bool(tab) and tab.get(parsed.variant_id) == parsed.option_id


def _padded(value: str, text: str, start: int, end: int) -> str:
    before = "" if start == 0 or text[start - 1].isspace() else " "
    after = "" if end >= len(text) or text[end].isspace() else " "
    return f"{before}{value}{after}"


def resolve_variables(text: str, selections: Selections) -> str:
    """Substitute ``TXTVAR`` and short ``{variant_tab}`` placeholders in `text`."""

    def _txtvar(match: "re.Match[str]") -> str:
        tab = _tab_selections(match.group(1), selections)
        value = tab.get(match.group(2)) if tab else None
        if not value:
            return match.group(0)
        return _padded(str(value), match.string, match.start(), match.end())

    def _short(match: "re.Match[str]") -> str:
        parts = _SHORT_NAME_RE.split(match.group(1))
        if len(parts) != 2:
            return match.group(0)
        variant_id, tab_id = parts
        tab = _tab_selections(tab_id, selections)
        value = tab.get(variant_id) if tab else None
        return str(value) if value else match.group(0)

    resolved = _TXTVAR_RE.sub(_txtvar, text or "")
    return _PLACEHOLDER_RE.sub(
        lambda m: m.group(0) if m.group(1).startswith(VARIABLE_PREFIX) else _short(m),
        resolved,
    )


def resolve_conditional_text(segments: Iterable[Mapping[str, Any]], selections: Optional[Selections]) -> str:
    """Join the segments active for `selections`, variables substituted."""
    chosen = selections or {}
    parts: List[str] = []
    has_variables = False
    for segment in segments or ():
        if not is_condition_active(segment, chosen):
            continue
        parts.append(str(segment.get("text") or ""))
        has_variables = has_variables or bool(segment.get("variables"))
    # Substituted on the joined text so padding sees the neighbouring segments.
    joined = "".join(parts)
    return resolve_variables(joined, chosen) if has_variables else joined


def _options_by_tab(segments: Iterable[Mapping[str, Any]]) -> Dict[str, Dict[str, List[str]]]:
    options: Dict[str, Dict[str, List[str]]] = {}
    for segment in segments:
        parsed = _segment_condition(segment) if segment.get("condition") else None
        if parsed is None:
            continue
        values = options.setdefault(parsed.tab_id, {}).setdefault(parsed.variant_id, [])
        if parsed.option_id not in values:
            values.append(parsed.option_id)
    return options


def generate_all_variants(segments: List[Mapping[str, Any]]) -> Dict[str, str]:
    """Resolved text for every option combination found in `segments`.

    Keys are the sorted ``tab_variant-option`` parts joined with ``|``;
    frames without conditions yield a single ``default`` entry.
    """
    options = _options_by_tab(segments)
    if not options:
        return {DEFAULT_VARIANT_KEY: resolve_conditional_text(segments, {})}
    axes = [
        (tab_id, variant_id, values)
        for tab_id, variants in options.items()
        for variant_id, values in variants.items()
    ]
    variants: Dict[str, str] = {}
    for choice in itertools.product(*(values for _tab, _variant, values in axes)):
        selections: Dict[str, Dict[str, str]] = {}
        key_parts = []
        for (tab_id, variant_id, _values), option_id in zip(axes, choice):
            selections.setdefault(wizard_tab_id(tab_id), {})[variant_id] = option_id
            key_parts.append(f"{tab_id}_{variant_id}-{option_id}")
        variants["|".join(sorted(key_parts))] = resolve_conditional_text(segments, selections)
    return variants


def has_conditional_text(frame: Mapping[str, Any]) -> bool:
    return any(segment.get("condition") for segment in frame.get("conditionalSegments") or ())


def extract_unique_conditions(segments: Iterable[Mapping[str, Any]]) -> List[str]:
    return sorted({str(s["condition"]) for s in segments if s.get("condition")})


def resolve_content_texts(content_config: Mapping[str, Any], selections: Optional[Selections]) -> List[Dict[str, Any]]:
    """Copy of ``contentConfig.texts`` with conditional frames resolved.

    Texts without conditional segments are returned unchanged.
    """
    resolved = []
    for text in content_config.get("texts") or []:
        if has_conditional_text(text):
            text = dict(text, content=resolve_conditional_text(text["conditionalSegments"], selections))
        resolved.append(text)
    return resolved


__all__ = [
    "ParsedCondition",
    "parse_condition_name",
    "wizard_tab_id",
    "is_condition_active",
    "resolve_variables",
    "resolve_conditional_text",
    "generate_all_variants",
    "has_conditional_text",
    "extract_unique_conditions",
    "resolve_content_texts",
]
