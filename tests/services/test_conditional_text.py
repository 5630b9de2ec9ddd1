"""Tests for conditional text segments and text variables."""
from __future__ import annotations

from nuagebook.services import conditional_text

GENDERED_SEGMENTS = [
    {"text": "Le petit ", "condition": "TXTCOND_hero-child_gender-boy"},
    {"text": "La petite ", "condition": "TXTCOND_hero-child_gender-girl"},
    {"text": "{name_child} joue.", "variables": ["name_child"]},
]


def test_parse_condition_name_strips_condition_prefix():
    parsed = conditional_text.parse_condition_name("Condition/TXTCOND_hero-child_gender-boy")

    assert parsed is not None
    assert parsed.to_dict() == {"tabId": "hero-child", "variantId": "gender", "optionId": "boy"}
    assert conditional_text.parse_condition_name("Hidden") is None
    assert conditional_text.parse_condition_name("") is None


def test_resolve_keeps_only_segments_matching_the_selection():
    boy = conditional_text.resolve_conditional_text(GENDERED_SEGMENTS, {"child": {"gender": "boy", "name": "Tom"}})
    girl = conditional_text.resolve_conditional_text(GENDERED_SEGMENTS, {"child": {"gender": "girl", "name": "Lily"}})

    assert boy == "Le petit Tom joue."
    assert girl == "La petite Lily joue."


def test_hero_tab_ids_also_match_unprefixed_or_prefixed_selection_keys():
    segments = [{"text": "Il", "condition": "TXTCOND_hero-child_gender-boy"}]

    assert conditional_text.resolve_conditional_text(segments, {"child": {"gender": "boy"}}) == "Il"
    assert conditional_text.resolve_conditional_text(segments, {"hero-child": {"gender": "boy"}}) == "Il"
    assert conditional_text.resolve_conditional_text(segments, {"parent": {"gender": "boy"}}) == ""


def test_parsed_condition_is_preferred_over_the_name():
    segment = {
        "text": "Papa",
        "condition": "legacy-name",
        "parsedCondition": {"tabId": "hero-parent", "variantId": "role", "optionId": "father"},
    }

    assert conditional_text.resolve_conditional_text([segment], {"parent": {"role": "father"}}) == "Papa"
    assert conditional_text.resolve_conditional_text([segment], {"parent": {"role": "mother"}}) == ""


def test_unknown_condition_format_is_kept():
    segments = [{"text": "Toujours", "condition": "VisibleInPrint"}]

    assert conditional_text.resolve_conditional_text(segments, {}) == "Toujours"


def test_txtvar_is_padded_only_where_neighbours_lack_spaces():
    tight = [
        {"text": "Bravo"},
        {"text": "{TXTVAR_hero-child_name}", "variables": ["TXTVAR_hero-child_name"]},
        {"text": "!"},
    ]
    spaced = [
        {"text": "Bravo "},
        {"text": "{TXTVAR_hero-child_name}", "variables": ["TXTVAR_hero-child_name"]},
        {"text": " !"},
    ]
    selections = {"child": {"name": "Tom"}}

    assert conditional_text.resolve_conditional_text(tight, selections) == "Bravo Tom !"
    assert conditional_text.resolve_conditional_text(spaced, selections) == "Bravo Tom !"


def test_unresolved_variables_are_left_in_place():
    text = "{TXTVAR_hero-child_name} et {age_child} et {a_b_c}"

    assert conditional_text.resolve_variables(text, {"child": {}}) == text


def test_generate_all_variants_enumerates_option_combinations():
    variants = conditional_text.generate_all_variants(GENDERED_SEGMENTS)

    assert variants == {
        "hero-child_gender-boy": "Le petit {name_child} joue.",
        "hero-child_gender-girl": "La petite {name_child} joue.",
    }


def test_generate_all_variants_without_conditions_has_default_only():
    assert conditional_text.generate_all_variants([{"text": "Fin."}]) == {"default": "Fin."}


def test_condition_helpers():
    frame = {"conditionalSegments": GENDERED_SEGMENTS}

    assert conditional_text.has_conditional_text(frame) is True
    assert conditional_text.has_conditional_text({"conditionalSegments": [{"text": "x"}]}) is False
    assert conditional_text.extract_unique_conditions(GENDERED_SEGMENTS) == [
        "TXTCOND_hero-child_gender-boy",
        "TXTCOND_hero-child_gender-girl",
    ]


def test_resolve_content_texts_only_touches_conditional_frames():
    config = {
        "texts": [
            {"id": "t1", "content": "Titre"},
            {"id": "t2", "content": "raw", "conditionalSegments": GENDERED_SEGMENTS},
        ]
    }

    resolved = conditional_text.resolve_content_texts(config, {"child": {"gender": "girl", "name": "Lily"}})

    assert resolved[0] == {"id": "t1", "content": "Titre"}
    assert resolved[1]["content"] == "La petite Lily joue."
    assert config["texts"][1]["content"] == "raw"
