"""Tests for CSS geometry, font checks and embedded font extraction."""
from __future__ import annotations

import base64

from nuagebook.services import css_tools


def test_clean_css_syntax_normalizes_spacing():
    assert css_tools.clean_css_syntax("a  :  b; transform:translate( 1px, 2px )") == "a: b; transform:translate(1px, 2px)"
    assert css_tools.clean_css_syntax("") == ""


def test_extract_position_reads_transform_and_size():
    css = "#_idContainer001 { width: 120.5px; height: 40px; transform: translate(10px, 20.5px) rotate(15deg) scale(2, 0.5); }"

    position = css_tools.extract_position_from_css(css, "_idContainer001")

    assert position["x"] == 10.0
    assert position["y"] == 20.5
    assert position["rotation"] == 15.0
    assert position["scaleX"] == 2.0
    assert position["scaleY"] == 0.5
    assert position["width"] == 120.5
    assert position["height"] == 40.0
    assert position["layer"] == css_tools.TEXT_LAYER


def test_extract_position_defaults_when_rule_missing():
    position = css_tools.extract_position_from_css("", "missing", default_width=595, default_height=842)

    assert position["x"] == 0.0
    assert position["width"] == 595.0
    assert position["height"] == 842.0
    assert position["layer"] == css_tools.IMAGE_LAYER


def test_extract_position_takes_css_first_then_id_and_layer():
    css = "#hero { transform: translate(5px, 6px); }"

    position = css_tools.extract_position_from_css(css, "hero", 7)

    assert (position["x"], position["y"], position["layer"]) == (5.0, 6.0, 7)


def test_detect_font_issues_ignores_native_and_embedded_fonts():
    css = (
        "@font-face { font-family: 'Embedded'; src: url(data:font/ttf;base64,AAAA); }\n"
        "p { font-family: 'Embedded', serif; }\n"
        "h1 { font-family: \"Minion Pro\", inherit; }\n"
        "h2 { font-family: Open Sans; }\n"
    )

    warnings = css_tools.detect_font_issues(css)

    assert [w["fontFamily"] for w in warnings] == ["minion pro"]
    assert warnings[0]["reason"] == "not_embedded"


def test_extract_css_font_mapping_adds_class_aliases():
    mapping = css_tools.extract_css_font_mapping("p.Corps-de-texte { font-family: \"Minion Pro\", serif; }")

    assert mapping["p.Corps-de-texte"] == "Minion Pro"
    assert mapping[".Corps-de-texte"] == "Minion Pro"


def test_extract_fonts_from_css_writes_files(tmp_path, monkeypatch):
    monkeypatch.setenv("NUAGEBOOK_ASSETS_ROOT", str(tmp_path))
    payload = base64.b64encode(b"fake-font-bytes").decode("ascii")
    css = (
        "@font-face { font-family: 'Story Font'; font-weight: bold; "
        f"src: url('data:font/otf;base64,{payload}'); }}\n"
        "p { font-family: 'Story Font'; }"
    )

    result = css_tools.extract_fonts_from_css(css, "voyage")

    assert len(result.fonts) == 1
    font = result.fonts[0]
    assert font.file == "Story-Font-bold-normal.otf"
    assert font.url == "/assets/books/voyage/fonts/Story-Font-bold-normal.otf"
    assert (tmp_path / "books" / "voyage" / "fonts" / font.file).read_bytes() == b"fake-font-bytes"
    assert "data:font" not in result.processed_css
    assert "format('opentype')" in result.processed_css


def test_extract_fonts_without_font_face_is_noop():
    result = css_tools.extract_fonts_from_css("p { color: red; }", "voyage")

    assert result.processed_css == "p { color: red; }"
    assert result.fonts == []
