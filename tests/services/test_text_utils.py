"""Tests for slug and money helpers."""
from __future__ import annotations

import pytest

from nuagebook.utils.text import format_price, slugify, to_money


@pytest.mark.parametrize(
    "value,expected",
    [
        ("Le Grand Voyage", "le-grand-voyage"),
        ("  Hello,   World!  ", "hello-world"),
        ("a -- b", "a-b"),
        ("-édition-", "dition"),
        (None, ""),
    ],
)
def test_slugify(value, expected):
    assert slugify(value) == expected


def test_to_money_rounds_half_up():
    assert to_money("19.905") == 19.91
    assert to_money(3) == 3.0
    with pytest.raises(ValueError):
        to_money("abc")


@pytest.mark.parametrize(
    "value,expected",
    [(12.9, "12,90 €"), (None, "0,00 €"), ("7", "7,00 €"), ("n/a", "0,00 €")],
)
def test_format_price(value, expected):
    assert format_price(value) == expected
