"""Tests de normalisation."""

import math

import pytest

from dedoublon.normalize import is_missing, norm_postcode, norm_text, parse_number, safe_str


def test_norm_text_basic() -> None:
    assert norm_text("  Hello   World  ") == "hello world"


def test_norm_text_diacritics() -> None:
    assert norm_text("Méthodes", remove_diacritics=True) == "methodes"
    assert norm_text("Méthodes") == "méthodes"


def test_norm_text_none_and_nan() -> None:
    assert norm_text(None) == ""
    assert norm_text(float("nan")) == ""


def test_norm_text_number() -> None:
    assert norm_text(42) == "42"


def test_is_missing() -> None:
    assert is_missing(None)
    assert is_missing(float("nan"))
    assert is_missing("   ")
    assert not is_missing(0)
    assert not is_missing("x")


def test_norm_postcode_prefix() -> None:
    assert norm_postcode(" sw1a 1aa ") == "SW1A1AA"
    assert norm_postcode("sw1a 1aa", 3) == "SW1"
    assert norm_postcode(None, 3) == ""


def test_parse_number() -> None:
    assert parse_number("12,5") == 12.5
    assert parse_number(" 3 ") == 3.0
    assert parse_number(7) == 7.0


@pytest.mark.parametrize("value", ["abc", "1,2,3", True, float("inf")])
def test_parse_number_invalid(value: object) -> None:
    with pytest.raises(ValueError):
        parse_number(value)


def test_safe_str() -> None:
    assert safe_str(None) == ""
    assert safe_str(math.nan) == ""
    assert safe_str(1.5) == "1.5"
