from __future__ import annotations

import pytest

from address_resolver.geocoding.models import CanonicalAddress
from address_resolver.geocoding.normalizers import (
    normalize_street_text,
    normalize_whitespace_and_commas,
    parse_house_number,
)


def test_range_collapses_to_midpoint(normalizer):
    canonical = normalizer.normalize("Main St 9-11 נתיבות")

    assert canonical == CanonicalAddress(street="main st", house_number="10", city="נתיבות")
    assert canonical.text == "main st 10, נתיבות"


def test_range_midpoint_rounds_half_up(normalizer):
    assert normalizer.normalize("הרצל 9-12, נתיבות").house_number == "11"


def test_long_dash_range_is_unified(normalizer):
    assert normalizer.normalize("הרצל 9–11 נתיבות").house_number == "10"


def test_apartment_suffix_is_dropped(normalizer):
    canonical = normalizer.normalize("הרצל 12/3, נתיבות")

    assert canonical.street == "הרצל"
    assert canonical.house_number == "12"


def test_trailing_garbage_after_number_is_cut(normalizer):
    assert normalizer.normalize("הרצל 12 קומה ב, נתיבות").house_number == "12"


def test_neighborhood_is_stripped_but_city_kept(normalizer):
    canonical = normalizer.normalize("נווה נוי, ערבה 4, נתיבות")

    assert canonical.street == "ערבה"
    assert canonical.house_number == "4"
    assert canonical.city == "נתיבות"


def test_last_city_occurrence_splits(normalizer):
    canonical = normalizer.normalize("נתיבות, הרצל 5, נתיבות")

    assert canonical.street == "הרצל"
    assert canonical.house_number == "5"


def test_spelling_variant_replacement(normalizer):
    assert normalizer.normalize("תילתן 3 נתיבות").street == "תלתן"


def test_leading_street_type_stripped_once(normalizer):
    assert normalizer.normalize("רחוב הרצל 7, נתיבות").street == "הרצל"


def test_missing_house_number_is_none(normalizer):
    assert normalizer.normalize("הרצל, נתיבות") is None


def test_foreign_address_is_not_rewritten(normalizer):
    canonical = normalizer.normalize("Dizengoff 50, Tel Aviv")

    assert canonical.city == ""
    assert canonical.house_number is None


def test_foreign_address_with_trailing_number(normalizer):
    canonical = normalizer.normalize("Dizengoff 50")

    assert canonical == CanonicalAddress(street="dizengoff", house_number="50", city="")


@pytest.mark.parametrize(
    "raw",
    [
        "Main St 9-11 נתיבות",
        "נווה נוי, ערבה 4, נתיבות",
        "רח' הרב קוק 3, נתיבות",
        "הרצל 12/3 נתיבות",
    ],
)
def test_normalize_is_idempotent(normalizer, raw):
    once = normalizer.normalize(raw)
    twice = normalizer.normalize(once.text)

    assert twice == once


def test_normalize_never_raises_on_junk(normalizer):
    for raw in ["", "   ", ",,,", "/", "נתיבות", "12", "---"]:
        normalizer.normalize(raw)


def test_city_only_is_address_missing(normalizer):
    assert normalizer.is_address_missing("נתיבות")
    assert normalizer.is_address_missing(" , נתיבות ,")
    assert normalizer.is_address_missing("")
    assert not normalizer.is_address_missing("הרצל 5 נתיבות")


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("רח' הרב-קוק", "הרב קוק"),
        ("רח׳ הרצל", "הרצל"),
        ("Main St", "main st"),
        ('בן גוריון ד"ר', "בן גוריון דר"),
        ("  רחוב   ז'בוטינסקי ", "זבוטינסקי"),
        ("שכ' החורש", "שכונת החורש"),
        ("a/b\\c", "a b c"),
    ],
)
def test_normalize_street_text(raw, expected):
    assert normalize_street_text(raw) == expected


def test_normalize_street_text_keeps_hebrew_case():
    assert normalize_street_text("HaRav הרצל") == "harav הרצל"


def test_whitespace_and_commas():
    assert normalize_whitespace_and_commas("הרצל   5 ,, נתיבות") == "הרצל 5, נתיבות"


@pytest.mark.parametrize(("value", "expected"), [("12", 12), ("12א", 12), ("0", None), ("", None), (None, None), ("abc", None)])
def test_parse_house_number(value, expected):
    assert parse_house_number(value) == expected


def test_split_street_and_number(normalizer):
    assert normalizer.split_street_and_number("התאנה 2, נתיבות") == ("התאנה", "2")
    assert normalizer.split_street_and_number("הרב צבאן") == ("הרב צבאן", None)


@pytest.mark.parametrize("raw", [",רחוב 6 נתיבות", "- רחוב 6, נתיבות", "נווה נוי, רחוב 6, נתיבות"])
def test_bare_street_type_word_is_not_a_street(normalizer, raw):
    assert normalizer.normalize(raw) is None


def test_leading_punctuation_before_street_prefix(normalizer):
    canonical = normalizer.normalize(', רח\' הרצל 5 נתיבות')

    assert canonical == CanonicalAddress(street="הרצל", house_number="5", city="נתיבות")
    assert normalizer.normalize(canonical.text) == canonical


@pytest.mark.parametrize("raw", ["הרצל 0 נתיבות", "הרצל 00, נתיבות"])
def test_zero_house_number_is_no_address(normalizer, raw):
    assert normalizer.normalize(raw) is None
