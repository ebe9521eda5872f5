from __future__ import annotations

import pytest

from address_resolver.geocoding.policy import SpatialMatchPolicy
from address_resolver.geocoding.spatial_index import (
    SpatialIndex,
    StreetNameIndex,
    best_street_match,
    score_street_candidate,
)
from address_resolver.utils.errors import DatasetUnavailableError


def test_interpolates_between_bracketing_numbers(oak_index):
    match = oak_index.lookup("Oak", 6)

    assert match is not None
    assert match.exact is False
    assert match.confidence == pytest.approx(0.8)
    assert match.lat == pytest.approx(31.422)
    assert match.lon == pytest.approx(34.592)


def test_exact_house_number(oak_index):
    match = oak_index.lookup("oak", 8)

    assert match.exact is True
    assert match.confidence == pytest.approx(1.0)
    assert (match.lat, match.lon) == (31.424, 34.594)


def test_no_bracketing_pair_returns_none(oak_index):
    assert oak_index.lookup("Oak", 2) is None
    assert oak_index.lookup("Oak", 9) is None


def test_invalid_house_number(oak_index):
    assert oak_index.lookup("Oak", 0) is None


def test_fuzzy_street_lowers_confidence(oak_index):
    # "שדרות ירושלים" is a prefix-close candidate for "שדרות ירושלי"
    match = oak_index.lookup("שדרות ירושלי", 3)

    assert match.fuzzy is True
    assert match.exact is True
    assert match.matched_street == "שדרות ירושלים"
    assert match.confidence == pytest.approx(0.9)


def test_fuzzy_interpolation_confidence(oak_index):
    match = oak_index.lookup("הרצלל", 12)

    assert match.fuzzy is True
    assert match.exact is False
    assert match.confidence == pytest.approx(0.7)


def test_unknown_street_returns_none(oak_index):
    assert oak_index.lookup("ביאליק", 5) is None


def test_street_queries(oak_index):
    assert oak_index.street_exists("Oak")
    assert not oak_index.street_exists("Elm")
    assert oak_index.number_exists("oak", 4)
    assert not oak_index.number_exists("oak", 6)
    assert oak_index.list_house_numbers("oak") == [4, 8]
    assert set(oak_index.streets) == {"oak", "הרצל", "שדרות ירושלים"}


class TestScoring:
    policy = SpatialMatchPolicy()

    def test_exact(self):
        assert score_street_candidate("הרצל", "הרצל", self.policy) == 1.0

    def test_close_prefix(self):
        assert score_street_candidate("הרצ", "הרצל", self.policy) == pytest.approx(0.85)

    def test_candidate_much_longer(self):
        assert score_street_candidate("הר", "הרב קוק הגדול", self.policy) == pytest.approx(0.75)

    def test_input_much_longer(self):
        assert score_street_candidate("הרב קוק הגדול", "הר", self.policy) == pytest.approx(0.60)

    def test_low_token_overlap_discarded(self):
        assert score_street_candidate("שדרות הרצל", "רחוב ביאליק העליון", self.policy) == 0.0

    def test_token_overlap_with_bonus(self):
        # Dice = 2*2/(2+3) = 0.8, then a small specificity bonus
        score = score_street_candidate("בן גוריון", "דוד בן גוריון", self.policy)
        assert 0.8 < score <= 0.85

    def test_best_match_rejects_below_threshold(self):
        assert best_street_match("הרב קוק הגדול", ["הר"], self.policy) is None


def test_load_layer_is_idempotent(address_points_path):
    index = SpatialIndex()

    first = index.load_layer(address_points_path)
    second = index.load_layer(str(address_points_path))

    assert first == second == 5
    assert index.lookup("oak", 6).confidence == pytest.approx(0.8)
    assert index.number_exists("הרצל", 14)


def test_load_missing_layer_raises(tmp_path):
    with pytest.raises(DatasetUnavailableError):
        SpatialIndex().load_layer(tmp_path / "missing.geojson")


def test_street_name_search():
    index = StreetNameIndex.from_names(["הרצל", "הרצוג", "ביאליק", "רח' הרצל", "Herzl"])

    assert index.search("הרצ") == ["הרצוג", "הרצל"]
    assert index.search("ה") == []
    assert index.search("her") == ["Herzl"]
    assert index.search("הר", max_results=1) == ["הרצוג"]
    assert len(index) == 4
