from __future__ import annotations

import pytest
from shapely.geometry import LineString, MultiPoint, Point, Polygon

from address_resolver.data_loader import DatasetLoader, first_present, is_missing, representative_coordinate
from address_resolver.datasets import AddressPointsLoader, StreetNamesLoader
from address_resolver.geocoding.models import SpatialFeature
from address_resolver.utils.errors import DataValidationError, DatasetUnavailableError

from conftest import line_feature, point_feature


def test_registry_contains_both_datasets():
    assert DatasetLoader._REGISTRY["address_points"] is AddressPointsLoader
    assert DatasetLoader._REGISTRY["street_names"] is StreetNamesLoader


def test_from_path_unknown_dataset(tmp_path):
    with pytest.raises(ValueError, match="Unknown dataset"):
        DatasetLoader.from_path("parcels", tmp_path / "x.geojson")


def test_address_points_are_normalized(address_points_path):
    features = DatasetLoader.from_path("address_points", address_points_path)

    assert SpatialFeature("oak", 4, 31.420, 34.590) in features
    assert SpatialFeature("הרצל", 10, 31.430, 34.600) in features
    assert len(features) == 5


def test_numberless_points_are_kept(write_geojson):
    path = write_geojson(
        "points.geojson",
        [
            point_feature({"street": "הרצל", "house_number": "abc"}, 34.6, 31.43),
            point_feature({"street": "הרצל", "house_number": "12"}, 34.6, 31.44),
        ],
    )

    features = AddressPointsLoader(path).load()

    assert [f.house_number for f in features] == [None, 12]


def test_all_invalid_features_raise_validation_error(write_geojson):
    path = write_geojson("bad.geojson", [point_feature({"street": "---", "house_number": 1}, 34.6, 31.43)])

    with pytest.raises(DataValidationError) as excinfo:
        AddressPointsLoader(path).load()

    err = excinfo.value
    assert err.source == "address_points"
    assert err.errors
    assert "street" in err.summary()


def test_no_usable_features_raise(write_geojson):
    path = write_geojson("empty.geojson", [point_feature({"name": "x"}, 34.6, 31.43)])

    with pytest.raises(DatasetUnavailableError, match="no usable features"):
        AddressPointsLoader(path).load()


def test_street_names_from_segments(write_geojson):
    path = write_geojson(
        "streets.geojson",
        [
            line_feature({"רחוב": "רח' הרצל"}, [[34.6, 31.43], [34.61, 31.44]]),
            line_feature({"רחוב": "ביאליק"}, [[34.6, 31.45], [34.61, 31.46]]),
        ],
    )

    names = DatasetLoader.from_path("street_names", path)

    assert names == [("רח' הרצל", "הרצל"), ("ביאליק", "ביאליק")]


def test_representative_coordinate():
    assert representative_coordinate(Point(34.6, 31.4)) == (31.4, 34.6)
    assert representative_coordinate(LineString([(34.6, 31.4), (34.7, 31.5)])) == (31.4, 34.6)
    assert representative_coordinate(Polygon([(34.6, 31.4), (34.7, 31.4), (34.7, 31.5)])) == (31.4, 34.6)
    assert representative_coordinate(MultiPoint([(34.5, 31.3), (34.6, 31.4)])) == (31.3, 34.5)
    assert representative_coordinate(None) is None


def test_missing_values():
    assert is_missing(None)
    assert is_missing("  ")
    assert is_missing(float("nan"))
    assert not is_missing(0)
    assert first_present({"a": "", "b": None, "c": "x"}, ["a", "b", "c"]) == "x"
