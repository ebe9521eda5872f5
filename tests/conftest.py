from __future__ import annotations

import json
from pathlib import Path
from typing import Callable, Optional

import pytest

from address_resolver.geocoding.base import ProviderAdapter
from address_resolver.geocoding.models import Coordinates, GeocodeSource, SpatialFeature
from address_resolver.geocoding.normalizers import AddressNormalizer
from address_resolver.geocoding.policy import MunicipalityProfile
from address_resolver.geocoding.spatial_index import SpatialIndex

# Inside the municipal bounding box
CENTER = Coordinates(31.42, 34.59)
OUTSIDE = Coordinates(32.08, 34.78)


class FakeAdapter(ProviderAdapter):
    """Answers from a dict of query -> Coordinates and records every query."""

    def __init__(self, source: GeocodeSource, answers: Optional[dict[str, Coordinates]] = None, default=None):
        self.source = source
        self.answers = answers or {}
        self.default = default
        self.calls: list[str] = []

    def query(self, text: str) -> Optional[Coordinates]:
        self.calls.append(text)
        return self.answers.get(text, self.default)


def point_feature(props: dict, lon: float, lat: float) -> dict:
    return {"type": "Feature", "properties": props, "geometry": {"type": "Point", "coordinates": [lon, lat]}}


def line_feature(props: dict, coords: list[list[float]]) -> dict:
    return {"type": "Feature", "properties": props, "geometry": {"type": "LineString", "coordinates": coords}}


@pytest.fixture
def write_geojson(tmp_path: Path) -> Callable[[str, list[dict]], Path]:
    def _write(name: str, features: list[dict]) -> Path:
        path = tmp_path / name
        path.write_text(
            json.dumps({"type": "FeatureCollection", "features": features}, ensure_ascii=False),
            encoding="utf-8",
        )
        return path

    return _write


@pytest.fixture
def address_points_path(write_geojson) -> Path:
    return write_geojson(
        "address_points.geojson",
        [
            point_feature({"street": "Oak", "house_number": 4}, 34.590, 31.420),
            point_feature({"street": "Oak", "house_number": 8}, 34.594, 31.424),
            point_feature({"רחוב": "הרצל", "מספר": "10"}, 34.600, 31.430),
            point_feature({"רחוב": "הרצל", "מספר": "14"}, 34.604, 31.434),
            point_feature({"street": "שדרות ירושלים", "house_number": 3}, 34.610, 31.440),
            # unusable: no street name
            point_feature({"house_number": 1}, 34.600, 31.400),
        ],
    )


@pytest.fixture
def profile() -> MunicipalityProfile:
    return MunicipalityProfile()


@pytest.fixture
def normalizer(profile) -> AddressNormalizer:
    return AddressNormalizer(profile)


@pytest.fixture
def oak_index() -> SpatialIndex:
    return SpatialIndex.from_features(
        [
            SpatialFeature("oak", 4, 31.420, 34.590),
            SpatialFeature("oak", 8, 31.424, 34.594),
            SpatialFeature("הרצל", 10, 31.430, 34.600),
            SpatialFeature("הרצל", 14, 31.434, 34.604),
            SpatialFeature("שדרות ירושלים", 3, 31.440, 34.610),
        ]
    )


@pytest.fixture
def fake_adapter_factory():
    return FakeAdapter
