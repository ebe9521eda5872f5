from __future__ import annotations

from pathlib import Path

import pytest

from address_resolver.resources import GeocodingResources
from address_resolver.settings import Settings
from address_resolver.utils.errors import DatasetUnavailableError


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    for name in ("RESOLVER_WORKERS", "RESOLVER_ADDRESS_POINTS_PATH", "RESOLVER_CLASSIFICATION_POLICY__REVIEW_FLOOR"):
        monkeypatch.delenv(name, raising=False)


def test_defaults():
    settings = Settings()

    assert settings.workers == 3
    assert settings.address_points_path is None
    assert settings.ingest_enabled is False
    assert settings.profile.city_name == "נתיבות"


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("RESOLVER_WORKERS", "5")
    monkeypatch.setenv("RESOLVER_ADDRESS_POINTS_PATH", "/data/points.geojson")
    monkeypatch.setenv("RESOLVER_CLASSIFICATION_POLICY__REVIEW_FLOOR", "0.5")

    settings = Settings()

    assert settings.workers == 5
    assert settings.address_points_path == Path("/data/points.geojson")
    assert settings.classification_policy.review_floor == 0.5
    assert settings.classification_policy.government_confirm == 0.75


def test_resources_require_address_points():
    with pytest.raises(DatasetUnavailableError):
        GeocodingResources.from_settings(Settings())


def test_resources_from_settings(address_points_path, tmp_path):
    settings = Settings(address_points_path=address_points_path, cache_db_path=tmp_path / "cache.duckdb")

    resources = GeocodingResources.from_settings(settings)
    try:
        assert len(resources.spatial_index) == 5
        assert [s.name for s in resources.ensemble.strategies] == ["spatial_index", "government", "open_data"]
    finally:
        resources.close()
