from __future__ import annotations

from address_resolver.db.db import MEMORY, open_connection
from address_resolver.geocoding.models import GeocodeMethod, GeocodeResult, GeocodeSource
from address_resolver.geocoding.storage import CompositeResultCache, DuckDBResultCache, InMemoryResultCache

RESULT = GeocodeResult(31.42, 34.59, 0.75, GeocodeSource.GOVERNMENT, GeocodeMethod.GEOCODE)
OTHER = GeocodeResult(31.43, 34.60, 1.0, GeocodeSource.AUTHORITATIVE, GeocodeMethod.EXACT)


def test_in_memory_last_writer_wins():
    cache = InMemoryResultCache()

    cache.set("הרצל 5, נתיבות", RESULT)
    cache.set("הרצל 5, נתיבות", OTHER)

    assert cache.get("הרצל 5, נתיבות") == OTHER
    assert cache.get("missing") is None
    assert len(cache) == 1
    assert "הרצל 5, נתיבות" in cache


def test_duckdb_round_trip_and_upsert():
    cache = DuckDBResultCache(MEMORY)

    cache.set("הרצל 5, נתיבות", RESULT)
    assert cache.get("הרצל 5, נתיבות") == RESULT

    cache.set("הרצל 5, נתיבות", OTHER)
    assert cache.get("הרצל 5, נתיבות") == OTHER
    assert cache.get("ביאליק 1, נתיבות") is None

    frame = cache.to_frame()
    assert list(frame["cache_key"]) == ["הרצל 5, נתיבות"]
    assert frame.loc[0, "source"] == "GIS"
    cache.close()


def test_duckdb_persists_across_connections(tmp_path):
    path = tmp_path / "cache" / "results.duckdb"
    cache = DuckDBResultCache(path)
    cache.set("oak 6, נתיבות", RESULT)
    cache.close()

    reopened = DuckDBResultCache(path)
    assert reopened.get("oak 6, נתיבות") == RESULT
    reopened.close()


def test_composite_promotes_hits():
    memory = InMemoryResultCache()
    disk = DuckDBResultCache(MEMORY)
    disk.set("oak 6, נתיבות", RESULT)
    cache = CompositeResultCache([memory, disk])

    assert cache.get("oak 6, נתיבות") == RESULT
    assert memory.get("oak 6, נתיבות") == RESULT

    cache.set("oak 8, נתיבות", OTHER)
    assert disk.get("oak 8, נתיבות") == OTHER
    cache.close()


def test_open_connection_creates_parent(tmp_path):
    path = tmp_path / "nested" / "dir" / "db.duckdb"

    con = open_connection(path)
    con.close()

    assert path.parent.is_dir()
