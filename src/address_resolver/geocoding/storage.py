"""
Result caches keyed by canonical address string.

InMemoryResultCache is the process-wide cache shared by all workers of a
batch. DuckDBResultCache persists successful resolutions across runs, and
CompositeResultCache layers the two.
"""

import logging
import threading
from pathlib import Path
from typing import Optional

import pandas as pd

from ..db.db import open_connection
from .base import ResultCache
from .models import GeocodeMethod, GeocodeResult, GeocodeSource

logger = logging.getLogger(__name__)


class InMemoryResultCache(ResultCache):
    """
    Dict-backed cache.

    Single dict reads and writes are atomic, and two workers resolving the
    same key store equivalent results, so the last writer wins.
    """

    def __init__(self):
        self._results: dict[str, GeocodeResult] = {}

    def get(self, key: str) -> Optional[GeocodeResult]:
        return self._results.get(key)

    def set(self, key: str, result: GeocodeResult) -> None:
        self._results[key] = result

    def __len__(self) -> int:
        return len(self._results)

    def __contains__(self, key: str) -> bool:
        return key in self._results


class DuckDBResultCache(ResultCache):
    """
    DuckDB-backed cache of successful resolutions.

    One connection is shared by all workers and serialized by a lock.
    """

    DDL = """
    CREATE TABLE IF NOT EXISTS geocode_results (
        cache_key TEXT PRIMARY KEY,
        lat DOUBLE,
        lon DOUBLE,
        confidence DOUBLE,
        source TEXT,
        method TEXT,
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    );
    """

    def __init__(self, db_path: Path | str):
        """
        Initialize DuckDB cache.

        Args:
            db_path: Path to DuckDB database file, or ":memory:"
        """
        self.db_path = db_path
        self.con = open_connection(db_path)
        self.con.execute(self.DDL)
        self.lock = threading.Lock()
        logger.info(f"Initialized DuckDB result cache: {db_path}")

    def get(self, key: str) -> Optional[GeocodeResult]:
        with self.lock:
            row = self.con.execute(
                "SELECT lat, lon, confidence, source, method FROM geocode_results WHERE cache_key = ?",
                [key],
            ).fetchone()
        if row is None:
            return None
        lat, lon, confidence, source, method = row
        try:
            return GeocodeResult(
                lat=lat,
                lon=lon,
                confidence=confidence,
                source=GeocodeSource(source),
                method=GeocodeMethod(method),
            )
        except ValueError:
            logger.warning(f"Ignoring cached row with unknown source/method for {key!r}")
            return None

    def set(self, key: str, result: GeocodeResult) -> None:
        with self.lock:
            self.con.execute(
                """
                INSERT INTO geocode_results (cache_key, lat, lon, confidence, source, method)
                VALUES (?, ?, ?, ?, ?, ?)
                ON CONFLICT(cache_key) DO UPDATE SET
                    lat = excluded.lat,
                    lon = excluded.lon,
                    confidence = excluded.confidence,
                    source = excluded.source,
                    method = excluded.method
                """,
                [key, result.lat, result.lon, result.confidence, result.source.value, result.method.value],
            )

    def to_frame(self) -> pd.DataFrame:
        """All cached rows as a DataFrame."""
        with self.lock:
            return self.con.execute(
                "SELECT cache_key, lat, lon, confidence, source, method FROM geocode_results ORDER BY cache_key"
            ).df()

    def close(self) -> None:
        with self.lock:
            self.con.close()
        logger.info("Closed DuckDB result cache")


class CompositeResultCache(ResultCache):
    """Reads the first layer that has a key and writes to every layer."""

    def __init__(self, layers: list[ResultCache]):
        self.layers = layers

    def get(self, key: str) -> Optional[GeocodeResult]:
        for i, layer in enumerate(self.layers):
            result = layer.get(key)
            if result is not None:
                # promote into faster layers
                for faster in self.layers[:i]:
                    faster.set(key, result)
                return result
        return None

    def set(self, key: str, result: GeocodeResult) -> None:
        for layer in self.layers:
            layer.set(key, result)

    def close(self) -> None:
        for layer in self.layers:
            layer.close()
