from __future__ import annotations

from typing import Any, ClassVar, Iterable, Optional, Type
import logging
from abc import ABC, abstractmethod
from pathlib import Path

import pandas as pd
import geopandas as gpd
from pydantic import BaseModel, ValidationError
from shapely.geometry.base import BaseGeometry, BaseMultipartGeometry
from shapely.geometry import LineString, Point, Polygon

from .utils.errors import DataValidationError, DatasetUnavailableError

logger = logging.getLogger('DatasetLoader')


def is_missing(value: Any) -> bool:
    """True for None, NaN and blank strings coming out of a property bag."""
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


def first_present(properties: dict[str, Any], keys: Iterable[str]) -> Any:
    """Return the first non-missing property among ``keys``."""
    for key in keys:
        value = properties.get(key)
        if not is_missing(value):
            return value
    return None


def representative_coordinate(geometry: Optional[BaseGeometry]) -> Optional[tuple[float, float]]:
    """(lat, lon) of a feature: the point itself, or the first vertex of a line or polygon."""
    if geometry is None or geometry.is_empty:
        return None
    if isinstance(geometry, BaseMultipartGeometry):
        return representative_coordinate(geometry.geoms[0])
    if isinstance(geometry, Point):
        return geometry.y, geometry.x
    if isinstance(geometry, LineString):
        lon, lat = geometry.coords[0][:2]
        return lat, lon
    if isinstance(geometry, Polygon):
        lon, lat = geometry.exterior.coords[0][:2]
        return lat, lon
    return None


class DatasetLoader(ABC):
    """Abstract base class for ground-truth dataset loaders.

    Subclasses set a DATASET key and are registered automatically, then
    implement ``_parse`` to turn one GeoJSON feature into a record.

    Usage:
        # Option 1: Use the specific loader directly
        features = AddressPointsLoader('data/netivot.geojson').load()

        # Option 2: Dispatch by dataset name
        features = DatasetLoader.from_path('address_points', 'data/netivot.geojson')
    """

    # Unique key for each dataset subclass (e.g., 'address_points', 'street_names')
    DATASET: ClassVar[str]

    # Pydantic model every parsed record is validated against
    RECORD_MODEL: ClassVar[Type[BaseModel]]

    _REGISTRY: ClassVar[dict[str, Type['DatasetLoader']]] = {}

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)

        # Only register classes that directly define a DATASET string
        if "DATASET" in cls.__dict__:
            key = str(cls.DATASET).lower()
            if key in DatasetLoader._REGISTRY and DatasetLoader._REGISTRY[key] is not cls:
                raise RuntimeError(f"Duplicate loader DATASET '{key}' for {cls.__name__}")
            DatasetLoader._REGISTRY[key] = cls
            logger.debug(f"Registered DatasetLoader: {cls.__name__} as '{key}'")

    def __init__(self, path: Path | str):
        self.path = Path(path)

    @classmethod
    def from_path(cls, dataset: str, path: Path | str) -> list[Any]:
        """Factory to load a dataset by name.

        Args:
            dataset: The dataset identifier (e.g., 'address_points')
            path: GeoJSON feature collection to read

        Returns:
            List of validated records
        """
        key = str(dataset).lower()
        try:
            loader_cls = cls._REGISTRY[key]
        except KeyError as e:
            raise ValueError(
                f"Unknown dataset '{dataset}'. "
                f"Known datasets: {sorted(cls._REGISTRY.keys())}"
            ) from e
        return loader_cls(path).load()

    def _load_raw(self) -> gpd.GeoDataFrame:
        """Read the feature collection, reprojected to WGS84."""
        if not self.path.is_file():
            raise DatasetUnavailableError(self.DATASET, f"file not found: {self.path}")
        try:
            gdf = gpd.read_file(self.path, engine='pyogrio')
        except Exception as e:
            raise DatasetUnavailableError(self.DATASET, f"cannot read {self.path}: {e}") from e

        if gdf.crs is not None and gdf.crs != 'EPSG:4326':
            gdf = gdf.to_crs('EPSG:4326')
        return gdf

    @abstractmethod
    def _parse(self, properties: dict[str, Any], geometry: Optional[BaseGeometry]) -> Optional[dict[str, Any]]:
        """Turn one feature into record fields, or None to skip it."""
        ...

    @abstractmethod
    def _to_record(self, model: BaseModel) -> Any:
        ...

    def load(self) -> list[Any]:
        """Load, parse and validate every feature.

        Features without the required fields are skipped. Raises
        DatasetUnavailableError when nothing usable remains.
        """
        gdf = self._load_raw()
        geometry_column = gdf.geometry.name

        records: list[Any] = []
        errors: list[dict[str, Any]] = []
        skipped = 0

        for row in gdf.to_dict(orient='records'):
            geometry = row.pop(geometry_column, None)
            fields = self._parse(row, geometry)
            if fields is None:
                skipped += 1
                continue
            try:
                model = self.RECORD_MODEL.model_validate(fields)
            except ValidationError as e:
                errors.extend(e.errors())
                skipped += 1
                continue
            records.append(self._to_record(model))

        if skipped:
            logger.warning(f"Skipped {skipped} of {len(gdf)} features in {self.path.name}")

        if not records:
            if errors:
                raise DataValidationError(self.DATASET, errors)
            raise DatasetUnavailableError(self.DATASET, f"no usable features in {self.path}")

        logger.info(f"Loaded {len(records)} {self.DATASET} records from {self.path}")
        return records
