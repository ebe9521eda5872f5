"""Ground-truth address points: one feature per building entrance."""

from __future__ import annotations

from typing import Any, ClassVar, Optional

from pydantic import BaseModel, Field, field_validator
from shapely.geometry.base import BaseGeometry

from ..data_loader import DatasetLoader, first_present, representative_coordinate
from ..geocoding.models import SpatialFeature
from ..geocoding.normalizers import normalize_street_text, parse_house_number

STREET_KEYS = ("street", "רחוב", "street_name", "שם_רחוב", "str_name", "address", "כתובת")
HOUSE_NUMBER_KEYS = ("house_number", "number", "מספר", "בית", "House", "housenumber", "houseNumber")


class AddressPointRecord(BaseModel):
    street: str = Field(min_length=1)
    house_number: Optional[int] = None
    lat: float = Field(ge=-90, le=90)
    lon: float = Field(ge=-180, le=180)

    @field_validator("street", mode="before")
    @classmethod
    def _normalize_street(cls, value: Any) -> str:
        return normalize_street_text(str(value))


def _house_number(properties: dict[str, Any]) -> Optional[int]:
    for key in HOUSE_NUMBER_KEYS:
        value = properties.get(key)
        if value is None:
            continue
        if isinstance(value, float):
            if value != value:  # NaN
                continue
            value = int(value)
        number = parse_house_number(str(value))
        if number is not None:
            return number
    return None


class AddressPointsLoader(DatasetLoader):
    """Loads address points into SpatialFeature records.

    Street names are read from the first present key of STREET_KEYS and
    normalized with the same routine used for lookups. House numbers must
    parse to a positive integer; anything else is kept as a numberless
    point that still contributes its street name.
    """

    DATASET: ClassVar[str] = "address_points"
    RECORD_MODEL: ClassVar[type[BaseModel]] = AddressPointRecord

    def _parse(self, properties: dict[str, Any], geometry: Optional[BaseGeometry]) -> Optional[dict[str, Any]]:
        street = first_present(properties, STREET_KEYS)
        coordinate = representative_coordinate(geometry)
        if street is None or coordinate is None:
            return None
        lat, lon = coordinate
        return {
            "street": street,
            "house_number": _house_number(properties),
            "lat": lat,
            "lon": lon,
        }

    def _to_record(self, model: AddressPointRecord) -> SpatialFeature:
        return SpatialFeature(
            street_name_normalized=model.street,
            house_number=model.house_number,
            lat=model.lat,
            lon=model.lon,
        )
