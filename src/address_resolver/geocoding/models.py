"""
Core data models for address resolution.

These dataclasses serve as the contract between the normalizer, the
spatial index, the ensemble and the classifier. Everything except
``AddressRow`` is frozen; rows change status by producing a new row.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import StrEnum
from math import atan2, cos, radians, sin, sqrt
from typing import Any, Optional, Union

from ..utils.errors import StatusTransitionError

EARTH_RADIUS_M = 6371000


def haversine_m(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance in meters between two WGS84 points."""
    phi1, lam1 = radians(lat1), radians(lon1)
    phi2, lam2 = radians(lat2), radians(lon2)

    dlat = phi2 - phi1
    dlon = lam2 - lam1

    a = sin(dlat / 2) ** 2 + cos(phi1) * cos(phi2) * sin(dlon / 2) ** 2
    c = 2 * atan2(sqrt(a), sqrt(1 - a))
    return EARTH_RADIUS_M * c


class Status(StrEnum):
    """Disposition of an address row. PENDING is the only non-terminal state."""
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    UPDATED = "UPDATED"
    NEEDS_REVIEW = "NEEDS_REVIEW"
    NOT_FOUND = "NOT_FOUND"
    SKIPPED = "SKIPPED"

    @property
    def is_terminal(self) -> bool:
        return self is not Status.PENDING


class GeocodeSource(StrEnum):
    """Where a coordinate came from, in decreasing order of trust."""
    AUTHORITATIVE = "GIS"
    GOVERNMENT = "GOVMAP"
    OPEN_DATA = "NOMINATIM"

    @property
    def is_trusted(self) -> bool:
        return self in (GeocodeSource.AUTHORITATIVE, GeocodeSource.GOVERNMENT)


class GeocodeMethod(StrEnum):
    """How a source produced its coordinate."""
    EXACT = "GIS_EXACT"
    INTERPOLATED = "GIS_INTERPOLATED"
    GEOCODE = "GEOCODE"
    BBOX_RESTRICTED = "NOMINATIM_BBOX_RESTRICTED"
    OUT_OF_BOUNDS = "NOMINATIM_OUT_OF_BOUNDS"


class AddressKind(StrEnum):
    STREET_NUMBER = "STREET_NUMBER"
    INTERSECTION = "INTERSECTION"
    POI = "POI"
    UNKNOWN = "UNKNOWN"


@dataclass(frozen=True)
class Coordinates:
    lat: float
    lon: float

    def distance_to(self, other: "Coordinates") -> float:
        return haversine_m(self.lat, self.lon, other.lat, other.lon)


@dataclass(frozen=True)
class CanonicalAddress:
    """
    Normalized street, optional house number and city.

    ``city`` is empty when the raw text carried no recognised city token;
    such addresses were not rewritten by the municipality rules.
    """
    street: str
    house_number: Optional[str]
    city: str

    @property
    def text(self) -> str:
        """The canonical "street N, city" string, also used as cache key."""
        head = f"{self.street} {self.house_number}" if self.house_number else self.street
        return f"{head}, {self.city}" if self.city else head

    def __str__(self) -> str:
        return self.text


@dataclass(frozen=True)
class StreetNumberRequest:
    street: str
    house_number: int
    canonical_text: str

    kind = AddressKind.STREET_NUMBER

    @property
    def key(self) -> str:
        return self.canonical_text


@dataclass(frozen=True)
class IntersectionRequest:
    raw_text: str

    kind = AddressKind.INTERSECTION

    @property
    def key(self) -> str:
        return f"{self.kind}:{self.raw_text}"


@dataclass(frozen=True)
class PoiRequest:
    raw_text: str

    kind = AddressKind.POI

    @property
    def key(self) -> str:
        return f"{self.kind}:{self.raw_text}"


AddressRequest = Union[StreetNumberRequest, IntersectionRequest, PoiRequest]


@dataclass(frozen=True)
class SpatialFeature:
    """One ground-truth address point."""
    street_name_normalized: str
    house_number: Optional[int]
    lat: float
    lon: float


@dataclass(frozen=True)
class SpatialMatch:
    """A coordinate found in the spatial index."""
    lat: float
    lon: float
    confidence: float
    exact: bool
    fuzzy: bool = False
    matched_street: str = ""


@dataclass(frozen=True)
class GeocodeResult:
    """
    The unified result of the ensemble.

    Produced fresh per request; compared and selected, never mutated.
    """
    lat: float
    lon: float
    confidence: float
    source: GeocodeSource
    method: GeocodeMethod

    @property
    def coordinates(self) -> Coordinates:
        return Coordinates(self.lat, self.lon)

    def distance_to(self, other: Coordinates) -> float:
        """Distance in meters to another coordinate."""
        return haversine_m(self.lat, self.lon, other.lat, other.lon)

    def to_dict(self) -> dict[str, Any]:
        return {
            "lat": self.lat,
            "lon": self.lon,
            "confidence": self.confidence,
            "source": self.source.value,
            "method": self.method.value,
        }


@dataclass
class AddressRow:
    """
    The unit of batch work.

    ``metadata`` is a transient bag (source, confidence, in-bounds flag,
    address kind) read by the statistics rollup and cleared afterwards.
    """
    row_id: int
    original: dict[str, Any]
    address: str
    canonical: Optional[CanonicalAddress] = None
    kind: AddressKind = AddressKind.UNKNOWN
    request: Optional[AddressRequest] = None
    prior_coords: Optional[Coordinates] = None
    final_coords: Optional[Coordinates] = None
    status: Status = Status.PENDING
    message: str = ""
    metadata: dict[str, Any] = field(default_factory=dict)

    def transition(
        self,
        status: Status,
        message: str,
        final_coords: Optional[Coordinates] = None,
        metadata: Optional[dict[str, Any]] = None,
    ) -> "AddressRow":
        """Return a copy of this row moved from PENDING to a terminal status."""
        if self.status.is_terminal:
            raise StatusTransitionError(self.row_id, self.status, status)
        if not status.is_terminal:
            raise StatusTransitionError(self.row_id, self.status, status)
        return replace(
            self,
            status=status,
            message=message,
            final_coords=final_coords,
            metadata=dict(metadata or {}),
        )
