"""
Multi-source ensemble geocoder.

Sources are tried strictly in priority order: the authoritative spatial
index, then the government locator, then open-data search. Each source is
a ResolutionStrategy returning an optional result; the first result wins.
Reordering or adding a source means editing the strategy list.
"""

from __future__ import annotations

import logging
from typing import Iterable, Optional

from .base import ProviderAdapter, ResolutionStrategy, TelemetrySink
from .models import (
    AddressRequest,
    GeocodeMethod,
    GeocodeResult,
    GeocodeSource,
    IntersectionRequest,
    PoiRequest,
    StreetNumberRequest,
)
from .policy import EnsemblePolicy, MunicipalityProfile
from .queries import QueryBuilder
from .spatial_index import SpatialIndex
from .telemetry import safe_emit

logger = logging.getLogger(__name__)

REQUEST_TYPES = (StreetNumberRequest, IntersectionRequest, PoiRequest)


class SpatialIndexStrategy(ResolutionStrategy):
    """Ground-truth lookup. Needs a house number, so street/number requests only."""

    name = "spatial_index"

    def __init__(self, index: SpatialIndex):
        self.index = index

    def supports(self, request: AddressRequest) -> bool:
        return isinstance(request, StreetNumberRequest)

    def attempt(self, request: AddressRequest) -> Optional[GeocodeResult]:
        match = self.index.lookup(request.street, request.house_number)
        if match is None:
            return None
        return GeocodeResult(
            lat=match.lat,
            lon=match.lon,
            confidence=match.confidence,
            source=GeocodeSource.AUTHORITATIVE,
            method=GeocodeMethod.EXACT if match.exact else GeocodeMethod.INTERPOLATED,
        )


class GovernmentStrategy(ResolutionStrategy):
    """
    Government locator, accepted only inside the municipal boundary.

    An out-of-boundary answer is a soft rejection: the chain continues.
    """

    name = "government"

    def __init__(
        self,
        adapter: ProviderAdapter,
        queries: QueryBuilder,
        policy: EnsemblePolicy | None = None,
    ):
        self.adapter = adapter
        self.queries = queries
        self.bounds = queries.profile.bounds
        self.policy = policy or EnsemblePolicy()

    def supports(self, request: AddressRequest) -> bool:
        return True

    def _query(self, request: AddressRequest) -> Optional[str]:
        if isinstance(request, StreetNumberRequest):
            return self.queries.street_number_query(request)
        candidates = self.queries.free_text_queries(request.raw_text)
        return candidates[0] if candidates else None

    def attempt(self, request: AddressRequest) -> Optional[GeocodeResult]:
        query = self._query(request)
        if not query:
            return None
        coords = self.adapter.query(query)
        if coords is None:
            return None
        if not self.bounds.contains(coords.lat, coords.lon):
            logger.info(f"Rejected government result outside boundary for {query!r}: {coords}")
            return None
        return GeocodeResult(
            lat=coords.lat,
            lon=coords.lon,
            confidence=self.policy.government_confidence,
            source=GeocodeSource.GOVERNMENT,
            method=GeocodeMethod.GEOCODE,
        )


class OpenDataStrategy(ResolutionStrategy):
    """
    Open-data search with a bounding-box hint.

    Any answer is accepted; one outside the boundary gets a low confidence
    and its own method tag.
    """

    name = "open_data"

    def __init__(
        self,
        adapter: ProviderAdapter,
        queries: QueryBuilder,
        policy: EnsemblePolicy | None = None,
    ):
        self.adapter = adapter
        self.queries = queries
        self.bounds = queries.profile.bounds
        self.policy = policy or EnsemblePolicy()

    def supports(self, request: AddressRequest) -> bool:
        return True

    def _queries(self, request: AddressRequest) -> list[str]:
        if isinstance(request, StreetNumberRequest):
            return [self.queries.street_number_query(request, include_country=True)]
        return self.queries.free_text_queries(request.raw_text, include_country=True)

    def attempt(self, request: AddressRequest) -> Optional[GeocodeResult]:
        for query in self._queries(request):
            coords = self.adapter.query(query)
            if coords is None:
                continue
            if self.bounds.contains(coords.lat, coords.lon):
                confidence = self.policy.open_data_in_bounds_confidence
                method = GeocodeMethod.BBOX_RESTRICTED
            else:
                confidence = self.policy.open_data_out_of_bounds_confidence
                method = GeocodeMethod.OUT_OF_BOUNDS
            return GeocodeResult(
                lat=coords.lat,
                lon=coords.lon,
                confidence=confidence,
                source=GeocodeSource.OPEN_DATA,
                method=method,
            )
        return None


class EnsembleGeocoder:
    """Runs a request through the strategy chain until one source answers."""

    def __init__(self, strategies: Iterable[ResolutionStrategy], telemetry: Optional[TelemetrySink] = None):
        self.strategies = list(strategies)
        self.telemetry = telemetry

    @classmethod
    def build(
        cls,
        spatial_index: Optional[SpatialIndex],
        government: Optional[ProviderAdapter],
        open_data: Optional[ProviderAdapter],
        profile: MunicipalityProfile | None = None,
        policy: EnsemblePolicy | None = None,
        telemetry: Optional[TelemetrySink] = None,
    ) -> "EnsembleGeocoder":
        """Standard chain: spatial index, government, open data. Missing sources are left out."""
        queries = QueryBuilder(profile)
        strategies: list[ResolutionStrategy] = []
        if spatial_index is not None:
            strategies.append(SpatialIndexStrategy(spatial_index))
        if government is not None:
            strategies.append(GovernmentStrategy(government, queries, policy))
        if open_data is not None:
            strategies.append(OpenDataStrategy(open_data, queries, policy))
        return cls(strategies, telemetry=telemetry)

    def geocode(self, request: AddressRequest) -> Optional[GeocodeResult]:
        """
        Resolve one request.

        Args:
            request: A StreetNumberRequest, IntersectionRequest or PoiRequest

        Returns:
            The first source's result, or None if every source failed
        """
        if not isinstance(request, REQUEST_TYPES):
            raise TypeError(f"Unsupported address request: {type(request).__name__}")

        for strategy in self.strategies:
            if not strategy.supports(request):
                continue
            result = strategy.attempt(request)
            safe_emit(
                self.telemetry,
                "source_attempt",
                strategy=strategy.name,
                kind=str(request.kind),
                hit=result is not None,
            )
            if result is not None:
                logger.debug(f"{strategy.name} resolved {request.key!r} ({result.confidence:.2f})")
                return result

        logger.debug(f"No source resolved {request.key!r}")
        return None
