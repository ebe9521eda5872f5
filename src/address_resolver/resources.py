"""
Shared state for one resolution session.

GeocodingResources bundles the read-mostly objects every worker uses: the
spatial index, the provider adapters (through the ensemble), the result
cache and the telemetry sink. It is built once and passed by reference;
nothing here is module-level state.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional

from .geocoding.base import ProviderAdapter, ResultCache, TelemetrySink
from .geocoding.classifier import RowClassifier
from .geocoding.ensemble import EnsembleGeocoder
from .geocoding.geocoders import GovMapGeocoder, NominatimGeocoder
from .geocoding.normalizers import AddressNormalizer
from .geocoding.policy import ClassificationPolicy, EnsemblePolicy, MunicipalityProfile
from .geocoding.spatial_index import SpatialIndex, StreetNameIndex
from .geocoding.storage import CompositeResultCache, DuckDBResultCache, InMemoryResultCache
from .geocoding.telemetry import IngestClient, NullTelemetry
from .geocoding.throttling import PerWorkerRateGate
from .settings import Settings
from .utils.errors import DatasetUnavailableError

logger = logging.getLogger(__name__)


@dataclass
class GeocodingResources:
    spatial_index: SpatialIndex
    ensemble: EnsembleGeocoder
    profile: MunicipalityProfile = field(default_factory=MunicipalityProfile)
    normalizer: Optional[AddressNormalizer] = None
    classifier: Optional[RowClassifier] = None
    street_names: StreetNameIndex = field(default_factory=StreetNameIndex)
    cache: ResultCache = field(default_factory=InMemoryResultCache)
    telemetry: TelemetrySink = field(default_factory=NullTelemetry)

    def __post_init__(self):
        if self.normalizer is None:
            self.normalizer = AddressNormalizer(self.profile)
        if self.classifier is None:
            self.classifier = RowClassifier(profile=self.profile)

    @classmethod
    def build(
        cls,
        spatial_index: SpatialIndex,
        government: Optional[ProviderAdapter] = None,
        open_data: Optional[ProviderAdapter] = None,
        profile: MunicipalityProfile | None = None,
        ensemble_policy: EnsemblePolicy | None = None,
        classification_policy: ClassificationPolicy | None = None,
        street_names: StreetNameIndex | None = None,
        cache: ResultCache | None = None,
        telemetry: TelemetrySink | None = None,
    ) -> "GeocodingResources":
        """Wire resources from already constructed parts."""
        profile = profile or MunicipalityProfile()
        telemetry = telemetry or NullTelemetry()
        ensemble = EnsembleGeocoder.build(
            spatial_index, government, open_data, profile=profile, policy=ensemble_policy, telemetry=telemetry
        )
        return cls(
            spatial_index=spatial_index,
            ensemble=ensemble,
            profile=profile,
            classifier=RowClassifier(classification_policy, profile),
            street_names=street_names or StreetNameIndex(),
            cache=cache or InMemoryResultCache(),
            telemetry=telemetry,
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "GeocodingResources":
        """
        Load datasets and create provider clients from settings.

        Raises:
            DatasetUnavailableError: If the address points layer is not
                configured or cannot be loaded
        """
        if settings.address_points_path is None:
            raise DatasetUnavailableError("address_points", "RESOLVER_ADDRESS_POINTS_PATH is not set")

        spatial_index = SpatialIndex(settings.spatial_policy)
        spatial_index.load_layer(settings.address_points_path)

        street_names = StreetNameIndex()
        if settings.street_names_path is not None:
            street_names.load_layer(settings.street_names_path)

        adapter_kwargs = dict(
            timeout=settings.provider_timeout_s,
            user_agent=settings.user_agent,
        )
        government = GovMapGeocoder(
            settings.govmap_url,
            rate_limiter=PerWorkerRateGate(settings.provider_min_delay_s),
            **adapter_kwargs,
        )
        open_data = NominatimGeocoder(
            settings.nominatim_url,
            profile=settings.profile,
            rate_limiter=PerWorkerRateGate(settings.provider_min_delay_s),
            **adapter_kwargs,
        )

        cache: ResultCache = InMemoryResultCache()
        if settings.cache_db_path is not None:
            cache = CompositeResultCache([cache, DuckDBResultCache(settings.cache_db_path)])

        telemetry: TelemetrySink = NullTelemetry()
        if settings.ingest_enabled and settings.ingest_url:
            telemetry = IngestClient(settings.ingest_url)

        return cls.build(
            spatial_index,
            government=government,
            open_data=open_data,
            profile=settings.profile,
            ensemble_policy=settings.ensemble_policy,
            classification_policy=settings.classification_policy,
            street_names=street_names,
            cache=cache,
            telemetry=telemetry,
        )

    def close(self) -> None:
        self.cache.close()
        self.telemetry.close()
