"""
Address resolution for a single municipality.

Provides normalization, a ground-truth spatial index, external provider
adapters, the ensemble orchestrator and the row status classifier.
"""

from .address_kind import build_request, classify_address_kind
from .base import (
    Normalizer,
    ProviderAdapter,
    RateLimiter,
    ResolutionStrategy,
    ResultCache,
    TelemetrySink,
)
from .classifier import MESSAGES, RowClassifier, skip_reason
from .ensemble import EnsembleGeocoder, GovernmentStrategy, OpenDataStrategy, SpatialIndexStrategy
from .geocoders import GovMapGeocoder, NominatimGeocoder
from .models import (
    AddressKind,
    AddressRequest,
    AddressRow,
    CanonicalAddress,
    Coordinates,
    GeocodeMethod,
    GeocodeResult,
    GeocodeSource,
    IntersectionRequest,
    PoiRequest,
    SpatialFeature,
    SpatialMatch,
    Status,
    StreetNumberRequest,
    haversine_m,
)
from .normalizers import AddressNormalizer, normalize_street_text
from .policy import (
    BoundingBox,
    ClassificationPolicy,
    EnsemblePolicy,
    MunicipalityProfile,
    SpatialMatchPolicy,
)
from .queries import QueryBuilder
from .spatial_index import SpatialIndex, StreetNameIndex
from .statistics import BatchStatistics
from .storage import CompositeResultCache, DuckDBResultCache, InMemoryResultCache
from .telemetry import IngestClient, NullTelemetry
from .throttling import NoOpRateLimiter, PerWorkerRateGate, SimpleRateGate, TokenBucket

__all__ = [
    # Base classes
    "Normalizer",
    "ProviderAdapter",
    "RateLimiter",
    "ResolutionStrategy",
    "ResultCache",
    "TelemetrySink",
    # Models
    "AddressKind",
    "AddressRequest",
    "AddressRow",
    "CanonicalAddress",
    "Coordinates",
    "GeocodeMethod",
    "GeocodeResult",
    "GeocodeSource",
    "IntersectionRequest",
    "PoiRequest",
    "SpatialFeature",
    "SpatialMatch",
    "Status",
    "StreetNumberRequest",
    "haversine_m",
    # Policy
    "BoundingBox",
    "ClassificationPolicy",
    "EnsemblePolicy",
    "MunicipalityProfile",
    "SpatialMatchPolicy",
    # Components
    "AddressNormalizer",
    "normalize_street_text",
    "build_request",
    "classify_address_kind",
    "SpatialIndex",
    "StreetNameIndex",
    "QueryBuilder",
    "GovMapGeocoder",
    "NominatimGeocoder",
    "EnsembleGeocoder",
    "SpatialIndexStrategy",
    "GovernmentStrategy",
    "OpenDataStrategy",
    "RowClassifier",
    "MESSAGES",
    "skip_reason",
    "BatchStatistics",
    # Infrastructure
    "InMemoryResultCache",
    "DuckDBResultCache",
    "CompositeResultCache",
    "IngestClient",
    "NullTelemetry",
    "TokenBucket",
    "SimpleRateGate",
    "PerWorkerRateGate",
    "NoOpRateLimiter",
]
