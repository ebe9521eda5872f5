"""
Interfaces shared by the resolution components.

The ensemble, the pipeline and the resources bundle depend only on these
classes, so providers, caches and telemetry sinks can be swapped in tests.
"""

from abc import ABC, abstractmethod
from typing import Any, Optional

from .models import AddressRequest, CanonicalAddress, Coordinates, GeocodeResult, GeocodeSource


class Normalizer(ABC):
    """Turns free-form address text into a canonical street/number/city triple."""

    @abstractmethod
    def normalize(self, raw: str) -> Optional[CanonicalAddress]:
        """
        Normalize a raw address string.

        Args:
            raw: Free-form address text

        Returns:
            CanonicalAddress, or None when the text carries too little
            information to look up
        """
        pass


class ProviderAdapter(ABC):
    """
    An external geocoding service.

    Adapters own all transport-level error handling: ``query`` returns
    None instead of raising on timeouts, transport failures, non-success
    responses and malformed payloads.
    """

    source: GeocodeSource

    @abstractmethod
    def query(self, text: str) -> Optional[Coordinates]:
        """
        Look up a single free-text query.

        Args:
            text: Canonicalized query string including locality context

        Returns:
            Coordinates of the best candidate, or None
        """
        pass


class ResolutionStrategy(ABC):
    """One source in the ensemble's ordered fallback chain."""

    name: str

    @abstractmethod
    def supports(self, request: AddressRequest) -> bool:
        pass

    @abstractmethod
    def attempt(self, request: AddressRequest) -> Optional[GeocodeResult]:
        """Return a result, or None to let the next strategy try."""
        pass


class RateLimiter(ABC):
    """Paces outgoing provider or ingest requests."""

    @abstractmethod
    def wait(self) -> None:
        """Block until the next request may go out."""
        pass

    @abstractmethod
    def acquire(self, count: int = 1) -> None:
        pass


class ResultCache(ABC):
    """
    Resolved addresses keyed by canonical address string.

    Concurrent writers for the same key store equivalent results, so the
    last writer wins.
    """

    @abstractmethod
    def get(self, key: str) -> Optional[GeocodeResult]:
        pass

    @abstractmethod
    def set(self, key: str, result: GeocodeResult) -> None:
        pass

    def close(self) -> None:
        """Release any held resources."""
        pass


class TelemetrySink(ABC):
    """Best-effort event emitter. Implementations must never raise."""

    @abstractmethod
    def emit(self, event: str, **data: Any) -> None:
        pass

    def close(self) -> None:
        pass
