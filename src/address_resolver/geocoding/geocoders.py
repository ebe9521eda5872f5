"""
HTTP adapters for the external geocoding providers.

GovMapGeocoder wraps the Israeli government ArcGIS locator and
NominatimGeocoder wraps the OpenStreetMap search API. Both implement the
ProviderAdapter interface: one free-text query in, one coordinate (or
None) out. Transport errors, timeouts, non-success statuses and malformed
payloads are logged and returned as None; nothing is retried.

Reference:
    https://developers.arcgis.com/rest/geocode/api-reference/geocoding-find-address-candidates.htm
    https://nominatim.org/release-docs/latest/api/Search/
"""

import logging
from abc import abstractmethod
import math
from typing import Any, Optional

import requests

from .base import ProviderAdapter, RateLimiter
from .models import Coordinates, GeocodeSource
from .policy import BoundingBox, MunicipalityProfile

logger = logging.getLogger(__name__)

GOVMAP_URL = (
    "https://govmap.gov.il/arcgis/rest/services/Location/FindLocation/"
    "GeocodeServer/findAddressCandidates"
)
NOMINATIM_URL = "https://nominatim.openstreetmap.org/search"
DEFAULT_USER_AGENT = "address-resolver/1.0"


def _coordinates(lat: Any, lon: Any) -> Optional[Coordinates]:
    """Coordinates from loosely typed values, or None when not a valid WGS84 pair."""
    try:
        lat_f, lon_f = float(lat), float(lon)
    except (TypeError, ValueError):
        return None
    if math.isnan(lat_f) or math.isnan(lon_f):
        return None
    if not (-90 <= lat_f <= 90 and -180 <= lon_f <= 180):
        return None
    return Coordinates(lat_f, lon_f)


class HTTPProviderAdapter(ProviderAdapter):
    """Shared GET-and-parse plumbing for JSON providers."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 8.0,
        rate_limiter: Optional[RateLimiter] = None,
        user_agent: str = DEFAULT_USER_AGENT,
    ):
        """
        Args:
            base_url: Endpoint URL
            timeout: HTTP timeout in seconds; a timeout counts as no result
            rate_limiter: Optional limiter consulted before every request
            user_agent: User-Agent header sent with every request
        """
        self.base_url = base_url
        self.timeout = timeout
        self.rate_limiter = rate_limiter
        self.headers = {"User-Agent": user_agent, "Accept": "application/json"}

    @abstractmethod
    def _params(self, text: str) -> dict[str, str]:
        """Query-string parameters for one lookup."""
        pass

    @abstractmethod
    def _extract(self, payload: Any) -> Optional[Coordinates]:
        """Coordinates of the best candidate in a decoded response."""
        pass

    def _get_json(self, params: dict[str, str]) -> Optional[Any]:
        if self.rate_limiter is not None:
            self.rate_limiter.wait()

        try:
            response = requests.get(
                self.base_url, params=params, headers=self.headers, timeout=self.timeout
            )
            response.raise_for_status()
            return response.json()
        except requests.Timeout:
            logger.warning(f"{self.source} timed out after {self.timeout}s")
        except requests.RequestException as e:
            logger.warning(f"{self.source} request failed: {e}")
        except ValueError as e:
            logger.warning(f"{self.source} returned malformed JSON: {e}")
        return None

    def query(self, text: str) -> Optional[Coordinates]:
        if not text or not text.strip():
            return None

        payload = self._get_json(self._params(text.strip()))
        if payload is None:
            return None

        coords = self._extract(payload)
        logger.debug(f"{self.source} {text!r} -> {coords}")
        return coords


class GovMapGeocoder(HTTPProviderAdapter):
    """Government address locator (ArcGIS findAddressCandidates)."""

    source = GeocodeSource.GOVERNMENT

    def __init__(self, base_url: str = GOVMAP_URL, **kwargs: Any):
        super().__init__(base_url, **kwargs)

    def _params(self, text: str) -> dict[str, str]:
        return {
            "SingleLine": text,
            "f": "json",
            "outFields": "*",
            "maxLocations": "1",
            "outSR": "4326",
            "lang": "HE",
        }

    def _extract(self, payload: Any) -> Optional[Coordinates]:
        if not isinstance(payload, dict):
            return None
        candidates = payload.get("candidates")
        if not isinstance(candidates, list) or not candidates:
            return None
        location = candidates[0].get("location") if isinstance(candidates[0], dict) else None
        if not isinstance(location, dict):
            return None
        # outSR=4326: x is longitude, y is latitude
        return _coordinates(location.get("y"), location.get("x"))


class NominatimGeocoder(HTTPProviderAdapter):
    """OpenStreetMap search restricted to the municipality's bounding box."""

    source = GeocodeSource.OPEN_DATA

    def __init__(
        self,
        base_url: str = NOMINATIM_URL,
        profile: Optional[MunicipalityProfile] = None,
        bounds: Optional[BoundingBox] = None,
        **kwargs: Any,
    ):
        super().__init__(base_url, **kwargs)
        self.profile = profile or MunicipalityProfile()
        self.bounds = bounds if bounds is not None else self.profile.bounds

    def _params(self, text: str) -> dict[str, str]:
        params = {
            "q": text,
            "format": "json",
            "limit": "1",
            "addressdetails": "1",
            "accept-language": self.profile.language,
            "countrycodes": self.profile.country_code,
        }
        if self.bounds is not None:
            params["viewbox"] = self.bounds.viewbox()
            params["bounded"] = "1"
        return params

    def _extract(self, payload: Any) -> Optional[Coordinates]:
        if not isinstance(payload, list) or not payload:
            return None
        item = payload[0]
        if not isinstance(item, dict):
            return None
        return _coordinates(item.get("lat"), item.get("lon"))
