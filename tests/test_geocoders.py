from __future__ import annotations

import pytest
import requests

from address_resolver.geocoding import geocoders
from address_resolver.geocoding.geocoders import GovMapGeocoder, NominatimGeocoder
from address_resolver.geocoding.models import Coordinates
from address_resolver.geocoding.throttling import NoOpRateLimiter


class FakeResponse:
    def __init__(self, payload=None, status_code=200, bad_json=False):
        self.payload = payload
        self.status_code = status_code
        self.bad_json = bad_json

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")

    def json(self):
        if self.bad_json:
            raise ValueError("Expecting value")
        return self.payload


@pytest.fixture
def capture_get(monkeypatch):
    calls = []

    def install(response=None, exc=None):
        def fake_get(url, params=None, headers=None, timeout=None):
            calls.append({"url": url, "params": params, "headers": headers, "timeout": timeout})
            if exc is not None:
                raise exc
            return response

        monkeypatch.setattr(geocoders.requests, "get", fake_get)
        return calls

    return install


def test_govmap_parses_first_candidate(capture_get):
    calls = capture_get(FakeResponse({"candidates": [{"location": {"x": 34.59, "y": 31.42}}]}))

    coords = GovMapGeocoder(timeout=3.0, rate_limiter=NoOpRateLimiter()).query("הרצל 5, נתיבות")

    assert coords == Coordinates(31.42, 34.59)
    params = calls[0]["params"]
    assert params["SingleLine"] == "הרצל 5, נתיבות"
    assert params["outSR"] == "4326"
    assert params["maxLocations"] == "1"
    assert calls[0]["timeout"] == 3.0


def test_govmap_no_candidates(capture_get):
    capture_get(FakeResponse({"candidates": []}))

    assert GovMapGeocoder().query("הרצל 5") is None


def test_nominatim_sends_bbox_and_locale(capture_get, profile):
    calls = capture_get(FakeResponse([{"lat": "31.43", "lon": "34.6"}]))

    coords = NominatimGeocoder(profile=profile, user_agent="tests/1.0").query("הרצל 5, נתיבות, ישראל")

    assert coords == Coordinates(31.43, 34.6)
    params = calls[0]["params"]
    assert params["viewbox"] == "34.55,31.52,34.72,31.4"
    assert params["bounded"] == "1"
    assert params["countrycodes"] == "il"
    assert params["accept-language"] == "he"
    assert calls[0]["headers"]["User-Agent"] == "tests/1.0"


@pytest.mark.parametrize(
    "response, exc",
    [
        (None, requests.Timeout("slow")),
        (None, requests.ConnectionError("down")),
        (FakeResponse(status_code=503), None),
        (FakeResponse(bad_json=True), None),
        (FakeResponse({"unexpected": True}), None),
        (FakeResponse([{"lat": "not a number", "lon": "34.6"}]), None),
    ],
)
def test_failures_become_none(capture_get, response, exc):
    capture_get(response, exc)

    assert NominatimGeocoder().query("הרצל 5") is None
    assert GovMapGeocoder().query("הרצל 5") is None


def test_blank_query_makes_no_request(capture_get):
    calls = capture_get(FakeResponse([]))

    assert NominatimGeocoder().query("   ") is None
    assert calls == []


def test_http_adapter_requires_params_and_extract():
    with pytest.raises(TypeError):
        geocoders.HTTPProviderAdapter("http://example.invalid")
