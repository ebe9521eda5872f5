"""
Free-text query construction for external providers.

Street/number requests become "street N, city"; intersections and points
of interest become an ordered list of candidate queries, each carrying
the municipality (and, for open-data search, the country) as context.
"""

from __future__ import annotations

import re
from typing import Optional

from .models import StreetNumberRequest
from .normalizers import normalize_street_text
from .policy import MunicipalityProfile

_WHITESPACE = re.compile(r"\s+")
_SLASH_STREETS = re.compile(r"^(.+?\D)\s*[/\\]\s*(\D.+)$")
_CORNER_STREETS = re.compile(r"^(.+?)\s*פינת\s+(.+)$")
_CORE_QUOTES = re.compile(r"[\"']")
_CORE_SEGMENTS = re.compile(r"[,-]")
_NEIGHBORHOOD_WORD = re.compile(r"^(?:שכו'?|שכונת|שכונה)\s+")
_WEST_PREFIX = re.compile(r"^מערב(?:\s+העיר)?\s*")

INTERSECTION_CONNECTIVE = " & "


class QueryBuilder:
    """Builds provider query strings for one municipality."""

    def __init__(self, profile: MunicipalityProfile | None = None):
        self.profile = profile or MunicipalityProfile()
        tokens = "|".join(re.escape(t) for t in self.profile.city_tokens)
        self._city_suffix = re.compile(rf"[,\s]+(?:{tokens}).*$", re.IGNORECASE)
        self._poi_patterns = [(re.compile(p, re.IGNORECASE), name) for p, name in self.profile.poi_patterns]

    def strip_city(self, text: str) -> str:
        """Drop a trailing city token and anything after it."""
        return self._city_suffix.sub("", text).strip()

    def with_locality(self, query: str, include_country: bool = False) -> str:
        """Append the city (and optionally the country) unless already named."""
        query = _WHITESPACE.sub(" ", query.strip())
        lowered = query.lower()
        has_city = any(t.lower() in lowered for t in self.profile.city_tokens)
        country_tokens = (self.profile.country_name, *self.profile.country_aliases)
        has_country = any(t.lower() in lowered for t in country_tokens)

        parts = [query]
        if not has_city:
            parts.append(self.profile.city_name)
        if include_country and not has_country:
            parts.append(self.profile.country_name)
        return ", ".join(parts)

    def street_number_query(self, request: StreetNumberRequest, include_country: bool = False) -> str:
        return self.with_locality(f"{request.street} {request.house_number}", include_country)

    def intersection(self, text: str) -> Optional[str]:
        """Join the two streets of "A / B" or "A פינת B" as "a & b"."""
        core = _WHITESPACE.sub(" ", self.strip_city(text)).strip()
        for pattern in (_SLASH_STREETS, _CORNER_STREETS):
            match = pattern.match(core)
            if match:
                first = normalize_street_text(match.group(1))
                second = normalize_street_text(match.group(2))
                if first and second:
                    return f"{first}{INTERSECTION_CONNECTIVE}{second}"
        return None

    def poi(self, text: str) -> Optional[str]:
        """Canonical landmark name for a known point of interest."""
        normalized = _WHITESPACE.sub(" ", text).strip()
        for pattern, name in self._poi_patterns:
            if pattern.search(normalized):
                return name
        return None

    def core(self, text: str) -> str:
        """The last meaningful segment of the text, without neighborhood words."""
        core = _CORE_QUOTES.sub("", self.strip_city(text))
        core = _WHITESPACE.sub(" ", core).strip()
        if not core:
            return ""
        segments = [s.strip() for s in _CORE_SEGMENTS.split(core) if s.strip()]
        if len(segments) > 1:
            core = segments[-1]
        core = _NEIGHBORHOOD_WORD.sub("", core).strip()
        core = _WEST_PREFIX.sub("", core).strip()
        return _WHITESPACE.sub(" ", core).strip()

    def free_text_queries(self, raw_text: str, include_country: bool = False) -> list[str]:
        """
        Ordered, deduplicated candidate queries for an intersection or POI.

        Order: canonical landmark name, intersection join, the raw text,
        then its core segment.
        """
        trimmed = raw_text.strip()
        if not trimmed:
            return []

        candidates = [self.poi(trimmed), self.intersection(trimmed), trimmed]
        core = self.core(trimmed)
        if core and core != trimmed:
            candidates.append(core)

        queries: list[str] = []
        for candidate in candidates:
            if not candidate:
                continue
            query = self.with_locality(candidate, include_country)
            if query not in queries:
                queries.append(query)
        return queries
