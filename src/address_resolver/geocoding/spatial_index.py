"""
In-memory ground-truth index of address points.

Answers street + house number lookups with an exact match, a fuzzy street
match, or linear interpolation between the nearest bracketing house
numbers on the resolved street. A separate StreetNameIndex holds
deduplicated street names for prefix search.
"""

from __future__ import annotations

import bisect
import logging
from pathlib import Path
from typing import Iterable, Optional

from .models import SpatialFeature, SpatialMatch
from .normalizers import normalize_street_text
from .policy import SpatialMatchPolicy

logger = logging.getLogger(__name__)


def score_street_candidate(query: str, candidate: str, policy: SpatialMatchPolicy) -> float:
    """
    Similarity of two normalized street names in [0, 1].

    Prefix matches score by length difference, and a longer input scores
    lower than a longer candidate so that generic prefixes do not match.
    Other pairs score by token overlap (Dice coefficient) with a small
    bonus for the more specific candidate.
    """
    if not query or not candidate:
        return 0.0
    if query == candidate:
        return 1.0

    length_diff = abs(len(candidate) - len(query))
    close = length_diff <= policy.prefix_close_max_length_diff

    if candidate.startswith(query):
        return policy.prefix_close_score if close else policy.candidate_longer_score
    if query.startswith(candidate):
        return policy.prefix_close_score if close else policy.input_longer_score

    query_tokens = set(query.split(" "))
    candidate_tokens = set(candidate.split(" "))
    common = len(query_tokens & candidate_tokens)
    overlap = 2 * common / (len(query_tokens) + len(candidate_tokens))
    if overlap < policy.min_token_overlap:
        return 0.0

    if overlap >= policy.specificity_bonus_threshold:
        extra = len(candidate) - len(query)
        if extra > 0:
            bonus = min(policy.max_specificity_bonus, extra * policy.specificity_bonus_per_char)
            overlap = min(1.0, overlap + bonus)
    return overlap


def best_street_match(
    query: str, candidates: Iterable[str], policy: SpatialMatchPolicy
) -> Optional[tuple[str, float]]:
    """Highest-scoring candidate, or None when the best score is below the threshold.

    Ties keep the first candidate seen.
    """
    best: Optional[str] = None
    best_score = 0.0
    for candidate in candidates:
        score = score_street_candidate(query, candidate, policy)
        if score > best_score:
            best, best_score = candidate, score

    if best is None or best_score < policy.min_fuzzy_score:
        return None
    return best, best_score


class SpatialIndex:
    """
    Read-mostly index of SpatialFeature points grouped by street.

    Build one with ``from_features`` or ``load_layer``; share the instance
    by reference across workers. Loading the same path twice is a no-op.
    """

    def __init__(self, policy: SpatialMatchPolicy | None = None):
        self.policy = policy or SpatialMatchPolicy()
        self.layer_path: Optional[Path] = None
        self._features: list[SpatialFeature] = []
        self._by_street: dict[str, list[SpatialFeature]] = {}
        self._numbers: dict[str, list[int]] = {}

    @classmethod
    def from_features(
        cls, features: Iterable[SpatialFeature], policy: SpatialMatchPolicy | None = None
    ) -> "SpatialIndex":
        index = cls(policy)
        index._build(features)
        return index

    def load_layer(self, path: Path | str) -> int:
        """
        Load address points from a GeoJSON file, replacing any other layer.

        Returns:
            Number of features held after the call

        Raises:
            DatasetUnavailableError: if the file is missing or yields no features
        """
        resolved = Path(path).resolve()
        if self.layer_path == resolved:
            logger.debug(f"Address layer already loaded from {resolved}")
            return len(self._features)

        # Lazy import to keep the geocoding package free of I/O dependencies at import time
        from ..data_loader import DatasetLoader
        from .. import datasets  # noqa: F401  registers the dataset loaders

        features = DatasetLoader.from_path("address_points", resolved)
        self._build(features)
        self.layer_path = resolved
        logger.info(f"Spatial index ready: {len(self._features)} points on {len(self._by_street)} streets")
        return len(self._features)

    def _build(self, features: Iterable[SpatialFeature]) -> None:
        self._features = list(features)
        by_street: dict[str, list[SpatialFeature]] = {}
        for feature in self._features:
            by_street.setdefault(feature.street_name_normalized, []).append(feature)

        # Stable sort keeps dataset order among duplicate house numbers
        self._by_street = {
            street: sorted((f for f in group if f.house_number is not None), key=lambda f: f.house_number)
            for street, group in by_street.items()
        }
        self._numbers = {
            street: [f.house_number for f in group] for street, group in self._by_street.items()
        }

    def __len__(self) -> int:
        return len(self._features)

    @property
    def streets(self) -> list[str]:
        """Every normalized street name, in dataset order."""
        return list(self._by_street)

    def _resolve_street(self, street: str) -> Optional[tuple[str, bool]]:
        normalized = normalize_street_text(street)
        if not normalized:
            return None
        if self._by_street.get(normalized):
            return normalized, False

        match = best_street_match(normalized, self._by_street.keys(), self.policy)
        if match is None:
            logger.debug(f"No fuzzy street match for {normalized!r}")
            return None
        candidate, score = match
        logger.debug(f"Fuzzy street match {normalized!r} -> {candidate!r} ({score:.2f})")
        return candidate, True

    def lookup(self, street: str, house_number: int) -> Optional[SpatialMatch]:
        """
        Find coordinates for a street and house number.

        Exact number matches score 1.0 and interpolated ones 0.8; a street
        resolved by fuzzy matching lowers either by the fuzzy penalty.
        """
        if house_number is None or house_number <= 0:
            return None
        resolved = self._resolve_street(street)
        if resolved is None:
            return None
        name, fuzzy = resolved

        points = self._by_street.get(name) or []
        if not points:
            return None
        numbers = self._numbers[name]
        penalty = self.policy.fuzzy_penalty if fuzzy else 0.0

        at = bisect.bisect_left(numbers, house_number)
        if at < len(numbers) and numbers[at] == house_number:
            point = points[at]
            return SpatialMatch(
                lat=point.lat,
                lon=point.lon,
                confidence=round(self.policy.exact_confidence - penalty, 4),
                exact=True,
                fuzzy=fuzzy,
                matched_street=name,
            )

        # nearest lower is the last point below; nearest upper the first above
        upper_at = bisect.bisect_right(numbers, house_number)
        if at == 0 or upper_at >= len(numbers):
            return None
        lower, upper = points[at - 1], points[upper_at]
        span = upper.house_number - lower.house_number
        if span <= 0:
            return None

        factor = (house_number - lower.house_number) / span
        return SpatialMatch(
            lat=lower.lat + (upper.lat - lower.lat) * factor,
            lon=lower.lon + (upper.lon - lower.lon) * factor,
            confidence=round(self.policy.interpolated_confidence - penalty, 4),
            exact=False,
            fuzzy=fuzzy,
            matched_street=name,
        )

    def list_house_numbers(self, street: str) -> list[int]:
        """Sorted unique house numbers known on a street."""
        return sorted(set(self._numbers.get(normalize_street_text(street), [])))

    def street_exists(self, street: str) -> bool:
        return normalize_street_text(street) in self._by_street

    def number_exists(self, street: str, house_number: int) -> bool:
        numbers = self._numbers.get(normalize_street_text(street), [])
        at = bisect.bisect_left(numbers, house_number)
        return at < len(numbers) and numbers[at] == house_number


class StreetNameIndex:
    """Deduplicated street names for autocomplete. Not used for coordinates."""

    def __init__(self):
        self.layer_path: Optional[Path] = None
        self._names: dict[str, str] = {}

    @classmethod
    def from_names(cls, names: Iterable[str]) -> "StreetNameIndex":
        index = cls()
        index._build((name, normalize_street_text(name)) for name in names)
        return index

    def _build(self, pairs: Iterable[tuple[str, str]]) -> None:
        names: dict[str, str] = {}
        for display, normalized in pairs:
            display = display.strip()
            if normalized and display and normalized not in names:
                names[normalized] = display
        self._names = names

    def load_layer(self, path: Path | str) -> int:
        """Load street segments from GeoJSON; the same path is only read once."""
        resolved = Path(path).resolve()
        if self.layer_path == resolved:
            return len(self._names)

        from ..data_loader import DatasetLoader
        from .. import datasets  # noqa: F401

        self._build(DatasetLoader.from_path("street_names", resolved))
        self.layer_path = resolved
        logger.info(f"Street name index ready: {len(self._names)} unique streets")
        return len(self._names)

    def __len__(self) -> int:
        return len(self._names)

    def search(self, query: str, max_results: int = 20) -> list[str]:
        """Display names whose normalized form starts with the normalized query."""
        normalized = normalize_street_text(query or "")
        if len(normalized) < 2:
            return []
        matches = {display for key, display in self._names.items() if key.startswith(normalized)}
        return sorted(matches)[:max_results]
