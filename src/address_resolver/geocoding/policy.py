"""
Named, overridable policy constants for address resolution.

Every tuned threshold used by the normalizer, the spatial index, the
ensemble and the classifier lives here. The models are frozen; override a
value with ``policy.model_copy(update={...})`` or through the nested
``RESOLVER_*__*`` environment variables read by ``Settings``.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, model_validator


class BoundingBox(BaseModel):
    """Latitude/longitude rectangle used to reject implausible results."""
    model_config = ConfigDict(frozen=True)

    min_lat: float
    max_lat: float
    min_lon: float
    max_lon: float

    @model_validator(mode="after")
    def _check_order(self) -> "BoundingBox":
        if self.min_lat > self.max_lat or self.min_lon > self.max_lon:
            raise ValueError("bounding box minimums must not exceed maximums")
        return self

    def contains(self, lat: float, lon: float) -> bool:
        return self.min_lat <= lat <= self.max_lat and self.min_lon <= lon <= self.max_lon

    def viewbox(self) -> str:
        """Nominatim viewbox string: left,top,right,bottom."""
        return f"{self.min_lon},{self.max_lat},{self.max_lon},{self.min_lat}"


# Neighborhood names are removed from the street part of an address before
# the house number is parsed. The city token itself is never listed here.
NETIVOT_NEIGHBORHOOD_PATTERNS: tuple[str, ...] = (
    r"\bנווה[-\s]*נוי\b",
    r"\bנוה נוי\b",
    r'\bנ"י\b',
    r"\bשכונת נווה שרון\b",
    r"\bנווה[-\s]*שרון\b",
    r"\bנוה שרון\b",
    r'\bנ"ש\b',
    r"\bקריית מנחם\b",
    r"\bקרית[-\s]*מנחם\b",
    r"\bקמ\b",
    r"\bמערב[-\s]*נתיבות\b",
    r"\bנתיבות מערב\b",
    r"\bהשכונה המערבית\b",
    r"\bשכונה מערבית\b",
    r'\bש"מ\b',
    r"\bשכונת החורש\b",
    r"\bשכו'? ?החורש\b",
    r"\bשכ'? ?החורש\b",
    r"\bהחורשה\b",
    r"\bהחורש\b",
    r"\bחורש\b",
    r"\bנטעים[-\s]*נתיבות\b",
    r"\bאזור נטעים\b",
    r"\bשכונת נטעים\b",
    r"\bנטעים\b",
    r"\bשכונת נווה אביב\b",
    r"\bנווה אביב\b",
    r"\bנוה אביב\b",
    r"\bאביב נתיבות\b",
    r"\bיוספטל דרום\b",
    r"\bשכונת יוספטל\b",
    r"\bיוספטל\b",
    r'\bש"י\b',
    r"\bגבעת בית ואן\b",
    r"\bבית ואן\b",
    r"\bגבעת בון\b",
    r"\bשכונת רמות יורם\b",
    r"\bרמות יורם\b",
    r"\bיורם\b",
)

NETIVOT_REPLACEMENTS: tuple[tuple[str, str], ...] = (
    (r"\bמערב[-\s]*נתיבות\b", "נתיבות"),
    (r"\bנתיבות[-\s]*מערב\b", "נתיבות"),
    (r"\bתילתן\b", "תלתן"),
)

NETIVOT_POI_PATTERNS: tuple[tuple[str, str], ...] = (
    (r"(קבר|הקבר).*באבא\s+סאלי|באבא\s+סאלי", "קבר הבאבא סאלי"),
    (r"מרכז\s+קליטה", "מרכז קליטה"),
    (r"שוק\s+ישן|סמילו", "שוק ישן"),
)


class MunicipalityProfile(BaseModel):
    """The municipality being resolved: its name, boundary and vocabulary."""
    model_config = ConfigDict(frozen=True)

    city_name: str = "נתיבות"
    city_aliases: tuple[str, ...] = ("netivot",)
    country_name: str = "ישראל"
    country_aliases: tuple[str, ...] = ("israel",)
    country_code: str = "il"
    language: str = "he"
    bounds: BoundingBox = BoundingBox(min_lat=31.40, max_lat=31.52, min_lon=34.55, max_lon=34.72)
    replacements: tuple[tuple[str, str], ...] = NETIVOT_REPLACEMENTS
    neighborhood_patterns: tuple[str, ...] = NETIVOT_NEIGHBORHOOD_PATTERNS
    poi_patterns: tuple[tuple[str, str], ...] = NETIVOT_POI_PATTERNS

    @property
    def city_tokens(self) -> tuple[str, ...]:
        return (self.city_name, *self.city_aliases)


class SpatialMatchPolicy(BaseModel):
    """Confidence tiers for ground-truth lookups."""
    model_config = ConfigDict(frozen=True)

    exact_confidence: float = 1.0
    interpolated_confidence: float = 0.8
    fuzzy_penalty: float = 0.1
    min_fuzzy_score: float = 0.7
    prefix_close_score: float = 0.85
    prefix_close_max_length_diff: int = 3
    candidate_longer_score: float = 0.75
    input_longer_score: float = 0.60
    min_token_overlap: float = 0.5
    specificity_bonus_threshold: float = 0.8
    specificity_bonus_per_char: float = 0.005
    max_specificity_bonus: float = 0.05


class EnsemblePolicy(BaseModel):
    """Confidence tags assigned to external provider results."""
    model_config = ConfigDict(frozen=True)

    government_confidence: float = 0.75
    open_data_in_bounds_confidence: float = 0.6
    open_data_out_of_bounds_confidence: float = 0.3


class ClassificationPolicy(BaseModel):
    """Thresholds of the row status state machine."""
    model_config = ConfigDict(frozen=True)

    # tentative status by source
    authoritative_confirm: float = 0.8
    government_confirm: float = 0.75
    other_confirm: float = 0.9
    review_floor: float = 0.6

    # force-confirm bars
    landmark_trusted_confirm: float = 0.7
    street_authoritative_force_confirm: float = 0.9
    street_government_force_confirm: float = 0.75
    street_government_extreme_distance_m: float = 3000.0

    # distance gates beyond which Confirmed becomes NeedsReview
    street_authoritative_max_distance_m: float = 1000.0
    street_government_max_distance_m: float = 1200.0
    street_other_max_distance_m: float = 500.0
    landmark_max_distance_m: float = 1500.0

    # one-step upgrade radius around a prior coordinate
    street_upgrade_distance_m: float = 100.0
    landmark_upgrade_distance_m: float = 250.0

    # final narrow upgrades
    street_trusted_medium_confirm: float = 0.75
    poi_open_data_confirm: float = 0.6

    # message tiers
    authoritative_high_message: float = 0.9
