"""
Street and address normalizers.

Turns raw, messy address strings into the canonical "street N, city" form
used as lookup key by the spatial index, the result cache and the
provider query builders.
"""

from __future__ import annotations

import logging
import math
import re
from typing import Mapping, Optional

from .base import Normalizer
from .models import CanonicalAddress
from .policy import MunicipalityProfile

logger = logging.getLogger(__name__)

_WHITESPACE = re.compile(r"\s+")
_REPEATED_COMMAS = re.compile(r",+")
_COMMA_SPACING = re.compile(r"\s*,\s*")
_LONG_DASHES = re.compile(r"[–—]")

_SEPARATORS = re.compile(r"[-–—/\\]")
_QUOTES = re.compile(r"[\"'׳״]")
_LEADING_STREET_TYPE = re.compile(r"^(?:רחוב|רח)\s+")
_LATIN = re.compile(r"[A-Za-z]+")

# Abbreviation prefixes expanded before quote marks are removed
_ABBREVIATIONS: Mapping[str, str] = {
    r"\bרח['׳]\s*": "רחוב ",
    r"\bשכ['׳]\s*": "שכונת ",
}

_STREET_PREFIX = re.compile(r"^\s*(?:רחוב|רח['׳]|רח)\s+")
_STREET_TYPE_WORDS = frozenset({"רחוב", "רח"})
_LEADING_PUNCTUATION = " ,'\"׳״/\\-"
_HOUSE_RANGE = re.compile(r"^(.+?)\s+(\d+)\s*-\s*(\d+)\s*$")
_APARTMENT_SUFFIX = re.compile(r"(\d+)\s*/\s*\d+\s*$")
_UP_TO_LAST_NUMBER = re.compile(r"^(.*\d+)")
_STREET_AND_NUMBER = re.compile(r"^(.+?)\s+(\d+)\s*$")
_HOUSE_NUMBER_TOKEN = re.compile(r"^\d+[א-ת]?$")
_LEADING_DIGITS = re.compile(r"^(\d+)")


def _apply_replacements(text: str, replacements: Mapping[str, str]) -> str:
    for pattern, replacement in replacements.items():
        text = re.sub(pattern, replacement, text)
    return text


def normalize_whitespace_and_commas(value: str) -> str:
    """Collapse runs of whitespace and commas into "a, b" form."""
    value = _WHITESPACE.sub(" ", value)
    value = _REPEATED_COMMAS.sub(",", value)
    value = _COMMA_SPACING.sub(", ", value)
    return value.strip()


def normalize_street_text(value: str) -> str:
    """
    Normalize a street name for matching.

    Shared by the spatial index, the street-name search and every provider
    query builder so the same street always yields the same key. Hebrew
    text is never case-folded; only latin letters are lowercased.

    Examples:
        normalize_street_text("רח' הרב-קוק")  -> "הרב קוק"
        normalize_street_text("Main St")       -> "main st"
    """
    if not value:
        return ""

    text = _WHITESPACE.sub(" ", value.strip())
    text = _SEPARATORS.sub(" ", text)
    text = _apply_replacements(text, _ABBREVIATIONS)
    text = _QUOTES.sub("", text)
    text = _WHITESPACE.sub(" ", text).strip()
    text = _LEADING_STREET_TYPE.sub("", text, count=1)
    text = _WHITESPACE.sub(" ", text).strip()
    return _LATIN.sub(lambda m: m.group(0).lower(), text)


def parse_house_number(value: Optional[str]) -> Optional[int]:
    """Parse "12" or "12א" to 12. Returns None for missing or non-positive values."""
    if value is None:
        return None
    match = _LEADING_DIGITS.match(str(value).strip())
    if not match:
        return None
    number = int(match.group(1))
    return number if number > 0 else None


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


class AddressNormalizer(Normalizer):
    """
    Municipality-aware address normalizer.

    Pipeline for ``normalize``:
        1. collapse whitespace and commas; long dashes become hyphens
        2. apply the profile's spelling-variant dictionary
        3. strip one leading street-type token
        4. without a city token, parse the cleaned text without the municipality rules
        5. split on the last occurrence of the city token
        6. strip neighborhood names from the street part
        7. collapse a house-number range "A-B" to its midpoint
        8. drop an apartment suffix "N/M"
        9. cut everything after the last digit run
        10. split "<name> <digits>"; no number means None
    """

    def __init__(self, profile: MunicipalityProfile | None = None):
        self.profile = profile or MunicipalityProfile()
        self._replacements = {p: r for p, r in self.profile.replacements}
        self._neighborhoods = [re.compile(p) for p in self.profile.neighborhood_patterns]
        self._city_tokens = [t.lower() for t in self.profile.city_tokens]

    def _strip_neighborhoods(self, text: str) -> str:
        for pattern in self._neighborhoods:
            text = pattern.sub(" ", text)
        return normalize_whitespace_and_commas(text)

    def _last_city_index(self, text: str) -> Optional[int]:
        lowered = text.lower()
        positions = [lowered.rfind(token) for token in self._city_tokens]
        found = [p for p in positions if p >= 0]
        return max(found) if found else None

    def _clean(self, raw: str) -> str:
        text = normalize_whitespace_and_commas(_LONG_DASHES.sub("-", raw))
        text = _apply_replacements(text, self._replacements).lstrip(_LEADING_PUNCTUATION)
        return _STREET_PREFIX.sub("", text, count=1)

    def strip_city_tokens(self, text: str) -> str:
        """Remove every city token and tidy the remaining punctuation."""
        for token in self.profile.city_tokens:
            text = re.sub(re.escape(token), " ", text, flags=re.IGNORECASE)
        return normalize_whitespace_and_commas(text).strip(" ,")

    def is_address_missing(self, text: Optional[str]) -> bool:
        """True when the text is empty or holds nothing but city tokens."""
        if not text or not text.strip():
            return True
        return not self.strip_city_tokens(text)

    def split_street_and_number(
        self, text: str, strip_neighborhoods: bool = True
    ) -> tuple[str, Optional[str]]:
        """
        Split an address (canonical or raw) into normalized street and number.

        Examples:
            "התאנה 2, נתיבות"          -> ("התאנה", "2")
            "נווה נוי, ערבה 4, נתיבות" -> ("ערבה", "4")
            "הרב צבאן"                 -> ("הרב צבאן", None)
        """
        value = normalize_whitespace_and_commas(text)
        city_at = self._last_city_index(value)
        if city_at is not None:
            value = value[:city_at]
        value = value.strip(" ,")

        parts = [p.strip() for p in value.split(",")]
        main = next((p for p in reversed(parts) if p), "")
        main = _STREET_PREFIX.sub("", main, count=1)
        if strip_neighborhoods:
            main = self._strip_neighborhoods(main)
        main = normalize_whitespace_and_commas(main).strip(" ,")
        if not main:
            return "", None

        tokens = main.split(" ")
        if _HOUSE_NUMBER_TOKEN.match(tokens[-1]):
            return normalize_street_text(" ".join(tokens[:-1])), tokens[-1]
        return normalize_street_text(main), None

    def _split_address_part(self, address_part: str) -> Optional[tuple[str, str]]:
        address_part = self._strip_neighborhoods(address_part)
        address_part = normalize_whitespace_and_commas(address_part).strip(" ,")

        range_match = _HOUSE_RANGE.match(address_part)
        if range_match:
            start, end = int(range_match.group(2)), int(range_match.group(3))
            address_part = f"{range_match.group(1).strip()} {_round_half_up((start + end) / 2)}"

        address_part = _APARTMENT_SUFFIX.sub(r"\1", address_part)

        up_to_number = _UP_TO_LAST_NUMBER.match(address_part)
        if up_to_number:
            address_part = up_to_number.group(1).strip()

        match = _STREET_AND_NUMBER.match(address_part)
        if not match or int(match.group(2)) <= 0:
            return None

        street_raw = match.group(1).strip(" ,")
        segments = [s.strip() for s in street_raw.split(",") if s.strip()]
        street = normalize_street_text(segments[-1] if segments else "")
        # a bare street-type word is not a street name
        if not street or street in _STREET_TYPE_WORDS:
            return None
        return street, match.group(2)

    def normalize(self, raw: str) -> Optional[CanonicalAddress]:
        if not raw or not raw.strip():
            return None

        text = self._clean(raw)
        city_at = self._last_city_index(text)

        if city_at is None:
            # Foreign or city-less text is parsed but not rewritten
            street, number = self.split_street_and_number(text, strip_neighborhoods=False)
            if not street:
                return None
            return CanonicalAddress(street=street, house_number=number, city="")

        parts = self._split_address_part(text[:city_at])
        if parts is None:
            logger.debug(f"No street and house number in {raw!r}")
            return None
        street, number = parts
        return CanonicalAddress(street=street, house_number=number, city=self.profile.city_name)
