"""
Pure classification of address text into request kinds.

Rules are evaluated in a fixed order and the first match wins:
intersection markers, then a house-number pattern, then point-of-interest
heuristics, then the Unknown fallback. Nothing here touches the network.
"""

from __future__ import annotations

import re
from typing import Optional

from .models import (
    AddressKind,
    AddressRequest,
    CanonicalAddress,
    IntersectionRequest,
    PoiRequest,
    StreetNumberRequest,
)
from .normalizers import parse_house_number

_SLASH_PAIR = re.compile(r"^(.+?\S)\s*[/\\]\s*(\S.+)$")
_CORNER_OF = re.compile(r"\bפינת\b")
_STREET_AND_STREET = re.compile(r"רחוב\s+(\S+)\s+ו-?רחוב\s+(\S+)")
_STATION_NUMBER = re.compile(r"\bתחנה\s*\d+")
_HOUSE_NUMBER = re.compile(r"\S+\s+(\d+[א-ת]?)\b")
_TRAILING_NUMBER = re.compile(r"(\S+)\s+(\d+[א-ת]?)\s*$")
_PROXIMITY_WORDS = re.compile(r"\b(?:ליד|סמוך|בסמוך|בקרבת|קרוב|לידו|לידה)\b")
_STREET_WORD = re.compile(r"\bרחוב\b")
_DIGIT = re.compile(r"\d")

MIN_POI_LENGTH = 4


def _is_intersection(text: str) -> bool:
    slash = _SLASH_PAIR.match(text)
    if slash and slash.group(1).strip() and slash.group(2).strip():
        return True
    return bool(_CORNER_OF.search(text) or _STREET_AND_STREET.search(text))


def _has_house_number(text: str) -> bool:
    if _STATION_NUMBER.search(text):
        return False
    return bool(_HOUSE_NUMBER.search(text) or _TRAILING_NUMBER.search(text))


def classify_address_kind(text: Optional[str]) -> AddressKind:
    """
    Classify address text.

    Examples:
        "הרצל / ביאליק"     -> INTERSECTION
        "הרצל 12, נתיבות"   -> STREET_NUMBER
        "תחנה 5 מרכז קליטה" -> POI
        "ליד הבית"          -> UNKNOWN
    """
    if not text or not text.strip():
        return AddressKind.UNKNOWN

    trimmed = text.strip()
    if _is_intersection(trimmed):
        return AddressKind.INTERSECTION
    if _has_house_number(trimmed):
        return AddressKind.STREET_NUMBER
    if _PROXIMITY_WORDS.search(trimmed):
        return AddressKind.UNKNOWN
    if len(trimmed) >= MIN_POI_LENGTH:
        return AddressKind.POI
    return AddressKind.UNKNOWN


def looks_like_street_without_number(text: str) -> bool:
    return bool(_STREET_WORD.search(text)) and not _DIGIT.search(text)


def build_request(
    address: str, canonical: Optional[CanonicalAddress]
) -> tuple[AddressKind, Optional[AddressRequest]]:
    """
    Classify a row's address and build the matching request.

    Classification reads the canonical text when normalization succeeded
    and the raw text otherwise. A StreetNumber kind without a usable street
    and house number yields no request.
    """
    text = canonical.text if canonical is not None else address
    kind = classify_address_kind(text)

    if kind is AddressKind.STREET_NUMBER:
        if canonical is None or not canonical.street:
            return kind, None
        number = parse_house_number(canonical.house_number)
        if number is None:
            return kind, None
        return kind, StreetNumberRequest(
            street=canonical.street, house_number=number, canonical_text=canonical.text
        )

    if kind is AddressKind.INTERSECTION:
        return kind, IntersectionRequest(raw_text=text.strip())
    if kind is AddressKind.POI:
        return kind, PoiRequest(raw_text=text.strip())
    return kind, None
