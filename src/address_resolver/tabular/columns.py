"""
Column role detection for imported tables.

Header names vary between files and languages, so each role is matched by
a pattern from ``COLUMN_PATTERNS``. The table is plain data: localize it by
adding patterns, not code.
"""

from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Optional

from ..geocoding.models import Coordinates
from ..utils.errors import ColumnDetectionError

logger = logging.getLogger(__name__)

# role -> (include pattern, exclude pattern); roles are resolved in this order
COLUMN_PATTERNS: dict[str, tuple[str, Optional[str]]] = {
    "lat": (r"lat|רוחב", None),
    "lon": (r"lon|lng|אורך", None),
    "street": (r"רחוב|רח'|כתובת|street|address", None),
    "number": (r"מספר|בית|num|number|house", r"טלפון|phone"),
    "city": (r"עיר|ישוב|יישוב|city|town", None),
}

DEFAULT_LAT_COLUMN = "lat"
DEFAULT_LON_COLUMN = "lon"


@dataclass(frozen=True)
class ColumnRoles:
    """Which header plays which role. Missing address roles are None."""
    street: Optional[str]
    number: Optional[str]
    city: Optional[str]
    lat: str = DEFAULT_LAT_COLUMN
    lon: str = DEFAULT_LON_COLUMN


class ColumnRoleResolver:
    def __init__(self, patterns: Mapping[str, tuple[str, Optional[str]]] | None = None):
        patterns = patterns or COLUMN_PATTERNS
        self._patterns = {
            role: (re.compile(include, re.IGNORECASE), re.compile(exclude, re.IGNORECASE) if exclude else None)
            for role, (include, exclude) in patterns.items()
        }

    def _find(self, role: str, columns: list[str], taken: set[str]) -> Optional[str]:
        include, exclude = self._patterns[role]
        for column in columns:
            if column in taken:
                continue
            if include.search(column) and not (exclude and exclude.search(column)):
                return column
        return None

    def resolve(self, columns: Iterable[Any]) -> ColumnRoles:
        """
        Assign header names to roles; each header takes at most one role.

        Raises:
            ColumnDetectionError: If neither a street nor a number column exists
        """
        names = [str(c) for c in columns]
        taken: set[str] = set()
        found: dict[str, Optional[str]] = {}
        for role in self._patterns:
            column = self._find(role, names, taken)
            found[role] = column
            if column is not None:
                taken.add(column)

        if found.get("street") is None and found.get("number") is None:
            raise ColumnDetectionError(names)

        roles = ColumnRoles(
            street=found.get("street"),
            number=found.get("number"),
            city=found.get("city"),
            lat=found.get("lat") or DEFAULT_LAT_COLUMN,
            lon=found.get("lon") or DEFAULT_LON_COLUMN,
        )
        logger.info(f"Detected columns: {roles}")
        return roles


def _cell(record: Mapping[str, Any], column: Optional[str]) -> str:
    if column is None:
        return ""
    value = record.get(column)
    if value is None or (isinstance(value, float) and math.isnan(value)):
        return ""
    return str(value).strip()


def extract_raw_address(record: Mapping[str, Any], roles: ColumnRoles, default_city: str) -> str:
    """Join street, number and city; rows without a city get ``default_city``."""
    parts = [_cell(record, roles.street), _cell(record, roles.number)]
    city = _cell(record, roles.city)
    parts.append(city or default_city)
    return " ".join(p for p in parts if p).strip()


def parse_prior_coordinates(record: Mapping[str, Any], roles: ColumnRoles) -> Optional[Coordinates]:
    """Pre-existing coordinates of a record, when both cells hold numbers."""
    try:
        lat = float(_cell(record, roles.lat))
        lon = float(_cell(record, roles.lon))
    except ValueError:
        return None
    if math.isnan(lat) or math.isnan(lon):
        return None
    return Coordinates(lat, lon)
