"""Batch statistics rollup over classified rows."""

from __future__ import annotations

import json
import logging
from collections import Counter
from dataclasses import dataclass, field, replace
from typing import Any, Optional

from .models import AddressRow, GeocodeSource, Status

logger = logging.getLogger(__name__)


def confidence_bucket(confidence: Optional[float]) -> str:
    if confidence is None:
        return "unknown"
    if confidence >= 0.9:
        return ">=0.9"
    if confidence >= 0.75:
        return "0.75-0.89"
    if confidence >= 0.7:
        return "0.70-0.74"
    if confidence >= 0.6:
        return "0.60-0.69"
    return "<0.60"


def review_reason_key(kind: str, source: Optional[str], in_bounds: bool, confidence: Optional[float]) -> str:
    """Grouping key for NEEDS_REVIEW rows, e.g. "POI|NOMINATIM|inBounds=true|confBucket=0.60-0.69"."""
    bounds = "true" if in_bounds else "false"
    return f"{kind}|{source or 'null'}|inBounds={bounds}|confBucket={confidence_bucket(confidence)}"


@dataclass
class BatchStatistics:
    total_rows: int = 0
    by_status: Counter = field(default_factory=Counter)
    by_address_kind: Counter = field(default_factory=Counter)
    by_source: Counter = field(default_factory=Counter)
    needs_review_by_reason: Counter = field(default_factory=Counter)
    needs_review_open_data: int = 0
    out_of_bounds: int = 0

    def add(self, row: AddressRow) -> AddressRow:
        """Count one classified row and return it with its metadata discarded."""
        self.total_rows += 1
        self.by_status[row.status.value] += 1

        metadata = row.metadata
        kind = metadata.get("kind", row.kind.value)
        self.by_address_kind[kind] += 1

        source = metadata.get("source")
        if source:
            self.by_source[source] += 1

        if "in_bounds" in metadata:
            in_bounds = bool(metadata["in_bounds"])
            if not in_bounds:
                self.out_of_bounds += 1
            if row.status is Status.NEEDS_REVIEW:
                key = review_reason_key(kind, source, in_bounds, metadata.get("confidence"))
                self.needs_review_by_reason[key] += 1
                if source == GeocodeSource.OPEN_DATA.value:
                    self.needs_review_open_data += 1

        return replace(row, metadata={})

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_rows": self.total_rows,
            "by_status": dict(self.by_status),
            "by_address_kind": dict(self.by_address_kind),
            "by_source": dict(self.by_source),
            "needs_review_by_reason": dict(self.needs_review_by_reason),
            "needs_review_open_data": self.needs_review_open_data,
            "out_of_bounds": self.out_of_bounds,
        }

    def log_summary(self) -> None:
        logger.info(f"Processing summary:\n{json.dumps(self.to_dict(), ensure_ascii=False, indent=2)}")
