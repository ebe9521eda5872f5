"""
Row status state machine.

``RowClassifier.classify`` maps a row and its ensemble result to a terminal
status and an auditable message. It is a pure function of its inputs and
the ClassificationPolicy: no network, no randomness.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Optional

from ..utils.errors import StatusTransitionError
from .address_kind import looks_like_street_without_number
from .models import (
    AddressKind,
    AddressRow,
    Coordinates,
    GeocodeMethod,
    GeocodeResult,
    GeocodeSource,
    Status,
)
from .policy import ClassificationPolicy, MunicipalityProfile

logger = logging.getLogger(__name__)

MESSAGES: dict[str, str] = {
    "address_missing": "חסרה כתובת מלאה",
    "missing_house_number": "חסרה כתובת מלאה (אין מספר בית)",
    "missing_street_and_number": "חסרה כתובת מלאה (אין מספר בית או שם רחוב)",
    "unrecognized": "כתובת לא מזוהה",
    "not_found": "כתובת מלאה אך לא נמצאה במאגר המיפוי – נדרש טיפול ידני",
    "geocoding_error": "שגיאה בגיאוקודינג – נדרש טיפול ידני",
    "cancelled": "העיבוד בוטל לפני חיפוש הכתובת – נדרש טיפול ידני",
    "authoritative_exact": "כתובת נמצאה במאגר GIS העירוני (דיוק גבוה)",
    "authoritative_interpolated": "כתובת נמצאה במאגר GIS באמצעות אינטרפולציה (דיוק בינוני-גבוה)",
    "authoritative_medium": "כתובת נמצאה במאגר GIS (דיוק בינוני)",
    "government": "כתובת נמצאה ב-GovMap (דיוק בינוני)",
    "open_data_bbox": "כתובת נמצאה ב-Nominatim ומוגבלת לתחום נתיבות (דיוק בינוני)",
    "open_data_out_of_bounds": "כתובת נמצאה ב-Nominatim אך מחוץ לתחום נתיבות (דיוק נמוך)",
    "suffix_out_of_bounds": " (מחוץ לתחום נתיבות)",
    "suffix_distance_too_large": " (⚠ distance too large vs original coords)",
    "suffix_verified_by_prior": " (אומת מול קואורדינטות מקוריות)",
    "manual_correction": "עודכן ידנית",
}

SKIP_REASONS = ("address_missing", "missing_house_number", "missing_street_and_number", "unrecognized")
UNRESOLVED_REASONS = ("not_found", "geocoding_error", "cancelled")
CORRECTABLE = (Status.CONFIRMED, Status.NEEDS_REVIEW, Status.NOT_FOUND)

_LANDMARK_KINDS = (AddressKind.INTERSECTION, AddressKind.POI)


def skip_reason(row: AddressRow, address_missing: bool = False) -> Optional[str]:
    """
    Why a prepared row cannot be looked up, or None if it can.

    Args:
        row: A row whose kind and request have been built
        address_missing: The raw address was empty or only named the city
    """
    if address_missing:
        return "address_missing"
    if row.request is not None:
        return None
    if row.kind is AddressKind.STREET_NUMBER:
        if row.canonical is None or not row.canonical.street:
            return "missing_street_and_number"
        return "missing_house_number"
    if row.kind is AddressKind.UNKNOWN and looks_like_street_without_number(row.address):
        return "missing_house_number"
    return "unrecognized"


def base_message(result: GeocodeResult, policy: ClassificationPolicy) -> str:
    """Message naming the source and accuracy tier of a result."""
    if result.source is GeocodeSource.AUTHORITATIVE:
        if result.confidence >= policy.authoritative_high_message:
            if result.method is GeocodeMethod.EXACT:
                return MESSAGES["authoritative_exact"]
            return MESSAGES["authoritative_interpolated"]
        return MESSAGES["authoritative_medium"]
    if result.source is GeocodeSource.GOVERNMENT:
        return MESSAGES["government"]
    if result.method is GeocodeMethod.OUT_OF_BOUNDS:
        return MESSAGES["open_data_out_of_bounds"]
    return MESSAGES["open_data_bbox"]


class RowClassifier:
    """Assigns terminal statuses to rows."""

    def __init__(
        self,
        policy: ClassificationPolicy | None = None,
        profile: MunicipalityProfile | None = None,
    ):
        self.policy = policy or ClassificationPolicy()
        self.profile = profile or MunicipalityProfile()

    def tentative_status(self, result: GeocodeResult, in_bounds: bool) -> Status:
        """Status from source and confidence alone."""
        p = self.policy
        if result.source is GeocodeSource.AUTHORITATIVE:
            confirm = p.authoritative_confirm
        elif result.source is GeocodeSource.GOVERNMENT:
            confirm = p.government_confirm if in_bounds else float("inf")
        else:
            confirm = p.other_confirm

        if result.confidence >= confirm:
            return Status.CONFIRMED
        if result.confidence >= p.review_floor:
            return Status.NEEDS_REVIEW
        return Status.NOT_FOUND

    def _force_confirmed(self, kind: AddressKind, result: GeocodeResult, in_bounds: bool) -> bool:
        p = self.policy
        if not in_bounds:
            return False
        if kind in _LANDMARK_KINDS:
            return result.source.is_trusted and result.confidence >= p.landmark_trusted_confirm
        if kind is AddressKind.STREET_NUMBER:
            if result.source is GeocodeSource.AUTHORITATIVE:
                return result.confidence >= p.street_authoritative_force_confirm
            if result.source is GeocodeSource.GOVERNMENT:
                return result.confidence >= p.street_government_force_confirm
        return False

    def distance_gate(self, kind: AddressKind, source: GeocodeSource) -> float:
        """Distance from the prior coordinate beyond which Confirmed is downgraded."""
        p = self.policy
        if kind is not AddressKind.STREET_NUMBER:
            return p.landmark_max_distance_m
        if source is GeocodeSource.AUTHORITATIVE:
            return p.street_authoritative_max_distance_m
        if source is GeocodeSource.GOVERNMENT:
            return p.street_government_max_distance_m
        return p.street_other_max_distance_m

    def upgrade_radius(self, kind: AddressKind) -> float:
        if kind is AddressKind.STREET_NUMBER:
            return self.policy.street_upgrade_distance_m
        return self.policy.landmark_upgrade_distance_m

    def classify(self, row: AddressRow, result: Optional[GeocodeResult]) -> AddressRow:
        """
        Move a PENDING row to its terminal status.

        Args:
            row: The row, with kind and optional prior coordinates set
            result: The ensemble's answer, or None

        Returns:
            A new row with status, message, final coordinates and metadata
        """
        if result is None:
            return self.classify_unresolved(row, "not_found")

        p = self.policy
        kind = row.kind
        in_bounds = self.profile.bounds.contains(result.lat, result.lon)
        status = self.tentative_status(result, in_bounds)

        if not in_bounds and status is Status.CONFIRMED:
            status = Status.NEEDS_REVIEW

        distance = result.distance_to(row.prior_coords) if row.prior_coords is not None else None
        forced = self._force_confirmed(kind, result, in_bounds)
        gate = self.distance_gate(kind, result.source)

        if forced and kind in _LANDMARK_KINDS:
            status = Status.CONFIRMED
        elif forced and result.source is GeocodeSource.AUTHORITATIVE:
            status = Status.CONFIRMED
        elif forced:
            # government street/number: only an extreme distance downgrades
            if distance is not None and distance > p.street_government_extreme_distance_m:
                if status is Status.CONFIRMED:
                    status = Status.NEEDS_REVIEW
        elif distance is not None and distance > gate and status is Status.CONFIRMED:
            status = Status.NEEDS_REVIEW

        radius = self.upgrade_radius(kind)
        if distance is not None and in_bounds and distance <= radius:
            if status is Status.NOT_FOUND:
                status = Status.NEEDS_REVIEW
            elif status is Status.NEEDS_REVIEW:
                status = Status.CONFIRMED

        message = base_message(result, p)
        if not in_bounds:
            message += MESSAGES["suffix_out_of_bounds"]
        if distance is not None and not forced and distance > gate:
            message += MESSAGES["suffix_distance_too_large"]
        if distance is not None and in_bounds and distance <= radius and status is Status.CONFIRMED:
            message += MESSAGES["suffix_verified_by_prior"]

        if status is Status.NEEDS_REVIEW and in_bounds:
            if (
                kind is AddressKind.STREET_NUMBER
                and result.source.is_trusted
                and result.confidence >= p.street_trusted_medium_confirm
            ):
                status = Status.CONFIRMED
            elif (
                kind is AddressKind.POI
                and result.source is GeocodeSource.OPEN_DATA
                and result.confidence >= p.poi_open_data_confirm
            ):
                status = Status.CONFIRMED

        if distance is not None:
            logger.debug(
                f"Row {row.row_id}: {result.source} {result.confidence:.2f} "
                f"{distance:.0f}m from prior -> {status}"
            )

        return row.transition(
            status,
            message,
            final_coords=result.coordinates,
            metadata={
                "source": result.source.value,
                "confidence": result.confidence,
                "in_bounds": in_bounds,
                "kind": kind.value,
            },
        )

    def classify_skipped(self, row: AddressRow, reason: str) -> AddressRow:
        """Mark a row that never reaches a provider."""
        if reason not in SKIP_REASONS:
            raise ValueError(f"Unknown skip reason: {reason}")
        return row.transition(Status.SKIPPED, MESSAGES[reason], metadata={"kind": row.kind.value})

    def classify_unresolved(self, row: AddressRow, reason: str = "not_found") -> AddressRow:
        """Mark a looked-up row that ended without coordinates."""
        if reason not in UNRESOLVED_REASONS:
            raise ValueError(f"Unknown unresolved reason: {reason}")
        return row.transition(Status.NOT_FOUND, MESSAGES[reason], metadata={"kind": row.kind.value})

    def apply_manual_correction(
        self, row: AddressRow, coords: Coordinates, message: Optional[str] = None
    ) -> AddressRow:
        """
        Record a reviewer's coordinates on a classified row.

        Raises:
            StatusTransitionError: If the row is PENDING or SKIPPED
        """
        if row.status not in CORRECTABLE:
            raise StatusTransitionError(row.row_id, row.status, Status.UPDATED)
        return replace(
            row,
            status=Status.UPDATED,
            message=message or MESSAGES["manual_correction"],
            final_coords=coords,
        )
