"""Consensus aggregation for classverify.

Combines the geofence outcome and the primary photo's vision analysis into a
single location tier plus a reviewer-facing rationale.

Precedence, not blending: when a GPS fix was available its tier is the final
location tier and the vision tier is only mentioned in the rationale. The date
validation is carried through untouched as an independent axis; it answers
"wrong time?" while the location tier answers "wrong place?".
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import List, Optional

from classverify.models.verification import (
    AnalyzedPhoto,
    DateValidation,
    GeofenceResult,
    GeoPoint,
    VerificationVerdict,
)


def verification_methods(geofence: Optional[GeofenceResult], vision_tier: str) -> List[str]:
    """List the methods that contributed, in the order they are reported."""
    methods: List[str] = []
    if geofence is not None:
        methods.append(f"GPS ({geofence.distance_meters}m from orphanage)")
    methods.append(f"AI vision ({vision_tier})")
    return methods


def build_rationale(
    geofence: Optional[GeofenceResult],
    vision_tier: str,
    vision_notes: str,
) -> str:
    """Render "Verified by: <methods>. <vision notes>"."""
    summary = f"Verified by: {' + '.join(verification_methods(geofence, vision_tier))}"
    if vision_notes:
        return f"{summary}. {vision_notes}"
    return f"{summary}."


def aggregate(
    geofence: Optional[GeofenceResult],
    primary: AnalyzedPhoto,
    date_validation: DateValidation,
    class_log_id: str = "",
    photo_gps: Optional[GeoPoint] = None,
    exif_date_taken: Optional[str] = None,
    photos_analyzed: int = 1,
    photos_failed: int = 0,
    analyzed_at: Optional[datetime] = None,
) -> VerificationVerdict:
    """Fuse the location signals into one verdict.

    Args:
        geofence: Geofence outcome, or None when GPS was unavailable.
        primary: The representative analyzed photo.
        date_validation: Temporal reconciliation outcome (passed through).
        class_log_id: Record the verdict belongs to.
        photo_gps: Device fix used for the geofence, recorded for review.
        exif_date_taken: Raw EXIF string, recorded for review.
        photos_analyzed: Number of photos that were analyzed successfully.
        photos_failed: Number of photos whose analysis failed.
        analyzed_at: Timestamp of the verdict (defaults to now, UTC).

    Returns:
        VerificationVerdict.
    """
    vision = primary.result
    final_match = geofence.tier if geofence is not None else vision.vision_match

    return VerificationVerdict(
        final_match=final_match,
        gps_distance_meters=geofence.distance_meters if geofence is not None else None,
        date_match=date_validation.date_match,
        date_notes=date_validation.notes,
        rationale=build_rationale(geofence, vision.vision_match, vision.confidence_notes),
        primary_photo_url=primary.photo_url,
        kids_count=vision.kids_count,
        vision_match=vision.vision_match,
        location_hint=vision.location_hint,
        captured_at_hint=vision.captured_at_hint,
        class_log_id=class_log_id,
        photo_gps=photo_gps,
        exif_date_taken=exif_date_taken,
        photos_analyzed=photos_analyzed,
        photos_failed=photos_failed,
        analyzed_at=analyzed_at or datetime.now(timezone.utc),
    )
