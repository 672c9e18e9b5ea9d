"""Verification data models for classverify.

Defines typed schemas for coordinates, per-photo vision results, date
validation, the geofence outcome, and the final verdict written onto a
class-log record.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional


class MatchTier:
    """Four-level confidence scale shared by the GPS and vision signals."""

    HIGH = "high"
    LIKELY = "likely"
    UNCERTAIN = "uncertain"
    UNLIKELY = "unlikely"

    ALL = (HIGH, LIKELY, UNCERTAIN, UNLIKELY)


class DateMatch:
    """Outcome of comparing EXIF capture time with the declared class date."""

    MATCH = "match"
    MISMATCH = "mismatch"
    NO_EXIF = "no_exif"

    ALL = (MATCH, MISMATCH, NO_EXIF)


@dataclass(frozen=True)
class GeoPoint:
    """A WGS84 coordinate. Absent GPS is None, never GeoPoint(0, 0)."""

    latitude: float
    longitude: float

    def __post_init__(self) -> None:
        if not -90.0 <= self.latitude <= 90.0:
            raise ValueError(f"latitude out of range: {self.latitude}")
        if not -180.0 <= self.longitude <= 180.0:
            raise ValueError(f"longitude out of range: {self.longitude}")

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> Optional["GeoPoint"]:
        """Build a GeoPoint from a {latitude, longitude} mapping, or None."""
        if not data:
            return None
        if not isinstance(data, dict):
            raise TypeError(f"coordinates must be an object, got {type(data).__name__}")
        lat = data.get("latitude")
        lon = data.get("longitude")
        if lat is None or lon is None:
            return None
        return cls(latitude=float(lat), longitude=float(lon))


@dataclass(frozen=True)
class PhotoAnalysisResult:
    """What the vision model reported for a single photo."""

    kids_count: int = 0
    location_hint: Optional[str] = None
    captured_at_hint: Optional[str] = None
    vision_match: str = MatchTier.UNCERTAIN
    confidence_notes: str = ""

    def __post_init__(self) -> None:
        if self.kids_count < 0:
            raise ValueError(f"kids_count must be non-negative, got {self.kids_count}")
        if self.vision_match not in MatchTier.ALL:
            raise ValueError(f"unknown vision_match tier: {self.vision_match!r}")


@dataclass(frozen=True)
class AnalyzedPhoto:
    """A photo URL paired with its successful analysis."""

    photo_url: str
    result: PhotoAnalysisResult
    index: int = 0   # position in the submitted photo list


@dataclass(frozen=True)
class DateValidation:
    """Temporal reconciliation outcome; carried into the verdict unchanged."""

    date_match: str
    notes: str


@dataclass(frozen=True)
class GeofenceResult:
    """Distance between device and orphanage, and the tier it falls in."""

    distance_meters: int
    tier: str


@dataclass
class VerificationVerdict:
    """Final trust verdict for one class log. Re-runs overwrite it entirely."""

    final_match: str
    date_match: str
    rationale: str
    primary_photo_url: str
    kids_count: int
    gps_distance_meters: Optional[int] = None
    analyzed_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    # Context recorded alongside the verdict
    class_log_id: str = ""
    vision_match: str = MatchTier.UNCERTAIN
    date_notes: str = ""
    location_hint: Optional[str] = None
    captured_at_hint: Optional[str] = None
    photo_gps: Optional[GeoPoint] = None
    exif_date_taken: Optional[str] = None
    photos_analyzed: int = 0
    photos_failed: int = 0

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to the camelCase record shape written by the recorder."""
        return {
            "classLogId": self.class_log_id,
            "finalMatch": self.final_match,
            "gpsDistanceMeters": self.gps_distance_meters,
            "dateMatch": self.date_match,
            "dateNotes": self.date_notes,
            "rationale": self.rationale,
            "primaryPhotoUrl": self.primary_photo_url,
            "kidsCount": self.kids_count,
            "visionMatch": self.vision_match,
            "locationHint": self.location_hint,
            "capturedAtHint": self.captured_at_hint,
            "photoGps": (
                {"latitude": self.photo_gps.latitude, "longitude": self.photo_gps.longitude}
                if self.photo_gps
                else None
            ),
            "exifDateTaken": self.exif_date_taken,
            "photosAnalyzed": self.photos_analyzed,
            "photosFailed": self.photos_failed,
            "analyzedAt": self.analyzed_at.isoformat(),
        }


@dataclass
class RateLimitWindow:
    """Fixed-window counter state for one caller key."""

    key: str
    count: int
    window_reset_at: float   # epoch seconds


@dataclass(frozen=True)
class RateLimitResult:
    """Outcome of one throttle admission."""

    allowed: bool
    remaining: int
    reset_at: datetime
    retry_after_seconds: int = 0


@dataclass
class PhotoAnalysisAgentResult:
    """Complete output from the PhotoAnalysisAgent."""

    primary: AnalyzedPhoto
    analyzed: List[AnalyzedPhoto] = field(default_factory=list)
    failures: List[Any] = field(default_factory=list)   # PhotoAnalysisFailure
    warnings: List[str] = field(default_factory=list)
    status: str = "OK"   # "OK", "PARTIAL"
