"""Pipeline orchestration data models for classverify.

Defines VerificationRequest (inbound payload), VerificationContext (shared
state for one run) and PhaseRecord (per-phase timing log).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional

from config.settings import VerificationConfig
from classverify.errors import InvalidRequestError
from classverify.models.verification import (
    DateValidation,
    GeofenceResult,
    GeoPoint,
    PhotoAnalysisAgentResult,
    VerificationVerdict,
)
from classverify.utils.date_utils import parse_iso_date


def _parse_declared_date(value: Any) -> date:
    try:
        return parse_iso_date(value)
    except ValueError:
        raise InvalidRequestError(f"declaredDate must be YYYY-MM-DD, got {value!r}")


@dataclass
class VerificationRequest:
    """One already-authorized request to verify a class log's photos."""

    class_log_id: str
    photo_urls: List[str]
    declared_date: date
    rate_limit_key: str
    reference_location: Optional[GeoPoint] = None
    photo_gps: Optional[GeoPoint] = None
    exif_date_taken: Optional[str] = None
    declared_time: Optional[str] = None
    orphanage_name: Optional[str] = None

    def __post_init__(self) -> None:
        self.declared_date = _parse_declared_date(self.declared_date)

    @property
    def context_label(self) -> str:
        """Name shown to the vision model; falls back to the class-log id."""
        return self.orphanage_name or self.class_log_id

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "VerificationRequest":
        """Build a request from the camelCase wire payload.

        Raises:
            InvalidRequestError: Missing required fields or out-of-range coordinates.
        """
        missing = [k for k in ("classLogId", "declaredDate", "rateLimitKey") if not payload.get(k)]
        if missing:
            raise InvalidRequestError(f"Missing required field(s): {', '.join(missing)}")

        photo_urls = payload.get("photoUrls") or []
        if not isinstance(photo_urls, list) or not all(isinstance(u, str) for u in photo_urls):
            raise InvalidRequestError("photoUrls must be a list of URL strings")

        try:
            reference = GeoPoint.from_dict(payload.get("referenceLocation"))
            photo_gps = GeoPoint.from_dict(payload.get("photoGps"))
        except (TypeError, ValueError) as exc:
            raise InvalidRequestError(f"Invalid coordinates: {exc}")

        return cls(
            class_log_id=str(payload["classLogId"]),
            photo_urls=list(photo_urls),
            declared_date=payload["declaredDate"],
            rate_limit_key=str(payload["rateLimitKey"]),
            reference_location=reference,
            photo_gps=photo_gps,
            exif_date_taken=payload.get("exifDateTaken") or None,
            declared_time=payload.get("declaredTime") or None,
            orphanage_name=payload.get("orphanageName") or None,
        )


@dataclass
class PhaseRecord:
    """Timing and status record for a single pipeline phase."""

    phase_name: str
    start_time: datetime
    end_time: Optional[datetime] = None
    status: str = "OK"

    @property
    def elapsed_seconds(self) -> float:
        """Compute elapsed time in seconds."""
        if self.end_time is None:
            return 0.0
        return (self.end_time - self.start_time).total_seconds()


@dataclass
class VerificationContext:
    """Shared state object threaded through one verification run.

    Each phase reads from fields populated by earlier phases and writes its own
    result here. Nothing in the context is reused across invocations.
    """

    config: VerificationConfig
    request: VerificationRequest

    # ── Phase results (populated progressively) ────────────────────────────────
    photo_result: Optional[PhotoAnalysisAgentResult] = None
    geofence_result: Optional[GeofenceResult] = None
    date_validation: Optional[DateValidation] = None
    verdict: Optional[VerificationVerdict] = None

    # ── Run metadata ───────────────────────────────────────────────────────────
    phase_log: List[PhaseRecord] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    def log_phase_start(self, phase_name: str) -> PhaseRecord:
        """Record the start of a pipeline phase."""
        record = PhaseRecord(phase_name=phase_name, start_time=datetime.now(timezone.utc))
        self.phase_log.append(record)
        return record

    def log_phase_end(self, record: PhaseRecord, status: str = "OK") -> None:
        """Record the end of a pipeline phase."""
        record.end_time = datetime.now(timezone.utc)
        record.status = status

    def add_warning(self, warning: str) -> None:
        self.warnings.append(warning)
