"""Exception hierarchy for classverify.

Every error that crosses the pipeline boundary is a VerificationError with a
stable ``kind`` string so callers can map it to a response without string
matching on messages.
"""

from __future__ import annotations

import math
import time
from datetime import datetime
from typing import TYPE_CHECKING, List, Optional

if TYPE_CHECKING:
    from classverify.models.verification import VerificationVerdict


class VerificationError(Exception):
    """Base class for all classverify errors."""

    kind: str = "verification_error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"kind": self.kind, "message": self.message}


class PreconditionError(VerificationError):
    """Input or environment makes the run impossible; no work was attempted."""

    kind = "precondition"


class NoPhotosError(PreconditionError):
    kind = "no_photos"

    def __init__(self, message: str = "No photo URLs supplied for analysis") -> None:
        super().__init__(message)


class AnalysisUnavailableError(PreconditionError):
    """The vision service is not configured for this process."""

    kind = "analysis_unavailable"

    def __init__(self, message: str = "Photo analysis unavailable: vision service is not configured") -> None:
        super().__init__(message)


class InvalidRequestError(PreconditionError):
    kind = "invalid_request"


class RateLimitedError(VerificationError):
    """The caller exhausted its window.

    Carries reset_at and the throttle's retry_after_seconds for backoff
    messaging; when no wait is supplied it is derived from reset_at.
    """

    kind = "rate_limited"

    def __init__(
        self,
        key: str,
        reset_at: datetime,
        retry_after_seconds: Optional[int] = None,
        message: Optional[str] = None,
    ) -> None:
        super().__init__(message or "Photo analysis rate limit exceeded. Please try again later.")
        self.key = key
        self.reset_at = reset_at
        if retry_after_seconds is None:
            retry_after_seconds = max(0, math.ceil(reset_at.timestamp() - time.time()))
        self.retry_after_seconds = retry_after_seconds

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["resetAt"] = self.reset_at.isoformat()
        data["retryAfterSeconds"] = self.retry_after_seconds
        return data


class VisionServiceError(VerificationError):
    """A single vision call failed (unreachable, non-2xx, image fetch error)."""

    kind = "vision_service"


class PhotoAnalysisFailure:
    """Record of one photo that could not be analyzed.

    Not raised on its own: failures are collected and only surfaced through
    AllAnalysesFailedError when no photo succeeded.
    """

    def __init__(self, photo_url: str, index: int, cause: BaseException) -> None:
        self.photo_url = photo_url
        self.index = index
        self.cause = cause

    def __repr__(self) -> str:
        return f"PhotoAnalysisFailure(index={self.index}, url={self.photo_url!r}, cause={self.cause!r})"


class AllAnalysesFailedError(VerificationError):
    kind = "all_analyses_failed"

    def __init__(self, failures: List[PhotoAnalysisFailure]) -> None:
        super().__init__(f"All {len(failures)} photo analyses failed")
        self.failures = failures


class PersistenceError(VerificationError):
    """Writing the verdict failed. The computed verdict is still attached."""

    kind = "persistence"

    def __init__(self, class_log_id: str, verdict: "VerificationVerdict", cause: BaseException) -> None:
        super().__init__(f"Failed to persist verdict for class log {class_log_id}: {cause}")
        self.class_log_id = class_log_id
        self.verdict = verdict
        self.cause = cause
