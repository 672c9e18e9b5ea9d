"""classverify data models package.

All pipeline input/output schemas are defined here as typed dataclasses.
Never return raw Dict from pipeline code — always use the typed models.
"""

from classverify.models.pipeline import (
    PhaseRecord,
    VerificationContext,
    VerificationRequest,
)
from classverify.models.verification import (
    AnalyzedPhoto,
    DateMatch,
    DateValidation,
    GeofenceResult,
    GeoPoint,
    MatchTier,
    PhotoAnalysisAgentResult,
    PhotoAnalysisResult,
    RateLimitResult,
    RateLimitWindow,
    VerificationVerdict,
)

__all__ = [
    # verification
    "AnalyzedPhoto",
    "DateMatch",
    "DateValidation",
    "GeofenceResult",
    "GeoPoint",
    "MatchTier",
    "PhotoAnalysisAgentResult",
    "PhotoAnalysisResult",
    "RateLimitResult",
    "RateLimitWindow",
    "VerificationVerdict",
    # pipeline
    "PhaseRecord",
    "VerificationContext",
    "VerificationRequest",
]
