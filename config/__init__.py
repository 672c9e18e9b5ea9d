"""classverify configuration package."""

from config.defaults import (
    ANTHROPIC_MODEL,
    DATE_TOLERANCE_DAYS,
    EARTH_RADIUS_M,
    GEOFENCE_HIGH_MAX_M,
    GEOFENCE_LIKELY_MAX_M,
    GEOFENCE_UNCERTAIN_MAX_M,
    OLLAMA_MODEL,
    TIME_TOLERANCE_HOURS,
    VISION_BACKEND,
)
from config.settings import (
    RATE_LIMITS,
    GeofenceThresholds,
    RateLimitConfig,
    VerificationConfig,
)

__all__ = [
    "VerificationConfig",
    "GeofenceThresholds",
    "RateLimitConfig",
    "RATE_LIMITS",
    "EARTH_RADIUS_M",
    "GEOFENCE_HIGH_MAX_M",
    "GEOFENCE_LIKELY_MAX_M",
    "GEOFENCE_UNCERTAIN_MAX_M",
    "DATE_TOLERANCE_DAYS",
    "TIME_TOLERANCE_HOURS",
    "VISION_BACKEND",
    "ANTHROPIC_MODEL",
    "OLLAMA_MODEL",
]
