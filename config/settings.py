"""classverify — VerificationConfig and environment-based configuration loading.

All runtime configuration flows through VerificationConfig. No module-level globals,
no hard-coded values. API keys come exclusively from environment variables.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Dict, Optional

from dotenv import load_dotenv

from config.defaults import (
    ANALYSIS_TIMEOUT_SECONDS,
    ANTHROPIC_MODEL,
    DATE_TOLERANCE_DAYS,
    DEFAULT_LOG_LEVEL,
    EARTH_RADIUS_M,
    GEOFENCE_HIGH_MAX_M,
    GEOFENCE_LIKELY_MAX_M,
    GEOFENCE_UNCERTAIN_MAX_M,
    IMAGE_FETCH_TIMEOUT,
    OLLAMA_API_KEY,
    OLLAMA_HOST,
    OLLAMA_MODEL,
    RATE_LIMIT_AI_ANALYSIS,
    RATE_LIMIT_OTP_SEND,
    RATE_LIMIT_OTP_VERIFY,
    RATE_LIMIT_UPLOAD,
    SITE_REGION,
    TIME_TOLERANCE_HOURS,
    VERDICT_STORE_ROOT,
    VISION_BACKEND,
    VISION_MAX_TOKENS,
    VISION_TEMPERATURE,
)

# Load .env file if present; silently skip if missing
load_dotenv()


@dataclass(frozen=True)
class RateLimitConfig:
    """Fixed-window limit for one operation class."""

    max_requests: int
    window_seconds: float

    def __post_init__(self) -> None:
        if self.max_requests < 1:
            raise ValueError(f"max_requests must be >= 1, got {self.max_requests}")
        if self.window_seconds <= 0:
            raise ValueError(f"window_seconds must be > 0, got {self.window_seconds}")


RATE_LIMITS: Dict[str, RateLimitConfig] = {
    "upload": RateLimitConfig(*RATE_LIMIT_UPLOAD),
    "ai_analysis": RateLimitConfig(*RATE_LIMIT_AI_ANALYSIS),
    "otp_send": RateLimitConfig(*RATE_LIMIT_OTP_SEND),
    "otp_verify": RateLimitConfig(*RATE_LIMIT_OTP_VERIFY),
}


@dataclass(frozen=True)
class GeofenceThresholds:
    """Inclusive upper bounds in metres for the GPS match tiers."""

    high_max_m: int = GEOFENCE_HIGH_MAX_M
    likely_max_m: int = GEOFENCE_LIKELY_MAX_M
    uncertain_max_m: int = GEOFENCE_UNCERTAIN_MAX_M

    def __post_init__(self) -> None:
        if not 0 <= self.high_max_m < self.likely_max_m < self.uncertain_max_m:
            raise ValueError(
                "GeofenceThresholds must be strictly increasing, got "
                f"{self.high_max_m}/{self.likely_max_m}/{self.uncertain_max_m}"
            )


@dataclass
class VerificationConfig:
    """Single configuration object threaded through the verification pipeline.

    All tuneable thresholds, API keys, model names, and file paths live here.
    Never use module-level globals or hard-coded values in pipeline code.
    """

    # ── Vision backend ────────────────────────────────────────────────────────
    vision_backend: str = field(
        default_factory=lambda: os.getenv("VISION_BACKEND", VISION_BACKEND)
    )
    anthropic_model: str = field(
        default_factory=lambda: os.getenv("ANTHROPIC_MODEL", ANTHROPIC_MODEL)
    )
    ollama_model: str = field(default_factory=lambda: os.getenv("OLLAMA_MODEL", OLLAMA_MODEL))
    ollama_host: str = field(default_factory=lambda: os.getenv("OLLAMA_HOST", OLLAMA_HOST))
    ollama_api_key: str = field(
        default_factory=lambda: os.getenv("OLLAMA_API_KEY", OLLAMA_API_KEY)
    )
    vision_max_tokens: int = VISION_MAX_TOKENS
    vision_temperature: float = VISION_TEMPERATURE
    image_fetch_timeout: int = IMAGE_FETCH_TIMEOUT
    site_region: str = SITE_REGION

    # ── API credentials (from environment only) ────────────────────────────────
    anthropic_api_key: Optional[str] = field(
        default_factory=lambda: os.getenv("ANTHROPIC_API_KEY")
    )

    # ── Geofence and temporal tolerances ───────────────────────────────────────
    geofence_thresholds: GeofenceThresholds = field(default_factory=GeofenceThresholds)
    earth_radius_m: float = EARTH_RADIUS_M
    date_tolerance_days: int = DATE_TOLERANCE_DAYS
    time_tolerance_hours: int = TIME_TOLERANCE_HOURS

    # ── Orchestration ──────────────────────────────────────────────────────────
    analysis_timeout_seconds: Optional[float] = ANALYSIS_TIMEOUT_SECONDS

    # ── Throttling ─────────────────────────────────────────────────────────────
    analysis_rate_limit: RateLimitConfig = field(
        default_factory=lambda: RATE_LIMITS["ai_analysis"]
    )

    # ── Output and logging ─────────────────────────────────────────────────────
    verdict_store_root: str = field(
        default_factory=lambda: os.getenv("VERDICT_STORE_ROOT", VERDICT_STORE_ROOT)
    )
    log_level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", DEFAULT_LOG_LEVEL))

    def __post_init__(self) -> None:
        self.vision_backend = self.vision_backend.lower()
        if self.vision_backend not in ("anthropic", "ollama"):
            raise ValueError(
                f"vision_backend must be 'anthropic' or 'ollama', got {self.vision_backend!r}"
            )
        if self.date_tolerance_days < 0 or self.time_tolerance_hours < 0:
            raise ValueError("Temporal tolerances must be non-negative")
