"""classverify — All default threshold values and configuration constants.

All tuneable values live here. Never hard-code magic numbers in source files.
Import constants from this module; override via VerificationConfig at runtime.
"""

# ── Geofence ───────────────────────────────────────────────────────────────────
# Mean Earth radius used by the haversine distance (spherical approximation)
EARTH_RADIUS_M: float = 6_371_000.0

# Inclusive upper bounds (metres) for each GPS match tier
GEOFENCE_HIGH_MAX_M: int = 200
GEOFENCE_LIKELY_MAX_M: int = 500
GEOFENCE_UNCERTAIN_MAX_M: int = 2000

# ── Temporal reconciliation ────────────────────────────────────────────────────
# Calendar-day slack between EXIF date and declared class date (timezone drift)
DATE_TOLERANCE_DAYS: int = 1

# Maximum hour-of-day difference when the dates are equal
TIME_TOLERANCE_HOURS: int = 2

# ── Vision backends ────────────────────────────────────────────────────────────
# Default active vision backend: "anthropic" or "ollama"
VISION_BACKEND: str = "anthropic"

# Anthropic model identifier (must accept image input)
ANTHROPIC_MODEL: str = "claude-sonnet-4-20250514"

# Ollama model identifier (must be multimodal)
OLLAMA_MODEL: str = "gemma3:27b"

# Default Ollama server base URL
OLLAMA_HOST: str = "http://localhost:11434"

# Ollama Cloud API key; empty string disables auth headers
OLLAMA_API_KEY: str = ""

# Token budget for one photo analysis reply
VISION_MAX_TOKENS: int = 1024

# Sampling temperature for photo analysis
VISION_TEMPERATURE: float = 0.0

# Timeout (seconds) for downloading a photo for the Ollama backend
IMAGE_FETCH_TIMEOUT: int = 20

# Region named in the vision prompt next to the orphanage name
SITE_REGION: str = "Bali, Indonesia"

# Characters of raw model output kept in a degraded result's notes
RAW_EXCERPT_CHARS: int = 200

# ── Orchestration ──────────────────────────────────────────────────────────────
# Seconds to wait for all photo analyses; None waits indefinitely
ANALYSIS_TIMEOUT_SECONDS = None

# ── Rate limiting ──────────────────────────────────────────────────────────────
# Presets: (max_requests, window_seconds) per operation class
RATE_LIMIT_UPLOAD = (100, 60 * 60)
RATE_LIMIT_AI_ANALYSIS = (30, 60 * 60)
RATE_LIMIT_OTP_SEND = (5, 15 * 60)
RATE_LIMIT_OTP_VERIFY = (10, 15 * 60)

# Minimum seconds between sweeps of expired rate-limit windows
RATE_LIMIT_CLEANUP_INTERVAL: float = 5 * 60

# ── Output paths ──────────────────────────────────────────────────────────────
# Directory for the JSON verdict recorder
VERDICT_STORE_ROOT: str = "outputs/verdicts"

# ── Logging ────────────────────────────────────────────────────────────────────
DEFAULT_LOG_LEVEL: str = "INFO"
