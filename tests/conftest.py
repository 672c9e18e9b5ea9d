"""Shared pytest fixtures for classverify tests.

Conventions:
- mock_vision_client dispatches on photo URL and never reaches a real backend
- FakeClock drives the throttle deterministically
- Verdicts are written under tmp_path only
- No real external HTTP calls are made in any test
"""

from __future__ import annotations

import math
from typing import Any, Dict
from unittest.mock import MagicMock

import pytest

# Reference orphanage in Bali used across tests
REFERENCE_LAT = -8.6500
REFERENCE_LON = 115.2167


def north_of(latitude: float, longitude: float, meters: float):
    """Return a GeoPoint `meters` due north of (latitude, longitude).

    Along a meridian the haversine distance equals R * delta_phi exactly, so
    the offset round-trips to the same whole number of metres.
    """
    from classverify.models.verification import GeoPoint

    return GeoPoint(latitude + math.degrees(meters / 6_371_000.0), longitude)


class FakeClock:
    """Manually advanced epoch-seconds clock."""

    def __init__(self, start: float = 1_741_770_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


# ── Vision result helpers ────────────────────────────────────────────────────────

def vision_result(kids: int = 0, tier: str = "uncertain", notes: str = "", **kwargs):
    """Build a PhotoAnalysisResult with terse defaults."""
    from classverify.models.verification import PhotoAnalysisResult

    return PhotoAnalysisResult(
        kids_count=kids,
        vision_match=tier,
        confidence_notes=notes,
        **kwargs,
    )


# ── Mock vision client ───────────────────────────────────────────────────────────

@pytest.fixture
def mock_vision_client():
    """Mock VisionClient whose analyze() dispatches on the photo URL.

    Populate ``client.responses`` with url → PhotoAnalysisResult or Exception.
    Unknown URLs return a neutral uncertain result.
    """
    from classverify.clients.vision_client import VisionClient

    client = MagicMock(spec=VisionClient)
    client.backend = "mock"
    client.is_configured.return_value = True
    client.responses = {}

    def _fake_analyze(photo_url, context_label):
        outcome = client.responses.get(photo_url)
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome if outcome is not None else vision_result()

    client.analyze.side_effect = _fake_analyze
    return client


# ── Config, request and store fixtures ───────────────────────────────────────────

@pytest.fixture
def test_config(tmp_path):
    """VerificationConfig with a fake API key and a temp verdict store."""
    from config.settings import VerificationConfig

    return VerificationConfig(
        vision_backend="anthropic",
        anthropic_api_key="test-key",
        verdict_store_root=str(tmp_path / "verdicts"),
        log_level="WARNING",
    )


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def throttle(fake_clock):
    """Fresh RequestThrottle on a fake clock (isolated from the process default)."""
    from classverify.throttle import RequestThrottle

    return RequestThrottle(clock=fake_clock)


@pytest.fixture
def recorder(tmp_path):
    from classverify.io.persistence import JsonVerdictRecorder

    return JsonVerdictRecorder(tmp_path / "verdicts")


@pytest.fixture
def sample_payload() -> Dict[str, Any]:
    """Inbound wire payload for a class log with three photos and a close GPS fix."""
    gps = north_of(REFERENCE_LAT, REFERENCE_LON, 120)
    return {
        "classLogId": "log-123",
        "photoUrls": [
            "https://storage.example.com/class-photos/log-123/a.jpg",
            "https://storage.example.com/class-photos/log-123/b.jpg",
            "https://storage.example.com/class-photos/log-123/c.jpg",
        ],
        "declaredDate": "2025-03-12",
        "declaredTime": "10:00 AM",
        "rateLimitKey": "ai-analysis:user-7",
        "orphanageName": "Harapan Kasih",
        "referenceLocation": {"latitude": REFERENCE_LAT, "longitude": REFERENCE_LON},
        "photoGps": {"latitude": gps.latitude, "longitude": gps.longitude},
        "exifDateTaken": "2025-03-12T09:15:00",
    }


@pytest.fixture
def make_result():
    """Factory fixture: make_result(kids, tier, notes, **extra) -> PhotoAnalysisResult."""
    return vision_result


@pytest.fixture
def reference_point():
    from classverify.models.verification import GeoPoint

    return GeoPoint(REFERENCE_LAT, REFERENCE_LON)


@pytest.fixture
def point_north_of():
    """Factory fixture: point_north_of(point, meters) -> GeoPoint due north."""
    return lambda point, meters: north_of(point.latitude, point.longitude, meters)
