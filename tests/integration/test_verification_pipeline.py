"""Integration tests for classverify.pipeline.

Runs the full pipeline with a mocked vision client, a fake-clock throttle and
a JSON verdict store under tmp_path. No network access.
"""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest

from config.settings import RateLimitConfig
from classverify.agents.base import AgentStatus
from classverify.clients.vision_client import VisionClient
from classverify.errors import (
    AllAnalysesFailedError,
    AnalysisUnavailableError,
    NoPhotosError,
    PersistenceError,
    RateLimitedError,
    VisionServiceError,
)
from classverify.io.persistence import VerdictRecorder
from classverify.models.pipeline import VerificationRequest
from classverify.models.verification import DateMatch, MatchTier
from classverify.pipeline import run, verify_class_log


def _request(payload, **overrides):
    data = dict(payload)
    data.update(overrides)
    return VerificationRequest.from_dict(data)


class TestEndToEnd:
    def test_close_gps_and_matching_exif(
        self, sample_payload, test_config, mock_vision_client, throttle, recorder, make_result
    ):
        """GPS 120 m away, EXIF on the class date: high / match with both methods cited."""
        urls = sample_payload["photoUrls"]
        mock_vision_client.responses = {
            urls[0]: make_result(3, MatchTier.LIKELY, "Some children visible"),
            urls[1]: make_result(6, MatchTier.LIKELY, "Classroom, banner partly visible"),
            urls[2]: make_result(2, MatchTier.UNCERTAIN, "Blurry"),
        }
        request = _request(sample_payload, declaredTime=None)

        verdict = verify_class_log(
            request, test_config, client=mock_vision_client, throttle=throttle, recorder=recorder
        )

        assert verdict.final_match == MatchTier.HIGH
        assert verdict.gps_distance_meters == 120
        assert verdict.date_match == DateMatch.MATCH
        assert verdict.primary_photo_url == urls[1]
        assert verdict.kids_count == 6
        assert "GPS (120m from orphanage)" in verdict.rationale
        assert "AI vision (likely)" in verdict.rationale

        stored = recorder.load_verdict("log-123")
        assert stored["finalMatch"] == "high"
        assert stored["dateMatch"] == "match"
        assert stored["photosAnalyzed"] == 3

    def test_no_gps_no_exif_falls_back_to_vision(
        self, sample_payload, test_config, mock_vision_client, throttle, recorder, make_result
    ):
        """Without GPS or EXIF the vision tier decides and the date is no_exif."""
        for key in ("photoGps", "exifDateTaken"):
            del sample_payload[key]
        mock_vision_client.responses = {
            url: make_result(1, MatchTier.UNLIKELY, "Outdoor market") for url in sample_payload["photoUrls"]
        }

        verdict = verify_class_log(
            _request(sample_payload), test_config,
            client=mock_vision_client, throttle=throttle, recorder=recorder,
        )

        assert verdict.final_match == MatchTier.UNLIKELY
        assert verdict.gps_distance_meters is None
        assert verdict.date_match == DateMatch.NO_EXIF
        assert verdict.rationale == "Verified by: AI vision (unlikely). Outdoor market"

    def test_far_gps_overrides_vision(
        self, sample_payload, test_config, mock_vision_client, throttle, recorder,
        make_result, reference_point, point_north_of,
    ):
        """A fix 3 km away is unlikely even when vision says high."""
        far = point_north_of(reference_point, 3000)
        sample_payload["photoGps"] = {"latitude": far.latitude, "longitude": far.longitude}
        mock_vision_client.responses = {
            url: make_result(4, MatchTier.HIGH) for url in sample_payload["photoUrls"]
        }

        verdict = verify_class_log(
            _request(sample_payload), test_config,
            client=mock_vision_client, throttle=throttle, recorder=recorder,
        )
        assert verdict.final_match == MatchTier.UNLIKELY
        assert verdict.gps_distance_meters == 3000
        assert verdict.vision_match == MatchTier.HIGH

    def test_partial_failure_still_produces_verdict(
        self, sample_payload, test_config, mock_vision_client, throttle, recorder, make_result
    ):
        urls = sample_payload["photoUrls"]
        mock_vision_client.responses = {
            urls[0]: make_result(2, MatchTier.LIKELY),
            urls[1]: make_result(5, MatchTier.LIKELY),
            urls[2]: VisionServiceError("503"),
        }
        context = run(
            _request(sample_payload), test_config,
            client=mock_vision_client, throttle=throttle, recorder=recorder,
        )

        assert context.verdict.primary_photo_url == urls[1]
        assert context.verdict.photos_failed == 1
        assert context.photo_result.status == AgentStatus.PARTIAL
        assert any("failed" in w for w in context.warnings)

    def test_phase_log(self, sample_payload, test_config, mock_vision_client, throttle, recorder):
        context = run(
            _request(sample_payload), test_config,
            client=mock_vision_client, throttle=throttle, recorder=recorder,
        )
        assert [r.phase_name for r in context.phase_log] == ["Throttle", "PhotoAnalysisAgent", "Record"]
        assert all(r.status == AgentStatus.OK for r in context.phase_log)

    def test_rerun_overwrites(
        self, sample_payload, test_config, mock_vision_client, throttle, recorder, make_result
    ):
        """Re-verifying a class log replaces the stored verdict."""
        request = _request(sample_payload)
        mock_vision_client.responses = {sample_payload["photoUrls"][0]: make_result(9)}
        verify_class_log(request, test_config, mock_vision_client, throttle, recorder)
        mock_vision_client.responses = {}
        verify_class_log(request, test_config, mock_vision_client, throttle, recorder)

        assert recorder.load_verdict("log-123")["kidsCount"] == 0


class TestFailures:
    def test_rate_limited_before_any_analysis(
        self, sample_payload, test_config, mock_vision_client, throttle, recorder
    ):
        """Once the caller's window is exhausted no vision call is made."""
        test_config.analysis_rate_limit = RateLimitConfig(max_requests=1, window_seconds=3600)
        request = _request(sample_payload)

        verify_class_log(request, test_config, mock_vision_client, throttle, recorder)
        calls_after_first = mock_vision_client.analyze.call_count

        with pytest.raises(RateLimitedError) as exc_info:
            verify_class_log(request, test_config, mock_vision_client, throttle, recorder)

        assert mock_vision_client.analyze.call_count == calls_after_first
        assert exc_info.value.key == "ai-analysis:user-7"
        assert exc_info.value.to_dict()["kind"] == "rate_limited"

    def test_retry_after_follows_throttle_clock(
        self, sample_payload, test_config, mock_vision_client, throttle, recorder, fake_clock
    ):
        """The wait reported to the caller is measured on the throttle's clock."""
        test_config.analysis_rate_limit = RateLimitConfig(max_requests=1, window_seconds=3600)
        request = _request(sample_payload)
        verify_class_log(request, test_config, mock_vision_client, throttle, recorder)
        fake_clock.advance(1000)

        with pytest.raises(RateLimitedError) as exc_info:
            verify_class_log(request, test_config, mock_vision_client, throttle, recorder)

        assert exc_info.value.retry_after_seconds == 2600
        assert exc_info.value.to_dict()["retryAfterSeconds"] == 2600

    def test_window_reopens(
        self, sample_payload, test_config, mock_vision_client, throttle, recorder, fake_clock
    ):
        test_config.analysis_rate_limit = RateLimitConfig(max_requests=1, window_seconds=3600)
        request = _request(sample_payload)
        verify_class_log(request, test_config, mock_vision_client, throttle, recorder)
        fake_clock.advance(3600)
        assert verify_class_log(request, test_config, mock_vision_client, throttle, recorder)

    def test_all_failed_persists_nothing(
        self, sample_payload, test_config, mock_vision_client, throttle, recorder
    ):
        mock_vision_client.responses = {
            url: VisionServiceError("unreachable") for url in sample_payload["photoUrls"]
        }
        with pytest.raises(AllAnalysesFailedError) as exc_info:
            verify_class_log(_request(sample_payload), test_config, mock_vision_client, throttle, recorder)

        assert len(exc_info.value.failures) == 3
        assert recorder.load_verdict("log-123") is None

    def test_unconfigured_vision(
        self, sample_payload, test_config, mock_vision_client, throttle, recorder
    ):
        mock_vision_client.is_configured.return_value = False
        with pytest.raises(AnalysisUnavailableError):
            verify_class_log(_request(sample_payload), test_config, mock_vision_client, throttle, recorder)
        assert recorder.load_verdict("log-123") is None

    def test_no_photos(self, sample_payload, test_config, mock_vision_client, throttle, recorder):
        sample_payload["photoUrls"] = []
        with pytest.raises(NoPhotosError):
            verify_class_log(_request(sample_payload), test_config, mock_vision_client, throttle, recorder)

    def test_persistence_failure_returns_verdict(
        self, sample_payload, test_config, mock_vision_client, throttle, make_result
    ):
        """A failed write raises PersistenceError with the computed verdict attached."""
        broken = MagicMock(spec=VerdictRecorder)
        broken.persist_verdict.side_effect = OSError("read-only file system")
        mock_vision_client.responses = {sample_payload["photoUrls"][0]: make_result(4, MatchTier.HIGH)}

        with pytest.raises(PersistenceError) as exc_info:
            verify_class_log(_request(sample_payload), test_config, mock_vision_client, throttle, broken)

        err = exc_info.value
        assert err.class_log_id == "log-123"
        assert err.verdict.final_match == MatchTier.HIGH
        assert err.verdict.kids_count == 4
        assert isinstance(err.cause, OSError)


class TestClientLifecycle:
    def test_built_client_is_closed(
        self, sample_payload, test_config, mock_vision_client, throttle, recorder
    ):
        """A client the pipeline builds from config is closed after the run."""
        with patch.object(VisionClient, "from_config", return_value=mock_vision_client):
            verify_class_log(_request(sample_payload), test_config, throttle=throttle, recorder=recorder)
        mock_vision_client.close.assert_called_once_with()

    def test_built_client_is_closed_on_failure(
        self, sample_payload, test_config, mock_vision_client, throttle, recorder
    ):
        mock_vision_client.is_configured.return_value = False
        with patch.object(VisionClient, "from_config", return_value=mock_vision_client):
            with pytest.raises(AnalysisUnavailableError):
                verify_class_log(_request(sample_payload), test_config, throttle=throttle, recorder=recorder)
        mock_vision_client.close.assert_called_once_with()

    def test_caller_client_left_open(
        self, sample_payload, test_config, mock_vision_client, throttle, recorder
    ):
        """A client passed in by the caller stays the caller's to close."""
        verify_class_log(_request(sample_payload), test_config, mock_vision_client, throttle, recorder)
        mock_vision_client.close.assert_not_called()
