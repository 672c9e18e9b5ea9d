"""classverify pipeline orchestrator.

Runs one class-log verification end to end:

  Phase 1 — Throttle         admit or deny the caller (RateLimitedError)
  Phase 2 — PhotoAnalysis    concurrent vision calls, primary photo selection
  Phase 3 — Geofence         device GPS vs orphanage location (pure)
  Phase 4 — Temporal         EXIF capture time vs declared date/time (pure)
  Phase 5 — Consensus        final tier + rationale
  Phase 6 — Record           persist the verdict (PersistenceError keeps the verdict)

Each invocation is atomic: it persists one complete verdict or nothing.

Usage:
    from config.settings import VerificationConfig
    from classverify.models.pipeline import VerificationRequest
    from classverify.pipeline import verify_class_log

    request = VerificationRequest.from_dict(payload)
    verdict = verify_class_log(request, VerificationConfig())
"""

from __future__ import annotations

from typing import Optional

from config.settings import VerificationConfig
from classverify.agents.base import AgentStatus
from classverify.agents.photo_analysis_agent import PhotoAnalysisAgent
from classverify.analysis.consensus import aggregate
from classverify.analysis.geofence import evaluate
from classverify.analysis.temporal import reconcile
from classverify.clients.vision_client import VisionClient
from classverify.errors import PersistenceError, RateLimitedError
from classverify.io.persistence import JsonVerdictRecorder, VerdictRecorder
from classverify.models.pipeline import VerificationContext, VerificationRequest
from classverify.models.verification import VerificationVerdict
from classverify.throttle import RequestThrottle, get_default_throttle
from classverify.utils.logging_utils import VerificationLogAdapter, verification_logger


def run(
    request: VerificationRequest,
    config: Optional[VerificationConfig] = None,
    client: Optional[VisionClient] = None,
    throttle: Optional[RequestThrottle] = None,
    recorder: Optional[VerdictRecorder] = None,
) -> VerificationContext:
    """Execute the full verification pipeline for one class log.

    Args:
        request: Already-authorized verification request.
        config: Runtime configuration (defaults read from the environment).
        client: Vision client; built from config when omitted.
        throttle: Rate limiter; the process-wide throttle when omitted.
        recorder: Verdict sink; a JsonVerdictRecorder under
            config.verdict_store_root when omitted.

    Returns:
        VerificationContext with every phase result and the phase log.

    Raises:
        RateLimitedError: The caller's window is exhausted; nothing ran.
        PreconditionError: No photos, or the vision service is unconfigured.
        AllAnalysesFailedError: Every photo failed analysis; nothing persisted.
        PersistenceError: The verdict was computed but could not be written;
            the verdict is attached to the exception.
    """
    config = config or VerificationConfig()
    owns_client = client is None
    client = client or VisionClient.from_config(config)
    throttle = throttle or get_default_throttle()
    recorder = recorder or JsonVerdictRecorder(config.verdict_store_root)

    log = verification_logger(__name__, request.class_log_id, request.rate_limit_key)
    context = VerificationContext(config=config, request=request)
    try:
        _run_phases(context, client, throttle, recorder, log)
    finally:
        if owns_client:
            client.close()
    return context


def _run_phases(
    context: VerificationContext,
    client: VisionClient,
    throttle: RequestThrottle,
    recorder: VerdictRecorder,
    log: VerificationLogAdapter,
) -> None:
    config = context.config
    request = context.request

    # ── Phase 1: throttle ─────────────────────────────────────────────────────
    record = context.log_phase_start("Throttle")
    admission = throttle.admit_with(request.rate_limit_key, config.analysis_rate_limit)
    if not admission.allowed:
        context.log_phase_end(record, status=AgentStatus.DENIED)
        log.for_phase("Throttle").warning(
            "Rate limit exceeded for %s, retry in %ds", request.rate_limit_key,
            admission.retry_after_seconds,
        )
        raise RateLimitedError(
            request.rate_limit_key,
            admission.reset_at,
            retry_after_seconds=admission.retry_after_seconds,
        )
    context.log_phase_end(record)

    # ── Phase 2: photo analysis ───────────────────────────────────────────────
    record = context.log_phase_start("PhotoAnalysisAgent")
    phase_log = log.for_phase("PhotoAnalysisAgent")
    try:
        context.photo_result = PhotoAnalysisAgent(client).run(context)
    except Exception as exc:
        context.log_phase_end(record, status=AgentStatus.FAILED)
        phase_log.error("Photo analysis failed: %s", exc)
        raise
    context.log_phase_end(record, status=context.photo_result.status)
    phase_log.info("Pipeline: PhotoAnalysisAgent complete (%.1fs, status=%s)",
                   record.elapsed_seconds, record.status)
    for warning in context.photo_result.warnings:
        context.add_warning(f"[PhotoAnalysisAgent] {warning}")

    # ── Phases 3-4: geofence and temporal (pure, never suspend) ───────────────
    context.geofence_result = evaluate(
        request.photo_gps,
        request.reference_location,
        thresholds=config.geofence_thresholds,
        radius_m=config.earth_radius_m,
    )
    if context.geofence_result is None:
        log.info("No GPS comparison possible, falling back to vision tier")
    else:
        log.info("GPS fix %dm from orphanage (%s)",
                 context.geofence_result.distance_meters, context.geofence_result.tier)

    context.date_validation = reconcile(
        request.exif_date_taken,
        request.declared_date,
        request.declared_time,
        date_tolerance_days=config.date_tolerance_days,
        time_tolerance_hours=config.time_tolerance_hours,
    )

    # ── Phase 5: consensus ────────────────────────────────────────────────────
    photo_result = context.photo_result
    context.verdict = aggregate(
        context.geofence_result,
        photo_result.primary,
        context.date_validation,
        class_log_id=request.class_log_id,
        photo_gps=request.photo_gps,
        exif_date_taken=request.exif_date_taken,
        photos_analyzed=len(photo_result.analyzed),
        photos_failed=len(photo_result.failures),
    )
    log.info("Verdict: location=%s date=%s kids=%d",
             context.verdict.final_match, context.verdict.date_match, context.verdict.kids_count)

    # ── Phase 6: record ───────────────────────────────────────────────────────
    record = context.log_phase_start("Record")
    phase_log = log.for_phase("Record")
    try:
        recorder.persist_verdict(request.class_log_id, context.verdict)
    except Exception as exc:
        context.log_phase_end(record, status=AgentStatus.FAILED)
        phase_log.error("Failed to persist verdict: %s", exc)
        raise PersistenceError(request.class_log_id, context.verdict, exc) from exc
    context.log_phase_end(record)
    phase_log.info("Pipeline: Record complete (%.1fs)", record.elapsed_seconds)


def verify_class_log(
    request: VerificationRequest,
    config: Optional[VerificationConfig] = None,
    client: Optional[VisionClient] = None,
    throttle: Optional[RequestThrottle] = None,
    recorder: Optional[VerdictRecorder] = None,
) -> VerificationVerdict:
    """Verify one class log and return its verdict. See run() for errors."""
    return run(request, config, client, throttle, recorder).verdict
