"""PhotoAnalysisAgent — concurrent vision analysis of every submitted photo.

Responsibilities:
- Refuse to start when there are no photos or the vision service is unconfigured
- Fan out one vision call per photo, one worker per photo
- Wait for every call to settle; a failed call never cancels its siblings
- Select the primary photo (most kids; ties go to the earliest input index)

Results are ordered by input index, so selection and failure reporting do not
depend on which call finished first.
"""

from __future__ import annotations

import logging
from concurrent.futures import Future, ThreadPoolExecutor, wait
from typing import Dict, List, Optional, Sequence

from classverify.agents.base import AgentStatus, BaseAgent
from classverify.clients.vision_client import VisionClient
from classverify.errors import (
    AllAnalysesFailedError,
    AnalysisUnavailableError,
    NoPhotosError,
    PhotoAnalysisFailure,
)
from classverify.models.pipeline import VerificationContext
from classverify.models.verification import AnalyzedPhoto, PhotoAnalysisAgentResult

logger = logging.getLogger(__name__)


def select_primary(analyzed: Sequence[AnalyzedPhoto]) -> AnalyzedPhoto:
    """Pick the photo with the strictly highest kids count.

    Ties keep the photo with the lowest input index.

    Raises:
        ValueError: If analyzed is empty.
    """
    if not analyzed:
        raise ValueError("select_primary() needs at least one analyzed photo")
    ordered = sorted(analyzed, key=lambda p: p.index)
    best = ordered[0]
    for photo in ordered[1:]:
        if photo.result.kids_count > best.result.kids_count:
            best = photo
    return best


class PhotoAnalysisAgent(BaseAgent):
    """Analyze all photos of a class log in parallel and pick the primary one.

    Args:
        client: Vision client shared by all worker threads.
    """

    name = "PhotoAnalysisAgent"
    version = "1.0.0"

    def __init__(self, client: VisionClient) -> None:
        self.client = client

    def run(self, context: VerificationContext) -> PhotoAnalysisAgentResult:
        request = context.request
        return self.analyze(
            request.photo_urls,
            request.context_label,
            timeout=context.config.analysis_timeout_seconds,
        )

    def analyze(
        self,
        photo_urls: Sequence[str],
        context_label: str,
        timeout: Optional[float] = None,
    ) -> PhotoAnalysisAgentResult:
        """Run one vision call per photo and fan the results back in.

        Args:
            photo_urls: Photo URLs in submission order.
            context_label: Orphanage name passed to every call.
            timeout: Seconds to wait for all calls; calls still running at the
                deadline are abandoned and recorded as failures.

        Returns:
            PhotoAnalysisAgentResult with the primary photo and every outcome.

        Raises:
            NoPhotosError: photo_urls is empty.
            AnalysisUnavailableError: The vision client is not configured.
            AllAnalysesFailedError: No photo could be analyzed.
        """
        if not photo_urls:
            raise NoPhotosError()
        if not self.client.is_configured():
            logger.error(
                "PhotoAnalysisAgent: vision backend %r is not configured — analysis unavailable",
                getattr(self.client, "backend", "?"),
            )
            raise AnalysisUnavailableError()

        logger.info("PhotoAnalysisAgent: analyzing %d photo(s)", len(photo_urls))

        executor = ThreadPoolExecutor(
            max_workers=len(photo_urls), thread_name_prefix="photo-analysis"
        )
        future_map: Dict[Future, int] = {}
        try:
            for index, url in enumerate(photo_urls):
                future_map[executor.submit(self.client.analyze, url, context_label)] = index
            done, _ = wait(future_map, timeout=timeout)
        finally:
            executor.shutdown(wait=False, cancel_futures=True)

        analyzed: List[AnalyzedPhoto] = []
        failures: List[PhotoAnalysisFailure] = []
        for future, index in sorted(future_map.items(), key=lambda item: item[1]):
            url = photo_urls[index]
            if future not in done:
                failures.append(
                    PhotoAnalysisFailure(url, index, TimeoutError(f"analysis exceeded {timeout}s"))
                )
                logger.warning("PhotoAnalysisAgent: photo %d timed out: %s", index, url)
                continue
            try:
                analyzed.append(AnalyzedPhoto(photo_url=url, result=future.result(), index=index))
            except Exception as exc:
                failures.append(PhotoAnalysisFailure(url, index, exc))
                logger.warning("PhotoAnalysisAgent: photo %d failed analysis: %s", index, exc)

        if not analyzed:
            logger.error(
                "PhotoAnalysisAgent: every photo failed analysis (%d failure(s))", len(failures)
            )
            raise AllAnalysesFailedError(failures)

        primary = select_primary(analyzed)
        warnings = [f"Photo {f.index} ({f.photo_url}) failed: {f.cause}" for f in failures]
        status = AgentStatus.PARTIAL if failures else AgentStatus.OK
        logger.info(
            "PhotoAnalysisAgent: %d/%d analyzed, primary=%s (kids=%d)",
            len(analyzed),
            len(photo_urls),
            primary.photo_url,
            primary.result.kids_count,
        )
        return PhotoAnalysisAgentResult(
            primary=primary,
            analyzed=analyzed,
            failures=failures,
            warnings=warnings,
            status=status,
        )
