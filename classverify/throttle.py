"""Fixed-window request throttle for classverify.

One process-local, thread-safe counter map keyed by an opaque caller key
(e.g. ``"ai-analysis:<user id>"``). Each call site supplies its own limit,
usually one of the RATE_LIMITS presets.

A single lock guards the whole read-modify-write, so two concurrent callers
can never both take the last slot of a window.
"""

from __future__ import annotations

import logging
import math
import threading
import time
from datetime import datetime, timezone
from typing import Callable, Dict, Optional

from config.defaults import RATE_LIMIT_CLEANUP_INTERVAL
from config.settings import RateLimitConfig
from classverify.models.verification import RateLimitResult, RateLimitWindow

logger = logging.getLogger(__name__)


def _to_datetime(epoch_seconds: float) -> datetime:
    return datetime.fromtimestamp(epoch_seconds, tz=timezone.utc)


class RequestThrottle:
    """Fixed-window rate limiter.

    Args:
        clock: Returns the current time in epoch seconds (injectable for tests).
        cleanup_interval: Minimum seconds between sweeps of expired windows.
    """

    def __init__(
        self,
        clock: Callable[[], float] = time.time,
        cleanup_interval: float = RATE_LIMIT_CLEANUP_INTERVAL,
    ) -> None:
        self._clock = clock
        self._cleanup_interval = cleanup_interval
        self._lock = threading.Lock()
        self._windows: Dict[str, RateLimitWindow] = {}
        self._last_cleanup = clock()

    def _sweep_expired(self, now: float) -> None:
        """Drop expired windows. Caller must hold the lock."""
        if now - self._last_cleanup < self._cleanup_interval:
            return
        self._last_cleanup = now
        expired = [key for key, w in self._windows.items() if now >= w.window_reset_at]
        for key in expired:
            del self._windows[key]
        if expired:
            logger.debug("RequestThrottle: swept %d expired window(s)", len(expired))

    def admit(self, key: str, max_requests: int, window_seconds: float) -> RateLimitResult:
        """Count one request against key's current window.

        Args:
            key: Caller identity.
            max_requests: Requests allowed per window.
            window_seconds: Window length in seconds.

        Returns:
            RateLimitResult; ``allowed`` is False once the window is exhausted.
        """
        with self._lock:
            now = self._clock()
            self._sweep_expired(now)

            window = self._windows.get(key)
            if window is None or now >= window.window_reset_at:
                window = RateLimitWindow(key=key, count=1, window_reset_at=now + window_seconds)
                self._windows[key] = window
                return RateLimitResult(
                    allowed=True,
                    remaining=max_requests - 1,
                    reset_at=_to_datetime(window.window_reset_at),
                )

            window.count += 1
            reset_at = _to_datetime(window.window_reset_at)
            if window.count > max_requests:
                retry_after = max(0, math.ceil(window.window_reset_at - now))
                logger.warning(
                    "RequestThrottle: %s exceeded %d requests per %.0fs (retry in %ds)",
                    key,
                    max_requests,
                    window_seconds,
                    retry_after,
                )
                return RateLimitResult(
                    allowed=False,
                    remaining=0,
                    reset_at=reset_at,
                    retry_after_seconds=retry_after,
                )

            return RateLimitResult(
                allowed=True,
                remaining=max_requests - window.count,
                reset_at=reset_at,
            )

    def admit_with(self, key: str, config: RateLimitConfig) -> RateLimitResult:
        """Admit using a RateLimitConfig preset."""
        return self.admit(key, config.max_requests, config.window_seconds)

    def window_for(self, key: str) -> Optional[RateLimitWindow]:
        """Return a copy of key's current window state, if any."""
        with self._lock:
            window = self._windows.get(key)
            if window is None:
                return None
            return RateLimitWindow(window.key, window.count, window.window_reset_at)

    def reset(self) -> None:
        """Forget every window."""
        with self._lock:
            self._windows.clear()


_default_throttle = RequestThrottle()


def get_default_throttle() -> RequestThrottle:
    """Process-wide throttle shared by every pipeline invocation."""
    return _default_throttle
