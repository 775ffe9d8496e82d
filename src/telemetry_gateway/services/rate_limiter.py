"""
Fixed-window rate limiting for inbound requests.

Two independent limiters are used per application:
- general: every request, 1000 requests per 15 minutes per caller
- ingest: telemetry ingestion only, 300 requests per minute per caller

Counters live in process memory and are not shared between replicas, so
each instance enforces its own budget.
"""
import logging
import math
import time
from threading import Lock
from typing import Callable, Dict, Optional, Tuple

logger = logging.getLogger(__name__)


class RateLimitDecision:
    """Outcome of a single admission check"""

    def __init__(self, allowed: bool, limit: int, remaining: int, reset_after: float):
        self.allowed = allowed
        self.limit = limit
        self.remaining = remaining
        self.reset_after = reset_after

    @property
    def retry_after(self) -> int:
        """Whole seconds until the window rolls over"""
        return max(1, math.ceil(self.reset_after))


class FixedWindowRateLimiter:
    """
    Counts admissions per caller key within a fixed window.

    A caller's window opens with its first request and lasts
    window_seconds; once more than max_requests have been counted the
    caller is rejected until the window ends and the count resets.
    Rejected requests are counted too.
    """

    def __init__(self,
                 name: str,
                 window_seconds: float,
                 max_requests: int,
                 clock: Optional[Callable[[], float]] = None,
                 enabled: bool = True):
        self.name = name
        self.window_seconds = window_seconds
        self.max_requests = max_requests
        self.enabled = enabled
        self._clock = clock or time.monotonic
        self._lock = Lock()
        # key -> (count, window_end)
        self._counters: Dict[str, Tuple[int, float]] = {}
        self._next_cleanup = self._clock() + window_seconds

    def admit(self, caller_key: str) -> RateLimitDecision:
        """
        Count one request for caller_key and decide whether to admit it

        Args:
            caller_key: Caller identity, usually the client address

        Returns:
            RateLimitDecision
        """
        if not self.enabled:
            return RateLimitDecision(True, self.max_requests, self.max_requests, 0)

        now = self._clock()
        with self._lock:
            if now >= self._next_cleanup:
                self._cleanup(now)

            count, window_end = self._counters.get(caller_key, (0, 0.0))
            if now >= window_end:
                count, window_end = 0, now + self.window_seconds

            count += 1
            self._counters[caller_key] = (count, window_end)

        allowed = count <= self.max_requests
        if not allowed:
            logger.warning(f"Rate limit '{self.name}' exceeded for {caller_key}: {count}/{self.max_requests}")

        return RateLimitDecision(
            allowed=allowed,
            limit=self.max_requests,
            remaining=max(0, self.max_requests - count),
            reset_after=window_end - now
        )

    def reset(self, caller_key: Optional[str] = None):
        """Forget the counter of one caller, or of all callers"""
        with self._lock:
            if caller_key is None:
                self._counters.clear()
            else:
                self._counters.pop(caller_key, None)

    def _cleanup(self, now: float):
        """Drop counters whose window has ended; caller holds the lock"""
        expired = [key for key, (_, window_end) in self._counters.items() if window_end <= now]
        for key in expired:
            del self._counters[key]
        if expired:
            logger.debug(f"Rate limit '{self.name}' cleanup removed {len(expired)} entries")
        self._next_cleanup = now + self.window_seconds
