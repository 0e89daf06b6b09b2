"""In-memory sliding-window limiter for login attempts.

Counters live in the process, so each worker limits independently.
"""
import logging
import time
from collections import defaultdict, deque
from threading import Lock
from typing import Deque, Dict, Tuple

logger = logging.getLogger(__name__)


class RateLimiter:
    def __init__(self, max_requests: int = 10, window_seconds: int = 300):
        """
        Args:
            max_requests: attempts allowed per key inside one window
            window_seconds: length of the sliding window
        """
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._hits: Dict[str, Deque[float]] = defaultdict(deque)
        self._lock = Lock()

    def _prune(self, key: str, now: float) -> Deque[float]:
        hits = self._hits[key]
        cutoff = now - self.window_seconds
        while hits and hits[0] <= cutoff:
            hits.popleft()
        return hits

    def hit(self, key: str) -> Tuple[bool, int]:
        """Count one attempt for ``key`` if it is still under the limit.

        Returns:
            Tuple of (allowed, retry_after_seconds). Refused attempts are
            not counted.
        """
        now = time.time()
        with self._lock:
            hits = self._prune(key, now)
            if len(hits) >= self.max_requests:
                retry_after = max(1, int(hits[0] + self.window_seconds - now) + 1)
                logger.warning(
                    f"Rate limit exceeded for {key}: {len(hits)} attempts in window",
                    extra={"rejection_reason": "RATE_LIMITED"},
                )
                return False, retry_after
            hits.append(now)
            return True, 0

    def remaining(self, key: str) -> int:
        with self._lock:
            return max(0, self.max_requests - len(self._prune(key, time.time())))

    def reset(self) -> None:
        with self._lock:
            self._hits.clear()
