"""
In-process sliding-window rate limiting for the external API
"""
import time
from collections import defaultdict, deque
from threading import Lock


class SlidingWindowRateLimiter:
    """
    Counts requests per key over the last ``window_seconds``.

    State is per process, so limits are approximate when several workers
    serve the API.
    """

    def __init__(self, window_seconds: int = 3600, clock=time.monotonic):
        self.window_seconds = window_seconds
        self._clock = clock
        self._hits = defaultdict(deque)
        self._lock = Lock()

    def _evict(self, hits, now):
        window_start = now - self.window_seconds
        while hits and hits[0] <= window_start:
            hits.popleft()

    def is_allowed(self, key: str, limit: int) -> bool:
        """Record a request for key and report whether it fits under limit"""
        with self._lock:
            now = self._clock()
            hits = self._hits[key]
            self._evict(hits, now)
            if len(hits) >= limit:
                return False
            hits.append(now)
            return True

    def get_remaining(self, key: str, limit: int) -> int:
        with self._lock:
            hits = self._hits.get(key)
            if not hits:
                return limit
            self._evict(hits, self._clock())
            return max(0, limit - len(hits))

    def reset(self, key: str = None):
        with self._lock:
            if key is None:
                self._hits.clear()
            else:
                self._hits.pop(key, None)
