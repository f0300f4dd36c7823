"""
In-memory error tracking reported by the health endpoint
"""
import time
from collections import Counter, deque
from threading import RLock
from typing import Dict, List, Optional

ERROR_TYPES = ('provider', 'storage', 'auth', 'api', 'other')


class ErrorTracker:
    """Counts failures by type and keeps a short window of recent ones"""

    def __init__(self, history_size: int = 100, clock=time.time):
        self._recent = deque(maxlen=history_size)
        self._counts = Counter()
        self._last_seen: Dict[str, float] = {}
        self._clock = clock
        self._lock = RLock()

    def track_error(self, error_type: str, message: str, user_id: Optional[str] = None,
                    details: Optional[Dict] = None):
        """
        Record one failure.

        Args:
            error_type: provider, storage, auth or api; anything else counts as other
            message: Error message (never the provider's raw payload)
            user_id: Owner of the failing request, when known
            details: Extra context such as the endpoint path
        """
        if error_type not in ERROR_TYPES:
            error_type = 'other'

        with self._lock:
            now = self._clock()
            self._recent.append({
                'timestamp': now,
                'type': error_type,
                'message': message,
                'user_id': user_id,
                'details': details or {}
            })
            self._counts[error_type] += 1
            self._last_seen[error_type] = now

    def get_recent_errors(self, limit: int = 20, error_type: Optional[str] = None) -> List[Dict]:
        with self._lock:
            errors = [e for e in self._recent if error_type is None or e['type'] == error_type]
            return [dict(e) for e in errors[-limit:]]

    def get_error_counts(self) -> Dict[str, int]:
        with self._lock:
            return {error_type: self._counts[error_type] for error_type in ERROR_TYPES}

    def get_error_stats(self, window_seconds: int = 300) -> Dict:
        """Totals per type plus how many landed in the last window"""
        with self._lock:
            cutoff = self._clock() - window_seconds
            return {
                'total_errors': sum(self._counts.values()),
                'error_counts': self.get_error_counts(),
                'recent_errors': sum(1 for e in self._recent if e['timestamp'] > cutoff),
                'window_seconds': window_seconds,
                'last_seen': dict(self._last_seen)
            }

    def reset(self):
        with self._lock:
            self._recent.clear()
            self._counts.clear()
            self._last_seen.clear()


# Process-wide instance
error_tracker = ErrorTracker()
