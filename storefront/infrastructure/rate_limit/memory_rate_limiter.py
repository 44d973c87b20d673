import threading
import time
from collections import deque
from typing import Callable, Deque, Dict, Tuple

from ...application.ports.rate_limiter import RateLimiter

SWEEP_INTERVAL_SECONDS = 60.0


class InMemoryRateLimiter(RateLimiter):
    """Sliding-window limiter for a single process.

    Sync endpoints run in a threadpool, so every access holds the lock.
    Keys whose window has drained are dropped on a periodic sweep.
    """

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._hits: Dict[str, Tuple[int, Deque[float]]] = {}
        self._clock = clock
        self._lock = threading.Lock()
        self._last_sweep = clock()

    def allow(self, key: str, max_requests: int, window_seconds: int) -> bool:
        with self._lock:
            now = self._clock()
            if now - self._last_sweep >= SWEEP_INTERVAL_SECONDS:
                self._sweep(now)
            _, hits = self._hits.setdefault(key, (window_seconds, deque()))
            self._hits[key] = (window_seconds, hits)
            _drain(hits, now - window_seconds)
            if len(hits) >= max_requests:
                return False
            hits.append(now)
            return True

    def _sweep(self, now: float) -> None:
        for key, (window_seconds, hits) in list(self._hits.items()):
            _drain(hits, now - window_seconds)
            if not hits:
                del self._hits[key]
        self._last_sweep = now

    def reset(self, key: str) -> None:
        with self._lock:
            self._hits.pop(key, None)

    def tracked_keys(self) -> int:
        with self._lock:
            return len(self._hits)


def _drain(hits: Deque[float], window_start: float) -> None:
    while hits and hits[0] <= window_start:
        hits.popleft()
