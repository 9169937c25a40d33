"""In-memory sliding-window rate limiting for /api routes, keyed by client IP."""

import logging
import math
import threading
import time
from collections import deque

from fastapi import HTTPException, Request, status

from knowledgehub.core.config import get_settings

logger = logging.getLogger(__name__)

RATE_LIMIT_MESSAGE = "Too many requests from this IP, please try again later."


class RateLimiter:
    """Counts request timestamps per key inside a rolling window. State is per process."""

    def __init__(self) -> None:
        self._hits: dict[str, deque[float]] = {}
        self._lock = threading.Lock()
        self._last_sweep = 0.0

    def hit(self, key: str, limit: int, window_seconds: int, now: float | None = None) -> int | None:
        """
        Record one request for `key`.

        Returns None when the request is allowed, otherwise the number of seconds
        until the oldest request in the window expires.
        """
        now = time.monotonic() if now is None else now
        window_start = now - window_seconds
        with self._lock:
            if now - self._last_sweep >= window_seconds:
                self._sweep(window_start)
                self._last_sweep = now
            hits = self._hits.setdefault(key, deque())
            while hits and hits[0] <= window_start:
                hits.popleft()
            if len(hits) >= limit:
                return max(1, math.ceil(hits[0] + window_seconds - now))
            hits.append(now)
            return None

    def _sweep(self, window_start: float) -> None:
        # Caller holds the lock. Drops keys whose newest hit left the window.
        stale = [key for key, hits in self._hits.items() if not hits or hits[-1] <= window_start]
        for key in stale:
            del self._hits[key]

    def tracked_keys(self) -> int:
        with self._lock:
            return len(self._hits)

    def reset(self) -> None:
        with self._lock:
            self._hits.clear()
            self._last_sweep = 0.0


limiter = RateLimiter()


def rate_limit(request: Request) -> None:
    """Dependency: reject with 429 once a client exceeds RATE_LIMIT_MAX requests per window."""
    settings = get_settings()
    if not settings.RATE_LIMIT_ENABLED:
        return
    client_ip = request.client.host if request.client else "unknown"
    retry_after = limiter.hit(client_ip, settings.RATE_LIMIT_MAX, settings.RATE_LIMIT_WINDOW_SEC)
    if retry_after is None:
        return
    logger.warning("Rate limit exceeded", extra={"client_ip": client_ip, "path": request.url.path})
    raise HTTPException(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        detail=RATE_LIMIT_MESSAGE,
        headers={
            "Retry-After": str(retry_after),
            "RateLimit-Limit": str(settings.RATE_LIMIT_MAX),
            "RateLimit-Remaining": "0",
        },
    )
