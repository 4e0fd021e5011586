"""
Fixed-window rate limiting per client.

Each client gets ``limit`` requests per window. The window starts with the
first request and resets atomically once its reset time is reached.
"""

import math
import threading
import time
from dataclasses import dataclass
from typing import Mapping

from .cache import Clock

UNKNOWN_CLIENT = "unknown"


@dataclass
class RateEntry:
    """Request count for the current window of one client."""

    count: int
    reset_at: float


@dataclass(frozen=True)
class RateLimitInfo:
    """Outcome of a rate limit check."""

    allowed: bool
    limit: int
    remaining: int
    reset_at: float
    now: float = 0.0

    @property
    def retry_after(self) -> int:
        """Whole seconds until the window resets."""
        return max(math.ceil(self.reset_at - self.now), 0)


class RateLimiter:
    """Thread-safe fixed-window limiter keyed by client identifier."""

    def __init__(self, clock: Clock = time.time) -> None:
        self._clock = clock
        self._entries: dict[str, RateEntry] = {}
        self._lock = threading.Lock()

    def check(self, client_id: str, limit: int, window: float) -> RateLimitInfo:
        """
        Count one request for ``client_id``.

        Denied requests are not counted, so the stored count never goes
        past ``limit``.
        """
        with self._lock:
            now = self._clock()
            entry = self._entries.get(client_id)

            if entry is None or now >= entry.reset_at:
                entry = RateEntry(count=1, reset_at=now + window)
                self._entries[client_id] = entry
            elif entry.count >= limit:
                return RateLimitInfo(
                    allowed=False, limit=limit, remaining=0, reset_at=entry.reset_at, now=now
                )
            else:
                entry.count += 1

            return RateLimitInfo(
                allowed=True,
                limit=limit,
                remaining=max(limit - entry.count, 0),
                reset_at=entry.reset_at,
                now=now,
            )

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()


def client_id_from_headers(headers: Mapping[str, str] | None) -> str:
    """
    Identify the caller from request headers.

    Uses the first X-Forwarded-For hop, then X-Real-IP. Callers that cannot
    be identified share the "unknown" bucket.
    """
    if not headers:
        return UNKNOWN_CLIENT

    lowered = {k.lower(): v for k, v in headers.items()}

    forwarded = lowered.get("x-forwarded-for", "")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first

    return lowered.get("x-real-ip", "").strip() or UNKNOWN_CLIENT


def rate_limit_headers(info: RateLimitInfo) -> dict[str, str]:
    """Standard X-RateLimit-* response headers."""
    return {
        "X-RateLimit-Limit": str(info.limit),
        "X-RateLimit-Remaining": str(info.remaining),
        "X-RateLimit-Reset": str(math.ceil(info.reset_at)),
    }
