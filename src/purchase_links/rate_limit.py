"""In-memory sliding-window rate limiting for link validation.

Limits are per client key (normally the client IP). Single-process only; a
multi-instance deployment needs a shared backend.
"""

import math
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import List, Mapping, Optional


@dataclass(frozen=True)
class RateLimitResult:
    allowed: bool
    remaining: int
    reset_at: float
    limit: int

    def headers(self, now: Optional[float] = None) -> dict:
        """Standard X-RateLimit-* headers (plus Retry-After when refused)."""
        headers = {
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": str(self.remaining),
            "X-RateLimit-Reset": str(int(self.reset_at)),
        }
        if not self.allowed:
            now = time.time() if now is None else now
            headers["Retry-After"] = str(max(1, math.ceil(self.reset_at - now)))
        return headers


class RateLimiter:
    """Sliding-window limiter keyed by client, with LRU eviction of idle clients."""

    def __init__(self, max_requests: int = 10, window_seconds: float = 60, max_clients: int = 10000):
        if max_requests <= 0 or window_seconds <= 0 or max_clients <= 0:
            raise ValueError("rate limit settings must be positive")
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.max_clients = max_clients
        self._requests: "OrderedDict[str, List[float]]" = OrderedDict()
        self._lock = threading.Lock()

    def _recent(self, key: str, now: float) -> List[float]:
        window_start = now - self.window_seconds
        return [t for t in self._requests.get(key, []) if t > window_start]

    def _result(self, allowed: bool, recent: List[float], now: float) -> RateLimitResult:
        return RateLimitResult(
            allowed=allowed,
            remaining=max(0, self.max_requests - len(recent)),
            reset_at=(recent[0] if recent else now) + self.window_seconds,
            limit=self.max_requests,
        )

    def check(self, key: str, now: Optional[float] = None) -> RateLimitResult:
        """Record a request for ``key`` if it is within the limit.

        Args:
            key: Client key (e.g. IP address).
            now: Current time in seconds. Defaults to the wall clock.

        Returns:
            Whether the request is allowed and the remaining quota.
        """
        now = time.time() if now is None else now
        with self._lock:
            recent = self._recent(key, now)
            allowed = len(recent) < self.max_requests
            if allowed:
                recent.append(now)

            self._requests[key] = recent
            self._requests.move_to_end(key)
            while len(self._requests) > self.max_clients:
                self._requests.popitem(last=False)

            return self._result(allowed, recent, now)

    def status(self, key: str, now: Optional[float] = None) -> RateLimitResult:
        """Current quota for ``key`` without recording a request."""
        now = time.time() if now is None else now
        with self._lock:
            recent = self._recent(key, now)
            return self._result(len(recent) < self.max_requests, recent, now)

    def reset(self, key: str) -> None:
        with self._lock:
            self._requests.pop(key, None)


def client_ip(headers: Mapping[str, str], fallback: str = "127.0.0.1") -> str:
    """Best-effort client IP from proxy headers.

    Args:
        headers: Request headers (case-insensitive mapping).
        fallback: Address to use when no proxy header is present.
    """
    forwarded_for = headers.get("x-forwarded-for")
    if forwarded_for:
        first = forwarded_for.split(",")[0].strip()
        if first:
            return first

    real_ip = headers.get("x-real-ip")
    if real_ip:
        return real_ip.strip()

    return fallback
