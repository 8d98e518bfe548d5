"""
Per-sender fixed-window rate limiting.

State lives in process memory and is shared by every request handled by the
same worker.  All mutation happens on the event loop thread, so no locking is
needed.  Separate worker processes keep separate counters: the limit is per
process, not global.
"""

import logging
import time
from dataclasses import dataclass
from typing import Callable

logger = logging.getLogger(__name__)

DEFAULT_MAX_REQUESTS = 10
DEFAULT_WINDOW_MS = 60_000
DEFAULT_MAX_IDENTIFIERS = 1000


def _now_ms() -> float:
    return time.time() * 1000


@dataclass
class RateLimitRecord:
    count: int
    reset_time: float


class RateLimiter:
    """
    Fixed-window counter keyed by identifier (the sender address).

    Expired records are swept once more than max_identifiers are tracked,
    which keeps the map from growing without bound.
    """

    def __init__(
        self,
        clock: Callable[[], float] = _now_ms,
        max_identifiers: int = DEFAULT_MAX_IDENTIFIERS,
    ):
        self._clock = clock
        self._max_identifiers = max_identifiers
        self._records: dict[str, RateLimitRecord] = {}

    def __len__(self) -> int:
        return len(self._records)

    def check(
        self,
        identifier: str,
        max_requests: int = DEFAULT_MAX_REQUESTS,
        window_ms: int = DEFAULT_WINDOW_MS,
    ) -> bool:
        """Count one request for identifier; return False once over the limit."""
        now = self._clock()
        record = self._records.get(identifier)

        if record is None or now > record.reset_time:
            if record is None and len(self._records) >= self._max_identifiers:
                self.sweep(now)
            self._records[identifier] = RateLimitRecord(count=1, reset_time=now + window_ms)
            return True

        record.count += 1
        return record.count <= max_requests

    def sweep(self, now: float | None = None) -> int:
        """Drop records whose window has elapsed. Returns the number removed."""
        if now is None:
            now = self._clock()
        expired = [key for key, rec in self._records.items() if now > rec.reset_time]
        for key in expired:
            del self._records[key]
        if expired:
            logger.debug(f"Evicted {len(expired)} expired rate-limit records")
        return len(expired)

    def reset(self) -> None:
        self._records.clear()


# Process-wide limiter shared by all requests on this worker
default_limiter = RateLimiter()


def check_rate_limit(
    identifier: str,
    max_requests: int = DEFAULT_MAX_REQUESTS,
    window_ms: int = DEFAULT_WINDOW_MS,
) -> bool:
    return default_limiter.check(identifier, max_requests, window_ms)
