"""Rate-limit bookkeeping shared by every concurrent fetch."""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable, Mapping

logger = logging.getLogger(__name__)


class RateLimitTracker:
    """Last known GitHub quota, updated after each response.

    A single instance is shared by all fetch workers. Once the quota is seen
    at zero, every worker observes it before issuing its next request.
    """

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._lock = threading.Lock()
        self._clock = clock
        self._remaining: int | None = None
        self._limit: int | None = None
        self._reset_at: int | None = None

    @property
    def remaining(self) -> int | None:
        with self._lock:
            return self._remaining

    @property
    def limit(self) -> int | None:
        with self._lock:
            return self._limit

    @property
    def reset_at(self) -> int | None:
        with self._lock:
            return self._reset_at

    def update(self, headers: Mapping[str, str]) -> None:
        remaining = _int_header(headers, "X-RateLimit-Remaining")
        limit = _int_header(headers, "X-RateLimit-Limit")
        reset = _int_header(headers, "X-RateLimit-Reset")
        with self._lock:
            if remaining is not None:
                # Concurrent responses may arrive out of order; keep the lowest
                # count seen within the same window.
                if (
                    self._remaining is None
                    or reset != self._reset_at
                    or remaining < self._remaining
                ):
                    self._remaining = remaining
            if limit is not None:
                self._limit = limit
            if reset is not None:
                self._reset_at = reset
        if remaining == 0:
            logger.warning("GitHub rate limit exhausted (resets at epoch=%s).", reset)

    def mark_exhausted(self, reset_at: int | None = None) -> None:
        with self._lock:
            self._remaining = 0
            if reset_at is not None:
                self._reset_at = reset_at

    def is_exhausted(self) -> bool:
        with self._lock:
            if self._remaining is None or self._remaining > 0:
                return False
            if self._reset_at is not None and self._clock() >= self._reset_at:
                # Window rolled over; the next response will report the new quota.
                self._remaining = None
                return False
            return True


def _int_header(headers: Mapping[str, str], name: str) -> int | None:
    value = headers.get(name)
    if value is None:
        value = headers.get(name.lower())
    if value is None:
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None
