"""In-memory fixed-window rate limit store.

Notes:
- Per-process only: running multiple workers multiplies the effective limit.
- Thread-safe: uses a lock around shared state.
"""

from __future__ import annotations

import hashlib
import logging
import math
import threading
import time
from typing import Callable, Iterator

from app.adapters.rate_limit.base import (
    AbstractRateLimitStore,
    RateLimitConfig,
    RateLimitEntry,
    RateLimitStatus,
)

logger = logging.getLogger(__name__)


def _now_ms() -> int:
    return time.time_ns() // 1_000_000


def hash_identifier(identifier: str) -> str:
    """Hash a rate limit identifier for logging without exposing it."""
    return hashlib.sha256(identifier.encode()).hexdigest()[:16]


class InMemoryRateLimitStore(AbstractRateLimitStore):
    """Rate limit store counting admissions per identifier in fixed windows.

    A window starts on the first admitted call for an identifier and lasts
    ``window_ms``. Expired entries behave as absent until the next call
    replaces them or a sweep removes them.

    Important:
        This store is per-process only. If the API runs with multiple workers
        (e.g., multiple Uvicorn/Gunicorn workers), each worker will enforce its
        own independent limits.
    """

    def __init__(self, *, clock: Callable[[], float] = _now_ms) -> None:
        """Initialize an empty store.

        Args:
            clock: Time source returning UNIX time in milliseconds.
        """
        self._clock = clock
        self._lock = threading.RLock()
        self._entries: dict[str, RateLimitEntry] = {}

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, identifier: object) -> bool:
        with self._lock:
            return identifier in self._entries

    def identifiers(self) -> Iterator[str]:
        """Iterate over a snapshot of stored identifiers, expired ones included."""
        with self._lock:
            snapshot = list(self._entries)
        return iter(snapshot)

    def _get_live_entry(self, identifier: str, now: float) -> RateLimitEntry | None:
        entry = self._entries.get(identifier)
        if entry is None or entry.is_expired(now):
            return None
        return entry

    def check_limit(self, identifier: str, config: RateLimitConfig) -> bool:
        """Admit or reject one operation for identifier.

        Args:
            identifier: Unique key for rate limiting (e.g., "global:ip:1.2.3.4").
            config: Window length and ceiling of the calling site.

        Returns:
            True when admitted, False when the live window is exhausted.

        Raises:
            ValueError: If identifier is empty.
        """
        if not identifier:
            raise ValueError("identifier must be a non-empty string")

        with self._lock:
            now = self._clock()
            entry = self._get_live_entry(identifier, now)

            if entry is None:
                self._entries[identifier] = RateLimitEntry(
                    identifier=identifier,
                    count=1,
                    reset_at=math.ceil(now + config.window_ms),
                    limit=config.max_requests,
                )
                logger.debug(
                    "rate_limit.window_started",
                    extra={
                        "key_hash": hash_identifier(identifier),
                        "window_ms": config.window_ms,
                        "limit": config.max_requests,
                    },
                )
                return True

            if entry.count < config.max_requests:
                entry.count += 1
                return True

            logger.debug(
                "rate_limit.rejected",
                extra={
                    "key_hash": hash_identifier(identifier),
                    "count": entry.count,
                    "limit": config.max_requests,
                },
            )
            return False

    def get_status(self, identifier: str) -> RateLimitStatus | None:
        with self._lock:
            entry = self._get_live_entry(identifier, self._clock())
            if entry is None:
                return None
            return RateLimitStatus(
                remaining=max(0, entry.limit - entry.count),
                reset_at=entry.reset_at,
                total=entry.limit,
            )

    def sweep(self) -> int:
        with self._lock:
            now = self._clock()
            expired = [key for key, entry in self._entries.items() if entry.is_expired(now)]
            for key in expired:
                del self._entries[key]
            remaining = len(self._entries)

        logger.debug(
            "rate_limit.sweep",
            extra={"removed": len(expired), "entries": remaining},
        )
        return len(expired)

    def dispose(self) -> None:
        with self._lock:
            self._entries.clear()
