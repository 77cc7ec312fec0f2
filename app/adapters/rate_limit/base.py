"""Rate limiter interfaces.

The HTTP layer should depend on this abstraction (not the concrete store)
so we can swap storage backends later (e.g., Redis) without touching the
call sites.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class RateLimitConfig:
    """Per-call-site window configuration.

    Attributes:
        window_ms: Window length in milliseconds.
        max_requests: Maximum admitted operations per window.

    Raises:
        ValueError: If window_ms or max_requests are invalid.
    """

    window_ms: int
    max_requests: int

    def __post_init__(self) -> None:
        if self.window_ms < 1:
            raise ValueError("window_ms must be >= 1")
        if self.max_requests < 1:
            raise ValueError("max_requests must be >= 1")


@dataclass
class RateLimitEntry:
    """Counter for a single identifier's current window.

    Attributes:
        identifier: Caller-chosen rate limit key.
        count: Admitted operations in the current window.
        reset_at: Epoch milliseconds at which the window ends.
        limit: Ceiling of the window that created this entry.
    """

    identifier: str
    count: int
    reset_at: int
    limit: int

    def is_expired(self, now_ms: float) -> bool:
        return self.reset_at < now_ms


@dataclass(frozen=True)
class RateLimitStatus:
    """Snapshot of an identifier's live window.

    Attributes:
        remaining: Admissions left in the current window (never negative).
        reset_at: Epoch milliseconds when the window ends.
        total: Ceiling of the current window.
    """

    remaining: int
    reset_at: int
    total: int


class AbstractRateLimitStore(ABC):
    """Interface for rate limit stores."""

    @abstractmethod
    def check_limit(self, identifier: str, config: RateLimitConfig) -> bool:
        """Decide whether identifier may proceed and record the admission.

        Args:
            identifier: Rate limit key (e.g., "global:ip:10.0.0.1").
            config: Window configuration of the calling site.

        Returns:
            True when admitted, False when the window is exhausted.
        """
        raise NotImplementedError

    @abstractmethod
    def get_status(self, identifier: str) -> RateLimitStatus | None:
        """Return the live window status for identifier, or None."""
        raise NotImplementedError

    @abstractmethod
    def sweep(self) -> int:
        """Remove expired entries and return how many were removed."""
        raise NotImplementedError

    @abstractmethod
    def dispose(self) -> None:
        """Release all state held by the store."""
        raise NotImplementedError
