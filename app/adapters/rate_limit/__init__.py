"""Rate limiting adapters.

This package provides a small abstraction layer so the service can start
with an in-memory store and later migrate to Redis or another shared store
without changing the API layer.
"""

from app.adapters.rate_limit.base import (
    AbstractRateLimitStore,
    RateLimitConfig,
    RateLimitEntry,
    RateLimitStatus,
)
from app.adapters.rate_limit.in_memory import InMemoryRateLimitStore
from app.adapters.rate_limit.sweeper import RateLimitSweeper

__all__ = [
    "AbstractRateLimitStore",
    "InMemoryRateLimitStore",
    "RateLimitConfig",
    "RateLimitEntry",
    "RateLimitStatus",
    "RateLimitSweeper",
]
