"""Background sweep of expired rate limit entries.

The sweeper is owned by the host process: the app lifespan starts it and
stops it on shutdown, so no timer outlives the store it cleans.
"""

from __future__ import annotations

import logging
import threading

from app.adapters.rate_limit.base import AbstractRateLimitStore

logger = logging.getLogger(__name__)


class RateLimitSweeper:
    """Periodically removes expired entries from a rate limit store."""

    def __init__(self, store: AbstractRateLimitStore, *, interval_seconds: float = 60.0) -> None:
        self._store = store
        self._interval_s = max(0.1, float(interval_seconds))

        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def interval_seconds(self) -> float:
        return self._interval_s

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.is_running:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="rate-limit-sweeper", daemon=True)
        self._thread.start()
        logger.info("rate_limit.sweeper_started", extra={"interval_s": self._interval_s})

    def stop(self, timeout: float = 5.0) -> None:
        self._stop.set()
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=timeout)
        self._thread = None
        logger.info("rate_limit.sweeper_stopped")

    def run_once(self) -> int:
        """Run a single sweep cycle.

        Returns:
            Number of expired entries removed.
        """
        return self._store.sweep()

    def _run(self) -> None:
        # Event.wait returns True once stop() is called
        while not self._stop.wait(self._interval_s):
            try:
                self.run_once()
            except Exception:
                logger.exception("rate_limit.sweep_failed")
