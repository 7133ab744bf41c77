"""Background task that reclaims expired rate limit windows."""

from __future__ import annotations

import asyncio
import logging

from ai_proxy.adapters.rate_limit.base import AbstractRateLimiter

logger = logging.getLogger(__name__)


class ExpiredWindowSweeper:
    """Periodically calls ``limiter.sweep()`` on the running event loop.

    Owned by the application lifespan: ``start()`` at startup and
    ``await stop()`` at shutdown.
    """

    def __init__(self, limiter: AbstractRateLimiter, *, interval_seconds: float) -> None:
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be > 0")
        self._limiter = limiter
        self._interval_seconds = interval_seconds
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def sweep_once(self) -> int:
        removed = self._limiter.sweep()
        logger.debug("rate_limit.sweep", extra={"removed": removed})
        return removed

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self._interval_seconds)
            try:
                self.sweep_once()
            except Exception:
                logger.exception("rate_limit.sweep_failed")

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run(), name="rate-limit-sweeper")
        logger.info(
            "rate_limit.sweeper_started",
            extra={"interval_s": self._interval_seconds},
        )

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.info("rate_limit.sweeper_stopped")
