"""
Retry component - Timer-driven replay of the offline queue.

One recurring task drains the queue through the dispatcher. It runs after an
initial delay, then on a fixed interval, backing off exponentially while the
collector keeps failing.

Invariants:
- At most one drain pass is in flight; an overlapping request is skipped
- Delivered and rejected entries are removed; transient failures are bumped
- No passes run while offline
- Errors inside the loop are logged, never propagated
"""

from __future__ import annotations

import asyncio
import logging

from .models import DrainResult, RetryConfig
from .ports import DeliveryPort, ReplayQueuePort

logger = logging.getLogger(__name__)

DEFAULT_CONFIG = RetryConfig()


def calculate_backoff(consecutive_failures: int, config: RetryConfig = DEFAULT_CONFIG) -> float:
    """
    Delay before the next pass.

    The regular interval when the last pass was clean, otherwise
    min(base * 2**failures, max).
    """
    if consecutive_failures <= 0:
        return config.interval_seconds
    exponent = min(consecutive_failures, 32)
    return min(config.backoff_base_seconds * (2**exponent), config.backoff_max_seconds)


class RetryScheduler:
    """
    Offline queue replay scheduler.

    Call start() from a running event loop.
    """

    def __init__(
        self,
        dispatcher: DeliveryPort,
        queue: ReplayQueuePort,
        config: RetryConfig | None = None,
    ) -> None:
        self._dispatcher = dispatcher
        self._queue = queue
        self._config = config or DEFAULT_CONFIG
        self._task: asyncio.Task[None] | None = None
        self._wake = asyncio.Event()
        self._stopping = False
        self._in_progress = False
        self._online = True
        self._reconnected = False
        self.consecutive_failures = 0
        self.last_result: DrainResult | None = None

    @property
    def is_running(self) -> bool:
        """Check if the periodic task is active."""
        return self._task is not None and not self._task.done()

    @property
    def online(self) -> bool:
        return self._online

    @property
    def in_progress(self) -> bool:
        return self._in_progress

    def next_delay(self) -> float:
        return calculate_backoff(self.consecutive_failures, self._config)

    def start(self) -> None:
        """Start the periodic task."""
        if self.is_running:
            return

        self._stopping = False
        self._wake.clear()
        self._task = asyncio.create_task(self._loop())
        logger.info(
            "Retry scheduler started (first pass in %.1fs, interval %.1fs)",
            self._config.initial_delay_seconds,
            self._config.interval_seconds,
        )

    async def stop(self) -> None:
        """Stop the periodic task. A pass in flight is cancelled."""
        if self._task is None:
            return

        self._stopping = True
        task, self._task = self._task, None
        task.cancel()
        await asyncio.gather(task, return_exceptions=True)
        logger.info("Retry scheduler stopped")

    def set_online(self, online: bool) -> None:
        """
        Record a connectivity change.

        Going online resets the backoff and schedules a pass after the grace
        period.
        """
        if online == self._online:
            return

        self._online = online
        if not online:
            logger.info("Offline, replay suspended")
            return

        logger.info("Back online, replaying offline events")
        self.consecutive_failures = 0
        self._reconnected = True
        self._wake.set()

    async def trigger_now(self) -> DrainResult:
        """Run a pass immediately."""
        return await self.run_once()

    async def run_once(self) -> DrainResult:
        """
        Drain the queue once.

        Returns:
            DrainResult; skipped=True if another pass is in flight or the
            client is offline.
        """
        if self._in_progress:
            logger.debug("Drain already in progress, skipping")
            return DrainResult(skipped=True)

        if not self._online:
            return DrainResult(skipped=True)

        self._in_progress = True
        result = DrainResult()
        try:
            for entry in self._queue.drain():
                outcome = await self._dispatcher.send(entry.event)

                if outcome.delivered:
                    self._queue.remove(entry)
                    result.delivered += 1
                elif outcome.retryable:
                    if self._queue.bump(entry):
                        result.retried += 1
                    else:
                        result.dropped += 1
                else:
                    self._queue.remove(entry)
                    result.rejected += 1
        finally:
            self._in_progress = False

        if result.had_transient_failures:
            self.consecutive_failures += 1
        else:
            self.consecutive_failures = 0

        self.last_result = result
        if result.total_processed > 0:
            logger.info(
                "Replayed %d offline events: %d delivered, %d rejected, %d retried, %d dropped",
                result.total_processed,
                result.delivered,
                result.rejected,
                result.retried,
                result.dropped,
            )
        return result

    async def _loop(self) -> None:
        delay: float | None = self._config.initial_delay_seconds

        while not self._stopping:
            await self._wait(delay)
            if self._stopping:
                return

            if self._reconnected:
                self._reconnected = False
                await asyncio.sleep(self._config.online_grace_seconds)

            if not self._online:
                # Sleep until set_online(True) wakes us
                delay = None
                continue

            try:
                await self.run_once()
            except Exception:
                logger.exception("Error in retry scheduler loop")

            delay = self.next_delay()

    async def _wait(self, delay: float | None) -> None:
        try:
            if delay is None:
                await self._wake.wait()
            else:
                await asyncio.wait_for(self._wake.wait(), timeout=delay)
        except asyncio.TimeoutError:
            return
        self._wake.clear()
