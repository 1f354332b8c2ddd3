"""Async streaming loop driving the scheduler on a fixed cadence."""

import asyncio
import time
from typing import Awaitable, Callable, Iterable

import structlog

from .config import StreamingConfig
from .streaming import StreamingScheduler, TickReport
from .types import Observer

logger = structlog.get_logger()


# Type aliases for loop callbacks
ObserverSource = Callable[[], Observer]
TickCallback = Callable[[TickReport], Awaitable[None]]


class StreamingLoop:
    """
    Async loop that ticks the scheduler every tick_duration_ms.

    Usage:
        loop = StreamingLoop(scheduler, lambda: camera.observer())

        # Start the loop
        await loop.run()

    The observer source is read once per tick. The tick itself never waits
    on generation, so the cadence holds even when no chunk has finished.
    """

    def __init__(
        self,
        scheduler: StreamingScheduler,
        observer_source: ObserverSource,
        config: StreamingConfig | None = None,
        on_tick_complete: TickCallback | None = None,
    ):
        self.scheduler = scheduler
        self.observer_source = observer_source
        self.config = config or scheduler.config
        self.on_tick_complete = on_tick_complete

        self._running = False
        self._last_report: TickReport | None = None
        self._stop_event = asyncio.Event()

    @property
    def is_running(self) -> bool:
        """Whether the loop is currently running."""
        return self._running

    @property
    def last_report(self) -> TickReport | None:
        """Report from the most recent tick, if any."""
        return self._last_report

    async def run(self) -> None:
        """Run the loop until stopped."""
        self._running = True
        self._stop_event.clear()

        logger.info("streaming_loop_started", tick_duration_ms=self.config.tick_duration_ms)

        try:
            while self._running:
                tick_start = time.time() * 1000

                report = self.scheduler.tick(self.observer_source())
                self._last_report = report

                if self.on_tick_complete:
                    await self.on_tick_complete(report)

                # Wait for remainder of tick duration
                elapsed = time.time() * 1000 - tick_start
                remaining = self.config.tick_duration_ms - elapsed
                if remaining > 0:
                    try:
                        await asyncio.wait_for(
                            self._stop_event.wait(), timeout=remaining / 1000
                        )
                    except asyncio.TimeoutError:
                        pass  # Normal - tick duration elapsed
                else:
                    logger.warning(
                        "streaming_tick_overrun",
                        tick_id=report.tick_id,
                        elapsed_ms=elapsed,
                    )
                    await asyncio.sleep(0)

        finally:
            self._running = False
            logger.info("streaming_loop_stopped", ticks=self.scheduler.current_tick)

    def stop(self) -> None:
        """Signal the loop to stop."""
        self._running = False
        self._stop_event.set()


def run_ticks(
    scheduler: StreamingScheduler,
    observers: Iterable[Observer],
    settle: bool = False,
    timeout: float | None = 10.0,
) -> list[TickReport]:
    """
    Run one tick per observer (useful for testing).

    Args:
        scheduler: Scheduler to drive.
        observers: Observer state for each tick, in order.
        settle: Wait for in-flight generation after each tick, so every
            dispatched chunk lands on the following tick.
        timeout: Per-wait timeout in seconds when settling.

    Returns:
        List of TickReports
    """
    reports: list[TickReport] = []
    for observer in observers:
        reports.append(scheduler.tick(observer))
        if settle:
            scheduler.wait_for_pending(timeout)
    return reports
