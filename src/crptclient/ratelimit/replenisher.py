"""Periodic admission of queued tasks.

Once per window the replenisher admits up to ``quota`` tasks from the
admission queue, oldest first, and hands each one to the dispatcher.
Unused quota is not carried over to the next window. This is a fixed
quota refreshed per tick, not a sliding window: up to twice the quota
may start within one window-length span that straddles a tick.
"""

import asyncio
import logging
from collections.abc import Callable
from typing import Literal

from crptclient.logger import get_logger
from crptclient.ratelimit.gate import CapacityGate
from crptclient.ratelimit.queue import AdmissionQueue
from crptclient.schemas.tasks import SubmissionTask

ReplenisherState = Literal["idle", "tick", "stopped"]


class Replenisher:
    """Fixed-rate timer admitting queued tasks.

    The tick never awaits a dispatch: ``hand_off`` is expected to start
    the dispatch independently (e.g. as its own asyncio task), so a hung
    request cannot delay the timer.

    Attributes:
        interval: Window length in seconds.
        quota: Maximum tasks admitted per tick.
        ticks: Number of completed ticks.
    """

    def __init__(
        self,
        queue: AdmissionQueue,
        gate: CapacityGate,
        hand_off: Callable[[SubmissionTask], None],
        interval: float,
        quota: int,
        logger: logging.Logger | None = None,
    ) -> None:
        """Initialize an idle replenisher.

        Args:
            queue: Queue to admit tasks from.
            gate: Gate used to pre-admit tasks with a permit.
            hand_off: Callable starting the dispatch of one task.
            interval: Window length in seconds.
            quota: Maximum tasks admitted per tick.
            logger: Optional logger; defaults to the module logger.
        """
        self.queue = queue
        self.gate = gate
        self.hand_off = hand_off
        self.interval = interval
        self.quota = quota
        self.ticks = 0
        self._state: ReplenisherState = "idle"
        self._shutdown_flag: asyncio.Event | None = None
        self._timer_task: asyncio.Task[None] | None = None
        self._logger = logger or get_logger(__name__)

    @property
    def state(self) -> ReplenisherState:
        return self._state

    @property
    def running(self) -> bool:
        return self._timer_task is not None and not self._timer_task.done()

    def start(self) -> None:
        """Start the timer on the running event loop.

        The first tick fires one interval after start.
        """
        if self.running:
            return

        self._state = "idle"
        self._shutdown_flag = asyncio.Event()
        self._timer_task = asyncio.create_task(self._timer_loop())
        self._logger.debug(
            "Replenisher started: interval=%.3fs, quota=%d", self.interval, self.quota
        )

    async def stop(self) -> None:
        """Stop the timer with timeout fallback.

        Wait for graceful completion with 2s timeout, then force cancellation.
        """
        self._state = "stopped"

        if not self._timer_task or not self._shutdown_flag:
            return

        self._shutdown_flag.set()

        try:
            await asyncio.wait_for(self._timer_task, timeout=2.0)
            self._logger.debug("Replenisher stopped: ticks=%d", self.ticks)
        except asyncio.TimeoutError:
            self._logger.warning("Replenisher stop timeout, forcing cancellation")
            self._timer_task.cancel()
            try:
                await self._timer_task
            except asyncio.CancelledError:
                self._logger.debug("Replenisher task cancelled")

    def tick(self) -> int:
        """Admit up to quota queued tasks.

        A task leaves the queue only together with a free permit. When
        the pool is exhausted the tick ends early and the remaining
        tasks stay queued for a later window, so at most quota requests
        start per window even after a stall.

        Returns:
            Number of tasks handed to the dispatcher.
        """
        if self._state == "stopped":
            return 0

        self._state = "tick"
        admitted = 0

        try:
            for _ in range(self.quota):
                if self.queue.empty():
                    break

                permit = self.gate.try_acquire()
                if permit is None:
                    self._logger.debug(
                        "Tick %d: no free permit, queued=%d",
                        self.ticks + 1,
                        len(self.queue),
                    )
                    break

                task = self.queue.try_dequeue()
                if task is None:
                    permit.release()
                    break

                task.permit = permit
                try:
                    self.hand_off(task)
                except Exception as e:
                    self._logger.error(
                        "Hand-off failed: task_id=%d, error=%s", task.task_id, e
                    )
                    self._logger.debug("Hand-off error details", exc_info=True)
                    if task.permit is not None:
                        task.permit.release()
                    continue

                admitted += 1
        finally:
            self.ticks += 1
            if self._state == "tick":
                self._state = "idle"

        self._logger.debug(
            "Tick %d: admitted=%d, queued=%d, permits=%d/%d",
            self.ticks,
            admitted,
            len(self.queue),
            self.gate.available,
            self.gate.limit,
        )
        return admitted

    async def _timer_loop(self) -> None:
        """Fire ticks at a fixed rate until shutdown.

        Deadlines advance by whole intervals from start; ticks missed
        while the loop was busy are skipped rather than fired in a burst.
        """
        assert self._shutdown_flag is not None

        loop = asyncio.get_running_loop()
        next_deadline = loop.time() + self.interval

        while not self._shutdown_flag.is_set():
            try:
                await asyncio.wait_for(
                    self._shutdown_flag.wait(),
                    timeout=max(0.0, next_deadline - loop.time()),
                )
                break
            except asyncio.TimeoutError:
                pass

            try:
                self.tick()
            except Exception as e:
                self._logger.error("Tick failed: %s", e, exc_info=True)

            next_deadline += self.interval
            now = loop.time()
            if next_deadline <= now:
                missed = int((now - next_deadline) // self.interval) + 1
                next_deadline += missed * self.interval
                self._logger.warning("Replenisher behind schedule: skipped=%d", missed)
