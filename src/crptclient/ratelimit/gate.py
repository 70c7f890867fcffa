"""Counting permit pool bounding concurrent dispatches.

The gate only tracks availability; admission order is decided by the
admission queue and the replenisher. Waiters are served strictly in
arrival order and a freed permit is handed directly to the oldest
waiter, so non-blocking callers can never overtake a blocked one.
"""

import asyncio
import logging
from collections import deque

from crptclient.exceptions import ConfigError
from crptclient.logger import get_logger


class Permit:
    """Handle to one acquired permit.

    Releasing is idempotent: the first call returns the permit to its
    gate, every later call is a no-op. Completion and error paths can
    therefore both release without risking a double return.
    """

    __slots__ = ("_gate", "_released")

    def __init__(self, gate: "CapacityGate") -> None:
        self._gate = gate
        self._released = False

    @property
    def released(self) -> bool:
        return self._released

    def release(self) -> bool:
        """Return the permit to the gate.

        Returns:
            True if this call released the permit, False if it was
            already released.
        """
        if self._released:
            return False
        self._released = True
        self._gate.release()
        return True


class CapacityGate:
    """Permit pool sized to the request limit.

    The available count stays within [0, limit]: acquire decrements it
    (waiting when it is zero) and release increments it, capped at limit.

    Attributes:
        limit: Pool size.
    """

    def __init__(self, limit: int, logger: logging.Logger | None = None) -> None:
        """Initialize a full pool.

        Args:
            limit: Number of permits; must be positive.
            logger: Optional logger; defaults to the module logger.

        Raises:
            ConfigError: If limit is not positive.
        """
        if limit < 1:
            raise ConfigError(
                f"Permit limit must be positive, got {limit}", field_path="limit"
            )
        self.limit = limit
        self._available = limit
        self._waiters: deque[asyncio.Future[None]] = deque()
        self._logger = logger or get_logger(__name__)

    @property
    def available(self) -> int:
        return self._available

    @property
    def in_flight(self) -> int:
        """Permits acquired and not yet released."""
        return self.limit - self._available

    @property
    def waiting(self) -> int:
        """Callers blocked in acquire.

        Futures leave the deque when they are served or cancelled, so
        every entry is pending.
        """
        return len(self._waiters)

    def try_acquire(self) -> Permit | None:
        """Take a permit without waiting.

        Returns:
            A permit, or None if none is free or callers are already
            waiting for one.
        """
        if self._available > 0 and not self._waiters:
            self._available -= 1
            return Permit(self)
        return None

    async def acquire(self) -> Permit:
        """Take a permit, waiting in FIFO order until one is free.

        Returns:
            The acquired permit.
        """
        permit = self.try_acquire()
        if permit is not None:
            return permit

        fut: asyncio.Future[None] = asyncio.get_running_loop().create_future()
        self._waiters.append(fut)
        self._logger.debug("Waiting for permit: waiting=%d", self.waiting)

        try:
            await fut
        except asyncio.CancelledError:
            if fut.done() and not fut.cancelled():
                # Permit was handed over right before cancellation
                self.release()
            elif fut in self._waiters:
                self._waiters.remove(fut)
            raise

        return Permit(self)

    def release(self) -> None:
        """Return one permit to the pool, never exceeding the limit.

        Prefer Permit.release(), which guarantees a single return per
        acquisition.
        """
        if self._available >= self.limit:
            self._logger.debug("Release ignored: pool already full (%d)", self.limit)
            return

        self._available += 1
        self._wake_next()

    def _wake_next(self) -> None:
        while self._waiters and self._available > 0:
            fut = self._waiters.popleft()
            if fut.done():
                continue
            self._available -= 1
            fut.set_result(None)
