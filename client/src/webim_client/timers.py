"""Owned, cancellable timers backed by asyncio tasks."""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional

logger = logging.getLogger(__name__)

TimerCallback = Callable[[], Awaitable[None]]


class _TaskTimer:
    def __init__(self, name: str) -> None:
        self.name = name
        self._task: Optional[asyncio.Task] = None

    @property
    def active(self) -> bool:
        return self._task is not None and not self._task.done()

    def cancel(self) -> bool:
        """Cancel the timer if it is live. Returns whether anything was cancelled."""

        task, self._task = self._task, None
        if task is None or task.done():
            return False
        if task is asyncio.current_task():
            # Cancelled from inside its own callback; let the callback finish.
            return True
        task.cancel()
        return True

    def _spawn(self, coro) -> None:
        self._task = asyncio.get_running_loop().create_task(coro, name=self.name)


class PeriodicTimer(_TaskTimer):
    """Runs ``callback`` every ``interval_s`` seconds until cancelled.

    Starting an already running timer is a no-op, so at most one tick loop
    exists per instance.
    """

    def __init__(self, interval_s: float, callback: TimerCallback, *, name: str = "periodic") -> None:
        super().__init__(name)
        if interval_s <= 0:
            raise ValueError("interval_s must be positive")
        self.interval_s = interval_s
        self._callback = callback

    def start(self) -> bool:
        if self.active:
            return False
        self._spawn(self._run())
        return True

    async def _run(self) -> None:
        try:
            while True:
                await asyncio.sleep(self.interval_s)
                try:
                    await self._callback()
                except asyncio.CancelledError:
                    raise
                except Exception:
                    logger.exception("%s timer callback failed", self.name)
                if self._task is not asyncio.current_task():
                    # cancelled or restarted from within the callback
                    return
        except asyncio.CancelledError:
            return


class OneShotTimer(_TaskTimer):
    """Runs ``callback`` once after a delay unless cancelled first."""

    def __init__(self, callback: TimerCallback, *, name: str = "oneshot") -> None:
        super().__init__(name)
        self._callback = callback
        self.delay_s: Optional[float] = None

    def schedule(self, delay_s: float) -> bool:
        """Arm the timer. Returns ``False`` if it is already pending."""

        if self.active:
            return False
        self.delay_s = delay_s
        self._spawn(self._run(delay_s))
        return True

    async def _run(self, delay_s: float) -> None:
        try:
            await asyncio.sleep(delay_s)
        except asyncio.CancelledError:
            return
        # The pending slot is released before the callback runs so that the
        # callback may re-arm this timer.
        self._task = None
        try:
            await self._callback()
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("%s timer callback failed", self.name)
