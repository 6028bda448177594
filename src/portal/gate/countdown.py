"""Cancellable countdown owned by a single gate instance.

The countdown is a chain of one-second scheduled callbacks. Whoever owns it
must cancel it on early dismissal or unmount; after cancel() no callback
fires and no handle stays scheduled.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Any, Protocol

logger = logging.getLogger(__name__)


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    """Anything that can run a callback later (an asyncio loop qualifies)."""

    def call_later(self, delay: float, callback: Callable[[], Any]) -> TimerHandle: ...


class Countdown:
    """Counts down from ``seconds`` to 0, one tick per ``interval``.

    Args:
        seconds: Starting value
        on_tick: Called with the remaining value after each tick
        on_done: Called once when the value reaches 0
        scheduler: Defaults to the running asyncio loop at start()
        interval: Seconds per tick
    """

    def __init__(
        self,
        seconds: int,
        on_tick: Callable[[int], None],
        on_done: Callable[[], None],
        scheduler: Scheduler | None = None,
        interval: float = 1.0,
    ) -> None:
        if seconds < 1:
            raise ValueError("Countdown needs at least one second")
        self.seconds = seconds
        self.interval = interval
        self._on_tick = on_tick
        self._on_done = on_done
        self._scheduler = scheduler
        self._handle: TimerHandle | None = None
        self._remaining = seconds
        self._active = False

    @property
    def remaining(self) -> int:
        return self._remaining

    @property
    def active(self) -> bool:
        return self._active

    def start(self) -> None:
        """Start (or restart) from ``seconds``."""
        self.cancel()
        if self._scheduler is None:
            self._scheduler = asyncio.get_running_loop()
        self._remaining = self.seconds
        self._active = True
        self._schedule()

    def cancel(self) -> None:
        """Stop ticking. Safe to call at any time, any number of times."""
        self._active = False
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _schedule(self) -> None:
        self._handle = self._scheduler.call_later(self.interval, self._tick)

    def _tick(self) -> None:
        self._handle = None
        if not self._active:
            return

        self._remaining -= 1
        self._on_tick(self._remaining)

        if self._remaining <= 0:
            self._active = False
            self._on_done()
        elif self._active:
            self._schedule()
