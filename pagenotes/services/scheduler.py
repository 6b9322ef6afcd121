"""Delayed callback scheduling."""

from __future__ import annotations

import heapq
import itertools
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from PySide6.QtCore import QTimer

if TYPE_CHECKING:
    from collections.abc import Callable


class Scheduler(ABC):
    """Runs callbacks after a delay.  Scheduled callbacks cannot be cancelled."""

    @abstractmethod
    def call_later(self, delay_ms: int, callback: Callable[[], None]) -> None:
        """
        Run ``callback`` once, ``delay_ms`` milliseconds from now.

        Args:
            delay_ms: Delay in milliseconds
            callback: Function to call

        """


class QtScheduler(Scheduler):
    """Schedules callbacks on the running Qt event loop."""

    def call_later(self, delay_ms: int, callback: Callable[[], None]) -> None:
        QTimer.singleShot(delay_ms, callback)


class VirtualScheduler(Scheduler):
    """
    A scheduler driven by a manual clock.

    Nothing runs until :meth:`advance` moves the clock past a callback's due
    time.  Callbacks due at the same instant run in the order they were
    scheduled.
    """

    def __init__(self) -> None:
        #: The current virtual time in milliseconds.
        self.now_ms = 0
        self._queue: list[tuple[int, int, Callable[[], None]]] = []
        self._counter = itertools.count()

    @property
    def pending(self) -> int:
        """Number of callbacks that have not run yet."""
        return len(self._queue)

    def call_later(self, delay_ms: int, callback: Callable[[], None]) -> None:
        due = self.now_ms + max(delay_ms, 0)
        heapq.heappush(self._queue, (due, next(self._counter), callback))

    def advance(self, delay_ms: int) -> None:
        """
        Move the clock forward, running every callback that falls due.

        Callbacks scheduled by other callbacks run too if they fall due before
        the new time.

        Args:
            delay_ms: Milliseconds to move forward

        """
        target = self.now_ms + delay_ms
        while self._queue and self._queue[0][0] <= target:
            due, _, callback = heapq.heappop(self._queue)
            self.now_ms = due
            callback()
        self.now_ms = target
