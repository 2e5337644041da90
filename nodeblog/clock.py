"""
Clock abstraction.

Request code asks a Clock for the time instead of reading the
wall clock, so tests can pin time down.
"""

import time
from abc import ABC, abstractmethod
from threading import Lock


class Clock(ABC):
    """Source of the current time in milliseconds since the epoch."""

    @abstractmethod
    def current_time_millis(self) -> int:
        pass


class SystemClock(Clock):
    """Wall clock."""

    def current_time_millis(self) -> int:
        return time.time_ns() // 1_000_000


class SettableClock(Clock):
    """
    Clock that only moves when told to.

    Usage:
        clock = SettableClock(1_700_000_000_000)
        clock.advance(1000)
    """

    def __init__(self, now: int = 0):
        self._now = now
        self._lock = Lock()

    def current_time_millis(self) -> int:
        with self._lock:
            return self._now

    def set(self, now: int) -> None:
        with self._lock:
            self._now = now

    def advance(self, millis: int) -> int:
        with self._lock:
            self._now += millis
            return self._now
