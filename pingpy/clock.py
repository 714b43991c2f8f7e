from __future__ import annotations

import time
from typing import Protocol


class Clock(Protocol):
    """Anything that can tell the current instant, in nanoseconds since the epoch."""

    def now(self) -> int: ...


class SystemClock:
    def now(self) -> int:
        return time.time_ns()


class ManualClock:
    """
    Deterministic clock for tests.
    Each now() returns the current instant and then moves forward by `step`.
    """

    def __init__(self, start: int = 0, step: int = 0) -> None:
        self.current = start
        self.step = step

    def now(self) -> int:
        value = self.current
        self.current += self.step
        return value

    def advance(self, ns: int) -> None:
        self.current += ns
