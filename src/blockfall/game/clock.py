from __future__ import annotations

import time
from typing import Callable


TimeSource = Callable[[], float]

# Absorbs float drift when synthetic frame times add up to exactly one period.
_EPSILON = 1e-9


class ManualTime:
    """Time source that only moves when told to."""

    def __init__(self, start: float = 0.0) -> None:
        self.now = float(start)

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> float:
        self.now += seconds
        return self.now


class Clock:
    """Cycle accounting for gravity.

    The clock never sleeps. `update()` samples the time source and banks the
    elapsed time; `has_elapsed_cycle()` hands out whole cycles one at a time,
    keeping any fractional remainder for the next check.
    """

    def __init__(self, cycles_per_second: float = 1.0, time_source: TimeSource | None = None) -> None:
        self._time_source = time_source or time.perf_counter
        self._period = 1.0
        self._elapsed = 0.0
        self._paused = False
        self._last_update = self._time_source()
        self.set_rate(cycles_per_second)

    @property
    def rate(self) -> float:
        return 1.0 / self._period

    @property
    def period(self) -> float:
        return self._period

    @property
    def paused(self) -> bool:
        return self._paused

    @property
    def elapsed(self) -> float:
        return self._elapsed

    def set_rate(self, cycles_per_second: float) -> None:
        if cycles_per_second <= 0:
            raise ValueError(f"cycles_per_second must be positive, got {cycles_per_second}")
        self._period = 1.0 / float(cycles_per_second)

    def set_paused(self, paused: bool) -> None:
        self._paused = bool(paused)

    def reset(self) -> None:
        self._elapsed = 0.0
        self._last_update = self._time_source()

    def update(self) -> None:
        now = self._time_source()
        delta = now - self._last_update
        self._last_update = now
        self.advance(delta)

    def advance(self, seconds: float) -> None:
        # Time spent paused is dropped, otherwise unpausing would replay it.
        if self._paused or seconds <= 0:
            return
        self._elapsed += seconds

    def has_elapsed_cycle(self) -> bool:
        if self._elapsed + _EPSILON >= self._period:
            self._elapsed = max(0.0, self._elapsed - self._period)
            return True
        return False
