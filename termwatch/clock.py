from __future__ import annotations

import time
from typing import Protocol

from .errors import ClockInitError


class Clock(Protocol):
    """Monotonic clock abstraction.

    Core logic depends on this interface rather than calling real time directly.
    """

    def now_ns(self) -> int:
        """Return monotonic nanoseconds."""


class RealClock:
    """Production clock backed by time.monotonic_ns()."""

    def __init__(self) -> None:
        try:
            info = time.get_clock_info("monotonic")
        except (OSError, ValueError) as exc:
            raise ClockInitError("couldn't query the monotonic clock") from exc
        if not info.monotonic:
            raise ClockInitError(f"clock {info.implementation!r} is not monotonic")
        self.resolution_s = info.resolution

    def now_ns(self) -> int:
        return time.monotonic_ns()
