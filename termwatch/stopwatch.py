from __future__ import annotations

import logging

from .clock import Clock
from .duration import ZERO, Duration
from .errors import ClockInitError

_log = logging.getLogger(__name__)


class Stopwatch:
    """Elapsed time since a single start instant.

    - The reference instant is captured exactly once by :meth:`start`.
    - Time is entirely via injected Clock.
    """

    def __init__(self, clock: Clock) -> None:
        self._clock = clock
        self._started_at_ns: int | None = None

    @property
    def started(self) -> bool:
        return self._started_at_ns is not None

    def start(self) -> None:
        if self._started_at_ns is not None:
            raise RuntimeError("Stopwatch already started")
        try:
            self._started_at_ns = int(self._clock.now_ns())
        except OSError as exc:
            raise ClockInitError("couldn't sample the monotonic clock") from exc

    def elapsed(self, now_ns: int | None = None) -> Duration:
        """Return ``now - start``; samples the clock when ``now_ns`` is omitted.

        A sample earlier than the start instant is clamped to zero.
        """

        if self._started_at_ns is None:
            raise RuntimeError("Stopwatch has not started")
        if now_ns is None:
            now_ns = self._clock.now_ns()
        delta = int(now_ns) - self._started_at_ns
        if delta < 0:
            _log.debug("clock sample %d ns before start; clamping to zero", -delta)
            return ZERO
        return Duration.from_nanoseconds(delta)
