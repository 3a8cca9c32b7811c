from __future__ import annotations

import logging
from enum import Enum

from .duration import Duration
from .output import OutputSink
from .scheduler import Event, PeriodicScheduler
from .stopwatch import Stopwatch

_log = logging.getLogger(__name__)


class LoopState(str, Enum):
    RUNNING = "running"
    STOPPED = "stopped"


class DisplayLoop:
    """Drives the sink from scheduler events: render on TICK, finish on STOP.

    The loop is entered only once the stopwatch has started and the scheduler
    is armed; failures there propagate before RUNNING. The scheduler is
    disarmed on every exit path.
    """

    def __init__(self, *, stopwatch: Stopwatch, scheduler: PeriodicScheduler, sink: OutputSink) -> None:
        self._stopwatch = stopwatch
        self._scheduler = scheduler
        self._sink = sink
        self._state: LoopState | None = None
        self._ticks = 0

    @property
    def state(self) -> LoopState | None:
        return self._state

    @property
    def ticks(self) -> int:
        return self._ticks

    def run(self, interval: Duration) -> LoopState:
        if self._state is not None:
            raise RuntimeError("DisplayLoop already ran")

        self._stopwatch.start()
        self._scheduler.arm(interval)
        try:
            self._state = LoopState.RUNNING
            while self._state is LoopState.RUNNING:
                event = self._scheduler.next_event()
                if event is Event.STOP:
                    _log.debug("stop received after %d ticks", self._ticks)
                    self._sink.finish()
                    self._state = LoopState.STOPPED
                else:
                    parts = self._stopwatch.elapsed().clock_parts()
                    self._sink.render(*parts)
                    self._ticks += 1
        finally:
            self._scheduler.disarm()
        return self._state
