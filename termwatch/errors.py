"""Error taxonomy for the stopwatch.

Every failure is terminal for the tool; ``app.run`` maps these to exit codes.
"""

from __future__ import annotations


class StopwatchError(Exception):
    """Base class for all termwatch failures."""


class ParseError(StopwatchError, ValueError):
    """A refresh interval did not match the interval grammar."""

    def __init__(self, text: str, reason: str) -> None:
        super().__init__(f"invalid interval {text!r}: {reason}")
        self.text = text
        self.reason = reason


class ClockInitError(StopwatchError):
    """The monotonic clock could not be initialised or sampled."""


class TimerError(StopwatchError):
    """The periodic timer could not be created, configured or armed."""


class WaitError(StopwatchError):
    """Blocking for the next tick/stop event failed."""
