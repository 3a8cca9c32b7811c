from __future__ import annotations

from dataclasses import dataclass
from typing import NamedTuple

NSEC_PER_SEC = 1_000_000_000
NSEC_PER_MSEC = 1_000_000


class ClockParts(NamedTuple):
    hours: int
    minutes: int
    seconds: int
    milliseconds: int


@dataclass(frozen=True, slots=True, order=True)
class Duration:
    """Exact, non-negative time span.

    ``nanoseconds`` is always normalized into ``[0, 1e9)``; any carry lives in
    ``seconds``. Ordering compares ``(seconds, nanoseconds)`` which is correct
    because of that normalization.
    """

    seconds: int = 0
    nanoseconds: int = 0

    def __post_init__(self) -> None:
        if self.seconds < 0:
            raise ValueError("seconds must be >= 0")
        if not (0 <= self.nanoseconds < NSEC_PER_SEC):
            raise ValueError("nanoseconds must be in [0, 1_000_000_000)")

    @classmethod
    def from_nanoseconds(cls, total: int) -> Duration:
        if total < 0:
            raise ValueError("duration cannot be negative")
        seconds, nanoseconds = divmod(int(total), NSEC_PER_SEC)
        return cls(seconds, nanoseconds)

    @classmethod
    def from_milliseconds(cls, total: int) -> Duration:
        return cls.from_nanoseconds(int(total) * NSEC_PER_MSEC)

    @property
    def total_nanoseconds(self) -> int:
        return self.seconds * NSEC_PER_SEC + self.nanoseconds

    def is_zero(self) -> bool:
        return self.seconds == 0 and self.nanoseconds == 0

    def to_seconds(self) -> float:
        # Lossy; only for OS timer APIs that take float seconds.
        return self.seconds + self.nanoseconds / NSEC_PER_SEC

    def clock_parts(self) -> ClockParts:
        """Split into hours (unbounded), minutes, seconds and truncated milliseconds."""

        return ClockParts(
            hours=self.seconds // 3600,
            minutes=self.seconds // 60 % 60,
            seconds=self.seconds % 60,
            milliseconds=self.nanoseconds // NSEC_PER_MSEC,
        )

    def __add__(self, other: object) -> Duration:
        if not isinstance(other, Duration):
            return NotImplemented
        return Duration.from_nanoseconds(self.total_nanoseconds + other.total_nanoseconds)


ZERO = Duration()
