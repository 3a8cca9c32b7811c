"""Strict parser for refresh intervals such as ``"0.1"`` or ``"2"``.

Fractional digits map onto nanoseconds by fixed positional weight (first
digit is worth 10^8 ns), so the same text always yields the same Duration.
"""

from __future__ import annotations

from .duration import Duration
from .errors import ParseError

_DIGITS = "0123456789"
_FIRST_FRACTION_WEIGHT = 100_000_000


def parse_interval(text: str) -> Duration:
    """Parse ``digit+ ('.' digit+)?`` into an exact Duration.

    Digits after the ninth fractional digit are accepted but carry no weight.
    """

    i = 0
    n = len(text)

    seconds = 0
    while i < n and text[i] in _DIGITS:
        seconds = seconds * 10 + int(text[i])
        i += 1

    if i == 0:
        raise ParseError(text, "expected a digit" if n else "empty value")
    if i == n:
        return Duration(seconds, 0)
    if text[i] != ".":
        raise ParseError(text, f"unexpected character {text[i]!r}")

    i += 1
    start = i
    nanoseconds = 0
    weight = _FIRST_FRACTION_WEIGHT
    while i < n and text[i] in _DIGITS:
        nanoseconds += int(text[i]) * weight
        weight //= 10
        i += 1

    if i == start:
        raise ParseError(text, "expected a digit after '.'")
    if i != n:
        raise ParseError(text, f"unexpected character {text[i]!r}")
    return Duration(seconds, nanoseconds)
