"""Terminal renderers for elapsed time.

The variant is chosen once at startup: an interactive terminal gets one line
rewritten in place, anything else (pipes, files) gets one line per tick.
"""

from __future__ import annotations

from typing import Protocol, TextIO


class OutputSink(Protocol):
    def render(self, hours: int, minutes: int, seconds: int, milliseconds: int) -> None: ...
    def finish(self) -> None: ...


def format_elapsed(hours: int, minutes: int, seconds: int, milliseconds: int) -> str:
    """Return ``H:MM'SS"mmm``; hours are not bounded or padded."""

    return f"{hours}:{minutes:02d}'{seconds:02d}\"{milliseconds:03d}"


class _StreamOutput:
    line_end = "\n"

    def __init__(self, stream: TextIO) -> None:
        self._stream = stream

    def render(self, hours: int, minutes: int, seconds: int, milliseconds: int) -> None:
        self._stream.write(format_elapsed(hours, minutes, seconds, milliseconds) + self.line_end)
        self._stream.flush()

    def finish(self) -> None:
        self._stream.write("\n")
        self._stream.flush()


class TtyOutput(_StreamOutput):
    """Overwrites the current line on every render."""

    line_end = "\r"


class PlainOutput(_StreamOutput):
    """One line per render, for pipes and log files."""


def select_output(stream: TextIO, interactive: bool | None = None) -> TtyOutput | PlainOutput:
    if interactive is None:
        isatty = getattr(stream, "isatty", None)
        interactive = bool(isatty()) if isatty is not None else False
    return TtyOutput(stream) if interactive else PlainOutput(stream)
