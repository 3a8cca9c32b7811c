"""Command-line shell for the terminal stopwatch: ``termwatch [-d delay]``.

Timing, scheduling and rendering live in the core modules; this module only
parses arguments, wires the pieces together and maps failures to exit codes.
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import Mapping, NoReturn, Sequence, TextIO

from .clock import Clock, RealClock
from .config import (
    DEFAULT_REFRESH_INTERVAL,
    StopwatchConfig,
    configure_logging,
    log_level_from_env,
    scheduler_backend_from_env,
)
from .display_loop import DisplayLoop
from .errors import ParseError, StopwatchError
from .interval import parse_interval
from .output import select_output
from .scheduler import PeriodicScheduler, create_scheduler
from .stopwatch import Stopwatch

PROG = "termwatch"
EXIT_OK = 0
EXIT_FAILURE = 1

_log = logging.getLogger(__name__)


class UsageError(Exception):
    """Bad command line; ``str(exc)`` is the message, empty for ``-h``."""


class _ArgumentParser(argparse.ArgumentParser):
    def error(self, message: str) -> NoReturn:
        raise UsageError(message)


def _build_parser() -> _ArgumentParser:
    parser = _ArgumentParser(prog=PROG, usage="%(prog)s [-d delay]", add_help=False)
    parser.add_argument("-d", dest="delay", metavar="delay")
    parser.add_argument("-h", dest="help", action="store_true")
    return parser


def parse_config(
    argv: Sequence[str],
    *,
    interactive: bool = False,
    environ: Mapping[str, str] | None = None,
) -> StopwatchConfig:
    args = _build_parser().parse_args(list(argv))
    if args.help:
        raise UsageError("")

    interval = DEFAULT_REFRESH_INTERVAL
    if args.delay is not None:
        try:
            interval = parse_interval(args.delay)
        except ParseError as exc:
            raise UsageError(f"invalid value for option -d: {args.delay}") from exc
        if interval.is_zero():
            raise UsageError(f"invalid value for option -d: {args.delay} (must be greater than zero)")

    return StopwatchConfig(
        refresh_interval=interval,
        interactive=interactive,
        scheduler_backend=scheduler_backend_from_env(environ),
        log_level=log_level_from_env(environ),
    )


def usage() -> str:
    return _build_parser().format_usage()


def run(
    argv: Sequence[str] | None = None,
    *,
    stdout: TextIO | None = None,
    stderr: TextIO | None = None,
    environ: Mapping[str, str] | None = None,
    clock: Clock | None = None,
    scheduler: PeriodicScheduler | None = None,
) -> int:
    out = sys.stdout if stdout is None else stdout
    err = sys.stderr if stderr is None else stderr
    if argv is None:
        argv = sys.argv[1:]

    try:
        config = parse_config(argv, interactive=out.isatty(), environ=environ)
    except UsageError as exc:
        if str(exc):
            err.write(f"{exc}\n")
        err.write(usage())
        return EXIT_FAILURE

    configure_logging(config.log_level, stream=err)
    sink = select_output(out, config.interactive)

    try:
        loop = DisplayLoop(
            stopwatch=Stopwatch(clock if clock is not None else RealClock()),
            scheduler=scheduler if scheduler is not None else create_scheduler(config.scheduler_backend),
            sink=sink,
        )
        loop.run(config.refresh_interval)
    except StopwatchError as exc:
        _log.debug("aborting", exc_info=True)
        err.write(f"{PROG}: {exc}\n")
        return EXIT_FAILURE

    return EXIT_OK
