"""Run configuration and environment-driven settings."""

from __future__ import annotations

import logging
import os
import sys
from dataclasses import dataclass
from typing import Mapping, TextIO

from .duration import Duration
from .scheduler import BACKENDS

ENV_LOG_LEVEL = "TERMWATCH_LOG_LEVEL"
ENV_SCHEDULER = "TERMWATCH_SCHEDULER"

DEFAULT_REFRESH_INTERVAL = Duration.from_milliseconds(100)
DEFAULT_LOG_LEVEL = "WARNING"
DEFAULT_SCHEDULER = "auto"

_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
_PACKAGE_LOGGER = "termwatch"
_HANDLER_NAME = "termwatch-console"


@dataclass(frozen=True, slots=True)
class StopwatchConfig:
    refresh_interval: Duration = DEFAULT_REFRESH_INTERVAL
    interactive: bool = False
    scheduler_backend: str = DEFAULT_SCHEDULER
    log_level: str = DEFAULT_LOG_LEVEL

    def __post_init__(self) -> None:
        if self.refresh_interval.is_zero():
            raise ValueError("refresh_interval must be > 0")
        if self.scheduler_backend not in BACKENDS:
            raise ValueError(f"scheduler_backend must be one of {', '.join(BACKENDS)}")


def log_level_from_env(environ: Mapping[str, str] | None = None) -> str:
    env = os.environ if environ is None else environ
    name = env.get(ENV_LOG_LEVEL, DEFAULT_LOG_LEVEL).strip().upper()
    return name if isinstance(logging.getLevelName(name), int) else DEFAULT_LOG_LEVEL


def scheduler_backend_from_env(environ: Mapping[str, str] | None = None) -> str:
    env = os.environ if environ is None else environ
    backend = env.get(ENV_SCHEDULER, DEFAULT_SCHEDULER).strip().lower()
    return backend if backend in BACKENDS else DEFAULT_SCHEDULER


def configure_logging(level_name: str = DEFAULT_LOG_LEVEL, *, stream: TextIO | None = None) -> logging.Logger:
    """Attach one console handler to the package logger.

    stdout carries the display, so diagnostics go to ``stream`` (stderr by
    default). Repeated calls replace that handler rather than adding another;
    propagation is off so lines are not printed twice when the root logger is
    configured elsewhere.
    """

    logger = logging.getLogger(_PACKAGE_LOGGER)
    logger.setLevel(getattr(logging, level_name.upper(), logging.WARNING))
    target = sys.stderr if stream is None else stream

    # The previous stream may already be closed, so it is not flushed.
    for old in [h for h in logger.handlers if h.get_name() == _HANDLER_NAME]:
        logger.removeHandler(old)
    handler = logging.StreamHandler(stream=target)
    handler.set_name(_HANDLER_NAME)
    handler.setFormatter(logging.Formatter(_LOG_FORMAT))
    logger.addHandler(handler)
    logger.propagate = False
    return logger
