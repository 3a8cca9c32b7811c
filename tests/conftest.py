"""Shared pytest configuration for termwatch tests."""

from __future__ import annotations

import logging
from typing import Iterator

import pytest


@pytest.fixture(autouse=True)
def isolated_package_logger() -> Iterator[logging.Logger]:
    """Give every test a clean ``termwatch`` logger.

    ``app.run`` configures the package logger; without this, handlers and the
    propagate flag leak from one test into the next.
    """

    logger = logging.getLogger("termwatch")
    saved = (list(logger.handlers), logger.propagate, logger.level)
    logger.handlers.clear()
    logger.propagate = True
    logger.setLevel(logging.NOTSET)
    try:
        yield logger
    finally:
        logger.handlers[:] = saved[0]
        logger.propagate = saved[1]
        logger.setLevel(saved[2])
