"""Logging helpers for the bootstrap CLI."""

from __future__ import annotations

import logging
import time
from collections.abc import Iterator
from contextlib import contextmanager

from rich.console import Console
from rich.logging import RichHandler

LOGGER_NAME = "build_bootstrap"


def setup_logging(*, verbose: bool = False) -> logging.Logger:
    """Send package logs to stderr through rich."""

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)
    logger.handlers = []
    handler = RichHandler(
        console=Console(stderr=True),
        rich_tracebacks=True,
        show_time=False,
        show_path=False,
    )
    handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(handler)
    logger.propagate = False
    return logger


@contextmanager
def log_timed(logger: logging.Logger, message: str) -> Iterator[None]:
    """Log ``message`` and, once the block finishes, how long it took."""

    logger.info(message)
    started = time.monotonic()
    yield
    logger.info("%s completed, took %.1fs", message.rstrip("."), time.monotonic() - started)
