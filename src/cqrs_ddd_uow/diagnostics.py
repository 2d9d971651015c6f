"""Caller-scoped diagnostics for the coordinator."""

from __future__ import annotations

import contextlib
import logging
import time
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterator


@contextlib.contextmanager
def log_caller(logger: logging.Logger, caller: str) -> Iterator[None]:
    """Emit DEBUG records when *caller* is entered and left, with its duration."""
    logger.debug("Entering %s", caller)
    start = time.perf_counter()
    try:
        yield
    except BaseException as exc:
        elapsed = (time.perf_counter() - start) * 1000
        logger.debug(
            "Leaving %s with %s after %.2fms", caller, type(exc).__name__, elapsed
        )
        raise
    elapsed = (time.perf_counter() - start) * 1000
    logger.debug("Leaving %s after %.2fms", caller, elapsed)
