# ------------------------------------------------------------
# Module: relaychat/utils/timing.py
# Purpose: Timing helpers and context-based duration logging.
# ------------------------------------------------------------

"""Lightweight utilities for timing measurements and structured log timing.

Responsibilities
----------------
- Provide millisecond clocks for wall-time stamps and elapsed durations.
- Provide a context manager that logs start/ok/failed with elapsed time.
"""

from __future__ import annotations

import logging
import time
from contextlib import contextmanager


def now_ms() -> int:
    """Wall-clock milliseconds since the Unix epoch (storage timestamps)."""
    return int(time.time() * 1000)


def ms_since(t0: float) -> int:
    """Whole milliseconds elapsed since a `time.perf_counter()` reading."""
    return int((time.perf_counter() - t0) * 1000)


@contextmanager
def log_timer(msg: str, logger: logging.Logger | logging.LoggerAdapter | None = None, **ctx):
    """
    Log a start/ok/failed message with elapsed time.

    Usage:
        with log_timer("persist.exchange", lad, conversation_id=cid):
            ...
    """
    log = logger or logging.getLogger(__name__)
    t0 = time.perf_counter()
    log.debug("%s start %s", msg, ctx)
    try:
        yield
    except Exception:
        log.error("%s failed after %dms %s", msg, ms_since(t0), ctx, exc_info=True)
        raise
    else:
        log.info("%s ok in %dms %s", msg, ms_since(t0), ctx)
