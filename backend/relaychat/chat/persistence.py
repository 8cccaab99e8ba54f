# ------------------------------------------------------------
# Module: relaychat/chat/persistence.py
# Purpose: Fire-and-forget dispatch of gateway writes off the hot path.
# ------------------------------------------------------------

"""Background dispatcher for persistence writes.

Responsibilities
----------------
- Run blocking gateway calls in worker threads so fragment application on
  the event loop never waits for storage.
- Preserve submission order between jobs (a job starts after its predecessor
  finished, successfully or not).
- Log failures with the exchange correlation id; never raise them to callers.

Notes
-----
- `drain()` waits for outstanding jobs (shutdown, tests).
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable

from relaychat.utils.logging_extras import log_adapter
from relaychat.utils.timing import log_timer

logger = logging.getLogger(__name__)


class PersistenceDispatcher:
    """Ordered, non-blocking executor for gateway jobs."""

    def __init__(self) -> None:
        self._tail: asyncio.Task | None = None
        self._pending: set[asyncio.Task] = set()

    def submit(
        self, label: str, fn: Callable[..., object], *args, cid: str | None = None
    ) -> asyncio.Task:
        """Schedule `fn(*args)` in a thread after every previously submitted job."""
        lad = log_adapter(logger, cid)
        prev = self._tail

        def _job() -> None:
            with log_timer(label, lad):
                fn(*args)

        async def _run() -> None:
            if prev is not None:
                await asyncio.wait([prev])
            try:
                await asyncio.to_thread(_job)
            except Exception as e:
                # Degrades to a locally-visible-only turn; the transcript stays as is.
                lad.error("persist.error", extra={"job": label, "error": str(e)[:200]})

        task = asyncio.create_task(_run())
        self._tail = task
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def drain(self) -> None:
        """Wait until every submitted job has finished."""
        while self._pending:
            await asyncio.wait(list(self._pending))
