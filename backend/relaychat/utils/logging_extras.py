# ------------------------------------------------------------
# Module: relaychat/utils/logging_extras.py
# Purpose: Provide a helper for contextual logging with correlation IDs.
# ------------------------------------------------------------

"""Logger adapters that attach a per-exchange correlation id.

Responsibilities
----------------
- Wrap standard loggers so every record of one exchange carries its `cid`.
- Keep the standard logging API intact.
- Accept a missing `cid` gracefully.

Notes
-----
- The controller mints one `cid` per exchange and passes it to the
  completion client and the relay, so a single grep follows a turn from
  submit to persistence.
"""

import logging
import uuid


def new_cid() -> str:
    """Return a fresh correlation id (short hex, log friendly)."""
    return uuid.uuid4().hex[:12]


def log_adapter(logger: logging.Logger, cid: str | None) -> logging.LoggerAdapter:
    """Return a `LoggerAdapter` that injects an optional correlation ID.

    Parameters
    ----------
    logger : logging.Logger
        The base logger to wrap.
    cid : str | None
        Correlation id of the exchange or request. If None, no extra field is added.

    Example
    -------
    >>> log = log_adapter(logging.getLogger(__name__), cid="abc123")
    >>> log.info("relay.open")
    """
    return logging.LoggerAdapter(logger, extra={"cid": cid} if cid else {})
