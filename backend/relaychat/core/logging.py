# ------------------------------------------------------------
# Module: relaychat/core/logging.py
# Purpose: Configure unified logging for the chat backend and its server.
# ------------------------------------------------------------

"""Unified logging configuration for the chat backend.

Summary:
    Centralizes all logging setup so the API, the relay and the CLI share one
    format and one level.

Details:
    - Reads verbosity and access log settings from `relaychat.core.config.settings`.
    - Ensures Uvicorn's loggers share the application level.
    - Supports a full mute mode for CI runs.
    - Uses a plain stdout stream handler suitable for container logs.

Developer Guidance:
    - Call `configure_logging()` once at startup (see `relaychat/main.py`).
    - Retrieve module loggers via `logging.getLogger(__name__)`.
    - Never modify logging configuration in other modules.
"""

import logging
import sys

from relaychat.core.config import Settings
from relaychat.core.config import settings as _settings


def configure_logging(settings: Settings = _settings) -> None:
    """Configure global logging behavior for the whole process.

    Behavior:
        - Disables all logs if `MUTE_ALL_LOGS` is True.
        - Otherwise applies the standard format and level.
        - Aligns Uvicorn's internal loggers with the global level.
        - Disables Uvicorn access logs if `ACCESS_LOG` is False.

    Example:
        >>> from relaychat.core.logging import configure_logging
        >>> configure_logging()
        >>> logging.getLogger("relaychat").info("logging configured")
    """
    if settings.MUTE_ALL_LOGS:
        logging.disable(logging.CRITICAL)
        return

    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
        stream=sys.stdout,
    )

    for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        logging.getLogger(name).setLevel(settings.LOG_LEVEL)

    # The SDK logs every retry at INFO; keep it at WARNING unless debugging.
    if settings.LOG_LEVEL != "DEBUG":
        logging.getLogger("openai").setLevel(logging.WARNING)
        logging.getLogger("httpx").setLevel(logging.WARNING)

    if not settings.ACCESS_LOG:
        logging.getLogger("uvicorn.access").disabled = True
