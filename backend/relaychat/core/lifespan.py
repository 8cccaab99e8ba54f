# ------------------------------------------------------------
# Module: relaychat/core/lifespan.py
# Purpose: Manage FastAPI startup and shutdown lifecycle events.
# ------------------------------------------------------------

"""FastAPI lifespan context for startup and shutdown.

Responsibilities
----------------
- Initialize shared resources at startup: the persistence gateway schema
  and the provider completion client.
- Attach them to `app.state` for the dependency providers.
- Release the provider HTTP pool at shutdown.

Developer Guidance
------------------
- Fail fast on startup errors; do not serve with a broken store.
"""

import logging
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI

from relaychat.chat.client.openai_client import OpenAICompletionClient
from relaychat.core.config import settings
from relaychat.storage.sqlite_gateway import SqliteGateway

logger = logging.getLogger("relaychat.lifespan")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup: gateway + completion client on `app.state`. Shutdown: close client."""
    t0 = time.perf_counter()
    try:
        logger.info("startup begin")
        gateway = SqliteGateway(settings.DB_PATH)
        gateway.ensure_initialized()
        app.state.gateway = gateway
        app.state.completion_client = OpenAICompletionClient.from_settings(settings)
        if not settings.PROVIDER_API_KEY:
            logger.warning("no provider API key configured; completions will abort")
        logger.info("startup ok duration_ms=%.1f", (time.perf_counter() - t0) * 1000)
    except Exception:
        logger.exception("startup failed")
        raise
    try:
        yield
    finally:
        logger.info("shutdown begin")
        await app.state.completion_client.client.close()
        logger.info("shutdown ok")
