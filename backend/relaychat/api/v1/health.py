# ------------------------------------------------------------
# Module: relaychat/api/v1/health.py
# Purpose: Readiness and provider connectivity probes.
# ------------------------------------------------------------

"""Health check endpoints for the chat backend.

Summary:
    Lightweight probes for orchestrators and for the UI's connection check.

Details:
    - `/v1/health/ready` pings the persistence gateway; 200 `{"status": "ready"}`
      or 503 `{"status": "degraded"}`.
    - `/v1/health/provider` asks the completion provider for its model list;
      200 with `status="ok"` or 503 with `status="error"`.

Developer Guidance:
    - Keep these fast; never raise uncaught exceptions from a probe.
"""

import asyncio
import logging

from fastapi import APIRouter, Depends, Response

from relaychat.api.v1.deps import get_completion_client, get_gateway
from relaychat.api.v1.schemas import ProviderHealth
from relaychat.chat.client.protocols import CompletionClient
from relaychat.core.config import settings
from relaychat.storage.protocols import PersistenceGateway

router: APIRouter = APIRouter()
log = logging.getLogger("relaychat.api.health")


@router.get("/ready")
async def ready(
    res: Response, gateway: PersistenceGateway = Depends(get_gateway)
) -> dict[str, str]:
    """Readiness probe: 200 when storage answers, 503 otherwise."""
    ok = await asyncio.to_thread(gateway.ping)
    if ok:
        return {"status": "ready"}
    log.warning("ready check failed")
    res.status_code = 503
    return {"status": "degraded"}


@router.get("/provider", response_model=ProviderHealth)
async def provider(
    res: Response, client: CompletionClient = Depends(get_completion_client)
) -> ProviderHealth:
    """Provider connectivity check (the UI's "test connection")."""
    ok = await client.ping()
    if not ok:
        res.status_code = 503
    return ProviderHealth(
        status="ok" if ok else "error",
        model=settings.GEN_MODEL,
        base_url=settings.PROVIDER_BASE_URL,
    )
