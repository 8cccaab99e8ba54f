# ------------------------------------------------------------
# Module: relaychat/api/routes.py
# Purpose: Compose and expose all v1 FastAPI routers.
# ------------------------------------------------------------

"""Composition root for versioned API routing.

Responsibilities
----------------
- Create the v1 APIRouter composition root (mounted under /v1 by main).
- Mount health and chat sub-routers with stable prefixes and tags.
"""

from __future__ import annotations

from fastapi import APIRouter

from relaychat.api.v1.chat_stream import router as chat_stream_router
from relaychat.api.v1.health import router as health_router

router: APIRouter = APIRouter()

# Tags double as doc group names; keep inclusion order stable.
router.include_router(health_router, prefix="/health", tags=["health"])
router.include_router(chat_stream_router, prefix="/chat", tags=["chat"])
