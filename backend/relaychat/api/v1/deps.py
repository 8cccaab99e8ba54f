# ------------------------------------------------------------
# Module: relaychat/api/v1/deps.py
# Purpose: FastAPI dependencies for shared app-state objects and identity.
# ------------------------------------------------------------

"""Dependency providers for v1 routes.

Responsibilities
----------------
- Expose the completion client and gateway attached at startup
  (`app.state`), so tests can swap them via `dependency_overrides`.
- Resolve the caller identity; a missing identity is a 401 before any
  network call.
"""

from __future__ import annotations

from fastapi import HTTPException, Request

from relaychat.chat.auth import user_from_headers
from relaychat.chat.client.protocols import CompletionClient
from relaychat.storage.protocols import PersistenceGateway


def get_completion_client(request: Request) -> CompletionClient:
    return request.app.state.completion_client


def get_gateway(request: Request) -> PersistenceGateway:
    return request.app.state.gateway


def require_user(request: Request) -> str:
    user_id = user_from_headers(request.headers)
    if user_id is None:
        raise HTTPException(status_code=401, detail="missing identity")
    return user_id
