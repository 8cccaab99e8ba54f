# ------------------------------------------------------------
# Module: relaychat/api/v1/chat_stream.py
# Purpose: Relay endpoint streaming completion fragments to the browser.
# ------------------------------------------------------------

"""
FastAPI endpoint relaying provider fragments as a raw chunked byte stream.

Responsibilities
----------------
- Validate the outbound request and the caller identity before any network call
- Open one completion stream per request and relay it through `StreamRelay`
- Send each fragment's bytes as its own chunk (no per-chunk envelope)
- Apply proxy-safe headers so chunks are not buffered on the way
- Cancel the upstream request when the browser disconnects
"""

import logging
import uuid

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import StreamingResponse
from pydantic import ValidationError

from relaychat.api.v1.deps import get_completion_client, require_user
from relaychat.api.v1.schemas import ChatStreamIn
from relaychat.chat.client.protocols import CompletionClient
from relaychat.chat.relay import StreamRelay

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/stream")
async def chat_stream(
    req: Request,
    user_id: str = Depends(require_user),
    client: CompletionClient = Depends(get_completion_client),
):
    try:
        body = await req.json()
    except ValueError:
        raise HTTPException(status_code=400, detail="invalid JSON body")
    if not isinstance(body, dict) or not isinstance(body.get("messages"), list):
        raise HTTPException(status_code=400, detail="messages array is required")
    try:
        payload = ChatStreamIn.model_validate(body)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=e.errors(include_url=False))

    cid = req.headers.get("x-correlation-id") or uuid.uuid4().hex[:12]
    messages = [m.model_dump() for m in payload.messages]
    logger.info(
        "chat.stream start",
        extra={"cid": cid, "user_id": user_id, "messages": len(messages)},
    )

    relay = StreamRelay(client.stream(messages, cid=cid), cid=cid)
    return StreamingResponse(
        relay.iter_bytes(),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",
        },
    )
