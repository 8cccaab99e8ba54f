# ------------------------------------------------------------
# Module: relaychat/api/v1/schemas.py
# Purpose: Request/response models for the v1 API.
# ------------------------------------------------------------

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field


class ChatMessageIn(BaseModel):
    """One role/content pair of an outbound request (images already flattened)."""

    role: Literal["user", "assistant", "system"]
    content: str


class ChatStreamIn(BaseModel):
    messages: list[ChatMessageIn] = Field(..., min_length=1)


class ProviderHealth(BaseModel):
    status: Literal["ok", "error"]
    model: str
    base_url: str
