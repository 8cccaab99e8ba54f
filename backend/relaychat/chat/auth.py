# ------------------------------------------------------------
# Module: relaychat/chat/auth.py
# Purpose: Identity collaborator interface and a static implementation.
# ------------------------------------------------------------

"""Identity boundary used by the controller and the HTTP layer.

Responsibilities
----------------
- Declare the `IdentityProvider` contract (current user, sign out).
- Provide `StaticIdentity` for the CLI and tests.
- Provide header-based identity extraction for the relay endpoint.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Protocol

USER_HEADER = "x-user-id"


class IdentityProvider(Protocol):
    # Current user id, or None when nobody is signed in.
    def current_user(self) -> str | None: ...

    # Invalidate the session.
    def sign_out(self) -> None: ...


class StaticIdentity:
    """Fixed identity until `sign_out()`."""

    def __init__(self, user_id: str | None):
        self._user_id = user_id or None

    def current_user(self) -> str | None:
        return self._user_id

    def sign_out(self) -> None:
        self._user_id = None


def user_from_headers(headers: Mapping[str, str]) -> str | None:
    """Identity forwarded by the auth proxy/UI; blank counts as missing."""
    value = (headers.get(USER_HEADER) or "").strip()
    return value or None
