# ------------------------------------------------------------
# Module: relaychat/chat/errors.py
# Purpose: Exception taxonomy for the chat core.
# ------------------------------------------------------------

"""Exceptions raised by the chat core.

Responsibilities
----------------
- Separate precondition failures (rejected before any network call) from
  state violations and storage failures.
- Give the HTTP layer and the CLI one base class (`ChatError`) to catch.

Notes
-----
- Upstream provider failures are *not* exceptions inside the core: the
  completion client turns them into an explicit `Abort` event. The only
  place an abort becomes an exception is the byte transport
  (`UpstreamAborted`), where the HTTP body must end abnormally.
"""


class ChatError(Exception):
    """Base class for all chat core errors."""


class PreconditionError(ChatError):
    """No identity, empty turn or malformed request; nothing was created."""


class ExchangeRejected(ChatError):
    """An exchange is already in flight for this conversation."""


class TranscriptError(ChatError):
    """Illegal transcript mutation (missing/finalized turn, second streaming turn)."""


class RelayError(ChatError):
    """Relay misuse, e.g. a second consumer."""


class UpstreamAborted(ChatError):
    """The provider stream aborted while bytes were being relayed."""


class PersistenceError(ChatError):
    """A persistence gateway call failed."""
