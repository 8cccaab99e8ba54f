# ------------------------------------------------------------
# Module: relaychat/core/paths.py
# Purpose: Canonical, CWD-agnostic path roots for runtime data.
# ------------------------------------------------------------

"""Centralized path management for the chat backend.

Responsibilities
----------------
- Resolve the backend root from this file's location (not the CWD).
- Define where runtime artifacts (the SQLite conversation store) live.
- Offer a helper for resolving repo-relative paths.
"""

from __future__ import annotations

from pathlib import Path

# paths.py lives at relaychat/core/paths.py:
#   parents[0] = .../core
#   parents[1] = .../relaychat
#   parents[2] = .../backend
BACKEND_ROOT: Path = Path(__file__).resolve().parents[2]

# runtime artifacts live under ops/data (created lazily by the store)
OPS_ROOT: Path = BACKEND_ROOT / "ops"
DATA_DIR: Path = OPS_ROOT / "data"
CHAT_DB: Path = (DATA_DIR / "chat.sqlite").resolve()


def repo_path(p: str | Path) -> Path:
    """Return an absolute path rooted at the backend directory.

    Notes
    -----
    - Absolute inputs are resolved and returned unchanged.
    - Relative inputs are joined to BACKEND_ROOT.
    """
    p = Path(p).expanduser()
    return p.resolve() if p.is_absolute() else (BACKEND_ROOT / p).resolve()
