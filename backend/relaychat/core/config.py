# ------------------------------------------------------------
# Module: relaychat/core/config.py
# Purpose: Central, typed application settings with .env / env overrides.
# ------------------------------------------------------------

"""Typed configuration hub for the chat backend.

Responsibilities
----------------
- Provide strongly-typed toggles, paths and provider parameters.
- Validate sampling knobs so bad values fail at startup, not at the provider.
- Load overrides from a `.env` file and `RELAYCHAT_*` environment variables.

Notes
-----
- Import the module-level `settings`; do not re-create Settings() per call.
- Tests build their own instance via `Settings(...)` or `Settings.from_env()`.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Literal

from dotenv import load_dotenv
from pydantic import BaseModel, Field, computed_field, field_validator

from relaychat.core import paths

ENV_PREFIX = "RELAYCHAT_"


class Settings(BaseModel):
    """
    Application configuration.

    Notes
    -----
    - Extras are forbidden to surface typos/unknown keys early.
    - `DB_PATH` is resolved to an absolute path; the store creates parents.
    """

    model_config = dict(extra="forbid")

    # App toggles
    APP_ENV: Literal["dev", "prod"] = "dev"
    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    ACCESS_LOG: bool = True
    MUTE_ALL_LOGS: bool = False
    CORS_ORIGINS: list[str] = [
        "http://localhost:3000",
        "http://localhost:5173",
    ]

    # Provider (any OpenAI-compatible endpoint; DeepSeek by default)
    PROVIDER_BASE_URL: str = "https://api.deepseek.com"
    PROVIDER_API_KEY: str | None = None
    PROVIDER_MAX_RETRIES: int = Field(2, ge=0, le=10)
    GEN_MODEL: str = "deepseek-chat"

    # ---- Fixed generation parameters for every exchange ----
    LLM_TEMP: float = Field(0.7, ge=0.0, le=2.0, description="Sampling temperature")
    LLM_MAX_TOKENS: int = Field(
        4000, ge=16, le=8192, description="Maximum output length in tokens"
    )

    # Conversation behaviour
    TITLE_MAX_CHARS: int = Field(50, ge=1, description="Lazily-created title length")
    FAILURE_MESSAGE: str = "Sorry, an error occurred. Please try again."

    # Bundled persistence gateway (SQLite file)
    DB_PATH: Path = Field(default_factory=lambda: paths.CHAT_DB)

    # Where a UI-side controller reaches the relay endpoint
    RELAY_URL: str = "http://127.0.0.1:8000/v1/chat/stream"

    # Accept comma-separated string or list for CORS_ORIGINS; normalize to list[str].
    @field_validator("CORS_ORIGINS", mode="before")
    @classmethod
    def _coerce_origins(cls, v: str | list[str]):
        if isinstance(v, str):
            return [s.strip() for s in v.split(",") if s.strip()]
        return v

    @field_validator("DB_PATH", mode="before")
    @classmethod
    def _coerce_path(cls, v: str | Path):
        return paths.repo_path(v)

    # Generation parameters sent with every completion request.
    @computed_field(return_type=dict)
    def completion_params(self) -> dict:
        """Keyword arguments for `chat.completions.create`."""
        return {"temperature": self.LLM_TEMP, "max_tokens": self.LLM_MAX_TOKENS}

    @classmethod
    def from_env(cls, env_file: str | Path | None = None, **overrides) -> Settings:
        """Build settings from `.env` + `RELAYCHAT_*` variables + explicit overrides.

        Notes
        -----
        - `DEEPSEEK_API_KEY` is honoured when no prefixed key is set.
        - Explicit keyword overrides win over the environment.
        """
        load_dotenv(env_file)
        values: dict[str, object] = {}
        for name in cls.model_fields:
            raw = os.getenv(ENV_PREFIX + name)
            if raw is not None:
                values[name] = raw
        if "PROVIDER_API_KEY" not in values and os.getenv("DEEPSEEK_API_KEY"):
            values["PROVIDER_API_KEY"] = os.getenv("DEEPSEEK_API_KEY")
        values.update(overrides)
        return cls(**values)


# Eagerly instantiate once at import.
settings = Settings.from_env()
