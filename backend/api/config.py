"""Application settings via pydantic-settings."""

from __future__ import annotations

import json

from pydantic_settings import BaseSettings, SettingsConfigDict


def _parse_cors_origins(raw: str) -> list[str]:
    """Parse a CORS origins string, tolerating non-JSON formats.

    Some deploy CLIs strip inner quotes, turning valid JSON like
    ``["https://a.com"]`` into ``[https://a.com]``.  This handles:
    - Valid JSON arrays: ``["https://a.com","https://b.com"]``
    - Bracketed non-JSON: ``[https://a.com,https://b.com]``
    - Comma-separated: ``https://a.com,https://b.com``
    """
    try:
        parsed = json.loads(raw)
        if isinstance(parsed, list):
            return [str(x) for x in parsed]
    except (json.JSONDecodeError, ValueError):
        pass

    stripped = raw.strip("[] ")
    return [s.strip().strip('"').strip("'") for s in stripped.split(",") if s.strip()]


class Settings(BaseSettings):
    """Pitwall API configuration.

    Values are loaded from environment variables, falling back to a ``.env``
    file in the project root.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Inference
    anthropic_api_key: str = ""
    inference_model: str = "claude-haiku-4-5-20251001"
    inference_max_tokens: int = 1024
    inference_timeout_s: float = 60.0
    inference_max_retries: int = 2

    # Conversation window (turns; the log keeps 2x this many messages)
    max_turns: int = 12

    # Session state store: "memory" or "database"
    store_backend: str = "memory"
    database_url: str = "sqlite+aiosqlite:///./pitwall.db"

    # CORS: stored as raw string to avoid pydantic-settings' strict JSON
    # parsing of list types.
    cors_origins_raw: str = '["http://localhost:3000"]'

    # Debug mode
    debug: bool = False

    @property
    def cors_origins(self) -> list[str]:
        """Parse CORS origins from the raw string."""
        return _parse_cors_origins(self.cors_origins_raw)
