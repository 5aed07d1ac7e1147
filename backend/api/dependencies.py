"""FastAPI dependency injection functions."""

from __future__ import annotations

import logging
from functools import lru_cache

from pitwall.assistant import AnthropicCompleter, Completer
from pitwall.session_actor import InMemoryKeyValueStore, KeyValueStore, SessionActorRegistry

from backend.api.config import Settings

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return the singleton application settings."""
    return Settings()


def _build_store(settings: Settings) -> KeyValueStore:
    if settings.store_backend == "database":
        from backend.api.db.database import async_session_factory
        from backend.api.services.kv_store import DatabaseKeyValueStore

        logger.info("Using database session store")
        return DatabaseKeyValueStore(async_session_factory)
    if settings.store_backend != "memory":
        logger.warning("Unknown store_backend %r, falling back to memory", settings.store_backend)
    logger.info("Using in-memory session store")
    return InMemoryKeyValueStore()


@lru_cache(maxsize=1)
def get_registry() -> SessionActorRegistry:
    """Return the process-wide session actor registry."""
    settings = get_settings()
    return SessionActorRegistry(_build_store(settings), max_turns=settings.max_turns)


@lru_cache(maxsize=1)
def get_completer() -> Completer:
    """Return the inference collaborator configured from settings."""
    settings = get_settings()
    return AnthropicCompleter(
        settings.anthropic_api_key or None,
        model=settings.inference_model,
        max_tokens=settings.inference_max_tokens,
        timeout_s=settings.inference_timeout_s,
        max_retries=settings.inference_max_retries,
    )
