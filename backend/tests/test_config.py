"""Tests for settings parsing and dependency wiring."""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest
from pitwall.session_actor import InMemoryKeyValueStore

from backend.api import dependencies, main
from backend.api.config import Settings, _parse_cors_origins


class TestCorsParsing:
    def test_json_array(self) -> None:
        assert _parse_cors_origins('["https://a.com","https://b.com"]') == [
            "https://a.com",
            "https://b.com",
        ]

    def test_bracketed_non_json(self) -> None:
        assert _parse_cors_origins("[https://a.com,https://b.com]") == [
            "https://a.com",
            "https://b.com",
        ]

    def test_comma_separated(self) -> None:
        assert _parse_cors_origins("https://a.com, https://b.com") == [
            "https://a.com",
            "https://b.com",
        ]


class TestSettings:
    def test_defaults(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("MAX_TURNS", raising=False)
        monkeypatch.delenv("STORE_BACKEND", raising=False)
        settings = Settings(_env_file=None)  # type: ignore[call-arg]
        assert settings.max_turns == 12
        assert settings.store_backend == "memory"

    def test_env_override(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("MAX_TURNS", "4")
        assert Settings(_env_file=None).max_turns == 4  # type: ignore[call-arg]


class TestDependencies:
    def test_registry_uses_settings(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("MAX_TURNS", "3")
        monkeypatch.setenv("STORE_BACKEND", "memory")
        dependencies.get_settings.cache_clear()
        dependencies.get_registry.cache_clear()
        try:
            registry = dependencies.get_registry()
            assert registry.max_turns == 3
            assert isinstance(registry.store, InMemoryKeyValueStore)
        finally:
            dependencies.get_settings.cache_clear()
            dependencies.get_registry.cache_clear()

    def test_database_backend_builds_db_store(self) -> None:
        from backend.api.services.kv_store import DatabaseKeyValueStore

        settings = Settings(_env_file=None, store_backend="database")  # type: ignore[call-arg]
        assert isinstance(dependencies._build_store(settings), DatabaseKeyValueStore)

    def test_unknown_backend_falls_back_to_memory(self) -> None:
        settings = Settings(_env_file=None, store_backend="redis")  # type: ignore[call-arg]
        assert isinstance(dependencies._build_store(settings), InMemoryKeyValueStore)


class TestLifespan:
    """Startup reads the same cached settings the request dependencies use."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(("backend", "creates"), [("database", True), ("memory", False)])
    async def test_tables_follow_store_backend(
        self, monkeypatch: pytest.MonkeyPatch, backend: str, creates: bool
    ) -> None:
        monkeypatch.setenv("STORE_BACKEND", backend)
        create_tables = AsyncMock()
        monkeypatch.setattr(main, "_create_tables", create_tables)
        dependencies.get_settings.cache_clear()
        try:
            async with main.lifespan(main.app):
                assert dependencies.get_settings().store_backend == backend
        finally:
            dependencies.get_settings.cache_clear()

        assert create_tables.await_count == (1 if creates else 0)
