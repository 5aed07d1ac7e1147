"""Test fixtures for the backend test suite."""

from __future__ import annotations

from collections.abc import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from pitwall.assistant import ConversationTurn
from pitwall.session_actor import InMemoryKeyValueStore, SessionActorRegistry

from backend.api.dependencies import get_completer, get_registry
from backend.api.main import app

SAMPLE_CSV = (
    "lap,lap_time,brake_temp,voltage,note\n"
    "1,92.1,410,13.9,out\n"
    "2,91.8,455,13.8,\n"
    "3,91.9,470,13.8,\n"
    "4,92.4,490,13.7,traffic\n"
    "5,95.7,640,13.5,\n"
)


class StubCompleter:
    """Completer returning queued replies (or raising queued exceptions)."""

    def __init__(self) -> None:
        self.queue: list[object] = []
        self.default: object = "Copy that."
        self.calls: list[list[ConversationTurn]] = []

    async def complete(self, messages: list[ConversationTurn]) -> object:
        self.calls.append(list(messages))
        item = self.queue.pop(0) if self.queue else self.default
        if isinstance(item, Exception):
            raise item
        return item


@pytest.fixture
def registry() -> SessionActorRegistry:
    """A fresh in-memory session registry per test."""
    return SessionActorRegistry(InMemoryKeyValueStore())


@pytest.fixture
def stub_completer() -> StubCompleter:
    return StubCompleter()


@pytest.fixture
def sample_csv() -> str:
    return SAMPLE_CSV


@pytest_asyncio.fixture
async def client(
    registry: SessionActorRegistry,
    stub_completer: StubCompleter,
) -> AsyncGenerator[AsyncClient, None]:
    """Yield an async HTTP test client wired to the FastAPI app.

    The session registry and inference collaborator are replaced per test.
    """
    app.dependency_overrides[get_registry] = lambda: registry
    app.dependency_overrides[get_completer] = lambda: stub_completer
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.pop(get_registry, None)
    app.dependency_overrides.pop(get_completer, None)
