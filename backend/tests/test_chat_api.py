"""Tests for the chat, history and context endpoints."""

from __future__ import annotations

import asyncio

import pytest
from httpx import AsyncClient
from pitwall.assistant import InferenceError
from pitwall.constants import NO_REPLY_PLACEHOLDER, SYSTEM_INSTRUCTION
from pitwall.session_actor import SessionActorRegistry

from backend.tests.conftest import StubCompleter


@pytest.mark.asyncio
async def test_chat_round_trip(client: AsyncClient, stub_completer: StubCompleter) -> None:
    """POST /api/chat returns the reply and records both turns."""
    stub_completer.queue.append("Box in two laps.")

    response = await client.post("/api/chat", json={"sessionId": "s1", "message": " Pit? "})

    assert response.status_code == 200
    assert response.json() == {"reply": "Box in two laps."}
    sent = stub_completer.calls[0]
    assert sent[0].content == SYSTEM_INSTRUCTION
    assert sent[-1].content == "Pit?"

    history = await client.post("/api/history", json={"sessionId": "s1"})
    assert history.json()["history"] == [
        {"role": "user", "content": "Pit?"},
        {"role": "assistant", "content": "Box in two laps."},
    ]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "body",
    [{"sessionId": "s1", "message": "   "}, {"sessionId": "", "message": "hi"}, {}],
)
async def test_bad_chat_input_rejected(
    client: AsyncClient,
    stub_completer: StubCompleter,
    registry: SessionActorRegistry,
    body: dict[str, str],
) -> None:
    response = await client.post("/api/chat", json=body)
    assert response.status_code == 400
    assert stub_completer.calls == []
    assert len(registry) == 0


@pytest.mark.asyncio
async def test_inference_failure_is_503_and_not_recorded(
    client: AsyncClient, stub_completer: StubCompleter
) -> None:
    stub_completer.queue.append(InferenceError("The assistant is temporarily unavailable."))

    response = await client.post("/api/chat", json={"sessionId": "s1", "message": "hi"})

    assert response.status_code == 503
    history = await client.post("/api/history", json={"sessionId": "s1"})
    assert history.json()["history"] == []


@pytest.mark.asyncio
async def test_non_string_reply_coerced(client: AsyncClient, stub_completer: StubCompleter) -> None:
    stub_completer.queue.append(None)
    response = await client.post("/api/chat", json={"sessionId": "s1", "message": "hi"})
    assert response.json()["reply"] == NO_REPLY_PLACEHOLDER


@pytest.mark.asyncio
async def test_history_is_bounded(client: AsyncClient) -> None:
    for i in range(15):
        await client.post("/api/chat", json={"sessionId": "s1", "message": f"q{i}"})

    history = (await client.post("/api/history", json={"sessionId": "s1"})).json()["history"]

    assert len(history) == 24
    assert history[0] == {"role": "user", "content": "q3"}


@pytest.mark.asyncio
async def test_concurrent_chats_same_session(
    client: AsyncClient, stub_completer: StubCompleter
) -> None:
    """Parallel requests for one session are serialised into whole turns."""
    await asyncio.gather(
        *(client.post("/api/chat", json={"sessionId": "s1", "message": f"q{i}"}) for i in range(4))
    )
    history = (await client.post("/api/history", json={"sessionId": "s1"})).json()["history"]
    assert [t["role"] for t in history] == ["user", "assistant"] * 4


@pytest.mark.asyncio
async def test_history_requires_session(client: AsyncClient) -> None:
    response = await client.post("/api/history", json={})
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_context_empty_for_new_session(client: AsyncClient) -> None:
    response = await client.post("/api/context", json={"sessionId": "fresh"})
    assert response.status_code == 200
    assert response.json() == {"context": {}}
