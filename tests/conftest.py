"""Shared test fixtures for pitwall tests."""

from __future__ import annotations

import pytest

from pitwall.assistant import ConversationTurn

LAP_CSV = (
    "lap,lap_time,tire_temp,fuel,driver\n"
    "1,92.10,78.0,7.88,ANA\n"
    "2,91.85,80.5,7.76,ANA\n"
    "3,91.90,82.0,7.64,ANA\n"
    "4,92.40,83.5,7.52,ANA\n"
    "5,95.70,85.0,7.40,ANA\n"
)


class RecordingCompleter:
    """Completer stub that records every message list and replays canned replies."""

    def __init__(self, replies: list[object] | None = None, default: object = "ok") -> None:
        self.replies = list(replies or [])
        self.default = default
        self.calls: list[list[ConversationTurn]] = []

    async def complete(self, messages: list[ConversationTurn]) -> object:
        self.calls.append(list(messages))
        if self.replies:
            return self.replies.pop(0)
        return self.default


class FailingCompleter:
    """Completer stub that always raises the given exception."""

    def __init__(self, exc: Exception) -> None:
        self.exc = exc
        self.calls = 0

    async def complete(self, messages: list[ConversationTurn]) -> object:
        self.calls += 1
        raise self.exc


@pytest.fixture
def lap_csv() -> str:
    """Five laps of telemetry with a mixed text column."""
    return LAP_CSV


@pytest.fixture
def completer() -> RecordingCompleter:
    return RecordingCompleter()
