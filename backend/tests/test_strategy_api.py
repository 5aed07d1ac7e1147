"""Tests for the strategy simulation endpoint."""

from __future__ import annotations

import pytest
from httpx import AsyncClient

from backend.tests.conftest import StubCompleter


@pytest.mark.asyncio
async def test_simulate_two_stints(client: AsyncClient) -> None:
    """POST /api/strategy/sim returns result, series, pit plan and commentary."""
    response = await client.post(
        "/api/strategy/sim",
        json={"laps": 6, "fuelPerLap": 0.1, "tankSize": 1, "stintPlan": [3, 3]},
    )

    assert response.status_code == 200
    data = response.json()
    result = data["result"]
    assert result["feasible"] is True
    assert result["pits"] == 1
    assert result["totalTime"] == pytest.approx(2 * (90.0 + 90.08 + 90.16) + 22.0)
    assert result["assumptions"]["pit_loss"] == 22.0
    assert data["series"]["pitLaps"] == [3]
    assert len(data["series"]["lapTimes"]) == 6
    assert data["pitPlan"] == [
        {"stint": 1, "startLap": 1, "endLap": 3, "pitAfterLap": 3},
        {"stint": 2, "startLap": 4, "endLap": 6, "pitAfterLap": None},
    ]
    assert data["commentary"] == "Copy that."


@pytest.mark.asyncio
async def test_infeasible_plan_is_not_an_error(client: AsyncClient) -> None:
    response = await client.post("/api/strategy/sim", json={"laps": 6, "stintPlan": [3, 2]})
    assert response.status_code == 200
    assert response.json()["result"]["feasible"] is False


@pytest.mark.asyncio
async def test_snake_case_fields_accepted(client: AsyncClient) -> None:
    response = await client.post(
        "/api/strategy/sim", json={"laps": 3, "base_lap_time": 80, "tire_degradation_per_lap": 0}
    )
    assert response.json()["result"]["totalTime"] == pytest.approx(240.0)


@pytest.mark.asyncio
async def test_missing_laps_is_422(client: AsyncClient) -> None:
    response = await client.post("/api/strategy/sim", json={"stintPlan": [3]})
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_strategy_digest_merged(client: AsyncClient, stub_completer: StubCompleter) -> None:
    """With a sessionId, the strategy digest reaches the next chat prompt."""
    stub_completer.queue.append("One stop is enough.")
    await client.post(
        "/api/strategy/sim",
        json={"laps": 6, "stintPlan": [3, 3], "safetyCarLap": 2, "sessionId": "s1"},
    )

    await client.post("/api/chat", json={"sessionId": "s1", "message": "Thoughts?"})

    prompt = stub_completer.calls[-1]
    assert prompt[1].role == "system"
    assert "Strategy: feasible=yes" in prompt[1].content
    assert "Strategist notes: One stop is enough." in prompt[1].content


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "body",
    [
        {"laps": 3_000_000},
        {"laps": -1},
        {"laps": 10, "stintPlan": [5, 2_000_000]},
        {"laps": 101, "stintPlan": [1] * 101},
    ],
)
async def test_out_of_range_request_is_422(
    client: AsyncClient, stub_completer: StubCompleter, body: dict[str, object]
) -> None:
    """Oversized race distances are rejected before any simulation runs."""
    response = await client.post("/api/strategy/sim", json=body)
    assert response.status_code == 422
    assert stub_completer.calls == []


@pytest.mark.asyncio
async def test_max_laps_accepted(client: AsyncClient) -> None:
    response = await client.post("/api/strategy/sim", json={"laps": 1000, "stintPlan": [500, 500]})
    assert response.status_code == 200
    assert len(response.json()["series"]["lapTimes"]) == 1000
