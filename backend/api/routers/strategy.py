"""Strategy endpoints: stint-based race simulation with commentary."""

from __future__ import annotations

import asyncio
import logging
from typing import Annotated

from fastapi import APIRouter, Depends
from pitwall.assistant import Completer, build_strategy_prompt, request_text
from pitwall.context import SessionContext, build_strategy_digest
from pitwall.session_actor import SessionActorRegistry
from pitwall.strategy import (
    LapSeries,
    StintWindow,
    StrategyParams,
    StrategyResult,
    build_pit_plan,
    simulate_lap_series,
    simulate_strategy,
)

from backend.api.dependencies import get_completer, get_registry
from backend.api.schemas.strategy import StrategyRequest, StrategyResponse
from backend.api.services.serializers import (
    lap_series_to_schema,
    pit_plan_to_schema,
    strategy_result_to_schema,
)

logger = logging.getLogger(__name__)

router = APIRouter()

COMMENTARY_UNAVAILABLE = "Strategy commentary is temporarily unavailable."


def _to_params(body: StrategyRequest) -> StrategyParams:
    return StrategyParams(
        laps=body.laps,
        base_lap_time=body.base_lap_time,
        fuel_per_lap=body.fuel_per_lap,
        tank_size=body.tank_size,
        pit_loss=body.pit_loss,
        tire_degradation_per_lap=body.tire_degradation_per_lap,
        stint_plan=tuple(body.stint_plan) if body.stint_plan else None,
        safety_car_lap=body.safety_car_lap,
        safety_car_delta=body.safety_car_delta,
    )


def _run_simulation(
    params: StrategyParams,
) -> tuple[StrategyResult, LapSeries, list[StintWindow]]:
    return simulate_strategy(params), simulate_lap_series(params), build_pit_plan(params)


@router.post("/sim", response_model=StrategyResponse)
async def simulate(
    body: StrategyRequest,
    registry: Annotated[SessionActorRegistry, Depends(get_registry)],
    completer: Annotated[Completer, Depends(get_completer)],
) -> StrategyResponse:
    """Simulate the race, lay out the pit plan and ask for commentary.

    An infeasible plan is a normal result (``feasible: false``), not an error.
    """
    params = _to_params(body)
    result, series, pit_plan = await asyncio.to_thread(_run_simulation, params)

    commentary = await request_text(
        completer,
        build_strategy_prompt(result, series),
        fallback=COMMENTARY_UNAVAILABLE,
    )

    session_id = (body.session_id or "").strip()
    if session_id:
        digest = build_strategy_digest(result.assumptions, result, commentary)
        await registry.get(session_id).merge_context(SessionContext(strategy=digest))
        logger.info("Merged strategy digest into session %s", session_id)

    return StrategyResponse(
        result=strategy_result_to_schema(result),
        commentary=commentary,
        series=lap_series_to_schema(series),
        pit_plan=pit_plan_to_schema(pit_plan),
    )
