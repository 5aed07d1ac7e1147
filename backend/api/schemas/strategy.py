"""Pydantic schemas for strategy simulation endpoints."""

from __future__ import annotations

from typing import Annotated

from pydantic import Field

from backend.api.schemas.common import ApiModel


# Request limits; the simulation allocates per-lap series
MAX_LAPS = 1000
MAX_STINTS = 100

StintLaps = Annotated[int, Field(ge=0, le=MAX_LAPS)]


class StrategyRequest(ApiModel):
    """Strategy inputs. Omitted numeric fields use the simulator defaults."""

    laps: int = Field(ge=0, le=MAX_LAPS)
    base_lap_time: float | None = None
    fuel_per_lap: float | None = None
    tank_size: float | None = None
    pit_loss: float | None = None
    tire_degradation_per_lap: float | None = None
    stint_plan: list[StintLaps] | None = Field(default=None, max_length=MAX_STINTS)
    safety_car_lap: int | None = None
    safety_car_delta: float | None = None
    session_id: str | None = None


class StrategyResultSchema(ApiModel):
    """Feasibility, total race time, pit count and the inputs actually used."""

    feasible: bool
    total_time: float
    pits: int
    assumptions: dict[str, object] = Field(default_factory=dict)


class LapSeriesSchema(ApiModel):
    """Per-lap series for charting."""

    lap_times: list[float]
    fuel_level: list[float]
    pit_laps: list[int]


class StintWindowSchema(ApiModel):
    """One row of the pit plan table."""

    stint: int
    start_lap: int
    end_lap: int
    pit_after_lap: int | None = None


class StrategyResponse(ApiModel):
    """Simulation result with series, pit plan and commentary."""

    result: StrategyResultSchema
    commentary: str
    series: LapSeriesSchema
    pit_plan: list[StintWindowSchema]
