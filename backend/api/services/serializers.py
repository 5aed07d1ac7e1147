"""Data serialization helpers: pitwall dataclasses to API schemas.

Bridges the gap between pitwall's internal dataclasses (which may hold
numpy scalars or tuples) and the Pydantic response schemas.
"""

from __future__ import annotations

from dataclasses import fields
from typing import Any

import numpy as np
from pitwall.context import SessionContext
from pitwall.strategy import LapSeries, StintWindow, StrategyResult
from pitwall.telemetry_stats import TelemetrySummary

from backend.api.schemas.chat import ChatTurnSchema
from backend.api.schemas.strategy import (
    LapSeriesSchema,
    StintWindowSchema,
    StrategyResultSchema,
)
from backend.api.schemas.telemetry import ColumnStatsSchema, TelemetrySummarySchema


def dataclass_to_dict(obj: Any) -> dict[str, Any]:
    """Recursively convert a dataclass to a JSON-serializable dict.

    Handles nested dataclasses, numpy arrays and scalars, and tuples.
    """
    if not hasattr(obj, "__dataclass_fields__"):
        return {"value": obj}

    result: dict[str, Any] = {}
    for f in fields(obj):
        result[f.name] = _to_jsonable(getattr(obj, f.name))
    return result


def _to_jsonable(value: Any) -> Any:
    if isinstance(value, np.ndarray):
        return value.tolist()
    if isinstance(value, np.generic):
        return value.item()
    if hasattr(value, "__dataclass_fields__"):
        return dataclass_to_dict(value)
    if isinstance(value, dict):
        return {k: _to_jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_to_jsonable(item) for item in value]
    return value


def summary_to_schema(summary: TelemetrySummary) -> TelemetrySummarySchema:
    """Convert a TelemetrySummary to its response schema, keeping header order."""
    return TelemetrySummarySchema(
        headers=list(summary.headers),
        stats={
            name: ColumnStatsSchema.model_validate(dataclass_to_dict(stats))
            for name, stats in summary.stats.items()
        },
        row_count=summary.row_count,
    )


def strategy_result_to_schema(result: StrategyResult) -> StrategyResultSchema:
    return StrategyResultSchema.model_validate(dataclass_to_dict(result))


def lap_series_to_schema(series: LapSeries) -> LapSeriesSchema:
    return LapSeriesSchema(
        lap_times=list(series.lap_times),
        fuel_level=list(series.fuel_level),
        pit_laps=list(series.pit_laps),
    )


def pit_plan_to_schema(windows: list[StintWindow]) -> list[StintWindowSchema]:
    return [StintWindowSchema.model_validate(dataclass_to_dict(w)) for w in windows]


def context_to_dict(context: SessionContext) -> dict[str, Any]:
    """Session context as plain JSON (unset fields omitted)."""
    return _to_jsonable(context.to_dict())  # type: ignore[no-any-return]


def turns_to_schema(turns: list[Any]) -> list[ChatTurnSchema]:
    return [ChatTurnSchema(role=t.role, content=t.content) for t in turns]
