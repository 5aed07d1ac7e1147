"""Pydantic schemas for telemetry analysis endpoints."""

from __future__ import annotations

from backend.api.schemas.common import ApiModel


class TelemetryAnalyzeRequest(ApiModel):
    """Raw CSV text plus an optional session to attach the digest to."""

    csv: str = ""
    session_id: str | None = None


class ColumnStatsSchema(ApiModel):
    """Descriptive statistics for one numeric column."""

    n: int
    min: float
    max: float
    mean: float
    std: float
    trend: float
    outlier_count: int


class TelemetrySummarySchema(ApiModel):
    """Headers, per-column statistics and row count of an upload."""

    headers: list[str]
    stats: dict[str, ColumnStatsSchema]
    row_count: int


class TelemetryAnalyzeResponse(ApiModel):
    """Statistics plus the assistant's free-text analysis."""

    summary: TelemetrySummarySchema
    analysis: str
