"""Column-wise descriptive statistics for uploaded lap telemetry CSVs.

The parser is deliberately loose: every line is split on commas, every cell is
trimmed, and a cell becomes a number only when it is a plain decimal literal.
Anything else stays text, so a column may mix numbers and strings.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

import numpy as np

from pitwall.constants import OUTLIER_Z_THRESHOLD

# Optional minus, ASCII digits, optional fraction. No exponents, no thousands separators.
_NUMERIC_RE = re.compile(r"^-?[0-9]+(\.[0-9]+)?$")
_LINE_SPLIT_RE = re.compile(r"\r?\n")

Cell = float | str
Row = dict[str, Cell]


@dataclass
class ParsedTelemetry:
    """Header names and typed rows from a telemetry CSV."""

    headers: list[str] = field(default_factory=list)
    rows: list[Row] = field(default_factory=list)


@dataclass(frozen=True)
class ColumnStats:
    """Descriptive statistics over the numeric cells of one column."""

    n: int
    min: float
    max: float
    mean: float
    std: float  # population (ddof=0)
    trend: float  # last - first, in row order
    outlier_count: int


@dataclass(frozen=True)
class TelemetrySummary:
    """Result of one analysis request: headers, per-column stats and row count."""

    headers: list[str]
    stats: dict[str, ColumnStats]
    row_count: int


def _coerce_cell(raw: str) -> Cell:
    """Convert a trimmed cell to float when it is a strict numeric literal."""
    if raw and _NUMERIC_RE.match(raw):
        return float(raw)
    return raw


def parse_telemetry_csv(text: str) -> ParsedTelemetry:
    """Parse CSV text into headers and typed rows.

    The first line is the header row. Shorter data lines are padded with empty
    strings; extra cells beyond the header are ignored. Never raises.
    """
    stripped = text.strip() if text else ""
    if not stripped:
        return ParsedTelemetry()

    lines = _LINE_SPLIT_RE.split(stripped)
    headers = [h.strip() for h in lines[0].split(",")]

    rows: list[Row] = []
    for line in lines[1:]:
        parts = [p.strip() for p in line.split(",")]
        row: Row = {}
        for i, name in enumerate(headers):
            row[name] = _coerce_cell(parts[i] if i < len(parts) else "")
        rows.append(row)

    return ParsedTelemetry(headers=headers, rows=rows)


def numeric_series(rows: list[Row], column: str) -> list[float]:
    """Return the numeric cells of *column* in row order, skipping text cells."""
    values: list[float] = []
    for row in rows:
        cell = row.get(column)
        if isinstance(cell, float):
            values.append(cell)
    return values


def _column_stats(values: list[float]) -> ColumnStats:
    arr = np.asarray(values, dtype=float)
    lo = float(np.min(arr))
    hi = float(np.max(arr))

    if lo == hi:
        # Constant column: exact mean, zero spread, no outliers
        return ColumnStats(
            n=len(values),
            min=lo,
            max=hi,
            mean=lo,
            std=0.0,
            trend=values[-1] - values[0],
            outlier_count=0,
        )

    # Summation rounding can push the mean a hair outside [min, max]
    mean = min(max(float(np.mean(arr)), lo), hi)
    std = float(np.std(arr))

    outliers = 0
    if std > 0.0:
        z = np.abs(arr - mean) / std
        outliers = int(np.count_nonzero(z >= OUTLIER_Z_THRESHOLD))

    return ColumnStats(
        n=len(values),
        min=lo,
        max=hi,
        mean=mean,
        std=std,
        trend=values[-1] - values[0],
        outlier_count=outliers,
    )


def compute_column_stats(rows: list[Row], headers: list[str]) -> dict[str, ColumnStats]:
    """Compute stats for every column that has at least one numeric cell.

    Columns with no numeric cells are left out of the mapping entirely.
    Keys follow header order.
    """
    stats: dict[str, ColumnStats] = {}
    for name in headers:
        if name in stats:
            continue
        values = numeric_series(rows, name)
        if values:
            stats[name] = _column_stats(values)
    return stats


def summarize_telemetry(text: str) -> TelemetrySummary:
    """Parse *text* and compute its column statistics in one step."""
    parsed = parse_telemetry_csv(text)
    return TelemetrySummary(
        headers=parsed.headers,
        stats=compute_column_stats(parsed.rows, parsed.headers),
        row_count=len(parsed.rows),
    )
