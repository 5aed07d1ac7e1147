"""Per-session analytical context and its prompt digest.

A session remembers at most two things: the latest telemetry digest and the
latest strategy digest. Merging replaces whole fields; nothing inside a
digest is ever merged piecewise.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any

from pitwall.constants import (
    DIGEST_ANALYSIS_CHARS,
    DIGEST_COMMENTARY_CHARS,
    DIGEST_HEADERS_CHARS,
    DIGEST_NOTABLE_COLUMNS,
)
from pitwall.strategy import StrategyResult
from pitwall.telemetry_stats import TelemetrySummary


@dataclass(frozen=True)
class TelemetryDigest:
    """Condensed telemetry summary kept in a session's context."""

    row_count: int
    headers: tuple[str, ...]
    notable: str
    analysis: str

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TelemetryDigest:
        return cls(
            row_count=int(data.get("row_count", 0)),
            headers=tuple(str(h) for h in data.get("headers", [])),
            notable=str(data.get("notable", "")),
            analysis=str(data.get("analysis", "")),
        )


@dataclass(frozen=True)
class StrategyDigest:
    """The latest strategy run: its inputs, result and commentary."""

    params: dict[str, Any]
    result: StrategyResult
    commentary: str

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> StrategyDigest:
        raw_result = data.get("result") or {}
        return cls(
            params=dict(data.get("params") or {}),
            result=StrategyResult(
                feasible=bool(raw_result.get("feasible", False)),
                total_time=float(raw_result.get("total_time", 0.0)),
                pits=int(raw_result.get("pits", 0)),
                assumptions=dict(raw_result.get("assumptions") or {}),
            ),
            commentary=str(data.get("commentary", "")),
        )


@dataclass(frozen=True)
class SessionContext:
    """Analytical context for one session. Each field is set independently."""

    telemetry: TelemetryDigest | None = None
    strategy: StrategyDigest | None = None

    def merged(self, partial: SessionContext) -> SessionContext:
        """Return a copy where every field set on *partial* replaces ours."""
        return SessionContext(
            telemetry=partial.telemetry if partial.telemetry is not None else self.telemetry,
            strategy=partial.strategy if partial.strategy is not None else self.strategy,
        )

    def is_empty(self) -> bool:
        return self.telemetry is None and self.strategy is None

    def to_dict(self) -> dict[str, Any]:
        """JSON-ready form; unset fields are omitted."""
        out: dict[str, Any] = {}
        if self.telemetry is not None:
            out["telemetry"] = asdict(self.telemetry)
            out["telemetry"]["headers"] = list(self.telemetry.headers)
        if self.strategy is not None:
            out["strategy"] = asdict(self.strategy)
        return out

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> SessionContext:
        if not data:
            return cls()
        telemetry = data.get("telemetry")
        strategy = data.get("strategy")
        return cls(
            telemetry=TelemetryDigest.from_dict(telemetry) if telemetry else None,
            strategy=StrategyDigest.from_dict(strategy) if strategy else None,
        )


def _notable_line(summary: TelemetrySummary) -> str:
    parts = []
    for name, stats in list(summary.stats.items())[:DIGEST_NOTABLE_COLUMNS]:
        parts.append(f"{name}: trend {stats.trend:+.2f}, outliers {stats.outlier_count}")
    return "; ".join(parts)


def build_telemetry_digest(summary: TelemetrySummary, analysis: str) -> TelemetryDigest:
    """Condense a telemetry summary and its analyst text for the session context."""
    return TelemetryDigest(
        row_count=summary.row_count,
        headers=tuple(summary.headers),
        notable=_notable_line(summary),
        analysis=analysis,
    )


def build_strategy_digest(
    params: dict[str, Any],
    result: StrategyResult,
    commentary: str,
) -> StrategyDigest:
    """Bundle a strategy run for the session context."""
    return StrategyDigest(params=dict(params), result=result, commentary=commentary)


def _fmt_param(value: Any) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (list, tuple)):
        return "/".join(_fmt_param(v) for v in value) or "-"
    return "-" if value is None else str(value)


def _param_echo(params: dict[str, Any]) -> str:
    """Compact one-line echo of the strategy inputs."""
    keys = [
        ("laps", "laps"),
        ("base", "base_lap_time"),
        ("fuel/lap", "fuel_per_lap"),
        ("tank", "tank_size"),
        ("pit", "pit_loss"),
        ("deg", "tire_degradation_per_lap"),
        ("stints", "stint_plan"),
    ]
    return ", ".join(f"{label}={_fmt_param(params.get(key))}" for label, key in keys)


def format_context_digest(context: SessionContext) -> str | None:
    """Render the context as a system-message body, or None when empty.

    Built fresh for every prompt. Truncation lengths are exact.
    """
    if context.is_empty():
        return None

    lines = ["Session context (latest results; cite numbers when relevant):"]

    tel = context.telemetry
    if tel is not None:
        headers_text = ", ".join(tel.headers)[:DIGEST_HEADERS_CHARS]
        lines.append(f"Telemetry: {tel.row_count} rows. Columns: {headers_text}")
        lines.append(f"Notable: {tel.notable or 'none'}")
        lines.append(f"Analyst notes: {tel.analysis[:DIGEST_ANALYSIS_CHARS]}")

    strat = context.strategy
    if strat is not None:
        res = strat.result
        lines.append(
            f"Strategy: feasible={'yes' if res.feasible else 'no'}, "
            f"total time {res.total_time:.3f}s, pits {res.pits}"
        )
        lines.append(f"Params: {_param_echo(strat.params)}")
        lines.append(f"Strategist notes: {strat.commentary[:DIGEST_COMMENTARY_CHARS]}")

    return "\n".join(lines)
