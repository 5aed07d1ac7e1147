"""Claude API integration for the Pitwall assistant.

The core treats inference as an opaque text-completion call: an ordered list
of role-tagged turns goes in, a string comes out. :class:`AnthropicCompleter`
is the production implementation; tests swap in their own ``Completer``.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
from dataclasses import dataclass
from typing import Any, Literal, Protocol

from pitwall.constants import NO_REPLY_PLACEHOLDER
from pitwall.strategy import LapSeries, StrategyResult
from pitwall.telemetry_stats import TelemetrySummary

logger = logging.getLogger(__name__)

# Anthropic client settings for resilience against transient API errors (429, 529, 5xx)
_API_MAX_RETRIES = 2
_API_TIMEOUT_S = 60.0
_DEFAULT_MODEL = "claude-haiku-4-5-20251001"

Role = Literal["system", "user", "assistant"]

MISSING_KEY_REPLY = "Set ANTHROPIC_API_KEY to enable the Pitwall assistant."

TELEMETRY_ANALYST_SYSTEM = (
    "You are a race engineer reviewing lap telemetry statistics. "
    "Reply with 3-6 short bullet points: what looks healthy, what is trending the "
    "wrong way, and which columns have outliers worth checking. Admit uncertainty."
)

STRATEGIST_SYSTEM = (
    "You are a race strategist. Given a simulated stint plan and its result, "
    "reply with 3-5 short bullet points on feasibility, pit timing and tire wear. "
    "If the plan is infeasible, say why in one line."
)


class InferenceError(RuntimeError):
    """The inference collaborator failed or timed out for one operation."""


@dataclass(frozen=True)
class ConversationTurn:
    """One role-tagged message in a conversation."""

    role: Role
    content: str

    def to_dict(self) -> dict[str, str]:
        return {"role": self.role, "content": self.content}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ConversationTurn:
        role = data.get("role", "user")
        if role not in ("system", "user", "assistant"):
            role = "user"
        return cls(role=role, content=str(data.get("content", "")))


class Completer(Protocol):
    """Anything that turns an ordered message list into reply text."""

    async def complete(self, messages: list[ConversationTurn]) -> object: ...


def coerce_reply(raw: object) -> str:
    """Best-effort conversion of an inference result to text.

    Strings pass through. Objects or dicts carrying a string ``response`` or
    ``output_text`` use that. Anything else is JSON-encoded, and values that
    cannot be encoded become a fixed placeholder.
    """
    if isinstance(raw, str):
        return raw
    if raw is None:
        return NO_REPLY_PLACEHOLDER

    for attr in ("response", "output_text"):
        value = raw.get(attr) if isinstance(raw, dict) else getattr(raw, attr, None)
        if isinstance(value, str):
            return value

    try:
        return json.dumps(raw)
    except (TypeError, ValueError):
        return NO_REPLY_PLACEHOLDER


def _split_system(messages: list[ConversationTurn]) -> tuple[str, list[dict[str, str]]]:
    """Separate system turns (Anthropic takes them as one ``system`` string)."""
    system_parts = [m.content for m in messages if m.role == "system"]
    chat = [m.to_dict() for m in messages if m.role != "system"]
    return "\n\n".join(system_parts), chat


class AnthropicCompleter:
    """Completer backed by the Anthropic Messages API.

    The blocking SDK call runs in a worker thread. Without an API key every
    call returns :data:`MISSING_KEY_REPLY` instead of reaching out.
    """

    def __init__(
        self,
        api_key: str | None = None,
        *,
        model: str = _DEFAULT_MODEL,
        max_tokens: int = 1024,
        timeout_s: float = _API_TIMEOUT_S,
        max_retries: int = _API_MAX_RETRIES,
    ) -> None:
        self.api_key = api_key if api_key is not None else os.environ.get("ANTHROPIC_API_KEY", "")
        self.model = model
        self.max_tokens = max_tokens
        self.timeout_s = timeout_s
        self.max_retries = max_retries
        self._client: Any = None

    def _get_client(self) -> Any:
        if self._client is None:
            import anthropic

            self._client = anthropic.Anthropic(
                api_key=self.api_key,
                max_retries=self.max_retries,
                timeout=self.timeout_s,
            )
        return self._client

    def _call(self, messages: list[ConversationTurn]) -> object:
        import anthropic

        system, chat = _split_system(messages)
        try:
            msg = self._get_client().messages.create(
                model=self.model,
                max_tokens=self.max_tokens,
                system=system,
                messages=chat,  # type: ignore[arg-type]
            )
        except anthropic.APIError as e:
            logger.warning("Inference call failed after retries: %s", e)
            raise InferenceError("The assistant is temporarily unavailable.") from e

        if not msg.content:
            return None
        blk = msg.content[0]
        return blk.text if hasattr(blk, "text") else blk

    async def complete(self, messages: list[ConversationTurn]) -> object:
        if not self.api_key:
            return MISSING_KEY_REPLY
        return await asyncio.to_thread(self._call, messages)


def _format_stats_table(summary: TelemetrySummary) -> str:
    lines = ["Column | n | min | max | mean | std | trend | outliers"]
    lines.append("--- | --- | --- | --- | --- | --- | --- | ---")
    for name, s in summary.stats.items():
        lines.append(
            f"{name} | {s.n} | {s.min:.3f} | {s.max:.3f} | {s.mean:.3f} "
            f"| {s.std:.3f} | {s.trend:+.3f} | {s.outlier_count}"
        )
    if not summary.stats:
        lines.append("(no numeric columns)")
    return "\n".join(lines)


def build_telemetry_prompt(summary: TelemetrySummary) -> list[ConversationTurn]:
    """Messages asking for a short analysis of a telemetry summary."""
    prompt = (
        f"Rows: {summary.row_count}\n"
        f"Columns: {', '.join(summary.headers)}\n\n"
        f"{_format_stats_table(summary)}\n\n"
        "Trend is last value minus first value. Outliers use |z| >= 2."
    )
    return [
        ConversationTurn(role="system", content=TELEMETRY_ANALYST_SYSTEM),
        ConversationTurn(role="user", content=prompt),
    ]


def build_strategy_prompt(
    result: StrategyResult,
    series: LapSeries | None = None,
) -> list[ConversationTurn]:
    """Messages asking for commentary on a simulated strategy."""
    assumptions = "\n".join(f"- {k}: {v}" for k, v in result.assumptions.items())
    lines = [
        "## Inputs",
        assumptions,
        "",
        "## Result",
        f"- feasible: {'yes' if result.feasible else 'no'}",
        f"- total time: {result.total_time:.3f}s",
        f"- pit stops: {result.pits}",
    ]
    if series is not None and series.lap_times:
        lines.append(f"- pit after laps: {', '.join(str(p) for p in series.pit_laps) or 'none'}")
        lines.append(
            f"- slowest lap: {max(series.lap_times):.3f}s, "
            f"fastest lap: {min(series.lap_times):.3f}s"
        )
    return [
        ConversationTurn(role="system", content=STRATEGIST_SYSTEM),
        ConversationTurn(role="user", content="\n".join(lines)),
    ]


async def request_text(
    completer: Completer,
    messages: list[ConversationTurn],
    *,
    fallback: str,
) -> str:
    """Run one completion, degrading to *fallback* if inference fails."""
    try:
        raw = await completer.complete(messages)
    except InferenceError:
        logger.warning("Inference unavailable, using fallback text", exc_info=True)
        return fallback
    return coerce_reply(raw)
