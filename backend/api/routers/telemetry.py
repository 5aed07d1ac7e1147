"""Telemetry endpoints: CSV statistics with an AI analysis."""

from __future__ import annotations

import asyncio
import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException
from pitwall.assistant import Completer, build_telemetry_prompt, request_text
from pitwall.context import SessionContext, build_telemetry_digest
from pitwall.session_actor import SessionActorRegistry
from pitwall.telemetry_stats import summarize_telemetry

from backend.api.dependencies import get_completer, get_registry
from backend.api.schemas.telemetry import TelemetryAnalyzeRequest, TelemetryAnalyzeResponse
from backend.api.services.serializers import summary_to_schema

logger = logging.getLogger(__name__)

router = APIRouter()

ANALYSIS_UNAVAILABLE = "AI analysis is temporarily unavailable. The statistics above are complete."


@router.post("/analyze", response_model=TelemetryAnalyzeResponse)
async def analyze_telemetry(
    body: TelemetryAnalyzeRequest,
    registry: Annotated[SessionActorRegistry, Depends(get_registry)],
    completer: Annotated[Completer, Depends(get_completer)],
) -> TelemetryAnalyzeResponse:
    """Compute per-column statistics for a CSV and ask the assistant to read them.

    When ``sessionId`` is given, the telemetry digest replaces that session's
    previous one.
    """
    if not body.csv.strip():
        raise HTTPException(status_code=400, detail="Missing CSV text")

    summary = await asyncio.to_thread(summarize_telemetry, body.csv)
    analysis = await request_text(
        completer,
        build_telemetry_prompt(summary),
        fallback=ANALYSIS_UNAVAILABLE,
    )

    session_id = (body.session_id or "").strip()
    if session_id:
        digest = build_telemetry_digest(summary, analysis)
        await registry.get(session_id).merge_context(SessionContext(telemetry=digest))
        logger.info("Merged telemetry digest into session %s", session_id)

    return TelemetryAnalyzeResponse(summary=summary_to_schema(summary), analysis=analysis)
