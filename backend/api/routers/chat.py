"""Chat endpoints: one conversational turn per request, plus history and context reads."""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException
from pitwall.assistant import Completer
from pitwall.session_actor import SessionActorRegistry

from backend.api.dependencies import get_completer, get_registry
from backend.api.schemas.chat import ChatRequest, ChatResponse, ContextResponse, HistoryResponse
from backend.api.schemas.common import SessionRequest
from backend.api.services.serializers import context_to_dict, turns_to_schema

logger = logging.getLogger(__name__)

router = APIRouter()


def _require_session_id(raw: str) -> str:
    session_id = raw.strip()
    if not session_id:
        raise HTTPException(status_code=400, detail="Missing sessionId")
    return session_id


@router.post("/chat", response_model=ChatResponse)
async def chat(
    body: ChatRequest,
    registry: Annotated[SessionActorRegistry, Depends(get_registry)],
    completer: Annotated[Completer, Depends(get_completer)],
) -> ChatResponse:
    """Run one chat turn for a session.

    The session actor is held from prompt assembly through the inference call
    to the log commit, so concurrent turns for one session queue up.
    """
    session_id = _require_session_id(body.session_id)
    message = body.message.strip()
    if not message:
        raise HTTPException(status_code=400, detail="Missing message")

    reply = await registry.get(session_id).run_turn(message, completer)
    logger.info("Chat turn completed for session %s", session_id)
    return ChatResponse(reply=reply)


@router.post("/history", response_model=HistoryResponse)
async def history(
    body: SessionRequest,
    registry: Annotated[SessionActorRegistry, Depends(get_registry)],
) -> HistoryResponse:
    """Return the stored conversation log for a session, oldest first."""
    session_id = _require_session_id(body.session_id)
    turns = await registry.get(session_id).read_history()
    return HistoryResponse(history=turns_to_schema(turns))


@router.post("/context", response_model=ContextResponse)
async def context(
    body: SessionRequest,
    registry: Annotated[SessionActorRegistry, Depends(get_registry)],
) -> ContextResponse:
    """Return the merged telemetry/strategy context for a session."""
    session_id = _require_session_id(body.session_id)
    ctx = await registry.get(session_id).read_context()
    return ContextResponse(context=context_to_dict(ctx))
