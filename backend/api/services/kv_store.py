"""DB-backed key/value store for per-session chat state.

Implements the ``KeyValueStore`` protocol from :mod:`pitwall.session_actor`
on top of the ``session_state`` table. Each put is an upsert committed in its
own transaction, so the last write per (session, key) wins.
"""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from backend.api.db.models import SessionState

logger = logging.getLogger(__name__)


class DatabaseKeyValueStore:
    """Session state persisted through an async SQLAlchemy session factory."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def get(self, namespace: str, key: str) -> Any | None:
        async with self._session_factory() as db:
            result = await db.execute(
                select(SessionState).where(
                    SessionState.session_id == namespace,
                    SessionState.key == key,
                )
            )
            row = result.scalar_one_or_none()
        if row is None:
            return None
        return row.value_json

    async def put(self, namespace: str, key: str, value: Any) -> None:
        async with self._session_factory() as db:
            result = await db.execute(
                select(SessionState).where(
                    SessionState.session_id == namespace,
                    SessionState.key == key,
                )
            )
            existing = result.scalar_one_or_none()
            if existing is not None:
                existing.value_json = value
            else:
                db.add(SessionState(session_id=namespace, key=key, value_json=value))
            await db.commit()
        logger.debug("Saved %s for session %s", key, namespace)
