"""Per-session actor: bounded conversation log plus merged analytical context.

Every operation on a session goes through that session's :class:`SessionActor`,
which holds an ``asyncio.Lock`` for the whole operation, including the awaits
on the store and on the inference call. Two chat turns for the same session
therefore never interleave, while different sessions run independently.

State lives in an external key/value store under two keys per session
namespace; the actor reloads it at the start of each operation so that the
store stays the source of truth.
"""

from __future__ import annotations

import asyncio
import copy
import logging
import weakref
from typing import Any, Protocol

from pitwall.assistant import Completer, ConversationTurn, coerce_reply
from pitwall.constants import MAX_TURNS, SYSTEM_INSTRUCTION
from pitwall.context import SessionContext, format_context_digest

logger = logging.getLogger(__name__)

LOG_KEY = "log"
CONTEXT_KEY = "context"


class StoreError(RuntimeError):
    """The durable store failed to read or write session state."""


class KeyValueStore(Protocol):
    """Durable store collaborator, namespaced by session id."""

    async def get(self, namespace: str, key: str) -> Any | None: ...

    async def put(self, namespace: str, key: str, value: Any) -> None: ...


class InMemoryKeyValueStore:
    """Process-local store. Values are deep-copied in and out."""

    def __init__(self) -> None:
        self._data: dict[tuple[str, str], Any] = {}

    async def get(self, namespace: str, key: str) -> Any | None:
        value = self._data.get((namespace, key))
        return copy.deepcopy(value)

    async def put(self, namespace: str, key: str, value: Any) -> None:
        self._data[(namespace, key)] = copy.deepcopy(value)

    def clear(self) -> int:
        """Drop everything. Returns the number of entries removed."""
        count = len(self._data)
        self._data.clear()
        return count


class SessionActor:
    """Serialises all reads and writes for a single session id."""

    def __init__(
        self,
        session_id: str,
        store: KeyValueStore,
        *,
        max_turns: int = MAX_TURNS,
        system_instruction: str = SYSTEM_INSTRUCTION,
    ) -> None:
        self.session_id = session_id
        self.max_turns = max_turns
        self.system_instruction = system_instruction
        self._store = store
        self._lock = asyncio.Lock()

    @property
    def history_limit(self) -> int:
        """Maximum number of stored (and replayed) log entries."""
        return 2 * self.max_turns

    # -- store access ---------------------------------------------------------

    async def _get(self, key: str) -> Any | None:
        try:
            return await self._store.get(self.session_id, key)
        except Exception as e:
            logger.warning("Store read failed for %s/%s", self.session_id, key, exc_info=True)
            raise StoreError(f"Could not read session state ({key})") from e

    async def _put(self, key: str, value: Any) -> None:
        try:
            await self._store.put(self.session_id, key, value)
        except Exception as e:
            logger.warning("Store write failed for %s/%s", self.session_id, key, exc_info=True)
            raise StoreError(f"Could not write session state ({key})") from e

    async def _load_log(self) -> list[ConversationTurn]:
        raw = await self._get(LOG_KEY)
        if not isinstance(raw, list):
            return []
        return [ConversationTurn.from_dict(item) for item in raw if isinstance(item, dict)]

    async def _load_context(self) -> SessionContext:
        raw = await self._get(CONTEXT_KEY)
        return SessionContext.from_dict(raw if isinstance(raw, dict) else None)

    # -- unlocked helpers (callers hold self._lock) -----------------------------

    def _build_messages(
        self,
        log: list[ConversationTurn],
        context: SessionContext,
        user_text: str,
    ) -> list[ConversationTurn]:
        messages = [ConversationTurn(role="system", content=self.system_instruction)]
        digest = format_context_digest(context)
        if digest is not None:
            messages.append(ConversationTurn(role="system", content=digest))
        if self.history_limit > 0:
            messages.extend(log[-self.history_limit :])
        messages.append(ConversationTurn(role="user", content=user_text))
        return messages

    async def _commit(
        self,
        log: list[ConversationTurn],
        user_text: str,
        assistant_text: str,
    ) -> list[ConversationTurn]:
        new_log = [
            *log,
            ConversationTurn(role="user", content=user_text),
            ConversationTurn(role="assistant", content=assistant_text),
        ]
        new_log = new_log[-self.history_limit :] if self.history_limit > 0 else []
        await self._put(LOG_KEY, [t.to_dict() for t in new_log])
        return new_log

    # -- operations -----------------------------------------------------------

    async def append_turn(self, user_text: str) -> list[ConversationTurn]:
        """Assemble the outbound message list for a new user turn.

        System instruction, then the context digest (if any), then the most
        recent ``2 * max_turns`` log entries, then the new user turn. The log
        itself is not modified; pass the reply to :meth:`commit_turn`.
        """
        async with self._lock:
            log = await self._load_log()
            context = await self._load_context()
            return self._build_messages(log, context, user_text)

    async def commit_turn(self, user_text: str, assistant_text: str) -> list[ConversationTurn]:
        """Append the user and assistant turns together and trim the log."""
        async with self._lock:
            log = await self._load_log()
            return await self._commit(log, user_text, assistant_text)

    async def run_turn(self, user_text: str, completer: Completer) -> str:
        """Run a full chat turn while holding the session.

        If inference or the store fails, the exception propagates and nothing
        is appended to the log.
        """
        async with self._lock:
            log = await self._load_log()
            context = await self._load_context()
            messages = self._build_messages(log, context, user_text)
            reply = coerce_reply(await completer.complete(messages))
            await self._commit(log, user_text, reply)
            return reply

    async def merge_context(self, partial: SessionContext) -> SessionContext:
        """Replace every context field that *partial* sets. Returns the result."""
        async with self._lock:
            current = await self._load_context()
            merged = current.merged(partial)
            await self._put(CONTEXT_KEY, merged.to_dict())
            return merged

    async def read_context(self) -> SessionContext:
        async with self._lock:
            return await self._load_context()

    async def read_history(self) -> list[ConversationTurn]:
        async with self._lock:
            return await self._load_log()


class SessionActorRegistry:
    """Hands out exactly one :class:`SessionActor` per session id.

    Actors are created on first access and held weakly: an actor with no
    operation in flight can be collected, and the next access builds a fresh
    one from the store. Any caller still holding or awaiting an actor keeps it
    alive, so concurrent operations on one id always share a lock.
    """

    def __init__(self, store: KeyValueStore, *, max_turns: int = MAX_TURNS) -> None:
        self.store = store
        self.max_turns = max_turns
        self._actors: weakref.WeakValueDictionary[str, SessionActor] = (
            weakref.WeakValueDictionary()
        )

    def get(self, session_id: str) -> SessionActor:
        actor = self._actors.get(session_id)
        if actor is None:
            actor = SessionActor(session_id, self.store, max_turns=self.max_turns)
            self._actors[session_id] = actor
            logger.debug("Created session actor for %s", session_id)
        return actor

    def __len__(self) -> int:
        return len(self._actors)

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._actors
