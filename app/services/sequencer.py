"""
Per-session ordinal assignment.

Each session gets an in-memory counter guarded by its own ``asyncio.Lock``;
sessions never contend with each other. The counter is seeded once per
process from the highest persisted ordinal, under the session lock, and is
only re-read from storage after a claim that did not commit.
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Awaitable, Callable, Dict, Optional

from app.core.errors import SequencerError
from app.core.logger import get_logger

log = get_logger(__name__)

MaxOrdinalLoader = Callable[[str], Awaitable[Optional[int]]]


class SessionSequencer:
    def __init__(self, load_max_ordinal: MaxOrdinalLoader) -> None:
        self._load_max_ordinal = load_max_ordinal
        self._locks: Dict[str, asyncio.Lock] = {}
        self._next: Dict[str, int] = {}

    def _lock_for(self, session_id: str) -> asyncio.Lock:
        return self._locks.setdefault(session_id, asyncio.Lock())

    async def _seed(self, session_id: str) -> int:
        # caller holds the session lock
        if session_id not in self._next:
            try:
                current = await self._load_max_ordinal(session_id)
            except Exception as e:
                raise SequencerError(f"Failed to seed ordinal for session {session_id}: {e}") from e
            self._next[session_id] = 0 if current is None else current + 1
            log.debug("Seeded sequencer for session %s at %d", session_id, self._next[session_id])
        return self._next[session_id]

    async def next_ordinal(self, session_id: str) -> int:
        """Reserve and return the next ordinal for ``session_id``.

        Standalone counterpart of :meth:`claim` for callers that do not write
        under the session lock.
        """
        async with self._lock_for(session_id):
            ordinal = await self._seed(session_id)
            self._next[session_id] = ordinal + 1
            return ordinal

    @asynccontextmanager
    async def claim(self, session_id: str) -> AsyncIterator[OrdinalSlot]:
        """Hold the session's slot while the caller writes the chunk.

        The caller calls ``slot.commit()`` once the chunk is stored; from then
        on the ordinal is consumed whatever happens in the rest of the block.
        Leaving the block uncommitted (error or cancellation) drops the cached
        counter, so the next claim re-seeds from the highest stored ordinal.
        """
        async with self._lock_for(session_id):
            ordinal = await self._seed(session_id)
            slot = OrdinalSlot(ordinal, lambda: self._advance(session_id, ordinal))
            try:
                yield slot
            finally:
                if not slot.committed:
                    self.forget(session_id)

    def _advance(self, session_id: str, ordinal: int) -> None:
        self._next[session_id] = ordinal + 1

    def forget(self, session_id: str) -> None:
        """Drop the cached counter; the next claim re-seeds from storage."""
        self._next.pop(session_id, None)


class OrdinalSlot:
    def __init__(self, ordinal: int, on_commit: Callable[[], None]) -> None:
        self.ordinal = ordinal
        self.committed = False
        self._on_commit = on_commit

    def commit(self) -> None:
        if not self.committed:
            self.committed = True
            self._on_commit()
