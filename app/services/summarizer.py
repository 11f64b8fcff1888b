from __future__ import annotations

from typing import Any, Dict, Protocol

from app.core.errors import EmptyTranscriptError, ScribeError
from app.core.logger import get_logger
from app.db.models import STATE_COMPLETED, utcnow
from app.db.store import SessionStore
from app.schemas.events import (
    SESSION_ERROR,
    SESSION_STATE,
    SUMMARY_READY,
    SessionErrorEvent,
    SessionState,
    SummaryReady,
)
from app.services.broadcaster import EventBroadcaster

log = get_logger(__name__)


class SummaryModel(Protocol):
    async def summarize(self, transcript: str) -> str: ...


class SessionSummarizer:
    def __init__(self, store: SessionStore, model: SummaryModel, broadcaster: EventBroadcaster) -> None:
        self.store = store
        self.model = model
        self.broadcaster = broadcaster

    async def summarize(self, session_id: str) -> str:
        """Summarize the session's full transcript and close the session.

        Re-running replaces the stored summary. With no chunks, raises
        :class:`EmptyTranscriptError` and writes nothing.
        """
        try:
            chunks = await self.store.list_chunks(session_id)
            if not chunks:
                raise EmptyTranscriptError(session_id)
            full_transcript = " ".join(c.text for c in chunks)

            summary = await self.model.summarize(full_transcript)
            await self.store.complete_session(session_id, summary, ended_at=utcnow())
        except EmptyTranscriptError:
            log.info("Summarize requested for session %s with no transcript", session_id)
            raise
        except ScribeError as e:
            log.exception("Summarization failed for session %s", session_id)
            await self._publish(
                session_id,
                SESSION_ERROR,
                SessionErrorEvent(sessionId=session_id, error=str(e)).model_dump(),
            )
            raise

        log.info("Summary saved for session %s (%d chunks)", session_id, len(chunks))
        await self._publish(
            session_id, SUMMARY_READY, SummaryReady(sessionId=session_id, summary=summary).model_dump()
        )
        await self._publish(
            session_id, SESSION_STATE, SessionState(sessionId=session_id, state=STATE_COMPLETED).model_dump()
        )
        return summary

    async def _publish(self, session_id: str, event: str, payload: Dict[str, Any]) -> None:
        try:
            await self.broadcaster.publish(session_id, event, payload)
        except Exception:
            log.exception("Broadcast of %s failed for session %s", event, session_id)
