"""
Chunk ingestion: raw audio -> ordered, persisted, broadcast transcript entry.

    transcode -> transcribe -> claim ordinal -> persist -> broadcast

The chunk is written and its ``transcript_update`` published while the
session's sequencer slot is held, so updates leave in ordinal order. The
slot is committed as soon as the row is stored; an abort before that (error
or cancellation) makes the sequencer re-seed from storage, so ordinals stay
gap-free. Failures abort before anything is persisted, are published
as ``session_error`` and re-raised; the caller re-uploads the chunk.
"""

from __future__ import annotations

from typing import Any, Dict, Optional, Protocol

from app.core.errors import ScribeError, ValidationError
from app.core.logger import get_logger
from app.db.models import STATE_ERROR, STATE_RECORDING
from app.db.store import SessionStore
from app.schemas.events import (
    SESSION_ERROR,
    SESSION_STATE,
    TRANSCRIPT_UPDATE,
    SessionErrorEvent,
    SessionState,
    TranscriptUpdate,
)
from app.services.audio_transcoder import AudioTranscoder, PcmAudio
from app.services.broadcaster import EventBroadcaster
from app.services.sequencer import SessionSequencer

log = get_logger(__name__)


class Transcriber(Protocol):
    async def transcribe(self, pcm: PcmAudio) -> str: ...


class ChunkIngestionPipeline:
    def __init__(
        self,
        store: SessionStore,
        transcoder: AudioTranscoder,
        transcriber: Transcriber,
        sequencer: SessionSequencer,
        broadcaster: EventBroadcaster,
    ) -> None:
        self.store = store
        self.transcoder = transcoder
        self.transcriber = transcriber
        self.sequencer = sequencer
        self.broadcaster = broadcaster

    async def ingest(self, session_id: Optional[str], audio: Optional[bytes], filename: Optional[str] = None) -> str:
        """Transcribe one chunk and append it to the session's transcript.

        Returns the transcribed text (possibly empty).
        """
        if not session_id or not session_id.strip():
            raise ValidationError("sessionId is required")
        if not audio:
            raise ValidationError("audio is required")

        try:
            await self.store.ensure_session(session_id)
            async with self.transcoder.decoded(audio, filename) as pcm:
                text = await self.transcriber.transcribe(pcm)
                async with self.sequencer.claim(session_id) as slot:
                    ordinal = slot.ordinal
                    await self.store.add_chunk(session_id, ordinal, text)
                    slot.commit()
                    log.info("Chunk %d saved/transcribed for session %s", ordinal, session_id)
                    await self._publish(
                        session_id,
                        TRANSCRIPT_UPDATE,
                        TranscriptUpdate(sessionId=session_id, ordinal=ordinal, text=text).model_dump(),
                    )
                await self._publish(
                    session_id,
                    SESSION_STATE,
                    SessionState(sessionId=session_id, state=STATE_RECORDING).model_dump(),
                )
        except ScribeError as e:
            log.exception("Chunk ingestion failed for session %s", session_id)
            await self._fail(session_id, e)
            raise
        return text

    async def _fail(self, session_id: str, error: Exception) -> None:
        try:
            await self.store.mark_session_state(session_id, STATE_ERROR)
        except ScribeError:
            log.warning("Could not mark session %s as errored", session_id)
        await self._publish(
            session_id,
            SESSION_ERROR,
            SessionErrorEvent(sessionId=session_id, error=str(error)).model_dump(),
        )

    async def _publish(self, session_id: str, event: str, payload: Dict[str, Any]) -> None:
        try:
            await self.broadcaster.publish(session_id, event, payload)
        except Exception:
            log.exception("Broadcast of %s failed for session %s", event, session_id)
