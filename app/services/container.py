"""
Process-scoped services.

Everything here is constructed once at startup and handed to the components
that need it; routes reach it through ``app.state.services``. Tests build a
``Services`` with fakes and pass it to ``create_app``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from app.core.config import Settings, get_settings
from app.core.logger import get_logger
from app.db.store import SessionStore
from app.models.model_summarizer import GeminiSummarizer
from app.models.model_transcriber import GeminiTranscriber
from app.services.audio_transcoder import AudioTranscoder
from app.services.broadcaster import EventBroadcaster
from app.services.gemini_client import GeminiClient
from app.services.ingestion import ChunkIngestionPipeline, Transcriber
from app.services.sequencer import SessionSequencer
from app.services.summarizer import SessionSummarizer, SummaryModel

log = get_logger(__name__)


@dataclass
class Services:
    store: SessionStore
    broadcaster: EventBroadcaster
    sequencer: SessionSequencer
    ingestion: ChunkIngestionPipeline
    summarizer: SessionSummarizer
    gemini: Optional[GeminiClient] = field(default=None)

    async def start(self) -> None:
        await self.store.create_tables()

    async def aclose(self) -> None:
        if self.gemini is not None:
            await self.gemini.aclose()
        await self.store.close()


def build_services(
    settings: Optional[Settings] = None,
    store: Optional[SessionStore] = None,
    transcoder: Optional[AudioTranscoder] = None,
    transcriber: Optional[Transcriber] = None,
    summary_model: Optional[SummaryModel] = None,
) -> Services:
    """Wire the pipeline. Any collaborator not given is built from settings."""
    settings = settings or get_settings()
    store = store or SessionStore(settings.DATABASE_URL, echo=settings.DATABASE_ECHO)
    transcoder = transcoder or AudioTranscoder.from_settings(settings)

    gemini: Optional[GeminiClient] = None
    if transcriber is None or summary_model is None:
        gemini = GeminiClient(settings)
    transcriber = transcriber or GeminiTranscriber(gemini)
    summary_model = summary_model or GeminiSummarizer(gemini)

    broadcaster = EventBroadcaster()
    sequencer = SessionSequencer(store.max_ordinal)
    ingestion = ChunkIngestionPipeline(store, transcoder, transcriber, sequencer, broadcaster)
    summarizer = SessionSummarizer(store, summary_model, broadcaster)
    log.info("Services built (model=%s)", settings.GEMINI_MODEL)
    return Services(
        store=store,
        broadcaster=broadcaster,
        sequencer=sequencer,
        ingestion=ingestion,
        summarizer=summarizer,
        gemini=gemini,
    )
