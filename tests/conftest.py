import asyncio
from contextlib import asynccontextmanager
from pathlib import Path

import pytest
import pytest_asyncio
from sqlalchemy import func, select

from app.core.config import Settings
from app.core.errors import SummarizationError, TranscodeError, TranscriptionError
from app.db.models import Summary
from app.db.store import SessionStore
from app.services.audio_transcoder import PcmAudio
from app.services.container import build_services


class FakeTranscoder:
    """Passes the upload through as 'PCM' and counts acquire/release."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.opened = 0
        self.released = 0

    @asynccontextmanager
    async def decoded(self, audio, filename=None):
        if self.fail:
            raise TranscodeError("could not decode")
        self.opened += 1
        try:
            yield PcmAudio(path=Path("fake.wav"), data=audio, sample_rate=16000, channels=1)
        finally:
            self.released += 1


class FakeTranscriber:
    """'Transcribes' by decoding the audio bytes as UTF-8."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.calls = 0

    async def transcribe(self, pcm):
        self.calls += 1
        if self.fail:
            raise TranscriptionError("model unavailable")
        # vary completion order between concurrent chunks
        await asyncio.sleep(0.001 * (len(pcm.data) % 5))
        return pcm.data.decode()


class FakeSummaryModel:
    def __init__(self, fail: bool = False, reply=None):
        self.fail = fail
        self.reply = reply
        self.transcripts = []

    async def summarize(self, transcript):
        self.transcripts.append(transcript)
        if self.fail:
            raise SummarizationError("model unavailable")
        if self.reply is not None:
            return self.reply
        return f"summary #{len(self.transcripts)} of: {transcript}"


class FakeSubscriber:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.messages = []

    async def send_json(self, data):
        if self.fail:
            raise RuntimeError("socket closed")
        self.messages.append(data)

    def events(self, name=None):
        return [m for m in self.messages if name is None or m["event"] == name]


@pytest.fixture
def settings(tmp_path):
    return Settings(
        DATABASE_URL=f"sqlite+aiosqlite:///{tmp_path / 'scribe-test.db'}",
        SCRIBE_TMP=str(tmp_path / "tmp"),
        GEMINI_API_KEY="test-key",
    )


@pytest_asyncio.fixture
async def store(settings):
    s = SessionStore(settings.DATABASE_URL)
    await s.create_tables()
    try:
        yield s
    finally:
        await s.close()


@pytest.fixture
def transcoder():
    return FakeTranscoder()


@pytest.fixture
def transcriber():
    return FakeTranscriber()


@pytest.fixture
def summary_model():
    return FakeSummaryModel()


@pytest.fixture
def make_services(settings, transcoder, transcriber, summary_model):
    def _make(store=None, **overrides):
        kwargs = dict(
            settings=settings,
            store=store,
            transcoder=transcoder,
            transcriber=transcriber,
            summary_model=summary_model,
        )
        kwargs.update(overrides)
        return build_services(**kwargs)

    return _make


@pytest_asyncio.fixture
async def services(make_services, store):
    return make_services(store=store)


async def count_summaries(store, session_id):
    stmt = select(func.count()).select_from(Summary).where(Summary.session_id == session_id)
    async with store.transaction() as session:
        return (await session.execute(stmt)).scalar()
