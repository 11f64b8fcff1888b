"""
Audio transcoding for uploaded chunks.

Browsers ship chunks as webm/ogg/mp4; the transcriber wants 16 kHz mono
s16le WAV. Conversion goes through pydub (ffmpeg) in a worker thread so the
event loop keeps serving other sessions.

Both the uploaded blob and the decoded WAV live under ``SCRIBE_TMP`` only for
the duration of ``AudioTranscoder.decoded``.
"""

from __future__ import annotations

import asyncio
import uuid
from contextlib import asynccontextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import AsyncIterator, Optional

from pydub import AudioSegment

from app.core.config import Settings, get_settings
from app.core.errors import TranscodeError
from app.core.logger import get_logger

log = get_logger(__name__)

DEFAULT_UPLOAD_SUFFIX = ".webm"


@dataclass
class PcmAudio:
    path: Path
    data: bytes
    sample_rate: int
    channels: int
    mime_type: str = "audio/wav"


class AudioTranscoder:
    def __init__(
        self,
        tmp_dir: Path,
        sample_rate: int = 16000,
        channels: int = 1,
        sample_width: int = 2,
    ) -> None:
        self.tmp_dir = Path(tmp_dir)
        self.sample_rate = sample_rate
        self.channels = channels
        self.sample_width = sample_width

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "AudioTranscoder":
        settings = settings or get_settings()
        return cls(
            tmp_dir=Path(settings.SCRIBE_TMP),
            sample_rate=settings.PCM_SAMPLE_RATE,
            channels=settings.PCM_CHANNELS,
            sample_width=settings.PCM_SAMPLE_WIDTH,
        )

    def _convert(self, src: Path, dst: Path) -> bytes:
        audio = AudioSegment.from_file(str(src))
        audio = (
            audio.set_channels(self.channels)
            .set_frame_rate(self.sample_rate)
            .set_sample_width(self.sample_width)
        )
        audio.export(str(dst), format="wav", codec="pcm_s16le")
        return dst.read_bytes()

    @asynccontextmanager
    async def decoded(self, audio: bytes, filename: Optional[str] = None) -> AsyncIterator[PcmAudio]:
        """Decode ``audio`` to canonical PCM for the duration of the block.

        Raises:
            TranscodeError: if the blob cannot be written or decoded.
        """
        suffix = Path(filename).suffix if filename and Path(filename).suffix else DEFAULT_UPLOAD_SUFFIX
        stem = uuid.uuid4().hex
        src = self.tmp_dir / f"{stem}{suffix}"
        dst = self.tmp_dir / f"{stem}.wav"
        try:
            try:
                self.tmp_dir.mkdir(parents=True, exist_ok=True)
                await asyncio.to_thread(src.write_bytes, audio)
                data = await asyncio.to_thread(self._convert, src, dst)
            except Exception as e:
                log.exception("Failed to transcode %d bytes of audio: %s", len(audio), e)
                raise TranscodeError(f"Failed to transcode audio: {e}") from e
            yield PcmAudio(path=dst, data=data, sample_rate=self.sample_rate, channels=self.channels)
        finally:
            _cleanup(src)
            _cleanup(dst)


def _cleanup(path: Path) -> None:
    try:
        path.unlink(missing_ok=True)
    except OSError:
        log.warning("Could not remove temp file %s", path)
