"""
Gemini-backed transcription of canonical PCM audio.

Minimal API:
- GeminiTranscriber.transcribe(pcm) -> str
  - sends the WAV inline with a literal-transcription instruction.
  - an empty string means no speech was detected; that is not an error.
"""

from __future__ import annotations

from app.core.errors import TranscriptionError
from app.core.logger import get_logger
from app.services.audio_transcoder import PcmAudio
from app.services.gemini_client import GeminiClient, extract_text

log = get_logger(__name__)

TRANSCRIBE_INSTRUCTION = "Transcribe audio to text."


class GeminiTranscriber:
    def __init__(self, client: GeminiClient, instruction: str = TRANSCRIBE_INSTRUCTION) -> None:
        self.client = client
        self.instruction = instruction

    async def transcribe(self, pcm: PcmAudio) -> str:
        resp = await self.client.agenerate_with_audio(pcm.data, pcm.mime_type, self.instruction)
        if not resp.get("ok", True):
            raise TranscriptionError(resp.get("error") or "Transcription request failed")
        text = extract_text(resp)
        if not text:
            log.info("No speech detected in %d bytes of audio", len(pcm.data))
        return text
