from __future__ import annotations

from pydantic import BaseModel

TRANSCRIPT_UPDATE = "transcript_update"
SESSION_STATE = "session_state"
SUMMARY_READY = "summary_ready"
SESSION_ERROR = "session_error"


class TranscriptUpdate(BaseModel):
    sessionId: str
    ordinal: int
    text: str


class SessionState(BaseModel):
    sessionId: str
    state: str  # recording | completed


class SummaryReady(BaseModel):
    sessionId: str
    summary: str


class SessionErrorEvent(BaseModel):
    sessionId: str
    error: str
