from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict


class ChunkOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    ordinal: int
    text: str


class SessionOut(BaseModel):
    """Session row with its summary and chunks, as returned by the history endpoints."""

    id: str
    created_at: datetime
    ended_at: Optional[datetime] = None
    state: str
    summary: Optional[str] = None
    chunks: List[ChunkOut] = []


class SummarizeRequest(BaseModel):
    sessionId: Optional[str] = None


class TranscriptResponse(BaseModel):
    transcript: str


class SummaryResponse(BaseModel):
    summary: str
