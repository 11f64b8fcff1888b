"""
Database Models

SQLAlchemy models for sessions, their ordered transcript chunks and the
single summary each session may carry.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import (
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()

STATE_RECORDING = "recording"
STATE_COMPLETED = "completed"
STATE_ERROR = "error"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Session(Base):
    """One recording/transcription conversation, keyed by a client-supplied id."""

    __tablename__ = "session"

    id = Column(String(255), primary_key=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    ended_at = Column(DateTime(timezone=True), nullable=True)
    state = Column(String(32), nullable=False, default=STATE_RECORDING)

    chunks = relationship(
        "TranscriptChunk",
        back_populates="session",
        cascade="all, delete-orphan",
        order_by="TranscriptChunk.ordinal",
    )
    summary = relationship(
        "Summary", back_populates="session", uselist=False, cascade="all, delete-orphan"
    )


class TranscriptChunk(Base):
    """Transcribed text of one audio chunk. Immutable once written."""

    __tablename__ = "transcript_chunk"
    __table_args__ = (UniqueConstraint("session_id", "ordinal", name="uq_chunk_session_ordinal"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    session_id = Column(String(255), ForeignKey("session.id"), nullable=False, index=True)
    ordinal = Column(Integer, nullable=False)
    text = Column(Text, nullable=False, default="")
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    session = relationship("Session", back_populates="chunks")


class Summary(Base):
    __tablename__ = "summary"

    session_id = Column(String(255), ForeignKey("session.id"), primary_key=True)
    text = Column(Text, nullable=False, default="")
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    session = relationship("Session", back_populates="summary")
