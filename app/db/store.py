"""
Session store

Async SQLAlchemy persistence for sessions, transcript chunks and summaries.
One ``SessionStore`` is built at process start and shared by every request;
each public method runs in its own short transaction. Driver errors surface
as :class:`PersistenceError`.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import datetime
from typing import AsyncIterator, List, Optional

from sqlalchemy import event, func, select, text, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import selectinload

from app.core.errors import PersistenceError
from app.core.logger import get_logger
from app.db.models import (
    STATE_COMPLETED,
    STATE_ERROR,
    STATE_RECORDING,
    Base,
    Session,
    Summary,
    TranscriptChunk,
    utcnow,
)
from app.schemas.session import ChunkOut, SessionOut

log = get_logger(__name__)


class SessionStore:
    def __init__(self, url: str, echo: bool = False) -> None:
        self.url = url
        self.echo = echo
        self.engine: Optional[AsyncEngine] = None
        self.session_factory: Optional[async_sessionmaker[AsyncSession]] = None
        self._initialized = False

    def initialize(self) -> None:
        if self._initialized:
            return
        self.engine = create_async_engine(self.url, echo=self.echo, pool_pre_ping=True)
        self.session_factory = async_sessionmaker(self.engine, class_=AsyncSession, expire_on_commit=False)

        if self.engine.dialect.name == "sqlite":
            @event.listens_for(self.engine.sync_engine, "connect")
            def _sqlite_pragma(dbapi_connection, connection_record):
                cursor = dbapi_connection.cursor()
                cursor.execute("PRAGMA foreign_keys=ON")
                cursor.close()

        self._initialized = True
        log.info("Session store initialized (%s)", self.engine.dialect.name)

    async def create_tables(self) -> None:
        self.initialize()
        try:
            async with self.engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to create tables: {e}") from e
        log.info("Database tables ready")

    async def close(self) -> None:
        if self.engine is not None:
            await self.engine.dispose()
            log.info("Database connections closed")
        self.engine = None
        self.session_factory = None
        self._initialized = False

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[AsyncSession]:
        """Yield a session inside a transaction; commit on exit, rollback on error."""
        self.initialize()
        try:
            async with self.session_factory() as session:
                async with session.begin():
                    yield session
        except SQLAlchemyError as e:
            log.error("Database session error: %s", e)
            raise PersistenceError(str(e)) from e

    async def health_check(self) -> bool:
        try:
            async with self.transaction() as session:
                result = await session.execute(text("SELECT 1"))
                return result.scalar() == 1
        except PersistenceError:
            return False

    def _insert(self, model):
        if self.engine.dialect.name == "postgresql":
            return pg_insert(model)
        return sqlite_insert(model)

    # -------------------------
    # Sessions
    # -------------------------
    async def ensure_session(self, session_id: str) -> None:
        """Create the session if it is unseen; no-op otherwise."""
        self.initialize()
        stmt = (
            self._insert(Session)
            .values(id=session_id, created_at=utcnow(), state=STATE_RECORDING)
            .on_conflict_do_nothing(index_elements=["id"])
        )
        async with self.transaction() as session:
            await session.execute(stmt)

    async def mark_session_state(self, session_id: str, state: str) -> None:
        async with self.transaction() as session:
            await session.execute(update(Session).where(Session.id == session_id).values(state=state))

    async def complete_session(self, session_id: str, summary: str, ended_at: Optional[datetime] = None) -> None:
        """Upsert the summary and close the session in one transaction."""
        self.initialize()
        ended_at = ended_at or utcnow()
        stmt = self._insert(Summary).values(session_id=session_id, text=summary, updated_at=ended_at)
        stmt = stmt.on_conflict_do_update(
            index_elements=["session_id"],
            set_={"text": stmt.excluded.text, "updated_at": stmt.excluded.updated_at},
        )
        async with self.transaction() as session:
            await session.execute(stmt)
            await session.execute(
                update(Session)
                .where(Session.id == session_id)
                .values(ended_at=ended_at, state=STATE_COMPLETED)
            )

    async def get_session(self, session_id: str) -> Optional[SessionOut]:
        async with self.transaction() as session:
            row = await session.get(
                Session,
                session_id,
                options=[selectinload(Session.chunks), selectinload(Session.summary)],
            )
            return _to_session_out(row) if row is not None else None

    async def list_sessions(self) -> List[SessionOut]:
        """All sessions, newest first, each with its summary and ordered chunks."""
        stmt = (
            select(Session)
            .options(selectinload(Session.chunks), selectinload(Session.summary))
            .order_by(Session.created_at.desc())
        )
        async with self.transaction() as session:
            rows = (await session.execute(stmt)).scalars().all()
            return [_to_session_out(row) for row in rows]

    # -------------------------
    # Chunks
    # -------------------------
    async def add_chunk(self, session_id: str, ordinal: int, text_: str) -> None:
        async with self.transaction() as session:
            session.add(TranscriptChunk(session_id=session_id, ordinal=ordinal, text=text_))
            # a new chunk reopens a session left in the error state
            await session.execute(
                update(Session)
                .where(Session.id == session_id, Session.state == STATE_ERROR)
                .values(state=STATE_RECORDING)
            )

    async def max_ordinal(self, session_id: str) -> Optional[int]:
        stmt = select(func.max(TranscriptChunk.ordinal)).where(TranscriptChunk.session_id == session_id)
        async with self.transaction() as session:
            return (await session.execute(stmt)).scalar()

    async def list_chunks(self, session_id: str) -> List[ChunkOut]:
        stmt = (
            select(TranscriptChunk)
            .where(TranscriptChunk.session_id == session_id)
            .order_by(TranscriptChunk.ordinal.asc())
        )
        async with self.transaction() as session:
            rows = (await session.execute(stmt)).scalars().all()
            return [ChunkOut.model_validate(row) for row in rows]

    # -------------------------
    # Summaries
    # -------------------------
    async def get_summary(self, session_id: str) -> Optional[str]:
        async with self.transaction() as session:
            row = await session.get(Summary, session_id)
            return row.text if row is not None else None


def _to_session_out(row: Session) -> SessionOut:
    return SessionOut(
        id=row.id,
        created_at=row.created_at,
        ended_at=row.ended_at,
        state=row.state,
        summary=row.summary.text if row.summary is not None else None,
        chunks=[ChunkOut.model_validate(c) for c in sorted(row.chunks, key=lambda c: c.ordinal)],
    )
