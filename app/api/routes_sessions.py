from typing import List

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse

from app.api.deps import get_services
from app.core.errors import EmptyTranscriptError, PersistenceError, ScribeError
from app.core.logger import get_logger
from app.schemas.session import SessionOut, SummarizeRequest, SummaryResponse
from app.services.container import Services

router = APIRouter()
log = get_logger(__name__)

NO_TRANSCRIPT_MESSAGE = "No transcript available for this session."


@router.post("/summarize", response_model=SummaryResponse)
async def summarize(body: SummarizeRequest, services: Services = Depends(get_services)):
    """Summarize the session's full transcript and mark it completed."""
    session_id = body.sessionId
    if not session_id or not session_id.strip():
        return JSONResponse(status_code=422, content={"error": "sessionId is required"})
    try:
        summary = await services.summarizer.summarize(session_id)
    except EmptyTranscriptError:
        return JSONResponse(status_code=400, content={"summary": NO_TRANSCRIPT_MESSAGE})
    except ScribeError:
        return JSONResponse(status_code=500, content={"error": "Failed to summarize transcript."})
    return {"summary": summary}


@router.get("/sessions", response_model=List[SessionOut])
async def list_sessions(services: Services = Depends(get_services)):
    """Session history, newest first, with summaries and ordered chunks."""
    try:
        return await services.store.list_sessions()
    except PersistenceError:
        log.exception("Failed to fetch sessions")
        return JSONResponse(status_code=500, content={"error": "Failed to fetch sessions."})


@router.get("/sessions/{session_id}", response_model=SessionOut)
async def get_session(session_id: str, services: Services = Depends(get_services)):
    """One session's persisted state; late realtime joiners start from here."""
    try:
        session = await services.store.get_session(session_id)
    except PersistenceError:
        log.exception("Failed to fetch session %s", session_id)
        raise HTTPException(status_code=500, detail="Failed to fetch session")
    if session is None:
        raise HTTPException(status_code=404, detail="Session not found")
    return session
