from typing import Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile
from fastapi.responses import JSONResponse

from app.api.deps import get_services
from app.core.errors import ScribeError, ValidationError
from app.core.logger import get_logger
from app.schemas.session import TranscriptResponse
from app.services.container import Services

router = APIRouter()
log = get_logger(__name__)


@router.post("/upload-chunk", response_model=TranscriptResponse)
async def upload_chunk(
    sessionId: Optional[str] = Form(None),
    audio: Optional[UploadFile] = File(None),
    services: Services = Depends(get_services),
):
    """Transcribe one audio chunk and append it to the session transcript."""
    data = await audio.read() if audio is not None else b""
    filename = audio.filename if audio is not None else None
    try:
        transcript = await services.ingestion.ingest(sessionId, data, filename)
    except ValidationError as e:
        return JSONResponse(status_code=422, content={"error": str(e)})
    except ScribeError:
        return JSONResponse(status_code=500, content={"error": "Failed to process/transcribe chunk."})
    return {"transcript": transcript}
