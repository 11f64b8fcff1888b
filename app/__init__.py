"""Scribe application package.

This package contains the FastAPI service that turns live audio chunks into
an ordered per-session transcript and a final summary. Subpackages include:
- api: FastAPI route definitions (HTTP and the realtime WebSocket)
- core: configuration, logging and the error taxonomy
- db: SQLAlchemy models and the session store
- services: transcoding, sequencing, ingestion, summarization, broadcasting
- models: Gemini-backed transcription and summarization adapters
- schemas: Pydantic models
"""

__all__ = [
    "api",
    "core",
    "db",
    "services",
    "models",
    "schemas",
]

__version__ = "1.0.0"
