"""
Error taxonomy for the transcript pipeline.

Adapters and the store raise these; routes map them to HTTP responses.
Nothing here is retried inside the service: callers re-upload the chunk or
re-request the summary.
"""

from __future__ import annotations


class ScribeError(Exception):
    """Base class for every failure surfaced by the pipeline."""


class ValidationError(ScribeError):
    """Missing or invalid request fields. Raised before any adapter runs."""


class TranscodeError(ScribeError):
    pass


class TranscriptionError(ScribeError):
    pass


class SummarizationError(ScribeError):
    pass


class PersistenceError(ScribeError):
    """Store unreachable or a constraint was violated."""


class SequencerError(ScribeError):
    pass


class EmptyTranscriptError(ScribeError):
    """Summarize was requested for a session with no chunks.

    Expected condition, not a server fault.
    """

    def __init__(self, session_id: str) -> None:
        super().__init__(f"No transcript available for session {session_id}")
        self.session_id = session_id
