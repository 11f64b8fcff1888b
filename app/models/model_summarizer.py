"""
Gemini-backed summarization of a full session transcript.

The prompt is fixed; the transcript is appended verbatim so language
mixing in the source survives into the summary.
"""

from __future__ import annotations

from app.core.errors import SummarizationError
from app.core.logger import get_logger
from app.services.gemini_client import GeminiClient, extract_text

log = get_logger(__name__)

SUMMARY_PROMPT = """
You are an expert multilingual transcript summarizer.
Summarize the following audio transcript. Produce concise bullet points covering the most important ideas, events, arguments, steps, explanations, or actions -- whatever is relevant for this context.
- Do NOT assume this is a formal meeting; handle voice notes, podcasts, interviews, lectures, chats, etc.
- If text is in more than one language (e.g. Hindi + English + Hinglish), preserve language-mixing in the summary too.
- If code, commands, or technical instructions are present, summarize their essence.
- Provide 1-3 lines at the top with the topic or main gist (if you can infer).
- If there are clear next steps, tasks, or conclusions, highlight them as separate bullet points.
Here is the full transcript, possibly in multiple languages:
{transcript}
"""


def build_prompt(transcript: str) -> str:
    return SUMMARY_PROMPT.replace("{transcript}", transcript)


class GeminiSummarizer:
    def __init__(self, client: GeminiClient) -> None:
        self.client = client

    async def summarize(self, transcript: str) -> str:
        """Return the model's summary; an empty string is passed through as-is."""
        resp = await self.client.agenerate([{"text": build_prompt(transcript)}])
        if not resp.get("ok", True):
            raise SummarizationError(resp.get("error") or "Summarization request failed")
        summary = extract_text(resp)
        if not summary:
            log.warning("Summarizer returned an empty result")
        return summary
