"""
Gemini client wrapper (async, httpx).

Talks to the Generative Language REST API (``models/{model}:generateContent``).
The model, base URL and API key come from app.core.config.get_settings.
Request failures never raise: callers get an ``{"ok": False, "error": ...}``
payload and decide what that means for their step.
"""

from __future__ import annotations

import base64
from typing import Any, Dict, List, Optional

import httpx

from app.core.config import Settings, get_settings
from app.core.logger import get_logger

log = get_logger(__name__)


class GeminiClient:
    def __init__(
        self,
        settings: Optional[Settings] = None,
        api_key: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self.api_key = api_key or self._settings.GEMINI_API_KEY
        self.model = self._settings.GEMINI_MODEL
        self.base_url = self._settings.GEMINI_BASE_URL.rstrip("/")
        self._timeout = self._settings.GEMINI_TIMEOUT
        self._transport = transport
        self._aclient: Optional[httpx.AsyncClient] = None

    def _get_async_client(self) -> httpx.AsyncClient:
        if self._aclient is None:
            self._aclient = httpx.AsyncClient(timeout=self._timeout, transport=self._transport)
        return self._aclient

    async def agenerate(self, parts: List[Dict[str, Any]], model: Optional[str] = None) -> Dict[str, Any]:
        """Async: send one user turn made of ``parts`` to generateContent.

        Args:
            parts: Gemini content parts, e.g. ``{"text": ...}`` or
                ``{"inlineData": {"mimeType": ..., "data": ...}}``.
            model: Override for the configured model name.

        Returns:
            The JSON response with ``ok`` set, or an error payload.
        """
        if not self.api_key:
            return {"ok": False, "error": "Gemini API key missing"}

        url = f"{self.base_url}/models/{model or self.model}:generateContent"
        headers = {
            "x-goog-api-key": self.api_key,
            "Content-Type": "application/json",
        }
        payload = {"contents": [{"role": "user", "parts": parts}]}

        try:
            client = self._get_async_client()
            resp = await client.post(url, json=payload, headers=headers)
            resp.raise_for_status()
            data = resp.json()
        except httpx.HTTPStatusError as e:
            log.error("Gemini request failed with HTTP %s: %s", e.response.status_code, e.response.text[:500])
            return {"ok": False, "error": f"Gemini request failed with HTTP {e.response.status_code}"}
        except (httpx.HTTPError, ValueError) as e:
            log.exception("Gemini request failed: %s", e)
            return {"ok": False, "error": "Gemini request failed"}

        if not isinstance(data, dict):
            return {"ok": False, "error": "Unexpected Gemini response"}
        data.setdefault("ok", True)
        return data

    async def agenerate_with_audio(self, audio: bytes, mime_type: str, instruction: str) -> Dict[str, Any]:
        """Helper that base64-encodes raw audio as an inline part before the instruction."""
        audio_b64 = base64.b64encode(audio).decode()
        parts = [
            {"inlineData": {"mimeType": mime_type, "data": audio_b64}},
            {"text": instruction},
        ]
        return await self.agenerate(parts)

    async def aclose(self) -> None:
        if self._aclient is not None:
            await self._aclient.aclose()
            self._aclient = None


def extract_text(response: Dict[str, Any]) -> str:
    """Normalize a generateContent response to plain text.

    Accepts either a flat ``text`` field or the nested
    ``candidates[0].content.parts[0].text`` shape. Returns ``""`` when
    neither carries text.
    """
    text = response.get("text")
    if isinstance(text, str) and text:
        return text

    candidates = response.get("candidates") or []
    if not candidates or not isinstance(candidates[0], dict):
        return ""
    parts = (candidates[0].get("content") or {}).get("parts") or []
    if not parts or not isinstance(parts[0], dict):
        return ""
    nested = parts[0].get("text")
    return nested if isinstance(nested, str) else ""
