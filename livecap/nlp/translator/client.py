from __future__ import annotations

import logging
from typing import Optional

import httpx

from livecap.contracts import Failed, RecognizedText, TranslationOutcome
from livecap.nlp.languages import is_supported

logger = logging.getLogger(__name__)


class TranslationClient:
    """Sends recognized text to the translation endpoint, one call per line."""

    def __init__(
        self,
        server_url: str,
        *,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 30.0,
        path: str = "/api/speech",
    ) -> None:
        self.url = server_url.rstrip("/") + path
        self.timeout = float(timeout)
        self._client = client
        self._owns_client = client is None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def translate(self, text: str, target_language: str) -> TranslationOutcome:
        if not is_supported(target_language):
            return Failed(f"unsupported language: {target_language}")
        text = (text or "").strip()
        if not text:
            return Failed("empty text")

        body = {"text": text, "fromLang": "auto", "toLang": target_language}
        try:
            resp = await self._get_client().post(self.url, json=body)
        except httpx.HTTPError as e:
            logger.warning("translation_transport_error", extra={"error": repr(e)})
            return Failed(f"Translation request failed: {e}")

        try:
            payload = resp.json()
        except ValueError:
            payload = {}
        if not isinstance(payload, dict):
            payload = {}

        if resp.status_code != 200:
            error = str(payload.get("error") or "Translation failed")
            details = payload.get("details")
            reason = f"{error}: {details}" if details else error
            logger.warning(
                "translation_backend_error",
                extra={"status": resp.status_code, "reason": reason, "to_lang": target_language},
            )
            return Failed(reason)

        translated = str(payload.get("translation") or "").strip()
        if not translated:
            return Failed("empty translation")
        return RecognizedText(translated)
