from __future__ import annotations

import logging
from typing import Any, Callable, Optional

import httpx

from livecap.contracts import EncodedClip, Failed, NoSpeech, RecognitionOutcome, RecognizedText
from livecap.nlp.filters import PhraseFilter

logger = logging.getLogger(__name__)

_NO_SPEECH_MARKERS = ("no speech detected", "no transcription text received")


def _is_no_speech_detail(payload: dict[str, Any]) -> bool:
    joined = " ".join(str(payload.get(k) or "") for k in ("error", "details")).lower()
    return any(m in joined for m in _NO_SPEECH_MARKERS)


class RecognitionClient:
    """
    Sends one encoded clip to the transcription endpoint per call.
    Never raises for backend trouble: every failure becomes Failed(reason).
    """

    def __init__(
        self,
        server_url: str,
        *,
        client: Optional[httpx.AsyncClient] = None,
        phrase_filter: Optional[Callable[[str], bool]] = None,
        timeout: float = 30.0,
        path: str = "/api/whisper",
    ) -> None:
        self.url = server_url.rstrip("/") + path
        self.phrase_filter = phrase_filter if phrase_filter is not None else PhraseFilter()
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

    async def recognize(self, clip: EncodedClip) -> RecognitionOutcome:
        files = {"audio": ("audio.wav", clip.data, "audio/wav")}
        try:
            resp = await self._get_client().post(self.url, files=files)
        except httpx.HTTPError as e:
            logger.warning("recognition_transport_error", extra={"error": repr(e)})
            return Failed(f"Transcription request failed: {e}")

        try:
            payload = resp.json()
        except ValueError:
            payload = {}
        if not isinstance(payload, dict):
            payload = {}

        if resp.status_code != 200:
            if _is_no_speech_detail(payload):
                return NoSpeech()
            reason = str(payload.get("error") or payload.get("details") or f"HTTP {resp.status_code}")
            logger.warning(
                "recognition_backend_error",
                extra={"status": resp.status_code, "reason": reason},
            )
            return Failed(reason)

        text = str(payload.get("text") or "").strip()
        if not text:
            return NoSpeech()
        if self.phrase_filter(text):
            logger.debug("recognition_filtered", extra={"text": text})
            return NoSpeech()
        return RecognizedText(text)
