from __future__ import annotations

from typing import Any, Optional

import httpx

from .base import Translator
from livecap.contracts import TranslationRequest, TranslationResult
from livecap.errors import TransientBackendError
from livecap.nlp.languages import language_name

API_ROOT = "https://generativelanguage.googleapis.com/v1beta"


def build_prompt(text: str, target_lang: str) -> str:
    return (
        f'Translate the following text to {language_name(target_lang)}: "{text}". \n'
        "    Only translate, no need explanation"
    )


def _first_candidate_text(payload: dict[str, Any]) -> str:
    for cand in payload.get("candidates") or []:
        parts = ((cand or {}).get("content") or {}).get("parts") or []
        texts = [str(p.get("text") or "") for p in parts if isinstance(p, dict)]
        joined = "".join(texts).strip()
        if joined:
            return joined
    return ""


class GeminiTranslator(Translator):
    """Hosted translation through the Generative Language REST API."""

    def __init__(
        self,
        api_key: str,
        model: str = "gemini-1.5-pro-002",
        *,
        timeout: float = 60.0,
        client: Optional[httpx.Client] = None,
    ) -> None:
        if not api_key:
            raise ValueError("Missing Gemini API key (set LIVECAP_GEMINI_API_KEY)")
        self.api_key = api_key
        self.model = model
        self._client = client or httpx.Client(timeout=timeout)

    @property
    def name(self) -> str:
        return "gemini"

    def translate(self, req: TranslationRequest) -> TranslationResult:
        url = f"{API_ROOT}/models/{self.model}:generateContent"
        body = {"contents": [{"parts": [{"text": build_prompt(req.text, req.target_lang)}]}]}
        try:
            resp = self._client.post(url, json=body, headers={"x-goog-api-key": self.api_key})
            resp.raise_for_status()
            payload = resp.json()
        except (httpx.HTTPError, ValueError) as e:
            raise TransientBackendError(f"Gemini request failed: {e}") from e
        out = _first_candidate_text(payload if isinstance(payload, dict) else {})
        return TranslationResult(source_text=req.text, translated_text=out, provider=self.name)
