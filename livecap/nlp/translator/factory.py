from __future__ import annotations
import os
from .base import Translator
from .argos import ArgosTranslator
from .gemini import GeminiTranslator
from .stub import StubTranslator

def get_translator(
    provider: str | None = None,
    *,
    gemini_api_key: str | None = None,
    gemini_model: str = "gemini-1.5-pro-002",
) -> Translator:
    provider = (provider or os.getenv("LIVECAP_TRANSLATOR", "gemini")).lower().strip()

    if provider == "gemini":
        return GeminiTranslator(api_key=gemini_api_key or os.getenv("LIVECAP_GEMINI_API_KEY", ""), model=gemini_model)
    if provider == "argos":
        return ArgosTranslator()
    if provider == "stub":
        return StubTranslator()

    raise ValueError(f"Unknown translator provider: {provider}")
