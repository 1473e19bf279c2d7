from __future__ import annotations

SUPPORTED_LANGUAGES: dict[str, str] = {
    "en": "English",
    "hi": "Hindi",
    "kha": "Khasi",
}
DEFAULT_TARGET_LANGUAGE = "kha"

WAITING_MESSAGES: dict[str, str] = {
    "en": "Waiting for speech...",
    "hi": "भाषण की प्रतीक्षा कर रहा है...",
    "kha": "Dang ap ia ka jingkren...",
}


def is_supported(code: str | None) -> bool:
    return (code or "").strip() in SUPPORTED_LANGUAGES


def language_name(code: str) -> str:
    try:
        return SUPPORTED_LANGUAGES[code]
    except KeyError:
        raise ValueError(f"Unsupported language: {code}") from None


def waiting_message(code: str) -> str:
    return WAITING_MESSAGES.get(code, WAITING_MESSAGES["en"])
