# livecap/nlp/filters.py
from __future__ import annotations

from typing import Iterable

# Whisper tends to hallucinate these on silence or background noise.
DEFAULT_EXACT: tuple[str, ...] = ("thank you", "you")
DEFAULT_CONTAINS: tuple[str, ...] = (
    ". . .",
    "...",
    "thanks for watching",
    "subs by",
    "www.",
    ".co.uk",
)


class PhraseFilter:
    """Case-insensitive denylist: exact phrases or substrings."""

    def __init__(
        self,
        exact: Iterable[str] = DEFAULT_EXACT,
        contains: Iterable[str] = DEFAULT_CONTAINS,
    ) -> None:
        self.exact = frozenset(p.strip().lower() for p in exact if p.strip())
        self.contains = tuple(p.lower() for p in contains if p)

    def matches(self, text: str) -> bool:
        t = (text or "").strip().lower()
        if not t:
            return False
        if t in self.exact:
            return True
        return any(p in t for p in self.contains)

    def __call__(self, text: str) -> bool:
        return self.matches(text)
