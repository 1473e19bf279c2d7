from __future__ import annotations

from dataclasses import dataclass
from typing import Union


@dataclass(frozen=True)
class EncodedClip:
    """
    One cut of microphone audio as a WAV container.
    data: RIFF/WAVE bytes, mono 16-bit little-endian PCM.
    """
    data: bytes
    sample_count: int
    sample_rate: int = 16000

    @property
    def duration(self) -> float:
        if self.sample_rate <= 0:
            return 0.0
        return self.sample_count / float(self.sample_rate)


@dataclass(frozen=True)
class TranscriptLine:
    text: str
    timestamp: int  # ms, strictly increasing within one buffer


@dataclass(frozen=True)
class RecognizedText:
    text: str


@dataclass(frozen=True)
class NoSpeech:
    pass


@dataclass(frozen=True)
class Failed:
    reason: str


RecognitionOutcome = Union[RecognizedText, NoSpeech, Failed]
TranslationOutcome = Union[RecognizedText, Failed]


@dataclass(frozen=True)
class TranslationRequest:
    text: str
    target_lang: str = "kha"
    source_lang: str = "auto"


@dataclass(frozen=True)
class TranslationResult:
    source_text: str
    translated_text: str
    provider: str
