from __future__ import annotations
from abc import ABC, abstractmethod

class Transcriber(ABC):
    @property
    @abstractmethod
    def name(self) -> str: ...

    @abstractmethod
    def transcribe_file(self, path: str) -> str:
        """Return the recognized text of a whole WAV file ('' for silence)."""
