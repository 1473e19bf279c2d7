from __future__ import annotations

from typing import Optional

from .base import Transcriber


class FasterWhisperFileTranscriber(Transcriber):
    def __init__(
        self,
        model_size: str = "base",
        device: str = "cpu",
        compute_type: str = "int8",  # good default for CPU
        language: Optional[str] = None,
        beam_size: int = 1,
    ):
        self.model_size = model_size
        self.device = device
        self.compute_type = compute_type
        self.language = language
        self.beam_size = beam_size
        self._model = None

    @property
    def name(self) -> str:
        return "faster-whisper"

    def _get_model(self):
        if self._model is None:
            from faster_whisper import WhisperModel

            self._model = WhisperModel(
                self.model_size,
                device=self.device,
                compute_type=self.compute_type,
            )
        return self._model

    def transcribe_file(self, path: str) -> str:
        model = self._get_model()
        segments, _info = model.transcribe(
            path,
            language=self.language,
            beam_size=self.beam_size,
            vad_filter=True,
            condition_on_previous_text=False,
        )
        parts = [(s.text or "").strip() for s in segments]
        return " ".join(p for p in parts if p).strip()
