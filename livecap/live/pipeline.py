# livecap/live/pipeline.py
from __future__ import annotations

import asyncio
import logging
import traceback
from dataclasses import dataclass
from typing import Any, Callable, List, Optional, Protocol, Set

import numpy as np

from livecap.app.diagnostics import summarize_exception
from livecap.app.state import CaptureState, CaptureStateTracker
from livecap.audio.segment import PendingSegment
from livecap.audio.vad import EnergyGate
from livecap.audio.wav import encode_clip
from livecap.contracts import (
    EncodedClip,
    Failed,
    RecognitionOutcome,
    RecognizedText,
    TranslationOutcome,
)
from livecap.errors import UserActionConflict
from livecap.live.session import Session
from livecap.live.transcript import TranscriptBuffer
from livecap.nlp.languages import DEFAULT_TARGET_LANGUAGE, is_supported
from livecap.ui.notices import NoticeBoard

logger = logging.getLogger(__name__)

LANGUAGE_LOCKED_MESSAGE = "Stop the current session to change language"
MIC_FAILED_MESSAGE = "Failed to access microphone"


class Recognizer(Protocol):
    async def recognize(self, clip: EncodedClip) -> RecognitionOutcome:
        ...


class LineTranslator(Protocol):
    async def translate(self, text: str, target_language: str) -> TranslationOutcome:
        ...


MicFactory = Callable[[Callable[[np.ndarray], None]], Any]
PipelineListener = Callable[[str], None]


@dataclass(frozen=True)
class PipelineSettings:
    sample_rate: int = 16000
    cut_interval_sec: float = 2.0
    min_segment_sec: float = 0.5
    silence_rms: float = 0.01
    pad_failed_translations: bool = False
    translation_placeholder: str = "[translation unavailable]"


class CaptionPipeline:
    """
    Capture lifecycle plus the per-cut recognize -> translate chain.

    Everything here runs on one asyncio loop. A cut is submitted only when no
    earlier cut is still being recognized; ticks that find one in flight are
    skipped and their audio rolls into the next cut.
    """

    def __init__(
        self,
        *,
        recognizer: Recognizer,
        translator: LineTranslator,
        mic_factory: MicFactory,
        notices: Optional[NoticeBoard] = None,
        settings: Optional[PipelineSettings] = None,
        target_language: str = DEFAULT_TARGET_LANGUAGE,
        clock: Optional[Callable[[], int]] = None,
    ) -> None:
        if not is_supported(target_language):
            raise ValueError(f"Unsupported language: {target_language}")
        self.settings = settings or PipelineSettings()
        if self.settings.cut_interval_sec <= 0:
            raise ValueError("cut_interval_sec must be > 0")
        if self.settings.min_segment_sec < 0:
            raise ValueError("min_segment_sec must be >= 0")

        self.recognizer = recognizer
        self.translator = translator
        self.mic_factory = mic_factory
        self.notices = notices if notices is not None else NoticeBoard()
        self.gate = EnergyGate(rms_threshold=self.settings.silence_rms)
        self._clock = clock
        self._target_language = target_language
        self._tracker = CaptureStateTracker()
        self._session: Optional[Session] = None
        self._session_seq = 0
        self._current_cut: Optional[asyncio.Task] = None
        self._tasks: Set[asyncio.Task] = set()
        self._listeners: List[PipelineListener] = []

    # --- read side ---

    @property
    def state(self) -> CaptureState:
        return self._tracker.state

    @property
    def last_error(self) -> Optional[str]:
        return self._tracker.last_error

    @property
    def session(self) -> Optional[Session]:
        return self._session

    @property
    def target_language(self) -> str:
        return self._target_language

    @property
    def original_lines(self) -> TranscriptBuffer:
        if self._session is None:
            return TranscriptBuffer()
        return self._session.original_lines

    @property
    def translated_lines(self) -> TranscriptBuffer:
        if self._session is None:
            return TranscriptBuffer()
        return self._session.translated_lines

    def add_listener(self, listener: PipelineListener) -> None:
        self._listeners.append(listener)

    def _emit(self, kind: str) -> None:
        for listener in list(self._listeners):
            listener(kind)

    def _emit_for(self, session: Session, kind: str) -> None:
        if session is self._session:
            self._emit(kind)

    # --- lifecycle ---

    def start(self) -> bool:
        if self._tracker.capturing:
            return False
        loop = asyncio.get_running_loop()

        self._session_seq += 1
        session = Session(
            session_id=self._session_seq,
            target_language=self._target_language,
            pending=PendingSegment(sample_rate=self.settings.sample_rate),
            original_lines=TranscriptBuffer(clock=self._clock),
            translated_lines=TranscriptBuffer(clock=self._clock),
        )
        self._session = session
        self._emit("reset")

        try:
            session.mic = self.mic_factory(lambda block: self._on_block(session, block))
        except Exception:
            detail = traceback.format_exc()
            logger.exception("mic_open_failed", extra={"session": session.session_id})
            session.release()
            self._tracker.set_error(detail)
            self.notices.show(MIC_FAILED_MESSAGE)
            self._emit("state")
            return False

        session.timer_task = loop.create_task(
            self._timer_loop(session),
            name=f"livecap-cut-timer-{session.session_id}",
        )
        self._tracker.set_capturing()
        logger.info(
            "session_started",
            extra={
                "session": session.session_id,
                "target_language": session.target_language,
                "cut_interval_sec": self.settings.cut_interval_sec,
            },
        )
        self._emit("state")
        return True

    def stop(self) -> bool:
        """Release capture resources and flush the remainder. Returns True if a final cut was submitted."""
        session = self._session
        if session is None or not self._tracker.capturing:
            return False

        try:
            session.release()
        except Exception:
            logger.exception("capture_release_failed", extra={"session": session.session_id})
        finally:
            self._tracker.set_idle()

        submitted = False
        if session.pending.duration_sec >= self.settings.min_segment_sec:
            self._submit(session, after=self._unfinished_cut())
            submitted = True
        else:
            session.pending.take()

        logger.info(
            "session_stopped",
            extra={
                "session": session.session_id,
                "cuts_submitted": session.cuts_submitted,
                "cuts_skipped": session.cuts_skipped,
                "final_cut": submitted,
            },
        )
        self._emit("state")
        return submitted

    async def drain(self) -> None:
        """Wait for every outstanding cut and translation, including ones spawned while waiting."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def set_target_language(self, code: str) -> bool:
        try:
            self._require_idle()
        except UserActionConflict as e:
            self.notices.show(str(e), kind="language")
            logger.info("language_change_rejected", extra={"requested": code})
            return False
        if not is_supported(code):
            self.notices.show(f"Unsupported language: {code}", kind="language")
            return False
        if code != self._target_language:
            self._target_language = code
            logger.info("language_changed", extra={"target_language": code})
            self._emit("language")
        return True

    def _require_idle(self) -> None:
        if self._tracker.capturing:
            raise UserActionConflict(LANGUAGE_LOCKED_MESSAGE)

    # --- capture side ---

    def _on_block(self, session: Session, block: np.ndarray) -> None:
        if session is not self._session or not session.active:
            return
        session.pending.append(block)

    async def _timer_loop(self, session: Session) -> None:
        interval = self.settings.cut_interval_sec
        while session.active:
            await asyncio.sleep(interval)
            if not session.active:
                return
            self.tick()

    def tick(self) -> bool:
        """One timer tick. Returns True if a cut was submitted."""
        session = self._session
        if session is None or not self._tracker.capturing:
            return False
        if session.in_flight or self._unfinished_cut() is not None:
            session.cuts_skipped += 1
            logger.debug(
                "cut_skipped_in_flight",
                extra={"session": session.session_id, "pending_sec": round(session.pending.duration_sec, 3)},
            )
            return False
        if session.pending.duration_sec < self.settings.min_segment_sec:
            return False
        self._submit(session)
        return True

    def _submit(self, session: Session, after: Optional[asyncio.Task] = None) -> asyncio.Task:
        blocks = session.pending.take()
        session.in_flight = True
        session.cuts_submitted += 1
        task = asyncio.get_running_loop().create_task(
            self._run_cut(session, blocks, after),
            name=f"livecap-cut-{session.session_id}-{session.cuts_submitted}",
        )
        self._current_cut = task
        self._track(task)
        logger.debug(
            "cut_submitted",
            extra={
                "session": session.session_id,
                "cut": session.cuts_submitted,
                "samples": int(sum(int(np.size(b)) for b in blocks)),
                "chained": after is not None,
            },
        )
        return task

    def _unfinished_cut(self) -> Optional[asyncio.Task]:
        """The latest cut task of any session, if it has not finished yet."""
        task = self._current_cut
        if task is None or task.done():
            return None
        return task

    def _track(self, task: asyncio.Task) -> None:
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    # --- async pipeline ---

    async def _run_cut(
        self,
        session: Session,
        blocks: list,
        after: Optional[asyncio.Task],
    ) -> None:
        outcome: Optional[RecognitionOutcome] = None
        try:
            if after is not None:
                await asyncio.wait({after})
            if not self.gate.is_speech(blocks):
                logger.debug("cut_silent", extra={"session": session.session_id})
                return
            clip = encode_clip(blocks, sample_rate=self.settings.sample_rate)
            outcome = await self.recognizer.recognize(clip)
        except Exception:
            logger.exception("cut_failed", extra={"session": session.session_id})
            self._notify(session, summarize_exception(traceback.format_exc()))
            return
        finally:
            session.in_flight = False

        if isinstance(outcome, RecognizedText):
            line = session.original_lines.append(outcome.text)
            logger.info(
                "recognized",
                extra={"session": session.session_id, "chars": len(line.text), "ts": line.timestamp},
            )
            self._emit_for(session, "original")
            task = asyncio.get_running_loop().create_task(
                self._run_translation(session, line.text),
                name=f"livecap-translate-{session.session_id}",
            )
            self._track(task)
        elif isinstance(outcome, Failed):
            logger.warning(
                "recognition_failed",
                extra={"session": session.session_id, "reason": outcome.reason},
            )
            self._notify(session, outcome.reason)

    async def _run_translation(self, session: Session, text: str) -> None:
        try:
            outcome = await self.translator.translate(text, session.target_language)
        except Exception:
            logger.exception("translation_crashed", extra={"session": session.session_id})
            outcome = Failed(summarize_exception(traceback.format_exc()))

        if isinstance(outcome, RecognizedText) and outcome.text.strip():
            line = session.translated_lines.append(outcome.text)
            logger.info(
                "translated",
                extra={
                    "session": session.session_id,
                    "to_lang": session.target_language,
                    "chars": len(line.text),
                    "ts": line.timestamp,
                },
            )
            self._emit_for(session, "translated")
            return

        reason = outcome.reason if isinstance(outcome, Failed) else "empty translation"
        logger.warning(
            "translation_failed",
            extra={"session": session.session_id, "to_lang": session.target_language, "reason": reason},
        )
        self._notify(session, f"Translation error: {reason}")
        if self.settings.pad_failed_translations:
            session.translated_lines.append(self.settings.translation_placeholder)
            self._emit_for(session, "translated")

    def _notify(self, session: Session, message: str) -> None:
        if session is self._session:
            self.notices.show(message)
