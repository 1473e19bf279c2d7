from __future__ import annotations

import asyncio
from argparse import Namespace
from typing import List

import numpy as np
import pytest

from livecap.app.config import DEFAULTS
from livecap.app.main import bind_pipeline, shutdown
from livecap.app.services import build_client_services
from livecap.contracts import NoSpeech, RecognizedText
from livecap.live.pipeline import CaptionPipeline
from livecap.ui.notices import NoticeBoard


def _args(**overrides) -> Namespace:
    values = dict(DEFAULTS)
    values.update(config=None)
    values.update(overrides)
    return Namespace(**values)


@pytest.mark.asyncio
async def test_build_client_services_shares_one_http_client() -> None:
    services = build_client_services(
        _args(server_url="http://caps.test/", cut_interval_sec=1.5, pad_failed_translations=True, device=3)
    )
    try:
        assert services.recognizer.url == "http://caps.test/api/whisper"
        assert services.translator.url == "http://caps.test/api/speech"
        assert services.recognizer._client is services.http
        assert services.translator._client is services.http
        assert services.settings.cut_interval_sec == 1.5
        assert services.settings.pad_failed_translations is True
        assert services.mic.device == 3
        assert services.mic.settings.block_size == 8192
        assert services.notices.ttl_sec == 3.0
    finally:
        await services.aclose()


# --- window wiring ---

class FakeSignal:
    def __init__(self) -> None:
        self.slots = []

    def connect(self, slot) -> None:
        self.slots.append(slot)

    def emit(self, *args) -> None:
        for slot in self.slots:
            slot(*args)


class FakeWindow:
    def __init__(self) -> None:
        self.start_requested = FakeSignal()
        self.stop_requested = FakeSignal()
        self.language_requested = FakeSignal()
        self.calls: List[tuple] = []

    def reset(self) -> None:
        self.calls.append(("reset",))

    def set_capturing(self, capturing: bool) -> None:
        self.calls.append(("capturing", capturing))

    def set_lines(self, original, translated) -> None:
        self.calls.append(("lines", [ln.text for ln in original], [ln.text for ln in translated]))

    def set_target_language(self, code: str) -> None:
        self.calls.append(("language", code))

    def show_notice(self, notice) -> None:
        self.calls.append(("notice", None if notice is None else notice.message))


class _Mic:
    def __init__(self) -> None:
        self.on_block = None

    def __call__(self, on_block):
        self.on_block = on_block
        return self

    def close(self) -> None:
        pass


class _Recognizer:
    async def recognize(self, clip):
        return RecognizedText("Hello") if clip.sample_count else NoSpeech()


class _Translator:
    async def translate(self, text, target_language):
        return RecognizedText(f"{target_language}:{text}")


@pytest.mark.asyncio
async def test_bind_pipeline_routes_events_both_ways() -> None:
    notices = NoticeBoard()
    mic = _Mic()
    pipeline = CaptionPipeline(recognizer=_Recognizer(), translator=_Translator(), mic_factory=mic, notices=notices)
    window = FakeWindow()
    remembered: List[str] = []
    bind_pipeline(pipeline, window, notices, on_language=remembered.append)

    window.start_requested.emit()
    assert ("reset",) in window.calls
    assert ("capturing", True) in window.calls

    window.language_requested.emit("hi")
    assert ("notice", "Stop the current session to change language") in window.calls

    mic.on_block(np.full(16000, 0.2, dtype=np.float32))
    pipeline.tick()
    await pipeline.drain()
    assert ("lines", ["Hello"], ["kha:Hello"]) in window.calls

    window.stop_requested.emit()
    assert ("capturing", False) in window.calls
    window.language_requested.emit("hi")
    assert ("language", "hi") in window.calls
    assert remembered == ["hi"]
    await asyncio.sleep(0)


class _Services:
    def __init__(self) -> None:
        self.closed = False

    async def aclose(self) -> None:
        self.closed = True


@pytest.mark.asyncio
async def test_shutdown_flushes_final_cut_then_closes_client() -> None:
    mic = _Mic()
    pipeline = CaptionPipeline(recognizer=_Recognizer(), translator=_Translator(), mic_factory=mic, notices=NoticeBoard())
    services = _Services()
    pipeline.start()
    mic.on_block(np.full(16000, 0.2, dtype=np.float32))

    await shutdown(pipeline, services)

    assert pipeline.original_lines.texts() == ["Hello"]
    assert pipeline.translated_lines.texts() == ["kha:Hello"]
    assert services.closed


@pytest.mark.asyncio
async def test_shutdown_closes_client_when_drain_times_out() -> None:
    class _Stuck:
        async def recognize(self, clip):
            await asyncio.Event().wait()

    mic = _Mic()
    pipeline = CaptionPipeline(recognizer=_Stuck(), translator=_Translator(), mic_factory=mic, notices=NoticeBoard())
    services = _Services()
    pipeline.start()
    mic.on_block(np.full(16000, 0.2, dtype=np.float32))

    await shutdown(pipeline, services, timeout=0.05)

    assert services.closed
    assert len(pipeline.original_lines) == 0
