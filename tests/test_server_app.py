from __future__ import annotations

import os
from typing import List

import numpy as np
import pytest
from fastapi.testclient import TestClient

from livecap.asr.base import Transcriber
from livecap.audio.wav import encode_clip
from livecap.contracts import TranslationRequest, TranslationResult
from livecap.errors import TransientBackendError
from livecap.nlp.translator.base import Translator
from livecap.nlp.translator.stub import StubTranslator
from livecap.server.app import create_app
from livecap.server.config import ServerSettings


class FakeTranscriber(Transcriber):
    def __init__(self, text: str = "Hello world", fail: Exception | None = None) -> None:
        self.text = text
        self.fail = fail
        self.paths: List[str] = []
        self.existed: List[bool] = []

    @property
    def name(self) -> str:
        return "fake"

    def transcribe_file(self, path: str) -> str:
        self.paths.append(path)
        self.existed.append(os.path.exists(path))
        if self.fail is not None:
            raise self.fail
        return self.text


class FlakyTranslator(Translator):
    def __init__(self, failures: int, result: str = "Khublei") -> None:
        self.failures = failures
        self.result = result
        self.calls = 0

    @property
    def name(self) -> str:
        return "flaky"

    def translate(self, req: TranslationRequest) -> TranslationResult:
        self.calls += 1
        if self.calls <= self.failures:
            raise TransientBackendError("quota exhausted")
        return TranslationResult(source_text=req.text, translated_text=self.result, provider=self.name)


def _wav(seconds: float = 0.5) -> bytes:
    return encode_clip([np.full(int(16000 * seconds), 0.1, dtype=np.float32)]).data


def _client(transcriber=None, translator=None, delays: list | None = None, **settings) -> TestClient:
    async def _sleep(delay: float) -> None:
        if delays is not None:
            delays.append(delay)

    app = create_app(
        ServerSettings(**settings),
        transcriber=transcriber or FakeTranscriber(),
        translator=translator or StubTranslator(),
        sleep=_sleep,
    )
    return TestClient(app)


def test_health() -> None:
    assert _client().get("/health").json() == {"status": "ok"}


def test_whisper_transcribes_and_removes_temp_file() -> None:
    tr = FakeTranscriber(text="  Hello world ")
    resp = _client(transcriber=tr).post("/api/whisper", files={"audio": ("audio.wav", _wav(), "audio/wav")})
    assert resp.status_code == 200
    assert resp.json() == {"text": "Hello world"}
    assert tr.existed == [True]
    assert tr.paths[0].endswith(".wav")
    assert not os.path.exists(tr.paths[0])


def test_whisper_empty_transcript_reports_no_speech() -> None:
    resp = _client(transcriber=FakeTranscriber(text="")).post(
        "/api/whisper", files={"audio": ("audio.wav", _wav(), "audio/wav")}
    )
    assert resp.status_code == 200
    assert resp.json() == {
        "text": "",
        "error": "No transcription text received",
        "details": "No speech detected in audio",
    }


def test_whisper_engine_error_is_500_and_cleans_up() -> None:
    tr = FakeTranscriber(fail=RuntimeError("model crashed"))
    resp = _client(transcriber=tr).post("/api/whisper", files={"audio": ("audio.wav", _wav(), "audio/wav")})
    assert resp.status_code == 500
    assert resp.json() == {"error": "Transcription failed", "details": "model crashed"}
    assert not os.path.exists(tr.paths[0])


def test_whisper_missing_file() -> None:
    resp = _client().post("/api/whisper", data={"other": "x"})
    assert resp.status_code == 400
    assert resp.json() == {"error": "No audio file provided"}


def test_whisper_rejects_oversized_upload() -> None:
    resp = _client(max_upload_bytes=1000).post(
        "/api/whisper", files={"audio": ("audio.wav", _wav(1.0), "audio/wav")}
    )
    assert resp.status_code == 400
    assert resp.json()["error"] == "Audio file too large. Maximum size is 25MB."


@pytest.mark.parametrize("payload", [b"not audio", encode_clip([]).data])
def test_whisper_rejects_invalid_audio(payload: bytes) -> None:
    tr = FakeTranscriber()
    resp = _client(transcriber=tr).post("/api/whisper", files={"audio": ("audio.wav", payload, "audio/wav")})
    assert resp.status_code == 400
    assert resp.json()["error"] == "Invalid audio file"
    assert tr.paths == []


def test_speech_translates() -> None:
    resp = _client().post("/api/speech", json={"text": "Hello", "fromLang": "auto", "toLang": "hi"})
    assert resp.status_code == 200
    assert resp.json() == {"translation": "[hi] Hello"}


@pytest.mark.parametrize(
    "body",
    [{}, {"text": "Hello"}, {"toLang": "kha"}, {"text": "  ", "toLang": "kha"}, ["Hello", "kha"]],
)
def test_speech_missing_fields(body) -> None:
    resp = _client().post("/api/speech", json=body)
    assert resp.status_code == 400
    assert resp.json() == {"error": "Invalid request", "details": "Missing required fields"}


def test_speech_rejects_non_json() -> None:
    resp = _client().post("/api/speech", content=b"{oops", headers={"content-type": "application/json"})
    assert resp.status_code == 400
    assert resp.json()["error"] == "Invalid request"


def test_speech_unsupported_language() -> None:
    resp = _client().post("/api/speech", json={"text": "Hello", "toLang": "fr"})
    assert resp.status_code == 400
    assert resp.json() == {"error": "Invalid language", "details": "Unsupported target language"}


def test_speech_retries_with_backoff_then_succeeds() -> None:
    delays: list[float] = []
    tr = FlakyTranslator(failures=2)
    resp = _client(translator=tr, delays=delays).post("/api/speech", json={"text": "Hello", "toLang": "kha"})
    assert resp.status_code == 200
    assert resp.json() == {"translation": "Khublei"}
    assert tr.calls == 3
    assert delays == [1.0, 2.0]


def test_speech_gives_up_after_three_attempts() -> None:
    delays: list[float] = []
    tr = FlakyTranslator(failures=5)
    resp = _client(translator=tr, delays=delays).post("/api/speech", json={"text": "Hello", "toLang": "kha"})
    assert resp.status_code == 500
    body = resp.json()
    assert body["error"] == "Translation failed"
    assert "All 3 translation attempts failed" in body["details"]
    assert tr.calls == 3
    assert delays == [1.0, 2.0]


def test_speech_empty_translation_is_500() -> None:
    resp = _client(translator=FlakyTranslator(failures=0, result="  ")).post(
        "/api/speech", json={"text": "Hello", "toLang": "kha"}
    )
    assert resp.status_code == 500
    assert resp.json() == {"error": "Translation failed", "details": "Empty translation received"}


def test_rate_limit_per_caller() -> None:
    client = _client(rate_limit_per_interval=2)
    body = {"text": "Hello", "toLang": "en"}
    a = {"x-forwarded-for": "10.0.0.1, 172.16.0.1"}
    assert client.post("/api/speech", json=body, headers=a).status_code == 200
    assert client.post("/api/speech", json=body, headers=a).status_code == 200
    limited = client.post("/api/speech", json=body, headers=a)
    assert limited.status_code == 429
    assert limited.json() == {"error": "Rate limit exceeded"}
    assert client.post("/api/speech", json=body, headers={"x-forwarded-for": "10.0.0.2"}).status_code == 200


def test_rate_limit_zero_disables() -> None:
    client = _client(rate_limit_per_interval=0)
    for _ in range(5):
        assert client.get("/health").status_code == 200
        assert client.post("/api/speech", json={"text": "Hi", "toLang": "en"}).status_code == 200
