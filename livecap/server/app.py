from __future__ import annotations

import asyncio
import logging
import os
import tempfile
import time
from typing import Awaitable, Callable, Optional

from fastapi import Depends, FastAPI, File, Request, UploadFile
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from livecap.asr.base import Transcriber
from livecap.audio.wav import parse_wav_header
from livecap.contracts import TranslationRequest
from livecap.errors import InputError
from livecap.nlp.languages import is_supported
from livecap.nlp.translator.base import Translator
from livecap.server.config import ServerSettings
from livecap.server.rate_limit import RateLimiter, RateLimitExceeded
from livecap.server.retry import translate_with_retry
from livecap.server.schemas import ErrorResponse, TranscriptionResponse, TranslateBody, TranslationResponse

logger = logging.getLogger(__name__)

_ERROR_RESPONSES: dict = {status: {"model": ErrorResponse} for status in (400, 429, 500)}


def _error(status: int, error: str, details: str | None = None) -> JSONResponse:
    body = {"error": error}
    if details is not None:
        body["details"] = details
    return JSONResponse(body, status_code=status)


def caller_token(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for", "")
    first = forwarded.split(",")[0].strip()
    if first:
        return first
    if request.client is not None and request.client.host:
        return request.client.host
    return "anonymous"


def _build_transcriber(settings: ServerSettings) -> Transcriber:
    from livecap.asr.faster_whisper_file import FasterWhisperFileTranscriber

    return FasterWhisperFileTranscriber(
        model_size=settings.whisper_model,
        device=settings.whisper_device,
        compute_type=settings.whisper_compute_type,
        language=settings.whisper_language,
    )


def _build_translator(settings: ServerSettings) -> Translator:
    from livecap.nlp.translator.factory import get_translator

    return get_translator(
        settings.translator,
        gemini_api_key=settings.gemini_api_key,
        gemini_model=settings.gemini_model,
    )


def create_app(
    settings: Optional[ServerSettings] = None,
    *,
    transcriber: Optional[Transcriber] = None,
    translator: Optional[Translator] = None,
    limiter: Optional[RateLimiter] = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> FastAPI:
    settings = settings or ServerSettings()
    app = FastAPI(title="livecap caption server")
    app.state.settings = settings
    app.state.limiter = limiter or RateLimiter(
        interval_sec=settings.rate_limit_interval_sec,
        max_tokens=settings.rate_limit_max_tokens,
    )
    engines: dict[str, object] = {}
    if transcriber is not None:
        engines["transcriber"] = transcriber
    if translator is not None:
        engines["translator"] = translator

    def get_transcriber() -> Transcriber:
        if "transcriber" not in engines:
            engines["transcriber"] = _build_transcriber(settings)
        return engines["transcriber"]  # type: ignore[return-value]

    def get_engine_translator() -> Translator:
        if "translator" not in engines:
            engines["translator"] = _build_translator(settings)
        return engines["translator"]  # type: ignore[return-value]

    def rate_limited(request: Request) -> None:
        limit = int(settings.rate_limit_per_interval)
        if limit <= 0:
            return
        token = caller_token(request)
        if not app.state.limiter.check(limit, token):
            raise RateLimitExceeded(token)

    @app.exception_handler(RateLimitExceeded)
    async def _on_rate_limited(request: Request, exc: RateLimitExceeded) -> JSONResponse:
        logger.warning("rate_limited", extra={"caller": exc.token, "path": request.url.path})
        return _error(429, "Rate limit exceeded")

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    @app.post(
        "/api/whisper",
        dependencies=[Depends(rate_limited)],
        responses={200: {"model": TranscriptionResponse}, **_ERROR_RESPONSES},
    )
    async def whisper(audio: Optional[UploadFile] = File(None)):
        if audio is None:
            return _error(400, "No audio file provided")

        size = audio.size
        if size is not None and size > settings.max_upload_bytes:
            return _error(400, "Audio file too large. Maximum size is 25MB.")
        data = await audio.read()
        if len(data) > settings.max_upload_bytes:
            return _error(400, "Audio file too large. Maximum size is 25MB.")
        logger.info(
            "audio_received",
            extra={"filename": audio.filename, "content_type": audio.content_type, "bytes": len(data)},
        )
        try:
            header = parse_wav_header(data)
        except InputError as e:
            return _error(400, "Invalid audio file", str(e))
        if header.sample_count == 0:
            return _error(400, "Invalid audio file", "audio contains no samples")

        tmp_path: str | None = None
        try:
            fd, tmp_path = tempfile.mkstemp(suffix=".wav", prefix=f"livecap-whisper-{int(time.time() * 1000)}-")
            with os.fdopen(fd, "wb") as f:
                f.write(data)
            t0 = time.perf_counter()
            text = await run_in_threadpool(get_transcriber().transcribe_file, tmp_path)
            logger.info(
                "transcribed",
                extra={
                    "samples": header.sample_count,
                    "chars": len(text or ""),
                    "ms": round((time.perf_counter() - t0) * 1000.0, 2),
                },
            )
        except Exception as e:
            logger.exception("transcription_failed")
            return _error(500, "Transcription failed", str(e) or type(e).__name__)
        finally:
            if tmp_path is not None:
                try:
                    os.remove(tmp_path)
                except OSError:
                    logger.exception("temp_cleanup_failed", extra={"path": tmp_path})

        text = (text or "").strip()
        if not text:
            return JSONResponse(
                {
                    "text": "",
                    "error": "No transcription text received",
                    "details": "No speech detected in audio",
                },
                status_code=200,
            )
        return {"text": text}

    @app.post(
        "/api/speech",
        dependencies=[Depends(rate_limited)],
        responses={200: {"model": TranslationResponse}, **_ERROR_RESPONSES},
    )
    async def speech(request: Request):
        try:
            raw = await request.json()
            body = TranslateBody.model_validate(raw if isinstance(raw, dict) else {})
        except (ValueError, ValidationError):
            return _error(400, "Invalid request", "Missing required fields")

        text = (body.text or "").strip()
        to_lang = (body.toLang or "").strip()
        if not text or not to_lang:
            return _error(400, "Invalid request", "Missing required fields")
        if not is_supported(to_lang):
            return _error(400, "Invalid language", "Unsupported target language")

        try:
            translation = await translate_with_retry(
                get_engine_translator(),
                TranslationRequest(text=text, target_lang=to_lang),
                attempts=settings.translate_attempts,
                base_delay=settings.retry_base_delay_sec,
                sleep=sleep,
            )
            if not (translation or "").strip():
                raise RuntimeError("Empty translation received")
        except Exception as e:
            logger.error("translation_error", extra={"to_lang": to_lang, "error": repr(e)})
            return _error(500, "Translation failed", str(e) or "Unknown error")

        return {"translation": translation}

    return app
