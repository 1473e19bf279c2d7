from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import httpx

from livecap.asr.client import RecognitionClient
from livecap.audio.mic import CaptureSettings, SoundDeviceMicSource
from livecap.live.pipeline import PipelineSettings
from livecap.nlp.translator.client import TranslationClient
from livecap.ui.notices import NoticeBoard


@dataclass(frozen=True)
class ClientServices:
    http: httpx.AsyncClient
    mic: SoundDeviceMicSource
    recognizer: RecognitionClient
    translator: TranslationClient
    notices: NoticeBoard
    settings: PipelineSettings

    async def aclose(self) -> None:
        await self.http.aclose()


def build_client_services(args: Any) -> ClientServices:
    timeout = max(1.0, float(args.request_timeout_sec))
    http = httpx.AsyncClient(timeout=timeout)
    server_url = str(args.server_url)
    mic = SoundDeviceMicSource(
        settings=CaptureSettings(sample_rate=int(args.sr), block_size=max(256, int(args.block_size))),
        device=args.device,
    )
    settings = PipelineSettings(
        sample_rate=int(args.sr),
        cut_interval_sec=max(0.1, float(args.cut_interval_sec)),
        min_segment_sec=max(0.0, float(args.min_segment_sec)),
        silence_rms=max(0.0, float(args.silence_rms)),
        pad_failed_translations=bool(args.pad_failed_translations),
    )
    return ClientServices(
        http=http,
        mic=mic,
        recognizer=RecognitionClient(server_url, client=http, timeout=timeout),
        translator=TranslationClient(server_url, client=http, timeout=timeout),
        notices=NoticeBoard(ttl_sec=max(0.1, float(args.notice_ttl_sec))),
        settings=settings,
    )
