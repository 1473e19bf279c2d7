from __future__ import annotations

import io
import wave
from dataclasses import dataclass
from typing import Iterable, Sequence

import numpy as np

from livecap.contracts import EncodedClip
from livecap.errors import InputError

WAV_HEADER_BYTES = 44


@dataclass(frozen=True)
class WavHeader:
    channels: int
    sample_rate: int
    bits_per_sample: int
    sample_count: int


def concat_blocks(blocks: Iterable[np.ndarray]) -> np.ndarray:
    parts = [np.asarray(b, dtype=np.float32).reshape(-1) for b in blocks]
    if not parts:
        return np.zeros(0, dtype=np.float32)
    return np.concatenate(parts)


def float_to_pcm16(samples: np.ndarray) -> bytes:
    """Clamp to [-1, 1] and scale: negatives by 32768, the rest by 32767."""
    s = np.clip(np.asarray(samples, dtype=np.float64), -1.0, 1.0)
    scaled = np.where(s < 0, s * 32768.0, s * 32767.0)
    return scaled.astype("<i2").tobytes()


def encode_clip(blocks: Sequence[np.ndarray], sample_rate: int = 16000) -> EncodedClip:
    samples = concat_blocks(blocks)
    buf = io.BytesIO()
    with wave.open(buf, "wb") as wf:
        wf.setnchannels(1)
        wf.setsampwidth(2)
        wf.setframerate(sample_rate)
        wf.writeframes(float_to_pcm16(samples))
    return EncodedClip(data=buf.getvalue(), sample_count=int(samples.size), sample_rate=sample_rate)


def parse_wav_header(data: bytes) -> WavHeader:
    if len(data) < WAV_HEADER_BYTES or data[0:4] != b"RIFF" or data[8:12] != b"WAVE":
        raise InputError("not a RIFF/WAVE container")
    if data[36:40] != b"data":
        raise InputError("unexpected WAV layout: data chunk must follow a 16-byte fmt chunk")
    try:
        with wave.open(io.BytesIO(data), "rb") as wf:
            channels = wf.getnchannels()
            width = wf.getsampwidth()
            rate = wf.getframerate()
            frames = wf.getnframes()
    except (wave.Error, EOFError) as e:
        raise InputError(f"invalid WAV data: {e}") from e
    if width != 2:
        raise InputError(f"expected 16-bit PCM, got {width * 8}-bit")
    return WavHeader(channels=channels, sample_rate=rate, bits_per_sample=width * 8, sample_count=frames)
