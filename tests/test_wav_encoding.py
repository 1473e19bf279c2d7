from __future__ import annotations

import struct

import numpy as np
import pytest

from livecap.audio.wav import WAV_HEADER_BYTES, encode_clip, float_to_pcm16, parse_wav_header
from livecap.errors import InputError


def test_encode_clip_header_layout() -> None:
    clip = encode_clip([np.zeros(1600, dtype=np.float32), np.zeros(1600, dtype=np.float32)])
    data = clip.data
    assert len(data) == WAV_HEADER_BYTES + 3200 * 2
    assert data[0:4] == b"RIFF"
    assert struct.unpack("<I", data[4:8])[0] == 36 + 3200 * 2
    assert data[8:16] == b"WAVEfmt "
    fmt_size, fmt_tag, channels, rate, byte_rate, block_align, bits = struct.unpack("<IHHIIHH", data[16:36])
    assert (fmt_size, fmt_tag, channels, rate, byte_rate, block_align, bits) == (16, 1, 1, 16000, 32000, 2, 16)
    assert data[36:40] == b"data"
    assert struct.unpack("<I", data[40:44])[0] == 3200 * 2
    assert clip.sample_count == 3200
    assert clip.duration == pytest.approx(0.2)


def test_empty_clip_is_header_only() -> None:
    clip = encode_clip([])
    assert len(clip.data) == WAV_HEADER_BYTES
    assert clip.sample_count == 0
    assert parse_wav_header(clip.data).sample_count == 0


def test_pcm16_conversion_is_asymmetric_and_clamped() -> None:
    raw = float_to_pcm16(np.array([-1.0, 1.0, 0.0, 2.0, -3.0, 0.5], dtype=np.float32))
    values = struct.unpack("<6h", raw)
    assert values[0] == -32768
    assert values[1] == 32767
    assert values[2] == 0
    assert values[3] == 32767
    assert values[4] == -32768
    assert values[5] == 16383


def test_parse_wav_header_reads_back_encoded_clip() -> None:
    clip = encode_clip([np.full(480, 0.25, dtype=np.float32)], sample_rate=16000)
    header = parse_wav_header(clip.data)
    assert header.channels == 1
    assert header.sample_rate == 16000
    assert header.bits_per_sample == 16
    assert header.sample_count == 480


@pytest.mark.parametrize("data", [b"", b"not a wav file at all, definitely not", b"RIFF" + b"\x00" * 40])
def test_parse_wav_header_rejects_garbage(data: bytes) -> None:
    with pytest.raises(InputError):
        parse_wav_header(data)
