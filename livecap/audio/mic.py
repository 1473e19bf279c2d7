from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Callable, Optional

import numpy as np

logger = logging.getLogger(__name__)

BlockCallback = Callable[[np.ndarray], None]


class MicError(RuntimeError):
    pass


@dataclass(frozen=True)
class CaptureSettings:
    sample_rate: int = 16000
    channels: int = 1
    block_size: int = 8192
    # Requested processing. PortAudio exposes no echo canceller or AGC, so these
    # are recorded on the handle and honoured only by hosts that apply them.
    echo_cancellation: bool = True
    noise_suppression: bool = False
    auto_gain_control: bool = False


class MicHandle:
    """An open input stream. close() stops delivery and releases the device."""

    def __init__(self, stream, settings: CaptureSettings) -> None:
        self._stream = stream
        self.settings = settings
        self.closed = False

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        try:
            self._stream.stop()
        finally:
            self._stream.close()


class SoundDeviceMicSource:
    """
    Live microphone source using the `sounddevice` package (PortAudio).
    Delivers mono float32 blocks onto the asyncio loop that opened it.
    """

    def __init__(
        self,
        *,
        settings: CaptureSettings | None = None,
        device: Optional[int] = None,
    ) -> None:
        self.settings = settings or CaptureSettings()
        if self.settings.sample_rate <= 0:
            raise ValueError("sample_rate must be > 0")
        if self.settings.channels != 1:
            raise ValueError("only mono capture is supported")
        if self.settings.block_size <= 0:
            raise ValueError("block_size must be > 0")
        self.device = device

    @staticmethod
    def list_devices() -> str:
        try:
            import sounddevice as sd
        except (ImportError, OSError) as e:
            raise MicError(
                "sounddevice is not installed. Install with: python -m pip install sounddevice"
            ) from e
        return str(sd.query_devices())

    def open(self, on_block: BlockCallback) -> MicHandle:
        """Open and start the stream. Must be called from the loop thread."""
        try:
            import sounddevice as sd
        except (ImportError, OSError) as e:
            raise MicError(
                "sounddevice is not installed. Install with: python -m pip install sounddevice"
            ) from e

        loop = asyncio.get_running_loop()

        def _callback(indata, frames, time_info, status) -> None:
            if status:
                logger.debug("mic_status", extra={"status": str(status)})
            block = np.array(indata[:, 0], dtype=np.float32, copy=True)
            try:
                loop.call_soon_threadsafe(on_block, block)
            except RuntimeError:
                # loop already closed during shutdown
                pass

        try:
            stream = sd.InputStream(
                samplerate=self.settings.sample_rate,
                channels=self.settings.channels,
                dtype="float32",
                blocksize=self.settings.block_size,
                device=self.device,
                callback=_callback,
            )
            stream.start()
        except Exception as e:
            raise MicError(
                "Failed to open microphone stream. "
                "Try --list-devices and select a device id with --device."
            ) from e

        logger.info(
            "mic_opened",
            extra={
                "device": self.device,
                "sr": self.settings.sample_rate,
                "block_size": self.settings.block_size,
            },
        )
        return MicHandle(stream, self.settings)
