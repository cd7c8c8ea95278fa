"""
Microphone capture cut into fixed-duration chunks.

Each recording produces chunks of `chunk_ms` raw PCM16 mono audio. The most
recent block is always held back so that `stop()` can send it as the one and
only chunk flagged final.
"""

import logging
import threading
from typing import Callable, Optional, Union

logger = logging.getLogger("rt_translate")

SAMPLE_RATE = 16000
NUM_CHANNELS = 1
AUDIO_FORMAT = "pcm_s16le"

ChunkCallback = Callable[[bytes, bool], None]


class DeviceUnavailableError(Exception):
    """The input device could not be opened (missing, busy or not permitted)."""


class AudioCapture:
    def __init__(
        self,
        chunk_ms: int = 100,
        sample_rate: int = SAMPLE_RATE,
        device: Optional[Union[int, str]] = None,
    ):
        self.chunk_ms = chunk_ms
        self.sample_rate = sample_rate
        self.device = device
        self._stream = None
        self._on_chunk: Optional[ChunkCallback] = None
        self._held: Optional[bytes] = None
        self._lock = threading.Lock()
        self.chunks_sent = 0

    @property
    def frames_per_chunk(self) -> int:
        return int(self.sample_rate * self.chunk_ms / 1000)

    @property
    def is_recording(self) -> bool:
        return self._stream is not None

    def start(self, on_chunk: ChunkCallback) -> None:
        """Open the device and begin streaming chunks to `on_chunk(payload, is_final)`."""
        if self._stream is not None:
            raise RuntimeError("Capture already running")
        stream = None
        try:
            import sounddevice as sd

            stream = sd.RawInputStream(
                samplerate=self.sample_rate,
                channels=NUM_CHANNELS,
                dtype="int16",
                blocksize=self.frames_per_chunk,
                device=self.device,
                callback=self._callback,
            )
            with self._lock:
                self._on_chunk = on_chunk
                self._held = None
                self.chunks_sent = 0
            stream.start()
        except Exception as e:
            with self._lock:
                self._on_chunk = None
            if stream is not None:
                stream.close()
            logger.error("capture.device_unavailable device=%s err=%s", self.device, e)
            raise DeviceUnavailableError(str(e)) from e
        self._stream = stream
        logger.info("capture.start device=%s chunk_ms=%d", self.device, self.chunk_ms)

    def _callback(self, indata, frames, time_info, status) -> None:
        if status:
            logger.debug("capture.status %s", status)
        with self._lock:
            if self._on_chunk is None:
                return
            previous, self._held = self._held, bytes(indata)
            if previous is not None:
                self._send(previous, False)

    def _send(self, payload: bytes, is_final: bool) -> None:
        self.chunks_sent += 1
        self._on_chunk(payload, is_final)

    def stop(self) -> None:
        """Release the device and flush the final chunk. Safe to call when idle."""
        stream, self._stream = self._stream, None
        if stream is None:
            return
        try:
            stream.stop()
        finally:
            stream.close()
            with self._lock:
                on_chunk, self._on_chunk = self._on_chunk, None
                held, self._held = self._held, None
            if on_chunk is not None:
                self.chunks_sent += 1
                on_chunk(held or b"", True)
            logger.info("capture.stop chunks=%d", self.chunks_sent)
