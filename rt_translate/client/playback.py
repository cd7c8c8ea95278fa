import logging
import threading
from io import BytesIO
from typing import Optional

import numpy as np

logger = logging.getLogger("rt_translate")

MIME_FORMATS = {
    "audio/mpeg": "mp3",
    "audio/mp3": "mp3",
    "audio/wav": "wav",
    "audio/ogg": "ogg",
    "audio/webm": "webm",
}


class SoundDeviceSink:
    """Decodes a clip with pydub and plays it on the default output device.

    A new clip interrupts whatever is still playing.
    """

    def __init__(self, device=None):
        self.device = device

    @staticmethod
    def decode(audio: bytes, mime: str = "audio/mpeg"):
        from pydub import AudioSegment

        segment = AudioSegment.from_file(BytesIO(audio), format=MIME_FORMATS.get(mime, "mp3"))
        samples = np.array(segment.get_array_of_samples(), dtype=np.float32)
        if segment.channels > 1:
            samples = samples.reshape((-1, segment.channels))
        samples /= float(1 << (8 * segment.sample_width - 1))
        return samples, segment.frame_rate

    def play(self, audio: bytes, gain: float, mime: str = "audio/mpeg") -> None:
        import sounddevice as sd

        samples, rate = self.decode(audio, mime)
        sd.play(np.clip(samples * gain, -1.0, 1.0), rate, device=self.device)

    def stop(self) -> None:
        import sounddevice as sd

        sd.stop()


class PlaybackController:
    """Plays translated clips as they arrive, honoring local mute and volume."""

    def __init__(self, sink=None, volume: int = 80):
        self.sink = sink if sink is not None else SoundDeviceSink()
        self._volume = 80
        self.volume = volume
        self.muted = False
        self.clips_played = 0
        self._lock = threading.Lock()

    @property
    def volume(self) -> int:
        return self._volume

    @volume.setter
    def volume(self, value: int) -> None:
        self._volume = max(0, min(100, int(value)))

    def toggle_mute(self) -> bool:
        self.muted = not self.muted
        if self.muted:
            self.stop()
        return self.muted

    def play(self, audio: Optional[bytes], mime: str = "audio/mpeg") -> bool:
        """Play one clip. Returns False when muted or there is nothing to play."""
        if self.muted or not audio:
            return False
        with self._lock:
            try:
                self.sink.play(audio, self._volume / 100.0, mime)
            except Exception as e:
                logger.warning("playback.failed bytes=%d err=%s", len(audio), e)
                return False
            self.clips_played += 1
        return True

    def stop(self) -> None:
        try:
            self.sink.stop()
        except Exception as e:
            logger.warning("playback.stop_failed err=%s", e)
