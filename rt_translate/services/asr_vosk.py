import json
import logging
import wave
from pathlib import Path
from typing import List, Optional

from vosk import KaldiRecognizer, Model, SetLogLevel

FRAMES_PER_READ = 4000


class VoskASR:
    """Offline ASR over a local Vosk model directory (one language per model)."""

    def __init__(self, model_path: str):
        if not model_path or not Path(model_path).exists():
            raise RuntimeError(f"Vosk model path not found: {model_path}")
        self.logger = logging.getLogger("rt_translate")
        SetLogLevel(-1)
        self.model = Model(model_path)
        self.logger.info("vosk.model.loaded path=%s", model_path)

    def transcribe_wav(self, wav_path: str, language: Optional[str] = None) -> str:
        # The model directory fixes the language; the hint is unused.
        with wave.open(wav_path, "rb") as wf:
            if wf.getnchannels() != 1 or wf.getsampwidth() != 2:
                raise ValueError("WAV must be mono PCM16")
            rec = KaldiRecognizer(self.model, wf.getframerate())
            rec.SetWords(False)
            parts: List[str] = []
            while True:
                data = wf.readframes(FRAMES_PER_READ)
                if not data:
                    break
                if rec.AcceptWaveform(data):
                    parts.append(json.loads(rec.Result()).get("text", ""))
            parts.append(json.loads(rec.FinalResult()).get("text", ""))
        return " ".join(p for p in parts if p).strip()
