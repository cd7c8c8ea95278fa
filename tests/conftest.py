"""Shared fakes for the translation service and client."""

import base64
import sys
import types
import wave
from typing import Any, List, Tuple

import pytest
from fastapi.testclient import TestClient

from rt_translate.config import Settings
from rt_translate.main import create_app
from rt_translate.services.pipeline import TranslationPipeline

PCM_100MS = b"\x01\x00" * 1600


def b64(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


class FakeASR:
    """Reports how many audio frames it was given, so tests can see what was buffered."""

    def __init__(self, text: str = "hello world", fail: bool = False):
        self.text = text
        self.fail = fail
        self.calls: List[int] = []

    def transcribe_wav(self, wav_path: str, language=None) -> str:
        if self.fail:
            raise RuntimeError("recognizer crashed")
        with wave.open(wav_path, "rb") as wf:
            self.calls.append(wf.getnframes())
        return self.text


class FakeTranslator:
    def __init__(self):
        self.calls: List[Tuple[str, str, str]] = []

    def translate(self, text, source, target):
        self.calls.append((text, source, target))
        return f"[{target}] {text}"

    def diagnostics(self, source="en", target="es"):
        return {"fake": {"ok": True}}


class FakeTTS:
    mime = "audio/mpeg"

    def __init__(self):
        self.calls: List[Tuple[str, str]] = []

    def synthesize(self, text, lang):
        self.calls.append((text, lang))
        return f"mp3:{lang}:{text}".encode("utf-8")


@pytest.fixture
def asr():
    return FakeASR()


@pytest.fixture
def pipeline(asr):
    return TranslationPipeline(asr, FakeTranslator(), FakeTTS())


@pytest.fixture
def app_settings():
    return Settings(
        INTERIM_EVERY_CHUNKS=0,
        DEFAULT_AUDIO_FORMAT="pcm_s16le",
        JOB_QUEUE_SIZE=4,
        MAX_RECORDING_BYTES=64000,
    )


@pytest.fixture
def app(app_settings, pipeline):
    return create_app(app_settings, pipeline_factory=lambda: pipeline)


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


class FakeChannel:
    """Records emitted events; `fire` plays the part of the server."""

    def __init__(self):
        self.handlers = {}
        self.emitted: List[Tuple[str, Any]] = []

    def on(self, event, handler):
        self.handlers.setdefault(event, []).append(handler)

    def emit(self, event, data=None):
        self.emitted.append((event, data))
        return True

    def fire(self, event, data=None):
        for handler in self.handlers.get(event, []):
            handler(data)

    def events(self, name):
        return [data for event, data in self.emitted if event == name]


@pytest.fixture
def channel():
    return FakeChannel()


class FakeRawInputStream:
    instances: List["FakeRawInputStream"] = []

    def __init__(self, samplerate, channels, dtype, blocksize, device, callback):
        self.samplerate = samplerate
        self.channels = channels
        self.dtype = dtype
        self.blocksize = blocksize
        self.device = device
        self.callback = callback
        self.started = False
        self.closed = False
        FakeRawInputStream.instances.append(self)

    def start(self):
        self.started = True

    def stop(self):
        self.started = False

    def close(self):
        self.closed = True

    def feed(self, data: bytes):
        self.callback(data, len(data) // 2, None, None)


class BrokenRawInputStream:
    def __init__(self, **kwargs):
        raise OSError("Error querying device -1")


@pytest.fixture
def fake_sounddevice(monkeypatch):
    """Stand-in for the sounddevice module so capture runs without audio hardware."""
    module = types.ModuleType("sounddevice")
    module.RawInputStream = FakeRawInputStream
    module.played = []
    module.play = lambda data, rate, device=None: module.played.append((data, rate))
    module.stop = lambda: None
    FakeRawInputStream.instances = []
    monkeypatch.setitem(sys.modules, "sounddevice", module)
    return module


@pytest.fixture
def broken_sounddevice(fake_sounddevice):
    fake_sounddevice.RawInputStream = BrokenRawInputStream
    return fake_sounddevice


class FakeSink:
    def __init__(self):
        self.played: List[Tuple[bytes, float, str]] = []
        self.stopped = 0

    def play(self, audio, gain, mime="audio/mpeg"):
        self.played.append((audio, gain, mime))

    def stop(self):
        self.stopped += 1


@pytest.fixture
def sink():
    return FakeSink()
