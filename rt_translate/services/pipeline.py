"""
Speech -> text -> translated text -> speech, as used by the session relay.

Provider calls are blocking; the relay runs them in the thread pool.
"""

import logging
from typing import NamedTuple, Optional

from ..utils.audio import cleanup, to_wav
from .translate_argos import ArgosTranslate
from .translate_libre import LibreTranslate
from .translate_orchestrator import TranslatorOrchestrator
from .tts_gtts import GTTSService

logger = logging.getLogger("rt_translate")


class PipelineError(Exception):
    """A pipeline stage failed; the message is safe to send to clients."""


class Transcript(NamedTuple):
    text: str
    duration: float


class TranslationPipeline:
    def __init__(self, asr, translator, tts):
        self.asr = asr
        self.translator = translator
        self.tts = tts

    @property
    def mime(self) -> str:
        return getattr(self.tts, "mime", "audio/mpeg")

    def transcribe(self, audio: bytes, audio_format: str, language: Optional[str] = None) -> Transcript:
        if not audio:
            return Transcript("", 0.0)
        tmpdir = None
        try:
            wav_path, duration, tmpdir = to_wav(audio, audio_format)
            text = self.asr.transcribe_wav(wav_path, language=language)
        except Exception as e:
            logger.exception("pipeline.asr.failed fmt=%s bytes=%d", audio_format, len(audio))
            raise PipelineError("Transcription failed") from e
        finally:
            cleanup(tmpdir)
        return Transcript((text or "").strip(), duration)

    def translate(self, text: str, source: Optional[str], target: str) -> str:
        return self.translator.translate(text, source, target)

    def synthesize(self, text: str, language: str) -> bytes:
        try:
            return self.tts.synthesize(text, language)
        except Exception as e:
            logger.exception("pipeline.tts.failed lang=%s", language)
            raise PipelineError("Speech synthesis failed") from e


def build_pipeline(settings) -> TranslationPipeline:
    """Assemble the configured providers. Loading an ASR model can take a while."""
    provider = settings.ASR_PROVIDER
    logger.info("pipeline.build asr=%s", provider)
    if provider == "mistral":
        from .asr_mistral import MistralASR

        if not settings.MISTRAL_API_KEY:
            raise RuntimeError("MISTRAL_API_KEY not set but ASR_PROVIDER=mistral")
        asr = MistralASR(
            api_key=settings.MISTRAL_API_KEY,
            model=settings.MISTRAL_MODEL,
            api_url=settings.MISTRAL_API_URL,
        )
    elif provider == "vosk":
        from .asr_vosk import VoskASR

        if not settings.VOSK_MODEL_PATH:
            raise RuntimeError("VOSK_MODEL_PATH not set. Run `rt-translate download-model` or see .env.example")
        asr = VoskASR(settings.VOSK_MODEL_PATH)
    else:
        raise RuntimeError(f"Unknown ASR_PROVIDER: {provider}")

    translator = TranslatorOrchestrator(
        LibreTranslate(settings.LIBRETRANSLATE_URL, api_key=settings.LIBRETRANSLATE_API_KEY),
        ArgosTranslate(),
    )
    return TranslationPipeline(asr, translator, GTTSService())
