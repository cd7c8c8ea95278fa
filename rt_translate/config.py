import os
from pathlib import Path
from dotenv import load_dotenv

# Load .env from the project root
ENV_PATH = Path(__file__).resolve().parents[1] / ".env"
load_dotenv(dotenv_path=ENV_PATH, override=False)


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise RuntimeError(f"{name} must be an integer, got {raw!r}")


class Settings:
    ASR_PROVIDER: str = os.getenv("ASR_PROVIDER", "vosk").lower()
    VOSK_MODEL_PATH: str = os.getenv("VOSK_MODEL_PATH", "")
    MISTRAL_API_KEY: str = os.getenv("MISTRAL_API_KEY", "")
    MISTRAL_MODEL: str = os.getenv("MISTRAL_MODEL", "voxtral-mini-latest")
    MISTRAL_API_URL: str = os.getenv("MISTRAL_API_URL", "https://api.mistral.ai/v1/chat/completions")
    LIBRETRANSLATE_URL: str = os.getenv("LIBRETRANSLATE_URL", "https://libretranslate.com")
    LIBRETRANSLATE_API_KEY: str = os.getenv("LIBRETRANSLATE_API_KEY", "")
    FRONTEND_ORIGIN: str = os.getenv("FRONTEND_ORIGIN", "http://localhost:5173")
    HOST: str = os.getenv("HOST", "0.0.0.0")
    PORT: int = _int_env("PORT", 8000)
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()

    # Audio streaming
    DEFAULT_SOURCE_LANGUAGE: str = os.getenv("DEFAULT_SOURCE_LANGUAGE", "en")
    DEFAULT_AUDIO_FORMAT: str = os.getenv("DEFAULT_AUDIO_FORMAT", "webm")
    CHUNK_MS: int = _int_env("CHUNK_MS", 100)
    INTERIM_EVERY_CHUNKS: int = _int_env("INTERIM_EVERY_CHUNKS", 10)
    JOB_QUEUE_SIZE: int = _int_env("JOB_QUEUE_SIZE", 4)
    MAX_RECORDING_BYTES: int = _int_env("MAX_RECORDING_BYTES", 10 * 1024 * 1024)

    def __init__(self, **overrides):
        for key, value in overrides.items():
            if not hasattr(type(self), key):
                raise AttributeError(f"Unknown setting: {key}")
            setattr(self, key, value)


settings = Settings()
