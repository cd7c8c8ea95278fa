import base64
import binascii
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class ChannelModel(BaseModel):
    """Wire payloads use camelCase keys, matching the browser client."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


class Envelope(BaseModel):
    """One channel frame: {"event": ..., "data": ...}."""

    event: str
    data: Any = None


# Client -> server

class CreateSessionRequest(ChannelModel):
    language: str = Field(..., min_length=1)
    source_language: Optional[str] = None
    audio_format: Optional[str] = None


class JoinSessionRequest(ChannelModel):
    session_id: str = Field(..., min_length=1)


class EndSessionRequest(ChannelModel):
    session_id: str = Field(..., min_length=1)


class AudioChunkMessage(ChannelModel):
    session_id: str = Field(..., min_length=1)
    audio_chunk: bytes = b""
    is_final: bool = False

    @field_validator("audio_chunk", mode="before")
    @classmethod
    def decode_base64(cls, value):
        if value is None or value == "":
            return b""
        if isinstance(value, (bytes, bytearray)):
            return bytes(value)
        try:
            return base64.b64decode(value, validate=True)
        except (binascii.Error, ValueError, TypeError):
            raise ValueError("audioChunk must be base64 encoded")


# Server -> client

class LanguageInfo(ChannelModel):
    code: str
    name: str


class SessionCreated(ChannelModel):
    session_id: str
    language: str


class SessionJoined(ChannelModel):
    session_id: str
    language: str


class SessionEnded(ChannelModel):
    session_id: str


class Transcription(ChannelModel):
    text: str
    is_final: bool = False


class TranslatedAudio(ChannelModel):
    session_id: str
    language: str
    audio_data: str
    transcription: str
    source_text: str
    mime: str = "audio/mpeg"


class ErrorMessage(ChannelModel):
    message: str


# HTTP

class SessionInfo(ChannelModel):
    session_id: str
    language: str
    source_language: str
    audio_format: str
    active: bool
    listeners: int
    segments: int
    created_at: float


class LanguagesResponse(BaseModel):
    languages: List[LanguageInfo]
