"""
Client-side translation session.

State machine::

    idle -> connecting -> active -> idle      (normal close)
    connecting -> error, active -> error      (failure)

`error` only leaves through a fresh `create_session` (or `join_session`).
Channel callbacks, capture callbacks and caller actions all go through one
lock, so transitions are applied one at a time.
"""

import base64
import logging
import threading
from enum import Enum
from typing import Callable, Dict, List, Optional

from .capture import AUDIO_FORMAT, AudioCapture, DeviceUnavailableError
from .playback import PlaybackController

logger = logging.getLogger("rt_translate")

MICROPHONE_ERROR = "Could not access microphone. Please check your permissions."


class SessionStatus(str, Enum):
    """Available session statuses."""

    IDLE = "idle"
    CONNECTING = "connecting"
    ACTIVE = "active"
    ERROR = "error"


class TranslationClient:
    def __init__(
        self,
        channel,
        capture: Optional[AudioCapture] = None,
        playback: Optional[PlaybackController] = None,
        language: str = "en",
        source_language: Optional[str] = None,
    ):
        self.channel = channel
        self.capture = capture if capture is not None else AudioCapture()
        self.playback = playback if playback is not None else PlaybackController()
        self.selected_language = language
        self.source_language = source_language

        self.status = SessionStatus.IDLE
        self.session_id: Optional[str] = None
        self.available_languages: List[Dict[str, str]] = []
        self.transcription = ""
        self.translation = ""
        self.error_message = ""
        self.is_recording = False

        self._lock = threading.RLock()
        self._listeners: List[Callable[["TranslationClient"], None]] = []
        # Session id captured when recording starts; read by the audio thread
        self._recording_session: Optional[str] = None

        for event, handler in (
            ("disconnect", self._on_disconnect),
            ("available_languages", self._on_available_languages),
            ("session_created", self._on_session_created),
            ("session_joined", self._on_session_joined),
            ("session_ended", self._on_session_ended),
            ("transcription", self._on_transcription),
            ("translated_audio", self._on_translated_audio),
            ("error", self._on_error),
        ):
            channel.on(event, handler)

    # Observers

    def subscribe(self, listener: Callable[["TranslationClient"], None]) -> None:
        self._listeners.append(listener)

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self)
            except Exception:
                logger.exception("client.listener_failed")

    # Session negotiation

    def create_session(self, language: Optional[str] = None) -> bool:
        """Ask the server for a new session. No-op while connecting or active."""
        with self._lock:
            if self.status in (SessionStatus.ACTIVE, SessionStatus.CONNECTING):
                return False
            self._abandon_session()
            if language:
                self.selected_language = language
            payload = {"language": self.selected_language, "audioFormat": AUDIO_FORMAT}
            if self.source_language:
                payload["sourceLanguage"] = self.source_language
            self.status = SessionStatus.CONNECTING
            self.channel.emit("create_session", payload)
            logger.info("client.create_session lang=%s", self.selected_language)
        self._notify()
        return True

    def join_session(self, session_id: str) -> bool:
        """Listen in on a session created by another client."""
        with self._lock:
            if self.status in (SessionStatus.ACTIVE, SessionStatus.CONNECTING):
                return False
            self._abandon_session()
            self.status = SessionStatus.CONNECTING
            self.channel.emit("join_session", {"sessionId": session_id})
        self._notify()
        return True

    def end_session(self) -> bool:
        """Stop recording, tell the server, and go idle without waiting for an answer."""
        with self._lock:
            if not self.session_id:
                return False
            session_id = self.session_id
            self._stop_recording()
            self.channel.emit("end_session", {"sessionId": session_id})
            self._reset()
            logger.info("client.end_session sid=%s", session_id)
        self._notify()
        return True

    # Audio

    def start_recording(self) -> bool:
        with self._lock:
            if self.status != SessionStatus.ACTIVE or self.is_recording or not self.session_id:
                return False
            self._recording_session = self.session_id
            try:
                self.capture.start(self._send_chunk)
            except DeviceUnavailableError:
                self._recording_session = None
                self.error_message = MICROPHONE_ERROR
                self.status = SessionStatus.ERROR
                started = False
            else:
                self.is_recording = True
                started = True
        self._notify()
        return started

    def stop_recording(self) -> bool:
        with self._lock:
            stopped = self._stop_recording()
        if stopped:
            self._notify()
        return stopped

    def _stop_recording(self, flush: bool = True) -> bool:
        """Release the device. Without `flush` the final chunk is not sent."""
        if not self.is_recording:
            return False
        if not flush:
            # Cleared before capture.stop() so its final chunk is not sent
            self._recording_session = None
        try:
            self.capture.stop()
        finally:
            self.is_recording = False
            self._recording_session = None
        return True

    def _send_chunk(self, payload: bytes, is_final: bool) -> None:
        # Runs on the audio thread; must not wait on the client lock.
        session_id = self._recording_session
        if not session_id:
            return
        self.channel.emit("audio_chunk", {
            "sessionId": session_id,
            "audioChunk": base64.b64encode(payload).decode("ascii"),
            "isFinal": is_final,
        })

    # Playback

    def toggle_mute(self) -> bool:
        muted = self.playback.toggle_mute()
        self._notify()
        return muted

    def set_volume(self, value: int) -> int:
        self.playback.volume = value
        self._notify()
        return self.playback.volume

    @property
    def is_muted(self) -> bool:
        return self.playback.muted

    # Channel events

    def _reset(self) -> None:
        self.status = SessionStatus.IDLE
        self.session_id = None

    def _abandon_session(self) -> None:
        """Drop a session left behind by an error before negotiating a new one."""
        self._stop_recording(flush=False)
        if self.session_id:
            self.channel.emit("end_session", {"sessionId": self.session_id})
            logger.info("client.abandon_session sid=%s", self.session_id)
            self.session_id = None

    def _on_disconnect(self, _data=None) -> None:
        with self._lock:
            self._stop_recording(flush=False)
            self._reset()
        logger.info("client.disconnected")
        self._notify()

    def _on_available_languages(self, languages) -> None:
        with self._lock:
            self.available_languages = list(languages or [])
        self._notify()

    def _on_session_created(self, data) -> None:
        with self._lock:
            self.session_id = (data or {}).get("sessionId")
            self.status = SessionStatus.ACTIVE
            self.error_message = ""
        logger.info("client.session_created sid=%s", self.session_id)
        self._notify()

    def _on_session_joined(self, data) -> None:
        with self._lock:
            self.session_id = (data or {}).get("sessionId") or self.session_id
            self.status = SessionStatus.ACTIVE
            self.error_message = ""
        self._notify()

    def _on_session_ended(self, data=None) -> None:
        ended_id = (data or {}).get("sessionId")
        with self._lock:
            if ended_id and ended_id != self.session_id:
                # Late notice for a session this client already left
                return
            # The server has dropped the session; chunks would only bounce back as errors
            self._stop_recording(flush=False)
            self._reset()
        self._notify()

    def _on_transcription(self, data) -> None:
        with self._lock:
            self.transcription = (data or {}).get("text", "")
        self._notify()

    def _on_translated_audio(self, data) -> None:
        data = data or {}
        with self._lock:
            # Text is shown whether or not audio is muted
            self.translation = data.get("transcription", "")
        audio_b64 = data.get("audioData") or ""
        if audio_b64:
            self.playback.play(base64.b64decode(audio_b64), data.get("mime") or "audio/mpeg")
        self._notify()

    def _on_error(self, data) -> None:
        message = (data or {}).get("message", "") if isinstance(data, dict) else str(data or "")
        with self._lock:
            self._stop_recording(flush=False)
            self.error_message = message
            self.status = SessionStatus.ERROR
        logger.error("client.error message=%s", message)
        self._notify()
