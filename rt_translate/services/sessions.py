"""
Translation session registry.

A session belongs to the connection that created it (the originator). Other
connections may join as listeners and receive the same transcription and
translated audio. Ending the session, or the originator disconnecting,
destroys it.
"""

import logging
import time
import uuid
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set

from .languages import is_supported

logger = logging.getLogger("rt_translate")

LANGUAGE_UNAVAILABLE = "Language unavailable"
SESSION_NOT_FOUND = "Session not found or inactive"


class SessionError(Exception):
    """A session request was refused; the message is sent to the client as-is."""


def new_session_id() -> str:
    return f"translation_{int(time.time() * 1000)}_{uuid.uuid4().hex[:7]}"


@dataclass
class TranslationSession:
    id: str
    originator_id: str
    language: str
    source_language: str
    audio_format: str
    listeners: Set[str] = field(default_factory=set)
    active: bool = True
    created_at: float = field(default_factory=time.time)
    timeline_ms: int = 0
    segments: List[Dict] = field(default_factory=list)

    def participants(self) -> Set[str]:
        return {self.originator_id} | self.listeners


class SessionRegistry:
    def __init__(self, default_source_language: str = "en", default_audio_format: str = "webm"):
        self.default_source_language = default_source_language
        self.default_audio_format = default_audio_format
        self._sessions: Dict[str, TranslationSession] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def create(
        self,
        originator_id: str,
        language: str,
        source_language: Optional[str] = None,
        audio_format: Optional[str] = None,
    ) -> TranslationSession:
        if not is_supported(language):
            logger.info("session.create.rejected cid=%s lang=%s", originator_id, language)
            raise SessionError(LANGUAGE_UNAVAILABLE)
        session = TranslationSession(
            id=new_session_id(),
            originator_id=originator_id,
            language=language,
            source_language=source_language or self.default_source_language,
            audio_format=audio_format or self.default_audio_format,
        )
        self._sessions[session.id] = session
        logger.info(
            "session.create sid=%s cid=%s lang=%s src=%s fmt=%s",
            session.id, originator_id, language, session.source_language, session.audio_format,
        )
        return session

    def get(self, session_id: str) -> Optional[TranslationSession]:
        return self._sessions.get(session_id)

    def require_active(self, session_id: str) -> TranslationSession:
        session = self._sessions.get(session_id)
        if session is None or not session.active:
            raise SessionError(SESSION_NOT_FOUND)
        return session

    def join(self, connection_id: str, session_id: str) -> TranslationSession:
        session = self.require_active(session_id)
        if connection_id != session.originator_id:
            session.listeners.add(connection_id)
        logger.info("session.join sid=%s cid=%s listeners=%d", session_id, connection_id, len(session.listeners))
        return session

    def end(self, session_id: str) -> Optional[TranslationSession]:
        session = self._sessions.pop(session_id, None)
        if session is None:
            return None
        session.active = False
        logger.info("session.end sid=%s segments=%d", session_id, len(session.segments))
        return session

    def disconnect(self, connection_id: str) -> List[TranslationSession]:
        """Drop a connection everywhere. Returns the sessions it originated, now ended."""
        ended = []
        for session in list(self._sessions.values()):
            if session.originator_id == connection_id:
                ended.append(self.end(session.id))
            else:
                session.listeners.discard(connection_id)
        return ended

    def active_sessions(self) -> List[TranslationSession]:
        return [s for s in self._sessions.values() if s.active]
