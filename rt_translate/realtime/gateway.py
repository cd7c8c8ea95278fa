"""
Event dispatch for the `/translation` channel.

Frames are JSON objects `{"event": name, "data": payload}` in both directions.
"""

import logging
from typing import Awaitable, Callable, Dict

from fastapi import WebSocket, WebSocketDisconnect
from pydantic import ValidationError

from ..models.schemas import (
    AudioChunkMessage,
    CreateSessionRequest,
    EndSessionRequest,
    Envelope,
    ErrorMessage,
    JoinSessionRequest,
    SessionCreated,
    SessionEnded,
    SessionJoined,
)
from ..services.languages import get_available_languages
from ..services.sessions import SessionError, SessionRegistry
from .hub import ConnectionHub
from .relay import TranslationRelay

logger = logging.getLogger("rt_translate")

INVALID_MESSAGE = "Invalid message"


class TranslationGateway:
    def __init__(self, hub: ConnectionHub, registry: SessionRegistry, relay: TranslationRelay):
        self.hub = hub
        self.registry = registry
        self.relay = relay
        self._handlers: Dict[str, Callable[[str, dict], Awaitable[None]]] = {
            "create_session": self.on_create_session,
            "join_session": self.on_join_session,
            "end_session": self.on_end_session,
            "audio_chunk": self.on_audio_chunk,
        }

    async def serve(self, websocket: WebSocket) -> None:
        """Run one connection until the client goes away."""
        cid = await self.hub.connect(websocket)
        try:
            await self.hub.emit(cid, "available_languages", get_available_languages())
            while True:
                message = await websocket.receive()
                if message["type"] == "websocket.disconnect":
                    raise WebSocketDisconnect(message.get("code", 1000))
                raw = message.get("text")
                if raw is None:
                    logger.warning("ws.binary_frame cid=%s len=%d", cid, len(message.get("bytes") or b""))
                    await self.send_error(cid, INVALID_MESSAGE)
                    continue
                await self.dispatch(cid, raw)
        except WebSocketDisconnect:
            pass
        finally:
            await self.on_disconnect(cid)

    async def dispatch(self, cid: str, raw: str) -> None:
        try:
            envelope = Envelope.model_validate_json(raw)
        except ValidationError:
            logger.warning("ws.invalid_frame cid=%s len=%d", cid, len(raw))
            await self.send_error(cid, INVALID_MESSAGE)
            return
        handler = self._handlers.get(envelope.event)
        if handler is None:
            logger.info("ws.unknown_event cid=%s event=%s", cid, envelope.event)
            return
        try:
            await handler(cid, envelope.data or {})
        except ValidationError:
            await self.send_error(cid, f"Invalid {envelope.event} payload")
        except SessionError as e:
            await self.send_error(cid, str(e))

    async def send_error(self, cid: str, message: str) -> None:
        await self.hub.emit(cid, "error", ErrorMessage(message=message).to_wire())

    async def on_create_session(self, cid: str, data: dict) -> None:
        req = CreateSessionRequest.model_validate(data)
        session = self.registry.create(cid, req.language, req.source_language, req.audio_format)
        self.hub.join(cid, session.id)
        await self.hub.emit(cid, "session_created", SessionCreated(session_id=session.id, language=session.language).to_wire())

    async def on_join_session(self, cid: str, data: dict) -> None:
        req = JoinSessionRequest.model_validate(data)
        session = self.registry.join(cid, req.session_id)
        self.hub.join(cid, session.id)
        await self.hub.emit(cid, "session_joined", SessionJoined(session_id=session.id, language=session.language).to_wire())

    async def on_end_session(self, cid: str, data: dict) -> None:
        req = EndSessionRequest.model_validate(data)
        session = self.registry.get(req.session_id)
        if session is None:
            return
        ended = SessionEnded(session_id=session.id).to_wire()
        if cid == session.originator_id:
            await self.end_session(session.id)
        elif cid in session.listeners:
            # A listener leaving does not end the conversation for everyone else
            session.listeners.discard(cid)
            self.hub.leave(cid, session.id)
            await self.hub.emit(cid, "session_ended", ended)

    async def on_audio_chunk(self, cid: str, data: dict) -> None:
        msg = AudioChunkMessage.model_validate(data)
        await self.relay.push_chunk(cid, msg.session_id, msg.audio_chunk, msg.is_final)

    async def end_session(self, session_id: str) -> None:
        session = self.registry.end(session_id)
        if session is None:
            return
        await self.hub.emit_to_room(session_id, "session_ended", SessionEnded(session_id=session_id).to_wire())
        await self.relay.close(session_id)
        self.hub.close_room(session_id)

    async def on_disconnect(self, cid: str) -> None:
        self.hub.disconnect(cid)
        for session in self.registry.disconnect(cid):
            await self.hub.emit_to_room(session.id, "session_ended", SessionEnded(session_id=session.id).to_wire())
            await self.relay.close(session.id)
            self.hub.close_room(session.id)
