"""WebSocket connections and rooms for the translation channel."""

import asyncio
import logging
import uuid
from typing import Any, Dict, Set

from fastapi import WebSocket

logger = logging.getLogger("rt_translate")


class ConnectionHub:
    """Tracks live connections and the rooms (sessions) they belong to."""

    def __init__(self):
        self.connections: Dict[str, WebSocket] = {}
        self.rooms: Dict[str, Set[str]] = {}
        self._send_locks: Dict[str, asyncio.Lock] = {}

    async def connect(self, websocket: WebSocket) -> str:
        await websocket.accept()
        connection_id = uuid.uuid4().hex
        self.connections[connection_id] = websocket
        self._send_locks[connection_id] = asyncio.Lock()
        logger.info("ws.connect cid=%s", connection_id)
        return connection_id

    def disconnect(self, connection_id: str) -> None:
        if self.connections.pop(connection_id, None) is None:
            return
        self._send_locks.pop(connection_id, None)
        for room in list(self.rooms):
            self.leave(connection_id, room)
        logger.info("ws.disconnect cid=%s", connection_id)

    def join(self, connection_id: str, room: str) -> None:
        self.rooms.setdefault(room, set()).add(connection_id)

    def leave(self, connection_id: str, room: str) -> None:
        members = self.rooms.get(room)
        if members is None:
            return
        members.discard(connection_id)
        if not members:
            del self.rooms[room]

    def close_room(self, room: str) -> None:
        self.rooms.pop(room, None)

    def members(self, room: str) -> Set[str]:
        return set(self.rooms.get(room, ()))

    async def emit(self, connection_id: str, event: str, data: Any = None) -> bool:
        """Send one event to one connection. Returns False if it is gone."""
        websocket = self.connections.get(connection_id)
        if websocket is None:
            return False
        try:
            async with self._send_locks[connection_id]:
                await websocket.send_json({"event": event, "data": data})
            return True
        except Exception as e:
            logger.warning("ws.send.failed cid=%s event=%s err=%s", connection_id, event, e)
            self.disconnect(connection_id)
            return False

    async def emit_to_room(self, room: str, event: str, data: Any = None) -> int:
        """Fan an event out to every member of a room. Returns the number reached."""
        targets = self.members(room)
        if not targets:
            return 0
        results = await asyncio.gather(*(self.emit(cid, event, data) for cid in targets))
        return sum(1 for ok in results if ok)

    def connection_count(self) -> int:
        return len(self.connections)
