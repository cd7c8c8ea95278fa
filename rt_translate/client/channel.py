"""
Client end of the translation channel over a WebSocket.

Incoming frames are dispatched on a background receive thread. The local
pseudo-events `connect` and `disconnect` fire when the socket opens and closes.
"""

import json
import logging
import threading
from collections import defaultdict
from typing import Any, Callable, Dict, List, Optional

from websockets import ConnectionClosed
from websockets.sync.client import ClientConnection, connect

logger = logging.getLogger("rt_translate")

Handler = Callable[[Any], None]


class WebSocketChannel:
    def __init__(self, url: str, open_timeout: float = 10.0):
        self.url = url
        self.open_timeout = open_timeout
        self._handlers: Dict[str, List[Handler]] = defaultdict(list)
        self._ws: Optional[ClientConnection] = None
        self._send_lock = threading.Lock()
        self._recv_thread: Optional[threading.Thread] = None

    @property
    def connected(self) -> bool:
        return self._ws is not None

    def on(self, event: str, handler: Handler) -> None:
        self._handlers[event].append(handler)

    def _dispatch(self, event: str, data: Any = None) -> None:
        for handler in list(self._handlers.get(event, ())):
            try:
                handler(data)
            except Exception:
                logger.exception("channel.handler_failed event=%s", event)

    def connect(self) -> None:
        self._ws = connect(self.url, open_timeout=self.open_timeout)
        logger.info("channel.connected url=%s", self.url)
        self._recv_thread = threading.Thread(target=self._receive_loop, daemon=True)
        self._recv_thread.start()
        self._dispatch("connect")

    def emit(self, event: str, data: Any = None) -> bool:
        """Send one event. Returns False when the channel is not open."""
        ws = self._ws
        if ws is None:
            logger.warning("channel.emit.not_connected event=%s", event)
            return False
        frame = json.dumps({"event": event, "data": data})
        try:
            with self._send_lock:
                ws.send(frame)
            return True
        except ConnectionClosed:
            logger.warning("channel.emit.closed event=%s", event)
            return False

    def _receive_loop(self) -> None:
        ws = self._ws
        try:
            for raw in ws:
                try:
                    message = json.loads(raw)
                except ValueError:
                    logger.warning("channel.invalid_frame len=%d", len(raw))
                    continue
                if not isinstance(message, dict) or "event" not in message:
                    logger.warning("channel.invalid_frame len=%d", len(raw))
                    continue
                self._dispatch(message["event"], message.get("data"))
        except ConnectionClosed as e:
            logger.info("channel.closed code=%s", e.rcvd.code if e.rcvd else None)
        finally:
            self._ws = None
            self._dispatch("disconnect")

    def disconnect(self) -> None:
        ws = self._ws
        if ws is not None:
            ws.close()
        if self._recv_thread is not None and self._recv_thread is not threading.current_thread():
            self._recv_thread.join(timeout=5)

    def wait(self) -> None:
        if self._recv_thread is not None:
            self._recv_thread.join()
