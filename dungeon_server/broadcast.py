# dungeon_server/broadcast.py - Per-client outboxes and fan-out of server messages
import asyncio
import logging
import uuid
from typing import Dict, Iterable

import websockets

from .protocol import ServerMessage

logger = logging.getLogger(__name__)


class ClientConnection:
    """One websocket plus a bounded queue of frames waiting to be written.

    The event consumer only ever calls push(), which never awaits; a
    dedicated writer task (pump) drains the queue in order.
    """

    DEFAULT_MAX_PENDING = 256

    def __init__(self, websocket, max_pending: int = DEFAULT_MAX_PENDING):
        self.websocket = websocket
        self.connection_id = uuid.uuid4().hex
        self.outbox: asyncio.Queue = asyncio.Queue(maxsize=max_pending)
        self.overflowed = False
        self._close_task = None

    def push(self, payload: str) -> bool:
        if self.overflowed:
            return False
        try:
            self.outbox.put_nowait(payload)
            return True
        except asyncio.QueueFull:
            self.overflowed = True
            return False

    async def pump(self):
        """Write queued frames until the connection closes."""
        try:
            while True:
                payload = await self.outbox.get()
                await self.websocket.send(payload)
        except websockets.ConnectionClosed:
            pass

    def close_soon(self, code: int = 1013, reason: str = "client too slow"):
        """Ask the socket to close; its handler then reports the disconnect."""
        if self._close_task is None:
            self._close_task = asyncio.get_running_loop().create_task(self.websocket.close(code=code, reason=reason))

    def __repr__(self):
        return f"ClientConnection({self.connection_id[:8]})"


class Broadcaster:
    """Tracks live connections and delivers messages best-effort, at most once."""

    def __init__(self):
        self.connections: Dict[str, ClientConnection] = {}

    def __len__(self):
        return len(self.connections)

    def add(self, connection: ClientConnection):
        self.connections[connection.connection_id] = connection

    def discard(self, connection: ClientConnection):
        self.connections.pop(connection.connection_id, None)

    def send(self, connection: ClientConnection, message: ServerMessage):
        self._deliver([connection], message.encode())

    def broadcast(self, message: ServerMessage):
        self._deliver(list(self.connections.values()), message.encode())

    def _deliver(self, targets: Iterable[ClientConnection], payload: str):
        for connection in targets:
            if connection.push(payload):
                continue
            if connection.connection_id in self.connections:
                logger.warning("Outbox full for %r, closing connection", connection)
                self.discard(connection)
                connection.close_soon()
