"""Room bookkeeping for real-time connections.

The hub owns the only copy of room membership: a map from room key to the ids
of the connections in it. Membership changes go through ``join``/``leave``,
``register`` and ``unregister``; connections refer to rooms by key only.
"""
from __future__ import annotations

import asyncio
import uuid
import weakref
from collections import defaultdict
from typing import Any, Iterable, Protocol

from starlette.websockets import WebSocketDisconnect

from greythr.core.logging import get_logger
from greythr.core.observability import ws_connections

logger = get_logger(__name__)


def user_room(user_id: int) -> str:
    return f"user:{user_id}"


def chat_room(chat_id: int) -> str:
    return f"chat:{chat_id}"


class Transport(Protocol):
    async def send_json(self, data: Any) -> None: ...


class Connection:
    def __init__(self, transport: Transport, user_id: int, user_name: str = "") -> None:
        self.id = uuid.uuid4().hex
        self.transport = transport
        self.user_id = user_id
        self.user_name = user_name

    async def emit(self, event: str, data: Any) -> None:
        await self.transport.send_json({"event": event, "data": data})

    def __repr__(self) -> str:
        return f"Connection(id={self.id!r}, user_id={self.user_id})"


class ChannelHub:
    def __init__(self) -> None:
        self._connections: dict[str, Connection] = {}
        # dict values unused; keeps members in join order
        self._rooms: dict[str, dict[str, None]] = defaultdict(dict)
        # a lock lives while some coroutine holds a reference to it
        self._room_locks: weakref.WeakValueDictionary[str, asyncio.Lock] = weakref.WeakValueDictionary()

    # membership

    def register(self, connection: Connection) -> None:
        self._connections[connection.id] = connection
        self.join(connection, user_room(connection.user_id))
        ws_connections.add(1)
        logger.info("ws_connected", user_id=connection.user_id, connection_id=connection.id)

    def unregister(self, connection: Connection) -> None:
        if self._connections.pop(connection.id, None) is None:
            return
        for room in list(self._rooms):
            self._discard(room, connection.id)
        ws_connections.add(-1)
        logger.info("ws_disconnected", user_id=connection.user_id, connection_id=connection.id)

    def join(self, connection: Connection, room: str) -> None:
        self._rooms[room][connection.id] = None

    def leave(self, connection: Connection, room: str) -> None:
        self._discard(room, connection.id)

    def _discard(self, room: str, connection_id: str) -> None:
        members = self._rooms.get(room)
        if members is None:
            return
        members.pop(connection_id, None)
        if not members:
            del self._rooms[room]

    def is_member(self, connection: Connection, room: str) -> bool:
        return connection.id in self._rooms.get(room, ())

    def room_members(self, room: str) -> list[Connection]:
        return [self._connections[cid] for cid in self._rooms.get(room, ()) if cid in self._connections]

    def rooms_of(self, connection: Connection) -> set[str]:
        return {room for room, members in self._rooms.items() if connection.id in members}

    @property
    def connection_count(self) -> int:
        return len(self._connections)

    def room_lock(self, room: str) -> asyncio.Lock:
        """Serialises persist-then-broadcast sequences within one room."""
        lock = self._room_locks.get(room)
        if lock is None:
            lock = self._room_locks[room] = asyncio.Lock()
        return lock

    # delivery

    async def _deliver(self, targets: Iterable[Connection], event: str, data: Any) -> None:
        for connection in list(targets):
            try:
                await connection.emit(event, data)
            except (WebSocketDisconnect, RuntimeError, OSError) as exc:
                # peer went away between lookup and send
                logger.warning("ws_send_failed", connection_id=connection.id, event_name=event, error=str(exc))
                self.unregister(connection)

    async def emit_to_room(
        self, room: str, event: str, data: Any, exclude: Connection | None = None
    ) -> None:
        targets = [c for c in self.room_members(room) if exclude is None or c.id != exclude.id]
        await self._deliver(targets, event, data)

    async def broadcast(self, event: str, data: Any, exclude: Connection | None = None) -> None:
        targets = [c for c in self._connections.values() if exclude is None or c.id != exclude.id]
        await self._deliver(targets, event, data)

    async def notify_user(self, user_id: int, notification: dict[str, Any]) -> None:
        await self.emit_to_room(user_room(user_id), "new_notification", notification)

    async def announce(self, announcement: dict[str, Any]) -> None:
        await self.broadcast("new_announcement", announcement)
