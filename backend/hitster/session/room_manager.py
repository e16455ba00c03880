"""Connection-to-room association, host devices, and room-targeted sends."""

from __future__ import annotations

import asyncio
import contextlib
from typing import TYPE_CHECKING, Any

import structlog

from hitster.messaging.types import ErrorCode, ErrorMessage
from hitster.session.broadcast import broadcast_to_connections

if TYPE_CHECKING:
    from hitster.session.connections import ConnectionRegistry

logger = structlog.get_logger()


class RoomManager:
    """Own the connection <-> room mapping and the room <-> host device mapping.

    A connection belongs to at most one room. Both directions of the mapping
    are kept so room lookup by connection and fan-out by room are O(1) and
    O(room size). Transports are resolved through the ConnectionRegistry at
    send time, so a connection that already went away is simply skipped.
    """

    def __init__(self, registry: ConnectionRegistry) -> None:
        self._registry = registry
        self._connection_rooms: dict[str, str] = {}  # connection_id -> room_id
        self._room_connections: dict[str, set[str]] = {}  # room_id -> connection_ids
        self._host_devices: dict[str, str] = {}  # room_id -> device_id
        self._room_keys: dict[str, str] = {}  # room_id -> room_key
        self._room_locks: dict[str, asyncio.Lock] = {}

    # --- association ---

    def associate(self, connection_id: str, room_id: str) -> None:
        """Bind a connection to a room, moving it out of any previous room."""
        previous = self._connection_rooms.get(connection_id)
        if previous == room_id:
            return
        if previous is not None:
            self.disassociate(connection_id)
        self._connection_rooms[connection_id] = room_id
        self._room_connections.setdefault(room_id, set()).add(connection_id)
        self._registry.bind_room(connection_id, room_id)
        logger.debug("connection associated", connection_id=connection_id, room_id=room_id)

    def disassociate(self, connection_id: str) -> None:
        """Unbind a connection from its room. No-op when it is not in a room."""
        room_id = self._connection_rooms.pop(connection_id, None)
        if room_id is None:
            return
        members = self._room_connections.get(room_id)
        if members is not None:
            members.discard(connection_id)
            if not members:
                del self._room_connections[room_id]
        self._registry.bind_room(connection_id, None)

    def get_room_for_connection(self, connection_id: str) -> str | None:
        return self._connection_rooms.get(connection_id)

    def get_connections_in_room(self, room_id: str) -> set[str]:
        return set(self._room_connections.get(room_id, ()))

    @property
    def room_count(self) -> int:
        """Number of rooms with at least one associated connection."""
        return len(self._room_connections)

    def forget_room(self, room_id: str) -> None:
        """Drop every association and per-room entry held for a deleted room."""
        for connection_id in self.get_connections_in_room(room_id):
            self.disassociate(connection_id)
        self._host_devices.pop(room_id, None)
        self._room_keys.pop(room_id, None)
        self._room_locks.pop(room_id, None)

    # --- host devices ---

    def set_host_device(self, room_id: str, device_id: str) -> None:
        self._host_devices[room_id] = device_id

    def get_host_device(self, room_id: str) -> str | None:
        return self._host_devices.get(room_id)

    # --- room keys ---

    def remember_room_key(self, room_id: str, room_key: str) -> None:
        """Cache the key clients know the room by; room-state broadcasts read it from here."""
        self._room_keys[room_id] = room_key

    def get_room_key(self, room_id: str) -> str | None:
        return self._room_keys.get(room_id)

    # --- serialization ---

    def lock(self, room_id: str) -> asyncio.Lock:
        """Return the lock that serializes state changes of one room.

        Handlers hold it across load, transition, commit, and broadcast so
        two messages for the same room never interleave at an await.
        """
        room_lock = self._room_locks.get(room_id)
        if room_lock is None:
            room_lock = asyncio.Lock()
            self._room_locks[room_id] = room_lock
        return room_lock

    # --- sending ---

    async def broadcast_to_room(
        self,
        room_id: str,
        message: dict[str, Any],
        exclude_connection_id: str | None = None,
    ) -> int:
        """Send to every connection associated with the room; dead ones are skipped."""
        connections = []
        for connection_id in self.get_connections_in_room(room_id):
            info = self._registry.get(connection_id)
            if info is not None:
                connections.append(info.connection)
        return await broadcast_to_connections(connections, message, exclude_connection_id)

    async def send_to_connection(self, connection_id: str, message: dict[str, Any]) -> bool:
        """Unicast a message. Returns False when the connection is gone or the send failed."""
        info = self._registry.get(connection_id)
        if info is None:
            return False
        with contextlib.suppress(RuntimeError, OSError, ConnectionError):
            await info.connection.send_message(message)
            return True
        return False

    async def send_error(
        self,
        connection_id: str,
        code: ErrorCode,
        message: str,
        details: list[str] | None = None,
    ) -> bool:
        logger.info("sending error", connection_id=connection_id, code=code, error=message)
        return await self.send_to_connection(connection_id, ErrorMessage.create(code, message, details).to_wire())
