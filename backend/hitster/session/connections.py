"""Process-wide registry of live connections."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from hitster.messaging.protocol import ConnectionProtocol

logger = structlog.get_logger()


@dataclass
class ConnectionInfo:
    """A live connection plus denormalized room/player bindings."""

    connection: ConnectionProtocol
    connected_at: datetime
    room_id: str | None = None
    player_id: str | None = None

    @property
    def connection_id(self) -> str:
        return self.connection.connection_id


class ConnectionRegistry:
    """In-memory table of open connections keyed by connection id.

    Never persisted: after a restart clients reconnect and re-announce.
    """

    def __init__(self) -> None:
        self._connections: dict[str, ConnectionInfo] = {}

    def add(self, connection: ConnectionProtocol) -> ConnectionInfo:
        info = ConnectionInfo(connection=connection, connected_at=datetime.now(UTC))
        self._connections[connection.connection_id] = info
        logger.debug("connection registered", connection_id=connection.connection_id)
        return info

    def remove(self, connection_id: str) -> ConnectionInfo | None:
        return self._connections.pop(connection_id, None)

    def get(self, connection_id: str) -> ConnectionInfo | None:
        return self._connections.get(connection_id)

    def has(self, connection_id: str) -> bool:
        return connection_id in self._connections

    def list_all(self) -> list[ConnectionInfo]:
        return list(self._connections.values())

    @property
    def count(self) -> int:
        return len(self._connections)

    def bind_room(self, connection_id: str, room_id: str | None) -> None:
        info = self._connections.get(connection_id)
        if info is not None:
            info.room_id = room_id

    def bind_player(self, connection_id: str, player_id: str | None) -> None:
        info = self._connections.get(connection_id)
        if info is not None:
            info.player_id = player_id
