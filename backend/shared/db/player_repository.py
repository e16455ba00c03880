"""SQLite-backed player repository."""

from __future__ import annotations

import asyncio
import logging
import sqlite3
from typing import TYPE_CHECKING

from shared.dal.models import PlayerRecord
from shared.dal.player_repository import PlayerRepository
from shared.db.connection import to_db_timestamp

if TYPE_CHECKING:
    from datetime import datetime

    from shared.db.connection import Database

logger = logging.getLogger(__name__)

_PLAYER_COLUMNS = "id, name, avatar, room_id, socket_id, created_at, connected, last_seen"


def _row_to_player(row: sqlite3.Row) -> PlayerRecord:
    return PlayerRecord.model_validate(dict(row))


class SqlitePlayerRepository(PlayerRepository):
    """SQLite implementation of PlayerRepository.

    Writes run under an asyncio lock. A socket id can be bound to at most one
    player; the unique constraint is mapped to ValueError.
    """

    def __init__(self, db: Database) -> None:
        self._db = db
        self._lock = asyncio.Lock()

    async def create_player(self, player: PlayerRecord) -> None:
        """Insert a player. Raises ValueError on duplicate id, bound socket, or unknown room."""
        async with self._lock:
            try:
                self._db.connection.execute(
                    f"INSERT INTO players ({_PLAYER_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?)",  # noqa: S608
                    (
                        player.id,
                        player.name,
                        player.avatar,
                        player.room_id,
                        player.socket_id,
                        to_db_timestamp(player.created_at),
                        int(player.connected),
                        to_db_timestamp(player.last_seen) if player.last_seen else None,
                    ),
                )
                self._db.connection.commit()
            except sqlite3.IntegrityError as exc:
                self._db.connection.rollback()
                error_msg = str(exc).lower()
                if "players.socket_id" in error_msg:
                    raise ValueError(f"Socket '{player.socket_id}' is already bound to a player") from exc
                if "foreign key" in error_msg:
                    raise ValueError(f"Room '{player.room_id}' does not exist") from exc
                raise ValueError(f"Player with id '{player.id}' already exists") from exc

    async def _fetch_one(self, where: str, params: tuple[object, ...]) -> PlayerRecord | None:
        row = self._db.connection.execute(
            f"SELECT {_PLAYER_COLUMNS} FROM players WHERE {where}",  # noqa: S608
            params,
        ).fetchone()
        return _row_to_player(row) if row is not None else None

    async def get_player(self, player_id: str) -> PlayerRecord | None:
        return await self._fetch_one("id = ?", (player_id,))

    async def get_player_by_identity(self, room_id: str, name: str, avatar: str) -> PlayerRecord | None:
        return await self._fetch_one(
            "room_id = ? AND name = ? AND avatar = ? ORDER BY created_at LIMIT 1",
            (room_id, name, avatar),
        )

    async def get_players_in_room(self, room_id: str) -> list[PlayerRecord]:
        rows = self._db.connection.execute(
            f"SELECT {_PLAYER_COLUMNS} FROM players WHERE room_id = ? ORDER BY created_at",  # noqa: S608
            (room_id,),
        ).fetchall()
        return [_row_to_player(row) for row in rows]

    async def mark_disconnected(self, player_id: str, last_seen: datetime) -> None:
        async with self._lock:
            self._db.connection.execute(
                "UPDATE players SET connected = 0, socket_id = NULL, last_seen = ? WHERE id = ?",
                (to_db_timestamp(last_seen), player_id),
            )
            self._db.connection.commit()

    async def mark_reconnected(self, player_id: str, socket_id: str, last_seen: datetime) -> None:
        """Bind the player to socket_id, releasing the socket from any other player first."""
        async with self._lock:
            conn = self._db.connection
            try:
                conn.execute(
                    "UPDATE players SET socket_id = NULL WHERE socket_id = ? AND id != ?",
                    (socket_id, player_id),
                )
                conn.execute(
                    "UPDATE players SET connected = 1, socket_id = ?, last_seen = ? WHERE id = ?",
                    (socket_id, to_db_timestamp(last_seen), player_id),
                )
                conn.commit()
            except sqlite3.Error:
                conn.rollback()
                raise

    async def get_disconnected_players(self, room_id: str, older_than: datetime) -> list[PlayerRecord]:
        rows = self._db.connection.execute(
            f"SELECT {_PLAYER_COLUMNS} FROM players "  # noqa: S608
            "WHERE room_id = ? AND connected = 0 AND last_seen IS NOT NULL AND last_seen < ? "
            "ORDER BY last_seen",
            (room_id, to_db_timestamp(older_than)),
        ).fetchall()
        return [_row_to_player(row) for row in rows]

    async def delete_player(self, player_id: str) -> None:
        async with self._lock:
            self._db.connection.execute("DELETE FROM players WHERE id = ?", (player_id,))
            self._db.connection.commit()
        logger.info("deleted player %s", player_id)
