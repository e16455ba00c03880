"""SQLite-backed room repository."""

from __future__ import annotations

import asyncio
import sqlite3
from typing import TYPE_CHECKING

import structlog

from shared.dal.models import RoomRecord
from shared.dal.room_repository import RoomRepository
from shared.db.connection import to_db_timestamp

if TYPE_CHECKING:
    from datetime import datetime

    from shared.db.connection import Database

logger = structlog.get_logger()

_ROOM_COLUMNS = "id, room_key, game_mode, created_at, game_state, playlist_id, playlist_data"


def _row_to_room(row: sqlite3.Row) -> RoomRecord:
    return RoomRecord.model_validate(dict(row))


class SqliteRoomRepository(RoomRepository):
    """SQLite implementation of RoomRepository.

    Game state and playlist are stored as JSON text columns; the repository
    never parses them.
    """

    def __init__(self, db: Database) -> None:
        self._db = db
        self._lock = asyncio.Lock()

    async def create_room(self, room: RoomRecord) -> None:
        """Insert a room. Raises ValueError on a duplicate id or room key."""
        async with self._lock:
            try:
                self._db.connection.execute(
                    f"INSERT INTO rooms ({_ROOM_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?)",  # noqa: S608
                    (
                        room.id,
                        room.room_key,
                        room.game_mode,
                        to_db_timestamp(room.created_at),
                        room.game_state,
                        room.playlist_id,
                        room.playlist_data,
                    ),
                )
                self._db.connection.commit()
            except sqlite3.IntegrityError as exc:
                self._db.connection.rollback()
                if "rooms.room_key" in str(exc):
                    raise ValueError(f"Room key '{room.room_key}' already in use") from exc
                raise ValueError(f"Room '{room.id}' already exists") from exc

    async def get_room_by_id(self, room_id: str) -> RoomRecord | None:
        row = self._db.connection.execute(
            f"SELECT {_ROOM_COLUMNS} FROM rooms WHERE id = ?",  # noqa: S608
            (room_id,),
        ).fetchone()
        return _row_to_room(row) if row is not None else None

    async def get_room_by_key(self, room_key: str) -> RoomRecord | None:
        row = self._db.connection.execute(
            f"SELECT {_ROOM_COLUMNS} FROM rooms WHERE room_key = ?",  # noqa: S608
            (room_key,),
        ).fetchone()
        return _row_to_room(row) if row is not None else None

    async def get_all_rooms(self) -> list[RoomRecord]:
        rows = self._db.connection.execute(
            f"SELECT {_ROOM_COLUMNS} FROM rooms ORDER BY created_at",  # noqa: S608
        ).fetchall()
        return [_row_to_room(row) for row in rows]

    async def update_game_state(self, room_id: str, game_state: str) -> None:
        async with self._lock:
            cursor = self._db.connection.execute(
                "UPDATE rooms SET game_state = ? WHERE id = ?",
                (game_state, room_id),
            )
            self._db.connection.commit()
        if cursor.rowcount == 0:
            logger.warning("game state update for unknown room", room_id=room_id)

    async def delete_room(self, room_id: str) -> None:
        """Delete a room; its players go with it (ON DELETE CASCADE)."""
        async with self._lock:
            self._db.connection.execute("DELETE FROM rooms WHERE id = ?", (room_id,))
            self._db.connection.commit()

    async def get_empty_rooms_older_than(self, cutoff: datetime) -> list[RoomRecord]:
        rows = self._db.connection.execute(
            f"SELECT {_ROOM_COLUMNS} FROM rooms r "  # noqa: S608
            "WHERE r.created_at < ? "
            "AND NOT EXISTS (SELECT 1 FROM players p WHERE p.room_id = r.id) "
            "ORDER BY r.created_at",
            (to_db_timestamp(cutoff),),
        ).fetchall()
        return [_row_to_room(row) for row in rows]
