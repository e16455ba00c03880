"""SQLite database connection and schema management."""

import os
import sqlite3
from datetime import datetime
from pathlib import Path

import structlog

logger = structlog.get_logger()

_DB_FILE_PERMISSIONS = 0o600

_SCHEMA_SQL = """\
CREATE TABLE IF NOT EXISTS rooms (
    id TEXT PRIMARY KEY,
    room_key TEXT NOT NULL UNIQUE,
    game_mode TEXT NOT NULL,
    created_at TEXT NOT NULL,
    game_state TEXT,
    playlist_id TEXT,
    playlist_data TEXT
);

CREATE TABLE IF NOT EXISTS players (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    avatar TEXT NOT NULL,
    room_id TEXT NOT NULL REFERENCES rooms (id) ON DELETE CASCADE,
    socket_id TEXT UNIQUE,
    created_at TEXT NOT NULL,
    connected INTEGER NOT NULL DEFAULT 1,
    last_seen TEXT
);

CREATE INDEX IF NOT EXISTS idx_players_room_id ON players (room_id);
"""

# Columns added after the first schema version: (table, column, definition).
_ADDED_COLUMNS = (
    ("rooms", "playlist_id", "TEXT"),
    ("rooms", "playlist_data", "TEXT"),
    ("players", "connected", "INTEGER NOT NULL DEFAULT 1"),
    ("players", "last_seen", "TEXT"),
)


def to_db_timestamp(value: datetime) -> str:
    """Fixed-width ISO timestamp so stored values compare correctly as text."""
    return value.isoformat(timespec="microseconds")


class Database:
    """SQLite database wrapper with schema management and migration support."""

    def __init__(self, path: str | Path) -> None:
        self._path = str(path)
        self._conn: sqlite3.Connection | None = None

    @property
    def connection(self) -> sqlite3.Connection:
        """Return the active connection or raise if disconnected."""
        if self._conn is None:
            raise RuntimeError("Database is not connected")
        return self._conn

    def connect(self) -> None:
        """Open the database, apply pragmas, create schema, and harden file permissions."""
        parent = Path(self._path).parent
        parent.mkdir(parents=True, exist_ok=True)

        self._conn = sqlite3.connect(self._path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.execute("PRAGMA foreign_keys=ON")
        self._conn.execute("PRAGMA busy_timeout=5000")
        self._conn.executescript(_SCHEMA_SQL)
        self._add_missing_columns()

        self._harden_permissions()

    def close(self) -> None:
        """Close the database connection."""
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    def _add_missing_columns(self) -> None:
        """Bring databases created by older versions up to the current schema."""
        conn = self.connection
        for table, column, definition in _ADDED_COLUMNS:
            existing = {row["name"] for row in conn.execute(f"PRAGMA table_info({table})")}
            if column not in existing:
                conn.execute(f"ALTER TABLE {table} ADD COLUMN {column} {definition}")
                logger.info("added missing column", table=table, column=column)
        conn.commit()

    def _harden_permissions(self) -> None:
        """Set restrictive file permissions on POSIX systems (best effort).

        Covers the WAL/SHM sibling files too, since they hold database content.
        """
        if os.name != "posix":  # pragma: no cover
            return
        for suffix in ("", "-wal", "-shm"):
            p = Path(self._path + suffix)
            if p.exists():
                try:
                    p.chmod(_DB_FILE_PERMISSIONS)
                except OSError:
                    logger.warning("could not set file permissions", permissions=oct(_DB_FILE_PERMISSIONS), path=str(p))
