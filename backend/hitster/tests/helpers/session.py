"""Shared builders for session and handler tests."""

from __future__ import annotations

import random
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING, Any

from hitster.session.connections import ConnectionRegistry
from hitster.session.game_state_manager import GameStateManager
from hitster.session.heartbeat import HeartbeatMonitor
from hitster.session.manager import SessionManager
from hitster.session.room_manager import RoomManager
from hitster.tests.mocks import MockConnection
from shared.db import SqlitePlayerRepository, SqliteRoomRepository

if TYPE_CHECKING:
    from hitster.messaging.router import MessageRouter
    from shared.db import Database


class FakeClock:
    """Settable wall clock for code that stamps last_seen/created_at."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2025, 6, 1, 12, 0, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


def make_session_manager(db: Database, clock: FakeClock | None = None, seed: int = 7) -> SessionManager:
    room_repository = SqliteRoomRepository(db)
    registry = ConnectionRegistry()
    return SessionManager(
        registry=registry,
        rooms=RoomManager(registry),
        states=GameStateManager(room_repository, rng=random.Random(seed)),
        room_repository=room_repository,
        player_repository=SqlitePlayerRepository(db),
        heartbeat=HeartbeatMonitor(registry),
        clock=clock or FakeClock(),
    )


def track(uri: str, year: int | None) -> dict[str, Any]:
    return {"trackUri": uri, "name": f"Song {uri}", "artist": "Artist", "releaseYear": year}


async def connect(router: MessageRouter) -> MockConnection:
    connection = MockConnection()
    await router.handle_connect(connection)
    return connection


async def send(router: MessageRouter, connection: MockConnection, message_type: str, **payload: Any) -> None:
    await router.handle_message(connection, {"type": message_type, "payload": payload})


async def create_room(
    router: MessageRouter,
    game_mode: str = "original",
    tracks: list[dict[str, Any]] | None = None,
) -> tuple[MockConnection, str, str]:
    """Create a room from a fresh host connection. Returns (host, room_key, room_id)."""
    host = await connect(router)
    payload: dict[str, Any] = {"gameMode": game_mode}
    if tracks is not None:
        payload["tracks"] = tracks
    await send(router, host, "CREATE_ROOM", **payload)
    created = host.last_of_type("ROOM_CREATED")["payload"]
    return host, created["roomKey"], created["roomId"]


async def join_room(
    router: MessageRouter,
    room_key: str,
    name: str,
    avatar: str = "avatar-1",
    connection: MockConnection | None = None,
) -> tuple[MockConnection, str]:
    """Join a room as a player. Returns (connection, player_id)."""
    connection = connection or await connect(router)
    await send(router, connection, "JOIN_ROOM", roomKey=room_key, name=name, avatar=avatar)
    return connection, connection.last_of_type("JOINED")["payload"]["playerId"]


def error_codes(connection: MockConnection) -> list[str]:
    return [m["payload"]["code"] for m in connection.messages_of_type("ERROR")]
