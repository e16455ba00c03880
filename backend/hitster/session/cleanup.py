"""Background sweep for long-disconnected players and abandoned rooms."""

from __future__ import annotations

import asyncio
import contextlib
from datetime import timedelta
from typing import TYPE_CHECKING

import structlog

from hitster.logic.enums import GameStatus
from hitster.logic.game import remove_player

if TYPE_CHECKING:
    from datetime import datetime

    from hitster.session.manager import SessionManager

logger = structlog.get_logger()

DISCONNECT_GRACE_SECONDS = 300
ROOM_CLEANUP_TIMEOUT_SECONDS = 30 * 60
CLEANUP_INTERVAL_SECONDS = 5 * 60


class SessionCleanup:
    """Periodically remove stale players and empty rooms.

    A player offline for longer than the grace period loses their player
    record. They also leave the game itself while it is still in the lobby;
    once a game is under way the engine keeps them in the turn order.
    An empty room older than the room timeout is deleted along with its
    in-memory state, unless a connection (such as the host) is still in it.
    """

    def __init__(
        self,
        session: SessionManager,
        *,
        disconnect_grace_seconds: float = DISCONNECT_GRACE_SECONDS,
        room_timeout_seconds: float = ROOM_CLEANUP_TIMEOUT_SECONDS,
        interval_seconds: float = CLEANUP_INTERVAL_SECONDS,
    ) -> None:
        self._session = session
        self._grace = timedelta(seconds=disconnect_grace_seconds)
        self._room_timeout = timedelta(seconds=room_timeout_seconds)
        self._interval = interval_seconds
        self._task: asyncio.Task[None] | None = None

    async def remove_stale_players(self, now: datetime | None = None) -> int:
        session = self._session
        cutoff = (now or session.now()) - self._grace
        removed = 0
        for room in await session.room_repository.get_all_rooms():
            stale = await session.player_repository.get_disconnected_players(room.id, cutoff)
            if not stale:
                continue
            async with session.rooms.lock(room.id):
                state = await session.states.get_game_state(room.id)
                new_state = state
                for player in stale:
                    if new_state is not None and new_state.status == GameStatus.LOBBY and new_state.has_player(player.id):
                        new_state = remove_player(new_state, player.id)
                    await session.player_repository.delete_player(player.id)
                    removed += 1
                    logger.info("removed stale player", player_id=player.id, room_id=room.id)
                if new_state is not None and new_state is not state:
                    await session.states.commit(room.id, new_state)
                await session.broadcast_room_state(room.id)
        return removed

    async def remove_empty_rooms(self, now: datetime | None = None) -> int:
        session = self._session
        cutoff = (now or session.now()) - self._room_timeout
        removed = 0
        for room in await session.room_repository.get_empty_rooms_older_than(cutoff):
            if session.rooms.get_connections_in_room(room.id):
                continue
            await session.delete_room(room.id)
            removed += 1
        if removed:
            logger.info("removed empty rooms", count=removed)
        return removed

    async def run_once(self, now: datetime | None = None) -> tuple[int, int]:
        players = await self.remove_stale_players(now)
        rooms = await self.remove_empty_rooms(now)
        return players, rooms

    def start(self) -> None:
        """Start the periodic sweep task. Idempotent."""
        if self._task is not None and not self._task.done():
            return
        self._task = asyncio.create_task(self._sweep_loop())

    async def stop(self) -> None:
        if self._task is not None:
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task
            self._task = None

    async def _sweep_loop(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            try:
                await self.run_once()
            except Exception:
                logger.exception("session cleanup encountered an error")
