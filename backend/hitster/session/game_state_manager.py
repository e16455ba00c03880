"""Authoritative in-memory game state per room, mirrored to durable storage."""

from __future__ import annotations

import random
import sqlite3
from collections import deque
from typing import TYPE_CHECKING

import structlog
from pydantic import TypeAdapter, ValidationError

from hitster.logic.game import create_game
from hitster.logic.state import GameState
from hitster.messaging.types import PlaylistTrack
from hitster.session.playlist import playable_tracks, shuffle_tracks

if TYPE_CHECKING:
    from collections.abc import Iterable

    from hitster.logic.enums import GameMode
    from shared.dal.models import RoomRecord
    from shared.dal.room_repository import RoomRepository

logger = structlog.get_logger()

_track_list_adapter: TypeAdapter[list[PlaylistTrack]] = TypeAdapter(list[PlaylistTrack])


def serialize_tracks(tracks: Iterable[PlaylistTrack]) -> str:
    return _track_list_adapter.dump_json(list(tracks), by_alias=True).decode()


def deserialize_tracks(data: str) -> list[PlaylistTrack]:
    return _track_list_adapter.validate_json(data)


class GameStateManager:
    """
    Hold one GameState per room plus the room's shuffled track queue.

    Memory is authoritative for the life of the process. Every accepted
    transition is written through to the room repository; write failures
    are logged and never surface as game errors. Reads fall back to the
    repository on a cache miss.
    """

    def __init__(self, room_repository: RoomRepository, rng: random.Random | None = None) -> None:
        self._rooms = room_repository
        self._rng = rng or random.Random()  # noqa: S311
        self._states: dict[str, GameState] = {}
        self._track_queues: dict[str, deque[PlaylistTrack]] = {}

    # --- game state ---

    async def get_game_state(self, room_id: str) -> GameState | None:
        """Return the room's state, lazily loading the durable copy on a cache miss."""
        state = self._states.get(room_id)
        if state is not None:
            return state
        try:
            room = await self._rooms.get_room_by_id(room_id)
        except sqlite3.Error:
            logger.exception("failed to load game state", room_id=room_id)
            return None
        if room is None:
            return None
        state = self._parse_room_state(room)
        if state is not None:
            self._states[room_id] = state
        return state

    def set_game_state(self, room_id: str, state: GameState) -> None:
        self._states[room_id] = state

    def has_game_state(self, room_id: str) -> bool:
        return room_id in self._states

    async def persist_game_state(self, room_id: str) -> bool:
        """Write the in-memory state through to storage. Returns False if the write failed."""
        state = self._states.get(room_id)
        if state is None:
            return False
        try:
            await self._rooms.update_game_state(room_id, state.model_dump_json())
        except sqlite3.Error:
            logger.exception("failed to persist game state", room_id=room_id)
            return False
        return True

    async def commit(self, room_id: str, state: GameState) -> None:
        """Accept a transition: memory first, then the durable mirror."""
        self.set_game_state(room_id, state)
        await self.persist_game_state(room_id)

    async def initialize_game_state(self, room_id: str, mode: GameMode) -> GameState:
        state = create_game(mode)
        await self.commit(room_id, state)
        return state

    def remove_game_state(self, room_id: str) -> None:
        self._states.pop(room_id, None)
        self._track_queues.pop(room_id, None)

    @property
    def game_count(self) -> int:
        return len(self._states)

    # --- track queue ---

    def initialize_playlist_tracks(self, room_id: str, tracks: Iterable[PlaylistTrack]) -> int:
        """Shuffle the room's scorable tracks into a fresh queue. Returns the queue length."""
        shuffled = shuffle_tracks(playable_tracks(tracks), self._rng)
        self._track_queues[room_id] = deque(shuffled)
        logger.info("playlist initialized", room_id=room_id, tracks=len(shuffled))
        return len(shuffled)

    def get_next_track(self, room_id: str) -> PlaylistTrack | None:
        queue = self._track_queues.get(room_id)
        return queue[0] if queue else None

    def consume_track(self, room_id: str) -> PlaylistTrack | None:
        """Pop the next track. A consumed track never comes back."""
        queue = self._track_queues.get(room_id)
        return queue.popleft() if queue else None

    def get_remaining_track_count(self, room_id: str) -> int:
        return len(self._track_queues.get(room_id, ()))

    # --- warm-up ---

    async def load_all_game_states(self) -> int:
        """Rebuild the cache from storage. Rooms that fail to parse are skipped."""
        loaded = 0
        for room in await self._rooms.get_all_rooms():
            state = self._parse_room_state(room)
            if state is None:
                continue
            self._states[room.id] = state
            self._restore_track_queue(room, state)
            loaded += 1
        logger.info("game states loaded", count=loaded)
        return loaded

    def _parse_room_state(self, room: RoomRecord) -> GameState | None:
        if room.game_state is None:
            return None
        try:
            return GameState.model_validate_json(room.game_state)
        except ValidationError:
            logger.warning("skipping unparsable game state", room_id=room.id)
            return None

    def _restore_track_queue(self, room: RoomRecord, state: GameState) -> None:
        """Requeue the stored playlist minus tracks already used by rounds."""
        if room.playlist_data is None:
            return
        try:
            tracks = deserialize_tracks(room.playlist_data)
        except ValidationError:
            logger.warning("skipping unparsable playlist", room_id=room.id)
            return
        used = {round_.current_card.track_uri for round_ in state.rounds}
        self.initialize_playlist_tracks(room.id, [t for t in tracks if t.track_uri not in used])
