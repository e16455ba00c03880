"""Session facade composing the registry, room manager, and game state manager."""

from __future__ import annotations

import sqlite3
from datetime import UTC, datetime
from typing import TYPE_CHECKING

import structlog

from hitster.logic.timeline import get_player_timeline
from hitster.messaging.types import (
    GameStateView,
    PlayerView,
    RoomStateMessage,
    RoomStatePayload,
    TimelineCardView,
)

if TYPE_CHECKING:
    from collections.abc import Callable

    from hitster.logic.state import GameState
    from hitster.messaging.protocol import ConnectionProtocol
    from hitster.session.connections import ConnectionRegistry
    from hitster.session.game_state_manager import GameStateManager
    from hitster.session.heartbeat import HeartbeatMonitor
    from hitster.session.room_manager import RoomManager
    from shared.dal.models import PlayerRecord, RoomRecord
    from shared.dal.player_repository import PlayerRepository
    from shared.dal.room_repository import RoomRepository

logger = structlog.get_logger()


def _utcnow() -> datetime:
    return datetime.now(UTC)


class SessionManager:
    """
    Wire together everything a handler needs for one request cycle.

    Services are constructed by the application factory and passed in, so
    each test can build a fresh set. The connection lifecycle (register,
    disconnect, reconnect) and room-state fan-out live here; game actions
    live in the handlers.
    """

    def __init__(
        self,
        *,
        registry: ConnectionRegistry,
        rooms: RoomManager,
        states: GameStateManager,
        room_repository: RoomRepository,
        player_repository: PlayerRepository,
        heartbeat: HeartbeatMonitor | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.registry = registry
        self.rooms = rooms
        self.states = states
        self.room_repository = room_repository
        self.player_repository = player_repository
        self.heartbeat = heartbeat
        self._clock = clock

    def now(self) -> datetime:
        return self._clock()

    # --- connection lifecycle ---

    def register_connection(self, connection: ConnectionProtocol) -> None:
        self.registry.add(connection)
        if self.heartbeat is not None:
            self.heartbeat.record_connect(connection.connection_id)

    def record_ping(self, connection_id: str) -> None:
        if self.heartbeat is not None:
            self.heartbeat.record_ping(connection_id)

    def attach(self, connection_id: str, room_id: str, player_id: str | None = None) -> None:
        """Associate a connection with a room and, optionally, the player it speaks for."""
        self.rooms.associate(connection_id, room_id)
        self.registry.bind_player(connection_id, player_id)

    def detach(self, connection_id: str) -> None:
        self.rooms.disassociate(connection_id)
        self.registry.bind_player(connection_id, None)

    def player_for_connection(self, connection_id: str) -> str | None:
        info = self.registry.get(connection_id)
        return info.player_id if info is not None else None

    async def reconnect_player(self, connection: ConnectionProtocol, player: PlayerRecord) -> None:
        """Rebind a known player to a (possibly new) connection and mark them online."""
        connection_id = connection.connection_id
        await self.player_repository.mark_reconnected(player.id, connection_id, self.now())
        for info in self.registry.list_all():
            if info.player_id == player.id and info.connection_id != connection_id:
                self.registry.bind_player(info.connection_id, None)
        self.attach(connection_id, player.room_id, player.id)
        logger.info("player reconnected", player_id=player.id, room_id=player.room_id)

    async def handle_disconnect(self, connection: ConnectionProtocol) -> None:
        """
        Run the disconnect path for a closed transport.

        The player stays in the room and the game with score and tokens intact;
        they are only flagged offline so the room can render them as such.
        """
        connection_id = connection.connection_id
        player_id = self.player_for_connection(connection_id)
        try:
            if player_id is not None:
                await self._mark_player_offline(player_id, connection_id)
        except sqlite3.Error:
            logger.exception("failed to record disconnect", player_id=player_id)
        finally:
            self.detach(connection_id)
            self.registry.remove(connection_id)
            if self.heartbeat is not None:
                self.heartbeat.record_disconnect(connection_id)

    async def _mark_player_offline(self, player_id: str, connection_id: str) -> None:
        player = await self.player_repository.get_player(player_id)
        # a newer connection may already have taken over this player
        if player is None or player.socket_id != connection_id:
            return
        async with self.rooms.lock(player.room_id):
            await self.player_repository.mark_disconnected(player.id, self.now())
            self.detach(connection_id)
            await self.broadcast_room_state(player.room_id)
        logger.info("player disconnected", player_id=player.id, room_id=player.room_id)

    async def delete_room(self, room_id: str) -> None:
        await self.room_repository.delete_room(room_id)
        self.states.remove_game_state(room_id)
        self.rooms.forget_room(room_id)
        logger.info("room deleted", room_id=room_id)

    # --- room state ---

    async def _presence(self, room_id: str) -> dict[str, bool]:
        """Player id -> connected flag from the store, or from live bindings when the store fails."""
        try:
            records = await self.player_repository.get_players_in_room(room_id)
        except sqlite3.Error:
            logger.exception("failed to read player presence", room_id=room_id)
            return {info.player_id: True for info in self.registry.list_all() if info.player_id is not None}
        return {record.id: record.connected for record in records}

    async def player_views(self, room_id: str, state: GameState) -> list[PlayerView]:
        """Game players in turn order, merged with their presence."""
        presence = await self._presence(room_id)
        open_round = state.open_round
        return [
            PlayerView(
                id=player.id,
                name=player.name,
                avatar=player.avatar,
                connected=presence.get(player.id, False),
                score=player.score,
                tokens=player.tokens,
                has_placed=open_round is not None and open_round.placement_for(player.id) is not None,
                timeline=[
                    TimelineCardView(track_uri=p.card.track_uri, year=p.card.year)
                    for p in get_player_timeline(state, player.id)
                ],
            )
            for player in state.players
        ]

    async def room_state_message(self, room_id: str, room_key: str) -> RoomStateMessage | None:
        state = await self.states.get_game_state(room_id)
        if state is None:
            return None
        latest = state.latest_round
        game_state = GameStateView(
            mode=state.mode,
            status=state.status,
            current_round=state.current_round,
            round_number=latest.round_number if latest is not None else None,
            current_track=latest.current_card.track_uri if latest is not None else None,
            current_player_id=latest.current_player_id if latest is not None else None,
            winner=state.winner,
        )
        return RoomStateMessage(
            payload=RoomStatePayload(
                room_key=room_key,
                players=await self.player_views(room_id, state),
                game_state=game_state,
                host_device_id=self.rooms.get_host_device(room_id),
            ),
        )

    async def _room_key(self, room_id: str) -> str | None:
        room_key = self.rooms.get_room_key(room_id)
        if room_key is not None:
            return room_key
        try:
            room = await self.room_repository.get_room_by_id(room_id)
        except sqlite3.Error:
            logger.exception("failed to look up room", room_id=room_id)
            return None
        if room is None:
            return None
        self.rooms.remember_room_key(room.id, room.room_key)
        return room.room_key

    async def broadcast_room_state(self, room_id: str) -> None:
        room_key = await self._room_key(room_id)
        if room_key is None:
            logger.warning("room state broadcast for unknown room", room_id=room_id)
            return
        message = await self.room_state_message(room_id, room_key)
        if message is None:
            logger.warning("room has no game state", room_id=room_id)
            return
        await self.rooms.broadcast_to_room(room_id, message.to_wire())

    async def send_room_state(self, connection_id: str, room: RoomRecord) -> bool:
        self.rooms.remember_room_key(room.id, room.room_key)
        message = await self.room_state_message(room.id, room.room_key)
        if message is None:
            return False
        return await self.rooms.send_to_connection(connection_id, message.to_wire())
