"""Handlers for room lifecycle messages: create, join, leave, state requests, devices, ping."""

from __future__ import annotations

import secrets
from typing import TYPE_CHECKING
from uuid import uuid4

import structlog

from hitster.logic.enums import GameStatus
from hitster.logic.exceptions import GameRuleError
from hitster.logic.game import create_game, join_player, remove_player
from hitster.logic.state import Player
from hitster.messaging.types import (
    DeviceRegisteredMessage,
    DeviceRegisteredPayload,
    ErrorCode,
    JoinedMessage,
    JoinedPayload,
    PongMessage,
    RoomCreatedMessage,
    RoomCreatedPayload,
)
from hitster.session.game_state_manager import serialize_tracks
from shared.dal.models import PlayerRecord, RoomRecord

if TYPE_CHECKING:
    from hitster.messaging.protocol import ConnectionProtocol
    from hitster.messaging.types import (
        CreateRoomMessage,
        JoinRoomMessage,
        LeaveMessage,
        PingMessage,
        RegisterDeviceMessage,
        RequestRoomStateMessage,
    )
    from hitster.session.manager import SessionManager
    from shared.dal.room_repository import RoomRepository

logger = structlog.get_logger()

ROOM_KEY_DIGITS = 6
_ROOM_KEY_ATTEMPTS = 20


async def generate_room_key(rooms: RoomRepository) -> str | None:
    """Pick an unused numeric room key, or None if every attempt collided."""
    for _ in range(_ROOM_KEY_ATTEMPTS):
        room_key = f"{secrets.randbelow(10**ROOM_KEY_DIGITS):0{ROOM_KEY_DIGITS}d}"
        if await rooms.get_room_by_key(room_key) is None:
            return room_key
    return None


async def handle_create_room(
    session: SessionManager,
    connection: ConnectionProtocol,
    message: CreateRoomMessage,
) -> None:
    """Create a room with a fresh lobby game and make the sender its host connection."""
    payload = message.payload
    connection_id = connection.connection_id
    room_key = await generate_room_key(session.room_repository)
    if room_key is None:
        await session.rooms.send_error(connection_id, ErrorCode.ROOM_CREATE_FAILED, "No free room key")
        return

    state = create_game(payload.game_mode)
    room = RoomRecord(
        id=str(uuid4()),
        room_key=room_key,
        game_mode=payload.game_mode,
        created_at=session.now(),
        game_state=state.model_dump_json(),
        playlist_id=payload.playlist_id,
        playlist_data=serialize_tracks(payload.tracks) if payload.tracks is not None else None,
    )
    try:
        await session.room_repository.create_room(room)
    except ValueError as e:
        await session.rooms.send_error(connection_id, ErrorCode.ROOM_CREATE_FAILED, str(e))
        return

    session.states.set_game_state(room.id, state)
    session.rooms.remember_room_key(room.id, room_key)
    if payload.tracks:
        session.states.initialize_playlist_tracks(room.id, payload.tracks)
    session.attach(connection_id, room.id)
    structlog.contextvars.bind_contextvars(room_id=room.id)
    logger.info("room created", room_key=room_key, game_mode=payload.game_mode)

    await session.rooms.send_to_connection(
        connection_id,
        RoomCreatedMessage(payload=RoomCreatedPayload(room_key=room_key, room_id=room.id)).to_wire(),
    )


async def _send_joined(session: SessionManager, connection_id: str, player_id: str, room: RoomRecord) -> None:
    state = await session.states.get_game_state(room.id)
    players = await session.player_views(room.id, state) if state is not None else []
    await session.rooms.send_to_connection(
        connection_id,
        JoinedMessage(payload=JoinedPayload(player_id=player_id, room_key=room.room_key, players=players)).to_wire(),
    )


async def handle_join_room(
    session: SessionManager,
    connection: ConnectionProtocol,
    message: JoinRoomMessage,
) -> None:
    """
    Join a room by key as a player.

    Joining again from the same connection answers with the existing player.
    Joining with the name and avatar of a disconnected player in the room is
    the reconnection action: that player is rebound to this connection. The
    identity of a player who is still connected is refused.
    """
    payload = message.payload
    connection_id = connection.connection_id
    room = await session.room_repository.get_room_by_key(payload.room_key)
    if room is None:
        await session.rooms.send_error(connection_id, ErrorCode.ROOM_NOT_FOUND, "Room not found")
        return
    structlog.contextvars.bind_contextvars(room_id=room.id)
    session.rooms.remember_room_key(room.id, room.room_key)

    async with session.rooms.lock(room.id):
        current = session.player_for_connection(connection_id)
        if current is not None and session.rooms.get_room_for_connection(connection_id) == room.id:
            await _send_joined(session, connection_id, current, room)
            return

        existing = await session.player_repository.get_player_by_identity(room.id, payload.name, payload.avatar)
        if existing is not None and existing.connected:
            await session.rooms.send_error(
                connection_id,
                ErrorCode.JOIN_ROOM_FAILED,
                f"{payload.name} is already connected to this room",
            )
            return
        if existing is not None:
            await session.reconnect_player(connection, existing)
            await _send_joined(session, connection_id, existing.id, room)
            await session.broadcast_room_state(room.id)
            return

        state = await session.states.get_game_state(room.id)
        if state is None:
            await session.rooms.send_error(connection_id, ErrorCode.NO_GAME_STATE, "Room has no game state")
            return

        player_id = str(uuid4())
        try:
            new_state = join_player(state, Player(id=player_id, name=payload.name, avatar=payload.avatar))
        except GameRuleError as e:
            await session.rooms.send_error(connection_id, ErrorCode.JOIN_ROOM_FAILED, str(e))
            return

        if current is not None:
            # this connection spoke for a player in another room; that player goes offline
            await session.player_repository.mark_disconnected(current, session.now())
        now = session.now()
        await session.player_repository.create_player(
            PlayerRecord(
                id=player_id,
                name=payload.name,
                avatar=payload.avatar,
                room_id=room.id,
                socket_id=connection_id,
                created_at=now,
                connected=True,
                last_seen=now,
            ),
        )
        await session.states.commit(room.id, new_state)
        session.attach(connection_id, room.id, player_id)
        logger.info("player joined", player_id=player_id, name=payload.name)

        await _send_joined(session, connection_id, player_id, room)
        await session.broadcast_room_state(room.id)


async def handle_leave(
    session: SessionManager,
    connection: ConnectionProtocol,
    message: LeaveMessage,
) -> None:
    """
    Leave the room.

    In the lobby the player is removed from the game and the room. Once a game
    is under way the engine keeps them, so they are only marked offline.
    """
    connection_id = connection.connection_id
    room_id = session.rooms.get_room_for_connection(connection_id)
    if room_id is None:
        return
    player_id = message.payload.player_id

    async with session.rooms.lock(room_id):
        record = await session.player_repository.get_player(player_id)
        if record is None or record.room_id != room_id:
            await session.rooms.send_error(connection_id, ErrorCode.PLAYER_NOT_FOUND, f"Player {player_id} not found")
            return
        state = await session.states.get_game_state(room_id)

        if state is not None and state.status == GameStatus.LOBBY and state.has_player(player_id):
            try:
                new_state = remove_player(state, player_id)
            except GameRuleError as e:
                await session.rooms.send_error(connection_id, ErrorCode.LEAVE_FAILED, str(e))
                return
            await session.states.commit(room_id, new_state)
            await session.player_repository.delete_player(player_id)
        else:
            await session.player_repository.mark_disconnected(player_id, session.now())

        if record.socket_id is not None:
            session.detach(record.socket_id)
        logger.info("player left", player_id=player_id)
        await session.broadcast_room_state(room_id)


async def handle_request_room_state(
    session: SessionManager,
    connection: ConnectionProtocol,
    message: RequestRoomStateMessage,
) -> None:
    """Associate the connection with the room and send it the current state."""
    connection_id = connection.connection_id
    room = await session.room_repository.get_room_by_key(message.payload.room_key)
    if room is None:
        await session.rooms.send_error(connection_id, ErrorCode.ROOM_NOT_FOUND, "Room not found")
        return
    structlog.contextvars.bind_contextvars(room_id=room.id)
    async with session.rooms.lock(room.id):
        session.rooms.associate(connection_id, room.id)
        if not await session.send_room_state(connection_id, room):
            await session.rooms.send_error(connection_id, ErrorCode.NO_GAME_STATE, "Room has no game state")


async def handle_register_device(
    session: SessionManager,
    connection: ConnectionProtocol,
    message: RegisterDeviceMessage,
) -> None:
    connection_id = connection.connection_id
    room_id = session.rooms.get_room_for_connection(connection_id)
    if room_id is None:
        return
    device_id = message.payload.device_id
    session.rooms.set_host_device(room_id, device_id)
    logger.info("host device registered", device_id=device_id)
    await session.rooms.send_to_connection(
        connection_id,
        DeviceRegisteredMessage(payload=DeviceRegisteredPayload(device_id=device_id, success=True)).to_wire(),
    )


async def handle_ping(
    session: SessionManager,
    connection: ConnectionProtocol,
    message: PingMessage,  # noqa: ARG001
) -> None:
    session.record_ping(connection.connection_id)
    await session.rooms.send_to_connection(connection.connection_id, PongMessage().to_wire())
