"""Mapping from client message type to its handler."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from hitster.handlers.game_handlers import handle_challenge, handle_place, handle_reveal, handle_start_round
from hitster.handlers.room_handlers import (
    handle_create_room,
    handle_join_room,
    handle_leave,
    handle_ping,
    handle_register_device,
    handle_request_room_state,
)
from hitster.messaging.types import ClientMessageType

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from hitster.messaging.protocol import ConnectionProtocol
    from hitster.session.manager import SessionManager

    Handler = Callable[[SessionManager, ConnectionProtocol, Any], Awaitable[None]]


def default_handlers() -> dict[ClientMessageType, Handler]:
    """Return a handler for every client message type."""
    return {
        ClientMessageType.CREATE_ROOM: handle_create_room,
        ClientMessageType.JOIN_ROOM: handle_join_room,
        ClientMessageType.LEAVE: handle_leave,
        ClientMessageType.REQUEST_ROOM_STATE: handle_request_room_state,
        ClientMessageType.START_ROUND: handle_start_round,
        ClientMessageType.PLACE: handle_place,
        ClientMessageType.CHALLENGE: handle_challenge,
        ClientMessageType.REVEAL: handle_reveal,
        ClientMessageType.REGISTER_DEVICE: handle_register_device,
        ClientMessageType.PING: handle_ping,
    }
