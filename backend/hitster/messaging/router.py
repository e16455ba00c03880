from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from hitster.messaging.encoder import DecodeError, decode
from hitster.messaging.types import (
    ROOMLESS_MESSAGE_TYPES,
    ClientMessageType,
    ErrorCode,
    parse_client_message,
)

if TYPE_CHECKING:
    from collections.abc import Mapping

    from hitster.handlers.registry import Handler
    from hitster.messaging.protocol import ConnectionProtocol
    from hitster.session.manager import SessionManager

logger = logging.getLogger(__name__)

# Bare text frame some clients send as a keep-alive instead of a PING envelope.
RAW_PING_FRAME = "PING"


def _format_validation_errors(error: ValidationError) -> list[str]:
    return [
        f"{'.'.join(str(part) for part in detail['loc']) or '<root>'}: {detail['msg']}" for detail in error.errors()
    ]


class MessageRouter:
    """
    Parse, validate, and dispatch inbound frames to per-type handlers.

    Every failure is answered with an ERROR to the sender only, and the
    connection stays open for the next frame. Replies to a connection that
    is gone or closing are dropped. The router holds no state of
    its own besides the handler table.
    """

    def __init__(self, session_manager: SessionManager, handlers: Mapping[ClientMessageType, Handler]) -> None:
        self._session_manager = session_manager
        self._handlers = dict(handlers)

    async def _send_error(
        self,
        connection: ConnectionProtocol,
        code: ErrorCode,
        message: str,
        details: list[str] | None = None,
    ) -> None:
        await self._session_manager.rooms.send_error(connection.connection_id, code, message, details)

    async def handle_frame(self, connection: ConnectionProtocol, raw: str | bytes) -> None:
        """Decode one raw frame and route it."""
        if raw == RAW_PING_FRAME:
            await self.handle_message(connection, {"type": ClientMessageType.PING.value})
            return
        try:
            data = decode(raw)
        except DecodeError as e:
            logger.warning("invalid JSON from %s: %s", connection.connection_id, e)
            await self._send_error(connection, ErrorCode.INVALID_JSON, "Invalid JSON")
            return
        await self.handle_message(connection, data)

    async def handle_message(self, connection: ConnectionProtocol, raw_message: Any) -> None:  # noqa: ANN401
        try:
            message = parse_client_message(raw_message)
        except ValidationError as e:
            logger.warning("invalid message from %s: %s", connection.connection_id, e.error_count())
            await self._send_error(
                connection,
                ErrorCode.INVALID_MESSAGE,
                "Message failed validation",
                _format_validation_errors(e),
            )
            return

        message_type = message.type
        if (
            message_type not in ROOMLESS_MESSAGE_TYPES
            and self._session_manager.rooms.get_room_for_connection(connection.connection_id) is None
        ):
            await self._send_error(connection, ErrorCode.NOT_IN_ROOM, "Join or create a room first")
            return

        handler = self._handlers.get(message_type)
        if handler is None:
            await self._send_error(connection, ErrorCode.UNHANDLED_MESSAGE, f"No handler for {message_type}")
            return

        try:
            await handler(self._session_manager, connection, message)
        except Exception:
            logger.exception("handler for %s failed on %s", message_type, connection.connection_id)
            await self._send_error(connection, ErrorCode.INTERNAL_ERROR, "Internal server error")

    async def handle_connect(self, connection: ConnectionProtocol) -> None:
        self._session_manager.register_connection(connection)

    async def handle_disconnect(self, connection: ConnectionProtocol) -> None:
        await self._session_manager.handle_disconnect(connection)
