from __future__ import annotations

import contextlib
from typing import TYPE_CHECKING
from uuid import uuid4

import structlog
from starlette.websockets import WebSocket, WebSocketDisconnect

from hitster.messaging.encoder import frame_size
from hitster.messaging.protocol import ConnectionProtocol
from hitster.messaging.types import ErrorCode, ErrorMessage
from hitster.server.rate_limit import TokenBucket

if TYPE_CHECKING:
    from hitster.messaging.router import MessageRouter
    from hitster.server.settings import GameServerSettings

logger = structlog.get_logger()


class WebSocketConnection(ConnectionProtocol):
    def __init__(self, websocket: WebSocket, connection_id: str | None = None) -> None:
        self._websocket = websocket
        self._connection_id = connection_id or str(uuid4())

    @property
    def connection_id(self) -> str:
        return self._connection_id

    async def send_text(self, data: str) -> None:
        try:
            await self._websocket.send_text(data)
        except WebSocketDisconnect:
            raise ConnectionError("WebSocket already disconnected") from None

    async def receive_text(self) -> str:
        """Receive one frame; binary frames are read as UTF-8 text."""
        message = await self._websocket.receive()
        if message["type"] == "websocket.disconnect":
            raise ConnectionError("WebSocket disconnected")
        text = message.get("text")
        if text is not None:
            return text
        return (message.get("bytes") or b"").decode("utf-8", errors="replace")

    async def close(self, code: int = 1000, reason: str = "") -> None:
        with contextlib.suppress(WebSocketDisconnect, RuntimeError):
            await self._websocket.close(code=code, reason=reason)


async def websocket_endpoint(websocket: WebSocket, router: MessageRouter, settings: GameServerSettings) -> None:
    await websocket.accept()

    connection = WebSocketConnection(websocket)
    structlog.contextvars.bind_contextvars(connection_id=connection.connection_id)
    logger.info("websocket connected")
    await router.handle_connect(connection)

    bucket = TokenBucket(rate=settings.rate_limit_per_second, burst=settings.rate_limit_burst)

    try:
        while True:
            raw = await connection.receive_text()

            size = frame_size(raw)
            if size > settings.max_message_bytes:
                logger.warning("oversized frame dropped", size=size)
                await connection.send_message(
                    ErrorMessage.create(ErrorCode.INVALID_MESSAGE, "Message too large").to_wire(),
                )
                continue

            if not bucket.consume():
                await connection.send_message(
                    ErrorMessage.create(ErrorCode.RATE_LIMITED, "Too many messages").to_wire(),
                )
                continue

            await router.handle_frame(connection, raw)
    except (WebSocketDisconnect, RuntimeError, ConnectionError):  # fmt: skip
        pass
    finally:
        logger.info("websocket disconnected")
        await router.handle_disconnect(connection)
        structlog.contextvars.clear_contextvars()
