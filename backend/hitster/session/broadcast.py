"""Shared broadcast utility for sending messages to groups of connections."""

from __future__ import annotations

import contextlib
from collections.abc import Iterable
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from hitster.messaging.protocol import ConnectionProtocol


async def broadcast_to_connections(
    connections: Iterable[ConnectionProtocol],
    message: dict[str, Any],
    exclude_connection_id: str | None = None,
) -> int:
    """Send a message to every connection, skipping one if excluded.

    A failed send to one connection never aborts the fan-out. The caller
    should pass a snapshot, since sends yield to other tasks.
    Returns the number of successful deliveries.
    """
    delivered = 0
    for connection in list(connections):
        if connection.connection_id == exclude_connection_id:
            continue
        with contextlib.suppress(RuntimeError, OSError, ConnectionError):
            await connection.send_message(message)
            delivered += 1
    return delivered
