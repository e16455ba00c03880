"""Monitor client liveness via application-level heartbeat."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import time
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Callable

    from hitster.session.connections import ConnectionRegistry

HEARTBEAT_CHECK_INTERVAL = 5  # seconds between heartbeat checks
HEARTBEAT_TIMEOUT = 30  # seconds before disconnecting an idle client

logger = logging.getLogger(__name__)


class HeartbeatMonitor:
    """Disconnect connections that have not pinged within the timeout window.

    Closing the transport ends the connection's receive loop, which then runs
    the normal disconnect path (player marked offline, room notified).
    """

    def __init__(
        self,
        registry: ConnectionRegistry,
        *,
        timeout: float = HEARTBEAT_TIMEOUT,
        check_interval: float = HEARTBEAT_CHECK_INTERVAL,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._registry = registry
        self._timeout = timeout
        self._check_interval = check_interval
        self._clock = clock
        self._last_ping: dict[str, float] = {}  # connection_id -> clock timestamp
        self._task: asyncio.Task[None] | None = None

    def record_connect(self, connection_id: str) -> None:
        """Record initial ping timestamp for a new connection."""
        self._last_ping[connection_id] = self._clock()

    def record_disconnect(self, connection_id: str) -> None:
        self._last_ping.pop(connection_id, None)

    def record_ping(self, connection_id: str) -> None:
        """Update ping timestamp for a tracked connection."""
        if connection_id in self._last_ping:
            self._last_ping[connection_id] = self._clock()

    def is_stale(self, connection_id: str) -> bool:
        last_ping = self._last_ping.get(connection_id)
        return last_ping is not None and self._clock() - last_ping > self._timeout

    async def check_once(self) -> list[str]:
        """Close every stale connection. Returns the ids that were closed."""
        closed = []
        for info in self._registry.list_all():
            if not self.is_stale(info.connection_id):
                continue
            logger.info("heartbeat timeout for %s, disconnecting", info.connection_id)
            # forget it now so the next check does not close it twice
            self.record_disconnect(info.connection_id)
            with contextlib.suppress(RuntimeError, OSError, ConnectionError):
                await info.connection.close(code=1000, reason="heartbeat_timeout")
            closed.append(info.connection_id)
        return closed

    def start(self) -> None:
        """Start the periodic check task. Idempotent."""
        if self._task is not None and not self._task.done():
            return
        self._task = asyncio.create_task(self._check_loop())

    async def stop(self) -> None:
        if self._task is not None:
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task
            self._task = None

    async def _check_loop(self) -> None:
        while True:
            await asyncio.sleep(self._check_interval)
            try:
                await self.check_once()
            except Exception:
                logger.exception("heartbeat check encountered an error")
