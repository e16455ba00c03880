"""Abstract connection protocol for JSON text communication."""

from abc import ABC, abstractmethod
from typing import Any

from hitster.messaging.encoder import decode, encode


class ConnectionProtocol(ABC):
    """
    Abstract interface for a client connection.

    This abstraction allows message handling logic to be tested
    without real WebSocket connections.
    """

    @property
    @abstractmethod
    def connection_id(self) -> str:
        """Unique identifier for this connection."""
        ...

    @abstractmethod
    async def send_text(self, data: str) -> None:
        """
        Send one text frame to the client.
        """
        ...

    @abstractmethod
    async def receive_text(self) -> str:
        """
        Receive one text frame from the client.
        """
        ...

    @abstractmethod
    async def close(self, code: int = 1000, reason: str = "") -> None:
        """
        Close the connection.
        """
        ...

    async def send_message(self, data: dict[str, Any]) -> None:
        """
        Send a message envelope to the client as JSON.
        """
        await self.send_text(encode(data))

    async def receive_message(self) -> Any:  # noqa: ANN401
        """
        Receive a JSON frame from the client.
        """
        return decode(await self.receive_text())
