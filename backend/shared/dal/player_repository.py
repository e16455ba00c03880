"""Abstract interface for player persistence."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from datetime import datetime

    from shared.dal.models import PlayerRecord


class PlayerRepository(ABC):
    """Abstract interface for player persistence."""

    @abstractmethod
    async def create_player(self, player: PlayerRecord) -> None: ...

    @abstractmethod
    async def get_player(self, player_id: str) -> PlayerRecord | None: ...

    @abstractmethod
    async def get_player_by_identity(self, room_id: str, name: str, avatar: str) -> PlayerRecord | None:
        """Look up a player in a room by display name and avatar."""
        ...

    @abstractmethod
    async def get_players_in_room(self, room_id: str) -> list[PlayerRecord]: ...

    @abstractmethod
    async def mark_disconnected(self, player_id: str, last_seen: datetime) -> None:
        """Flag the player offline and release its socket binding."""
        ...

    @abstractmethod
    async def mark_reconnected(self, player_id: str, socket_id: str, last_seen: datetime) -> None:
        """Flag the player online and bind it to a new socket."""
        ...

    @abstractmethod
    async def get_disconnected_players(self, room_id: str, older_than: datetime) -> list[PlayerRecord]:
        """Return players in the room offline since before older_than."""
        ...

    @abstractmethod
    async def delete_player(self, player_id: str) -> None: ...
