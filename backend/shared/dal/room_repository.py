"""Abstract interface for room persistence."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from datetime import datetime

    from shared.dal.models import RoomRecord


class RoomRepository(ABC):
    """Abstract interface for room persistence."""

    @abstractmethod
    async def create_room(self, room: RoomRecord) -> None: ...

    @abstractmethod
    async def get_room_by_id(self, room_id: str) -> RoomRecord | None: ...

    @abstractmethod
    async def get_room_by_key(self, room_key: str) -> RoomRecord | None: ...

    @abstractmethod
    async def get_all_rooms(self) -> list[RoomRecord]: ...

    @abstractmethod
    async def update_game_state(self, room_id: str, game_state: str) -> None: ...

    @abstractmethod
    async def delete_room(self, room_id: str) -> None: ...

    @abstractmethod
    async def get_empty_rooms_older_than(self, cutoff: datetime) -> list[RoomRecord]:
        """Return rooms without players created before cutoff."""
        ...
