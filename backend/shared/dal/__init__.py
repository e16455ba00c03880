"""Data access layer: repository interfaces and shared persistence models."""

from shared.dal.models import PlayerRecord, RoomRecord
from shared.dal.player_repository import PlayerRepository
from shared.dal.room_repository import RoomRepository

__all__ = [
    "PlayerRecord",
    "PlayerRepository",
    "RoomRecord",
    "RoomRepository",
]
