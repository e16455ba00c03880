"""Persistence models for the data access layer."""

from datetime import datetime

from pydantic import BaseModel


class RoomRecord(BaseModel, frozen=True):
    """A room row. Optional columns stay None until first written."""

    id: str
    room_key: str  # 6-digit join code
    game_mode: str
    created_at: datetime
    game_state: str | None = None  # serialized GameState JSON
    playlist_id: str | None = None
    playlist_data: str | None = None  # serialized track list JSON


class PlayerRecord(BaseModel, frozen=True):
    """A player row; connected/last_seen make reconnection possible after a drop."""

    id: str
    name: str
    avatar: str
    room_id: str
    socket_id: str | None = None  # connection currently bound to the player
    created_at: datetime
    connected: bool = True
    last_seen: datetime | None = None
