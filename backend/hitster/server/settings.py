"""Game server configuration via environment variables."""

from __future__ import annotations

from typing import TYPE_CHECKING

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings

from hitster.messaging.encoder import MAX_FRAME_LEN
from shared.validators import StringListEnvSettingsSource, parse_string_list

if TYPE_CHECKING:
    from pydantic_settings.sources.base import PydanticBaseSettingsSource


class GameServerSettings(BaseSettings):
    model_config = {"env_prefix": "HITSTER_"}

    database_path: str = Field(default="backend/data/hitster.db", min_length=1)
    log_dir: str | None = None
    cors_origins: list[str] = ["http://localhost:5173"]

    heartbeat_timeout_seconds: float = Field(default=30, ge=5)
    heartbeat_check_interval_seconds: float = Field(default=5, ge=1)
    # how long a disconnected player keeps their seat before the sweep removes them
    disconnect_grace_seconds: float = Field(default=300, ge=0)
    room_cleanup_timeout_seconds: float = Field(default=1800, ge=60)
    cleanup_interval_seconds: float = Field(default=300, ge=1)

    # a CREATE_ROOM carrying a full playlist runs to several hundred KB
    max_message_bytes: int = Field(default=1024 * 1024, ge=1024, le=MAX_FRAME_LEN)
    rate_limit_per_second: float = Field(default=20.0, gt=0)
    rate_limit_burst: int = Field(default=40, ge=1)

    @field_validator("cors_origins", mode="before")
    @classmethod
    def validate_cors_origins(cls, v: str | list[str]) -> list[str]:
        return parse_string_list(v)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,  # noqa: ARG003
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return init_settings, StringListEnvSettingsSource(settings_cls), dotenv_settings, file_secret_settings
