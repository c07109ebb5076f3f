"""Configuration management for GymTap."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class GymTapSettings(BaseSettings):
    """Runtime configuration sourced from environment variables and optional .env file."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    data_dir: Path = Field(default=Path("./storage/local"), validation_alias="GYMTAP_DATA_DIR")
    storage_key: str = Field(default="sessions", validation_alias="GYMTAP_STORAGE_KEY")
    sync_enabled: bool = Field(default=True, validation_alias="GYMTAP_SYNC_ENABLED")
    sync_collection: str = Field(default="gymtap_sync", validation_alias="GYMTAP_SYNC_COLLECTION")
    chroma_persist_path: Path = Field(
        default=Path("./storage/chroma"), validation_alias="CHROMA_PERSIST_PATH"
    )
    chroma_host: str | None = Field(default=None, validation_alias="CHROMA_HOST")
    chroma_port: int = Field(default=8000, validation_alias="CHROMA_PORT")
    log_level: str = Field(default="INFO", validation_alias="GYMTAP_LOG_LEVEL")

    @field_validator("log_level")
    @classmethod
    def _normalize_log_level(cls, value: str) -> str:
        normalized = value.strip().upper()
        if normalized not in {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}:
            raise ValueError(
                "GYMTAP_LOG_LEVEL must be one of CRITICAL, ERROR, WARNING, INFO, DEBUG"
            )
        return normalized

    @field_validator("storage_key")
    @classmethod
    def _validate_storage_key(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError("GYMTAP_STORAGE_KEY must not be empty")
        if "/" in normalized or "\\" in normalized or normalized in {".", ".."}:
            raise ValueError("GYMTAP_STORAGE_KEY must not contain path separators")
        return normalized

    @field_validator("chroma_host", mode="before")
    @classmethod
    def _blank_host_is_none(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("chroma_port")
    @classmethod
    def _validate_port(cls, value: int) -> int:
        if not 0 < value < 65536:
            raise ValueError("CHROMA_PORT must be between 1 and 65535")
        return value


@lru_cache(maxsize=1)
def get_settings() -> GymTapSettings:
    """Return cached settings instance."""

    settings = GymTapSettings()
    settings.data_dir = settings.data_dir.expanduser().resolve()
    settings.chroma_persist_path = settings.chroma_persist_path.expanduser().resolve()
    return settings


__all__ = ["GymTapSettings", "get_settings"]
