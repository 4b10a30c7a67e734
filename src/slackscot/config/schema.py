"""Pydantic models for configuration schema."""

from __future__ import annotations

import re
from datetime import tzinfo
from pathlib import Path
from typing import Any, Literal
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..errors import ConfigurationError, PartitionCountError

LOCAL_TIME_LOCATION = "Local"

_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")


def _to_snake(key: str) -> str:
    return _CAMEL_BOUNDARY.sub("_", key).lower()


class FileLoggingConfig(BaseModel):
    """File logging configuration."""

    enabled: bool = False
    path: Path = Path("slackscot.log")


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    format: Literal["json", "console"] = "json"
    file: FileLoggingConfig = FileLoggingConfig()


class BotConfig(BaseSettings):
    """Root configuration of a slackscot bot.

    Keys are accepted in camelCase (``responseCacheSize``) as found in
    configuration files, or in snake_case. Environment variables use the
    ``SLACKSCOT_`` prefix (``SLACKSCOT_TOKEN``).
    """

    token: str
    app_token: str | None = None
    debug: bool = False
    response_cache_size: int = Field(5000, ge=1)
    time_location: str = LOCAL_TIME_LOCATION
    threaded_replies: bool = False
    broadcast_threaded_replies: bool = True
    user_info_cache_size: int = 0
    message_partition_count: int = 1
    message_queue_buffer_size: int = Field(100, ge=1)
    plugins: dict[str, dict[str, Any]] = {}
    logging: LoggingConfig = LoggingConfig()

    model_config = SettingsConfigDict(
        env_prefix="SLACKSCOT_",
        env_file=".env",
        env_nested_delimiter="__",
        extra="ignore",
    )

    @model_validator(mode="before")
    @classmethod
    def accept_camel_case_keys(cls, data: Any) -> Any:
        """Map camelCase top-level keys onto their snake_case fields."""
        if not isinstance(data, dict):
            return data
        return {_to_snake(k) if k != "plugins" else k: v for k, v in data.items()}

    @field_validator("message_partition_count")
    @classmethod
    def validate_partition_count(cls, v: int) -> int:
        """Partition count must be a power of two."""
        if v <= 0 or v & (v - 1) != 0:
            raise PartitionCountError(v)
        return v

    @field_validator("time_location")
    @classmethod
    def validate_time_location(cls, v: str) -> str:
        """Time location must be ``Local`` or a known IANA zone."""
        if v != LOCAL_TIME_LOCATION:
            try:
                ZoneInfo(v)
            except (ZoneInfoNotFoundError, ValueError) as e:
                raise ValueError(f"Unknown time zone [{v}] for key [timeLocation]") from e
        return v

    def time_zone(self) -> tzinfo | None:
        """
        Resolve the configured time location.

        Returns:
            The IANA zone, or None for the system local zone

        Raises:
            ConfigurationError: If the zone is unknown
        """
        if self.time_location == LOCAL_TIME_LOCATION:
            return None
        try:
            return ZoneInfo(self.time_location)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ConfigurationError(
                f"Unknown time zone [{self.time_location}] for key [timeLocation]"
            ) from e

    def plugin_config(self, name: str) -> dict[str, Any]:
        """
        Return the ``plugins.<name>`` configuration sub-tree.

        Raises:
            ConfigurationError: If the sub-tree is missing
        """
        if name not in self.plugins:
            raise ConfigurationError(
                f"Missing configuration for plugin [{name}] at key [plugins.{name}]"
            )
        return self.plugins[name]
