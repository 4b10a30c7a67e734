"""Configuration loading and validation."""

from .loader import load_config, substitute_env_vars
from .schema import LOCAL_TIME_LOCATION, BotConfig, FileLoggingConfig, LoggingConfig

__all__ = [
    "load_config",
    "substitute_env_vars",
    "BotConfig",
    "FileLoggingConfig",
    "LoggingConfig",
    "LOCAL_TIME_LOCATION",
]
