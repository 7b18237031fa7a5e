"""Configuration module for healthrelay.

Usage:
    from healthrelay.config import load_config, Config

    config = load_config()  # Auto-discovers config file
    config = load_config("/path/to/config.yaml")  # Explicit path
"""

from healthrelay.config.loader import (
    ConfigError,
    ConfigNotFoundError,
    ConfigValidationError,
    EnvironmentVariableError,
    discover_config_path,
    load_config,
)
from healthrelay.config.schema import (
    Config,
    InitialSnapshotPolicy,
    StateConfig,
    TelegramConfig,
    TrackingConfig,
)

__all__ = [
    "Config",
    "ConfigError",
    "ConfigNotFoundError",
    "ConfigValidationError",
    "EnvironmentVariableError",
    "InitialSnapshotPolicy",
    "StateConfig",
    "TelegramConfig",
    "TrackingConfig",
    "discover_config_path",
    "load_config",
]
