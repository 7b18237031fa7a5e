"""Pydantic schema models for configuration.

This module defines the configuration models:
- Config: Top-level configuration container
- TelegramConfig: Bot API credentials and request settings
- TrackingConfig: Which categories to observe and delivery policies
- StateConfig: State storage settings
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Annotated, Literal

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
)

from healthrelay.health.samples import Category
from healthrelay.paths import get_default_state_dir

DEFAULT_API_BASE = "https://api.telegram.org"
# <bot id>:<secret>, as issued by BotFather
BOT_TOKEN_PATTERN = r"^\d+:[A-Za-z0-9_-]+$"


class InitialSnapshotPolicy(str, Enum):
    """What to do with the latest sample of an initial (catch-up) snapshot."""

    CATCH_UP_ONLY = "catch_up_only"
    NOTIFY_LATEST = "notify_latest"


class TelegramConfig(BaseModel):
    """Telegram Bot API configuration.

    Attributes:
        bot_token: Bot token or env var reference (${VAR})
        chat_id: Destination chat id or @channel name
        api_base: Bot API base URL (default: https://api.telegram.org)
        timeout: HTTP request timeout in seconds (1-60, default: 10)
    """

    model_config = ConfigDict(extra="forbid")

    bot_token: Annotated[str, Field(pattern=BOT_TOKEN_PATTERN)]
    chat_id: Annotated[str, Field(min_length=1)]
    api_base: str = DEFAULT_API_BASE
    timeout: Annotated[float, Field(ge=1, le=60)] = 10.0

    @field_validator("api_base")
    @classmethod
    def validate_api_base(cls, v: str) -> str:
        """Validate the API base is an http(s) URL without trailing slash."""
        if not v.startswith(("https://", "http://")):
            msg = "api_base must be an http(s) URL"
            raise ValueError(msg)
        return v.rstrip("/")


class TrackingConfig(BaseModel):
    """Sample tracking configuration.

    Attributes:
        categories: Categories to request read access for and observe
        initial_snapshot: Policy for the initial catch-up snapshot
        strict_empty_updates: Raise instead of ignoring sample-less live deliveries
    """

    model_config = ConfigDict(extra="forbid")

    categories: Annotated[list[Category], Field(min_length=1)] = Field(
        default_factory=lambda: [Category.SLEEP_ANALYSIS, Category.MINDFUL_SESSION]
    )
    initial_snapshot: InitialSnapshotPolicy = InitialSnapshotPolicy.CATCH_UP_ONLY
    strict_empty_updates: bool = False

    @field_validator("categories")
    @classmethod
    def validate_unique_categories(cls, v: list[Category]) -> list[Category]:
        """Ensure each category is only observed once."""
        if len(set(v)) != len(v):
            msg = "categories must not contain duplicates"
            raise ValueError(msg)
        return v


class StateConfig(BaseModel):
    """State storage configuration.

    Attributes:
        directory: State directory path (default: XDG data dir)
                   Uses $XDG_DATA_HOME/healthrelay (~/.local/share/healthrelay)
        anchor_key: Key the change anchor is stored under (default: 'anchor')
    """

    model_config = ConfigDict(extra="forbid")

    directory: str | None = None
    anchor_key: Annotated[str, Field(min_length=1, max_length=64)] = "anchor"

    def get_directory(self) -> Path:
        """Get the state directory path, expanding ~ if needed."""
        if self.directory:
            return Path(self.directory).expanduser()
        return get_default_state_dir()


class Config(BaseModel):
    """Top-level configuration loaded from YAML.

    Attributes:
        version: Schema version (must be 1)
        telegram: Telegram Bot API settings
        tracking: Category tracking settings
        state: State storage settings
    """

    model_config = ConfigDict(extra="forbid")

    version: Literal[1]
    telegram: TelegramConfig
    tracking: TrackingConfig = Field(default_factory=TrackingConfig)
    state: StateConfig = Field(default_factory=StateConfig)
