"""Where healthrelay keeps its files.

Follows the XDG Base Directory layout:
- config: $XDG_CONFIG_HOME/healthrelay/config.yaml (~/.config/healthrelay)
- state:  $XDG_DATA_HOME/healthrelay/state.db (~/.local/share/healthrelay)
"""

from __future__ import annotations

import os
from pathlib import Path

APP_NAME = "healthrelay"
STATE_DB_NAME = "state.db"


def _xdg_dir(env_var: str, *fallback: str) -> Path:
    value = os.environ.get(env_var)
    if value:
        return Path(value).expanduser()
    return Path.home().joinpath(*fallback)


def get_config_home() -> Path:
    """$XDG_CONFIG_HOME, or ~/.config when unset."""
    return _xdg_dir("XDG_CONFIG_HOME", ".config")


def get_data_home() -> Path:
    """$XDG_DATA_HOME, or ~/.local/share when unset."""
    return _xdg_dir("XDG_DATA_HOME", ".local", "share")


def get_default_config_path() -> Path:
    return get_config_home() / APP_NAME / "config.yaml"


def get_default_state_dir() -> Path:
    """Directory holding the anchor and notification history database."""
    return get_data_home() / APP_NAME


def get_default_db_path() -> Path:
    return get_default_state_dir() / STATE_DB_NAME
