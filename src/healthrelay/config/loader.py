"""Locating, reading and validating the healthrelay config file.

Secrets are meant to stay out of the file: any string may reference an
environment variable as ``${NAME}``, which is substituted before
validation.
"""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import TYPE_CHECKING, Any

import yaml
from pydantic import ValidationError

from healthrelay.config.schema import Config
from healthrelay.paths import get_default_config_path

if TYPE_CHECKING:
    from collections.abc import Iterator

CONFIG_ENV_VAR = "HEALTHRELAY_CONFIG"
CWD_CONFIG_NAME = "healthrelay.yaml"

_ENV_REFERENCE = re.compile(r"\$\{(?P<name>[A-Z_][A-Z0-9_]*)\}")


class ConfigError(Exception):
    """Base error for anything wrong with the config file.

    Attributes:
        path: The offending file, when known
    """

    def __init__(self, message: str, path: Path | None = None) -> None:
        super().__init__(message)
        self.path = path


class ConfigNotFoundError(ConfigError):
    """No config file at the given path or any discovery location."""


class ConfigValidationError(ConfigError):
    """The file parsed but does not describe a valid configuration."""

    def __init__(
        self,
        message: str,
        path: Path | None = None,
        validation_errors: list[dict[str, Any]] | None = None,
    ) -> None:
        super().__init__(message, path)
        self.validation_errors = validation_errors or []


class EnvironmentVariableError(ConfigError):
    """A ``${NAME}`` reference names an unset environment variable."""

    def __init__(self, var_name: str, path: Path | None = None) -> None:
        super().__init__(
            f"Environment variable '{var_name}' is referenced by the config but not set",
            path,
        )
        self.var_name = var_name


def expand_env_vars(value: Any, *, strict: bool = True) -> Any:
    """Substitute ``${NAME}`` references anywhere inside ``value``.

    Unset variables raise EnvironmentVariableError, or are left untouched
    when ``strict`` is False.

        >>> os.environ["TELEGRAM_CHAT_ID"] = "@sleeplog"
        >>> expand_env_vars({"chat_id": "${TELEGRAM_CHAT_ID}"})
        {'chat_id': '@sleeplog'}
    """

    def substitute(match: re.Match[str]) -> str:
        name = match.group("name")
        if name in os.environ:
            return os.environ[name]
        if strict:
            raise EnvironmentVariableError(name)
        return match.group(0)

    def walk(node: Any) -> Any:
        if isinstance(node, str):
            return _ENV_REFERENCE.sub(substitute, node)
        if isinstance(node, dict):
            return {key: walk(item) for key, item in node.items()}
        if isinstance(node, list):
            return [walk(item) for item in node]
        return node

    return walk(value)


def _candidate_paths() -> Iterator[Path]:
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        yield Path(env_path).expanduser().resolve()
    yield Path.cwd() / CWD_CONFIG_NAME
    yield get_default_config_path()


def discover_config_path(explicit_path: str | Path | None = None) -> Path:
    """Find the config file.

    An explicit path (``--config``) must exist. Otherwise the first
    existing file wins among $HEALTHRELAY_CONFIG, ./healthrelay.yaml and
    $XDG_CONFIG_HOME/healthrelay/config.yaml.

    Raises:
        ConfigNotFoundError: If no config file exists at any location
    """
    if explicit_path:
        path = Path(explicit_path).expanduser().resolve()
        if not path.exists():
            msg = f"Config file not found: {path}"
            raise ConfigNotFoundError(msg, path)
        return path

    searched = list(_candidate_paths())
    for candidate in searched:
        if candidate.exists():
            return candidate

    listing = "".join(f"\n  - {p}" for p in searched)
    msg = f"No config file found. Searched locations:{listing}"
    raise ConfigNotFoundError(msg)


def _read_mapping(path: Path) -> dict[str, Any]:
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except OSError as e:
        msg = f"Cannot read config file: {e}"
        raise ConfigError(msg, path) from e
    except yaml.YAMLError as e:
        msg = f"Invalid YAML syntax: {e}"
        raise ConfigError(msg, path) from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        msg = "Config file must contain a YAML mapping, not a list or scalar"
        raise ConfigError(msg, path)
    return data


def _describe(error: ValidationError) -> str:
    lines = [
        f"  - {'.'.join(str(part) for part in err['loc']) or '(root)'}: {err['msg']}"
        for err in error.errors()
    ]
    return f"Config validation failed ({error.error_count()} error(s)):\n" + "\n".join(lines)


def load_config(
    path: str | Path | None = None,
    *,
    expand_env: bool = True,
) -> Config:
    """Discover, read, expand and validate the configuration.

    Raises:
        ConfigNotFoundError: If no config file is found
        EnvironmentVariableError: If a referenced variable is not set
        ConfigValidationError: If the content does not validate
        ConfigError: If the file cannot be read or parsed
    """
    config_path = discover_config_path(path)
    raw = _read_mapping(config_path)

    if expand_env:
        try:
            raw = expand_env_vars(raw)
        except EnvironmentVariableError as e:
            e.path = config_path
            raise

    try:
        return Config.model_validate(raw)
    except ValidationError as e:
        raise ConfigValidationError(
            _describe(e),
            path=config_path,
            validation_errors=[dict(err) for err in e.errors()],
        ) from e
