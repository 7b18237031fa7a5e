"""Tests for the healthrelay command line."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Any

import httpx
import pytest
import yaml
from typer.testing import CliRunner

from healthrelay import __version__, cli
from healthrelay.cli import ExitCode, app
from healthrelay.notify import TelegramNotifier

if TYPE_CHECKING:
    from collections.abc import Callable

runner = CliRunner()


@pytest.fixture(autouse=True)
def quiet_logging(monkeypatch: pytest.MonkeyPatch) -> list[bool]:
    """Keep commands from reconfiguring structlog for the whole session."""
    calls: list[bool] = []
    monkeypatch.setattr(cli, "configure_logging", lambda verbose=False, **_: calls.append(verbose))
    return calls


@pytest.fixture
def config_path(minimal_config: dict[str, Any], write_config: Callable[..., Path]) -> Path:
    return write_config(minimal_config)


@pytest.fixture
def state_dir(temp_dir: Path) -> Path:
    return temp_dir / "state"


def write_replay(temp_dir: Path, *, granted: bool = True) -> Path:
    data = {
        "authorization": {"granted": granted, "error": None if granted else "user declined"},
        "deliveries": {
            "sleep_analysis": [
                {"kind": "initial", "anchor": "s1", "samples": []},
                {
                    "anchor": "s2",
                    "samples": [
                        {
                            "start": "2026-10-17T23:00:00+00:00",
                            "end": "2026-10-18T07:00:00+00:00",
                            "category": "sleep_analysis",
                            "metadata": {"Asleep": 28800},
                        }
                    ],
                },
            ],
            "mindful_session": [
                {
                    "anchor": "m1",
                    "samples": [
                        {
                            "category": "mindful_session",
                            "start": "2026-10-18T10:00:00+00:00",
                            "end": "2026-10-18T10:25:00+00:00",
                        }
                    ],
                },
            ],
        },
    }
    path = temp_dir / "replay.yaml"
    path.write_text(yaml.safe_dump(data))
    return path


def run_args(config_path: Path, replay: Path, state_dir: Path, *extra: str) -> list[str]:
    return [
        "run",
        "--config",
        str(config_path),
        "--replay",
        str(replay),
        "--state-dir",
        str(state_dir),
        *extra,
    ]


class TestValidate:
    def test_valid_config(self, config_path: Path) -> None:
        result = runner.invoke(app, ["validate", "--config", str(config_path), "-v"])

        assert result.exit_code == ExitCode.SUCCESS
        assert "Configuration is valid" in result.output
        assert "sleep_analysis, mindful_session" in result.output

    def test_missing_config(self, temp_dir: Path) -> None:
        result = runner.invoke(app, ["validate", "--config", str(temp_dir / "none.yaml")])

        assert result.exit_code == ExitCode.CONFIG_ERROR

    def test_version(self) -> None:
        result = runner.invoke(app, ["--version"])

        assert result.exit_code == 0
        assert __version__ in result.output


class TestRun:
    def test_dry_run_records_history(
        self, config_path: Path, temp_dir: Path, state_dir: Path
    ) -> None:
        replay = write_replay(temp_dir)

        result = runner.invoke(app, run_args(config_path, replay, state_dir, "--dry-run"))

        assert result.exit_code == ExitCode.SUCCESS, result.output
        assert "Deliveries handled: 4" in result.output
        assert "Notifications: 2" in result.output

        history = runner.invoke(app, ["history", "--state-dir", str(state_dir)])
        assert "Slept 8.000000 hrs today" in history.output
        assert "Meditated 25.000000 minutes" in history.output

        status = runner.invoke(app, ["status", "--state-dir", str(state_dir)])
        assert status.exit_code == ExitCode.SUCCESS
        assert "Size: 2 bytes" in status.output
        assert "dry_run: 2" in status.output

    def test_authorization_denied(
        self, config_path: Path, temp_dir: Path, state_dir: Path
    ) -> None:
        replay = write_replay(temp_dir, granted=False)

        result = runner.invoke(app, run_args(config_path, replay, state_dir, "--dry-run"))

        assert result.exit_code == ExitCode.AUTH_ERROR
        assert "user declined" in result.output

    def test_unreadable_replay(self, config_path: Path, temp_dir: Path, state_dir: Path) -> None:
        result = runner.invoke(
            app, run_args(config_path, temp_dir / "missing.yaml", state_dir)
        )

        assert result.exit_code == ExitCode.CONFIG_ERROR
        assert not state_dir.exists()

    def test_failed_sends_are_partial_failure(
        self,
        monkeypatch: pytest.MonkeyPatch,
        config_path: Path,
        temp_dir: Path,
        state_dir: Path,
    ) -> None:
        class UnreachableNotifier(TelegramNotifier):
            @classmethod
            def from_config(cls, config: Any, **kwargs: Any) -> TelegramNotifier:
                kwargs["client"] = httpx.Client(
                    transport=httpx.MockTransport(lambda _: httpx.Response(502, text="down"))
                )
                return super().from_config(config, **kwargs)

        monkeypatch.setattr(cli, "TelegramNotifier", UnreachableNotifier)
        replay = write_replay(temp_dir)

        result = runner.invoke(app, run_args(config_path, replay, state_dir))

        assert result.exit_code == ExitCode.PARTIAL_FAILURE
        assert "Failed: 2" in result.output

        history = runner.invoke(app, ["history", "--state-dir", str(state_dir), "-n", "1"])
        assert "HTTP 502: down" in history.output


class TestStatus:
    def test_without_database(self, state_dir: Path) -> None:
        result = runner.invoke(app, ["status", "--state-dir", str(state_dir)])

        assert result.exit_code == ExitCode.SUCCESS
        assert "No state database found" in result.output

    def test_history_without_database(self, state_dir: Path) -> None:
        result = runner.invoke(app, ["history", "--state-dir", str(state_dir)])

        assert result.exit_code == ExitCode.SUCCESS
        assert "No state database found" in result.output
