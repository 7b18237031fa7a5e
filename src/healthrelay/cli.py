"""CLI entry point for healthrelay.

This module provides the Typer-based CLI with commands:
- healthrelay run: Request access, replay deliveries, send notifications
- healthrelay validate: Validate configuration
- healthrelay status: Show the stored anchor and notification counts
- healthrelay history: List recorded notifications

Exit codes:
- 0: Success
- 1: Configuration error
- 2: Authorization denied
- 3: Partial failure (some notifications failed)
- 4: Fatal error
"""

from __future__ import annotations

import threading
from enum import IntEnum
from pathlib import Path
from typing import TYPE_CHECKING, Annotated

import typer

from healthrelay import __version__
from healthrelay.config import ConfigError, load_config
from healthrelay.health import ReplayError, ReplayPlatform
from healthrelay.logging import configure_logging, get_logger
from healthrelay.notify import SampleClassifier, TelegramNotifier
from healthrelay.paths import STATE_DB_NAME, get_default_state_dir
from healthrelay.relay import HealthRelay
from healthrelay.state import DEFAULT_ANCHOR_KEY, AnchorStore, NotificationOutcome, StateStore

if TYPE_CHECKING:
    from healthrelay.notify import TelegramResult


class ExitCode(IntEnum):
    """CLI exit codes."""

    SUCCESS = 0
    CONFIG_ERROR = 1
    AUTH_ERROR = 2
    PARTIAL_FAILURE = 3
    FATAL_ERROR = 4


app = typer.Typer(
    name="healthrelay",
    help="Relay sleep and mindfulness samples to a Telegram chat.",
    add_completion=False,
    no_args_is_help=True,
)

StateDirOption = Annotated[
    Path | None,
    typer.Option("--state-dir", help="State directory path."),
]
ConfigOption = Annotated[
    Path | None,
    typer.Option("--config", "-c", help="Path to configuration file."),
]
VerboseOption = Annotated[
    bool,
    typer.Option("--verbose", "-v", help="Enable debug logging."),
]


def _fail(message: str, code: ExitCode) -> typer.Exit:
    typer.echo(typer.style(f"✗ {message}", fg=typer.colors.RED), err=True)
    return typer.Exit(code)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"healthrelay {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            "-V",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
) -> None:
    """Relay sleep and mindfulness samples to a Telegram chat."""


@app.command()
def validate(
    config: ConfigOption = None,
    verbose: VerboseOption = False,
) -> None:
    """Validate configuration without running.

    Loads the configuration file, expands environment variables,
    and validates against the schema.
    """
    configure_logging(verbose=verbose, json_output=False)

    try:
        cfg = load_config(config)
    except ConfigError as e:
        raise _fail(str(e), ExitCode.CONFIG_ERROR) from e

    typer.echo(typer.style("✓ Configuration is valid", fg=typer.colors.GREEN))
    if verbose:
        typer.echo("\nConfiguration summary:")
        typer.echo(f"  Version: {cfg.version}")
        typer.echo(f"  Telegram API: {cfg.telegram.api_base}")
        typer.echo(f"  Categories: {', '.join(c.value for c in cfg.tracking.categories)}")
        typer.echo(f"  Initial snapshot: {cfg.tracking.initial_snapshot.value}")
        typer.echo(f"  State directory: {cfg.state.get_directory()}")

    raise typer.Exit(ExitCode.SUCCESS)


@app.command("run")
def run(
    replay: Annotated[
        Path,
        typer.Option(
            "--replay",
            "-r",
            help="YAML/JSON file of recorded deliveries to replay.",
        ),
    ],
    config: ConfigOption = None,
    state_dir: StateDirOption = None,
    dry_run: Annotated[
        bool,
        typer.Option("--dry-run", help="Log notifications without sending them."),
    ] = False,
    verbose: VerboseOption = False,
) -> None:
    """Request access, process every delivery and send notifications.

    Resumes from the anchor stored by the previous run.
    """
    configure_logging(verbose=verbose)
    log = get_logger("healthrelay.cli")

    try:
        cfg = load_config(config)
    except ConfigError as e:
        raise _fail(f"Configuration error: {e}", ExitCode.CONFIG_ERROR) from e

    try:
        platform = ReplayPlatform.from_file(replay)
    except ReplayError as e:
        raise _fail(f"Replay error: {e}", ExitCode.CONFIG_ERROR) from e

    if dry_run:
        typer.echo(
            typer.style(
                "🔍 Dry-run mode: notifications will be logged but not sent",
                fg=typer.colors.CYAN,
            )
        )

    state_dir = state_dir or cfg.state.get_directory()
    db_path = state_dir / STATE_DB_NAME
    store = StateStore(db_path)
    log.info("Initialized state store", path=str(db_path))

    results: list[TelegramResult] = []
    results_lock = threading.Lock()

    def record(result: TelegramResult) -> None:
        store.record_notification(
            result.text,
            result.outcome,
            category=result.category,
            status_code=result.status_code,
            error=result.error,
        )
        with results_lock:
            results.append(result)

    notifier = TelegramNotifier.from_config(cfg.telegram, dry_run=dry_run, on_result=record)
    relay = HealthRelay.from_config(
        cfg,
        platform,
        SampleClassifier(notifier),
        AnchorStore(store, cfg.state.anchor_key),
    )

    try:
        access = relay.request_access()
        if not access.granted:
            raise _fail(f"Authorization denied: {access.error}", ExitCode.AUTH_ERROR)

        try:
            deliveries = relay.run()
        except Exception as e:
            log.exception("Relay failed")
            raise _fail(f"Relay error: {e}", ExitCode.FATAL_ERROR) from e
    finally:
        notifier.close()
        store.close()

    failed = sum(1 for r in results if not r.success)

    typer.echo()
    typer.echo(typer.style("Relay run complete", bold=True))
    typer.echo(f"  Deliveries handled: {deliveries}")
    typer.echo(f"  Notifications: {len(results)}")

    if failed > 0:
        typer.echo(typer.style(f"  Failed: {failed}", fg=typer.colors.YELLOW))
        raise typer.Exit(ExitCode.PARTIAL_FAILURE)

    raise typer.Exit(ExitCode.SUCCESS)


@app.command()
def status(
    state_dir: StateDirOption = None,
    anchor_key: Annotated[
        str,
        typer.Option("--anchor-key", help="Key the anchor is stored under."),
    ] = DEFAULT_ANCHOR_KEY,
) -> None:
    """Show the stored anchor and notification statistics."""
    state_dir = state_dir or get_default_state_dir()
    db_path = state_dir / STATE_DB_NAME

    if not db_path.exists():
        typer.echo(
            typer.style(f"No state database found at {db_path}", fg=typer.colors.YELLOW)
        )
        typer.echo("Run 'healthrelay run' to initialize.")
        raise typer.Exit(ExitCode.SUCCESS)

    store = StateStore(db_path)
    try:
        anchor = store.get(anchor_key)
        updated_at = store.get_updated_at(anchor_key)
        counts = store.get_notification_counts()
    finally:
        store.close()

    typer.echo(typer.style("Health Relay Status", bold=True))
    typer.echo("─" * 40)
    typer.echo(f"Database: {db_path}")
    typer.echo()

    typer.echo(typer.style("Anchor:", bold=True))
    if anchor is None:
        typer.echo("  (none)")
    else:
        typer.echo(f"  Size: {len(anchor)} bytes")
        typer.echo(f"  Preview: {anchor[:32].hex()}")
        typer.echo(f"  Updated: {updated_at}")

    typer.echo()
    typer.echo(typer.style("Notifications:", bold=True))
    for outcome in NotificationOutcome:
        typer.echo(f"  {outcome.value}: {counts.get(outcome.value, 0)}")

    raise typer.Exit(ExitCode.SUCCESS)


@app.command()
def history(
    limit: Annotated[
        int,
        typer.Option("--limit", "-n", help="Maximum records to show.", min=1),
    ] = 20,
    state_dir: StateDirOption = None,
) -> None:
    """List recorded notifications, newest first."""
    state_dir = state_dir or get_default_state_dir()
    db_path = state_dir / STATE_DB_NAME

    if not db_path.exists():
        typer.echo(
            typer.style(f"No state database found at {db_path}", fg=typer.colors.YELLOW)
        )
        raise typer.Exit(ExitCode.SUCCESS)

    store = StateStore(db_path)
    try:
        entries = store.query_notifications(limit=limit)
    finally:
        store.close()

    if not entries:
        typer.echo("No notifications recorded.")
        raise typer.Exit(ExitCode.SUCCESS)

    typer.echo(typer.style(f"Notifications ({len(entries)} entries)", bold=True))
    typer.echo("─" * 60)
    for entry in entries:
        mark = "✗" if entry["outcome"] == NotificationOutcome.FAILED.value else "✓"
        typer.echo(f"{mark} [{entry['sent_at']}] {entry['category'] or '-'}: {entry['message']}")
        if entry.get("error"):
            typer.echo(f"    {entry['error']}")

    raise typer.Exit(ExitCode.SUCCESS)
