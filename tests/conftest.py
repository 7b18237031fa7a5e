"""Shared pytest fixtures for healthrelay tests.

This module provides common fixtures for:
- Temporary config files
- Test database instances
- Sample and delivery builders
- A recording notifier and an httpx mock transport for the Bot API
"""

from __future__ import annotations

import tempfile
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import TYPE_CHECKING, Any

import httpx
import pytest
import yaml

from healthrelay.health import Category, DeliveryEvent, DeliveryKind, Sample
from healthrelay.state import AnchorStore, StateStore

if TYPE_CHECKING:
    from collections.abc import Callable, Generator


BOT_TOKEN = "123456789:AAHfakeTokenForTestsOnly_0123456789ab"
CHAT_ID = "@sleeplog"


# ============================================================================
# Configuration Fixtures
# ============================================================================


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def minimal_config() -> dict[str, Any]:
    """Return a minimal valid configuration dictionary."""
    return {
        "version": 1,
        "telegram": {
            "bot_token": BOT_TOKEN,
            "chat_id": CHAT_ID,
        },
    }


@pytest.fixture
def write_config(temp_dir: Path) -> Callable[..., Path]:
    """Factory fixture to write config files."""

    def _write(config: dict[str, Any], filename: str = "config.yaml") -> Path:
        path = temp_dir / filename
        with path.open("w") as f:
            yaml.safe_dump(config, f)
        return path

    return _write


# ============================================================================
# Database Fixtures
# ============================================================================


@pytest.fixture
def test_db_path(temp_dir: Path) -> Path:
    """Return path for a test database file."""
    return temp_dir / "state" / "state.db"


@pytest.fixture
def state_store(test_db_path: Path) -> Generator[StateStore, None, None]:
    """Create a StateStore for testing (closed after the test)."""
    store = StateStore(test_db_path)
    yield store
    store.close()


@pytest.fixture
def anchors(state_store: StateStore) -> AnchorStore:
    return AnchorStore(state_store)


# ============================================================================
# Sample Fixtures
# ============================================================================


@pytest.fixture
def session_start() -> datetime:
    return datetime(2026, 10, 18, 10, 0, 0, tzinfo=UTC)


def make_sleep_sample(asleep: Any = 28800, **overrides: Any) -> Sample:
    """Build a sleep analysis sample with the given Asleep metadata."""
    metadata = {} if asleep is None else {"Asleep": asleep}
    fields: dict[str, Any] = {
        "category": Category.SLEEP_ANALYSIS,
        "start": datetime(2026, 10, 17, 23, 0, tzinfo=UTC),
        "end": datetime(2026, 10, 18, 7, 0, tzinfo=UTC),
        "metadata": metadata,
    }
    fields.update(overrides)
    return Sample(**fields)


def make_mindful_sample(minutes: float, start: datetime | None = None) -> Sample:
    """Build a mindful session lasting ``minutes``."""
    start = start or datetime(2026, 10, 18, 10, 0, tzinfo=UTC)
    return Sample(
        category=Category.MINDFUL_SESSION,
        start=start,
        end=start + timedelta(minutes=minutes),
    )


def make_delivery(
    category: Category,
    samples: list[Sample] | None = None,
    *,
    kind: DeliveryKind = DeliveryKind.LIVE,
    anchor: bytes | None = None,
    error: str | None = None,
) -> DeliveryEvent:
    return DeliveryEvent(
        category=category,
        kind=kind,
        samples=samples or [],
        anchor=anchor,
        error=error,
    )


# ============================================================================
# Notifier Fixtures
# ============================================================================


class RecordingNotifier:
    """Notifier stand-in that records messages instead of sending them."""

    def __init__(self) -> None:
        self.sent: list[tuple[str, str | None]] = []

    def send(self, text: str, *, category: str | None = None) -> None:
        self.sent.append((text, category))

    @property
    def texts(self) -> list[str]:
        return [text for text, _ in self.sent]


@pytest.fixture
def recording_notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def telegram_requests() -> list[httpx.Request]:
    """Requests captured by the mock Bot API transport."""
    return []


@pytest.fixture
def telegram_client(
    telegram_requests: list[httpx.Request],
) -> Generator[httpx.Client, None, None]:
    """httpx client whose transport answers like the Bot API."""

    def handler(request: httpx.Request) -> httpx.Response:
        telegram_requests.append(request)
        return httpx.Response(
            200,
            json={"ok": True, "result": {"message_id": len(telegram_requests)}},
        )

    client = httpx.Client(transport=httpx.MockTransport(handler))
    yield client
    client.close()
