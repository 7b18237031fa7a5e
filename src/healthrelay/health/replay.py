"""File-backed health platform that replays recorded deliveries.

A replay file is YAML (or JSON, which YAML also reads) shaped like::

    available: true
    authorization:
      granted: true
    deliveries:
      sleep_analysis:
        - kind: initial
          anchor: "a-001"
          samples: []
        - kind: live
          anchor: "a-002"
          samples:
            - category: sleep_analysis
              start: 2026-10-17T23:00:00+00:00
              end: 2026-10-18T07:00:00+00:00
              metadata: {Asleep: 28800}

Events may omit ``category``; it defaults to the key they are listed under.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any

import yaml
from pydantic import ValidationError

from healthrelay.health.platform import (
    AuthorizationResult,
    HealthPlatform,
    UpdateFrequency,
)
from healthrelay.health.samples import Category, DeliveryEvent, DeliveryKind

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator, Mapping, Sequence

logger = logging.getLogger(__name__)


class ReplayError(Exception):
    """Raised when a replay file cannot be read or is malformed."""

    def __init__(self, message: str, path: Path | None = None) -> None:
        self.path = path
        super().__init__(message)


class ReplayPlatform(HealthPlatform):
    """Health platform backed by a fixed list of deliveries per category.

    Also records every call made against it (authorization requests,
    subscriptions, background delivery registrations) so callers can be
    inspected afterwards.
    """

    def __init__(
        self,
        deliveries: Mapping[Category, Sequence[DeliveryEvent]] | None = None,
        *,
        available: bool = True,
        authorization: AuthorizationResult | None = None,
    ) -> None:
        self._deliveries: dict[Category, list[DeliveryEvent]] = {
            category: _with_initial_snapshot(category, list(events))
            for category, events in (deliveries or {}).items()
        }
        self._available = available
        self._authorization = authorization or AuthorizationResult(granted=True)

        self.authorization_requests: list[tuple[frozenset[Category], frozenset[Category]]] = []
        self.subscriptions: list[tuple[Category, bytes | None]] = []
        self.background_delivery: dict[Category, UpdateFrequency] = {}

    @classmethod
    def from_file(cls, path: str | Path) -> ReplayPlatform:
        """Load a replay platform from a YAML or JSON file.

        Raises:
            ReplayError: If the file cannot be read or does not validate
        """
        path = Path(path).expanduser()
        try:
            data = yaml.safe_load(path.read_text(encoding="utf-8"))
        except OSError as e:
            msg = f"Cannot read replay file: {e}"
            raise ReplayError(msg, path) from e
        except yaml.YAMLError as e:
            msg = f"Invalid replay file syntax: {e}"
            raise ReplayError(msg, path) from e

        if not isinstance(data, dict):
            msg = "Replay file must contain a mapping"
            raise ReplayError(msg, path)

        try:
            return cls.from_dict(data)
        except ValueError as e:
            raise ReplayError(str(e), path) from e

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ReplayPlatform:
        """Build a replay platform from already-parsed data.

        Raises:
            ValueError: If a category or delivery does not validate
        """
        auth = data.get("authorization") or {}
        deliveries: dict[Category, list[DeliveryEvent]] = {}

        for raw_category, raw_events in (data.get("deliveries") or {}).items():
            try:
                category = Category(raw_category)
            except ValueError:
                msg = f"Unknown category in replay file: {raw_category!r}"
                raise ValueError(msg) from None

            events: list[DeliveryEvent] = []
            for index, raw_event in enumerate(raw_events or []):
                if not isinstance(raw_event, dict):
                    msg = f"Delivery {raw_category}[{index}] must be a mapping"
                    raise ValueError(msg)
                try:
                    events.append(
                        DeliveryEvent.model_validate({"category": category, **raw_event})
                    )
                except ValidationError as e:
                    msg = f"Invalid delivery {raw_category}[{index}]: {e}"
                    raise ValueError(msg) from e
            deliveries[category] = events

        return cls(
            deliveries,
            available=bool(data.get("available", True)),
            authorization=AuthorizationResult(
                granted=bool(auth.get("granted", True)),
                error=auth.get("error"),
            ),
        )

    def is_health_data_available(self) -> bool:
        return self._available

    def request_authorization(
        self,
        read: Iterable[Category],
        write: Iterable[Category],
    ) -> AuthorizationResult:
        self.authorization_requests.append((frozenset(read), frozenset(write)))
        return self._authorization

    def subscribe(
        self,
        category: Category,
        anchor: bytes | None,
    ) -> Iterator[DeliveryEvent]:
        self.subscriptions.append((category, anchor))
        events = self._deliveries.get(category) or _with_initial_snapshot(category, [])
        return iter(_resume_after(category, events, anchor))

    def enable_background_delivery(
        self,
        category: Category,
        frequency: UpdateFrequency,
    ) -> bool:
        self.background_delivery[category] = frequency
        return True


def _with_initial_snapshot(
    category: Category,
    events: list[DeliveryEvent],
) -> list[DeliveryEvent]:
    """Make sure a recorded stream starts with an initial snapshot."""
    if events and events[0].is_initial:
        return events
    snapshot = DeliveryEvent(category=category, kind=DeliveryKind.INITIAL)
    return [snapshot, *events]


def _resume_after(
    category: Category,
    events: list[DeliveryEvent],
    anchor: bytes | None,
) -> list[DeliveryEvent]:
    """Drop everything up to the delivery that produced ``anchor``."""
    if anchor is None:
        return events

    for index, event in enumerate(events):
        if event.anchor == anchor:
            logger.debug(
                "Resuming %s replay after delivery %d", category.value, index
            )
            snapshot = DeliveryEvent(
                category=category,
                kind=DeliveryKind.INITIAL,
                anchor=anchor,
            )
            return [snapshot, *events[index + 1 :]]

    logger.debug("Anchor not found in %s replay, starting over", category.value)
    return events
