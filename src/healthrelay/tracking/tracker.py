"""Change-anchor tracking for one sample category.

Each tracker owns one platform subscription. It keeps the most recent
anchor in memory, persists every new anchor, and hands the latest sample
of each live delivery to the classifier.

The initial snapshot is a historical catch-up, not news: by default it
only advances the anchor (``InitialSnapshotPolicy.CATCH_UP_ONLY``).
"""

from __future__ import annotations

import threading
from enum import Enum
from typing import TYPE_CHECKING

from healthrelay.config.schema import InitialSnapshotPolicy
from healthrelay.logging import get_logger, log_anchor_updated, log_delivery_received

if TYPE_CHECKING:
    from collections.abc import Iterator

    from healthrelay.health.platform import HealthPlatform
    from healthrelay.health.samples import Category, DeliveryEvent
    from healthrelay.notify.classifier import SampleClassifier
    from healthrelay.state.anchor import AnchorStore


class EmptyDeliveryError(Exception):
    """Raised when a live delivery carries no samples at all."""

    def __init__(self, category: Category) -> None:
        self.category = category
        super().__init__(f"Live delivery for {category.value} carried no samples")


class DeliveryOutcome(str, Enum):
    """What a tracker did with a delivery event."""

    CAUGHT_UP = "caught_up"
    CLASSIFIED = "classified"
    EMPTY = "empty"
    ERROR = "error"


class ChangeTracker:
    """Tracks the change anchor of a single category.

    Args:
        category: Category to observe.
        platform: Health platform to subscribe with.
        anchors: Where the anchor is persisted.
        classifier: Receives the latest sample of every live delivery.
        lock: Serializes handling across trackers; shared by the relay.
        initial_snapshot: Policy for the initial catch-up snapshot.
        strict_empty_updates: Raise EmptyDeliveryError instead of ignoring
            sample-less live deliveries.
    """

    def __init__(
        self,
        category: Category,
        platform: HealthPlatform,
        anchors: AnchorStore,
        classifier: SampleClassifier,
        *,
        lock: threading.Lock | None = None,
        initial_snapshot: InitialSnapshotPolicy = InitialSnapshotPolicy.CATCH_UP_ONLY,
        strict_empty_updates: bool = False,
    ) -> None:
        self.category = category
        self._platform = platform
        self._anchors = anchors
        self._classifier = classifier
        self._lock = lock or threading.Lock()
        self._initial_snapshot = initial_snapshot
        self._strict_empty_updates = strict_empty_updates
        self._subscription: Iterator[DeliveryEvent] | None = None
        self._log = get_logger("healthrelay.tracking").bind(category=category.value)

        self.anchor: bytes | None = None

    @property
    def is_set_up(self) -> bool:
        return self._subscription is not None

    def set_up(self) -> None:
        """Load the persisted anchor and subscribe from that position."""
        self.anchor = self._anchors.load()
        self._subscription = self._platform.subscribe(self.category, self.anchor)
        self._log.info("subscription_started", resumed=self.anchor is not None)

    def consume(self) -> int:
        """Handle every delivery of the subscription until it ends.

        Returns:
            Number of delivery events handled

        Raises:
            RuntimeError: If called before set_up()
            EmptyDeliveryError: In strict mode, on a sample-less live delivery
        """
        if self._subscription is None:
            msg = f"Tracker for {self.category.value} is not set up"
            raise RuntimeError(msg)

        handled = 0
        for event in self._subscription:
            with self._lock:
                self.handle(event)
            handled += 1
        self._log.info("subscription_ended", deliveries=handled)
        return handled

    def handle(self, event: DeliveryEvent) -> DeliveryOutcome:
        """Apply one delivery event.

        Raises:
            EmptyDeliveryError: In strict mode, on a sample-less live delivery
        """
        log_delivery_received(
            self.category.value,
            event.kind.value,
            samples=len(event.samples),
            deleted=len(event.deleted),
            has_anchor=event.anchor is not None,
        )

        if event.error is not None:
            self._log.error("delivery_error", kind=event.kind.value, error=event.error)
            return DeliveryOutcome.ERROR

        if event.is_initial:
            return self._handle_initial(event)
        return self._handle_live(event)

    def _handle_initial(self, event: DeliveryEvent) -> DeliveryOutcome:
        self._update_anchor(event.anchor)

        latest = event.latest
        if self._initial_snapshot == InitialSnapshotPolicy.NOTIFY_LATEST and latest is not None:
            self._classifier.handle_sample(latest)
            return DeliveryOutcome.CLASSIFIED
        return DeliveryOutcome.CAUGHT_UP

    def _handle_live(self, event: DeliveryEvent) -> DeliveryOutcome:
        latest = event.latest
        if latest is None:
            if self._strict_empty_updates:
                raise EmptyDeliveryError(self.category)
            self._log.warning("empty_live_delivery", deleted=len(event.deleted))
            return DeliveryOutcome.EMPTY

        self._update_anchor(event.anchor)
        self._classifier.handle_sample(latest)
        return DeliveryOutcome.CLASSIFIED

    def _update_anchor(self, anchor: bytes | None) -> None:
        if anchor is None:
            return
        self.anchor = anchor
        log_anchor_updated(self.category.value, persisted=self._anchors.save(anchor))
