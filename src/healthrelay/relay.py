"""Wires the health platform, change trackers and notifier together.

Flow:
1. request_access() asks the platform for read access to the tracked
   categories (nothing is written).
2. On grant, one ChangeTracker per category is set up and background
   delivery is enabled for it.
3. run() drains every subscription, each on its own worker thread, with
   all handling serialized through one lock.
"""

from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor, wait
from typing import TYPE_CHECKING

from healthrelay.config.schema import InitialSnapshotPolicy
from healthrelay.health.platform import AuthorizationResult, UpdateFrequency
from healthrelay.health.samples import Category
from healthrelay.logging import get_logger
from healthrelay.tracking import ChangeTracker

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from healthrelay.config.schema import Config
    from healthrelay.health.platform import HealthPlatform
    from healthrelay.notify.classifier import SampleClassifier
    from healthrelay.state.anchor import AnchorStore

    AccessCompletion = Callable[[bool, str | None], None]

DEFAULT_READ_CATEGORIES: tuple[Category, ...] = (
    Category.SLEEP_ANALYSIS,
    Category.MINDFUL_SESSION,
)

log = get_logger("healthrelay.relay")


class HealthRelay:
    """Authorization, subscriptions and delivery handling for all categories.

    Args:
        platform: Health platform to talk to.
        classifier: Shared classifier (and its dedup state) for all trackers.
        anchors: Anchor persistence shared by all trackers.
        categories: Categories to request read access for and observe.
        initial_snapshot: Initial snapshot policy passed to every tracker.
        strict_empty_updates: Whether trackers raise on empty live deliveries.
    """

    def __init__(
        self,
        platform: HealthPlatform,
        classifier: SampleClassifier,
        anchors: AnchorStore,
        *,
        categories: Iterable[Category] = DEFAULT_READ_CATEGORIES,
        initial_snapshot: InitialSnapshotPolicy = InitialSnapshotPolicy.CATCH_UP_ONLY,
        strict_empty_updates: bool = False,
    ) -> None:
        self._platform = platform
        self._classifier = classifier
        self._anchors = anchors
        self._initial_snapshot = initial_snapshot
        self._strict_empty_updates = strict_empty_updates
        self._lock = threading.Lock()

        self.categories: tuple[Category, ...] = tuple(categories)
        self.trackers: dict[Category, ChangeTracker] = {}

    @classmethod
    def from_config(
        cls,
        config: Config,
        platform: HealthPlatform,
        classifier: SampleClassifier,
        anchors: AnchorStore,
    ) -> HealthRelay:
        """Create a relay using the ``tracking`` config section."""
        return cls(
            platform,
            classifier,
            anchors,
            categories=config.tracking.categories,
            initial_snapshot=config.tracking.initial_snapshot,
            strict_empty_updates=config.tracking.strict_empty_updates,
        )

    def request_access(
        self,
        completion: AccessCompletion | None = None,
    ) -> AuthorizationResult:
        """Request read access and set up trackers on success.

        Safe to call repeatedly; trackers are only set up once per category.
        ``completion`` is called with (granted, error) on the calling thread
        once setup has finished. A denial is not retried.
        """
        if not self._platform.is_health_data_available():
            log.warning("health_data_unavailable")
            result = AuthorizationResult(
                granted=False,
                error="Health data is not available on this device",
            )
        else:
            result = self._platform.request_authorization(
                read=self.categories,
                write=(),
            )
            if result.granted:
                log.info("authorization_granted", categories=[c.value for c in self.categories])
                self.set_up_background_delivery(self.categories)
            else:
                log.error("authorization_denied", error=result.error)

        if completion is not None:
            completion(result.granted, result.error)
        return result

    def set_up_background_delivery(self, categories: Iterable[Category]) -> None:
        """Create a tracker and enable background delivery for each category."""
        for category in categories:
            if category in self.trackers:
                log.debug("tracker_already_set_up", category=category.value)
                continue

            tracker = ChangeTracker(
                category,
                self._platform,
                self._anchors,
                self._classifier,
                lock=self._lock,
                initial_snapshot=self._initial_snapshot,
                strict_empty_updates=self._strict_empty_updates,
            )
            tracker.set_up()
            self.trackers[category] = tracker

            enabled = self._platform.enable_background_delivery(
                category, UpdateFrequency.IMMEDIATE
            )
            log.info(
                "background_delivery_enabled",
                category=category.value,
                success=enabled,
            )

    def run(self) -> int:
        """Consume every tracker's subscription until all of them end.

        Returns:
            Total number of delivery events handled

        Raises:
            Exception: The first error raised by a tracker, after all
                trackers have stopped
        """
        if not self.trackers:
            log.warning("no_trackers_set_up")
            return 0

        with ThreadPoolExecutor(
            max_workers=len(self.trackers),
            thread_name_prefix="tracker",
        ) as executor:
            futures = [executor.submit(tracker.consume) for tracker in self.trackers.values()]
            wait(futures)

        total = 0
        for future in futures:
            total += future.result()
        log.info("relay_finished", deliveries=total)
        return total
