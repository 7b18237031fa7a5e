"""Turns the latest sample of a delivery into a chat message.

Sleep analysis samples report the total time asleep (seconds) in their
``Asleep`` metadata field. Mindful sessions are measured from their start
and end. A mindful session whose duration equals the last one notified is
treated as a redelivery and dropped; the last duration lives in memory
only, so it resets on restart.
"""

from __future__ import annotations

import logging
import threading
from numbers import Real
from typing import TYPE_CHECKING, Any, Protocol

from healthrelay.health.samples import Category

if TYPE_CHECKING:
    from healthrelay.health.samples import Sample

logger = logging.getLogger(__name__)

ASLEEP_METADATA_KEY = "Asleep"
SLEEP_MESSAGE = "Slept %f hrs today"
MINDFUL_MESSAGE = "Meditated %f minutes"


class Notifier(Protocol):
    def send(self, text: str, *, category: str | None = None) -> Any: ...


def format_sleep_message(asleep_seconds: float) -> str:
    """Format time asleep, given in seconds, as hours."""
    return SLEEP_MESSAGE % (asleep_seconds / 60.0 / 60.0)


def format_mindful_message(duration_seconds: float) -> str:
    """Format a meditation duration, given in seconds, as minutes."""
    return MINDFUL_MESSAGE % (duration_seconds / 60.0)


class SampleClassifier:
    """Classifies samples by category and forwards messages to a notifier."""

    def __init__(self, notifier: Notifier | None = None) -> None:
        self._notifier = notifier
        self._lock = threading.Lock()
        self.last_mindful_seconds = 0.0

    def classify(self, sample: Sample) -> str | None:
        """Return the message for ``sample``, or None if nothing should be sent."""
        if sample.category == Category.SLEEP_ANALYSIS:
            return self._classify_sleep(sample)
        if sample.category == Category.MINDFUL_SESSION:
            return self._classify_mindful(sample)

        logger.info("Unhandled sample category: %s", _category_name(sample))
        return None

    def handle_sample(self, sample: Sample) -> str | None:
        """Classify ``sample`` and send the resulting message, if any."""
        message = self.classify(sample)
        if message is None:
            return None

        logger.info("Notifying: %s", message)
        if self._notifier is not None:
            self._notifier.send(message, category=_category_name(sample))
        return message

    def _classify_sleep(self, sample: Sample) -> str | None:
        asleep = sample.metadata.get(ASLEEP_METADATA_KEY)
        if not isinstance(asleep, Real) or isinstance(asleep, bool):
            logger.debug("Sleep sample without numeric %s metadata", ASLEEP_METADATA_KEY)
            return None
        return format_sleep_message(float(asleep))

    def _classify_mindful(self, sample: Sample) -> str | None:
        duration = sample.duration_seconds
        with self._lock:
            if duration == self.last_mindful_seconds:
                logger.debug("Duplicate mindful session of %.0fs dropped", duration)
                return None
            self.last_mindful_seconds = duration
        return format_mindful_message(duration)


def _category_name(sample: Sample) -> str:
    category = sample.category
    return category.value if isinstance(category, Category) else str(category)
