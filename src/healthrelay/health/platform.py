"""Capability interface for the host health-data platform.

Authorization, sample storage and background wake-ups belong to the host
platform. Everything the relay needs from it goes through ``HealthPlatform``
so the tracking and notification logic can run against any implementation.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator

    from healthrelay.health.samples import Category, DeliveryEvent


class UpdateFrequency(str, Enum):
    """How often the platform should wake the app for new samples."""

    IMMEDIATE = "immediate"
    HOURLY = "hourly"
    DAILY = "daily"
    WEEKLY = "weekly"


@dataclass(frozen=True)
class AuthorizationResult:
    """Answer to an authorization request."""

    granted: bool
    error: str | None = None


class HealthPlatform(ABC):
    """Abstract health-data platform."""

    @abstractmethod
    def is_health_data_available(self) -> bool:
        """Whether health data is supported on this device at all."""

    @abstractmethod
    def request_authorization(
        self,
        read: Iterable[Category],
        write: Iterable[Category],
    ) -> AuthorizationResult:
        """Ask for permission to read and write the given categories.

        Safe to call repeatedly; the platform deduplicates prompts.
        """

    @abstractmethod
    def subscribe(
        self,
        category: Category,
        anchor: bytes | None,
    ) -> Iterator[DeliveryEvent]:
        """Observe changes to a category starting after ``anchor``.

        The first event yielded is the initial snapshot; every following
        event is a live delivery. ``anchor=None`` starts from the beginning.
        """

    @abstractmethod
    def enable_background_delivery(
        self,
        category: Category,
        frequency: UpdateFrequency,
    ) -> bool:
        """Ask the platform to wake the app when the category changes."""
