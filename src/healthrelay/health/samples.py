"""Health sample and delivery event models.

Samples and delivery events are what a health-data platform hands over on
every change notification. Both are immutable once built.
"""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Any

from pydantic import AwareDatetime, BaseModel, ConfigDict, Field, model_validator


class Category(str, Enum):
    """Kind of health sample this relay knows how to observe."""

    SLEEP_ANALYSIS = "sleep_analysis"
    MINDFUL_SESSION = "mindful_session"


class DeliveryKind(str, Enum):
    """Whether a delivery is the historical catch-up or a genuinely new change."""

    INITIAL = "initial"
    LIVE = "live"


class Sample(BaseModel):
    """A single health sample.

    The category is kept as a plain string when it is not one of the known
    ``Category`` values so that it can still be reported as unhandled.
    """

    model_config = ConfigDict(frozen=True)

    category: Annotated[Category | str, Field(union_mode="left_to_right")]
    start: AwareDatetime
    end: AwareDatetime
    metadata: dict[str, Any] = Field(default_factory=dict)
    uuid: str | None = None

    @model_validator(mode="after")
    def validate_interval(self) -> Sample:
        """Ensure the sample does not end before it starts."""
        if self.end < self.start:
            msg = "sample end must not be earlier than its start"
            raise ValueError(msg)
        return self

    @property
    def duration_seconds(self) -> float:
        """Elapsed time between start and end, in seconds."""
        return (self.end - self.start).total_seconds()


class DeliveryEvent(BaseModel):
    """One change notification for a category.

    Attributes:
        category: Category the subscription observes
        kind: Initial snapshot or live delivery
        samples: New or changed samples, in delivery order
        deleted: References (uuids) of deleted samples
        anchor: Opaque cursor token to resume from, if the platform gave one
        error: Platform-reported error, if any
    """

    model_config = ConfigDict(frozen=True)

    category: Category
    kind: DeliveryKind = DeliveryKind.LIVE
    samples: list[Sample] = Field(default_factory=list)
    deleted: list[str] = Field(default_factory=list)
    anchor: bytes | None = None
    error: str | None = None

    @property
    def latest(self) -> Sample | None:
        """Most recent sample of the delivery (the last one delivered)."""
        return self.samples[-1] if self.samples else None

    @property
    def is_initial(self) -> bool:
        return self.kind == DeliveryKind.INITIAL
