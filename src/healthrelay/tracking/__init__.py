"""Per-category change-anchor tracking."""

from healthrelay.tracking.tracker import ChangeTracker, DeliveryOutcome, EmptyDeliveryError

__all__ = [
    "ChangeTracker",
    "DeliveryOutcome",
    "EmptyDeliveryError",
]
