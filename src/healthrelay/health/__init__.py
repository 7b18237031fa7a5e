"""Health sample models and the health-data platform interface."""

from healthrelay.health.platform import (
    AuthorizationResult,
    HealthPlatform,
    UpdateFrequency,
)
from healthrelay.health.replay import ReplayError, ReplayPlatform
from healthrelay.health.samples import Category, DeliveryEvent, DeliveryKind, Sample

__all__ = [
    "AuthorizationResult",
    "Category",
    "DeliveryEvent",
    "DeliveryKind",
    "HealthPlatform",
    "ReplayError",
    "ReplayPlatform",
    "Sample",
    "UpdateFrequency",
]
