"""Sample classification and Telegram notifications."""

from healthrelay.notify.classifier import (
    MINDFUL_MESSAGE,
    SLEEP_MESSAGE,
    SampleClassifier,
    format_mindful_message,
    format_sleep_message,
)
from healthrelay.notify.telegram import TelegramNotifier, TelegramResult

__all__ = [
    "MINDFUL_MESSAGE",
    "SLEEP_MESSAGE",
    "SampleClassifier",
    "TelegramNotifier",
    "TelegramResult",
    "format_mindful_message",
    "format_sleep_message",
]
