"""Logging module for healthrelay.

This module provides structured JSON logging with:
- structlog configuration for consistent log formatting
- Secret redaction for Telegram bot tokens and chat ids
- Structured log events for deliveries, anchors and notifications

Usage:
    from healthrelay.logging import configure_logging, get_logger

    configure_logging(verbose=True)
    log = get_logger("healthrelay.cli")
"""

from healthrelay.logging.audit import (
    configure_logging,
    get_logger,
    log_anchor_updated,
    log_delivery_received,
    log_notification,
    quiet_http_client_logs,
    redact_secrets,
)

__all__ = [
    "configure_logging",
    "get_logger",
    "log_anchor_updated",
    "log_delivery_received",
    "log_notification",
    "quiet_http_client_logs",
    "redact_secrets",
]
