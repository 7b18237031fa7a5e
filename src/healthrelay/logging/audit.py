"""Structured JSON logging and the delivery/notification trail.

This module provides:
- structlog configuration for JSON logging to stderr
- Secret redaction for Telegram bot tokens and chat ids in URLs
- Structured log events for deliveries, anchor updates and notifications
"""

from __future__ import annotations

import logging
import re
import sys
from typing import TYPE_CHECKING, Any

import structlog

if TYPE_CHECKING:
    from collections.abc import Callable

    from structlog.typing import EventDict, WrappedLogger

# Patterns for secret redaction
SECRET_PATTERNS: list[tuple[re.Pattern[str], str]] = [
    # Bot token inside a Bot API URL path
    (re.compile(r"(api\.telegram\.org/(?:file/)?bot)([^/\s]+)"), r"\1[REDACTED]"),
    # Bare bot tokens: <bot id>:<35 char secret>
    (re.compile(r"\b\d{6,}:[A-Za-z0-9_-]{30,}"), "[REDACTED_TELEGRAM_TOKEN]"),
    # Chat ids in query strings
    (re.compile(r"(chat_id=)([^&\s]+)"), r"\1[REDACTED]"),
    # Generic token assignments
    (re.compile(r"(token[=:]\s*['\"]?)([A-Za-z0-9:_-]{20,})"), r"\1[REDACTED]"),
]


def redact_secrets(value: Any) -> Any:
    """Redact sensitive values from a string, dict, or list.

    Args:
        value: Value to redact. Can be str, dict, list, or other.

    Returns:
        Value with bot tokens and chat ids masked
    """
    if isinstance(value, str):
        result = value
        for pattern, replacement in SECRET_PATTERNS:
            result = pattern.sub(replacement, result)
        return result

    if isinstance(value, dict):
        return {k: redact_secrets(v) for k, v in value.items()}

    if isinstance(value, list):
        return [redact_secrets(item) for item in value]

    return value


def _redact_processor(
    _logger: WrappedLogger,
    _method_name: str,
    event_dict: EventDict,
) -> EventDict:
    """structlog processor that redacts secrets from log events."""
    return redact_secrets(event_dict)


# stdlib loggers that write full request URLs, bot token included
HTTP_CLIENT_LOGGERS = ("httpx", "httpcore")


def quiet_http_client_logs() -> None:
    """Keep HTTP client request lines (which embed the bot token) out of the logs."""
    for name in HTTP_CLIENT_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def configure_logging(
    verbose: bool = False,
    json_output: bool = True,
) -> None:
    """Configure structured logging for the application.

    Args:
        verbose: If True, enable DEBUG level. Otherwise INFO.
        json_output: If True, output JSON. Otherwise use console format.
    """
    level = logging.DEBUG if verbose else logging.INFO

    logging.basicConfig(
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
        level=level,
    )
    quiet_http_client_logs()

    processors: list[Callable[..., Any]] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        _redact_processor,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if json_output:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a configured structlog logger.

    Args:
        name: Optional logger name (typically __name__)
    """
    return structlog.get_logger(name)


# Structured log event helpers


def log_delivery_received(
    category: str,
    kind: str,
    samples: int,
    deleted: int,
    has_anchor: bool,
) -> None:
    """Log when the platform hands over a delivery event."""
    log = get_logger("healthrelay.deliveries")
    log.debug(
        "delivery_received",
        category=category,
        kind=kind,
        samples=samples,
        deleted=deleted,
        has_anchor=has_anchor,
    )


def log_anchor_updated(category: str, persisted: bool) -> None:
    """Log an anchor replacement and whether it reached the store."""
    log = get_logger("healthrelay.anchor")
    if persisted:
        log.debug("anchor_updated", category=category, persisted=True)
    else:
        log.warning("anchor_persist_failed", category=category, persisted=False)


def log_notification(
    outcome: str,
    message: str,
    status_code: int | None = None,
    error: str | None = None,
) -> None:
    """Log the outcome of an outbound notification.

    Args:
        outcome: 'sent', 'failed' or 'dry_run'
        message: Message text that was (or would have been) sent
        status_code: HTTP status code, when a response arrived
        error: Error description if the send failed
    """
    log = get_logger("healthrelay.notify")
    log_func = log.warning if outcome == "failed" else log.info
    log_func(
        f"notification_{outcome}",
        message=message,
        status_code=status_code,
        error=error,
    )
