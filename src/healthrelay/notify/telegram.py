"""Telegram Bot API notifier.

Messages are sent with a plain GET against the Bot API ``sendMessage``
method, the text percent-encoded into the query string. Sending is
fire-and-forget: ``send`` queues the request on a background worker and
returns at once. Failures are logged and recorded, never raised, and
never retried.
"""

from __future__ import annotations

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from typing import TYPE_CHECKING
from urllib.parse import quote

import httpx

from healthrelay.config.schema import DEFAULT_API_BASE
from healthrelay.logging import log_notification
from healthrelay.state.store import NotificationOutcome

if TYPE_CHECKING:
    from collections.abc import Callable

    from healthrelay.config.schema import TelegramConfig

logger = logging.getLogger(__name__)

SEND_MESSAGE_URL = "{api_base}/bot{token}/sendMessage?chat_id={chat_id}&text={text}"


@dataclass
class TelegramResult:
    """Result of a Telegram message send attempt."""

    outcome: NotificationOutcome
    text: str
    category: str | None = None
    status_code: int | None = None
    error: str | None = None

    @property
    def success(self) -> bool:
        return self.outcome != NotificationOutcome.FAILED


class TelegramNotifier:
    """Sends plain-text messages to a Telegram chat.

    Args:
        bot_token: Bot API token.
        chat_id: Destination chat id or @channel name.
        api_base: Bot API base URL.
        timeout: HTTP request timeout in seconds.
        dry_run: Log messages instead of sending them.
        client: Optional httpx client to send with (not closed by the notifier).
        on_result: Called with every TelegramResult, e.g. to record history.
    """

    def __init__(
        self,
        bot_token: str,
        chat_id: str,
        *,
        api_base: str = DEFAULT_API_BASE,
        timeout: float = 10.0,
        dry_run: bool = False,
        client: httpx.Client | None = None,
        on_result: Callable[[TelegramResult], None] | None = None,
    ) -> None:
        self._bot_token = bot_token
        self._chat_id = chat_id
        self._api_base = api_base.rstrip("/")
        self._timeout = timeout
        self._dry_run = dry_run
        self._client = client
        self._on_result = on_result
        self._executor = ThreadPoolExecutor(
            max_workers=1,
            thread_name_prefix="telegram-send",
        )

    @classmethod
    def from_config(
        cls,
        config: TelegramConfig,
        *,
        dry_run: bool = False,
        client: httpx.Client | None = None,
        on_result: Callable[[TelegramResult], None] | None = None,
    ) -> TelegramNotifier:
        """Create a notifier from the ``telegram`` config section."""
        return cls(
            config.bot_token,
            config.chat_id,
            api_base=config.api_base,
            timeout=config.timeout,
            dry_run=dry_run,
            client=client,
            on_result=on_result,
        )

    def build_url(self, text: str) -> str:
        """Build the sendMessage URL for ``text``."""
        return SEND_MESSAGE_URL.format(
            api_base=self._api_base,
            token=self._bot_token,
            chat_id=quote(self._chat_id, safe="@"),
            text=quote(text, safe=""),
        )

    def send(self, text: str, *, category: str | None = None) -> Future[TelegramResult]:
        """Queue ``text`` for sending and return without waiting.

        The returned future never carries an exception; failures are
        reported through the result.
        """
        return self._executor.submit(self._deliver, text, category)

    def send_now(self, text: str, *, category: str | None = None) -> TelegramResult:
        """Send ``text`` synchronously. Never raises."""
        if self._dry_run:
            return TelegramResult(NotificationOutcome.DRY_RUN, text, category)

        url = self.build_url(text)
        try:
            if self._client is not None:
                response = self._client.get(url, timeout=self._timeout)
            else:
                with httpx.Client(timeout=self._timeout) as client:
                    response = client.get(url)
        except httpx.TimeoutException:
            return TelegramResult(
                NotificationOutcome.FAILED, text, category, error="Request timeout"
            )
        except httpx.RequestError as e:
            return TelegramResult(
                NotificationOutcome.FAILED, text, category, error=f"Request error: {e}"
            )
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            return TelegramResult(
                NotificationOutcome.FAILED, text, category, error=f"Invalid request: {e}"
            )

        body = _response_body(response)
        logger.debug("Telegram response %d: %s", response.status_code, body)

        ok = response.is_success and not (isinstance(body, dict) and body.get("ok") is False)
        if ok:
            return TelegramResult(
                NotificationOutcome.SENT, text, category, status_code=response.status_code
            )

        description = body.get("description") if isinstance(body, dict) else None
        return TelegramResult(
            NotificationOutcome.FAILED,
            text,
            category,
            status_code=response.status_code,
            error=f"HTTP {response.status_code}: {description or response.text}",
        )

    def close(self) -> None:
        """Wait for queued messages to finish sending."""
        self._executor.shutdown(wait=True)

    def _deliver(self, text: str, category: str | None) -> TelegramResult:
        result = self.send_now(text, category=category)
        log_notification(
            result.outcome.value,
            text,
            status_code=result.status_code,
            error=result.error,
        )
        if self._on_result is not None:
            try:
                self._on_result(result)
            except Exception:
                logger.exception("Could not record notification result")
        return result


def _response_body(response: httpx.Response) -> object:
    try:
        return response.json()
    except ValueError:
        return response.text
