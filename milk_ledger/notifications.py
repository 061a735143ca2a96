# milk_ledger/notifications.py
import logging
import time

import httpx
from django.conf import settings

from .exceptions import NotificationError
from .messages import render_message

logger = logging.getLogger(__name__)


class EventKind:
    REGISTRATION = 'registration'
    PROFILE_UPDATED = 'profile-updated'
    DELIVERY_CONFIRMED = 'delivery-confirmed'
    DELIVERY_SKIPPED = 'delivery-skipped'
    PAYMENT_RECORDED = 'payment-recorded'
    PAYMENT_COMPLETED = 'payment-completed'
    PAYMENT_REMINDER = 'payment-reminder'
    ADMIN_DELIVERY_SUMMARY = 'admin-delivery-summary'

    ALL = (
        REGISTRATION,
        PROFILE_UPDATED,
        DELIVERY_CONFIRMED,
        DELIVERY_SKIPPED,
        PAYMENT_RECORDED,
        PAYMENT_COMPLETED,
        PAYMENT_REMINDER,
        ADMIN_DELIVERY_SUMMARY,
    )


class NotificationDispatcher:
    """Delivers event payloads to a messaging handle.

    Subclasses implement ``send`` and raise NotificationError when delivery
    fails. ``notify`` is the fire-and-forget wrapper used after data writes.
    """

    def send(self, handle, event_kind, payload):
        raise NotImplementedError

    def notify(self, handle, event_kind, payload):
        try:
            self.send(handle, event_kind, payload)
        except NotificationError as e:
            logger.warning(f"Notification {event_kind} to {handle} failed: {e.message}")
            return False
        return True


class LoggingDispatcher(NotificationDispatcher):
    """Used when no bot credential is configured."""

    def send(self, handle, event_kind, payload):
        if not handle:
            raise NotificationError(f'No messaging handle for {event_kind}', entity=payload.get('name'))
        logger.info(f"[notification disabled] {event_kind} -> {handle}: {payload}")


class TelegramDispatcher(NotificationDispatcher):
    RETRYABLE_STATUS = {429, 500, 502, 503, 504}

    def __init__(
        self,
        bot_token,
        api_url=None,
        timeout=None,
        max_retries=None,
        backoff_seconds=None,
        transport=None,
        sleep=time.sleep,
    ):
        if not bot_token:
            raise ValueError("Telegram bot token is not configured.")
        self.bot_token = bot_token
        self.api_url = (api_url or settings.TELEGRAM_API_URL).rstrip('/')
        self.timeout = timeout if timeout is not None else settings.NOTIFICATION_TIMEOUT_SECONDS
        self.max_retries = max_retries if max_retries is not None else settings.NOTIFICATION_MAX_RETRIES
        self.backoff_seconds = (
            backoff_seconds if backoff_seconds is not None else settings.NOTIFICATION_BACKOFF_SECONDS
        )
        self.transport = transport
        self._sleep = sleep

    @property
    def send_message_url(self):
        return f"{self.api_url}/bot{self.bot_token}/sendMessage"

    def _get_client(self):
        return httpx.Client(timeout=httpx.Timeout(self.timeout), transport=self.transport)

    def send(self, handle, event_kind, payload):
        if not handle:
            raise NotificationError(f'No messaging handle for {event_kind}', entity=payload.get('name'))

        body = {
            'chat_id': handle,
            'text': render_message(event_kind, payload),
            'parse_mode': 'HTML',
        }

        attempt = 0
        with self._get_client() as client:
            while True:
                try:
                    response = client.post(self.send_message_url, json=body)
                    if response.status_code in self.RETRYABLE_STATUS:
                        raise httpx.HTTPStatusError(
                            f"Telegram returned {response.status_code}",
                            request=response.request,
                            response=response,
                        )
                    if response.is_error:
                        # Bad chat id or blocked bot, retrying will not help
                        raise NotificationError(
                            f"Telegram API error {response.status_code}: {response.text}",
                            entity=handle,
                        )
                    result = response.json()
                    logger.info(f"Sent {event_kind} notification to {handle}")
                    return result
                except ValueError as e:
                    raise NotificationError(
                        f"Telegram returned an unreadable response for {event_kind}: {e}", entity=handle
                    ) from e
                except (httpx.TransportError, httpx.HTTPStatusError) as e:
                    attempt += 1
                    if attempt > self.max_retries:
                        logger.error(f"Telegram {event_kind} to {handle} failed after {attempt} attempts: {e}")
                        raise NotificationError(
                            f"Failed to send {event_kind}: {e}", entity=handle
                        ) from e
                    wait_time = self.backoff_seconds * (2 ** (attempt - 1))
                    logger.debug(f"Telegram send failed, retrying in {wait_time:.1f}s (attempt {attempt}/{self.max_retries})")
                    self._sleep(wait_time)
                except httpx.HTTPError as e:
                    # Redirect loops, decoding errors and the like
                    logger.error(f"Telegram {event_kind} to {handle} failed: {e}")
                    raise NotificationError(f"Failed to send {event_kind}: {e}", entity=handle) from e


def build_dispatcher():
    """Dispatcher for the configured bot credential."""
    if settings.TELEGRAM_BOT_TOKEN:
        return TelegramDispatcher(settings.TELEGRAM_BOT_TOKEN)
    logger.warning("TELEGRAM_BOT_TOKEN not set - notifications will only be logged")
    return LoggingDispatcher()
