"""Notification webhook client with exponential backoff retry logic"""

import httpx
import asyncio
from typing import Protocol
from lot_financing.config import settings
from lot_financing.domain.events import Notification
from lot_financing.infrastructure.observability.metrics import webhook_latency_histogram


class NotificationSink(Protocol):
    """Anything able to deliver a notification to a user or to staff"""

    async def send(self, notification: Notification) -> None: ...


class WebhookNotificationSink:
    """Client posting notifications to the notification delivery service"""

    def __init__(self, webhook_url: str | None = None, timeout: float | None = None):
        self.webhook_url = webhook_url or settings.notification_webhook_url
        self.timeout = timeout or settings.http_timeout_seconds
        self.max_retries = settings.webhook_max_retries
        self.backoff_base = settings.webhook_backoff_base

    async def send(self, notification: Notification) -> None:
        """
        Deliver a notification with retry logic.

        Retry strategy:
        - Exponential backoff: 1s, 2s, 4s, 8s, 16s (base^attempt)
        - Retries on 5xx/4xx errors and network failures
        - Raises after the final attempt; callers decide whether to swallow

        Args:
            notification: recipient, title, message and category to deliver
        """
        payload = {
            "recipient": notification.recipient,
            "title": notification.title,
            "message": notification.message,
            "category": notification.category,
        }

        attempt = 0
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            while attempt < self.max_retries:
                try:
                    with webhook_latency_histogram.time():
                        response = await client.post(self.webhook_url, json=payload)
                        response.raise_for_status()
                        return  # Success

                except (httpx.HTTPStatusError, httpx.RequestError):
                    attempt += 1

                    if attempt >= self.max_retries:
                        # Final failure after all retries
                        raise

                    # Exponential backoff: 1s, 2s, 4s, 8s, 16s
                    backoff = self.backoff_base * (2 ** (attempt - 1))
                    await asyncio.sleep(backoff)
