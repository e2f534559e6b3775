"""
Webhook Notification Service

Production implementation: each order event is POSTed as JSON to the
notification service's webhook (NOTIFICATION_WEBHOOK_URL).
"""

import logging
from typing import Any, Optional

import httpx

from food_ordering.core.config import get_settings
from food_ordering.services.notifications.base import BaseNotificationService, NotificationResult

logger = logging.getLogger(__name__)


class WebhookNotificationService(BaseNotificationService):
    """Delivers order events over HTTP."""

    def __init__(
        self,
        url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        settings = get_settings()
        self.url = url or settings.notification_webhook_url
        self.timeout = timeout or settings.notification_timeout_seconds
        self._transport = transport

        if not self.url:
            logger.warning("Notification webhook URL not configured")
        logger.info("WebhookNotificationService initialized")

    @property
    def provider_name(self) -> str:
        return "webhook"

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self._transport)

    async def send_order_placed(self, order_data: dict[str, Any]) -> NotificationResult:
        """POST an ``order.placed`` event; any non-2xx response counts as a failure."""
        if not self.url:
            return NotificationResult(
                success=False,
                error_message="Notification webhook not configured",
                provider="webhook",
            )

        order_number = order_data.get("order_number", "unknown")
        try:
            async with self._client() as client:
                response = await client.post(
                    self.url,
                    json={"event": "order.placed", "order": order_data},
                )
                response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error(f"Notification webhook error for order {order_number}: {e}")
            return NotificationResult(success=False, error_message=str(e), provider="webhook")

        message_id = response.headers.get("X-Message-Id")
        logger.info(f"Order {order_number} delivered to notification webhook ({response.status_code})")
        return NotificationResult(success=True, message_id=message_id, provider="webhook")

    async def health_check(self) -> bool:
        return bool(self.url)
