"""
Mock Notification Service

Records order events for development and tests.
Nothing leaves the process - events are just logged.
"""

import logging
import random
import uuid
from typing import Any

from food_ordering.services.notifications.base import BaseNotificationService, NotificationResult

logger = logging.getLogger(__name__)


class MockNotificationService(BaseNotificationService):
    """Mock notification service for development."""

    def __init__(self, failure_rate: float = 0.0):
        self.failure_rate = failure_rate
        self.sent: list[dict[str, Any]] = []
        logger.info(f"MockNotificationService initialized (failure_rate={failure_rate:.0%})")

    @property
    def provider_name(self) -> str:
        return "mock"

    def _should_fail(self) -> bool:
        return random.random() < self.failure_rate

    async def send_order_placed(self, order_data: dict[str, Any]) -> NotificationResult:
        order_number = order_data.get("order_number", "unknown")

        if self._should_fail():
            logger.warning(f"Mock notification failed (simulated) for order {order_number}")
            return NotificationResult(
                success=False,
                error_message="Simulated notification failure",
                provider="mock",
            )

        message_id = f"ntf_mock_{uuid.uuid4().hex[:12]}"
        self.sent.append(order_data)
        logger.info(f"Mock notification for order {order_number} (ID: {message_id})")

        return NotificationResult(success=True, message_id=message_id, provider="mock")

    async def health_check(self) -> bool:
        return True
