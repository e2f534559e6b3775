"""
Notification Service Abstract Base Class

Delivers order events to the notification service, which owns the
customer-facing channels (email, SMS, push). Implementations:
    - MockNotificationService: logs and records events (development)
    - WebhookNotificationService: POSTs events over HTTP (staging/production)
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Optional


@dataclass
class NotificationResult:
    """Result from delivering a notification event."""
    success: bool
    message_id: Optional[str] = None
    error_message: Optional[str] = None
    provider: str = "unknown"


class NotificationDeliveryError(Exception):
    """Raised when an event could not be handed to the notification service."""

    def __init__(self, order_number: str, result: NotificationResult):
        self.order_number = order_number
        self.result = result
        super().__init__(
            f"Notification for order {order_number} failed via {result.provider}: {result.error_message}"
        )


class BaseNotificationService(ABC):
    """Abstract base class for notification services."""

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return the provider name."""
        pass

    @abstractmethod
    async def send_order_placed(self, order_data: dict[str, Any]) -> NotificationResult:
        """Announce a placed order; ``order_data`` is the JSON-safe task payload."""
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        """Check service connectivity."""
        pass
