"""
Notification Service Factory

Returns Mock or Webhook notification service based on ENV_MODE.
"""

import logging
from functools import lru_cache

from food_ordering.core.config import get_settings
from food_ordering.services.notifications.base import (
    BaseNotificationService,
    NotificationDeliveryError,
    NotificationResult,
)
from food_ordering.services.notifications.mock import MockNotificationService
from food_ordering.services.notifications.webhook import WebhookNotificationService

logger = logging.getLogger(__name__)


@lru_cache()
def get_notification_service() -> BaseNotificationService:
    """Get the configured notification service."""
    settings = get_settings()

    if settings.is_development:
        logger.info("Notification Service: Using MockNotificationService (development mode)")
        return MockNotificationService()
    else:
        logger.info(f"Notification Service: Using WebhookNotificationService ({settings.env_mode.value} mode)")
        return WebhookNotificationService()


def reset_notification_service() -> None:
    """Clear the cached service instance."""
    get_notification_service.cache_clear()


__all__ = [
    "get_notification_service",
    "reset_notification_service",
    "BaseNotificationService",
    "MockNotificationService",
    "NotificationDeliveryError",
    "NotificationResult",
    "WebhookNotificationService",
]
