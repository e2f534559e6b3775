"""
                        Services Module

Async collaborators around the pricing core. Each backend has an
in-memory (development) and a real (staging/production) implementation.

Services:
    - stores: catalog, cart, address and order persistence
    - ratelimit: per-user request limiting
    - notifications: order events for the notification service
    - ordering: cart and checkout orchestration
"""

from food_ordering.services.notifications import get_notification_service
from food_ordering.services.ordering import OrderingService
from food_ordering.services.ratelimit import get_rate_limiter
from food_ordering.services.stores import get_store

__all__ = ["OrderingService", "get_notification_service", "get_rate_limiter", "get_store"]
