"""
Celery Tasks
Background work triggered by order placement.

notify_order_placed hands each placed order to the notification service
(see services/notifications); a failed delivery raises and is retried.
"""

import asyncio
import logging
import time
from datetime import datetime, timezone

from food_ordering.celery_worker import celery_app
from food_ordering.services.notifications import (
    NotificationDeliveryError,
    NotificationResult,
    get_notification_service,
)
from food_ordering.services.stores.base import PlacedOrder

logger = logging.getLogger(__name__)


def order_payload(order: PlacedOrder) -> dict:
    """JSON-safe summary of a placed order for the task queue."""
    return {
        'order_id': order.id,
        'order_number': order.order_number,
        'user_id': order.user_id,
        'delivery_type': order.delivery_type.value,
        'line_count': len(order.lines),
        'item_count': sum(line.quantity for line in order.lines),
        'subtotal': str(order.subtotal),
        'tax': str(order.tax),
        'delivery_fee': str(order.delivery_fee),
        'total': str(order.total),
        'status': order.status.value,
        'scheduled_for': order.scheduled_for.isoformat() if order.scheduled_for else None,
        'estimated_delivery': order.estimated_delivery.isoformat() if order.estimated_delivery else None,
        'created_at': order.created_at.isoformat() if order.created_at else None,
    }


def dispatch_order_notification(order_data: dict) -> NotificationResult:
    """Deliver one order event, raising NotificationDeliveryError on failure."""
    service = get_notification_service()
    result = asyncio.run(service.send_order_placed(order_data))
    if not result.success:
        raise NotificationDeliveryError(order_data.get('order_number', 'unknown'), result)
    return result


@celery_app.task(
    bind=True,
    max_retries=3,
    default_retry_delay=5,
    autoretry_for=(NotificationDeliveryError,),
    retry_backoff=True
)
def notify_order_placed(self, order_data: dict) -> dict:
    """
    Announce a newly placed order to the notification service.

    Args:
        order_data: Output of order_payload()

    Returns:
        dict: Result of the dispatch
    """
    task_id = self.request.id
    order_number = order_data.get('order_number', 'unknown')

    logger.info(f"📋 Task {task_id}: Dispatching confirmation for order {order_number}")
    start_time = time.time()

    dispatched = dispatch_order_notification(order_data)

    result = {
        'success': True,
        'order_number': order_number,
        'provider': dispatched.provider,
        'message_id': dispatched.message_id,
    }

    elapsed = round(time.time() - start_time, 3)
    result['task_id'] = task_id
    result['processing_time_seconds'] = elapsed

    logger.info(f"✅ Task {task_id}: Order {order_number} dispatched in {elapsed}s")
    return result


def queue_order_notification(order: PlacedOrder) -> None:
    """Enqueue notify_order_placed for ``order``; broker errors propagate to the caller."""
    notify_order_placed.delay(order_payload(order))
    logger.info(f"Queued confirmation for order {order.order_number}")


@celery_app.task
def health_check() -> dict:
    """
    Simple health check task to verify Celery is working.
    """
    return {
        'status': 'healthy',
        'worker': 'celery',
        'timestamp': datetime.now(timezone.utc).isoformat()
    }
