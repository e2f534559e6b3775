"""Tests for the notification services and the order notification task."""

import asyncio
import json
from unittest.mock import patch

import httpx
import pytest

from food_ordering.services.notifications import (
    MockNotificationService,
    NotificationDeliveryError,
    WebhookNotificationService,
    get_notification_service,
    reset_notification_service,
)
from food_ordering.tasks import dispatch_order_notification, notify_order_placed

ORDER = {"order_number": "ORD123456789", "user_id": "user-1", "total": "13.54"}
WEBHOOK_URL = "https://notify.internal/hooks/orders"


def webhook(handler):
    return WebhookNotificationService(url=WEBHOOK_URL, timeout=1, transport=httpx.MockTransport(handler))


class TestMockNotificationService:

    def test_records_event(self):
        service = MockNotificationService()
        result = asyncio.run(service.send_order_placed(ORDER))

        assert result.success
        assert result.provider == "mock"
        assert result.message_id.startswith("ntf_mock_")
        assert service.sent == [ORDER]

    def test_simulated_failure(self):
        service = MockNotificationService(failure_rate=1.0)
        result = asyncio.run(service.send_order_placed(ORDER))

        assert not result.success
        assert service.sent == []


class TestWebhookNotificationService:

    def test_posts_order_event(self):
        requests = []

        def handler(request):
            requests.append(request)
            return httpx.Response(202, headers={"X-Message-Id": "msg-1"})

        result = asyncio.run(webhook(handler).send_order_placed(ORDER))

        assert result.success
        assert result.message_id == "msg-1"
        assert str(requests[0].url) == WEBHOOK_URL
        assert json.loads(requests[0].content) == {"event": "order.placed", "order": ORDER}

    def test_error_status_is_a_failure(self):
        result = asyncio.run(webhook(lambda request: httpx.Response(503)).send_order_placed(ORDER))

        assert not result.success
        assert result.provider == "webhook"
        assert "503" in result.error_message

    def test_unconfigured_url_sends_nothing(self):
        def handler(request):
            raise AssertionError("no request expected")

        service = WebhookNotificationService(url=None, transport=httpx.MockTransport(handler))
        service.url = None
        result = asyncio.run(service.send_order_placed(ORDER))

        assert not result.success
        assert not asyncio.run(service.health_check())


class TestDispatch:

    def test_failed_delivery_raises(self):
        with patch("food_ordering.tasks.get_notification_service",
                   return_value=MockNotificationService(failure_rate=1.0)):
            with pytest.raises(NotificationDeliveryError) as exc_info:
                dispatch_order_notification(ORDER)

        assert exc_info.value.order_number == "ORD123456789"
        assert exc_info.value.result.provider == "mock"

    def test_task_delivers_through_service(self):
        service = MockNotificationService()
        with patch("food_ordering.tasks.get_notification_service", return_value=service):
            result = notify_order_placed.apply(args=[ORDER]).get()

        assert result["success"] is True
        assert result["provider"] == "mock"
        assert service.sent == [ORDER]


class TestFactory:

    def test_development_uses_mock_service(self):
        reset_notification_service()
        try:
            assert get_notification_service().provider_name == "mock"
        finally:
            reset_notification_service()
