"""Pytest configuration and fixtures."""

import os
from datetime import datetime, timezone
from decimal import Decimal

import pytest

os.environ["ENV_MODE"] = "development"
os.environ["DEBUG"] = "false"

from fastapi.testclient import TestClient

from food_ordering.core.config import get_settings
from food_ordering.main import app, get_ordering_service
from food_ordering.pricing.catalog import (
    Address,
    CustomizationGroup,
    CustomizationOption,
    MenuItem,
    SelectionKind,
)
from food_ordering.services.ordering import OrderingService
from food_ordering.services.ratelimit import MemoryRateLimiter, get_rate_limiter
from food_ordering.services.stores import MemoryStore, demo_catalog


FIXED_NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def spice_group():
    """Required single-choice group; Hot costs extra."""
    return CustomizationGroup(
        id="spice",
        name="Spice Level",
        kind=SelectionKind.SINGLE,
        required=True,
        options=(
            CustomizationOption("mild", "Mild", Decimal("0.00")),
            CustomizationOption("medium", "Medium", Decimal("0.00")),
            CustomizationOption("hot", "Hot", Decimal("1.50")),
        ),
    )


@pytest.fixture
def extras_group():
    """Optional multi-choice group allowing two options."""
    return CustomizationGroup(
        id="extras",
        name="Extras",
        kind=SelectionKind.MULTI,
        max_selections=2,
        options=(
            CustomizationOption("rice", "Extra Rice", Decimal("1.25")),
            CustomizationOption("naan", "Garlic Naan", Decimal("2.00")),
            CustomizationOption("raita", "Raita", Decimal("0.75")),
            CustomizationOption("paneer", "Paneer", Decimal("3.00"), is_available=False),
        ),
    )


@pytest.fixture
def curry(spice_group, extras_group):
    """A 12.00 curry with a required spice level and optional extras."""
    return MenuItem("curry", "Chicken Curry", Decimal("12.00"), groups=(spice_group, extras_group))


@pytest.fixture
def address():
    return Address(id="addr-1", user_id="user-1", street="100 King St W", city="Toronto", postal_code="M5X 1A9")


@pytest.fixture
def store(address):
    """In-memory store seeded with the demo catalog and one address for user-1."""
    return MemoryStore(catalog=demo_catalog(), addresses=[address])


@pytest.fixture
def settings():
    return get_settings()


@pytest.fixture
def service(store, settings):
    return OrderingService(store, settings=settings, clock=lambda: FIXED_NOW)


@pytest.fixture
def limiter():
    return MemoryRateLimiter()


@pytest.fixture
def client(service, limiter):
    """API client wired to the in-memory store and limiter."""
    app.dependency_overrides[get_ordering_service] = lambda: service
    app.dependency_overrides[get_rate_limiter] = lambda: limiter
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def user_headers():
    return {"X-User-Id": "user-1"}


@pytest.fixture
def admin_headers():
    return {"X-User-Id": "admin-1", "X-User-Role": "admin"}
