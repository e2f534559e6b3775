"""Tests for the SQLAlchemy store against a mocked session."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.exc import IntegrityError

from food_ordering import models
from food_ordering.pricing.cart import Cart
from food_ordering.services.stores import CartConflictError
from food_ordering.services.stores.sql import SqlStore


def make_session(execute_result=None, flush_error=None):
    session = MagicMock()
    session.__aenter__.return_value = session
    session.execute = AsyncMock(return_value=execute_result or MagicMock())
    session.flush = AsyncMock(side_effect=flush_error)
    return session


class TestSaveCart:

    def test_concurrent_first_save_conflicts(self):
        lookup = MagicMock()
        lookup.scalar_one_or_none.return_value = None
        duplicate = IntegrityError("INSERT INTO carts", {}, Exception("duplicate key value"))
        session = make_session(execute_result=lookup, flush_error=duplicate)
        store = SqlStore(session_maker=MagicMock(return_value=session))

        with pytest.raises(CartConflictError) as exc_info:
            asyncio.run(store.save_cart(Cart(user_id="user-1")))

        assert exc_info.value.user_id == "user-1"
        assert isinstance(exc_info.value.__cause__, IntegrityError)

    def test_existing_cart_on_first_save_conflicts(self):
        lookup = MagicMock()
        lookup.scalar_one_or_none.return_value = "cart-1"
        session = make_session(execute_result=lookup)
        store = SqlStore(session_maker=MagicMock(return_value=session))

        with pytest.raises(CartConflictError):
            asyncio.run(store.save_cart(Cart(user_id="user-1")))
        session.flush.assert_not_called()

    def test_stale_version_conflicts(self):
        update_result = MagicMock()
        update_result.rowcount = 0
        session = make_session(execute_result=update_result)
        store = SqlStore(session_maker=MagicMock(return_value=session))

        with pytest.raises(CartConflictError) as exc_info:
            asyncio.run(store.save_cart(Cart(user_id="user-1", id="cart-1", version=3)))
        assert exc_info.value.expected_version == 3


class TestOrderModel:

    def test_pricing_columns(self):
        money = {"subtotal", "tax", "delivery_fee", "total"}
        columns = set(models.Order.__table__.columns.keys())
        assert money <= columns
        assert {c for c in columns if c not in money} == {
            "id", "order_number", "user_id", "delivery_type", "delivery_address_id",
            "scheduled_for", "estimated_delivery", "special_instructions",
            "status", "payment_status", "created_at", "updated_at",
        }
