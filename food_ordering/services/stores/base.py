"""
Store Abstract Base Classes

Defines the interface contracts for the persistence collaborators of the
pricing core: catalog lookup, cart store, order store and address store.
Both MemoryStore and SqlStore implement all four, so a single store
instance can write an order and clear the cart in one transaction.

Design Pattern: Strategy Pattern
    - Runtime switching between in-memory and database persistence
    - Tests run against the in-memory implementation

Version: 1.0.0
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Iterable, Optional

from food_ordering.pricing.cart import Cart
from food_ordering.pricing.catalog import Address, Priceable
from food_ordering.pricing.reconciler import ReconciledLine, ReconciledOrder
from food_ordering.pricing.status import DeliveryType, OrderStatus, PaymentStatus


class CartConflictError(Exception):
    """Raised when a cart was modified by another request since it was read."""

    def __init__(self, user_id: str, expected_version: int):
        self.user_id = user_id
        self.expected_version = expected_version
        super().__init__(
            f"Cart for user {user_id} changed concurrently (expected version {expected_version})"
        )


class OrderNotFoundError(KeyError):
    def __init__(self, order_id: int):
        self.order_id = order_id
        super().__init__(order_id)


@dataclass
class PlacedOrder:
    """
    A persisted order.

    Attributes:
        id: Store-assigned identifier
        order_number: Customer-facing order number (ORD...)
        lines: Server-priced order lines
        estimated_delivery: Scheduled time plus the preparation window
    """
    id: int
    order_number: str
    user_id: str
    lines: tuple[ReconciledLine, ...]
    subtotal: Decimal
    tax: Decimal
    delivery_fee: Decimal
    total: Decimal
    delivery_type: DeliveryType
    status: OrderStatus = OrderStatus.PENDING
    payment_status: PaymentStatus = PaymentStatus.PENDING
    delivery_address_id: Optional[str] = None
    scheduled_for: Optional[datetime] = None
    estimated_delivery: Optional[datetime] = None
    special_instructions: Optional[str] = None
    created_at: Optional[datetime] = None


class BaseCatalogStore(ABC):
    """Read access to menu items and packages."""

    @abstractmethod
    async def get_item(self, item_id: str) -> Optional[Priceable]:
        """
        Resolve a catalog id to a menu item or package.

        Returns:
            The item, or None if no item has that id
        """
        pass

    async def get_items(self, item_ids: Iterable[str]) -> dict[str, Priceable]:
        """Resolve several ids at once; unknown ids are left out."""
        found = {}
        for item_id in dict.fromkeys(item_ids):
            item = await self.get_item(item_id)
            if item is not None:
                found[item_id] = item
        return found


class BaseCartStore(ABC):

    @abstractmethod
    async def get_cart(self, user_id: str) -> Optional[Cart]:
        pass

    @abstractmethod
    async def save_cart(self, cart: Cart) -> Cart:
        """
        Persist a cart, creating it on first save.

        The write succeeds only if the stored version still equals
        ``cart.version``; the returned cart carries the new version.

        Raises:
            CartConflictError: If the cart changed since it was read
        """
        pass

    @abstractmethod
    async def delete_cart(self, user_id: str) -> bool:
        pass


class BaseAddressStore(ABC):

    @abstractmethod
    async def get_address(self, user_id: str, address_id: str) -> Optional[Address]:
        """Return the address only if it belongs to ``user_id``."""
        pass


class BaseOrderStore(ABC):

    @abstractmethod
    async def create_order(
        self,
        order: ReconciledOrder,
        order_number: str,
        estimated_delivery: Optional[datetime] = None,
        clear_cart: bool = True,
    ) -> PlacedOrder:
        """
        Persist a reconciled order.

        Args:
            order: Order whose figures were recomputed server-side
            order_number: Unique customer-facing number
            estimated_delivery: Delivery estimate, if scheduled
            clear_cart: Empty the user's cart in the same transaction
        """
        pass

    @abstractmethod
    async def get_order(self, order_id: int, user_id: Optional[str] = None) -> Optional[PlacedOrder]:
        """Fetch an order, restricted to ``user_id`` when given."""
        pass

    @abstractmethod
    async def list_orders(self, user_id: str, skip: int = 0, limit: int = 10) -> tuple[int, list[PlacedOrder]]:
        """Return the user's total order count and one page, newest first."""
        pass

    @abstractmethod
    async def update_status(self, order_id: int, status: OrderStatus) -> PlacedOrder:
        """
        Raises:
            OrderNotFoundError: If no order has that id
        """
        pass


class BaseStore(BaseCatalogStore, BaseCartStore, BaseAddressStore, BaseOrderStore):
    """All persistence collaborators behind one object."""

    @property
    @abstractmethod
    def provider_name(self) -> str:
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        pass
