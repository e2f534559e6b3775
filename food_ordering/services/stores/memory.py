"""
In-Memory Store Implementation

Keeps catalog, carts, addresses and orders in process memory.
Used in development mode (ENV_MODE=development) and by the test suite to:
    - Run the full cart and checkout flow without a database
    - Seed a demo catalog for local experiments

Behavior:
    - Carts and orders are deep-copied on the way in and out, so callers
      never share mutable state with the store
    - save_cart applies the same optimistic version check as SqlStore

Version: 1.0.0
"""

import asyncio
import copy
import logging
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import Iterable, Optional

from food_ordering.pricing.cart import Cart
from food_ordering.pricing.catalog import (
    Address,
    CustomizationGroup,
    CustomizationOption,
    ItemStatus,
    MenuItem,
    Package,
    PackageItem,
    PackageType,
    Priceable,
    SelectionKind,
)
from food_ordering.pricing.reconciler import ReconciledOrder
from food_ordering.pricing.status import OrderStatus
from food_ordering.services.stores.base import (
    BaseStore,
    CartConflictError,
    OrderNotFoundError,
    PlacedOrder,
)

logger = logging.getLogger(__name__)


def demo_catalog() -> list[Priceable]:
    """Sample menu used in development mode."""
    size = CustomizationGroup(
        id="size",
        name="Size",
        kind=SelectionKind.SINGLE,
        required=True,
        options=(
            CustomizationOption("small", "Small", Decimal("-2.00")),
            CustomizationOption("medium", "Medium", Decimal("0.00")),
            CustomizationOption("large", "Large", Decimal("3.00")),
        ),
    )
    toppings = CustomizationGroup(
        id="toppings",
        name="Extra Toppings",
        kind=SelectionKind.MULTI,
        max_selections=3,
        options=(
            CustomizationOption("mushrooms", "Mushrooms", Decimal("1.50")),
            CustomizationOption("olives", "Olives", Decimal("1.00")),
            CustomizationOption("extra_cheese", "Extra Cheese", Decimal("2.00")),
            CustomizationOption("truffle", "Truffle Oil", Decimal("4.50"), is_available=False),
        ),
    )
    spice = CustomizationGroup(
        id="spice_level",
        name="Spice Level",
        kind=SelectionKind.SINGLE,
        required=True,
        options=(
            CustomizationOption("mild", "Mild", Decimal("0.00")),
            CustomizationOption("medium", "Medium", Decimal("0.00")),
            CustomizationOption("hot", "Hot", Decimal("1.50")),
        ),
    )
    kitchen_note = CustomizationGroup(
        id="kitchen_note",
        name="Note for the kitchen",
        kind=SelectionKind.TEXT,
    )

    margherita = MenuItem("pizza_margherita", "Pizza Margherita", Decimal("14.99"),
                          groups=(size, toppings, kitchen_note), category="pizza")
    pepperoni = MenuItem("pizza_pepperoni", "Pepperoni Pizza", Decimal("16.99"),
                         groups=(size, toppings), category="pizza")
    butter_chicken = MenuItem("butter_chicken", "Butter Chicken", Decimal("12.00"),
                              groups=(spice, kitchen_note), category="mains")
    caesar = MenuItem("caesar_salad", "Caesar Salad", Decimal("8.99"), category="salad")
    garlic_bread = MenuItem("garlic_bread", "Garlic Bread", Decimal("5.99"), category="sides")
    tiramisu = MenuItem("tiramisu", "Tiramisu", Decimal("7.99"),
                        status=ItemStatus.SOLD_OUT, category="dessert")

    lunch_box = Package(
        "weekly_lunch_box",
        "Weekly Lunch Box",
        Decimal("55.00"),
        package_type=PackageType.WEEKLY,
        included_items=(
            PackageItem("butter_chicken", 3, ("mild",)),
            PackageItem("caesar_salad", 2),
        ),
        groups=(spice,),
    )

    return [margherita, pepperoni, butter_chicken, caesar, garlic_bread, tiramisu, lunch_box]


class MemoryStore(BaseStore):
    """
    In-memory implementation of every store interface.

    Example:
        >>> store = MemoryStore(catalog=demo_catalog())
        >>> item = await store.get_item("pizza_margherita")
        >>> print(item.base_price)
        14.99
    """

    def __init__(
        self,
        catalog: Optional[Iterable[Priceable]] = None,
        addresses: Optional[Iterable[Address]] = None,
    ):
        self._items: dict[str, Priceable] = {}
        self._addresses: dict[str, Address] = {}
        self._carts: dict[str, Cart] = {}
        self._orders: dict[int, PlacedOrder] = {}
        self._next_order_id = 1
        self._lock = asyncio.Lock()

        for item in catalog or ():
            self.add_item(item)
        for address in addresses or ():
            self.add_address(address)

        logger.info(
            f"MemoryStore initialized "
            f"(catalog={len(self._items)} items, addresses={len(self._addresses)})"
        )

    @property
    def provider_name(self) -> str:
        return "memory"

    async def health_check(self) -> bool:
        return True

    # =========================================================================
    # SEEDING
    # =========================================================================

    def add_item(self, item: Priceable) -> None:
        self._items[item.id] = item

    def add_address(self, address: Address) -> None:
        self._addresses[address.id] = address

    # =========================================================================
    # CATALOG
    # =========================================================================

    async def get_item(self, item_id: str) -> Optional[Priceable]:
        return self._items.get(item_id)

    # =========================================================================
    # CARTS
    # =========================================================================

    async def get_cart(self, user_id: str) -> Optional[Cart]:
        cart = self._carts.get(user_id)
        return copy.deepcopy(cart) if cart is not None else None

    async def save_cart(self, cart: Cart) -> Cart:
        async with self._lock:
            stored = self._carts.get(cart.user_id)
            stored_version = stored.version if stored is not None else 0
            if stored_version != cart.version:
                raise CartConflictError(cart.user_id, cart.version)

            saved = copy.deepcopy(cart)
            saved.id = cart.id or (stored.id if stored is not None else uuid.uuid4().hex)
            saved.version = cart.version + 1
            self._carts[cart.user_id] = saved

        logger.debug(f"Cart saved for user {cart.user_id} (version={saved.version})")
        return copy.deepcopy(saved)

    async def delete_cart(self, user_id: str) -> bool:
        async with self._lock:
            return self._carts.pop(user_id, None) is not None

    # =========================================================================
    # ADDRESSES
    # =========================================================================

    async def get_address(self, user_id: str, address_id: str) -> Optional[Address]:
        address = self._addresses.get(address_id)
        if address is None or address.user_id != user_id:
            return None
        return address

    # =========================================================================
    # ORDERS
    # =========================================================================

    async def create_order(
        self,
        order: ReconciledOrder,
        order_number: str,
        estimated_delivery: Optional[datetime] = None,
        clear_cart: bool = True,
    ) -> PlacedOrder:
        async with self._lock:
            placed = PlacedOrder(
                id=self._next_order_id,
                order_number=order_number,
                user_id=order.user_id,
                lines=order.lines,
                subtotal=order.subtotal,
                tax=order.tax,
                delivery_fee=order.delivery_fee,
                total=order.total,
                delivery_type=order.delivery_type,
                delivery_address_id=order.delivery_address_id,
                scheduled_for=order.scheduled_for,
                estimated_delivery=estimated_delivery,
                special_instructions=order.special_instructions,
                created_at=datetime.now(timezone.utc),
            )
            self._orders[placed.id] = placed
            self._next_order_id += 1
            if clear_cart:
                self._carts.pop(order.user_id, None)

        return copy.deepcopy(placed)

    async def get_order(self, order_id: int, user_id: Optional[str] = None) -> Optional[PlacedOrder]:
        order = self._orders.get(order_id)
        if order is None or (user_id is not None and order.user_id != user_id):
            return None
        return copy.deepcopy(order)

    async def list_orders(self, user_id: str, skip: int = 0, limit: int = 10) -> tuple[int, list[PlacedOrder]]:
        mine = [o for o in self._orders.values() if o.user_id == user_id]
        mine.sort(key=lambda o: o.id, reverse=True)
        return len(mine), [copy.deepcopy(o) for o in mine[skip:skip + limit]]

    async def update_status(self, order_id: int, status: OrderStatus) -> PlacedOrder:
        async with self._lock:
            order = self._orders.get(order_id)
            if order is None:
                raise OrderNotFoundError(order_id)
            order.status = status
            return copy.deepcopy(order)
