"""
Ordering Service

Async orchestration around the pure pricing core. Each operation loads
what the core needs from the store, runs the core, and writes the result
back. The core itself never performs I/O.

Operations:
    - quote_item: validate and price a selection without touching the cart
    - add_item / update_item / remove_item / clear_cart: cart mutations
    - sync_cart: fold a guest cart into the user's cart
    - place_order: reconcile a submitted order and persist it
    - update_order_status: move an order through its lifecycle

Version: 1.0.0
"""

import logging
import random
import time
from dataclasses import dataclass
from datetime import timedelta
from typing import Callable, Iterable, Optional

from food_ordering.core.config import Settings, get_settings
from food_ordering.pricing.calculator import (
    OrderQuote,
    PriceBreakdown,
    delivery_fee_for,
    package_savings,
    PackageSavings,
    price,
    quote_order,
)
from food_ordering.pricing.cart import (
    UNSET,
    Cart,
    CartLine,
    GuestLine,
    MergeReport,
    add_to_cart,
    cart_subtotal,
    find_matching_line,
    merge_guest_lines,
    remove_line,
    update_line,
)
from food_ordering.pricing.catalog import Package, Priceable
from food_ordering.pricing.reconciler import (
    Clock,
    OrderRejection,
    SubmittedOrder,
    reconcile,
    utc_now,
)
from food_ordering.pricing.selection import SelectedCustomization, canonical_key
from food_ordering.pricing.status import OrderStatus, transition
from food_ordering.pricing.validator import CustomizationError, validate
from food_ordering.services.stores.base import BaseStore, OrderNotFoundError, PlacedOrder

logger = logging.getLogger(__name__)


class CatalogItemNotFoundError(KeyError):
    def __init__(self, item_id: str):
        self.item_id = item_id
        super().__init__(item_id)


class QuantityLimitError(ValueError):
    def __init__(self, quantity: int, limit: int):
        self.quantity = quantity
        self.limit = limit
        super().__init__(f"Quantity {quantity} exceeds the limit of {limit} per line")


class OrderRejectedError(Exception):
    """Raised when reconciliation refuses a submitted order."""

    def __init__(self, rejection: OrderRejection):
        self.rejection = rejection
        super().__init__(rejection.message)


@dataclass
class ItemQuote:
    """Validation and price preview for one selection."""
    item: Priceable
    errors: list[CustomizationError]
    breakdown: Optional[PriceBreakdown] = None

    @property
    def is_valid(self) -> bool:
        return not self.errors


def generate_order_number() -> str:
    """ORD + last six digits of the millisecond clock + three random digits."""
    timestamp = str(int(time.time() * 1000))[-6:]
    return f"ORD{timestamp}{random.randint(0, 999):03d}"


class OrderingService:
    """
    Cart and checkout operations for one store.

    Example:
        >>> service = OrderingService(get_store())
        >>> line, merged = await service.add_item("user-1", "pizza_margherita", 2, selections)
        >>> print(line.total_price)
    """

    def __init__(
        self,
        store: BaseStore,
        settings: Optional[Settings] = None,
        clock: Clock = utc_now,
        notifier: Optional[Callable[[PlacedOrder], None]] = None,
    ):
        self.store = store
        self.settings = settings or get_settings()
        self.clock = clock
        self.notifier = notifier

    # =========================================================================
    # CATALOG
    # =========================================================================

    async def get_item(self, item_id: str) -> Priceable:
        item = await self.store.get_item(item_id)
        if item is None:
            raise CatalogItemNotFoundError(item_id)
        return item

    async def get_package_savings(self, package: Package) -> PackageSavings:
        items = await self.store.get_items(i.menu_item_id for i in package.included_items)
        return package_savings(package, items.get)

    async def quote_item(
        self,
        item_id: str,
        selections: Iterable[SelectedCustomization],
        quantity: int = 1,
    ) -> ItemQuote:
        item = await self.get_item(item_id)
        selections = tuple(selections)
        errors = validate(item, selections)
        if errors:
            return ItemQuote(item=item, errors=errors)
        return ItemQuote(item=item, errors=[], breakdown=price(item, selections, quantity))

    # =========================================================================
    # CART
    # =========================================================================

    async def get_cart(self, user_id: str) -> Cart:
        cart = await self.store.get_cart(user_id)
        return cart if cart is not None else Cart(user_id=user_id)

    def quote_cart(self, cart: Cart, delivery: bool = True, distance_km: Optional[float] = None) -> OrderQuote:
        return quote_order(
            cart_subtotal(cart),
            delivery=delivery,
            tax_rate=self.settings.tax_rate,
            delivery_fee=delivery_fee_for(distance_km, self.settings.delivery_fee),
        )

    def _check_quantity_limit(self, quantity: int) -> None:
        if quantity > self.settings.max_line_quantity:
            raise QuantityLimitError(quantity, self.settings.max_line_quantity)

    async def add_item(
        self,
        user_id: str,
        item_id: str,
        quantity: int,
        selections: Iterable[SelectedCustomization] = (),
        special_instructions: Optional[str] = None,
    ) -> tuple[CartLine, bool]:
        """
        Add an item to the user's cart, creating the cart on first add.

        Returns:
            The affected line and whether it merged into an existing line
        """
        item = await self.get_item(item_id)
        cart = await self.get_cart(user_id)
        selections = tuple(selections)

        existing = find_matching_line(cart, item.id, canonical_key(selections))
        merged = existing is not None
        self._check_quantity_limit(quantity + (existing.quantity if merged else 0))

        line = add_to_cart(cart, item, quantity, selections, special_instructions)
        await self.store.save_cart(cart)

        logger.info(
            f"Cart {'updated' if merged else 'line added'} for user {user_id}: "
            f"{item.id} x{line.quantity} @ {line.unit_price}"
        )
        return line, merged

    async def update_item(
        self,
        user_id: str,
        line_id: str,
        quantity: Optional[int] = None,
        selections: Optional[Iterable[SelectedCustomization]] = None,
        special_instructions=UNSET,
    ) -> CartLine:
        cart = await self.get_cart(user_id)
        line = cart.get_line(line_id)
        item = await self.get_item(line.catalog_item_id)
        if quantity is not None:
            self._check_quantity_limit(quantity)

        line = update_line(cart, line_id, item, quantity, selections, special_instructions)
        await self.store.save_cart(cart)
        return line

    async def remove_item(self, user_id: str, line_id: str) -> CartLine:
        cart = await self.get_cart(user_id)
        line = remove_line(cart, line_id)
        await self.store.save_cart(cart)
        return line

    async def clear_cart(self, user_id: str) -> bool:
        return await self.store.delete_cart(user_id)

    async def sync_cart(self, user_id: str, guest_lines: Iterable[GuestLine]) -> tuple[Cart, MergeReport]:
        guest_lines = list(guest_lines)
        items = await self.store.get_items(g.catalog_item_id for g in guest_lines)
        cart = await self.get_cart(user_id)

        report = merge_guest_lines(cart, guest_lines, items.get)
        cart = await self.store.save_cart(cart)

        if report.skipped:
            logger.warning(
                f"Cart sync for user {user_id} skipped {len(report.skipped)} line(s): "
                f"{[s.reason for s in report.skipped]}"
            )
        return cart, report

    # =========================================================================
    # ORDERS
    # =========================================================================

    async def place_order(self, user_id: str, submitted: SubmittedOrder) -> PlacedOrder:
        """
        Reconcile a submitted order and persist it with server figures.

        Nothing is written unless every check passes.

        Raises:
            OrderRejectedError: carrying the first failed check
        """
        items = await self.store.get_items(line.catalog_item_id for line in submitted.lines)

        address = None
        if submitted.delivery_address_id:
            address = await self.store.get_address(user_id, submitted.delivery_address_id)

        def address_lookup(owner_id: str, address_id: str):
            if address is not None and address.id == address_id and address.user_id == owner_id:
                return address
            return None

        result = reconcile(
            submitted,
            user_id,
            catalog_lookup=items.get,
            address_lookup=address_lookup,
            clock=self.clock,
            epsilon=self.settings.price_tolerance,
            revalidate_customizations=self.settings.revalidate_customizations_at_checkout,
        )
        if not result.success:
            raise OrderRejectedError(result.rejection)

        reconciled = result.order
        estimated_delivery = None
        if reconciled.scheduled_for is not None:
            estimated_delivery = reconciled.scheduled_for + timedelta(
                minutes=self.settings.estimated_delivery_minutes
            )

        placed = await self.store.create_order(
            reconciled,
            order_number=generate_order_number(),
            estimated_delivery=estimated_delivery,
            clear_cart=True,
        )
        logger.info(
            f"Order {placed.order_number} created for user {user_id} "
            f"({len(placed.lines)} lines, total={placed.total})"
        )

        if self.notifier is not None:
            try:
                self.notifier(placed)
            except Exception as e:
                # Notification failures never undo a placed order
                logger.error(f"Failed to queue confirmation for order {placed.order_number}: {e}")

        return placed

    async def get_order(self, order_id: int, user_id: Optional[str] = None) -> PlacedOrder:
        order = await self.store.get_order(order_id, user_id)
        if order is None:
            raise OrderNotFoundError(order_id)
        return order

    async def list_orders(self, user_id: str, skip: int = 0, limit: int = 10) -> tuple[int, list[PlacedOrder]]:
        return await self.store.list_orders(user_id, skip, limit)

    async def update_order_status(self, order_id: int, status: OrderStatus) -> PlacedOrder:
        """
        Raises:
            OrderNotFoundError: If no order has that id
            InvalidStatusTransition: If the lifecycle forbids the move
        """
        order = await self.get_order(order_id)
        transition(order.status, status)
        updated = await self.store.update_status(order_id, status)
        logger.info(f"Order {updated.order_number}: {order.status.value} → {status.value}")
        return updated
