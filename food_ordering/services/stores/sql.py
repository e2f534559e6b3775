"""
SQLAlchemy Store Implementation

Persists catalog, carts, addresses and orders in PostgreSQL through the
async engine. Used in staging and production (ENV_MODE=staging|production).

ORM rows are converted to the frozen pricing dataclasses on the way out,
so nothing above this module ever holds a live ORM object.

Concurrency:
    - save_cart bumps carts.version with a conditional UPDATE; a stale
      version raises CartConflictError instead of overwriting
    - create_order inserts the order and deletes the cart in one
      transaction

Version: 1.0.0
"""

import json
import logging
import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import selectinload

from food_ordering import models
from food_ordering.database import get_session_maker
from food_ordering.pricing.cart import Cart, CartLine
from food_ordering.pricing.catalog import (
    Address,
    CustomizationGroup,
    CustomizationOption,
    MenuItem,
    Package,
    PackageItem,
    Priceable,
)
from food_ordering.pricing.reconciler import ReconciledLine, ReconciledOrder
from food_ordering.pricing.selection import (
    canonical_key,
    key_to_string,
    selections_from_json,
    selections_to_json,
)
from food_ordering.pricing.status import OrderStatus
from food_ordering.services.stores.base import (
    BaseStore,
    CartConflictError,
    OrderNotFoundError,
    PlacedOrder,
)

logger = logging.getLogger(__name__)


def _to_group(row: models.Customization) -> CustomizationGroup:
    return CustomizationGroup(
        id=row.id,
        name=row.name,
        kind=row.kind,
        required=row.required,
        max_selections=row.max_selections,
        options=tuple(
            CustomizationOption(
                id=o.id,
                name=o.name,
                price_modifier=Decimal(o.price_modifier),
                is_available=o.is_available,
            )
            for o in row.options
        ),
    )


def _to_menu_item(row: models.MenuItem) -> MenuItem:
    return MenuItem(
        item_id=row.id,
        name=row.name,
        price=Decimal(row.base_price),
        groups=tuple(_to_group(c) for c in row.customizations),
        status=row.status,
        category=row.category,
    )


def _to_package(row: models.Package) -> Package:
    return Package(
        package_id=row.id,
        name=row.name,
        price=Decimal(row.price),
        package_type=row.package_type,
        is_active=row.is_active,
        included_items=tuple(
            PackageItem(
                menu_item_id=i.menu_item_id,
                quantity=i.quantity,
                included_customizations=tuple(json.loads(i.included_customizations or "[]")),
            )
            for i in row.items
        ),
        groups=tuple(_to_group(c) for c in row.customizations),
    )


def _to_cart(row: models.Cart) -> Cart:
    return Cart(
        id=row.id,
        user_id=row.user_id,
        version=row.version,
        lines=[
            CartLine(
                id=i.id,
                catalog_item_id=i.catalog_item_id,
                quantity=i.quantity,
                selections=selections_from_json(i.selected_customizations),
                unit_price=Decimal(i.unit_price),
                total_price=Decimal(i.total_price),
                special_instructions=i.special_instructions,
            )
            for i in row.items
        ],
    )


def _to_placed_order(row: models.Order) -> PlacedOrder:
    return PlacedOrder(
        id=row.id,
        order_number=row.order_number,
        user_id=row.user_id,
        lines=tuple(
            ReconciledLine(
                line_id=str(i.id),
                catalog_item_id=i.catalog_item_id,
                quantity=i.quantity,
                selections=selections_from_json(i.customizations),
                unit_price=Decimal(i.unit_price),
                total_price=Decimal(i.total_price),
                special_instructions=i.special_instructions,
            )
            for i in row.items
        ),
        subtotal=Decimal(row.subtotal),
        tax=Decimal(row.tax),
        delivery_fee=Decimal(row.delivery_fee),
        total=Decimal(row.total),
        delivery_type=row.delivery_type,
        status=row.status,
        payment_status=row.payment_status,
        delivery_address_id=row.delivery_address_id,
        scheduled_for=row.scheduled_for,
        estimated_delivery=row.estimated_delivery,
        special_instructions=row.special_instructions,
        created_at=row.created_at,
    )


_GROUP_LOAD = selectinload(models.MenuItem.customizations).selectinload(models.Customization.options)
_PACKAGE_LOAD = (
    selectinload(models.Package.customizations).selectinload(models.Customization.options),
    selectinload(models.Package.items),
)


class SqlStore(BaseStore):
    """
    PostgreSQL implementation of every store interface.

    Each call opens its own session from the shared session maker.
    """

    def __init__(self, session_maker: Optional[async_sessionmaker[AsyncSession]] = None):
        self._session_maker = session_maker or get_session_maker()
        logger.info("SqlStore initialized")

    @property
    def provider_name(self) -> str:
        return "postgresql"

    async def health_check(self) -> bool:
        try:
            async with self._session_maker() as session:
                await session.execute(select(func.now()))
            return True
        except Exception as e:
            logger.error(f"Database health check failed: {e}")
            return False

    # =========================================================================
    # CATALOG
    # =========================================================================

    async def get_item(self, item_id: str) -> Optional[Priceable]:
        async with self._session_maker() as session:
            result = await session.execute(
                select(models.MenuItem).where(models.MenuItem.id == item_id).options(_GROUP_LOAD)
            )
            row = result.scalar_one_or_none()
            if row is not None:
                return _to_menu_item(row)

            result = await session.execute(
                select(models.Package).where(models.Package.id == item_id).options(*_PACKAGE_LOAD)
            )
            package = result.scalar_one_or_none()
            return _to_package(package) if package is not None else None

    async def get_items(self, item_ids) -> dict[str, Priceable]:
        ids = list(dict.fromkeys(item_ids))
        if not ids:
            return {}

        async with self._session_maker() as session:
            found: dict[str, Priceable] = {}
            result = await session.execute(
                select(models.MenuItem).where(models.MenuItem.id.in_(ids)).options(_GROUP_LOAD)
            )
            for row in result.scalars():
                found[row.id] = _to_menu_item(row)

            remaining = [i for i in ids if i not in found]
            if remaining:
                result = await session.execute(
                    select(models.Package).where(models.Package.id.in_(remaining)).options(*_PACKAGE_LOAD)
                )
                for row in result.scalars():
                    found[row.id] = _to_package(row)
            return found

    # =========================================================================
    # CARTS
    # =========================================================================

    async def get_cart(self, user_id: str) -> Optional[Cart]:
        async with self._session_maker() as session:
            result = await session.execute(
                select(models.Cart)
                .where(models.Cart.user_id == user_id)
                .options(selectinload(models.Cart.items))
            )
            row = result.scalar_one_or_none()
            return _to_cart(row) if row is not None else None

    async def save_cart(self, cart: Cart) -> Cart:
        async with self._session_maker() as session:
            async with session.begin():
                if cart.id is None:
                    existing = await session.execute(
                        select(models.Cart.id).where(models.Cart.user_id == cart.user_id)
                    )
                    if existing.scalar_one_or_none() is not None:
                        raise CartConflictError(cart.user_id, cart.version)
                    cart_id = uuid.uuid4().hex
                    session.add(models.Cart(id=cart_id, user_id=cart.user_id, version=1))
                    try:
                        await session.flush()
                    except IntegrityError as e:
                        # Another request created this user's cart first
                        raise CartConflictError(cart.user_id, cart.version) from e
                else:
                    cart_id = cart.id
                    result = await session.execute(
                        update(models.Cart)
                        .where(models.Cart.id == cart_id, models.Cart.version == cart.version)
                        .values(version=models.Cart.version + 1)
                    )
                    if result.rowcount == 0:
                        raise CartConflictError(cart.user_id, cart.version)
                    await session.execute(delete(models.CartItem).where(models.CartItem.cart_id == cart_id))

                for position, line in enumerate(cart.lines):
                    session.add(models.CartItem(
                        id=line.id,
                        cart_id=cart_id,
                        catalog_item_id=line.catalog_item_id,
                        quantity=line.quantity,
                        selected_customizations=selections_to_json(line.selections),
                        customization_key=key_to_string(canonical_key(line.selections)),
                        special_instructions=line.special_instructions,
                        unit_price=line.unit_price,
                        total_price=line.total_price,
                        position=position,
                    ))

        saved = await self.get_cart(cart.user_id)
        logger.debug(f"Cart saved for user {cart.user_id} (version={saved.version})")
        return saved

    async def delete_cart(self, user_id: str) -> bool:
        async with self._session_maker() as session:
            async with session.begin():
                result = await session.execute(delete(models.Cart).where(models.Cart.user_id == user_id))
                return result.rowcount > 0

    # =========================================================================
    # ADDRESSES
    # =========================================================================

    async def get_address(self, user_id: str, address_id: str) -> Optional[Address]:
        async with self._session_maker() as session:
            result = await session.execute(
                select(models.Address).where(
                    models.Address.id == address_id,
                    models.Address.user_id == user_id,
                )
            )
            row = result.scalar_one_or_none()
            if row is None:
                return None
            return Address(
                id=row.id,
                user_id=row.user_id,
                street=row.street,
                city=row.city,
                postal_code=row.postal_code,
                is_default=row.is_default,
            )

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
        async with self._session_maker() as session:
            async with session.begin():
                row = models.Order(
                    order_number=order_number,
                    user_id=order.user_id,
                    delivery_type=order.delivery_type,
                    delivery_address_id=order.delivery_address_id,
                    scheduled_for=order.scheduled_for,
                    estimated_delivery=estimated_delivery,
                    special_instructions=order.special_instructions,
                    subtotal=order.subtotal,
                    tax=order.tax,
                    delivery_fee=order.delivery_fee,
                    total=order.total,
                    items=[
                        models.OrderItem(
                            catalog_item_id=line.catalog_item_id,
                            quantity=line.quantity,
                            unit_price=line.unit_price,
                            total_price=line.total_price,
                            customizations=selections_to_json(line.selections),
                            special_instructions=line.special_instructions,
                        )
                        for line in order.lines
                    ],
                )
                session.add(row)
                if clear_cart:
                    await session.execute(delete(models.Cart).where(models.Cart.user_id == order.user_id))
                await session.flush()
                order_id = row.id

        placed = await self.get_order(order_id)
        return placed

    async def get_order(self, order_id: int, user_id: Optional[str] = None) -> Optional[PlacedOrder]:
        async with self._session_maker() as session:
            query = (
                select(models.Order)
                .where(models.Order.id == order_id)
                .options(selectinload(models.Order.items))
            )
            if user_id is not None:
                query = query.where(models.Order.user_id == user_id)
            result = await session.execute(query)
            row = result.scalar_one_or_none()
            return _to_placed_order(row) if row is not None else None

    async def list_orders(self, user_id: str, skip: int = 0, limit: int = 10) -> tuple[int, list[PlacedOrder]]:
        async with self._session_maker() as session:
            total_result = await session.execute(
                select(func.count(models.Order.id)).where(models.Order.user_id == user_id)
            )
            total = total_result.scalar() or 0

            result = await session.execute(
                select(models.Order)
                .where(models.Order.user_id == user_id)
                .options(selectinload(models.Order.items))
                .order_by(models.Order.created_at.desc())
                .offset(skip)
                .limit(limit)
            )
            return total, [_to_placed_order(row) for row in result.scalars()]

    async def update_status(self, order_id: int, status: OrderStatus) -> PlacedOrder:
        async with self._session_maker() as session:
            async with session.begin():
                result = await session.execute(
                    update(models.Order).where(models.Order.id == order_id).values(status=status)
                )
                if result.rowcount == 0:
                    raise OrderNotFoundError(order_id)

        return await self.get_order(order_id)
