"""
SQLAlchemy Database Models

Catalog, cart, address and order tables:
- Money columns are NUMERIC(10, 2)
- Selected customizations are stored as JSON text next to their
  canonical key, so equivalent cart lines can be matched by the key
- Carts carry a version column for optimistic concurrency

Version: 1.0.0
"""

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from food_ordering.database import Base
from food_ordering.pricing.catalog import ItemStatus, PackageType, SelectionKind
from food_ordering.pricing.status import DeliveryType, OrderStatus, PaymentStatus

Money = Numeric(10, 2, asdecimal=True)


class MenuItem(Base):
    """A dish on the menu."""
    __tablename__ = "menu_items"

    id = Column(String(36), primary_key=True)
    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    category = Column(String(50), nullable=True, index=True)
    base_price = Column(Money, nullable=False)
    status = Column(Enum(ItemStatus), default=ItemStatus.ACTIVE, nullable=False, index=True)

    customizations = relationship(
        "Customization",
        back_populates="menu_item",
        cascade="all, delete-orphan",
        order_by="Customization.position",
    )

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    def __repr__(self):
        return f"<MenuItem {self.id} - {self.name} - {self.status.value}>"


class Customization(Base):
    """
    A customization group attached to a menu item or a package.

    Exactly one of menu_item_id and package_id is set.
    """
    __tablename__ = "customizations"
    __table_args__ = (UniqueConstraint("menu_item_id", "name"),)

    id = Column(String(36), primary_key=True)
    name = Column(String(100), nullable=False)
    kind = Column(Enum(SelectionKind), default=SelectionKind.SINGLE, nullable=False)
    required = Column(Boolean, default=False, nullable=False)
    max_selections = Column(Integer, nullable=True)
    position = Column(Integer, default=0, nullable=False)

    menu_item_id = Column(String(36), ForeignKey("menu_items.id", ondelete="CASCADE"), nullable=True, index=True)
    package_id = Column(String(36), ForeignKey("packages.id", ondelete="CASCADE"), nullable=True, index=True)

    menu_item = relationship("MenuItem", back_populates="customizations")
    package = relationship("Package", back_populates="customizations")
    options = relationship(
        "CustomizationOption",
        back_populates="customization",
        cascade="all, delete-orphan",
        order_by="CustomizationOption.position",
    )


class CustomizationOption(Base):
    __tablename__ = "customization_options"

    id = Column(String(36), primary_key=True)
    name = Column(String(100), nullable=False)
    price_modifier = Column(Money, default=0, nullable=False)
    is_available = Column(Boolean, default=True, nullable=False)
    position = Column(Integer, default=0, nullable=False)

    customization_id = Column(
        String(36), ForeignKey("customizations.id", ondelete="CASCADE"), nullable=False, index=True
    )
    customization = relationship("Customization", back_populates="options")


class Package(Base):
    """A bundle of menu items sold at a single price."""
    __tablename__ = "packages"

    id = Column(String(36), primary_key=True)
    name = Column(String(100), nullable=False)
    package_type = Column(Enum(PackageType), default=PackageType.DAILY, nullable=False)
    price = Column(Money, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)

    items = relationship("PackageItem", back_populates="package", cascade="all, delete-orphan")
    customizations = relationship(
        "Customization",
        back_populates="package",
        cascade="all, delete-orphan",
        order_by="Customization.position",
    )

    created_at = Column(DateTime(timezone=True), server_default=func.now())


class PackageItem(Base):
    __tablename__ = "package_items"

    id = Column(Integer, primary_key=True, autoincrement=True)
    quantity = Column(Integer, default=1, nullable=False)
    included_customizations = Column(Text, nullable=False, default="[]")  # JSON list of option ids
    package_id = Column(String(36), ForeignKey("packages.id", ondelete="CASCADE"), nullable=False, index=True)
    menu_item_id = Column(String(36), ForeignKey("menu_items.id"), nullable=False)

    package = relationship("Package", back_populates="items")


class Address(Base):
    __tablename__ = "addresses"

    id = Column(String(36), primary_key=True)
    user_id = Column(String(36), nullable=False, index=True)
    street = Column(String(255), nullable=False)
    city = Column(String(50), nullable=False)
    postal_code = Column(String(10), nullable=True)
    is_default = Column(Boolean, default=False, nullable=False)


class Cart(Base):
    __tablename__ = "carts"

    id = Column(String(36), primary_key=True)
    user_id = Column(String(36), nullable=False, unique=True, index=True)
    version = Column(Integer, default=0, nullable=False)

    items = relationship(
        "CartItem",
        back_populates="cart",
        cascade="all, delete-orphan",
        order_by="CartItem.position",
    )

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())


class CartItem(Base):
    __tablename__ = "cart_items"

    id = Column(String(36), primary_key=True)
    cart_id = Column(String(36), ForeignKey("carts.id", ondelete="CASCADE"), nullable=False, index=True)
    catalog_item_id = Column(String(36), nullable=False)
    quantity = Column(Integer, nullable=False)
    selected_customizations = Column(Text, nullable=False, default="[]")  # JSON
    customization_key = Column(Text, nullable=False, default="[]")
    special_instructions = Column(Text, nullable=True)
    unit_price = Column(Money, nullable=False)
    total_price = Column(Money, nullable=False)
    position = Column(Integer, default=0, nullable=False)

    cart = relationship("Cart", back_populates="items")


class Order(Base):
    """
    Placed orders. Every monetary figure here has been recomputed
    server-side before the row was written.
    """
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    order_number = Column(String(20), nullable=False, unique=True, index=True)
    user_id = Column(String(36), nullable=False, index=True)

    # =========================================================================
    # DELIVERY
    # =========================================================================
    delivery_type = Column(Enum(DeliveryType), default=DeliveryType.DELIVERY, nullable=False, index=True)
    delivery_address_id = Column(String(36), ForeignKey("addresses.id"), nullable=True)
    scheduled_for = Column(DateTime(timezone=True), nullable=True)
    estimated_delivery = Column(DateTime(timezone=True), nullable=True)
    special_instructions = Column(Text, nullable=True)

    # =========================================================================
    # PRICING
    # =========================================================================
    subtotal = Column(Money, nullable=False)
    tax = Column(Money, nullable=False)
    delivery_fee = Column(Money, nullable=False, default=0)
    total = Column(Money, nullable=False)

    # =========================================================================
    # STATUS
    # =========================================================================
    status = Column(Enum(OrderStatus), default=OrderStatus.PENDING, nullable=False, index=True)
    payment_status = Column(Enum(PaymentStatus), default=PaymentStatus.PENDING, nullable=False)

    items = relationship("OrderItem", back_populates="order", cascade="all, delete-orphan")

    # =========================================================================
    # TIMESTAMPS
    # =========================================================================
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    def __repr__(self):
        return f"<Order #{self.order_number} - {self.delivery_type.value} - {self.status.value}>"


class OrderItem(Base):
    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True, autoincrement=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    catalog_item_id = Column(String(36), nullable=False)
    quantity = Column(Integer, nullable=False)
    unit_price = Column(Money, nullable=False)
    total_price = Column(Money, nullable=False)
    customizations = Column(Text, nullable=False, default="[]")  # JSON
    special_instructions = Column(Text, nullable=True)

    order = relationship("Order", back_populates="items")
