"""
Catalog Model

Read-only inputs to pricing: menu items, packages, their customization
groups and options. Menu items and packages both implement the
``Priceable`` capability so the calculator and validator never branch
on which one they were given.

Instances are frozen; a catalog object is never mutated while a price
is being computed.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Optional


class ItemStatus(str, Enum):
    """Availability of a catalog item."""
    ACTIVE = "active"
    INACTIVE = "inactive"
    SOLD_OUT = "sold_out"
    LOW_STOCK = "low_stock"


class SelectionKind(str, Enum):
    """How options of a customization group are chosen."""
    SINGLE = "single"
    MULTI = "multi"
    TEXT = "text"


class PackageType(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


@dataclass(frozen=True)
class CustomizationOption:
    """One selectable choice within a group, carrying a price modifier."""
    id: str
    name: str
    price_modifier: Decimal = Decimal("0")
    is_available: bool = True


@dataclass(frozen=True)
class CustomizationGroup:
    """
    A named set of related options attached to a catalog item.

    Attributes:
        id: Group identifier, unique within the item
        name: Display name (e.g. "Spice Level")
        kind: single, multi or text selection
        required: Whether a selection must be supplied
        max_selections: Upper bound on selected options (multi groups only)
        options: Ordered options of the group
    """
    id: str
    name: str
    kind: SelectionKind = SelectionKind.SINGLE
    required: bool = False
    max_selections: Optional[int] = None
    options: tuple[CustomizationOption, ...] = ()

    def get_option(self, option_id: str) -> Optional[CustomizationOption]:
        for option in self.options:
            if option.id == option_id:
                return option
        return None


class Priceable(ABC):
    """
    Capability shared by everything that can be priced and ordered.

    The price calculator and customization validator only ever read
    these four members.
    """

    @property
    @abstractmethod
    def id(self) -> str:
        pass

    @property
    @abstractmethod
    def base_price(self) -> Decimal:
        pass

    @property
    @abstractmethod
    def customization_groups(self) -> tuple[CustomizationGroup, ...]:
        pass

    @property
    @abstractmethod
    def availability(self) -> ItemStatus:
        pass

    @property
    def is_orderable(self) -> bool:
        return self.availability == ItemStatus.ACTIVE

    def get_group(self, group_id: str) -> Optional[CustomizationGroup]:
        for group in self.customization_groups:
            if group.id == group_id:
                return group
        return None


@dataclass(frozen=True)
class MenuItem(Priceable):
    """A single dish on the menu."""
    item_id: str
    name: str
    price: Decimal
    groups: tuple[CustomizationGroup, ...] = ()
    status: ItemStatus = ItemStatus.ACTIVE
    category: Optional[str] = None

    @property
    def id(self) -> str:
        return self.item_id

    @property
    def base_price(self) -> Decimal:
        return self.price

    @property
    def customization_groups(self) -> tuple[CustomizationGroup, ...]:
        return self.groups

    @property
    def availability(self) -> ItemStatus:
        return self.status


@dataclass(frozen=True)
class PackageItem:
    """A menu item bundled into a package."""
    menu_item_id: str
    quantity: int = 1
    included_customizations: tuple[str, ...] = ()


@dataclass(frozen=True)
class Package(Priceable):
    """
    A bundle of menu items sold at a single price.

    Customization groups templated onto the package are priced exactly
    like a menu item's own groups.
    """
    package_id: str
    name: str
    price: Decimal
    package_type: PackageType = PackageType.DAILY
    is_active: bool = True
    included_items: tuple[PackageItem, ...] = ()
    groups: tuple[CustomizationGroup, ...] = ()

    @property
    def id(self) -> str:
        return self.package_id

    @property
    def base_price(self) -> Decimal:
        return self.price

    @property
    def customization_groups(self) -> tuple[CustomizationGroup, ...]:
        return self.groups

    @property
    def availability(self) -> ItemStatus:
        return ItemStatus.ACTIVE if self.is_active else ItemStatus.INACTIVE


@dataclass(frozen=True)
class Address:
    """A delivery address owned by a user."""
    id: str
    user_id: str
    street: str
    city: str
    postal_code: Optional[str] = None
    is_default: bool = False
