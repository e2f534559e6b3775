"""
Cart Line Merger

Decides whether a new selection matches an existing cart line (same
catalog item, structurally equal customizations) and merges quantities,
otherwise appends a new line.

Prices on a cart line are never trusted from its previous state: every
quantity or customization change reprices the line from the current
catalog item.

These functions mutate the Cart passed in and nothing else. Persisting
the cart, and serializing concurrent writes to it, is the cart store's job.
"""

import uuid
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Callable, Iterable, Optional

from food_ordering.pricing.calculator import InvalidQuantityError, price, round_money
from food_ordering.pricing.catalog import ItemStatus, Priceable
from food_ordering.pricing.selection import (
    CustomizationKey,
    SelectedCustomization,
    canonical_key,
)
from food_ordering.pricing.validator import (
    CustomizationError,
    CustomizationValidationError,
    validate,
)


class _Unset:
    def __repr__(self) -> str:
        return "UNSET"


UNSET = _Unset()


class ItemUnavailableError(Exception):
    """Raised when a catalog item cannot currently be ordered."""

    def __init__(self, item_id: str, status: Optional[ItemStatus] = None):
        self.item_id = item_id
        self.status = status
        reason = status.value if status is not None else "not found"
        super().__init__(f"Item {item_id} is not available ({reason})")


class CartLineNotFoundError(KeyError):
    def __init__(self, line_id: str):
        self.line_id = line_id
        super().__init__(line_id)


@dataclass
class CartLine:
    """
    One row of a cart.

    ``key`` caches the canonical comparison key of ``selections`` and is
    recomputed whenever the selections change.
    """
    id: str
    catalog_item_id: str
    quantity: int
    selections: tuple[SelectedCustomization, ...]
    unit_price: Decimal
    total_price: Decimal
    special_instructions: Optional[str] = None
    key: CustomizationKey = ()

    def __post_init__(self):
        if not self.key:
            self.key = canonical_key(self.selections)

    def matches(self, catalog_item_id: str, key: CustomizationKey) -> bool:
        return self.catalog_item_id == catalog_item_id and self.key == key

    def reprice(self, item: Priceable) -> None:
        breakdown = price(item, self.selections, self.quantity)
        self.unit_price = breakdown.unit_price
        self.total_price = breakdown.total_price


@dataclass
class Cart:
    """A user's cart; ``version`` is the store's optimistic concurrency token."""
    user_id: str
    lines: list[CartLine] = field(default_factory=list)
    id: Optional[str] = None
    version: int = 0

    def get_line(self, line_id: str) -> CartLine:
        for line in self.lines:
            if line.id == line_id:
                return line
        raise CartLineNotFoundError(line_id)


def _new_line_id() -> str:
    return uuid.uuid4().hex


def _ensure_orderable(item: Priceable) -> None:
    if not item.is_orderable:
        raise ItemUnavailableError(item.id, item.availability)


def find_matching_line(cart: Cart, catalog_item_id: str, key: CustomizationKey) -> Optional[CartLine]:
    for line in cart.lines:
        if line.matches(catalog_item_id, key):
            return line
    return None


def add_to_cart(
    cart: Cart,
    item: Priceable,
    quantity: int,
    selections: Iterable[SelectedCustomization],
    special_instructions: Optional[str] = None,
) -> CartLine:
    """
    Add a quantity of an item to the cart.

    An equivalent existing line absorbs the quantity, is repriced from
    the current catalog item and takes the new special instructions.
    Otherwise the selection is validated and a new line is appended.

    Raises:
        InvalidQuantityError: If quantity is below one
        ItemUnavailableError: If the item is not active
        CustomizationValidationError: If a new line's selection is invalid
            (the cart is left untouched)
    """
    if quantity < 1:
        raise InvalidQuantityError(quantity)
    _ensure_orderable(item)

    selections = tuple(selections)
    key = canonical_key(selections)

    existing = find_matching_line(cart, item.id, key)
    if existing is not None:
        existing.quantity += quantity
        existing.reprice(item)
        existing.special_instructions = special_instructions
        return existing

    errors = validate(item, selections)
    if errors:
        raise CustomizationValidationError(errors)

    breakdown = price(item, selections, quantity)
    line = CartLine(
        id=_new_line_id(),
        catalog_item_id=item.id,
        quantity=quantity,
        selections=selections,
        unit_price=breakdown.unit_price,
        total_price=breakdown.total_price,
        special_instructions=special_instructions,
        key=key,
    )
    cart.lines.append(line)
    return line


def update_line(
    cart: Cart,
    line_id: str,
    item: Priceable,
    quantity: Optional[int] = None,
    selections: Optional[Iterable[SelectedCustomization]] = None,
    special_instructions=UNSET,
) -> CartLine:
    """
    Change quantity, selections or instructions of an existing line.

    The line is always repriced from ``item``. New selections are
    validated before anything on the line changes.
    """
    line = cart.get_line(line_id)

    if quantity is not None and quantity < 1:
        raise InvalidQuantityError(quantity)

    if selections is not None:
        selections = tuple(selections)
        errors = validate(item, selections)
        if errors:
            raise CustomizationValidationError(errors)
        line.selections = selections
        line.key = canonical_key(selections)

    if quantity is not None:
        line.quantity = quantity
    if special_instructions is not UNSET:
        line.special_instructions = special_instructions

    line.reprice(item)
    return line


def remove_line(cart: Cart, line_id: str) -> CartLine:
    line = cart.get_line(line_id)
    cart.lines.remove(line)
    return line


def clear_cart(cart: Cart) -> None:
    cart.lines.clear()


def cart_subtotal(cart: Cart) -> Decimal:
    return round_money(sum((line.total_price for line in cart.lines), Decimal("0")))


def cart_item_count(cart: Cart) -> int:
    return sum(line.quantity for line in cart.lines)


@dataclass(frozen=True)
class GuestLine:
    """A line kept client-side before the user signed in."""
    catalog_item_id: str
    quantity: int
    selections: tuple[SelectedCustomization, ...] = ()
    special_instructions: Optional[str] = None


@dataclass(frozen=True)
class SkippedLine:
    catalog_item_id: str
    reason: str
    errors: tuple[CustomizationError, ...] = ()

    def to_dict(self) -> dict:
        return {
            "catalog_item_id": self.catalog_item_id,
            "reason": self.reason,
            "errors": [e.to_dict() for e in self.errors],
        }


@dataclass
class MergeReport:
    merged: list[CartLine] = field(default_factory=list)
    skipped: list[SkippedLine] = field(default_factory=list)


def merge_guest_lines(
    cart: Cart,
    guest_lines: Iterable[GuestLine],
    lookup: Callable[[str], Optional[Priceable]],
) -> MergeReport:
    """
    Fold a guest cart into a user's cart.

    Each guest line is priced from the catalog like any other add; any
    price the client kept locally is ignored. Lines that cannot be added
    are skipped and reported instead of failing the whole sync. A guest
    line without instructions keeps the instructions of the line it
    merges into.
    """
    report = MergeReport()

    for guest in guest_lines:
        item = lookup(guest.catalog_item_id)
        if item is None:
            report.skipped.append(SkippedLine(guest.catalog_item_id, "not_found"))
            continue

        instructions = guest.special_instructions
        if instructions is None:
            existing = find_matching_line(cart, item.id, canonical_key(guest.selections))
            if existing is not None:
                instructions = existing.special_instructions

        try:
            line = add_to_cart(cart, item, guest.quantity, guest.selections, instructions)
        except ItemUnavailableError:
            report.skipped.append(SkippedLine(guest.catalog_item_id, "unavailable"))
        except InvalidQuantityError:
            report.skipped.append(SkippedLine(guest.catalog_item_id, "invalid_quantity"))
        except CustomizationValidationError as exc:
            report.skipped.append(
                SkippedLine(guest.catalog_item_id, "invalid_customization", tuple(exc.errors))
            )
        else:
            report.merged.append(line)

    return report
