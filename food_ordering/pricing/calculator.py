"""
Price Calculator

Pure functions deriving authoritative prices from catalog data:
    - price(): unit and line total for an item with selected customizations
    - quote_order(): subtotal, flat-rate tax, delivery fee and total
    - delivery_fee_for(): step function over delivery distance
    - package_savings(): what a package saves over its items bought alone

All arithmetic is done in Decimal and rounded half-up to the cent.
Nothing here touches I/O or shared state, so every function is safe to
call concurrently from any number of requests.
"""

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Callable, Iterable, Optional, Union

from food_ordering.pricing.catalog import Package, Priceable
from food_ordering.pricing.selection import SelectedCustomization


CENT = Decimal("0.01")

Money = Union[Decimal, int, float, str]


class InvalidQuantityError(ValueError):
    """Raised when a price is requested for a quantity below one."""

    def __init__(self, quantity: int):
        self.quantity = quantity
        super().__init__(f"Quantity must be at least 1, got {quantity}")


@dataclass(frozen=True)
class PriceBreakdown:
    unit_price: Decimal
    total_price: Decimal


@dataclass(frozen=True)
class OrderQuote:
    """Server-side figures for a set of lines."""
    subtotal: Decimal
    tax: Decimal
    delivery_fee: Decimal
    total: Decimal

    def to_dict(self) -> dict:
        return {
            "subtotal": self.subtotal,
            "tax": self.tax,
            "delivery_fee": self.delivery_fee,
            "total": self.total,
        }


def to_money(value: Money) -> Decimal:
    """Convert to Decimal; floats go through str() to avoid binary noise."""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    return Decimal(value)


def round_money(value: Money) -> Decimal:
    """Round half-up to two decimal places."""
    return to_money(value).quantize(CENT, rounding=ROUND_HALF_UP)


def within_tolerance(submitted: Money, expected: Money, epsilon: Money = CENT) -> bool:
    return abs(to_money(submitted) - to_money(expected)) <= to_money(epsilon)


def price(
    item: Priceable,
    selections: Iterable[SelectedCustomization],
    quantity: int,
) -> PriceBreakdown:
    """
    Compute the unit and total price of an item.

    Selections naming a group the item does not have, or an option the
    group does not have, are ignored. Gate untrusted selections through
    ``validate()`` before relying on the result.

    Args:
        item: Menu item or package being priced
        selections: Customizations picked for the item
        quantity: Number of units, at least 1

    Returns:
        PriceBreakdown: unit price and total rounded to the cent

    Raises:
        InvalidQuantityError: If quantity is below one
    """
    if quantity < 1:
        raise InvalidQuantityError(quantity)

    unit_price = to_money(item.base_price)
    for selection in selections:
        group = item.get_group(selection.group_id)
        if group is None:
            continue
        for option_id in selection.option_ids:
            option = group.get_option(option_id)
            if option is not None:
                unit_price += to_money(option.price_modifier)

    return PriceBreakdown(
        unit_price=round_money(unit_price),
        total_price=round_money(unit_price * quantity),
    )


def compute_tax(subtotal: Money, tax_rate: Money) -> Decimal:
    return round_money(to_money(subtotal) * to_money(tax_rate))


def delivery_fee_for(distance_km: Optional[float] = None, default_fee: Money = Decimal("5.99")) -> Decimal:
    """
    Flat/step delivery fee.

    Unknown (or zero) distance pays the default fee; otherwise up to 5 km
    costs 3.99, up to 10 km 5.99 and anything further 7.99.
    """
    if not distance_km:
        return round_money(default_fee)
    if distance_km <= 5:
        return Decimal("3.99")
    if distance_km <= 10:
        return Decimal("5.99")
    return Decimal("7.99")


def quote_order(
    subtotal: Money,
    delivery: bool,
    tax_rate: Money,
    delivery_fee: Money,
) -> OrderQuote:
    """Build the figures a client should submit at checkout."""
    subtotal = round_money(subtotal)
    tax = compute_tax(subtotal, tax_rate)
    fee = round_money(delivery_fee) if delivery else Decimal("0.00")
    return OrderQuote(
        subtotal=subtotal,
        tax=tax,
        delivery_fee=fee,
        total=round_money(subtotal + tax + fee),
    )


@dataclass(frozen=True)
class PackageSavings:
    original_price: Decimal
    savings: Decimal


def package_savings(
    package: Package,
    lookup: Callable[[str], Optional[Priceable]],
) -> PackageSavings:
    """Compare a package price with buying its items separately."""
    original = Decimal("0")
    for included in package.included_items:
        item = lookup(included.menu_item_id)
        if item is None:
            continue
        original += to_money(item.base_price) * included.quantity

    original = round_money(original)
    savings = max(original - round_money(package.price), Decimal("0.00"))
    return PackageSavings(original_price=original, savings=savings)
