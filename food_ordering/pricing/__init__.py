"""
                        Pricing Module

Order pricing and customization engine. Pure, synchronous code with no
I/O; everything it needs is passed in by the caller.

Components:
    - catalog: menu items, packages, customization groups and options
    - calculator: unit/total price, order quote, package savings
    - validator: customization legality checks
    - cart: cart line merging and repricing
    - reconciler: server-side cross-check of submitted orders
    - status: order lifecycle state machine
"""

from food_ordering.pricing.calculator import (
    InvalidQuantityError,
    OrderQuote,
    PriceBreakdown,
    price,
    quote_order,
    round_money,
)
from food_ordering.pricing.cart import (
    Cart,
    CartLine,
    CartLineNotFoundError,
    ItemUnavailableError,
    add_to_cart,
    update_line,
    remove_line,
)
from food_ordering.pricing.catalog import (
    CustomizationGroup,
    CustomizationOption,
    ItemStatus,
    MenuItem,
    Package,
    Priceable,
    SelectionKind,
)
from food_ordering.pricing.reconciler import (
    OrderRejection,
    ReconciliationResult,
    RejectionCode,
    reconcile,
)
from food_ordering.pricing.selection import SelectedCustomization, canonical_key
from food_ordering.pricing.validator import (
    CustomizationError,
    CustomizationValidationError,
    ValidationCode,
    validate,
)

__all__ = [
    "InvalidQuantityError",
    "OrderQuote",
    "PriceBreakdown",
    "price",
    "quote_order",
    "round_money",
    "Cart",
    "CartLine",
    "CartLineNotFoundError",
    "ItemUnavailableError",
    "add_to_cart",
    "update_line",
    "remove_line",
    "CustomizationGroup",
    "CustomizationOption",
    "ItemStatus",
    "MenuItem",
    "Package",
    "Priceable",
    "SelectionKind",
    "OrderRejection",
    "ReconciliationResult",
    "RejectionCode",
    "reconcile",
    "SelectedCustomization",
    "canonical_key",
    "CustomizationError",
    "CustomizationValidationError",
    "ValidationCode",
    "validate",
]
