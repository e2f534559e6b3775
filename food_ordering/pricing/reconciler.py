"""
Order Total Reconciler

Independently recomputes every figure of a client-submitted order from
trusted catalog data and refuses the order if any figure diverges from
the recomputation by more than the tolerance.

The checks run in a fixed order and stop at the first failure:
    1. every line's item exists and is active
    2. (optional) every line's customizations are still legal
    3. every line total matches the catalog price
    4. the subtotal matches the sum of recomputed line totals
    5. tax and delivery fee are within range, and the total matches
       subtotal + tax + delivery fee
    6. delivery orders name an address owned by the user
    7. a scheduled time lies strictly in the future

Tax and delivery fee are taken from the submission and only range
checked. The reconciled order carries server-computed prices only.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Callable, Optional

from food_ordering.pricing.calculator import (
    CENT,
    Money,
    price,
    round_money,
    to_money,
    within_tolerance,
)
from food_ordering.pricing.catalog import Address, Priceable
from food_ordering.pricing.selection import SelectedCustomization
from food_ordering.pricing.status import DeliveryType
from food_ordering.pricing.validator import CustomizationError, validate

logger = logging.getLogger(__name__)


MAX_TAX = Decimal("10000")
MAX_DELIVERY_FEE = Decimal("100")

CatalogLookup = Callable[[str], Optional[Priceable]]
AddressLookup = Callable[[str, str], Optional[Address]]
Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class RejectionCode(str, Enum):
    INVALID_QUANTITY = "invalid_quantity"
    ITEM_UNAVAILABLE = "item_unavailable"
    INVALID_CUSTOMIZATION = "invalid_customization"
    PRICE_MISMATCH = "price_mismatch"
    SUBTOTAL_MISMATCH = "subtotal_mismatch"
    CHARGE_OUT_OF_RANGE = "charge_out_of_range"
    TOTAL_MISMATCH = "total_mismatch"
    MISSING_DELIVERY_ADDRESS = "missing_delivery_address"
    ADDRESS_NOT_FOUND = "address_not_found"
    SCHEDULE_IN_PAST = "schedule_in_past"


@dataclass
class SubmittedOrderLine:
    """An order line as the client sent it. Prices are untrusted."""
    line_id: str
    catalog_item_id: str
    quantity: int
    unit_price: Decimal
    total_price: Decimal
    selections: tuple[SelectedCustomization, ...] = ()
    special_instructions: Optional[str] = None


@dataclass
class SubmittedOrder:
    lines: list[SubmittedOrderLine]
    subtotal: Decimal
    tax: Decimal
    delivery_fee: Decimal
    total: Decimal
    delivery_type: DeliveryType = DeliveryType.DELIVERY
    delivery_address_id: Optional[str] = None
    scheduled_for: Optional[datetime] = None
    special_instructions: Optional[str] = None


@dataclass(frozen=True)
class ReconciledLine:
    line_id: str
    catalog_item_id: str
    quantity: int
    selections: tuple[SelectedCustomization, ...]
    unit_price: Decimal
    total_price: Decimal
    special_instructions: Optional[str] = None


@dataclass(frozen=True)
class ReconciledOrder:
    """An order whose every figure has been derived server-side."""
    user_id: str
    lines: tuple[ReconciledLine, ...]
    subtotal: Decimal
    tax: Decimal
    delivery_fee: Decimal
    total: Decimal
    delivery_type: DeliveryType
    delivery_address_id: Optional[str] = None
    scheduled_for: Optional[datetime] = None
    special_instructions: Optional[str] = None


@dataclass(frozen=True)
class OrderRejection:
    """
    Why an order was refused.

    Attributes:
        code: Machine-readable rejection reason
        message: Human-readable description
        line_id: Offending line, for line-level rejections
        item_id: Offending catalog item, for ITEM_UNAVAILABLE
        expected: Server figure, for mismatches
        submitted: Client figure, for mismatches
        errors: Validation errors, for INVALID_CUSTOMIZATION
    """
    code: RejectionCode
    message: str
    line_id: Optional[str] = None
    item_id: Optional[str] = None
    expected: Optional[Decimal] = None
    submitted: Optional[Decimal] = None
    errors: tuple[CustomizationError, ...] = ()

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "code": self.code.value,
            "message": self.message,
            "line_id": self.line_id,
            "item_id": self.item_id,
            "expected": str(self.expected) if self.expected is not None else None,
            "submitted": str(self.submitted) if self.submitted is not None else None,
            "errors": [e.to_dict() for e in self.errors],
        }


@dataclass
class ReconciliationResult:
    """
    Standardized result from reconciliation.

    Exactly one of ``order`` and ``rejection`` is set.
    """
    success: bool
    order: Optional[ReconciledOrder] = None
    rejection: Optional[OrderRejection] = None
    checked_lines: int = 0


def _reject(rejection: OrderRejection, checked_lines: int = 0) -> ReconciliationResult:
    logger.warning(
        f"Order rejected: {rejection.code.value} "
        f"(line={rejection.line_id}, item={rejection.item_id}, "
        f"expected={rejection.expected}, submitted={rejection.submitted})"
    )
    return ReconciliationResult(success=False, rejection=rejection, checked_lines=checked_lines)


def _as_aware(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment


def reconcile(
    order: SubmittedOrder,
    user_id: str,
    catalog_lookup: CatalogLookup,
    address_lookup: AddressLookup,
    clock: Clock = utc_now,
    epsilon: Money = CENT,
    revalidate_customizations: bool = True,
) -> ReconciliationResult:
    """
    Cross-check a submitted order against the catalog.

    Args:
        order: The order as submitted by the client
        user_id: Authenticated user placing the order
        catalog_lookup: Resolves a catalog item id to a Priceable
        address_lookup: Resolves (user_id, address_id) to an Address
        clock: Returns the current server time
        epsilon: Accepted difference between client and server figures
        revalidate_customizations: Run customization validation again

    Returns:
        ReconciliationResult: the reconciled order or the first rejection
    """
    epsilon = to_money(epsilon)

    resolved: list[Priceable] = []
    for line in order.lines:
        if line.quantity < 1:
            return _reject(OrderRejection(
                RejectionCode.INVALID_QUANTITY,
                f"Quantity must be at least 1, got {line.quantity}",
                line_id=line.line_id,
            ))
        item = catalog_lookup(line.catalog_item_id)
        if item is None or not item.is_orderable:
            return _reject(OrderRejection(
                RejectionCode.ITEM_UNAVAILABLE,
                f"Item {line.catalog_item_id} is not available",
                line_id=line.line_id,
                item_id=line.catalog_item_id,
            ))
        resolved.append(item)

    reconciled_lines = []
    expected_subtotal = Decimal("0")

    for checked, (line, item) in enumerate(zip(order.lines, resolved)):
        if revalidate_customizations:
            errors = validate(item, line.selections)
            if errors:
                return _reject(OrderRejection(
                    RejectionCode.INVALID_CUSTOMIZATION,
                    f"Customizations for line {line.line_id} are no longer valid",
                    line_id=line.line_id,
                    item_id=item.id,
                    errors=tuple(errors),
                ), checked)

        breakdown = price(item, line.selections, line.quantity)
        if not within_tolerance(line.total_price, breakdown.total_price, epsilon):
            return _reject(OrderRejection(
                RejectionCode.PRICE_MISMATCH,
                f"Price for line {line.line_id} does not match the menu",
                line_id=line.line_id,
                item_id=item.id,
                expected=breakdown.total_price,
                submitted=to_money(line.total_price),
            ), checked)

        expected_subtotal += breakdown.total_price
        reconciled_lines.append(ReconciledLine(
            line_id=line.line_id,
            catalog_item_id=item.id,
            quantity=line.quantity,
            selections=tuple(line.selections),
            unit_price=breakdown.unit_price,
            total_price=breakdown.total_price,
            special_instructions=line.special_instructions,
        ))

    checked = len(reconciled_lines)
    expected_subtotal = round_money(expected_subtotal)

    if not within_tolerance(order.subtotal, expected_subtotal, epsilon):
        return _reject(OrderRejection(
            RejectionCode.SUBTOTAL_MISMATCH,
            "Order subtotal does not match the items",
            expected=expected_subtotal,
            submitted=to_money(order.subtotal),
        ), checked)

    tax = round_money(order.tax)
    delivery_fee = round_money(order.delivery_fee)
    if not (Decimal("0") <= tax <= MAX_TAX) or not (Decimal("0") <= delivery_fee <= MAX_DELIVERY_FEE):
        return _reject(OrderRejection(
            RejectionCode.CHARGE_OUT_OF_RANGE,
            "Tax or delivery fee is out of range",
        ), checked)

    expected_total = round_money(expected_subtotal + tax + delivery_fee)
    if not within_tolerance(order.total, expected_total, epsilon):
        return _reject(OrderRejection(
            RejectionCode.TOTAL_MISMATCH,
            "Order total does not match subtotal, tax and delivery fee",
            expected=expected_total,
            submitted=to_money(order.total),
        ), checked)

    if order.delivery_type == DeliveryType.DELIVERY:
        if not order.delivery_address_id:
            return _reject(OrderRejection(
                RejectionCode.MISSING_DELIVERY_ADDRESS,
                "Delivery address is required for delivery orders",
            ), checked)
        if address_lookup(user_id, order.delivery_address_id) is None:
            return _reject(OrderRejection(
                RejectionCode.ADDRESS_NOT_FOUND,
                f"Delivery address {order.delivery_address_id} not found",
            ), checked)

    if order.scheduled_for is not None:
        if _as_aware(order.scheduled_for) <= _as_aware(clock()):
            return _reject(OrderRejection(
                RejectionCode.SCHEDULE_IN_PAST,
                "Scheduled time must be in the future",
            ), checked)

    reconciled = ReconciledOrder(
        user_id=user_id,
        lines=tuple(reconciled_lines),
        subtotal=expected_subtotal,
        tax=tax,
        delivery_fee=delivery_fee,
        total=expected_total,
        delivery_type=order.delivery_type,
        delivery_address_id=order.delivery_address_id,
        scheduled_for=order.scheduled_for,
        special_instructions=order.special_instructions,
    )
    return ReconciliationResult(success=True, order=reconciled, checked_lines=checked)
