"""
Pydantic Schemas for Request/Response Validation

Money travels as Decimal strings in both directions. Bounds here are
transport sanity limits only; every price the client sends is
recomputed server-side before anything is stored.

Version: 1.0.0
"""

from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime
from decimal import Decimal

from food_ordering.pricing.cart import GuestLine
from food_ordering.pricing.catalog import ItemStatus, SelectionKind
from food_ordering.pricing.reconciler import SubmittedOrder, SubmittedOrderLine
from food_ordering.pricing.selection import SelectedCustomization
from food_ordering.pricing.status import DeliveryType, OrderStatus, PaymentStatus


# =============================================================================
# SHARED
# =============================================================================

class Selection(BaseModel):
    """Options picked for one customization group."""
    group_id: str = Field(..., min_length=1, max_length=100, examples=["size"])
    option_ids: List[str] = Field(default_factory=list, max_length=20, examples=[["large"]])
    text_value: Optional[str] = Field(None, max_length=500)

    class Config:
        from_attributes = True

    def to_domain(self) -> SelectedCustomization:
        return SelectedCustomization(
            group_id=self.group_id,
            option_ids=tuple(self.option_ids),
            text_value=self.text_value,
        )


def selections_to_domain(selections: List[Selection]) -> tuple[SelectedCustomization, ...]:
    return tuple(s.to_domain() for s in selections)


# =============================================================================
# REQUEST SCHEMAS
# =============================================================================

class QuoteRequest(BaseModel):
    """Preview the price of a selection without adding it to the cart."""
    quantity: int = Field(default=1, ge=1, le=99, examples=[2])
    selections: List[Selection] = Field(default_factory=list)


class CartItemAdd(BaseModel):
    """Add an item to the cart."""
    catalog_item_id: str = Field(..., min_length=1, max_length=100, examples=["pizza_margherita"])
    quantity: int = Field(..., ge=1, le=99, examples=[2])
    selections: List[Selection] = Field(default_factory=list)
    special_instructions: Optional[str] = Field(None, max_length=500)


class CartItemUpdate(BaseModel):
    """
    Change an existing cart line.

    Omitted fields are left untouched; an explicit null clears the
    special instructions.
    """
    quantity: Optional[int] = Field(None, ge=1, le=99)
    selections: Optional[List[Selection]] = None
    special_instructions: Optional[str] = Field(None, max_length=500)


class GuestCartLine(BaseModel):
    """A line from a cart kept client-side before sign-in. Prices are not accepted."""
    catalog_item_id: str = Field(..., min_length=1, max_length=100)
    quantity: int = Field(..., le=99)
    selections: List[Selection] = Field(default_factory=list)
    special_instructions: Optional[str] = Field(None, max_length=500)

    def to_domain(self) -> GuestLine:
        return GuestLine(
            catalog_item_id=self.catalog_item_id,
            quantity=self.quantity,
            selections=selections_to_domain(self.selections),
            special_instructions=self.special_instructions,
        )


class CartSyncRequest(BaseModel):
    lines: List[GuestCartLine] = Field(default_factory=list, max_length=50)


class OrderLineCreate(BaseModel):
    """One order line with the client's figures."""
    line_id: str = Field(..., min_length=1, max_length=64)
    catalog_item_id: str = Field(..., min_length=1, max_length=100, examples=["pizza_margherita"])
    quantity: int = Field(..., le=99, examples=[3])
    unit_price: Decimal = Field(..., ge=0, le=1000, examples=["9.25"])
    total_price: Decimal = Field(..., ge=0, le=50000, examples=["27.75"])
    selections: List[Selection] = Field(default_factory=list)
    special_instructions: Optional[str] = Field(None, max_length=500)


class OrderCreate(BaseModel):
    """Request schema for placing an order."""
    lines: List[OrderLineCreate] = Field(..., min_length=1)
    subtotal: Decimal = Field(..., ge=0, le=50000, examples=["27.75"])
    tax: Decimal = Field(..., examples=["3.61"])
    delivery_fee: Decimal = Field(..., examples=["5.99"])
    total: Decimal = Field(..., examples=["37.35"])

    delivery_type: DeliveryType = Field(default=DeliveryType.DELIVERY, examples=["delivery"])
    delivery_address_id: Optional[str] = Field(None, max_length=64)
    scheduled_for: Optional[datetime] = Field(None, examples=["2026-01-15T18:30:00Z"])
    special_instructions: Optional[str] = Field(None, max_length=500)

    def to_domain(self) -> SubmittedOrder:
        return SubmittedOrder(
            lines=[
                SubmittedOrderLine(
                    line_id=line.line_id,
                    catalog_item_id=line.catalog_item_id,
                    quantity=line.quantity,
                    unit_price=line.unit_price,
                    total_price=line.total_price,
                    selections=selections_to_domain(line.selections),
                    special_instructions=line.special_instructions,
                )
                for line in self.lines
            ],
            subtotal=self.subtotal,
            tax=self.tax,
            delivery_fee=self.delivery_fee,
            total=self.total,
            delivery_type=self.delivery_type,
            delivery_address_id=self.delivery_address_id,
            scheduled_for=self.scheduled_for,
            special_instructions=self.special_instructions,
        )


class StatusUpdate(BaseModel):
    status: OrderStatus = Field(..., examples=["confirmed"])


# =============================================================================
# RESPONSE SCHEMAS
# =============================================================================

class OptionResponse(BaseModel):
    id: str
    name: str
    price_modifier: Decimal
    is_available: bool

    class Config:
        from_attributes = True


class GroupResponse(BaseModel):
    id: str
    name: str
    kind: SelectionKind
    required: bool
    max_selections: Optional[int]
    options: List[OptionResponse]

    class Config:
        from_attributes = True


class CatalogItemResponse(BaseModel):
    """A menu item or package as shown to the customer."""
    id: str
    name: str
    item_type: str
    base_price: Decimal
    availability: ItemStatus
    is_orderable: bool
    customization_groups: List[GroupResponse]
    original_price: Optional[Decimal] = None
    savings: Optional[Decimal] = None


class ValidationErrorItem(BaseModel):
    code: str
    group_id: str
    option_id: Optional[str] = None
    max_selections: Optional[int] = None
    actual: Optional[int] = None
    message: str


class ItemQuoteResponse(BaseModel):
    item_id: str
    quantity: int
    valid: bool
    errors: List[ValidationErrorItem] = []
    unit_price: Optional[Decimal] = None
    total_price: Optional[Decimal] = None


class QuoteResponse(BaseModel):
    """Figures the client should submit at checkout."""
    subtotal: Decimal
    tax: Decimal
    delivery_fee: Decimal
    total: Decimal


class CartLineResponse(BaseModel):
    id: str
    catalog_item_id: str
    quantity: int
    selections: List[Selection]
    unit_price: Decimal
    total_price: Decimal
    special_instructions: Optional[str]

    class Config:
        from_attributes = True


class CartResponse(BaseModel):
    id: Optional[str]
    user_id: str
    version: int
    lines: List[CartLineResponse]
    item_count: int
    quote: QuoteResponse


class CartLineMutationResponse(BaseModel):
    """Response after adding or updating a cart line."""
    success: bool
    message: str
    merged: bool = False
    line: CartLineResponse


class SkippedLineResponse(BaseModel):
    catalog_item_id: str
    reason: str
    errors: List[ValidationErrorItem] = []


class CartSyncResponse(BaseModel):
    success: bool
    merged_count: int
    skipped: List[SkippedLineResponse]
    cart: CartResponse


class OrderLineResponse(BaseModel):
    line_id: str
    catalog_item_id: str
    quantity: int
    selections: List[Selection]
    unit_price: Decimal
    total_price: Decimal
    special_instructions: Optional[str]

    class Config:
        from_attributes = True


class OrderResponse(BaseModel):
    """Response schema for a single order."""
    id: int
    order_number: str
    user_id: str
    lines: List[OrderLineResponse]
    subtotal: Decimal
    tax: Decimal
    delivery_fee: Decimal
    total: Decimal
    delivery_type: DeliveryType
    status: OrderStatus
    payment_status: PaymentStatus
    delivery_address_id: Optional[str]
    scheduled_for: Optional[datetime]
    estimated_delivery: Optional[datetime]
    special_instructions: Optional[str]
    created_at: Optional[datetime]

    class Config:
        from_attributes = True


class OrderCreateResponse(BaseModel):
    """Response after successfully creating an order."""
    success: bool
    message: str
    order: OrderResponse


class OrderListResponse(BaseModel):
    """Response for listing multiple orders."""
    total: int
    orders: List[OrderResponse]


class ErrorResponse(BaseModel):
    """Standard error response."""
    success: bool = False
    error: str
    detail: Optional[str] = None


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    environment: str
    store: str
    rate_limiter: str
    timestamp: datetime
