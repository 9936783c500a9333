"""API schemas for the checkout service.

Pydantic models for request/response validation and serialization.
"""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from checkout_api.domain.entities import MAX_LINE_QUANTITY


# ============================================================================
# Common Schemas
# ============================================================================


class PriceSchema(BaseModel):
    """Price representation."""

    amount: int = Field(..., description="Amount in smallest currency unit")
    currency: str = Field(default="VND", description="Currency code")


class ErrorResponse(BaseModel):
    """Standard error response.

    All API errors follow this format for consistency.
    """

    error_code: str = Field(..., description="Machine-readable error code")
    message: str = Field(..., description="Human-readable error message")
    details: dict[str, Any] | list[Any] = Field(
        default_factory=list, description="Additional error details"
    )
    request_id: str | None = Field(
        default=None, description="Request ID for correlation"
    )


class PaginatedResponse(BaseModel):
    """Base paginated response."""

    total: int = Field(..., description="Total number of items")
    page: int = Field(..., description="Current page number")
    page_size: int = Field(..., description="Items per page")
    has_more: bool = Field(..., description="Whether there are more pages")


# ============================================================================
# Catalog Schemas
# ============================================================================


class CatalogItemSchema(BaseModel):
    """Catalog item."""

    id: str
    name: str
    description: str | None = None
    price: PriceSchema
    stock: int
    image_url: str | None = None
    is_active: bool
    created_at: datetime
    updated_at: datetime


class CatalogItemsListResponse(PaginatedResponse):
    """Paginated list of catalog items."""

    items: list[CatalogItemSchema]


class CatalogItemCreateRequest(BaseModel):
    """Request to create a catalog item."""

    name: str = Field(..., min_length=1, max_length=255)
    description: str | None = Field(default=None, max_length=5000)
    price: int = Field(..., ge=0, description="Unit price in smallest currency unit")
    currency: str | None = Field(default=None, min_length=3, max_length=3)
    stock: int = Field(default=0, ge=0)
    image_url: str | None = Field(default=None, max_length=1000)


class CatalogItemUpdateRequest(BaseModel):
    """Partial update of a catalog item."""

    name: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = Field(default=None, max_length=5000)
    price: int | None = Field(default=None, ge=0)
    stock: int | None = Field(default=None, ge=0)
    image_url: str | None = Field(default=None, max_length=1000)
    is_active: bool | None = None


# ============================================================================
# Cart Schemas
# ============================================================================


class CartItemAddRequest(BaseModel):
    """Request to add an item to the cart."""

    item_id: str = Field(..., min_length=1, description="Catalog item ID")
    quantity: int = Field(default=1, ge=1, le=MAX_LINE_QUANTITY, description="Units to add")


class CartItemUpdateRequest(BaseModel):
    """Request to set the quantity of a cart line (0 removes it)."""

    quantity: int = Field(..., ge=0, le=MAX_LINE_QUANTITY, description="New quantity (0 removes the line)")


class CartLineSchema(BaseModel):
    """Cart line joined with current catalog data."""

    item_id: str
    name: str
    quantity: int
    unit_price: PriceSchema
    line_total: PriceSchema
    stock: int
    is_active: bool
    is_available: bool = Field(..., description="Whether the line could be ordered now")


class CartResponse(BaseModel):
    """The user's cart."""

    items: list[CartLineSchema]
    total: PriceSchema
    count: int


class CartCountResponse(BaseModel):
    count: int


class CartClearResponse(BaseModel):
    removed: int


# ============================================================================
# Order Schemas
# ============================================================================


class OrderStatusEnum(str, Enum):
    """Order status values."""

    PENDING = "pending"
    PAID = "paid"
    CANCELLED = "cancelled"
    FAILED = "failed"
    REFUNDED = "refunded"


class OrderCreateRequest(BaseModel):
    """Request to create an order from the current cart."""

    payment_method: str = Field(default="vnpay", min_length=1, description="Payment method")


class OrderCancelRequest(BaseModel):
    """Request to cancel an order."""

    reason: str = Field(default="Cancelled by customer", max_length=500)


class OrderRefundRequest(BaseModel):
    """Request to refund an order in full."""

    reason: str = Field(default="", max_length=500)


class OrderLineSchema(BaseModel):
    """Order line with the price captured at purchase time."""

    item_id: str
    item_name: str
    quantity: int
    unit_price: PriceSchema
    line_total: PriceSchema


class OrderStatusHistorySchema(BaseModel):
    """Order status history entry."""

    from_status: str | None = None
    to_status: str
    reason: str | None = None
    actor: str | None = None
    provider_txn_id: str | None = None
    created_at: str | None = None


class OrderResponse(BaseModel):
    """Full order details."""

    id: str
    user_id: str
    status: OrderStatusEnum
    items: list[OrderLineSchema]
    total: PriceSchema
    item_count: int
    payment_method: str
    payment_ref: str | None = None
    cancelled_reason: str | None = None
    status_history: list[OrderStatusHistorySchema] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime


class OrderSummarySchema(BaseModel):
    """Order summary for list views."""

    id: str
    user_id: str
    status: OrderStatusEnum
    total: PriceSchema
    item_count: int
    payment_method: str
    created_at: datetime


class OrdersListResponse(BaseModel):
    """List of the user's orders."""

    items: list[OrderSummarySchema]
    total: int


class AdminOrdersListResponse(PaginatedResponse):
    """Paginated list of all orders."""

    items: list[OrderSummarySchema]


class OrderCreateResponse(BaseModel):
    """Created order and where to send the shopper to pay."""

    order: OrderResponse
    payment_url: str


class StatusTotalsSchema(BaseModel):
    count: int
    amount: int


class OrderStatsResponse(BaseModel):
    """Aggregate order statistics."""

    total_orders: int
    total_revenue: int
    recent_orders: int = Field(..., description="Orders created in the last 7 days")
    by_status: dict[str, StatusTotalsSchema]


# ============================================================================
# Payment Schemas
# ============================================================================


class PaymentCallbackResponse(BaseModel):
    """Generic acknowledgement returned to the payment provider."""

    status: str
