"""Order API endpoints.

Provides endpoints for the acting user's orders:
- POST /orders - create an order from the cart and get the payment URL
- GET /orders - order history
- GET /orders/{id} - order details and status history
- POST /orders/{id}/cancel - cancel a pending order
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Request, status

from checkout_api.api.dependencies import CurrentUser, domain_error_to_http, get_orders
from checkout_api.api.schemas import (
    ErrorResponse,
    OrderCancelRequest,
    OrderCreateRequest,
    OrderCreateResponse,
    OrderLineSchema,
    OrderResponse,
    OrdersListResponse,
    OrderStatusEnum,
    OrderStatusHistorySchema,
    OrderSummarySchema,
    PriceSchema,
)
from checkout_api.application.order_service import OrderService
from checkout_api.domain.entities import Order
from checkout_api.domain.exceptions import DomainError
from checkout_api.domain.value_objects import Money

router = APIRouter(prefix="/orders", tags=["Orders"])

OrderServiceDep = Annotated[OrderService, Depends(get_orders)]


# ============================================================================
# Converters
# ============================================================================


def _price(money: Money) -> PriceSchema:
    return PriceSchema(amount=money.amount, currency=money.currency)


def order_to_response(order: Order, status_history: list[dict] | None = None) -> OrderResponse:
    """Convert an Order to OrderResponse."""
    return OrderResponse(
        id=str(order.id),
        user_id=order.user_id,
        status=OrderStatusEnum(order.status.value),
        items=[
            OrderLineSchema(
                item_id=line.item_id,
                item_name=line.item_name,
                quantity=line.quantity,
                unit_price=_price(line.unit_price_at_purchase),
                line_total=_price(line.line_total),
            )
            for line in order.lines
        ],
        total=_price(order.total_amount),
        item_count=order.item_count,
        payment_method=order.payment_method,
        payment_ref=order.payment_ref,
        cancelled_reason=order.cancelled_reason,
        status_history=[OrderStatusHistorySchema(**entry) for entry in status_history or []],
        created_at=order.created_at,
        updated_at=order.updated_at,
    )


def order_to_summary(order: Order) -> OrderSummarySchema:
    """Convert an Order to OrderSummarySchema."""
    return OrderSummarySchema(
        id=str(order.id),
        user_id=order.user_id,
        status=OrderStatusEnum(order.status.value),
        total=_price(order.total_amount),
        item_count=order.item_count,
        payment_method=order.payment_method,
        created_at=order.created_at,
    )


def client_ip(request: Request) -> str | None:
    """Get the shopper's IP, preferring the gateway's X-Forwarded-For."""
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else None


# ============================================================================
# Endpoints
# ============================================================================


@router.post(
    "",
    response_model=OrderCreateResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"model": ErrorResponse, "description": "Empty cart or unsupported payment method"},
        404: {"model": ErrorResponse, "description": "Cart item no longer sold"},
        409: {"model": ErrorResponse, "description": "Insufficient stock"},
        503: {"model": ErrorResponse, "description": "Concurrent update conflict"},
    },
    summary="Create order from cart",
)
async def create_order(
    body: OrderCreateRequest,
    request: Request,
    user_id: CurrentUser,
    service: OrderServiceDep,
) -> OrderCreateResponse:
    """Create a PENDING order from the current cart.

    The cart contents are read on the server; stock is taken atomically
    and the cart is cleared. The response carries the URL the shopper
    must be redirected to for payment.
    """
    try:
        result = await service.create_order(user_id, body.payment_method, client_ip(request))
    except DomainError as e:
        raise domain_error_to_http(e) from e
    return OrderCreateResponse(
        order=order_to_response(result.order),
        payment_url=result.payment_url,
    )


@router.get("", response_model=OrdersListResponse, summary="List my orders")
async def list_orders(user_id: CurrentUser, service: OrderServiceDep) -> OrdersListResponse:
    orders = await service.list_orders(user_id)
    return OrdersListResponse(items=[order_to_summary(order) for order in orders], total=len(orders))


@router.get(
    "/{order_id}",
    response_model=OrderResponse,
    responses={404: {"model": ErrorResponse, "description": "Order not found"}},
    summary="Get order",
)
async def get_order(order_id: str, user_id: CurrentUser, service: OrderServiceDep) -> OrderResponse:
    """Get order details.

    Clients poll this endpoint after returning from the payment provider;
    reading never changes the order.
    """
    try:
        details = await service.get_order(user_id, order_id)
    except DomainError as e:
        raise domain_error_to_http(e) from e
    return order_to_response(details.order, details.status_history)


@router.post(
    "/{order_id}/cancel",
    response_model=OrderResponse,
    responses={
        404: {"model": ErrorResponse, "description": "Order not found"},
        409: {"model": ErrorResponse, "description": "Order cannot be cancelled"},
    },
    summary="Cancel order",
)
async def cancel_order(
    order_id: str,
    user_id: CurrentUser,
    service: OrderServiceDep,
    body: OrderCancelRequest | None = None,
) -> OrderResponse:
    """Cancel a PENDING order; its items are returned to stock."""
    reason = body.reason if body else OrderCancelRequest().reason
    try:
        order = await service.cancel_order(user_id, order_id, reason)
    except DomainError as e:
        raise domain_error_to_http(e) from e
    return order_to_response(order)
