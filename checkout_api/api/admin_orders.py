"""Admin order endpoints.

- GET /admin/orders - all orders, filtered and paginated
- GET /admin/orders/stats - totals, revenue and per-status breakdown
- GET /admin/orders/{id} - any order with its status history
- POST /admin/orders/{id}/refund - refund a paid order in full
"""

from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Depends, Query

from checkout_api.api.dependencies import AdminUser, domain_error_to_http, get_orders
from checkout_api.api.orders import order_to_response, order_to_summary
from checkout_api.api.schemas import (
    AdminOrdersListResponse,
    ErrorResponse,
    OrderRefundRequest,
    OrderResponse,
    OrderStatsResponse,
    OrderStatusEnum,
    StatusTotalsSchema,
)
from checkout_api.application.order_service import OrderService
from checkout_api.catalog.service import PaginationParams
from checkout_api.domain.exceptions import DomainError
from checkout_api.domain.state_machines import OrderStatus
from checkout_api.infrastructure.repositories import OrderFilters

router = APIRouter(prefix="/admin/orders", tags=["Admin"])

OrderServiceDep = Annotated[OrderService, Depends(get_orders)]


@router.get("", response_model=AdminOrdersListResponse, summary="List all orders")
async def list_all_orders(
    admin: AdminUser,
    service: OrderServiceDep,
    page: int = Query(default=1, ge=1, description="Page number"),
    page_size: int = Query(default=20, ge=1, le=100, description="Items per page"),
    status: OrderStatusEnum | None = Query(default=None, description="Filter by status"),
    user_id: str | None = Query(default=None, description="Filter by user"),
    start_date: datetime | None = Query(default=None, description="Created at or after"),
    end_date: datetime | None = Query(default=None, description="Created at or before"),
) -> AdminOrdersListResponse:
    filters = OrderFilters(
        status=OrderStatus(status.value) if status else None,
        user_id=user_id,
        start_date=start_date,
        end_date=end_date,
    )
    result = await service.list_all_orders(filters, PaginationParams(page=page, page_size=page_size))
    return AdminOrdersListResponse(
        items=[order_to_summary(order) for order in result.items],
        total=result.total,
        page=result.page,
        page_size=result.page_size,
        has_more=result.has_more,
    )


@router.get("/stats", response_model=OrderStatsResponse, summary="Order statistics")
async def order_stats(admin: AdminUser, service: OrderServiceDep) -> OrderStatsResponse:
    stats = await service.order_stats()
    return OrderStatsResponse(
        total_orders=stats.total_orders,
        total_revenue=stats.total_revenue,
        recent_orders=stats.recent_orders,
        by_status={
            status: StatusTotalsSchema(count=totals.count, amount=totals.amount)
            for status, totals in stats.by_status.items()
        },
    )


@router.get(
    "/{order_id}",
    response_model=OrderResponse,
    responses={404: {"model": ErrorResponse, "description": "Order not found"}},
    summary="Get any order",
)
async def get_any_order(order_id: str, admin: AdminUser, service: OrderServiceDep) -> OrderResponse:
    try:
        details = await service.get_any_order(order_id)
    except DomainError as e:
        raise domain_error_to_http(e) from e
    return order_to_response(details.order, details.status_history)


@router.post(
    "/{order_id}/refund",
    response_model=OrderResponse,
    responses={
        404: {"model": ErrorResponse, "description": "Order not found"},
        409: {"model": ErrorResponse, "description": "Order is not paid"},
    },
    summary="Refund order",
)
async def refund_order(
    order_id: str,
    admin: AdminUser,
    service: OrderServiceDep,
    body: OrderRefundRequest | None = None,
) -> OrderResponse:
    """Refund a PAID order in full. Stock is not returned."""
    try:
        order = await service.refund_order(order_id, body.reason if body else "", actor=admin)
    except DomainError as e:
        raise domain_error_to_http(e) from e
    return order_to_response(order)
