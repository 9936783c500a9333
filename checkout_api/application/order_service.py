"""Order application service.

Orchestrates the order lifecycle outside the payment callback:
- Creating an order from the user's cart (the order factory)
- Order history and cancellation for the owning user
- Admin listing, refunds and statistics
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any

import structlog
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from checkout_api.application.cart_service import to_cart_line
from checkout_api.catalog.repository import CatalogRepository
from checkout_api.catalog.service import PaginatedResult, PaginationParams
from checkout_api.domain.entities import Order
from checkout_api.domain.exceptions import (
    EmptyCartError,
    InsufficientStockError,
    ItemNotFoundError,
    OrderNotFoundError,
    TransactionConflictError,
)
from checkout_api.domain.state_machines import OrderStatus
from checkout_api.infrastructure.payment_gateway import (
    PaymentGatewayRegistry,
    get_payment_gateway_registry,
)
from checkout_api.infrastructure.repositories import (
    CartRepository,
    OrderFilters,
    OrderRepository,
)
from checkout_api.infrastructure.transactions import run_with_retry

logger = structlog.get_logger()

RECENT_ORDERS_WINDOW = timedelta(days=7)


# ============================================================================
# Service Result Types
# ============================================================================


@dataclass
class CreateOrderResult:
    """Result of creating an order."""

    order: Order
    payment_url: str


@dataclass
class OrderDetails:
    """An order together with its status history."""

    order: Order
    status_history: list[dict[str, Any]] = field(default_factory=list)


@dataclass
class StatusTotals:
    count: int = 0
    amount: int = 0


@dataclass
class OrderStats:
    """Aggregate order statistics for the admin dashboard."""

    total_orders: int
    total_revenue: int
    recent_orders: int
    by_status: dict[str, StatusTotals]


# ============================================================================
# Shared helpers
# ============================================================================


async def release_stock(catalog: CatalogRepository, order: Order) -> None:
    """Return every line of ``order`` to inventory."""
    for line in sorted(order.lines, key=lambda line: line.item_id):
        await catalog.increment_stock(line.item_id, line.quantity)


def log_events(order: Order) -> None:
    """Emit the order's recorded domain events to the log."""
    for event in order.collect_events():
        logger.info("Domain event", **event.to_dict())


# ============================================================================
# Order Service
# ============================================================================


class OrderService:
    """Application service for orders.

    The order factory turns the user's cart into a PENDING order in one
    transaction: stock is decremented with conditional updates, the order,
    its lines and first history entry are inserted and the cart is
    cleared. Either all of it happens or none of it does.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        gateways: PaymentGatewayRegistry | None = None,
    ) -> None:
        """Initialize service.

        Args:
            session_factory: Session factory for the service's transactions.
            gateways: Payment gateway registry.
        """
        self.session_factory = session_factory
        self.gateways = gateways or get_payment_gateway_registry()

    # -------------------------------------------------------------------------
    # Order factory
    # -------------------------------------------------------------------------

    async def create_order(
        self,
        user_id: str,
        payment_method: str,
        client_ip: str | None = None,
    ) -> CreateOrderResult:
        """Create an order from the user's cart.

        Args:
            user_id: Cart owner.
            payment_method: Payment method chosen by the shopper.
            client_ip: Shopper's IP address, passed to the payment provider.

        Returns:
            CreateOrderResult with the PENDING order and the payment URL.

        Raises:
            UnsupportedPaymentMethodError: If no gateway handles the method.
            EmptyCartError: If the cart has no lines.
            ItemNotFoundError: If a cart item is no longer sold.
            InsufficientStockError: If any line exceeds the available stock.
            TransactionConflictError: If conflicts persist after retries.
        """
        gateway = self.gateways.get(payment_method)

        async def attempt() -> Order:
            async with self.session_factory.begin() as session:
                cart = CartRepository(session)
                catalog = CatalogRepository(session)

                rows = await cart.list_lines(user_id)
                if not rows:
                    raise EmptyCartError(user_id)

                cart_lines = []
                for row in rows:
                    item = row.item
                    if item is None or not item.is_active:
                        raise ItemNotFoundError(row.item_id)
                    if row.quantity > item.stock:
                        raise InsufficientStockError(item.id, item.name, row.quantity, item.stock)
                    cart_lines.append(to_cart_line(row))

                order = Order.create_from_cart(user_id, cart_lines, gateway.method)

                # Fixed lock order across concurrent checkouts
                for line in sorted(order.lines, key=lambda line: line.item_id):
                    if not await catalog.conditional_decrement_stock(line.item_id, line.quantity):
                        raise InsufficientStockError(line.item_id, line.item_name, line.quantity)

                await OrderRepository(session).add(order, actor=user_id)
                await cart.clear(user_id)
                return order

        try:
            order = await run_with_retry("create_order", attempt)
        except InsufficientStockError as e:
            logger.info("Order rejected", user_id=user_id, reason=e.error_code, **e.details)
            raise

        payment_url = gateway.build_redirect_url(order, client_ip)

        logger.info(
            "Order created",
            order_id=str(order.id),
            user_id=user_id,
            total_amount=order.total_amount.amount,
            currency=order.total_amount.currency,
            line_count=len(order.lines),
            payment_method=gateway.method,
        )
        log_events(order)

        return CreateOrderResult(order=order, payment_url=payment_url)

    # -------------------------------------------------------------------------
    # User queries and cancellation
    # -------------------------------------------------------------------------

    async def list_orders(self, user_id: str) -> list[Order]:
        async with self.session_factory() as session:
            return await OrderRepository(session).list_for_user(user_id)

    async def get_order(self, user_id: str, order_id: str) -> OrderDetails:
        """Get one of the user's orders.

        Raises:
            OrderNotFoundError: If missing or owned by someone else.
        """
        async with self.session_factory() as session:
            repo = OrderRepository(session)
            order = await repo.get_for_user(user_id, order_id)
            if order is None:
                raise OrderNotFoundError(order_id)
            history = await repo.get_history(order_id)
        return OrderDetails(order=order, status_history=history)

    async def cancel_order(
        self,
        user_id: str,
        order_id: str,
        reason: str = "Cancelled by customer",
    ) -> Order:
        """Cancel a PENDING order and return its stock.

        Raises:
            OrderNotFoundError: If missing or owned by someone else.
            OrderNotCancellableError: If the order is no longer PENDING.
        """

        async def attempt() -> Order:
            async with self.session_factory.begin() as session:
                repo = OrderRepository(session)
                order = await repo.get_for_user(user_id, order_id)
                if order is None:
                    raise OrderNotFoundError(order_id)

                order.cancel(reason, cancelled_by="customer")
                if not await repo.transition(order, OrderStatus.PENDING, reason=reason, actor=user_id):
                    raise TransactionConflictError("cancel_order", reason="status changed concurrently")
                await release_stock(CatalogRepository(session), order)
                return order

        order = await run_with_retry("cancel_order", attempt)
        logger.info("Order cancelled", order_id=order_id, user_id=user_id, reason=reason)
        log_events(order)
        return order

    # -------------------------------------------------------------------------
    # Admin
    # -------------------------------------------------------------------------

    async def list_all_orders(
        self,
        filters: OrderFilters | None = None,
        pagination: PaginationParams | None = None,
    ) -> PaginatedResult[Order]:
        filters = filters or OrderFilters()
        pagination = pagination or PaginationParams()
        async with self.session_factory() as session:
            repo = OrderRepository(session)
            orders = await repo.find_all(filters, limit=pagination.limit, offset=pagination.offset)
            total = await repo.count(filters)
        return PaginatedResult(
            items=orders,
            total=total,
            page=pagination.page,
            page_size=pagination.page_size,
        )

    async def get_any_order(self, order_id: str) -> OrderDetails:
        async with self.session_factory() as session:
            repo = OrderRepository(session)
            order = await repo.get(order_id)
            if order is None:
                raise OrderNotFoundError(order_id)
            history = await repo.get_history(order_id)
        return OrderDetails(order=order, status_history=history)

    async def refund_order(self, order_id: str, reason: str = "", actor: str = "admin") -> Order:
        """Refund a PAID order in full.

        Refunds do not return stock; the goods were sold.

        Raises:
            OrderNotFoundError: If the order does not exist.
            InvalidStateTransitionError: If the order is not PAID.
        """

        async def attempt() -> Order:
            async with self.session_factory.begin() as session:
                repo = OrderRepository(session)
                order = await repo.get(order_id)
                if order is None:
                    raise OrderNotFoundError(order_id)

                order.refund(reason)
                if not await repo.transition(order, OrderStatus.PAID, reason=reason or None, actor=actor):
                    raise TransactionConflictError("refund_order", reason="status changed concurrently")
                return order

        order = await run_with_retry("refund_order", attempt)
        logger.info(
            "Order refunded",
            order_id=order_id,
            refund_amount=order.total_amount.amount,
            actor=actor,
        )
        log_events(order)
        return order

    async def order_stats(self, now: datetime | None = None) -> OrderStats:
        """Compute order totals, revenue and per-status breakdown.

        Revenue counts PAID orders only.
        """
        now = now or datetime.now(timezone.utc)
        async with self.session_factory() as session:
            repo = OrderRepository(session)
            totals = await repo.totals_by_status()
            recent = await repo.count_created_since(now - RECENT_ORDERS_WINDOW)

        by_status = {status.value: StatusTotals() for status in OrderStatus}
        for status, (count, amount) in totals.items():
            by_status[status] = StatusTotals(count=count, amount=amount)

        return OrderStats(
            total_orders=sum(entry.count for entry in by_status.values()),
            total_revenue=by_status[OrderStatus.PAID.value].amount,
            recent_orders=recent,
            by_status=by_status,
        )


def get_order_service(session_factory: async_sessionmaker[AsyncSession]) -> OrderService:
    """Get order service instance.

    Args:
        session_factory: Session factory for the service's transactions.

    Returns:
        OrderService instance.
    """
    return OrderService(session_factory)
