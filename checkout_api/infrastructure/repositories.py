"""Repositories for carts and orders.

Translate between the ORM rows in ``infrastructure.models`` and the domain
objects used by the application services. Repositories never commit; the
caller owns the transaction.
"""

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from checkout_api.domain.entities import Order, OrderLine
from checkout_api.domain.state_machines import OrderStatus
from checkout_api.domain.value_objects import Money, OrderId
from checkout_api.infrastructure.models import (
    CartItemModel,
    OrderLineModel,
    OrderModel,
    OrderStatusHistoryModel,
)


def _aware(value: datetime) -> datetime:
    # SQLite hands back naive datetimes
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


# ============================================================================
# Cart Repository
# ============================================================================


class CartRepository:
    """Repository for a user's cart lines."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get_line(self, user_id: str, item_id: str) -> CartItemModel | None:
        result = await self.session.execute(
            select(CartItemModel).where(
                CartItemModel.user_id == user_id,
                CartItemModel.item_id == item_id,
            )
        )
        return result.unique().scalar_one_or_none()

    async def list_lines(self, user_id: str) -> Sequence[CartItemModel]:
        """Get the user's lines joined with their catalog items, newest first."""
        result = await self.session.execute(
            select(CartItemModel)
            .where(CartItemModel.user_id == user_id)
            .order_by(CartItemModel.created_at.desc(), CartItemModel.id)
        )
        return result.unique().scalars().all()

    async def count_lines(self, user_id: str) -> int:
        result = await self.session.execute(
            select(func.count(CartItemModel.id)).where(CartItemModel.user_id == user_id)
        )
        return result.scalar_one()

    async def add_quantity(self, user_id: str, item_id: str, quantity: int) -> CartItemModel:
        """Insert a line or add ``quantity`` to the existing one.

        A concurrent insert of the same line fails on the unique constraint
        at flush time.
        """
        line = await self.get_line(user_id, item_id)
        if line is None:
            line = CartItemModel(user_id=user_id, item_id=item_id, quantity=quantity)
            self.session.add(line)
        else:
            line.quantity = line.quantity + quantity
        await self.session.flush()
        return line

    async def delete_line(self, line: CartItemModel) -> None:
        await self.session.delete(line)
        await self.session.flush()

    async def clear(self, user_id: str) -> int:
        """Delete every line of the user's cart.

        Returns:
            Number of lines removed.
        """
        result = await self.session.execute(
            delete(CartItemModel)
            .where(CartItemModel.user_id == user_id)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount


# ============================================================================
# Order Repository
# ============================================================================


@dataclass
class OrderFilters:
    """Filters for order listing (admin)."""

    status: OrderStatus | None = None
    user_id: str | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None

    def apply(self, query: Any) -> Any:
        if self.status is not None:
            query = query.where(OrderModel.status == self.status.value)
        if self.user_id:
            query = query.where(OrderModel.user_id == self.user_id)
        if self.start_date is not None:
            query = query.where(OrderModel.created_at >= self.start_date)
        if self.end_date is not None:
            query = query.where(OrderModel.created_at <= self.end_date)
        return query


class OrderRepository:
    """Repository for the Order aggregate.

    Status changes go through ``transition``, a conditional update on the
    expected current status followed by an audit history row.
    """

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    # -------------------------------------------------------------------------
    # Mapping
    # -------------------------------------------------------------------------

    @staticmethod
    def to_domain(model: OrderModel) -> Order:
        return Order(
            id=OrderId.from_string(model.id),
            user_id=model.user_id,
            total_amount=Money(model.total_amount, model.currency),
            payment_method=model.payment_method,
            status=OrderStatus(model.status),
            lines=[
                OrderLine(
                    item_id=line.item_id,
                    item_name=line.item_name,
                    quantity=line.quantity,
                    unit_price_at_purchase=Money(line.unit_price_at_purchase, line.currency),
                )
                for line in model.lines
            ],
            payment_ref=model.payment_ref,
            cancelled_reason=model.cancelled_reason,
            created_at=_aware(model.created_at),
            updated_at=_aware(model.updated_at),
        )

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    async def add(self, order: Order, actor: str | None = None) -> None:
        """Insert a new order with its lines and the initial history entry."""
        model = OrderModel(
            id=str(order.id),
            user_id=order.user_id,
            status=order.status.value,
            total_amount=order.total_amount.amount,
            currency=order.total_amount.currency,
            payment_method=order.payment_method,
            payment_ref=order.payment_ref,
            created_at=order.created_at,
            updated_at=order.updated_at,
        )
        model.lines = [
            OrderLineModel(
                position=position,
                item_id=line.item_id,
                item_name=line.item_name,
                quantity=line.quantity,
                unit_price_at_purchase=line.unit_price_at_purchase.amount,
                currency=line.unit_price_at_purchase.currency,
            )
            for position, line in enumerate(order.lines)
        ]
        model.status_history = [
            OrderStatusHistoryModel(
                sequence=0,
                from_status=None,
                to_status=order.status.value,
                reason="Order created",
                actor=actor,
            )
        ]
        self.session.add(model)
        await self.session.flush()

    async def transition(
        self,
        order: Order,
        expected_status: OrderStatus,
        reason: str | None = None,
        actor: str | None = None,
        provider_txn_id: str | None = None,
    ) -> bool:
        """Persist ``order``'s new status if the row is still in ``expected_status``.

        Args:
            order: Order already moved to its new status in memory.
            expected_status: Status the row must currently have.
            reason: History reason.
            actor: Who caused the transition.
            provider_txn_id: Provider transaction, for payment transitions.

        Returns:
            True if the row was updated, False if another transaction moved
            it first.
        """
        result = await self.session.execute(
            update(OrderModel)
            .where(
                OrderModel.id == str(order.id),
                OrderModel.status == expected_status.value,
            )
            .values(
                status=order.status.value,
                payment_ref=order.payment_ref,
                cancelled_reason=order.cancelled_reason,
                updated_at=order.updated_at,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            return False

        next_sequence = await self.session.execute(
            select(func.coalesce(func.max(OrderStatusHistoryModel.sequence), -1) + 1).where(
                OrderStatusHistoryModel.order_id == str(order.id)
            )
        )
        self.session.add(
            OrderStatusHistoryModel(
                order_id=str(order.id),
                sequence=next_sequence.scalar_one(),
                from_status=expected_status.value,
                to_status=order.status.value,
                reason=reason,
                actor=actor,
                provider_txn_id=provider_txn_id,
            )
        )
        await self.session.flush()
        return True

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    async def get(self, order_id: str) -> Order | None:
        model = await self.session.get(OrderModel, order_id)
        return self.to_domain(model) if model else None

    async def get_for_user(self, user_id: str, order_id: str) -> Order | None:
        """Get an order only if it belongs to ``user_id``."""
        result = await self.session.execute(
            select(OrderModel).where(
                OrderModel.id == order_id,
                OrderModel.user_id == user_id,
            )
        )
        model = result.scalar_one_or_none()
        return self.to_domain(model) if model else None

    async def get_history(self, order_id: str) -> list[dict[str, Any]]:
        result = await self.session.execute(
            select(OrderStatusHistoryModel)
            .where(OrderStatusHistoryModel.order_id == order_id)
            .order_by(OrderStatusHistoryModel.sequence)
        )
        return [entry.to_dict() for entry in result.scalars().all()]

    async def list_for_user(self, user_id: str) -> list[Order]:
        result = await self.session.execute(
            select(OrderModel)
            .where(OrderModel.user_id == user_id)
            .order_by(OrderModel.created_at.desc(), OrderModel.id)
        )
        return [self.to_domain(model) for model in result.scalars().all()]

    async def find_all(
        self,
        filters: OrderFilters,
        limit: int = 20,
        offset: int = 0,
    ) -> list[Order]:
        query = filters.apply(select(OrderModel))
        query = query.order_by(OrderModel.created_at.desc(), OrderModel.id).limit(limit).offset(offset)
        result = await self.session.execute(query)
        return [self.to_domain(model) for model in result.scalars().all()]

    async def count(self, filters: OrderFilters) -> int:
        result = await self.session.execute(filters.apply(select(func.count(OrderModel.id))))
        return result.scalar_one()

    async def totals_by_status(self) -> dict[str, tuple[int, int]]:
        """Get ``{status: (order_count, amount)}`` over all orders."""
        result = await self.session.execute(
            select(
                OrderModel.status,
                func.count(OrderModel.id),
                func.coalesce(func.sum(OrderModel.total_amount), 0),
            ).group_by(OrderModel.status)
        )
        return {status: (count, int(amount)) for status, count, amount in result.all()}

    async def count_created_since(self, since: datetime) -> int:
        result = await self.session.execute(
            select(func.count(OrderModel.id)).where(OrderModel.created_at >= since)
        )
        return result.scalar_one()
