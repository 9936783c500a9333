"""Cart application service.

The cart is server-authoritative: it is the only source for what becomes an
order. Adding items checks that the item is sold but never checks or
reserves stock; that happens when the order is created.
"""

from dataclasses import dataclass, field

import structlog
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from checkout_api.catalog.models import CatalogItem
from checkout_api.catalog.repository import CatalogRepository
from checkout_api.domain.entities import MAX_LINE_QUANTITY, CartLine
from checkout_api.domain.exceptions import (
    CartItemNotFoundError,
    CurrencyMismatchError,
    InvalidQuantityError,
    ItemNotFoundError,
)
from checkout_api.domain.value_objects import Money
from checkout_api.infrastructure.config import settings
from checkout_api.infrastructure.models import CartItemModel
from checkout_api.infrastructure.repositories import CartRepository
from checkout_api.infrastructure.transactions import run_with_retry

logger = structlog.get_logger()


# ============================================================================
# Cart Data Transfer Objects
# ============================================================================


@dataclass
class CartView:
    """A user's cart as shown to the shopper."""

    user_id: str
    lines: list[CartLine] = field(default_factory=list)
    currency: str = "VND"

    @property
    def total(self) -> Money:
        total = Money.zero(self.currency)
        for line in self.lines:
            total = total + line.line_total
        return total

    @property
    def count(self) -> int:
        return len(self.lines)


def check_line_quantity(quantity: int) -> None:
    if quantity > MAX_LINE_QUANTITY:
        raise InvalidQuantityError(quantity, reason=f"Quantity cannot exceed {MAX_LINE_QUANTITY}")


def to_cart_line(row: CartItemModel, item: CatalogItem | None = None) -> CartLine:
    """Join a cart row with the catalog data current at read time."""
    item = item or row.item
    return CartLine(
        item_id=row.item_id,
        quantity=row.quantity,
        name=item.name,
        unit_price=Money(item.price, item.currency),
        stock=item.stock,
        is_active=item.is_active,
    )


# ============================================================================
# Cart Service
# ============================================================================


class CartService:
    """Application service for a user's cart.

    Every mutation runs in its own transaction and is retried when a
    concurrent edit of the same line collides.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self.session_factory = session_factory

    async def add_item(self, user_id: str, item_id: str, quantity: int) -> CartLine:
        """Add ``quantity`` units of an item, merging with an existing line.

        Args:
            user_id: Cart owner.
            item_id: Catalog item to add.
            quantity: Units to add (at least 1).

        Returns:
            The resulting cart line.

        Raises:
            InvalidQuantityError: If quantity < 1 or the merged line would
                exceed MAX_LINE_QUANTITY.
            ItemNotFoundError: If the item does not exist or is not sold.
            CurrencyMismatchError: If the item is not priced in the shop currency.
        """
        if quantity < 1:
            raise InvalidQuantityError(quantity)
        check_line_quantity(quantity)

        async def attempt() -> CartLine:
            async with self.session_factory.begin() as session:
                item = await CatalogRepository(session).get_active(item_id)
                if item is None:
                    raise ItemNotFoundError(item_id)
                if item.currency != settings.currency.upper():
                    raise CurrencyMismatchError(item.currency, settings.currency.upper())

                cart = CartRepository(session)
                existing = await cart.get_line(user_id, item_id)
                if existing is not None:
                    check_line_quantity(existing.quantity + quantity)
                row = await cart.add_quantity(user_id, item_id, quantity)
                return to_cart_line(row, item)

        line = await run_with_retry("add_to_cart", attempt)
        logger.info(
            "Item added to cart",
            user_id=user_id,
            item_id=item_id,
            added=quantity,
            quantity=line.quantity,
        )
        return line

    async def get_cart(self, user_id: str) -> CartView:
        async with self.session_factory() as session:
            rows = await CartRepository(session).list_lines(user_id)
            lines = [to_cart_line(row) for row in rows]
        currency = lines[0].unit_price.currency if lines else settings.currency
        return CartView(user_id=user_id, lines=lines, currency=currency)

    async def get_cart_count(self, user_id: str) -> int:
        async with self.session_factory() as session:
            return await CartRepository(session).count_lines(user_id)

    async def update_quantity(self, user_id: str, item_id: str, quantity: int) -> CartLine | None:
        """Set a line's quantity.

        A quantity of 0 removes the line.

        Returns:
            The updated line, or None if it was removed.

        Raises:
            InvalidQuantityError: If quantity is negative or above MAX_LINE_QUANTITY.
            CartItemNotFoundError: If the item is not in the cart.
        """
        if quantity < 0:
            raise InvalidQuantityError(quantity, reason="Quantity cannot be negative")
        check_line_quantity(quantity)
        if quantity == 0:
            await self.remove_item(user_id, item_id)
            return None

        async def attempt() -> CartLine:
            async with self.session_factory.begin() as session:
                row = await CartRepository(session).get_line(user_id, item_id)
                if row is None:
                    raise CartItemNotFoundError(user_id, item_id)
                row.quantity = quantity
                await session.flush()
                return to_cart_line(row)

        line = await run_with_retry("update_cart_item", attempt)
        logger.info("Cart item updated", user_id=user_id, item_id=item_id, quantity=quantity)
        return line

    async def remove_item(self, user_id: str, item_id: str) -> None:
        """Remove a line from the cart.

        Raises:
            CartItemNotFoundError: If the item is not in the cart.
        """
        async with self.session_factory.begin() as session:
            repo = CartRepository(session)
            row = await repo.get_line(user_id, item_id)
            if row is None:
                raise CartItemNotFoundError(user_id, item_id)
            await repo.delete_line(row)
        logger.info("Cart item removed", user_id=user_id, item_id=item_id)

    async def clear_cart(self, user_id: str) -> int:
        async with self.session_factory.begin() as session:
            removed = await CartRepository(session).clear(user_id)
        logger.info("Cart cleared", user_id=user_id, removed=removed)
        return removed


def get_cart_service(session_factory: async_sessionmaker[AsyncSession]) -> CartService:
    """Get cart service instance.

    Args:
        session_factory: Session factory for the service's transactions.

    Returns:
        CartService instance.
    """
    return CartService(session_factory)
