"""Tests for the cart service."""

import pytest
from sqlalchemy import update

from checkout_api.application.cart_service import CartService
from checkout_api.catalog.models import CatalogItem
from checkout_api.domain import Money
from checkout_api.domain.entities import MAX_LINE_QUANTITY
from checkout_api.domain.exceptions import (
    CartItemNotFoundError,
    CurrencyMismatchError,
    InvalidQuantityError,
    ItemNotFoundError,
)


@pytest.fixture
def cart(session_factory) -> CartService:
    return CartService(session_factory)


class TestAddItem:
    """Tests for adding items to the cart."""

    @pytest.mark.asyncio
    async def test_add_then_get(self, cart: CartService, catalog) -> None:
        mug = await catalog.create_item(name="Mug", price=50000, stock=10)

        line = await cart.add_item("user-1", mug.id, 2)
        view = await cart.get_cart("user-1")

        assert line.quantity == 2
        assert view.count == 1
        assert view.lines[0].name == "Mug"
        assert view.total == Money(100000)

    @pytest.mark.asyncio
    async def test_adding_again_accumulates(self, cart: CartService, catalog) -> None:
        mug = await catalog.create_item(name="Mug", price=50000, stock=10)

        await cart.add_item("user-1", mug.id, 2)
        await cart.add_item("user-1", mug.id, 3)
        view = await cart.get_cart("user-1")

        assert view.count == 1
        assert view.lines[0].quantity == 5

    @pytest.mark.asyncio
    async def test_add_does_not_check_stock(self, cart: CartService, catalog) -> None:
        """Stock is validated when the order is created, not at add time."""
        pen = await catalog.create_item(name="Pen", price=15000, stock=1)

        line = await cart.add_item("user-1", pen.id, 5)

        assert line.quantity == 5
        assert not line.is_available
        assert (await catalog.get_item(pen.id)).stock == 1

    @pytest.mark.asyncio
    @pytest.mark.parametrize("quantity", [0, -1])
    async def test_non_positive_quantity_rejected(self, cart: CartService, catalog, quantity: int) -> None:
        mug = await catalog.create_item(name="Mug", price=50000, stock=10)
        with pytest.raises(InvalidQuantityError):
            await cart.add_item("user-1", mug.id, quantity)

    @pytest.mark.asyncio
    async def test_quantity_above_line_limit_rejected(self, cart: CartService, catalog) -> None:
        mug = await catalog.create_item(name="Mug", price=50000, stock=10)
        with pytest.raises(InvalidQuantityError):
            await cart.add_item("user-1", mug.id, 2**63)

        assert await cart.get_cart_count("user-1") == 0

    @pytest.mark.asyncio
    async def test_merge_above_line_limit_rejected(self, cart: CartService, catalog) -> None:
        """Adding to an existing line may not push it past the limit."""
        mug = await catalog.create_item(name="Mug", price=50000, stock=10)
        await cart.add_item("user-1", mug.id, MAX_LINE_QUANTITY)

        with pytest.raises(InvalidQuantityError):
            await cart.add_item("user-1", mug.id, 1)

        assert (await cart.get_cart("user-1")).lines[0].quantity == MAX_LINE_QUANTITY

    @pytest.mark.asyncio
    async def test_foreign_currency_item_rejected(self, cart: CartService, catalog, session_factory) -> None:
        mug = await catalog.create_item(name="Mug", price=50000, stock=10)
        fan = await catalog.create_item(name="Fan", price=30000, stock=10)
        async with session_factory.begin() as session:
            await session.execute(update(CatalogItem).where(CatalogItem.id == fan.id).values(currency="USD"))
        await cart.add_item("user-1", mug.id, 1)

        with pytest.raises(CurrencyMismatchError):
            await cart.add_item("user-1", fan.id, 1)

        view = await cart.get_cart("user-1")
        assert view.count == 1
        assert view.total == Money(50000)

    @pytest.mark.asyncio
    async def test_unknown_item_rejected(self, cart: CartService) -> None:
        with pytest.raises(ItemNotFoundError):
            await cart.add_item("user-1", "no-such-item", 1)

    @pytest.mark.asyncio
    async def test_inactive_item_rejected(self, cart: CartService, catalog) -> None:
        mug = await catalog.create_item(name="Mug", price=50000, stock=10)
        await catalog.update_item(mug.id, {"is_active": False})

        with pytest.raises(ItemNotFoundError):
            await cart.add_item("user-1", mug.id, 1)

    @pytest.mark.asyncio
    async def test_carts_are_per_user(self, cart: CartService, catalog) -> None:
        mug = await catalog.create_item(name="Mug", price=50000, stock=10)
        await cart.add_item("user-1", mug.id, 1)

        assert await cart.get_cart_count("user-1") == 1
        assert await cart.get_cart_count("user-2") == 0


class TestGetCart:
    """Tests for reading the cart."""

    @pytest.mark.asyncio
    async def test_empty_cart(self, cart: CartService) -> None:
        view = await cart.get_cart("user-1")
        assert view.lines == []
        assert view.count == 0
        assert view.total.is_zero()

    @pytest.mark.asyncio
    async def test_reflects_current_catalog_price(self, cart: CartService, catalog) -> None:
        mug = await catalog.create_item(name="Mug", price=50000, stock=10)
        await cart.add_item("user-1", mug.id, 2)

        await catalog.update_item(mug.id, {"price": 60000})
        view = await cart.get_cart("user-1")

        assert view.total == Money(120000)

    @pytest.mark.asyncio
    async def test_count(self, cart: CartService, catalog) -> None:
        mug = await catalog.create_item(name="Mug", price=50000, stock=10)
        pen = await catalog.create_item(name="Pen", price=15000, stock=10)
        await cart.add_item("user-1", mug.id, 2)
        await cart.add_item("user-1", pen.id, 4)

        assert await cart.get_cart_count("user-1") == 2


class TestUpdateAndRemove:
    """Tests for changing and removing cart lines."""

    @pytest.mark.asyncio
    async def test_update_quantity(self, cart: CartService, catalog) -> None:
        mug = await catalog.create_item(name="Mug", price=50000, stock=10)
        await cart.add_item("user-1", mug.id, 2)

        line = await cart.update_quantity("user-1", mug.id, 7)

        assert line is not None
        assert line.quantity == 7

    @pytest.mark.asyncio
    async def test_update_to_zero_removes(self, cart: CartService, catalog) -> None:
        mug = await catalog.create_item(name="Mug", price=50000, stock=10)
        await cart.add_item("user-1", mug.id, 2)

        assert await cart.update_quantity("user-1", mug.id, 0) is None
        assert await cart.get_cart_count("user-1") == 0

    @pytest.mark.asyncio
    async def test_update_negative_rejected(self, cart: CartService, catalog) -> None:
        mug = await catalog.create_item(name="Mug", price=50000, stock=10)
        await cart.add_item("user-1", mug.id, 2)

        with pytest.raises(InvalidQuantityError):
            await cart.update_quantity("user-1", mug.id, -3)

    @pytest.mark.asyncio
    async def test_update_above_line_limit_rejected(self, cart: CartService, catalog) -> None:
        mug = await catalog.create_item(name="Mug", price=50000, stock=10)
        await cart.add_item("user-1", mug.id, 2)

        with pytest.raises(InvalidQuantityError):
            await cart.update_quantity("user-1", mug.id, MAX_LINE_QUANTITY + 1)

        assert (await cart.get_cart("user-1")).lines[0].quantity == 2

    @pytest.mark.asyncio
    async def test_update_missing_line(self, cart: CartService, catalog) -> None:
        mug = await catalog.create_item(name="Mug", price=50000, stock=10)
        with pytest.raises(CartItemNotFoundError):
            await cart.update_quantity("user-1", mug.id, 1)

    @pytest.mark.asyncio
    async def test_remove_item(self, cart: CartService, catalog) -> None:
        mug = await catalog.create_item(name="Mug", price=50000, stock=10)
        await cart.add_item("user-1", mug.id, 2)

        await cart.remove_item("user-1", mug.id)

        assert await cart.get_cart_count("user-1") == 0

    @pytest.mark.asyncio
    async def test_remove_missing_line(self, cart: CartService) -> None:
        with pytest.raises(CartItemNotFoundError):
            await cart.remove_item("user-1", "no-such-item")

    @pytest.mark.asyncio
    async def test_clear_cart(self, cart: CartService, catalog) -> None:
        mug = await catalog.create_item(name="Mug", price=50000, stock=10)
        pen = await catalog.create_item(name="Pen", price=15000, stock=10)
        await cart.add_item("user-1", mug.id, 1)
        await cart.add_item("user-1", pen.id, 1)
        await cart.add_item("user-2", pen.id, 1)

        assert await cart.clear_cart("user-1") == 2
        assert await cart.get_cart_count("user-1") == 0
        assert await cart.get_cart_count("user-2") == 1
