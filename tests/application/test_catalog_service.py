"""Tests for catalog administration."""

import pytest

from checkout_api.catalog.service import CatalogService, PaginationParams
from checkout_api.domain.exceptions import CurrencyMismatchError, ItemNotFoundError


class TestCatalogService:
    """Tests for CatalogService."""

    @pytest.mark.asyncio
    async def test_create_and_get(self, catalog: CatalogService) -> None:
        created = await catalog.create_item(
            name="Lacquer Box",
            price=320000,
            stock=4,
            description="Hand-painted lacquerware",
        )

        item = await catalog.get_item(created.id)

        assert item.name == "Lacquer Box"
        assert item.price == 320000
        assert item.stock == 4
        assert item.currency == "VND"
        assert item.is_active

    @pytest.mark.asyncio
    async def test_get_unknown(self, catalog: CatalogService) -> None:
        with pytest.raises(ItemNotFoundError):
            await catalog.get_item("no-such-item")

    @pytest.mark.asyncio
    async def test_update_partial(self, catalog: CatalogService) -> None:
        created = await catalog.create_item(name="Mug", price=50000, stock=10)

        updated = await catalog.update_item(created.id, {"price": 55000, "name": None, "bogus": 1})

        assert updated.price == 55000
        assert updated.name == "Mug"

    @pytest.mark.asyncio
    async def test_update_unknown(self, catalog: CatalogService) -> None:
        with pytest.raises(ItemNotFoundError):
            await catalog.update_item("no-such-item", {"price": 1})

    @pytest.mark.asyncio
    async def test_list_hides_inactive(self, catalog: CatalogService) -> None:
        await catalog.create_item(name="Mug", price=50000, stock=10)
        hat = await catalog.create_item(name="Conical Hat", price=80000, stock=3)
        await catalog.update_item(hat.id, {"is_active": False})

        active = await catalog.list_items()
        everything = await catalog.list_items(active_only=False)

        assert [item.name for item in active.items] == ["Mug"]
        assert everything.total == 2

    @pytest.mark.asyncio
    async def test_list_pagination(self, catalog: CatalogService) -> None:
        for n in range(5):
            await catalog.create_item(name=f"Postcard {n}", price=10000, stock=10)

        page = await catalog.list_items(pagination=PaginationParams(page=2, page_size=2))

        assert page.total == 5
        assert len(page.items) == 2
        assert page.has_more

    @pytest.mark.asyncio
    async def test_create_in_shop_currency_any_case(self, catalog: CatalogService) -> None:
        created = await catalog.create_item(name="Mug", price=50000, stock=10, currency="vnd")

        assert created.currency == "VND"

    @pytest.mark.asyncio
    async def test_create_in_foreign_currency_rejected(self, catalog: CatalogService) -> None:
        with pytest.raises(CurrencyMismatchError):
            await catalog.create_item(name="Mug", price=5, stock=10, currency="USD")

        assert (await catalog.list_items(active_only=False)).total == 0
