"""Catalog service for shop item operations.

High-level service that combines repository operations with the
validation rules of catalog administration.
"""

from dataclasses import dataclass
from typing import Any, Generic, TypeVar

import structlog
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from checkout_api.catalog.models import CatalogItem
from checkout_api.catalog.repository import CatalogRepository
from checkout_api.domain.exceptions import CurrencyMismatchError, ItemNotFoundError
from checkout_api.infrastructure.config import settings

logger = structlog.get_logger()

T = TypeVar("T")

UPDATABLE_FIELDS = ("name", "description", "price", "stock", "image_url", "is_active")


@dataclass
class PaginationParams:
    """Pagination parameters.

    Attributes:
        page: Page number (1-indexed).
        page_size: Items per page.
    """

    page: int = 1
    page_size: int = 20

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size

    @property
    def limit(self) -> int:
        return self.page_size


@dataclass
class PaginatedResult(Generic[T]):
    """Paginated result container."""

    items: list[T]
    total: int
    page: int
    page_size: int

    @property
    def has_more(self) -> bool:
        return self.page * self.page_size < self.total


class CatalogService:
    """Service for catalog administration.

    Price edits only affect future carts and orders; existing order lines
    keep the price captured at purchase time.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self.session_factory = session_factory

    async def list_items(
        self,
        active_only: bool = True,
        pagination: PaginationParams | None = None,
    ) -> PaginatedResult[CatalogItem]:
        pagination = pagination or PaginationParams()
        async with self.session_factory() as session:
            repo = CatalogRepository(session)
            items = await repo.find_all(
                active_only=active_only,
                limit=pagination.limit,
                offset=pagination.offset,
            )
            total = await repo.count(active_only=active_only)
        return PaginatedResult(
            items=list(items),
            total=total,
            page=pagination.page,
            page_size=pagination.page_size,
        )

    async def get_item(self, item_id: str) -> CatalogItem:
        """Get an item by id.

        Raises:
            ItemNotFoundError: If no such item exists.
        """
        async with self.session_factory() as session:
            item = await CatalogRepository(session).get_by_id(item_id)
        if item is None:
            raise ItemNotFoundError(item_id)
        return item

    async def create_item(
        self,
        name: str,
        price: int,
        stock: int,
        description: str | None = None,
        image_url: str | None = None,
        currency: str | None = None,
    ) -> CatalogItem:
        """Create an active item priced in the shop currency.

        Raises:
            CurrencyMismatchError: If ``currency`` is not the shop currency.
        """
        shop_currency = settings.currency.upper()
        currency = (currency or shop_currency).upper()
        if currency != shop_currency:
            raise CurrencyMismatchError(currency, shop_currency)

        async with self.session_factory.begin() as session:
            item = await CatalogRepository(session).save(
                CatalogItem(
                    name=name,
                    description=description,
                    price=price,
                    stock=stock,
                    image_url=image_url,
                    currency=currency,
                    is_active=True,
                )
            )
        logger.info("Catalog item created", item_id=item.id, name=name, stock=stock)
        return item

    async def update_item(self, item_id: str, changes: dict[str, Any]) -> CatalogItem:
        """Apply a partial update to an item.

        Args:
            item_id: Item to update.
            changes: Field values to set; unknown fields are ignored.

        Raises:
            ItemNotFoundError: If no such item exists.
        """
        async with self.session_factory.begin() as session:
            repo = CatalogRepository(session)
            item = await repo.get_by_id(item_id)
            if item is None:
                raise ItemNotFoundError(item_id)
            applied = {}
            for key in UPDATABLE_FIELDS:
                if key in changes and changes[key] is not None:
                    setattr(item, key, changes[key])
                    applied[key] = changes[key]
            await session.flush()
            await session.refresh(item)
        logger.info("Catalog item updated", item_id=item_id, fields=sorted(applied))
        return item
