"""Catalog repository for database operations.

Besides plain lookups this repository owns the two stock primitives shared
by checkout and reconciliation. Both are single UPDATE statements whose
condition is evaluated by the database, so concurrent checkouts can never
oversell an item.
"""

from collections.abc import Sequence
from datetime import datetime, timezone

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from checkout_api.catalog.models import CatalogItem


class CatalogRepository:
    """Repository for CatalogItem database operations.

    Example usage:
        async with session_factory.begin() as session:
            repo = CatalogRepository(session)
            if not await repo.conditional_decrement_stock(item_id, 2):
                ...
    """

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository with database session.

        Args:
            session: Async SQLAlchemy session.
        """
        self.session = session

    async def save(self, item: CatalogItem) -> CatalogItem:
        self.session.add(item)
        await self.session.flush()
        return item

    async def get_by_id(self, item_id: str) -> CatalogItem | None:
        result = await self.session.execute(
            select(CatalogItem).where(CatalogItem.id == item_id)
        )
        return result.scalar_one_or_none()

    async def get_active(self, item_id: str) -> CatalogItem | None:
        """Get an item only if it is currently sold."""
        result = await self.session.execute(
            select(CatalogItem).where(
                CatalogItem.id == item_id,
                CatalogItem.is_active.is_(True),
            )
        )
        return result.scalar_one_or_none()

    async def find_all(
        self,
        active_only: bool = False,
        limit: int = 50,
        offset: int = 0,
    ) -> Sequence[CatalogItem]:
        """Find items, newest first.

        Args:
            active_only: Only return items that are currently sold.
            limit: Maximum results.
            offset: Result offset for pagination.

        Returns:
            Sequence of matching items.
        """
        query = select(CatalogItem)
        if active_only:
            query = query.where(CatalogItem.is_active.is_(True))
        query = query.order_by(CatalogItem.created_at.desc(), CatalogItem.id).limit(limit).offset(offset)
        result = await self.session.execute(query)
        return result.scalars().all()

    async def count(self, active_only: bool = False) -> int:
        query = select(func.count(CatalogItem.id))
        if active_only:
            query = query.where(CatalogItem.is_active.is_(True))
        result = await self.session.execute(query)
        return result.scalar_one()

    # -------------------------------------------------------------------------
    # Stock primitives
    # -------------------------------------------------------------------------

    async def conditional_decrement_stock(self, item_id: str, amount: int) -> bool:
        """Decrement stock only if at least ``amount`` units remain.

        Args:
            item_id: Catalog item identifier.
            amount: Units to take.

        Returns:
            True if the row was updated, False if stock was insufficient
            (or the item is gone or inactive).
        """
        result = await self.session.execute(
            update(CatalogItem)
            .where(
                CatalogItem.id == item_id,
                CatalogItem.is_active.is_(True),
                CatalogItem.stock >= amount,
            )
            .values(
                stock=CatalogItem.stock - amount,
                updated_at=datetime.now(timezone.utc),
            )
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def increment_stock(self, item_id: str, amount: int) -> None:
        """Return ``amount`` units to stock (compensation for a decrement)."""
        await self.session.execute(
            update(CatalogItem)
            .where(CatalogItem.id == item_id)
            .values(
                stock=CatalogItem.stock + amount,
                updated_at=datetime.now(timezone.utc),
            )
            .execution_options(synchronize_session=False)
        )
