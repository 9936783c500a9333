#!/usr/bin/env python3
"""Seed the souvenir catalog.

Creates the tables if needed and inserts a small set of souvenir items.

Usage:
    python scripts/seed_catalog.py
    python scripts/seed_catalog.py --stock 5 --no-create-tables
"""

import argparse
import asyncio

import structlog

from checkout_api.catalog.service import CatalogService
from checkout_api.infrastructure import models  # noqa: F401  (register tables)
from checkout_api.infrastructure.config import settings
from checkout_api.infrastructure.database import Base, async_session_factory, engine
from checkout_api.infrastructure.logging import configure_logging

logger = structlog.get_logger()

SOUVENIRS = [
    ("Logo Mug", "Ceramic mug with the site logo", 120000),
    ("Notebook A5", "Dotted notebook, 120 pages", 65000),
    ("Tote Bag", "Canvas tote bag", 150000),
    ("Sticker Pack", "Ten vinyl stickers", 30000),
    ("Hoodie", "Cotton hoodie, unisex", 450000),
    ("Pen Set", "Three gel pens", 45000),
]


async def create_tables() -> None:
    """Create database tables if they don't exist."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def seed(stock: int) -> int:
    """Insert the souvenir items.

    Args:
        stock: Initial stock for every item.

    Returns:
        Number of items created.
    """
    service = CatalogService(async_session_factory)
    for name, description, price in SOUVENIRS:
        await service.create_item(
            name=name,
            description=description,
            price=price,
            stock=stock,
            currency=settings.currency,
        )
    return len(SOUVENIRS)


async def main() -> None:
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Seed the souvenir catalog")
    parser.add_argument(
        "--stock",
        type=int,
        default=50,
        help="Initial stock for every item (default: 50)",
    )
    parser.add_argument(
        "--no-create-tables",
        action="store_true",
        help="Assume the schema already exists (e.g. created by alembic)",
    )
    args = parser.parse_args()

    configure_logging(settings.log_level, json_logs=False)

    if not args.no_create_tables:
        await create_tables()

    created = await seed(args.stock)
    logger.info("Catalog seeded", items=created, stock=args.stock)

    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
