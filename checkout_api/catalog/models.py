"""SQLAlchemy models for the shop catalog.

Defines the catalog item table that carries price and stock for every
souvenir the shop sells.
"""

from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import Boolean, CheckConstraint, DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from checkout_api.infrastructure.database import Base


class CatalogItem(Base):
    """Catalog item available for purchase.

    Attributes:
        id: Unique item identifier (UUID string).
        name: Display name.
        description: Long description.
        price: Unit price in the currency's smallest unit.
        currency: Currency code.
        stock: Units available; never negative.
        image_url: Product image URL.
        is_active: Whether the item is currently sold.
        created_at: Creation timestamp.
        updated_at: Last update timestamp.
    """

    __tablename__ = "catalog_items"
    __table_args__ = (CheckConstraint("stock >= 0", name="ck_catalog_items_stock_non_negative"),)

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid4()),
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    price: Mapped[int] = mapped_column(Integer, nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="VND")
    stock: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    image_url: Mapped[str | None] = mapped_column(String(1000), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, index=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    def __repr__(self) -> str:
        return f"<CatalogItem {self.id} '{self.name}' stock={self.stock}>"

    def to_dict(self) -> dict:
        """Convert to dictionary for API responses."""
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "price": self.price,
            "currency": self.currency,
            "stock": self.stock,
            "image_url": self.image_url,
            "is_active": self.is_active,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
