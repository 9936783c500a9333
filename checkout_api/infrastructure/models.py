"""SQLAlchemy models for database tables.

Provides ORM models for cart_items, orders, order_lines and
order_status_history.
"""

from datetime import datetime, timezone
from typing import Any
from uuid import uuid4

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from checkout_api.catalog.models import CatalogItem  # noqa: F401  (cart_items.item target)
from checkout_api.infrastructure.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ============================================================================
# Cart Models
# ============================================================================


class CartItemModel(Base):
    """One line of a user's cart.

    A user has at most one line per catalog item; adding the same item
    again increases the quantity of the existing line.
    """

    __tablename__ = "cart_items"
    __table_args__ = (
        UniqueConstraint("user_id", "item_id", name="uq_cart_items_user_item"),
        CheckConstraint("quantity >= 1", name="ck_cart_items_quantity_positive"),
    )

    id = Column(String(36), primary_key=True, default=lambda: str(uuid4()))
    user_id = Column(String(100), nullable=False, index=True)
    item_id = Column(
        String(36),
        ForeignKey("catalog_items.id", ondelete="CASCADE"),
        nullable=False,
    )
    quantity = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        onupdate=_utcnow,
    )

    item = relationship("CatalogItem", lazy="joined")

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "user_id": self.user_id,
            "item_id": self.item_id,
            "quantity": self.quantity,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


# ============================================================================
# Order Models
# ============================================================================


class OrderModel(Base):
    """Order model for database persistence.

    Represents an order created from a cart snapshot. Tracks the payment
    lifecycle from PENDING to PAID, CANCELLED, FAILED or REFUNDED.
    """

    __tablename__ = "orders"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid4()))
    user_id = Column(String(100), nullable=False, index=True)
    status = Column(String(20), nullable=False, default="pending", index=True)

    # Totals
    total_amount = Column(Integer, nullable=False)
    currency = Column(String(3), nullable=False, default="VND")

    # Payment
    payment_method = Column(String(50), nullable=False)
    payment_ref = Column(String(100), nullable=True, index=True)

    # Cancellation
    cancelled_reason = Column(Text, nullable=True)

    # Timestamps
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, index=True)
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        onupdate=_utcnow,
    )

    # Relationships
    lines = relationship(
        "OrderLineModel",
        back_populates="order",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="OrderLineModel.position",
    )
    status_history = relationship(
        "OrderStatusHistoryModel",
        back_populates="order",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="OrderStatusHistoryModel.sequence",
    )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "user_id": self.user_id,
            "status": self.status,
            "total_amount": self.total_amount,
            "currency": self.currency,
            "payment_method": self.payment_method,
            "payment_ref": self.payment_ref,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }


class OrderLineModel(Base):
    """Order line model for database persistence.

    Captures the item name and unit price at the instant of purchase.
    Rows are never updated.
    """

    __tablename__ = "order_lines"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid4()))
    order_id = Column(
        String(36),
        ForeignKey("orders.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    position = Column(Integer, nullable=False, default=0)
    item_id = Column(String(36), nullable=False, index=True)
    item_name = Column(String(255), nullable=False)
    quantity = Column(Integer, nullable=False)
    unit_price_at_purchase = Column(Integer, nullable=False)
    currency = Column(String(3), nullable=False, default="VND")

    # Relationships
    order = relationship("OrderModel", back_populates="lines")

    @property
    def line_total(self) -> int:
        return self.unit_price_at_purchase * self.quantity

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "item_id": self.item_id,
            "item_name": self.item_name,
            "quantity": self.quantity,
            "unit_price_at_purchase": self.unit_price_at_purchase,
            "line_total": self.line_total,
            "currency": self.currency,
        }


class OrderStatusHistoryModel(Base):
    """Order status history model for audit trail.

    Tracks all status transitions for an order.
    """

    __tablename__ = "order_status_history"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid4()))
    order_id = Column(
        String(36),
        ForeignKey("orders.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    sequence = Column(Integer, nullable=False, default=0)
    from_status = Column(String(20), nullable=True)
    to_status = Column(String(20), nullable=False)
    reason = Column(Text, nullable=True)
    actor = Column(String(100), nullable=True)
    provider_txn_id = Column(String(100), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    # Relationships
    order = relationship("OrderModel", back_populates="status_history")

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "from_status": self.from_status,
            "to_status": self.to_status,
            "reason": self.reason,
            "actor": self.actor,
            "provider_txn_id": self.provider_txn_id,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
