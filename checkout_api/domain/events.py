"""Domain events for the order lifecycle.

Events are recorded on the Order aggregate as it changes state and are
emitted to the structured log by the application services once the
surrounding transaction has committed.
"""

from dataclasses import dataclass
from typing import Any, ClassVar

from checkout_api.domain.base import DomainEvent


@dataclass(frozen=True)
class OrderCreated(DomainEvent):
    """Event raised when an order is created from a cart snapshot."""

    event_type: ClassVar[str] = "order.created"

    order_id: str = ""
    user_id: str = ""
    total_amount: int = 0
    currency: str = "VND"
    line_count: int = 0
    payment_method: str = ""

    def _payload(self) -> dict[str, Any]:
        return {
            "order_id": self.order_id,
            "user_id": self.user_id,
            "total_amount": self.total_amount,
            "currency": self.currency,
            "line_count": self.line_count,
            "payment_method": self.payment_method,
        }


@dataclass(frozen=True)
class OrderPaid(DomainEvent):
    """Event raised when the payment provider confirms the order."""

    event_type: ClassVar[str] = "order.paid"

    order_id: str = ""
    payment_ref: str = ""

    def _payload(self) -> dict[str, Any]:
        return {"order_id": self.order_id, "payment_ref": self.payment_ref}


@dataclass(frozen=True)
class OrderFailed(DomainEvent):
    """Event raised when the payment provider reports a failed payment."""

    event_type: ClassVar[str] = "order.failed"

    order_id: str = ""
    payment_ref: str | None = None
    reason: str = ""

    def _payload(self) -> dict[str, Any]:
        return {
            "order_id": self.order_id,
            "payment_ref": self.payment_ref,
            "reason": self.reason,
        }


@dataclass(frozen=True)
class OrderCancelled(DomainEvent):
    """Event raised when an order is cancelled."""

    event_type: ClassVar[str] = "order.cancelled"

    order_id: str = ""
    reason: str = ""
    cancelled_by: str = ""  # 'customer', 'gateway', 'admin'

    def _payload(self) -> dict[str, Any]:
        return {
            "order_id": self.order_id,
            "reason": self.reason,
            "cancelled_by": self.cancelled_by,
        }


@dataclass(frozen=True)
class OrderRefunded(DomainEvent):
    """Event raised when a paid order is refunded in full."""

    event_type: ClassVar[str] = "order.refunded"

    order_id: str = ""
    refund_amount: int = 0
    currency: str = "VND"
    reason: str = ""

    def _payload(self) -> dict[str, Any]:
        return {
            "order_id": self.order_id,
            "refund_amount": self.refund_amount,
            "currency": self.currency,
            "reason": self.reason,
        }
