"""Domain entities for the checkout flow.

Entities are domain objects with identity that persists across state changes.
This module contains the cart line snapshot used at checkout time and the
Order aggregate with its immutable order lines.
"""

from dataclasses import dataclass, field
from enum import Enum

from checkout_api.domain.base import AggregateRoot
from checkout_api.domain.events import (
    OrderCancelled,
    OrderCreated,
    OrderFailed,
    OrderPaid,
    OrderRefunded,
)
from checkout_api.domain.exceptions import (
    ConflictingVerdictError,
    EmptyCartError,
    InvalidQuantityError,
    OrderNotCancellableError,
)
from checkout_api.domain.state_machines import (
    OrderStatus,
    PaymentVerdict,
    validate_order_transition,
)
from checkout_api.domain.value_objects import Money, OrderId

# Most units of one item a cart line or order line may hold
MAX_LINE_QUANTITY = 999


# ============================================================================
# Cart Line Snapshot
# ============================================================================


@dataclass(frozen=True)
class CartLine:
    """One cart line joined with the catalog data current at read time.

    Attributes:
        item_id: Catalog item identifier.
        quantity: Number of units in the cart.
        name: Catalog display name.
        unit_price: Current catalog price per unit.
        stock: Current catalog stock.
        is_active: Whether the catalog item is still sold.
    """

    item_id: str
    quantity: int
    name: str
    unit_price: Money
    stock: int = 0
    is_active: bool = True

    def __post_init__(self) -> None:
        if self.quantity < 1:
            raise InvalidQuantityError(self.quantity)

    @property
    def line_total(self) -> Money:
        return self.unit_price * self.quantity

    @property
    def is_available(self) -> bool:
        """Check if the line could be ordered right now."""
        return self.is_active and self.stock >= self.quantity


# ============================================================================
# Order Aggregate Root
# ============================================================================


@dataclass(frozen=True)
class OrderLine:
    """A purchased item within an order.

    Order lines are immutable snapshots of cart lines taken at the instant
    the order is created, so later catalog price changes never alter a
    historical total.
    """

    item_id: str
    item_name: str
    quantity: int
    unit_price_at_purchase: Money

    @property
    def line_total(self) -> Money:
        return self.unit_price_at_purchase * self.quantity

    @classmethod
    def from_cart_line(cls, line: CartLine) -> "OrderLine":
        return cls(
            item_id=line.item_id,
            item_name=line.name,
            quantity=line.quantity,
            unit_price_at_purchase=line.unit_price,
        )


class VerdictOutcome(str, Enum):
    """How a verified payment verdict relates to the order's current state."""

    APPLY = "apply"
    DUPLICATE = "duplicate"


@dataclass(kw_only=True)
class Order(AggregateRoot[OrderId]):
    """Order aggregate root.

    Orders are created from a cart snapshot in PENDING and are afterwards
    moved only by the payment reconciler, by their owner's cancellation
    while still PENDING, or by a whole-order refund.

    Attributes:
        id: Unique order identifier.
        user_id: Owner of the order.
        status: Current order status.
        lines: Immutable order lines.
        total_amount: Order total fixed at creation time.
        payment_method: Payment method chosen at checkout.
        payment_ref: Provider transaction id once known.
        cancelled_reason: Reason if cancelled or failed.
    """

    id: OrderId
    user_id: str
    total_amount: Money
    payment_method: str
    status: OrderStatus = OrderStatus.PENDING
    lines: list[OrderLine] = field(default_factory=list)
    payment_ref: str | None = None
    cancelled_reason: str | None = None

    @classmethod
    def create_from_cart(
        cls,
        user_id: str,
        cart_lines: list[CartLine],
        payment_method: str,
        order_id: OrderId | None = None,
    ) -> "Order":
        """Create a PENDING order from a cart snapshot.

        Args:
            user_id: Owner of the cart.
            cart_lines: Cart lines as read from the store at checkout time.
            payment_method: Payment method chosen by the shopper.
            order_id: Optional pre-generated order ID.

        Returns:
            New Order instance.

        Raises:
            EmptyCartError: If there are no lines.
        """
        if not cart_lines:
            raise EmptyCartError(user_id)

        lines = [OrderLine.from_cart_line(line) for line in cart_lines]
        total = Money.zero(lines[0].unit_price_at_purchase.currency)
        for line in lines:
            total = total + line.line_total

        order = cls(
            id=order_id or OrderId.generate(),
            user_id=user_id,
            total_amount=total,
            payment_method=payment_method,
            lines=lines,
        )
        order._record_event(
            OrderCreated(
                aggregate_id=str(order.id),
                order_id=str(order.id),
                user_id=user_id,
                total_amount=total.amount,
                currency=total.currency,
                line_count=len(lines),
                payment_method=payment_method,
            )
        )
        return order

    # -------------------------------------------------------------------------
    # Query Methods
    # -------------------------------------------------------------------------

    @property
    def item_count(self) -> int:
        return sum(line.quantity for line in self.lines)

    def classify_verdict(
        self,
        verdict: PaymentVerdict,
        provider_txn_id: str,
        amount: int | None = None,
    ) -> VerdictOutcome:
        """Decide whether a verified verdict should be applied.

        Args:
            verdict: Normalized provider verdict.
            provider_txn_id: Provider transaction identifier.
            amount: Amount reported by the provider, if any.

        Returns:
            APPLY for a PENDING order, DUPLICATE for a re-delivery that
            agrees with the state already applied.

        Raises:
            ConflictingVerdictError: If the verdict contradicts the order.
        """
        if amount is not None and amount != self.total_amount.amount:
            raise ConflictingVerdictError(
                str(self.id),
                self.status.value,
                verdict.value,
                reason="amount_mismatch",
            )

        if not self.status.is_terminal():
            return VerdictOutcome.APPLY

        if not verdict.is_consistent_with(self.status):
            raise ConflictingVerdictError(str(self.id), self.status.value, verdict.value)

        if (
            verdict == PaymentVerdict.SUCCESS
            and self.payment_ref
            and provider_txn_id
            and self.payment_ref != provider_txn_id
        ):
            # Paid twice under different provider transactions
            raise ConflictingVerdictError(
                str(self.id),
                self.status.value,
                verdict.value,
                reason="payment_ref_mismatch",
            )

        return VerdictOutcome.DUPLICATE

    # -------------------------------------------------------------------------
    # State Transitions
    # -------------------------------------------------------------------------

    def apply_verdict(self, verdict: PaymentVerdict, provider_txn_id: str) -> OrderStatus:
        """Move a PENDING order to the state implied by ``verdict``.

        Returns:
            The status the order was in before the transition.
        """
        previous = self.status
        if verdict == PaymentVerdict.SUCCESS:
            self.mark_paid(provider_txn_id)
        elif verdict == PaymentVerdict.CANCELLED:
            self.cancel("Payment cancelled at provider", cancelled_by="gateway")
            self.payment_ref = provider_txn_id or None
        else:
            self.mark_failed(provider_txn_id)
        return previous

    def mark_paid(self, provider_txn_id: str) -> None:
        """Record a confirmed payment.

        Raises:
            InvalidStateTransitionError: If not PENDING.
        """
        validate_order_transition(str(self.id), self.status, OrderStatus.PAID)
        self.status = OrderStatus.PAID
        self.payment_ref = provider_txn_id
        self._touch()
        self._record_event(
            OrderPaid(
                aggregate_id=str(self.id),
                order_id=str(self.id),
                payment_ref=provider_txn_id,
            )
        )

    def mark_failed(self, provider_txn_id: str | None, reason: str = "Payment failed") -> None:
        validate_order_transition(str(self.id), self.status, OrderStatus.FAILED)
        self.status = OrderStatus.FAILED
        self.payment_ref = provider_txn_id or None
        self.cancelled_reason = reason
        self._touch()
        self._record_event(
            OrderFailed(
                aggregate_id=str(self.id),
                order_id=str(self.id),
                payment_ref=self.payment_ref,
                reason=reason,
            )
        )

    def cancel(self, reason: str, cancelled_by: str = "customer") -> None:
        """Cancel the order.

        Args:
            reason: Cancellation reason.
            cancelled_by: Who initiated cancellation (customer/gateway/admin).

        Raises:
            OrderNotCancellableError: If order is no longer PENDING.
        """
        if not self.status.is_cancellable():
            raise OrderNotCancellableError(str(self.id), self.status.value)

        validate_order_transition(str(self.id), self.status, OrderStatus.CANCELLED)
        self.status = OrderStatus.CANCELLED
        self.cancelled_reason = reason
        self._touch()
        self._record_event(
            OrderCancelled(
                aggregate_id=str(self.id),
                order_id=str(self.id),
                reason=reason,
                cancelled_by=cancelled_by,
            )
        )

    def refund(self, reason: str = "") -> None:
        """Refund the whole order.

        Raises:
            InvalidStateTransitionError: If the order is not PAID.
        """
        validate_order_transition(str(self.id), self.status, OrderStatus.REFUNDED)
        self.status = OrderStatus.REFUNDED
        self._touch()
        self._record_event(
            OrderRefunded(
                aggregate_id=str(self.id),
                order_id=str(self.id),
                refund_amount=self.total_amount.amount,
                currency=self.total_amount.currency,
                reason=reason,
            )
        )
