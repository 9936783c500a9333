"""State machines for domain entities.

Deterministic state machines that define valid state transitions for
orders, plus the mapping from payment verdicts to order states. State
machines enforce business rules about what operations are valid in each
state.
"""

from enum import Enum

from checkout_api.domain.exceptions import InvalidStateTransitionError


# ============================================================================
# Order State Machine
# ============================================================================


class OrderStatus(str, Enum):
    """Order lifecycle states.

    State diagram:
        PENDING ──────────────────────────────┬──────────► CANCELLED
          │                                   │
          │ gateway success                   │ gateway failure
          ▼                                   ▼
        PAID                                FAILED
          │
          │ refund
          ▼
        REFUNDED
    """

    PENDING = "pending"
    PAID = "paid"
    CANCELLED = "cancelled"
    FAILED = "failed"
    REFUNDED = "refunded"

    def can_transition_to(self, target: "OrderStatus") -> bool:
        """Check if transition to target state is valid.

        Args:
            target: Target state to transition to.

        Returns:
            True if transition is valid.
        """
        return target in _ORDER_TRANSITIONS.get(self, set())

    def allowed_transitions(self) -> list["OrderStatus"]:
        """Get list of valid target states.

        Returns:
            List of states that can be transitioned to.
        """
        return sorted(_ORDER_TRANSITIONS.get(self, set()), key=lambda s: s.value)

    def is_cancellable(self) -> bool:
        """Check if order can still be cancelled by its owner."""
        return self == OrderStatus.PENDING

    def is_terminal(self) -> bool:
        """Check if the reconciler will no longer move this order.

        Every state except PENDING is terminal from the payment
        flow's point of view; PAID only moves on an explicit refund.
        """
        return self != OrderStatus.PENDING

    def holds_stock(self) -> bool:
        """Check if the order's lines are still deducted from inventory."""
        return self in {OrderStatus.PENDING, OrderStatus.PAID, OrderStatus.REFUNDED}


# Order state transitions
_ORDER_TRANSITIONS: dict[OrderStatus, set[OrderStatus]] = {
    OrderStatus.PENDING: {OrderStatus.PAID, OrderStatus.CANCELLED, OrderStatus.FAILED},
    OrderStatus.PAID: {OrderStatus.REFUNDED},
    OrderStatus.CANCELLED: set(),  # Terminal state
    OrderStatus.FAILED: set(),  # Terminal state
    OrderStatus.REFUNDED: set(),  # Terminal state
}


# ============================================================================
# Payment Verdicts
# ============================================================================


class PaymentVerdict(str, Enum):
    """Outcome signalled by the payment provider for an order."""

    SUCCESS = "success"
    FAILURE = "failure"
    CANCELLED = "cancelled"

    @property
    def target_status(self) -> OrderStatus:
        """Order status a PENDING order moves to under this verdict."""
        return _VERDICT_TARGETS[self]

    def is_consistent_with(self, status: OrderStatus) -> bool:
        """Check if re-delivering this verdict to an order in ``status`` is a no-op.

        A success matches a paid (or since refunded) order; failure and
        cancellation both match an order that was never paid.

        Args:
            status: Current (terminal) order status.

        Returns:
            True if the verdict agrees with the already-applied state.
        """
        if self == PaymentVerdict.SUCCESS:
            return status in {OrderStatus.PAID, OrderStatus.REFUNDED}
        return status in {OrderStatus.FAILED, OrderStatus.CANCELLED}


_VERDICT_TARGETS: dict[PaymentVerdict, OrderStatus] = {
    PaymentVerdict.SUCCESS: OrderStatus.PAID,
    PaymentVerdict.FAILURE: OrderStatus.FAILED,
    PaymentVerdict.CANCELLED: OrderStatus.CANCELLED,
}


# ============================================================================
# State Machine Helpers
# ============================================================================


def validate_order_transition(
    order_id: str,
    current_status: OrderStatus,
    target_status: OrderStatus,
) -> None:
    """Validate and raise if order state transition is invalid.

    Args:
        order_id: Order identifier for error message.
        current_status: Current order status.
        target_status: Target order status.

    Raises:
        InvalidStateTransitionError: If transition is not valid.
    """
    if not current_status.can_transition_to(target_status):
        raise InvalidStateTransitionError(
            entity_type="Order",
            entity_id=order_id,
            current_state=current_status.value,
            target_state=target_status.value,
            allowed_transitions=[s.value for s in current_status.allowed_transitions()],
        )
