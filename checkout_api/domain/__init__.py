"""Domain layer - Entities, value objects, state machines, domain events.

This module exports the core domain building blocks of the checkout flow:

- **Entities**: The Order aggregate, its immutable OrderLines and the
  CartLine snapshot read at checkout time
- **Value Objects**: Money, OrderId and the payment callback values
- **State Machines**: OrderStatus transitions and PaymentVerdict mapping
- **Domain Events**: Order lifecycle events
- **Exceptions**: Domain-specific errors and invariant violations

Example usage:
    from checkout_api.domain import CartLine, Money, Order

    lines = [CartLine(item_id="mug", quantity=2, name="Mug", unit_price=Money(50000))]
    order = Order.create_from_cart("user-1", lines, payment_method="vnpay")
    print(order.total_amount)  # 100000 VND
"""

from checkout_api.domain.base import AggregateRoot, DomainEvent, Entity, ValueObject
from checkout_api.domain.entities import CartLine, Order, OrderLine, VerdictOutcome
from checkout_api.domain.events import (
    OrderCancelled,
    OrderCreated,
    OrderFailed,
    OrderPaid,
    OrderRefunded,
)
from checkout_api.domain.exceptions import (
    CartItemNotFoundError,
    ConflictingVerdictError,
    CurrencyMismatchError,
    DomainError,
    EmptyCartError,
    InsufficientStockError,
    InvalidQuantityError,
    InvalidSignatureError,
    InvalidStateTransitionError,
    ItemNotFoundError,
    NegativeMoneyError,
    OrderNotCancellableError,
    OrderNotFoundError,
    TransactionConflictError,
    UnsupportedPaymentMethodError,
)
from checkout_api.domain.state_machines import (
    OrderStatus,
    PaymentVerdict,
    validate_order_transition,
)
from checkout_api.domain.value_objects import (
    Money,
    OrderId,
    ParsedCallback,
    PaymentCallback,
)

__all__ = [
    # Base
    "AggregateRoot",
    "DomainEvent",
    "Entity",
    "ValueObject",
    # Entities
    "CartLine",
    "Order",
    "OrderLine",
    "VerdictOutcome",
    # Events
    "OrderCancelled",
    "OrderCreated",
    "OrderFailed",
    "OrderPaid",
    "OrderRefunded",
    # Exceptions
    "CartItemNotFoundError",
    "ConflictingVerdictError",
    "CurrencyMismatchError",
    "DomainError",
    "EmptyCartError",
    "InsufficientStockError",
    "InvalidQuantityError",
    "InvalidSignatureError",
    "InvalidStateTransitionError",
    "ItemNotFoundError",
    "NegativeMoneyError",
    "OrderNotCancellableError",
    "OrderNotFoundError",
    "TransactionConflictError",
    "UnsupportedPaymentMethodError",
    # State machines
    "OrderStatus",
    "PaymentVerdict",
    "validate_order_transition",
    # Value objects
    "Money",
    "OrderId",
    "ParsedCallback",
    "PaymentCallback",
]
