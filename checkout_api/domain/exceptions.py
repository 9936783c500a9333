"""Checkout domain errors.

Cart, stock, order lifecycle and payment callback failures are all
``DomainError`` subclasses. Each class names a stable ``error_code``; the
API layer renders ``error_code``, ``message`` and ``details`` in the error
envelope and picks the HTTP status from the class.
"""

from typing import Any, ClassVar


class DomainError(Exception):
    """A business rule refused the operation."""

    error_code: ClassVar[str] = "DOMAIN_ERROR"

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


# ============================================================================
# Order Lifecycle
# ============================================================================


class InvalidStateTransitionError(DomainError):
    """The order status table does not allow the requested move.

    Raised for example when refunding an order that was never paid.
    """

    error_code = "INVALID_STATE_TRANSITION"

    def __init__(
        self,
        entity_type: str,
        entity_id: str,
        current_state: str,
        target_state: str,
        allowed_transitions: list[str] | None = None,
    ) -> None:
        allowed = list(allowed_transitions or [])
        super().__init__(
            f"{entity_type} {entity_id} is '{current_state}' and cannot become '{target_state}'",
            details={
                "entity_type": entity_type,
                "entity_id": entity_id,
                "current_state": current_state,
                "target_state": target_state,
                "allowed_transitions": allowed,
            },
        )


# ============================================================================
# Cart Errors
# ============================================================================


class CartError(DomainError):
    """Base class for cart-related errors."""

    pass


class InvalidQuantityError(CartError):
    """Raised when an invalid quantity is provided."""

    error_code = "INVALID_QUANTITY"

    def __init__(self, quantity: int, reason: str = "Quantity must be positive") -> None:
        """Initialize invalid quantity error.

        Args:
            quantity: The invalid quantity value.
            reason: Explanation of why the quantity is invalid.
        """
        super().__init__(
            f"Invalid quantity {quantity}: {reason}",
            details={"quantity": quantity, "reason": reason},
        )


class ItemNotFoundError(CartError):
    """Raised when an item id does not resolve to an active catalog item."""

    error_code = "ITEM_NOT_FOUND"

    def __init__(self, item_id: str) -> None:
        super().__init__(
            f"Item {item_id} not found",
            details={"item_id": item_id},
        )


class CartItemNotFoundError(CartError):
    """Raised when an item is not present in the user's cart."""

    error_code = "CART_ITEM_NOT_FOUND"

    def __init__(self, user_id: str, item_id: str) -> None:
        """Initialize cart item not found error.

        Args:
            user_id: Owner of the cart.
            item_id: Catalog item that was expected in the cart.
        """
        super().__init__(
            f"Item {item_id} is not in the cart",
            details={"user_id": user_id, "item_id": item_id},
        )


class EmptyCartError(CartError):
    """Raised when trying to check out an empty cart."""

    error_code = "EMPTY_CART"

    def __init__(self, user_id: str) -> None:
        super().__init__(
            "Cart is empty",
            details={"user_id": user_id},
        )


# ============================================================================
# Inventory Errors
# ============================================================================


class InsufficientStockError(DomainError):
    """Raised when a requested quantity exceeds the available stock.

    The message names the item so it can be shown to the shopper as-is.
    """

    error_code = "INSUFFICIENT_STOCK"

    def __init__(
        self,
        item_id: str,
        item_name: str,
        requested: int,
        available: int | None = None,
    ) -> None:
        """Initialize insufficient stock error.

        Args:
            item_id: Catalog item identifier.
            item_name: Display name of the item.
            requested: Quantity requested by the order.
            available: Stock observed at validation time, if known.
        """
        super().__init__(
            f"Insufficient stock for {item_name}",
            details={
                "item_id": item_id,
                "item_name": item_name,
                "requested": requested,
                "available": available,
            },
        )
        self.item_id = item_id


# ============================================================================
# Order Errors
# ============================================================================


class OrderError(DomainError):
    """Base class for order-related errors."""

    pass


class OrderNotFoundError(OrderError):
    """Raised when an order does not exist (or is not visible to the caller)."""

    error_code = "ORDER_NOT_FOUND"

    def __init__(self, order_id: str) -> None:
        super().__init__(
            f"Order not found: {order_id}",
            details={"order_id": order_id},
        )


class OrderNotCancellableError(OrderError):
    """Raised when trying to cancel an order that cannot be cancelled."""

    error_code = "ORDER_NOT_CANCELLABLE"

    def __init__(self, order_id: str, current_status: str) -> None:
        """Initialize order not cancellable error.

        Args:
            order_id: ID of the order.
            current_status: Current status of the order.
        """
        super().__init__(
            f"Order {order_id} cannot be cancelled in status '{current_status}'",
            details={"order_id": order_id, "current_status": current_status},
        )


class UnsupportedPaymentMethodError(OrderError):
    """Raised when no payment gateway is configured for a method."""

    error_code = "UNSUPPORTED_PAYMENT_METHOD"

    def __init__(self, payment_method: str, supported: list[str]) -> None:
        super().__init__(
            f"Unsupported payment method '{payment_method}'",
            details={"payment_method": payment_method, "supported": supported},
        )


# ============================================================================
# Payment Errors
# ============================================================================


class PaymentError(DomainError):
    """Base class for payment callback errors.

    These are never shown to the external caller in detail.
    """

    pass


class InvalidSignatureError(PaymentError):
    """Raised when a payment callback fails signature verification."""

    error_code = "INVALID_SIGNATURE"

    def __init__(self, reason: str = "signature mismatch") -> None:
        super().__init__(
            "Payment callback signature verification failed",
            details={"reason": reason},
        )


class ConflictingVerdictError(PaymentError):
    """Raised when a verdict contradicts the order's already-applied state."""

    error_code = "CONFLICTING_VERDICT"

    def __init__(
        self,
        order_id: str,
        current_status: str,
        verdict: str,
        reason: str = "verdict contradicts current order state",
    ) -> None:
        """Initialize conflicting verdict error.

        Args:
            order_id: ID of the order.
            current_status: Status the order is already in.
            verdict: Verdict carried by the callback.
            reason: Short description of the contradiction.
        """
        super().__init__(
            f"Verdict '{verdict}' conflicts with order {order_id} in status '{current_status}'",
            details={
                "order_id": order_id,
                "current_status": current_status,
                "verdict": verdict,
                "reason": reason,
            },
        )


# ============================================================================
# Persistence Errors
# ============================================================================


class TransactionConflictError(DomainError):
    """Raised when a concurrent atomic update collides.

    This is the only error class that is retried automatically.
    """

    error_code = "TRANSACTION_CONFLICT"

    def __init__(self, operation: str, reason: str = "") -> None:
        super().__init__(
            f"Concurrent update conflict during {operation}",
            details={"operation": operation, "reason": reason},
        )


# ============================================================================
# Money Errors
# ============================================================================


class MoneyError(DomainError):
    """Base class for money-related errors."""

    pass


class CurrencyMismatchError(MoneyError):
    """Raised when attempting to combine money with different currencies."""

    error_code = "CURRENCY_MISMATCH"

    def __init__(self, currency1: str, currency2: str) -> None:
        """Initialize currency mismatch error.

        Args:
            currency1: First currency code.
            currency2: Second currency code.
        """
        super().__init__(
            f"Cannot combine money with different currencies: {currency1} and {currency2}",
            details={"currency1": currency1, "currency2": currency2},
        )


class NegativeMoneyError(MoneyError):
    """Raised when attempting to create money with negative amount."""

    error_code = "NEGATIVE_MONEY"

    def __init__(self, amount: int) -> None:
        super().__init__(
            f"Money amount cannot be negative: {amount}",
            details={"amount": amount},
        )
