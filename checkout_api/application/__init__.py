"""Application layer module.

Contains application services (use cases) that orchestrate
domain logic and infrastructure.
"""

from checkout_api.application.cart_service import CartService, get_cart_service
from checkout_api.application.order_service import OrderService, get_order_service
from checkout_api.application.payment_service import (
    PaymentReconciler,
    get_payment_reconciler,
)

__all__ = [
    "CartService",
    "get_cart_service",
    "OrderService",
    "get_order_service",
    "PaymentReconciler",
    "get_payment_reconciler",
]
