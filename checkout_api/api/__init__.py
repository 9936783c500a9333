"""API layer module.

Contains FastAPI routers and request/response schemas.
"""

from checkout_api.api.admin_orders import router as admin_orders_router
from checkout_api.api.cart import router as cart_router
from checkout_api.api.catalog import router as catalog_router
from checkout_api.api.health import router as health_router
from checkout_api.api.orders import router as orders_router
from checkout_api.api.payments import router as payments_router

__all__ = [
    "admin_orders_router",
    "cart_router",
    "catalog_router",
    "health_router",
    "orders_router",
    "payments_router",
]
