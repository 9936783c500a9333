"""Shared API dependencies.

Identity headers forwarded by the upstream gateway, service factories and
the mapping from domain errors to HTTP errors.
"""

from typing import Annotated

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from checkout_api.application.cart_service import CartService, get_cart_service
from checkout_api.application.order_service import OrderService, get_order_service
from checkout_api.application.payment_service import (
    PaymentReconciler,
    get_payment_reconciler,
)
from checkout_api.catalog.service import CatalogService
from checkout_api.domain.exceptions import (
    CartItemNotFoundError,
    DomainError,
    EmptyCartError,
    InsufficientStockError,
    InvalidQuantityError,
    InvalidStateTransitionError,
    ItemNotFoundError,
    MoneyError,
    OrderNotCancellableError,
    OrderNotFoundError,
    TransactionConflictError,
    UnsupportedPaymentMethodError,
)
from checkout_api.infrastructure.database import get_session_factory

SessionFactory = Annotated[async_sessionmaker[AsyncSession], Depends(get_session_factory)]


# ============================================================================
# Identity
# ============================================================================


ADMIN_ROLE = "admin"


def get_current_user_id(
    x_user_id: Annotated[str | None, Header()] = None,
) -> str:
    """Get the acting user forwarded by the upstream gateway."""
    if not x_user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={
                "error_code": "UNAUTHORIZED",
                "message": "Missing X-User-Id header",
            },
        )
    return x_user_id


def require_admin(
    user_id: Annotated[str, Depends(get_current_user_id)],
    x_user_role: Annotated[str | None, Header()] = None,
) -> str:
    """Require the admin role; returns the acting admin's user id."""
    if (x_user_role or "").lower() != ADMIN_ROLE:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={
                "error_code": "FORBIDDEN",
                "message": "Admin role required",
            },
        )
    return user_id


CurrentUser = Annotated[str, Depends(get_current_user_id)]
AdminUser = Annotated[str, Depends(require_admin)]


# ============================================================================
# Services
# ============================================================================


def get_cart(factory: SessionFactory) -> CartService:
    return get_cart_service(factory)


def get_orders(factory: SessionFactory) -> OrderService:
    return get_order_service(factory)


def get_reconciler(factory: SessionFactory) -> PaymentReconciler:
    return get_payment_reconciler(factory)


def get_catalog(factory: SessionFactory) -> CatalogService:
    return CatalogService(factory)


# ============================================================================
# Error mapping
# ============================================================================


_STATUS_BY_ERROR: dict[type[DomainError], int] = {
    InvalidQuantityError: status.HTTP_400_BAD_REQUEST,
    EmptyCartError: status.HTTP_400_BAD_REQUEST,
    UnsupportedPaymentMethodError: status.HTTP_400_BAD_REQUEST,
    MoneyError: status.HTTP_400_BAD_REQUEST,
    ItemNotFoundError: status.HTTP_404_NOT_FOUND,
    CartItemNotFoundError: status.HTTP_404_NOT_FOUND,
    OrderNotFoundError: status.HTTP_404_NOT_FOUND,
    InsufficientStockError: status.HTTP_409_CONFLICT,
    OrderNotCancellableError: status.HTTP_409_CONFLICT,
    InvalidStateTransitionError: status.HTTP_409_CONFLICT,
    TransactionConflictError: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def domain_error_to_http(error: DomainError) -> HTTPException:
    """Convert a domain error into an HTTPException with the error envelope.

    Transaction conflicts are reported without their internals.
    """
    status_code = status.HTTP_400_BAD_REQUEST
    for error_type in type(error).__mro__:
        if error_type in _STATUS_BY_ERROR:
            status_code = _STATUS_BY_ERROR[error_type]
            break

    if isinstance(error, TransactionConflictError):
        return HTTPException(
            status_code=status_code,
            detail={
                "error_code": error.error_code,
                "message": "The request conflicted with a concurrent update, please retry",
            },
        )

    return HTTPException(
        status_code=status_code,
        detail={
            "error_code": error.error_code,
            "message": error.message,
            "details": error.details,
        },
    )
