"""Cart API endpoints.

Provides endpoints for the acting user's cart:
- GET /cart - cart lines with total and count
- GET /cart/count - number of lines
- POST /cart/items - add an item (merges with an existing line)
- PUT /cart/items/{item_id} - set quantity (0 removes)
- DELETE /cart/items/{item_id} - remove a line
- DELETE /cart - clear the cart
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Response, status

from checkout_api.api.dependencies import CurrentUser, domain_error_to_http, get_cart
from checkout_api.api.schemas import (
    CartClearResponse,
    CartCountResponse,
    CartItemAddRequest,
    CartItemUpdateRequest,
    CartLineSchema,
    CartResponse,
    ErrorResponse,
    PriceSchema,
)
from checkout_api.application.cart_service import CartService, CartView
from checkout_api.domain.entities import CartLine
from checkout_api.domain.exceptions import DomainError

router = APIRouter(prefix="/cart", tags=["Cart"])

CartServiceDep = Annotated[CartService, Depends(get_cart)]


# ============================================================================
# Converters
# ============================================================================


def line_to_schema(line: CartLine) -> CartLineSchema:
    return CartLineSchema(
        item_id=line.item_id,
        name=line.name,
        quantity=line.quantity,
        unit_price=PriceSchema(amount=line.unit_price.amount, currency=line.unit_price.currency),
        line_total=PriceSchema(amount=line.line_total.amount, currency=line.line_total.currency),
        stock=line.stock,
        is_active=line.is_active,
        is_available=line.is_available,
    )


def cart_to_response(cart: CartView) -> CartResponse:
    return CartResponse(
        items=[line_to_schema(line) for line in cart.lines],
        total=PriceSchema(amount=cart.total.amount, currency=cart.total.currency),
        count=cart.count,
    )


# ============================================================================
# Endpoints
# ============================================================================


@router.get("", response_model=CartResponse, summary="Get cart")
async def get_cart_contents(user_id: CurrentUser, service: CartServiceDep) -> CartResponse:
    """Get the user's cart, newest lines first."""
    return cart_to_response(await service.get_cart(user_id))


@router.get("/count", response_model=CartCountResponse, summary="Count cart lines")
async def get_cart_count(user_id: CurrentUser, service: CartServiceDep) -> CartCountResponse:
    return CartCountResponse(count=await service.get_cart_count(user_id))


@router.post(
    "/items",
    response_model=CartLineSchema,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"model": ErrorResponse, "description": "Invalid quantity"},
        404: {"model": ErrorResponse, "description": "Item not found"},
    },
    summary="Add item to cart",
)
async def add_cart_item(
    body: CartItemAddRequest,
    user_id: CurrentUser,
    service: CartServiceDep,
) -> CartLineSchema:
    """Add an item to the cart.

    Adding an item already in the cart increases its quantity. Stock is
    not checked until the order is placed.
    """
    try:
        line = await service.add_item(user_id, body.item_id, body.quantity)
    except DomainError as e:
        raise domain_error_to_http(e) from e
    return line_to_schema(line)


@router.put(
    "/items/{item_id}",
    response_model=CartLineSchema | None,
    responses={
        400: {"model": ErrorResponse, "description": "Invalid quantity"},
        404: {"model": ErrorResponse, "description": "Item not in cart"},
    },
    summary="Update cart item quantity",
)
async def update_cart_item(
    item_id: str,
    body: CartItemUpdateRequest,
    user_id: CurrentUser,
    service: CartServiceDep,
) -> CartLineSchema | Response:
    """Set the quantity of a cart line; 0 removes the line (204)."""
    try:
        line = await service.update_quantity(user_id, item_id, body.quantity)
    except DomainError as e:
        raise domain_error_to_http(e) from e
    if line is None:
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    return line_to_schema(line)


@router.delete(
    "/items/{item_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={404: {"model": ErrorResponse, "description": "Item not in cart"}},
    summary="Remove cart item",
)
async def remove_cart_item(item_id: str, user_id: CurrentUser, service: CartServiceDep) -> None:
    try:
        await service.remove_item(user_id, item_id)
    except DomainError as e:
        raise domain_error_to_http(e) from e


@router.delete("", response_model=CartClearResponse, summary="Clear cart")
async def clear_cart(user_id: CurrentUser, service: CartServiceDep) -> CartClearResponse:
    return CartClearResponse(removed=await service.clear_cart(user_id))
