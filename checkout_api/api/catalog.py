"""Catalog API endpoints.

- GET /catalog/items - list items (admins may include inactive items)
- GET /catalog/items/{id} - item details
- POST /catalog/items - create an item (admin)
- PATCH /catalog/items/{id} - partial update, including deactivation (admin)
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, status

from checkout_api.api.dependencies import AdminUser, CurrentUser, domain_error_to_http, get_catalog
from checkout_api.api.schemas import (
    CatalogItemCreateRequest,
    CatalogItemSchema,
    CatalogItemsListResponse,
    CatalogItemUpdateRequest,
    ErrorResponse,
    PriceSchema,
)
from checkout_api.catalog.models import CatalogItem
from checkout_api.catalog.service import CatalogService, PaginationParams
from checkout_api.domain.exceptions import DomainError

router = APIRouter(prefix="/catalog", tags=["Catalog"])

CatalogServiceDep = Annotated[CatalogService, Depends(get_catalog)]


def item_to_schema(item: CatalogItem) -> CatalogItemSchema:
    return CatalogItemSchema(
        id=item.id,
        name=item.name,
        description=item.description,
        price=PriceSchema(amount=item.price, currency=item.currency),
        stock=item.stock,
        image_url=item.image_url,
        is_active=item.is_active,
        created_at=item.created_at,
        updated_at=item.updated_at,
    )


@router.get("/items", response_model=CatalogItemsListResponse, summary="List catalog items")
async def list_items(
    user_id: CurrentUser,
    service: CatalogServiceDep,
    page: int = Query(default=1, ge=1, description="Page number"),
    page_size: int = Query(default=20, ge=1, le=100, description="Items per page"),
    active_only: bool = Query(default=True, description="Only items currently sold"),
) -> CatalogItemsListResponse:
    result = await service.list_items(
        active_only=active_only,
        pagination=PaginationParams(page=page, page_size=page_size),
    )
    return CatalogItemsListResponse(
        items=[item_to_schema(item) for item in result.items],
        total=result.total,
        page=result.page,
        page_size=result.page_size,
        has_more=result.has_more,
    )


@router.get(
    "/items/{item_id}",
    response_model=CatalogItemSchema,
    responses={404: {"model": ErrorResponse, "description": "Item not found"}},
    summary="Get catalog item",
)
async def get_item(item_id: str, user_id: CurrentUser, service: CatalogServiceDep) -> CatalogItemSchema:
    try:
        item = await service.get_item(item_id)
    except DomainError as e:
        raise domain_error_to_http(e) from e
    return item_to_schema(item)


@router.post(
    "/items",
    response_model=CatalogItemSchema,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse, "description": "Currency other than the shop currency"}},
    summary="Create catalog item",
)
async def create_item(
    body: CatalogItemCreateRequest,
    admin: AdminUser,
    service: CatalogServiceDep,
) -> CatalogItemSchema:
    try:
        item = await service.create_item(
            name=body.name,
            price=body.price,
            stock=body.stock,
            description=body.description,
            image_url=body.image_url,
            currency=body.currency,
        )
    except DomainError as e:
        raise domain_error_to_http(e) from e
    return item_to_schema(item)


@router.patch(
    "/items/{item_id}",
    response_model=CatalogItemSchema,
    responses={404: {"model": ErrorResponse, "description": "Item not found"}},
    summary="Update catalog item",
)
async def update_item(
    item_id: str,
    body: CatalogItemUpdateRequest,
    admin: AdminUser,
    service: CatalogServiceDep,
) -> CatalogItemSchema:
    """Partially update an item.

    Price changes apply to future carts and orders only.
    """
    try:
        item = await service.update_item(item_id, body.model_dump(exclude_unset=True))
    except DomainError as e:
        raise domain_error_to_http(e) from e
    return item_to_schema(item)
