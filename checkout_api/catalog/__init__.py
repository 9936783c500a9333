"""Shop catalog.

Catalog items with price and stock, the stock primitives used by checkout,
and the administration service.
"""

from checkout_api.catalog.models import CatalogItem
from checkout_api.catalog.repository import CatalogRepository
from checkout_api.catalog.service import CatalogService, PaginatedResult, PaginationParams

__all__ = [
    # Models
    "CatalogItem",
    # Repository
    "CatalogRepository",
    # Service
    "CatalogService",
    "PaginatedResult",
    "PaginationParams",
]
