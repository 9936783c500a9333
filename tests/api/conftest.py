"""Shared fixtures for API tests."""

from collections.abc import Callable, Iterator
from typing import Any

import pytest
from fastapi.testclient import TestClient

from checkout_api.infrastructure.config import settings
from checkout_api.infrastructure.database import get_session_factory
from checkout_api.main import app


@pytest.fixture
def client(session_factory) -> Iterator[TestClient]:
    """Create test client bound to the test database, without authentication."""
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers() -> dict[str, str]:
    """Get service authentication headers for a regular shopper."""
    return {
        "Authorization": f"Bearer {settings.service_api_key}",
        "X-User-Id": "user-1",
    }


@pytest.fixture
def admin_headers() -> dict[str, str]:
    """Get service authentication headers for an administrator."""
    return {
        "Authorization": f"Bearer {settings.service_api_key}",
        "X-User-Id": "admin-1",
        "X-User-Role": "admin",
    }


@pytest.fixture
def create_item(client: TestClient, admin_headers: dict[str, str]) -> Callable[..., dict[str, Any]]:
    """Create a catalog item through the admin API."""

    def _create(name: str = "Bamboo Mug", price: int = 50000, stock: int = 10) -> dict[str, Any]:
        response = client.post(
            "/catalog/items",
            json={"name": name, "price": price, "stock": stock},
            headers=admin_headers,
        )
        assert response.status_code == 201
        return response.json()

    return _create


@pytest.fixture
def place_order(client: TestClient, auth_headers: dict[str, str], create_item) -> Callable[..., dict[str, Any]]:
    """Put an item in the shopper's cart and place an order for it."""

    def _place(quantity: int = 1, headers: dict[str, str] | None = None) -> dict[str, Any]:
        headers = headers or auth_headers
        item = create_item()
        client.post("/cart/items", json={"item_id": item["id"], "quantity": quantity}, headers=headers)
        response = client.post("/orders", json={"payment_method": "vnpay"}, headers=headers)
        assert response.status_code == 201
        return response.json()

    return _place
