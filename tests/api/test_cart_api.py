"""Tests for cart API endpoints."""

import pytest
from fastapi.testclient import TestClient


class TestCartEndpoints:
    """Tests for /cart."""

    def test_requires_user_header(self, client: TestClient, auth_headers: dict[str, str]) -> None:
        headers = {"Authorization": auth_headers["Authorization"]}
        response = client.get("/cart", headers=headers)

        assert response.status_code == 401
        assert response.json()["error_code"] == "UNAUTHORIZED"

    def test_empty_cart(self, client: TestClient, auth_headers: dict[str, str]) -> None:
        response = client.get("/cart", headers=auth_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["items"] == []
        assert data["count"] == 0
        assert data["total"] == {"amount": 0, "currency": "VND"}

    def test_add_and_get(self, client: TestClient, auth_headers: dict[str, str], create_item) -> None:
        item = create_item(price=50000)

        response = client.post(
            "/cart/items",
            json={"item_id": item["id"], "quantity": 2},
            headers=auth_headers,
        )
        assert response.status_code == 201
        assert response.json()["quantity"] == 2

        data = client.get("/cart", headers=auth_headers).json()
        assert data["count"] == 1
        assert data["items"][0]["name"] == "Bamboo Mug"
        assert data["items"][0]["line_total"]["amount"] == 100000
        assert data["total"]["amount"] == 100000

    def test_add_unknown_item(self, client: TestClient, auth_headers: dict[str, str]) -> None:
        response = client.post("/cart/items", json={"item_id": "nope", "quantity": 1}, headers=auth_headers)

        assert response.status_code == 404
        assert response.json()["error_code"] == "ITEM_NOT_FOUND"

    @pytest.mark.parametrize("quantity", [0, -2, 1000, 2**63])
    def test_add_out_of_range_quantity(
        self, client: TestClient, auth_headers: dict[str, str], create_item, quantity: int
    ) -> None:
        item = create_item()
        response = client.post(
            "/cart/items", json={"item_id": item["id"], "quantity": quantity}, headers=auth_headers
        )

        assert response.status_code == 422
        assert response.json()["error_code"] == "VALIDATION_ERROR"
        assert client.get("/cart/count", headers=auth_headers).json() == {"count": 0}

    def test_add_beyond_line_limit_after_merge(
        self, client: TestClient, auth_headers: dict[str, str], create_item
    ) -> None:
        item = create_item()
        client.post("/cart/items", json={"item_id": item["id"], "quantity": 990}, headers=auth_headers)

        response = client.post("/cart/items", json={"item_id": item["id"], "quantity": 10}, headers=auth_headers)

        assert response.status_code == 400
        assert response.json()["error_code"] == "INVALID_QUANTITY"
        assert client.get("/cart", headers=auth_headers).json()["items"][0]["quantity"] == 990

    def test_update_out_of_range_quantity(
        self, client: TestClient, auth_headers: dict[str, str], create_item
    ) -> None:
        item = create_item()
        client.post("/cart/items", json={"item_id": item["id"]}, headers=auth_headers)

        response = client.put(f"/cart/items/{item['id']}", json={"quantity": 2**63}, headers=auth_headers)

        assert response.status_code == 422
        assert client.get("/cart", headers=auth_headers).json()["items"][0]["quantity"] == 1

    def test_count(self, client: TestClient, auth_headers: dict[str, str], create_item) -> None:
        for name in ("Mug", "Fan"):
            item = create_item(name=name)
            client.post("/cart/items", json={"item_id": item["id"], "quantity": 3}, headers=auth_headers)

        response = client.get("/cart/count", headers=auth_headers)

        assert response.json() == {"count": 2}

    def test_update_quantity(self, client: TestClient, auth_headers: dict[str, str], create_item) -> None:
        item = create_item()
        client.post("/cart/items", json={"item_id": item["id"], "quantity": 1}, headers=auth_headers)

        response = client.put(f"/cart/items/{item['id']}", json={"quantity": 4}, headers=auth_headers)

        assert response.status_code == 200
        assert response.json()["quantity"] == 4

    def test_update_to_zero_removes(self, client: TestClient, auth_headers: dict[str, str], create_item) -> None:
        item = create_item()
        client.post("/cart/items", json={"item_id": item["id"], "quantity": 1}, headers=auth_headers)

        response = client.put(f"/cart/items/{item['id']}", json={"quantity": 0}, headers=auth_headers)

        assert response.status_code == 204
        assert client.get("/cart/count", headers=auth_headers).json() == {"count": 0}

    def test_update_missing_line(self, client: TestClient, auth_headers: dict[str, str]) -> None:
        response = client.put("/cart/items/nope", json={"quantity": 2}, headers=auth_headers)

        assert response.status_code == 404
        assert response.json()["error_code"] == "CART_ITEM_NOT_FOUND"

    def test_remove_and_clear(self, client: TestClient, auth_headers: dict[str, str], create_item) -> None:
        mug = create_item(name="Mug")
        fan = create_item(name="Fan")
        hat = create_item(name="Hat")
        for item in (mug, fan, hat):
            client.post("/cart/items", json={"item_id": item["id"]}, headers=auth_headers)

        assert client.delete(f"/cart/items/{mug['id']}", headers=auth_headers).status_code == 204
        response = client.delete("/cart", headers=auth_headers)

        assert response.json() == {"removed": 2}
        assert client.get("/cart", headers=auth_headers).json()["items"] == []

    def test_carts_are_isolated(self, client: TestClient, auth_headers: dict[str, str], create_item) -> None:
        item = create_item()
        client.post("/cart/items", json={"item_id": item["id"]}, headers=auth_headers)

        other = {**auth_headers, "X-User-Id": "user-2"}
        assert client.get("/cart/count", headers=other).json() == {"count": 0}
