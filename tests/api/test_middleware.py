"""Tests for API middleware."""

from fastapi.testclient import TestClient


class TestRequestIdMiddleware:
    """Tests for request ID correlation middleware."""

    def test_generates_request_id_if_not_provided(self, client: TestClient) -> None:
        response = client.get("/health")
        assert response.status_code == 200
        # UUID format
        assert len(response.headers["X-Request-ID"]) == 36

    def test_uses_provided_request_id(self, client: TestClient) -> None:
        response = client.get("/health", headers={"X-Request-ID": "custom-request-id-12345"})
        assert response.headers["X-Request-ID"] == "custom-request-id-12345"

    def test_request_id_in_error_body(self, client: TestClient, auth_headers: dict[str, str]) -> None:
        response = client.get(
            "/orders/does-not-exist",
            headers={**auth_headers, "X-Request-ID": "trace-me"},
        )
        assert response.status_code == 404
        assert response.json()["request_id"] == "trace-me"


class TestApiKeyMiddleware:
    """Tests for service API key authentication."""

    def test_public_endpoints_dont_require_auth(self, client: TestClient) -> None:
        assert client.get("/health").status_code == 200
        assert client.get("/ready").status_code == 200

    def test_protected_endpoints_require_auth(self, client: TestClient) -> None:
        response = client.get("/cart", headers={"X-User-Id": "user-1"})

        assert response.status_code == 401
        assert response.json()["error_code"] == "UNAUTHORIZED"

    def test_invalid_format(self, client: TestClient) -> None:
        response = client.get("/cart", headers={"Authorization": "Basic abc", "X-User-Id": "user-1"})

        assert response.status_code == 401
        assert "Bearer" in response.json()["message"]

    def test_invalid_api_key(self, client: TestClient) -> None:
        response = client.get("/cart", headers={"Authorization": "Bearer wrong", "X-User-Id": "user-1"})

        assert response.status_code == 401
        assert response.json()["error_code"] == "INVALID_API_KEY"

    def test_valid_api_key(self, client: TestClient, auth_headers: dict[str, str]) -> None:
        assert client.get("/cart", headers=auth_headers).status_code == 200
