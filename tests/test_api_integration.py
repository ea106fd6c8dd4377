"""
Integration tests for the application shell and authentication.
"""
from unittest.mock import Mock

import pytest
from fastapi import HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials

import cache
from auth_middleware import get_current_user


class TestAPIIntegration:
    """Integration test suite for API."""

    def test_health_check(self, client):
        response = client.get("/health")
        assert response.status_code == status.HTTP_200_OK
        assert response.json() == {"status": "healthy"}

    def test_api_versioning(self, client):
        """Test API versioning information."""
        data = client.get("/").json()
        assert data["version"] == "1.0.0"
        assert data["mint_mode"] == "queued"

    def test_openapi_schema_lists_pipeline_routes(self, client):
        response = client.get("/openapi.json")
        assert response.status_code == status.HTTP_200_OK
        paths = response.json()["paths"]
        assert "/api/events/mint" in paths
        assert "/api/events/{event_id}/mint-status" in paths
        assert "/api/events/retry-mint" in paths
        assert "/api/tickets/{ticket_id}" in paths

    def test_error_handling(self, client):
        """Test error handling for invalid endpoints."""
        response = client.get("/api/nonexistent")
        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_pipeline_errors_use_envelope(self, client):
        response = client.get("/api/tickets/missing")
        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.json() == {"status": "error", "message": "Ticket not found"}

    def test_metrics_endpoint(self, client):
        client.get("/health")
        response = client.get("/metrics")
        assert response.status_code == status.HTTP_200_OK
        assert "http_requests_total" in response.text


@pytest.fixture(autouse=True)
def clear_auth_cache():
    cache.clear()
    yield
    cache.clear()


def bearer(token="token-1"):
    return HTTPAuthorizationCredentials(scheme="Bearer", credentials=token)


class TestGetCurrentUser:
    """Test suite for bearer token resolution."""

    def test_valid_token(self):
        db = Mock()
        db.auth.get_user.return_value = Mock(user=Mock(id="auth-123", email="admin@example.com"))

        user = get_current_user(bearer(), db)

        assert user == {"id": "auth-123", "email": "admin@example.com"}
        db.auth.get_user.assert_called_once_with("token-1")

    def test_user_is_cached_per_token(self):
        db = Mock()
        db.auth.get_user.return_value = Mock(user=Mock(id="auth-123", email=None))

        get_current_user(bearer(), db)
        get_current_user(bearer(), db)

        assert db.auth.get_user.call_count == 1

    def test_rejected_token(self):
        db = Mock()
        db.auth.get_user.side_effect = Exception("invalid JWT")

        with pytest.raises(HTTPException) as exc_info:
            get_current_user(bearer("bad"), db)
        assert exc_info.value.status_code == status.HTTP_401_UNAUTHORIZED

    def test_response_without_user(self):
        db = Mock()
        db.auth.get_user.return_value = Mock(user=None)

        with pytest.raises(HTTPException) as exc_info:
            get_current_user(bearer("expired"), db)
        assert exc_info.value.status_code == status.HTTP_401_UNAUTHORIZED
