"""Tests for FastAPI application endpoints."""

from unittest.mock import MagicMock, patch

import pytest
from fastapi.testclient import TestClient

from bioquest.main import app


@pytest.fixture
def client() -> TestClient:
    """Create FastAPI test client."""
    return TestClient(app)


# Version Endpoint Tests


def test_version_endpoint(client: TestClient) -> None:
    """Test version endpoint returns version and commit hash."""
    response = client.get("/version")
    assert response.status_code == 200

    data = response.json()
    assert data["version"] == "1.0.0"
    assert data["commit_hash"] == "development"


# Health Check Tests


@patch("bioquest.main.get_supabase_client")
@patch("bioquest.main.get_gemini_client")
def test_health_check_all_healthy(
    mock_gemini: MagicMock, mock_supabase: MagicMock, client: TestClient
) -> None:
    """Test health check when all services are healthy."""
    mock_gemini.return_value = MagicMock()

    mock_supabase_client = MagicMock()
    mock_response = MagicMock()
    mock_response.execute.return_value = mock_response
    mock_supabase_client.table.return_value.select.return_value.limit.return_value = (
        mock_response
    )
    mock_supabase.return_value = mock_supabase_client

    response = client.get("/health")
    assert response.status_code == 200

    data = response.json()
    assert data["status"] == "healthy"
    assert "timestamp" in data
    assert data["services"]["gemini_api"] == "healthy"
    assert data["services"]["supabase"] == "healthy"
    mock_supabase_client.table.assert_called_with("questions")


@patch("bioquest.main.get_supabase_client")
@patch("bioquest.main.get_gemini_client")
def test_health_check_without_fallback_key(
    mock_gemini: MagicMock, mock_supabase: MagicMock, client: TestClient
) -> None:
    """Test that a missing Gemini fallback key does not make the service unhealthy."""
    mock_gemini.side_effect = ValueError("API Key is not configured")
    mock_supabase.return_value = MagicMock()

    response = client.get("/health")
    assert response.status_code == 200

    data = response.json()
    assert data["status"] == "healthy"
    assert "no fallback key" in data["services"]["gemini_api"]


@patch("bioquest.main.get_supabase_client")
@patch("bioquest.main.get_gemini_client")
def test_health_check_supabase_unhealthy(
    mock_gemini: MagicMock, mock_supabase: MagicMock, client: TestClient
) -> None:
    """Test health check when Supabase is unreachable."""
    mock_gemini.return_value = MagicMock()
    mock_supabase.side_effect = Exception("Database connection failed")

    response = client.get("/health")
    assert response.status_code == 503

    data = response.json()
    assert data["status"] == "unhealthy"
    assert "Database connection failed" in data["services"]["supabase"]


# Middleware Tests


def test_request_id_header_added(client: TestClient) -> None:
    """Test that every response carries an X-Request-ID."""
    response = client.get("/version")

    assert response.headers.get("X-Request-ID")


def test_request_id_header_reused(client: TestClient) -> None:
    """Test that a sane incoming X-Request-ID is echoed back."""
    response = client.get("/version", headers={"X-Request-ID": "abc-123"})

    assert response.headers["X-Request-ID"] == "abc-123"


def test_oversized_request_id_replaced(client: TestClient) -> None:
    """Test that an overly long X-Request-ID is replaced with a fresh one."""
    response = client.get("/version", headers={"X-Request-ID": "x" * 500})

    assert response.headers["X-Request-ID"] != "x" * 500
