"""
Integration tests for OpenAPI documentation.

Verifies OpenAPI schema is correctly generated for all endpoints.
"""

import pytest
from fastapi.testclient import TestClient

from src.api.main import app


@pytest.fixture
def client() -> TestClient:
    """Create test client for the application."""
    return TestClient(app)


class TestOpenAPISchema:
    """Tests for OpenAPI schema generation."""

    def test_openapi_schema_accessible(self, client: TestClient) -> None:
        """OpenAPI schema is accessible at /openapi.json."""
        response = client.get("/openapi.json")
        assert response.status_code == 200
        schema = response.json()
        assert "openapi" in schema
        assert "info" in schema
        assert "paths" in schema

    def test_openapi_title(self, client: TestClient) -> None:
        """OpenAPI schema has correct title and version."""
        schema = client.get("/openapi.json").json()
        assert schema["info"]["title"] == "onboarding"
        assert schema["info"]["version"] == "0.1.0"

    @pytest.mark.parametrize(
        ("path", "method"),
        [
            ("/v1/registration", "get"),
            ("/v1/registration/account-type", "post"),
            ("/v1/registration/email", "post"),
            ("/v1/registration/details", "post"),
            ("/v1/registration/back", "post"),
            ("/v1/registration/breadcrumb", "post"),
            ("/v1/registration/checkout", "post"),
            ("/v1/registration/return", "get"),
            ("/v1/auth/logout", "post"),
            ("/v1/subscription/{scope}/{subject_id}", "get"),
            ("/v1/subscription/organizations/{organization_id}/upgrade-quote", "post"),
            ("/v1/subscription/organizations/{organization_id}/upgrade-seats", "post"),
            ("/v1/subscription/{scope}/{subject_id}/cancel-at-period-end", "post"),
            ("/v1/subscription/{scope}/{subject_id}/undo-cancel", "post"),
        ],
    )
    def test_endpoint_documented(self, client: TestClient, path: str, method: str) -> None:
        """Every v1 endpoint appears in the schema."""
        schema = client.get("/openapi.json").json()
        assert path in schema["paths"]
        assert method in schema["paths"][path]

    def test_v1_tag_present(self, client: TestClient) -> None:
        schema = client.get("/openapi.json").json()
        assert any(tag["name"] == "v1" for tag in schema["tags"])
