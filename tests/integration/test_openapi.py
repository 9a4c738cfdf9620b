"""
Integration tests for OpenAPI documentation.

Verifies OpenAPI schema is correctly generated for all endpoints.
"""

import pytest
from fastapi.testclient import TestClient

from src.api.main import app

pytestmark = pytest.mark.integration


@pytest.fixture
def client() -> TestClient:
    """Create test client for the application (no lifespan needed)."""
    return TestClient(app)


@pytest.fixture
def schema(client: TestClient) -> dict:
    response = client.get("/openapi.json")
    assert response.status_code == 200
    return response.json()


class TestOpenAPISchema:
    def test_title_and_version(self, schema: dict) -> None:
        assert schema["info"]["title"] == "subregistrar"
        assert schema["info"]["version"] == "0.1.0"

    @pytest.mark.parametrize(
        "path, method",
        [
            ("/v1/domains", "post"),
            ("/v1/domains/{name}", "delete"),
            ("/v1/domains/{name}/transfer", "post"),
            ("/v1/domains/{name}/resolver", "put"),
            ("/v1/labels/{label}", "get"),
            ("/v1/labels/{label}/subdomains", "post"),
            ("/v1/labels/{label}/subdomains/{subdomain}", "get"),
            ("/v1/labels/{label}/subdomains/{subdomain}/rent", "get"),
            ("/v1/labels/{label}/subdomains/{subdomain}/rent", "post"),
            ("/v1/deeds/{label}", "get"),
            ("/v1/deeds/{label}/override", "put"),
            ("/v1/deeds/{label}/reclaim", "post"),
            ("/v1/deeds/{label}/registry-owner", "put"),
            ("/v1/interfaces/{interface_id}", "get"),
            ("/v1/registrar", "get"),
            ("/v1/registrar/stop", "post"),
            ("/v1/registrar/transfer", "post"),
        ],
    )
    def test_endpoint_documented(self, schema: dict, path: str, method: str) -> None:
        assert method in schema["paths"][path]

    def test_register_documents_error_responses(self, schema: dict) -> None:
        responses = schema["paths"]["/v1/labels/{label}/subdomains"]["post"]["responses"]
        assert {"201", "402", "404", "409", "422", "503"} <= set(responses)
        assert schema["paths"]["/v1/labels/{label}/subdomains"]["post"]["summary"] == "Buy a subdomain"

    def test_caller_header_documented(self, schema: dict) -> None:
        parameters = schema["paths"]["/v1/domains"]["post"]["parameters"]
        header = next(p for p in parameters if p["in"] == "header")
        assert header["name"] == "X-Caller"
        assert header["required"] is True
