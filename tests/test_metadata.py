"""Tests for protected resource metadata routes."""

from starlette.applications import Starlette
from starlette.testclient import TestClient

from mcp_oauth.metadata import (
    advertised_metadata,
    build_metadata_document,
    challenge_metadata,
    create_metadata_routes,
)
from mcp_oauth.models import ResourceConfig


def _client(config: ResourceConfig) -> TestClient:
    return TestClient(Starlette(routes=create_metadata_routes(config)))


class TestBuildMetadataDocument:
    """Tests for build_metadata_document function."""

    def test_document_fields(self):
        doc = build_metadata_document(
            "https://r.example.com", "https://as.example.com", ("openid", "email")
        )
        assert doc == {
            "resource": "https://r.example.com",
            "authorization_servers": ["https://as.example.com"],
            "scopes_supported": ["openid", "email"],
        }

    def test_advertised_and_challenge_differ(self, resource_config):
        """Each document should carry its own authorization server."""
        assert advertised_metadata(resource_config)["authorization_servers"] == [
            "https://proj.example.co/auth/v1"
        ]
        assert challenge_metadata(resource_config)["authorization_servers"] == [
            "https://challenge.example.co/auth/v1"
        ]


class TestMetadataRoutes:
    """Tests for create_metadata_routes function."""

    def test_route_paths(self, resource_config):
        paths = {route.path for route in create_metadata_routes(resource_config)}
        assert paths == {
            "/simple-mcp-server/.well-known/oauth-protected-resource",
            "/.well-known/oauth-protected-resource",
            "/.well-known/oauth-protected-resource/simple-mcp-server",
        }

    def test_well_known_serves_advertised(self, resource_config):
        """The root well-known path should serve the advertised document."""
        response = _client(resource_config).get("/.well-known/oauth-protected-resource")

        assert response.status_code == 200
        assert response.json() == {
            "resource": "https://proj.example.co/functions/v1/simple-mcp-server",
            "authorization_servers": ["https://proj.example.co/auth/v1"],
            "scopes_supported": ["openid", "profile", "email"],
        }

    def test_path_inserted_well_known(self, resource_config):
        """The RFC 9728 path-inserted form should serve the advertised document."""
        response = _client(resource_config).get(
            "/.well-known/oauth-protected-resource/simple-mcp-server"
        )

        assert response.status_code == 200
        assert response.json()["authorization_servers"] == [
            "https://proj.example.co/auth/v1"
        ]

    def test_challenge_path_serves_challenge(self, resource_config):
        """The path referenced from 401 challenges should serve its own document."""
        response = _client(resource_config).get(
            "/simple-mcp-server/.well-known/oauth-protected-resource"
        )

        assert response.status_code == 200
        assert response.json()["authorization_servers"] == [
            "https://challenge.example.co/auth/v1"
        ]

    def test_repeated_calls_identical(self, resource_config):
        """Discovery should be idempotent."""
        client = _client(resource_config)
        first = client.get("/.well-known/oauth-protected-resource").json()
        second = client.get("/.well-known/oauth-protected-resource").json()
        assert first == second

    def test_post_not_allowed(self, resource_config):
        response = _client(resource_config).post("/.well-known/oauth-protected-resource")
        assert response.status_code == 405

    def test_empty_base_path_serves_challenge(self, resource_config):
        """With no base path both forms share one route serving the challenge document."""
        config = resource_config.model_copy(update={"base_path": ""})

        routes = create_metadata_routes(config)
        assert [route.path for route in routes] == ["/.well-known/oauth-protected-resource"]

        response = _client(config).get("/.well-known/oauth-protected-resource")
        assert response.json()["authorization_servers"] == [
            "https://challenge.example.co/auth/v1"
        ]
