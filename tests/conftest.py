"""Pytest fixtures for mcp_oauth tests."""

import pytest

from mcp_oauth.config import ENV_VARS
from mcp_oauth.models import ResourceConfig


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep the developer's environment out of settings loading."""
    for var in ENV_VARS:
        monkeypatch.delenv(var, raising=False)
    monkeypatch.delenv("MCP_OAUTH_DEBUG", raising=False)


@pytest.fixture
def resource_config():
    """A resolved config for a production-like deployment."""
    return ResourceConfig(
        resource_url="https://proj.example.co/functions/v1/simple-mcp-server",
        authorization_server="https://proj.example.co/auth/v1",
        challenge_authorization_server="https://challenge.example.co/auth/v1",
        identity_url="https://proj.example.co",
        base_path="/simple-mcp-server",
        mcp_path="/mcp",
    )


@pytest.fixture
def sample_settings_yaml(tmp_path):
    """A settings file referencing an environment variable."""
    path = tmp_path / "settings.yaml"
    path.write_text(
        "supabase_url: ${TEST_SUPABASE_URL}\n"
        "supabase_anon_key: anon-key\n"
        "function_name: my-fn\n"
    )
    return path
