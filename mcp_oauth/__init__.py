"""MCP OAuth - MCP tool server behind OAuth 2.1 protected resource discovery."""

from mcp_oauth.auth import (
    AuthChallenge,
    BearerAuthMiddleware,
    IntrospectionEndpointIntrospector,
    IntrospectionResult,
    StaticIntrospector,
    SupabaseIntrospector,
    TokenIntrospector,
)
from mcp_oauth.config import ConfigurationError, load_settings, resolve_config
from mcp_oauth.models import ResourceConfig, ServerSettings
from mcp_oauth.server import create_app, create_mcp

__all__ = [
    "AuthChallenge",
    "BearerAuthMiddleware",
    "ConfigurationError",
    "IntrospectionEndpointIntrospector",
    "IntrospectionResult",
    "ResourceConfig",
    "ServerSettings",
    "StaticIntrospector",
    "SupabaseIntrospector",
    "TokenIntrospector",
    "create_app",
    "create_mcp",
    "load_settings",
    "resolve_config",
]
