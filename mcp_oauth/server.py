"""MCP server and ASGI application with OAuth-protected resource routing."""

import logging

from fastmcp import FastMCP
from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Mount, Route

from mcp_oauth.auth import BearerAuthMiddleware, SupabaseIntrospector, TokenIntrospector
from mcp_oauth.config import ConfigurationError
from mcp_oauth.metadata import create_metadata_routes
from mcp_oauth.models import WELL_KNOWN_PATH, ResourceConfig, ServerSettings

logger = logging.getLogger(__name__)


def _format_number(value: float) -> str:
    """Render a number the way a JSON client would print it (5, not 5.0)."""
    if float(value).is_integer():
        return str(int(value))
    return str(value)


def create_mcp(name: str = "simple-mcp-server", version: str = "1.0.0") -> FastMCP:
    """Create the MCP server and register its tools."""
    mcp = FastMCP(name, version=version)

    @mcp.tool(name="add", title="Addition Tool", description="Add two numbers together")
    def add(a: float, b: float) -> str:
        return _format_number(a + b)

    return mcp


def build_introspector(
    config: ResourceConfig, settings: ServerSettings
) -> TokenIntrospector:
    """Create the Supabase Auth introspector for a resolved config."""
    if not config.identity_url:
        raise ConfigurationError(
            "SUPABASE_URL is required to reach the identity service"
        )
    return SupabaseIntrospector(
        identity_url=config.identity_url,
        anon_key=settings.supabase_anon_key or "",
        auth_path=settings.auth_path,
        timeout=settings.introspection_timeout,
    )


def create_app(
    config: ResourceConfig,
    introspector: TokenIntrospector,
    mcp: FastMCP | None = None,
) -> Starlette:
    """Create the ASGI app.

    Routes:
    - {base_path}/ - Health check (no auth)
    - {base_path}/.well-known/oauth-protected-resource - Challenge metadata (no auth)
    - /.well-known/oauth-protected-resource[{base_path}] - Advertised metadata (no auth)
    - {base_path}{mcp_path} - MCP Streamable HTTP endpoint (bearer auth)
    """
    if mcp is None:
        mcp = create_mcp(config.server_name, config.server_version)

    mcp_app = mcp.http_app(
        path=config.mcp_path,
        middleware=[
            Middleware(
                BearerAuthMiddleware,
                introspector=introspector,
                resource_metadata_url=config.resource_metadata_url,
            )
        ],
    )

    async def health_check(request: Request) -> JSONResponse:
        return JSONResponse(
            {
                "name": config.server_name,
                "version": config.server_version,
                "endpoints": {
                    "mcp": config.mcp_path,
                    "oauthMetadata": WELL_KNOWN_PATH,
                },
            }
        )

    # Order matters: more specific routes first, MCP mount last
    routes: list[Route | Mount] = [
        Route(f"{config.base_path}/", health_check, methods=["GET"]),
        *create_metadata_routes(config),
        Mount(config.base_path or "/", app=mcp_app),
    ]

    logger.info(
        "MCP endpoint at %s%s, challenge metadata at %s",
        config.base_path,
        config.mcp_path,
        config.resource_metadata_url,
    )

    return Starlette(routes=routes, lifespan=mcp_app.lifespan)


def run(
    config: ResourceConfig,
    introspector: TokenIntrospector,
    host: str = "0.0.0.0",
    port: int = 8000,
) -> None:  # pragma: no cover
    """Serve the app with uvicorn."""
    import uvicorn

    app = create_app(config, introspector)
    uvicorn.run(app, host=host, port=port)
