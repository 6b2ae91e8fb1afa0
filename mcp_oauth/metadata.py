"""OAuth 2.0 Protected Resource Metadata (RFC 9728) routes.

Two documents are served from the same resource config:

- the *advertised* document at the well-known path, for clients that probe
  ``/.well-known/oauth-protected-resource`` on their own;
- the *challenge* document, the one referenced by ``resource_metadata`` in
  401 responses.

Each lists its own authorization server, so the logs show which document a
given client actually fetched.
"""

import logging
from collections.abc import Sequence

from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Route

from mcp_oauth.models import WELL_KNOWN_PATH, ResourceConfig

logger = logging.getLogger(__name__)


def build_metadata_document(
    resource: str, authorization_server: str, scopes: Sequence[str]
) -> dict:
    """Build a protected resource metadata document."""
    return {
        "resource": resource,
        "authorization_servers": [authorization_server],
        "scopes_supported": list(scopes),
    }


def advertised_metadata(config: ResourceConfig) -> dict:
    return build_metadata_document(
        config.resource_url, config.authorization_server, config.scopes_supported
    )


def challenge_metadata(config: ResourceConfig) -> dict:
    return build_metadata_document(
        config.resource_url,
        config.challenge_authorization_server,
        config.scopes_supported,
    )


def create_metadata_routes(config: ResourceConfig) -> list[Route]:
    """Create the metadata routes for a resource.

    When the challenge path and the well-known path coincide (empty base
    path) only the challenge document is served there.
    """
    advertised = advertised_metadata(config)
    challenge = challenge_metadata(config)

    async def advertised_endpoint(request: Request) -> JSONResponse:
        """Serve metadata to clients that probed the well-known path."""
        logger.info("Serving well-known resource metadata at %s", request.url.path)
        return JSONResponse(advertised)

    async def challenge_endpoint(request: Request) -> JSONResponse:
        """Serve metadata to clients that followed the 401 challenge."""
        logger.info("Serving challenge resource metadata at %s", request.url.path)
        return JSONResponse(challenge)

    challenge_path = config.challenge_metadata_path
    routes = [Route(challenge_path, challenge_endpoint, methods=["GET"])]

    advertised_paths = [WELL_KNOWN_PATH]
    if config.base_path:
        # RFC 9728 section 3.1: well-known path inserted before the resource path
        advertised_paths.append(f"{WELL_KNOWN_PATH}{config.base_path}")

    for path in advertised_paths:
        if path != challenge_path:
            routes.append(Route(path, advertised_endpoint, methods=["GET"]))

    return routes
