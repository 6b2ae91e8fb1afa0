"""Bearer token authentication for the MCP endpoint.

Token verification is delegated to an external identity service through the
``TokenIntrospector`` protocol. Three backends are provided:

1. **SupabaseIntrospector**: asks Supabase Auth who owns the token
   (``GET /auth/v1/user``). This is the default backend.
2. **IntrospectionEndpointIntrospector**: OAuth 2.0 Token Introspection
   (RFC 7662) against any authorization server exposing it.
3. **StaticIntrospector**: fixed token table for local development and tests.

``BearerAuthMiddleware`` runs an introspector on every request and answers
failures with a 401 whose ``WWW-Authenticate`` header points clients at the
protected resource metadata document (RFC 9728).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Protocol

import httpx
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse

from mcp_oauth.debug import token_preview

if TYPE_CHECKING:
    from starlette.types import ASGIApp

logger = logging.getLogger(__name__)


# =============================================================================
# Protocol / Interface
# =============================================================================


@dataclass
class IntrospectionResult:
    """Outcome of asking the identity service about a token."""

    principal: dict[str, Any] | None = None
    error: str | None = None

    @property
    def valid(self) -> bool:
        return self.principal is not None


class TokenIntrospector(Protocol):
    """Protocol for identity backends that can verify a bearer token."""

    async def introspect(self, token: str) -> IntrospectionResult:
        """Return the principal owning the token, or a failure reason.

        Implementations must not raise for rejected tokens or transport
        failures; both are reported as a failed result.
        """
        ...


# =============================================================================
# Identity backends
# =============================================================================


def _error_message(body: Any) -> str | None:
    """Pull a human-readable reason out of an identity service error body."""
    if not isinstance(body, dict):
        return None
    for key in ("msg", "message", "error_description", "error"):
        value = body.get(key)
        if isinstance(value, str) and value:
            return value
    return None


@dataclass
class SupabaseIntrospector:
    """Validates tokens by fetching the owning user from Supabase Auth.

    Equivalent to ``supabase.auth.getUser()`` with the caller's token: the
    project's anon key identifies the client and the bearer token identifies
    the user. The user record is returned unmodified as the principal.
    """

    identity_url: str
    anon_key: str
    auth_path: str = "/auth/v1"
    timeout: float = 10.0

    @property
    def user_url(self) -> str:
        return f"{self.identity_url.rstrip('/')}{self.auth_path}/user"

    async def introspect(self, token: str) -> IntrospectionResult:
        # Header values must be ASCII; RFC 6750 tokens always are.
        if not token.isascii():
            return IntrospectionResult(error="Invalid token")

        headers = {
            "apikey": self.anon_key,
            "Authorization": f"Bearer {token}",
        }
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.get(self.user_url, headers=headers)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.warning("Supabase Auth request failed: %r", e)
            return IntrospectionResult(error="Identity service unavailable")

        try:
            body = response.json()
        except ValueError:
            body = None

        if response.status_code == 200 and isinstance(body, dict) and body:
            return IntrospectionResult(principal=body)

        reason = _error_message(body) or "Invalid token"
        logger.debug(
            "Supabase Auth rejected token %s: %s (status %s)",
            token_preview(token),
            reason,
            response.status_code,
        )
        return IntrospectionResult(error=reason)


@dataclass
class IntrospectionEndpointIntrospector:
    """Validates tokens with OAuth 2.0 Token Introspection (RFC 7662).

    The introspection response itself becomes the principal when the token
    is active.
    """

    introspection_url: str
    client_id: str | None = None
    client_secret: str | None = None
    timeout: float = 10.0

    async def introspect(self, token: str) -> IntrospectionResult:
        data = {"token": token, "token_type_hint": "access_token"}
        auth = None
        if self.client_id:
            auth = httpx.BasicAuth(self.client_id, self.client_secret or "")

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(
                    self.introspection_url, data=data, auth=auth
                )
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.warning("Token introspection request failed: %r", e)
            return IntrospectionResult(error="Identity service unavailable")

        if response.status_code != 200:
            logger.warning(
                "Token introspection returned status %s", response.status_code
            )
            return IntrospectionResult(
                error=f"Introspection failed with status {response.status_code}"
            )

        try:
            body = response.json()
        except ValueError:
            return IntrospectionResult(error="Malformed introspection response")

        if isinstance(body, dict) and body.get("active") is True:
            return IntrospectionResult(principal=body)

        return IntrospectionResult(error="Token is not active")


@dataclass
class StaticIntrospector:
    """Maps known tokens to fixed principals. Never use in production."""

    tokens: dict[str, dict[str, Any]] = field(default_factory=dict)

    async def introspect(self, token: str) -> IntrospectionResult:
        principal = self.tokens.get(token)
        if principal is None:
            return IntrospectionResult(error="Unknown token")
        return IntrospectionResult(principal=principal)


# =============================================================================
# Challenges
# =============================================================================


def _quote(value: str) -> str:
    """Quote a WWW-Authenticate parameter value (RFC 9110 quoted-string)."""
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def build_www_authenticate_header(
    resource_metadata_url: str,
    error: str | None = None,
    error_description: str | None = None,
) -> str:
    """Build a Bearer challenge per RFC 6750 and RFC 9728.

    MCP clients use the resource_metadata URL to discover the authorization
    server.
    """
    header = f"Bearer resource_metadata={_quote(resource_metadata_url)}"
    if error:
        header += f", error={_quote(error)}"
    if error_description:
        header += f", error_description={_quote(error_description)}"
    return header


@dataclass
class AuthChallenge:
    """A rejected request: JSON body fields plus challenge header fields."""

    error: str
    error_description: str
    header_error: str | None = None
    header_description: str | None = None

    @classmethod
    def missing_header(cls) -> AuthChallenge:
        return cls("unauthorized", "Missing authorization header")

    @classmethod
    def invalid_request(cls) -> AuthChallenge:
        return cls(
            "invalid_request",
            "Invalid authorization header format",
            header_error="invalid_request",
            header_description="Bearer token required",
        )

    @classmethod
    def invalid_token(cls, reason: str | None = None) -> AuthChallenge:
        return cls(
            "invalid_token",
            reason or "Token validation failed",
            header_error="invalid_token",
            header_description=reason,
        )

    def www_authenticate(self, resource_metadata_url: str) -> str:
        return build_www_authenticate_header(
            resource_metadata_url, self.header_error, self.header_description
        )

    def to_response(self, resource_metadata_url: str) -> JSONResponse:
        return JSONResponse(
            {"error": self.error, "error_description": self.error_description},
            status_code=401,
            headers={"WWW-Authenticate": self.www_authenticate(resource_metadata_url)},
        )


def parse_authorization_header(value: str) -> str | None:
    """Return the bearer credential from ``<scheme> <credential>``.

    Returns None when the scheme is not Bearer (case-insensitive) or the
    credential is empty.
    """
    parts = value.split(" ")
    scheme = parts[0]
    token = parts[1] if len(parts) > 1 else ""
    if scheme.lower() != "bearer" or not token:
        return None
    return token


# =============================================================================
# Auth Middleware
# =============================================================================


class BearerAuthMiddleware(BaseHTTPMiddleware):
    """Middleware that admits requests carrying a token the identity service accepts.

    On success the principal is stored on ``request.state.principal`` for
    downstream handlers.
    """

    def __init__(
        self,
        app: ASGIApp,
        introspector: TokenIntrospector,
        resource_metadata_url: str,
        exclude_paths: list[str] | None = None,
    ):
        super().__init__(app)
        self.introspector = introspector
        self.resource_metadata_url = resource_metadata_url
        self.exclude_paths = exclude_paths or []

    def _reject(self, request: Request, challenge: AuthChallenge) -> JSONResponse:
        logger.info(
            "Rejected %s %s: %s (%s)",
            request.method,
            request.url.path,
            challenge.error,
            challenge.error_description,
        )
        return challenge.to_response(self.resource_metadata_url)

    async def dispatch(self, request: Request, call_next):
        """Validate the bearer token before passing the request on."""
        if any(request.url.path.startswith(p) for p in self.exclude_paths):
            return await call_next(request)

        auth_header = request.headers.get("authorization")
        if not auth_header:
            return self._reject(request, AuthChallenge.missing_header())

        token = parse_authorization_header(auth_header)
        if token is None:
            return self._reject(request, AuthChallenge.invalid_request())

        try:
            result = await self.introspector.introspect(token)
        except Exception:
            logger.exception("Introspector failed for token %s", token_preview(token))
            return self._reject(request, AuthChallenge.invalid_token())
        if not result.valid:
            return self._reject(request, AuthChallenge.invalid_token(result.error))

        logger.debug("Admitted token %s", token_preview(token))
        request.state.principal = result.principal
        return await call_next(request)
