"""Configuration models for the MCP OAuth server."""

from pydantic import BaseModel, ConfigDict, Field

WELL_KNOWN_PATH = "/.well-known/oauth-protected-resource"

DEFAULT_FUNCTION_NAME = "simple-mcp-server"
DEFAULT_SCOPES = ["openid", "profile", "email"]
DEFAULT_LOCAL_MARKERS = ["127.0.0.1", "localhost", "kong"]


class ServerSettings(BaseModel):
    """Raw settings as read from the environment and/or a YAML file.

    Nothing here is resolved yet. Use ``resolve_config`` to turn settings
    into the immutable ``ResourceConfig`` the app serves from.
    """

    model_config = ConfigDict(extra="forbid")

    supabase_url: str | None = None
    supabase_anon_key: str | None = None

    # Explicit overrides
    public_url: str | None = None
    auth_server_url: str | None = None
    challenge_auth_server_url: str | None = None

    function_name: str = DEFAULT_FUNCTION_NAME
    base_path: str | None = None
    mcp_path: str = "/mcp"
    functions_path: str = "/functions/v1"
    auth_path: str = "/auth/v1"

    local_port: int = 54321
    local_markers: list[str] = Field(
        default_factory=lambda: list(DEFAULT_LOCAL_MARKERS)
    )

    scopes_supported: list[str] = Field(default_factory=lambda: list(DEFAULT_SCOPES))
    server_name: str = DEFAULT_FUNCTION_NAME
    server_version: str = "1.0.0"
    introspection_timeout: float = 10.0


class ResourceConfig(BaseModel):
    """Resolved, immutable view of where this resource lives.

    ``authorization_server`` is what the well-known discovery document
    advertises. ``challenge_authorization_server`` is what the document
    referenced from a 401 challenge advertises. They are independent so
    an operator can see which discovery path a client actually follows.
    """

    model_config = ConfigDict(frozen=True)

    resource_url: str
    authorization_server: str
    challenge_authorization_server: str
    identity_url: str
    is_local: bool = False
    scopes_supported: tuple[str, ...] = tuple(DEFAULT_SCOPES)
    base_path: str = f"/{DEFAULT_FUNCTION_NAME}"
    mcp_path: str = "/mcp"
    server_name: str = DEFAULT_FUNCTION_NAME
    server_version: str = "1.0.0"

    @property
    def resource_metadata_url(self) -> str:
        """URL placed in the ``resource_metadata`` challenge parameter."""
        return f"{self.resource_url}{WELL_KNOWN_PATH}"

    @property
    def challenge_metadata_path(self) -> str:
        """Route path serving the challenge metadata document."""
        return f"{self.base_path}{WELL_KNOWN_PATH}"
