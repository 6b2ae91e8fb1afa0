"""Configuration loading and URL resolution for the MCP OAuth server."""

import logging
import os
import re
from collections.abc import Mapping
from pathlib import Path
from urllib.parse import urlsplit

import yaml

from mcp_oauth.models import ResourceConfig, ServerSettings

logger = logging.getLogger(__name__)

# Environment variable -> ServerSettings field
ENV_VARS = {
    "SUPABASE_URL": "supabase_url",
    "SUPABASE_ANON_KEY": "supabase_anon_key",
    "MCP_PUBLIC_URL": "public_url",
    "MCP_AUTH_SERVER_URL": "auth_server_url",
    "MCP_CHALLENGE_AUTH_SERVER_URL": "challenge_auth_server_url",
    "MCP_FUNCTION_NAME": "function_name",
    "MCP_BASE_PATH": "base_path",
    "MCP_PATH": "mcp_path",
    "MCP_LOCAL_PORT": "local_port",
    "MCP_LOCAL_MARKERS": "local_markers",
    "MCP_SCOPES_SUPPORTED": "scopes_supported",
    "MCP_SERVER_NAME": "server_name",
    "MCP_SERVER_VERSION": "server_version",
    "MCP_INTROSPECTION_TIMEOUT": "introspection_timeout",
}

_LIST_FIELDS = {"local_markers", "scopes_supported"}


class ConfigurationError(ValueError):
    """Raised when settings cannot be resolved into a servable config."""


def _substitute_env_vars(obj, environ: Mapping[str, str]):
    """Recursively substitute ${VAR} with environment variables."""
    if isinstance(obj, str):
        pattern = r"\$\{([^}]+)\}"
        return re.sub(pattern, lambda m: environ.get(m.group(1), m.group(0)), obj)
    elif isinstance(obj, dict):
        return {k: _substitute_env_vars(v, environ) for k, v in obj.items()}
    elif isinstance(obj, list):
        return [_substitute_env_vars(item, environ) for item in obj]
    return obj


def _settings_from_env(environ: Mapping[str, str]) -> dict:
    data = {}
    for var, field_name in ENV_VARS.items():
        value = environ.get(var)
        if value is None or value == "":
            continue
        if field_name in _LIST_FIELDS:
            data[field_name] = [v.strip() for v in value.split(",") if v.strip()]
        else:
            data[field_name] = value
    return data


def load_settings(
    path: str | Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> ServerSettings:
    """Load settings from environment variables, overlaid by an optional YAML file.

    String values in the YAML file may reference environment variables
    with ``${VAR}``.
    """
    if environ is None:
        environ = os.environ

    data = _settings_from_env(environ)

    if path is not None:
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")

        with open(path) as f:
            file_data = yaml.safe_load(f) or {}

        data.update(_substitute_env_vars(file_data, environ))

    return ServerSettings(**data)


def _normalize_path(path: str) -> str:
    path = path.strip().rstrip("/")
    if path and not path.startswith("/"):
        path = f"/{path}"
    return path


def is_local_url(url: str, markers: list[str]) -> bool:
    """Return True if the URL's host is one of the local-development markers."""
    host = urlsplit(url).hostname or ""
    return host in {marker.lower() for marker in markers}


def resolve_base_url(settings: ServerSettings) -> tuple[str | None, bool]:
    """Resolve the public base URL and whether it is a local deployment.

    Local deployments (loopback or the internal gateway hostname) are
    rewritten to ``http://localhost:<local_port>`` because the configured
    URL is only reachable from inside the runtime.
    """
    if not settings.supabase_url:
        return None, False

    if is_local_url(settings.supabase_url, settings.local_markers):
        return f"http://localhost:{settings.local_port}", True

    return settings.supabase_url.rstrip("/"), False


def resolve_config(settings: ServerSettings) -> ResourceConfig:
    """Compute the immutable resource config from settings.

    Priority for the resource URL: explicit public URL, then the local
    loopback substitute, then the configured production base URL.
    """
    base_url, is_local = resolve_base_url(settings)

    if settings.public_url:
        resource_url = settings.public_url
    elif base_url:
        resource_url = (
            f"{base_url}{_normalize_path(settings.functions_path)}"
            f"/{settings.function_name}"
        )
    else:
        raise ConfigurationError(
            "No base URL configured: set SUPABASE_URL or MCP_PUBLIC_URL"
        )

    if settings.auth_server_url:
        authorization_server = settings.auth_server_url
    elif base_url:
        authorization_server = f"{base_url}{_normalize_path(settings.auth_path)}"
    else:
        raise ConfigurationError(
            "Cannot derive the authorization server: "
            "set SUPABASE_URL or MCP_AUTH_SERVER_URL"
        )

    challenge_authorization_server = (
        settings.challenge_auth_server_url or authorization_server
    )

    if settings.base_path is None:
        base_path = f"/{settings.function_name}"
    else:
        base_path = _normalize_path(settings.base_path)

    config = ResourceConfig(
        resource_url=resource_url,
        authorization_server=authorization_server,
        challenge_authorization_server=challenge_authorization_server,
        identity_url=(settings.supabase_url or base_url or "").rstrip("/"),
        is_local=is_local,
        scopes_supported=tuple(settings.scopes_supported),
        base_path=base_path,
        mcp_path=_normalize_path(settings.mcp_path) or "/",
        server_name=settings.server_name,
        server_version=settings.server_version,
    )

    logger.info(
        "Resolved resource %s (local=%s, authorization server %s)",
        config.resource_url,
        config.is_local,
        config.authorization_server,
    )
    if config.challenge_authorization_server != config.authorization_server:
        logger.info(
            "Challenge metadata advertises a different authorization server: %s",
            config.challenge_authorization_server,
        )

    return config


def validate_settings(settings: ServerSettings) -> list[str]:
    """Validate settings and return list of errors."""
    errors = []

    try:
        resolve_config(settings)
    except ConfigurationError as e:
        errors.append(str(e))

    if not settings.supabase_anon_key:
        errors.append("SUPABASE_ANON_KEY is not set; the identity service will reject requests")

    for name in ("supabase_url", "public_url", "auth_server_url", "challenge_auth_server_url"):
        value = getattr(settings, name)
        if value and not value.startswith(("http://", "https://")):
            errors.append(f"{name} must be an http(s) URL: {value}")

    if not settings.scopes_supported:
        errors.append("scopes_supported must not be empty")

    return errors
