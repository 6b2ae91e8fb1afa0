"""Logging setup for the MCP OAuth server.

Enable verbose output via MCP_OAUTH_DEBUG=1 or ``configure_logging(logging.DEBUG)``.
"""

import logging
import os

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

# Characters of a token that may appear in debug logs
TOKEN_PREVIEW_CHARS = 8


def is_debug_enabled() -> bool:
    """Check if MCP_OAUTH_DEBUG is set to "1", "true", or "yes"."""
    env_val = os.environ.get("MCP_OAUTH_DEBUG", "").lower()
    return env_val in ("1", "true", "yes")


def token_preview(token: str) -> str:
    """Shorten a credential so it can be logged."""
    if len(token) <= TOKEN_PREVIEW_CHARS:
        return "***"
    return f"{token[:TOKEN_PREVIEW_CHARS]}..."


def configure_logging(level: int | None = None) -> None:
    """Configure the mcp_oauth logger.

    Call this during application startup. Repeated calls only adjust the
    level; a handler is installed once.

    Args:
        level: Logging level; defaults to DEBUG when MCP_OAUTH_DEBUG is set,
            INFO otherwise.
    """
    if level is None:
        level = logging.DEBUG if is_debug_enabled() else logging.INFO

    app_logger = logging.getLogger("mcp_oauth")
    app_logger.setLevel(level)

    if not app_logger.handlers:
        handler = logging.StreamHandler()
        handler.setLevel(level)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        app_logger.addHandler(handler)
    else:
        for handler in app_logger.handlers:
            handler.setLevel(level)
