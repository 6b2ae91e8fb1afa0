"""Tests for logging setup."""

import logging

import pytest

from mcp_oauth.debug import configure_logging, is_debug_enabled, token_preview


@pytest.fixture
def app_logger():
    logger = logging.getLogger("mcp_oauth")
    saved_handlers = list(logger.handlers)
    saved_level = logger.level
    logger.handlers = []
    yield logger
    logger.handlers = saved_handlers
    logger.setLevel(saved_level)


class TestIsDebugEnabled:
    """Tests for is_debug_enabled function."""

    def test_disabled_by_default(self):
        assert is_debug_enabled() is False

    @pytest.mark.parametrize("value", ["1", "true", "YES"])
    def test_enabled_by_env(self, monkeypatch, value):
        monkeypatch.setenv("MCP_OAUTH_DEBUG", value)
        assert is_debug_enabled() is True


class TestTokenPreview:
    """Tests for token_preview function."""

    def test_long_token_truncated(self):
        assert token_preview("abcdefghijklmnop") == "abcdefgh..."

    def test_short_token_hidden(self):
        assert token_preview("short") == "***"


class TestConfigureLogging:
    """Tests for configure_logging function."""

    def test_installs_single_handler(self, app_logger):
        configure_logging(logging.INFO)
        configure_logging(logging.INFO)

        assert len(app_logger.handlers) == 1
        assert app_logger.level == logging.INFO

    def test_debug_from_env(self, app_logger, monkeypatch):
        monkeypatch.setenv("MCP_OAUTH_DEBUG", "1")

        configure_logging()

        assert app_logger.level == logging.DEBUG
        assert app_logger.handlers[0].level == logging.DEBUG

    def test_relevel_existing_handler(self, app_logger):
        configure_logging(logging.INFO)
        configure_logging(logging.WARNING)

        assert app_logger.handlers[0].level == logging.WARNING
