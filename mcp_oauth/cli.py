"""CLI commands for mcp-oauth."""

import asyncio
import json

import click
from pydantic import ValidationError

from mcp_oauth.config import ConfigurationError, load_settings, resolve_config, validate_settings
from mcp_oauth.debug import configure_logging
from mcp_oauth.models import ServerSettings


def run_async(coro):
    """Run an async coroutine from sync CLI code."""
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
    return loop.run_until_complete(coro)


def get_settings(config: str | None) -> ServerSettings:
    """Load settings, exiting with a message if they are unreadable."""
    try:
        return load_settings(config)
    except FileNotFoundError as e:
        click.echo(f"Error: {e}", err=True)
        raise SystemExit(1)
    except ValidationError as e:
        click.echo(f"Error: Invalid configuration: {e}", err=True)
        raise SystemExit(1)


def config_option():
    """Decorator for --config option."""
    return click.option(
        "--config", "-c",
        default=None,
        type=click.Path(exists=False),
        help="Optional YAML settings file (environment variables are always read)",
    )


@click.group()
def main():
    """MCP server behind OAuth protected resource discovery."""
    pass


@main.command()
@config_option()
@click.option("--host", default="0.0.0.0", help="Interface to bind")
@click.option("--port", "-p", default=8000, type=int, help="Port for HTTP transport")
@click.option("--env-file", "-e", default=".env", type=click.Path(), help="Path to .env file (default: .env)")
def serve(config: str | None, host: str, port: int, env_file: str):  # pragma: no cover
    """Start the MCP server."""
    from dotenv import load_dotenv

    from mcp_oauth.server import build_introspector, run

    load_dotenv(env_file)
    configure_logging()

    settings = get_settings(config)
    try:
        resource_config = resolve_config(settings)
        introspector = build_introspector(resource_config, settings)
    except ConfigurationError as e:
        click.echo(f"Error: {e}", err=True)
        raise SystemExit(1)

    run(resource_config, introspector, host=host, port=port)


@main.command()
@config_option()
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def urls(config: str | None, as_json: bool):
    """Show the resolved resource and authorization server URLs."""
    settings = get_settings(config)
    try:
        resource_config = resolve_config(settings)
    except ConfigurationError as e:
        click.echo(f"Error: {e}", err=True)
        raise SystemExit(1)

    data = {
        "resource": resource_config.resource_url,
        "authorization_server": resource_config.authorization_server,
        "challenge_authorization_server": resource_config.challenge_authorization_server,
        "resource_metadata": resource_config.resource_metadata_url,
        "local": resource_config.is_local,
    }

    if as_json:
        click.echo(json.dumps(data, indent=2))
    else:
        for key, value in data.items():
            click.echo(f"{key}: {value}")


@main.command()
@config_option()
def validate(config: str | None):
    """Validate the configuration."""
    settings = get_settings(config)
    errors = validate_settings(settings)

    if errors:
        click.echo("Configuration errors:", err=True)
        for error in errors:
            click.echo(f"  - {error}", err=True)
        raise SystemExit(1)

    click.echo("Configuration is valid.")


@main.command()
@click.argument("token")
@config_option()
def introspect(token: str, config: str | None):
    """Ask the identity service who owns TOKEN."""
    from mcp_oauth.server import build_introspector

    settings = get_settings(config)
    try:
        resource_config = resolve_config(settings)
        introspector = build_introspector(resource_config, settings)
    except ConfigurationError as e:
        click.echo(f"Error: {e}", err=True)
        raise SystemExit(1)

    result = run_async(introspector.introspect(token))
    if not result.valid:
        click.echo(f"Invalid token: {result.error or 'Token validation failed'}", err=True)
        raise SystemExit(1)

    click.echo(json.dumps(result.principal, indent=2))
