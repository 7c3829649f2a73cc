"""vgcli entry points."""

import os
from importlib import metadata
from pathlib import Path
from typing import Optional

import click
import tomllib

from . import ssl_trust
from .api_click import register_api_commands
from .connection import get_registry
from .connection_click import register_connection_commands
from .profiles import load_profiles_into, set_profile_override
from .resource_click import register_resource_commands
from .utils import configure_logging


def get_version() -> str:
    """Get version from the installed distribution or pyproject.toml (development)."""
    try:
        return metadata.version("vgcli")
    except metadata.PackageNotFoundError:
        # Fall back to reading pyproject.toml (works in development)
        try:
            pyproject_path = Path(__file__).parent.parent / "pyproject.toml"

            with open(pyproject_path, "rb") as f:
                pyproject_data = tomllib.load(f)

            return pyproject_data["project"]["version"]
        except (OSError, KeyError, tomllib.TOMLDecodeError):
            return "unknown"


CONTEXT_SETTINGS = dict(help_option_names=["-h", "--help"])


@click.group(context_settings=CONTEXT_SETTINGS, invoke_without_command=True)
@click.option("--version", "-v", is_flag=True, help="Show version and exit")
@click.option("--verbose", "-V", is_flag=True, help="Log API calls to stderr")
@click.option("--profile", "-P", "profile", help="Saved connection profile to use as default")
@click.pass_context
def cli(ctx: click.Context, version: bool, verbose: bool, profile: Optional[str]) -> None:
    """VergeOS CLI (vgcli) - Command-line interface for VergeOS resources."""  # noqa: D403
    if version:
        click.echo(f"vgcli version {get_version()}")
        ctx.exit()

    configure_logging(verbose)
    set_profile_override(profile)
    load_profiles_into(get_registry())

    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


@cli.command(hidden=True, name="_ca-info")
def ca_info() -> None:
    """Show TLS CA trust source (hidden diagnostic)."""
    if ssl_trust.OS_TRUST_INJECTED:
        click.echo(f"CA Source: system (reason={ssl_trust.OS_TRUST_REASON})")
        return

    verify_env = os.environ.get("REQUESTS_CA_BUNDLE") or os.environ.get("SSL_CERT_FILE")
    if verify_env:
        click.echo(f"CA Source: custom-pem ({verify_env})")
    else:
        click.echo(f"CA Source: certifi (reason={ssl_trust.OS_TRUST_REASON})")


register_connection_commands(cli)
register_resource_commands(cli)
register_api_commands(cli)
