"""CLI commands for connecting to VergeOS servers and switching between them."""

import logging
import sys
from typing import Any, Optional

import click
from keyring.errors import KeyringError

from .cli_formatters import format_connections_table
from .cli_utils import format_option
from .connection import get_registry, normalize_server
from .errors import NotConnectedError, VergeError
from .profiles import (
    Profile,
    ProfileConfig,
    check_config_file_permissions,
    load_profiles_into,
)
from .table_utils import output_formatted_list
from .utils import ExitCodes, format_success, handle_api_error

logger = logging.getLogger(__name__)


def register_connection_commands(cli: Any) -> None:
    """Register connect, disconnect, connections and use."""

    @cli.command()
    @click.argument("server")
    @click.option("--username", "-u", help="Login name")
    @click.option("--password", "-p", help="Login password (prompted when omitted)")
    @click.option("--token", "-t", help="API token; used instead of a username/password login")
    @click.option(
        "--insecure", "-k", is_flag=True, help="Skip TLS certificate verification (self-signed)"
    )
    @click.option(
        "--name", "-n", "profile_name", help="Profile name to save under (default: server)"
    )
    @click.option("--no-save", is_flag=True, help="Do not save the connection as a profile")
    def connect(
        server: str,
        username: Optional[str],
        password: Optional[str],
        token: Optional[str],
        insecure: bool,
        profile_name: Optional[str],
        no_save: bool,
    ) -> None:
        """Connect to a VergeOS server and make it the default.

        Authenticate with --username (password is prompted if not given) or
        with an API --token. The session is saved as a profile so later
        commands reuse it; the token goes to the system keyring.
        """
        if token and username and password:
            click.echo("✗ Use either --token or --username/--password, not both.", err=True)
            sys.exit(ExitCodes.INVALID_INPUT)
        if not token:
            if not username:
                username = click.prompt("Username")
            if not password:
                password = click.prompt("Password", hide_input=True)

        try:
            conn = get_registry().connect(
                server,
                username=username,
                password=None if token else password,
                token=token,
                skip_cert_check=insecure,
            )
        except (VergeError, ValueError) as exc:
            handle_api_error(exc)

        details = {"User": conn.username or "(token)", "Auth": conn.auth_type}
        if not no_save:
            cfg = ProfileConfig.load()
            existing = cfg.find_by_server(conn.server)
            name = profile_name or (existing.name if existing else conn.server)
            profile = Profile.from_connection(name, conn)
            try:
                profile.set_token(conn.token)
            except KeyringError as exc:
                click.echo(f"⚠️  Could not store token in keyring: {exc}", err=True)
            else:
                cfg.add_profile(profile, set_current=True)
                cfg.save()
                details["Profile"] = name

        if insecure:
            click.echo(
                "⚠️  TLS certificate verification is disabled for this connection.", err=True
            )
        format_success(f"Connected to {conn.server}", details)

    @cli.command()
    @click.argument("server", required=False)
    @click.option("--all", "disconnect_all", is_flag=True, help="Disconnect every server")
    def disconnect(server: Optional[str], disconnect_all: bool) -> None:
        """Disconnect from SERVER or a profile name (the default when omitted).

        The saved profile and its keyring token are removed as well.
        """
        registry = get_registry()
        load_profiles_into(registry)
        if server:
            profile = ProfileConfig.load().get_profile(server)
            if profile is not None:
                server = profile.server

        try:
            removed = registry.disconnect(server, all=disconnect_all)
        except NotConnectedError as exc:
            if server and _forget_profile(normalize_server(server)):
                click.echo(f"✓ Removed saved profile for {normalize_server(server)}")
                return
            handle_api_error(exc)

        for conn in removed:
            _forget_profile(conn.server)
            click.echo(f"✓ Disconnected from {conn.server}")
        if not removed:
            click.echo("No connections.")

        if registry.default is not None:
            click.echo(f"  Default is now: {registry.default.server}")

    @cli.command(name="connections")
    @format_option
    def list_connections(output_format: str) -> None:
        """List connections; '*' marks the default."""
        registry = get_registry()
        load_profiles_into(registry)

        warning = check_config_file_permissions()
        if warning and output_format == "table":
            click.echo(f"⚠️  {warning}\n", err=True)

        output_formatted_list(
            items=registry.list(),
            output_format=output_format,
            headers=["", "SERVER", "USER", "AUTH", "INSECURE", "CONNECTED"],
            column_widths=[1, 32, 16, 7, 8, 16],
            row_formatter_func=format_connections_table,
            empty_message="No connections. Run 'vgcli connect SERVER' to add one.",
            total_label="connection(s)",
            json_formatter_func=lambda conn: conn.to_dict(),
        )

    @cli.command()
    @click.argument("server")
    def use(server: str) -> None:
        """Make SERVER (or a profile name) the default connection."""
        registry = get_registry()
        load_profiles_into(registry)
        cfg = ProfileConfig.load()

        profile = cfg.get_profile(server) or cfg.find_by_server(normalize_server(server))
        target = profile.server if profile else server
        try:
            conn = registry.set_default(target)
        except NotConnectedError as exc:
            handle_api_error(exc)

        if profile is not None:
            cfg.set_current_profile(profile.name)
            cfg.save()
        click.echo(f"✓ Default connection is now {conn.server}")


def _forget_profile(server: str) -> bool:
    """Delete the saved profile and keyring token for a server."""
    cfg = ProfileConfig.load()
    profile = cfg.find_by_server(server)
    if profile is None:
        return False
    profile.delete_token()
    cfg.delete_profile(profile.name)
    cfg.save()
    logger.debug("Removed profile '%s'", profile.name)
    return True
