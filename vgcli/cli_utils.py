"""Common utility functions for all CLI commands."""

import sys
from typing import Any, Callable, Iterable, List, Optional

import click

from .client import VergeClient
from .connection import get_registry
from .errors import ApiError, ErrorKind, VergeError
from .profiles import load_saved_connections
from .resources import get_definition
from .utils import ExitCodes, error_exit_code, handle_api_error, warn_api_error

FORMAT_OPTION_CHOICES = ["table", "json"]


def format_option(func: Callable) -> Callable:
    """Add the standard ``--format/-f`` option."""
    return click.option(
        "--format",
        "-f",
        "output_format",
        type=click.Choice(FORMAT_OPTION_CHOICES),
        default="table",
        show_default=True,
        help="Output format",
    )(func)


def get_client(server: Optional[str] = None) -> VergeClient:
    """Return a client on the given server or the default connection.

    Falls back to VERGEOS_* environment credentials when nothing is loaded.
    Exits with NOT_CONNECTED when no connection can be resolved.
    """
    registry = get_registry()
    try:
        if registry.default is None:
            load_saved_connections(registry)
        registry.resolve(server)
    except (VergeError, ValueError) as exc:
        handle_api_error(exc)
    return VergeClient(server)


def resolve_keys(client: VergeClient, resource: str, identifier: str) -> List[Any]:
    """Resolve a numeric key or a (wildcard) name to record keys.

    Raises:
        ApiError: NOT_FOUND when no record matches the name
    """
    if identifier.isdigit():
        return [int(identifier)]
    definition = get_definition(resource)
    matches = client.find(resource, identifier)
    if not matches:
        raise ApiError(
            404, f"No {definition.name} matches '{identifier}'", kind=ErrorKind.NOT_FOUND
        )
    return [item.key for item in matches]


def resolve_single_key(client: VergeClient, resource: str, identifier: str) -> Any:
    """Resolve an identifier that must match exactly one record."""
    keys = resolve_keys(client, resource, identifier)
    if len(keys) > 1:
        raise ApiError(
            409,
            f"'{identifier}' matches {len(keys)} {resource} records; use the key instead",
            kind=ErrorKind.CONFLICT,
        )
    return keys[0]


def confirm_bulk_operation(
    operation: str,
    resource_type: str,
    count: int,
    force: bool = False,
) -> bool:
    """Confirm bulk operations with user prompt.

    Args:
        operation: Operation name (e.g., "delete", "stop")
        resource_type: Type of resource
        count: Number of resources affected
        force: Skip confirmation if True

    Returns:
        True if confirmed, False otherwise
    """
    if force:
        return True

    if count == 0:
        click.echo(f"No {resource_type}s to {operation}")
        return False

    if count == 1:
        return click.confirm(f"Are you sure you want to {operation} this {resource_type}?")

    return click.confirm(f"Are you sure you want to {operation} {count} {resource_type}s?")


def run_bulk(
    client: VergeClient,
    resource: str,
    identifiers: Iterable[str],
    operation: Callable[[Any], None],
    verb: str,
) -> None:
    """Apply an operation to every identifier, warning on and skipping failures.

    Exits non-zero with the exit code of the last failure once all items are
    processed.
    """
    failed_code: Optional[int] = None
    done = 0
    for identifier in identifiers:
        try:
            keys = resolve_keys(client, resource, identifier)
        except (VergeError, ValueError) as exc:
            warn_api_error(exc, f"{resource} {identifier}")
            failed_code = error_exit_code(exc)[0]
            continue
        for key in keys:
            try:
                operation(key)
            except (VergeError, ValueError) as exc:
                warn_api_error(exc, f"{resource} {key}")
                failed_code = error_exit_code(exc)[0]
                continue
            done += 1
            click.echo(f"✓ {verb} {resource} {key}")

    if failed_code is not None:
        click.echo(f"{done} succeeded, some items failed.", err=True)
        sys.exit(failed_code or ExitCodes.GENERAL_ERROR)
