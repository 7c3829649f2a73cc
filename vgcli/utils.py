"""Shared utility functions for the vgcli command line."""

import datetime
import json
import logging
import sys
from typing import Any, Dict, List, Optional, Tuple

import click

from .errors import (
    ApiError,
    AuthenticationError,
    ErrorKind,
    NotConnectedError,
    TLSError,
    TransportError,
)


class ExitCodes:
    """Standard exit codes for CLI operations."""

    SUCCESS = 0
    GENERAL_ERROR = 1
    INVALID_INPUT = 2
    NOT_FOUND = 3
    PERMISSION_DENIED = 4
    NETWORK_ERROR = 5
    CONFLICT = 6
    NOT_CONNECTED = 7


_KIND_EXIT_CODES = {
    ErrorKind.NOT_FOUND: (ExitCodes.NOT_FOUND, "Resource not found"),
    ErrorKind.AUTH: (ExitCodes.PERMISSION_DENIED, "Permission denied"),
    ErrorKind.CONFLICT: (ExitCodes.CONFLICT, "Conflict"),
    ErrorKind.VALIDATION: (ExitCodes.INVALID_INPUT, "Invalid request"),
    ErrorKind.IN_USE: (ExitCodes.CONFLICT, "Resource in use"),
}


def error_exit_code(exc: Exception) -> Tuple[int, str]:
    """Return (exit code, label) for an exception."""
    if isinstance(exc, NotConnectedError):
        return ExitCodes.NOT_CONNECTED, "Not connected"
    if isinstance(exc, AuthenticationError):
        return ExitCodes.PERMISSION_DENIED, "Authentication failed"
    if isinstance(exc, TLSError):
        return ExitCodes.NETWORK_ERROR, "TLS error"
    if isinstance(exc, TransportError):
        return ExitCodes.NETWORK_ERROR, "Network error"
    if isinstance(exc, ApiError):
        return _KIND_EXIT_CODES.get(exc.kind, (ExitCodes.GENERAL_ERROR, "Error"))
    if isinstance(exc, ValueError):
        return ExitCodes.INVALID_INPUT, "Invalid input"
    return ExitCodes.GENERAL_ERROR, "Error"


def handle_api_error(exc: Exception) -> None:
    """Report an error with a consistent format and exit with the mapped code.

    Args:
        exc: The exception to handle
    """
    code, label = error_exit_code(exc)
    if isinstance(exc, ApiError):
        click.echo(f"✗ {label}: {exc.message} (HTTP {exc.status})", err=True)
    else:
        click.echo(f"✗ {label}: {exc}", err=True)
    sys.exit(code)


def warn_api_error(exc: Exception, context: str) -> None:
    """Print a per-item failure without exiting (bulk operations)."""
    _, label = error_exit_code(exc)
    message = exc.message if isinstance(exc, ApiError) else str(exc)
    click.echo(f"✗ {context}: {label}: {message}", err=True)


def format_success(message: str, data: Optional[Dict[str, Any]] = None) -> None:
    """Format success messages consistently.

    Args:
        message: Success message to display
        data: Optional data to display with the message
    """
    click.echo(f"✓ {message}")
    if data:
        for key, value in data.items():
            click.echo(f"  {key}: {value}")


def configure_logging(verbose: bool = False) -> None:
    """Send log records to stderr; DEBUG when verbose, WARNING otherwise."""
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
        force=True,
    )


def json_default(obj: Any) -> Any:
    """JSON serializer for values json.dumps does not handle."""
    if isinstance(obj, (datetime.datetime, datetime.date)):
        return obj.isoformat()
    return str(obj)


def dump_json(data: Any) -> str:
    return json.dumps(data, indent=2, default=json_default)


# --- File I/O Utilities ---
def load_json_file(filepath: str) -> Dict[str, Any]:
    """Load and parse JSON file with consistent error handling.

    Args:
        filepath: Path to JSON file to load

    Returns:
        Parsed JSON data as dictionary
    """
    try:
        with open(filepath, "r", encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError:
        click.echo(f"✗ File not found: {filepath}", err=True)
        sys.exit(ExitCodes.NOT_FOUND)
    except json.JSONDecodeError as exc:
        click.echo(f"✗ Invalid JSON in file {filepath}: {exc}", err=True)
        sys.exit(ExitCodes.INVALID_INPUT)
    except OSError as exc:
        click.echo(f"✗ Error reading file {filepath}: {exc}", err=True)
        sys.exit(ExitCodes.GENERAL_ERROR)

    if not isinstance(data, dict):
        click.echo(f"✗ Expected a JSON object in {filepath}", err=True)
        sys.exit(ExitCodes.INVALID_INPUT)
    return data


def parse_value(text: str) -> Any:
    """Interpret a --set value: JSON literals where they parse, else the string."""
    try:
        return json.loads(text)
    except ValueError:
        return text


def parse_assignments(assignments: List[str]) -> Dict[str, Any]:
    """Parse ``field=value`` pairs into a request body.

    Raises:
        click.BadParameter: An item has no '='
    """
    body: Dict[str, Any] = {}
    for item in assignments:
        if "=" not in item:
            raise click.BadParameter(f"Expected field=value, got '{item}'", param_hint="--set")
        name, value = item.split("=", 1)
        name = name.strip()
        if not name:
            raise click.BadParameter(f"Empty field name in '{item}'", param_hint="--set")
        body[name] = parse_value(value)
    return body
