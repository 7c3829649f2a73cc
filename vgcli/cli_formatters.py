"""Cell formatters for resource and connection tables."""

from datetime import datetime
from typing import Any, Callable, List, Tuple

from .connection import AUTH_APIKEY, Connection
from .mapper import MappedResource

# Columns that carry sizes in megabytes on the wire
_MEGABYTE_COLUMNS = {"RAM"}


def format_cell(column: str, value: Any) -> str:
    """Render one mapped value for a table cell."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "Yes" if value else "No"
    if isinstance(value, datetime):
        return _format_timestamp(value)
    if column in _MEGABYTE_COLUMNS and isinstance(value, (int, float)):
        return _format_megabytes(value)
    return str(value)


def resource_row_formatter(
    columns: Tuple[Tuple[str, int], ...],
) -> Callable[[MappedResource], List[str]]:
    """Build a row formatter for a resource's column layout."""
    names = [name for name, _ in columns]

    def _format(item: MappedResource) -> List[str]:
        return [format_cell(name, item.get(name)) for name in names]

    return _format


def format_connections_table(connection: Connection) -> List[str]:
    """Format connection data for table display."""
    return [
        "*" if connection.is_default else "",
        connection.server,
        connection.username or "",
        "token" if connection.auth_type == AUTH_APIKEY else "session",
        "No" if connection.verify_ssl else "Yes",
        _format_timestamp(connection.connected_at),
    ]


def _format_timestamp(timestamp: Any) -> str:
    """Format timestamp for table display."""
    if not timestamp:
        return "N/A"

    try:
        if isinstance(timestamp, datetime):
            dt = timestamp
        elif isinstance(timestamp, (int, float)):
            dt = datetime.fromtimestamp(timestamp)
        else:
            return "N/A"
        return dt.strftime("%Y-%m-%d %H:%M")
    except (ValueError, TypeError, OverflowError, OSError):
        return "N/A"


def _format_megabytes(size_mb: float) -> str:
    """Format a megabyte count (RAM) for table display."""
    if size_mb >= 1024:
        return f"{size_mb / 1024:.1f} GB"
    return f"{size_mb:.0f} MB"
