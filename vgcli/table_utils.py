"""Table formatting utilities for CLI commands."""

from typing import Any, Callable, Dict, List, Sequence

import click

from .utils import dump_json


def output_formatted_list(
    items: Sequence[Any],
    output_format: str,
    headers: List[str],
    column_widths: List[int],
    row_formatter_func: Callable[[Any], List[str]],
    empty_message: str = "No items found.",
    total_label: str = "item(s)",
    json_formatter_func: Callable[[Any], Dict[str, Any]] = lambda item: item,
) -> None:
    """Handle JSON and table output with box-drawing characters for list commands.

    Args:
        items: Items to output
        output_format: 'json' or 'table'
        headers: Header names for table output
        column_widths: Column widths for table formatting
        row_formatter_func: Converts an item to its list of column values
        empty_message: Message to display when no items are found
        total_label: Label for total count (e.g., "vm(s)", "connection(s)")
        json_formatter_func: Converts an item to a JSON-serializable dict
    """
    if output_format.lower() == "json":
        click.echo(dump_json([json_formatter_func(item) for item in items]))
        return

    if not items:
        click.echo(empty_message)
        return

    if len(headers) != len(column_widths):
        raise ValueError("Headers and column_widths must have the same length")

    _draw_table_border(column_widths, "top")
    _draw_table_header(headers, column_widths)
    _draw_table_border(column_widths, "middle")
    _draw_table_rows(items, row_formatter_func, column_widths)
    _draw_table_border(column_widths, "bottom")

    click.echo(f"\nTotal: {len(items)} {total_label}")


def output_record(fields: Dict[str, Any], output_format: str) -> None:
    """Print one record as JSON or as aligned ``Name : value`` lines."""
    if output_format.lower() == "json":
        click.echo(dump_json(fields))
        return
    if not fields:
        return
    width = max(len(name) for name in fields)
    for name, value in fields.items():
        click.echo(f"{name:<{width}} : {'' if value is None else value}")


def _draw_table_border(column_widths: List[int], border_type: str) -> None:
    """Draw table borders with appropriate characters."""
    if border_type == "top":
        left, junction, right = "┌", "┬", "┐"
    elif border_type == "middle":
        left, junction, right = "├", "┼", "┤"
    elif border_type == "bottom":
        left, junction, right = "└", "┴", "┘"
    else:
        raise ValueError("Invalid border_type")

    segments = ["─" * (w + 2) for w in column_widths]
    click.echo(left + junction.join(segments) + right)


def _draw_table_header(headers: List[str], column_widths: List[int]) -> None:
    header_parts = ["│"]
    for header, width in zip(headers, column_widths):
        header_parts.append(f" {header[:width]:<{width}} │")
    click.echo("".join(header_parts))


def _draw_table_rows(
    items: Sequence[Any],
    row_formatter_func: Callable[[Any], List[str]],
    column_widths: List[int],
) -> None:
    for item in items:
        row_data = row_formatter_func(item)
        if len(row_data) != len(column_widths):
            raise ValueError("Row data must match column count")

        row_parts = ["│"]
        for value, width in zip(row_data, column_widths):
            # Truncate if necessary
            str_value = str(value or "")[:width]
            row_parts.append(f" {str_value:<{width}} │")
        click.echo("".join(row_parts))
