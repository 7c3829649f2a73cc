"""Data-driven CLI command groups, one per registered resource.

Each definition in ``vgcli.resources.RESOURCES`` gets ``list``, ``get``,
``create``, ``update`` and ``delete`` subcommands. Resources with an action
endpoint also get power commands (``vgcli vm start web01``).
"""

import sys
from typing import Any, Dict, List, Optional, Tuple

import click

from .cli_formatters import format_cell, resource_row_formatter
from .cli_utils import (
    confirm_bulk_operation,
    format_option,
    get_client,
    resolve_single_key,
    run_bulk,
)
from .errors import VergeError
from .mapper import MappedResource
from .mappings import display_values, to_wire
from .query import FilterBuilder
from .resources import RESOURCES, ResourceDefinition
from .table_utils import output_formatted_list, output_record
from .utils import (
    ExitCodes,
    dump_json,
    handle_api_error,
    load_json_file,
    parse_assignments,
)

# command name -> (action, help) per resource
POWER_COMMANDS: Dict[str, Dict[str, Tuple[str, str]]] = {
    "vm": {
        "start": ("poweron", "Power on VMs."),
        "stop": ("poweroff", "Power off VMs (hard stop; see --graceful)."),
        "restart": ("reboot", "Restart VMs through the guest OS."),
        "reset": ("reset", "Hard-reset VMs."),
    },
    "network": {
        "start": ("poweron", "Start networks."),
        "stop": ("poweroff", "Stop networks."),
        "restart": ("reset", "Restart networks."),
    },
    "tenant": {
        "start": ("poweron", "Start tenants."),
        "stop": ("poweroff", "Stop tenants."),
        "restart": ("reset", "Restart tenants."),
    },
}

# Graceful alternative to "stop" where the API offers one
GRACEFUL_STOP_ACTION = "shutdown"

DEFAULT_COLUMN_WIDTH = 20


def _option_name(field: str) -> str:
    return "--" + field.replace("_", "-")


def _derived_fields(definition: ResourceDefinition) -> Dict[str, str]:
    """Alias -> projection for fields taken from related records (``a#b as field``).

    These cannot be filtered server-side under their alias.
    """
    return {
        f.split(" as ", 1)[1].strip(): f for f in definition.default_fields if " as " in f
    }


def _field_alias(wire_field: str) -> str:
    return wire_field.split(" as ", 1)[-1].strip()


def _parse_fields(fields: Optional[str]) -> Optional[List[str]]:
    if not fields:
        return None
    parsed = [f.strip() for f in fields.split(",") if f.strip()]
    return parsed or None


def _translate_enums(definition: ResourceDefinition, body: Dict[str, Any]) -> Dict[str, Any]:
    """Accept display names for enum fields in create/update bodies."""
    translated = dict(body)
    for field in definition.enum_fields:
        value = translated.get(field)
        if isinstance(value, str):
            translated[field] = to_wire(definition.name, field, value)
    return translated


def _build_body(
    definition: ResourceDefinition, assignments: Tuple[str, ...], json_file: Optional[str]
) -> Dict[str, Any]:
    body: Dict[str, Any] = load_json_file(json_file) if json_file else {}
    body.update(parse_assignments(list(assignments)))
    if not body:
        click.echo("✗ Nothing to send. Use --set field=value or --json-file.", err=True)
        sys.exit(ExitCodes.INVALID_INPUT)
    try:
        body = _translate_enums(definition, body)
    except ValueError as exc:
        handle_api_error(exc)
    return body


def _output_resource(item: MappedResource, output_format: str) -> None:
    if output_format == "json":
        click.echo(dump_json(item.to_dict()))
        return
    output_record({name: format_cell(name, value) for name, value in item.fields.items()}, "table")


def _list_columns(
    definition: ResourceDefinition, fields: Optional[List[str]]
) -> Tuple[Tuple[str, int], ...]:
    if not fields:
        return definition.columns
    columns = []
    for wire_field in fields:
        alias = _field_alias(wire_field)
        columns.append((definition.display_name(alias), DEFAULT_COLUMN_WIDTH))
    return tuple(columns)


def _make_list_command(definition: ResourceDefinition) -> click.Command:
    derived = _derived_fields(definition)
    enum_fields = definition.enum_fields

    @click.command(name="list")
    @click.option("--name", "-n", "name_pattern", help="Name or wildcard pattern (e.g. 'web*')")
    @click.option("--filter", "filter_expr", help="Raw filter expression, e.g. \"enabled eq true\"")
    @click.option("--fields", help="Comma-separated fields to return")
    @click.option("--sort", help="Sort field; prefix with '-' for descending")
    @click.option("--limit", "-l", type=click.IntRange(min=1), help="Maximum records to return")
    @click.option("--server", "-s", help="Server to query instead of the default connection")
    @format_option
    def list_cmd(
        name_pattern: Optional[str],
        filter_expr: Optional[str],
        fields: Optional[str],
        sort: Optional[str],
        limit: Optional[int],
        server: Optional[str],
        output_format: str,
        **filters: Any,
    ) -> None:
        client = get_client(server)
        builder = FilterBuilder().match(definition.name_field, name_pattern).raw(filter_expr)
        requested = _parse_fields(fields)
        fetched = list(requested) if requested else None

        try:
            for field in enum_fields:
                value = filters.get(f"enum_{field}")
                if value is None:
                    continue
                builder.enum(definition.name, field, value, server_side=field not in derived)
                # Client-side matching needs the field in the returned records.
                if fetched is not None and field not in {_field_alias(f) for f in fetched}:
                    fetched.append(derived.get(field, field))

            items = client.list(
                definition.name,
                builder=builder,
                fields=fetched,
                sort=sort,
                limit=limit,
                include_all=bool(filters.get("include_all")),
            )
        except (VergeError, ValueError) as exc:
            handle_api_error(exc)

        columns = _list_columns(definition, requested)
        output_formatted_list(
            items=items,
            output_format=output_format,
            headers=[name for name, _ in columns],
            column_widths=[width for _, width in columns],
            row_formatter_func=resource_row_formatter(columns),
            empty_message=f"No {definition.name}s found.",
            total_label=f"{definition.name}(s)",
            json_formatter_func=lambda item: item.to_dict(),
        )

    list_cmd.help = f"List {definition.name}s."
    for field in enum_fields:
        choices = ", ".join(display_values(definition.name, field))
        click.option(
            _option_name(field),
            f"enum_{field}",
            help=f"Filter by {field.replace('_', ' ')} ({choices})",
        )(list_cmd)
    if definition.default_filter:
        click.option(
            "--all",
            "include_all",
            is_flag=True,
            help="Include records hidden by default (e.g. snapshots)",
        )(list_cmd)
    return list_cmd


def _make_resource_group(definition: ResourceDefinition) -> click.Group:
    resource = definition.name

    @click.group(name=resource)
    def group() -> None:
        pass

    group.help = f"Manage VergeOS {resource}s ({definition.endpoint})."
    group.add_command(_make_list_command(definition))

    @group.command(name="get")
    @click.argument("identifier")
    @click.option("--fields", help="Comma-separated fields to return")
    @click.option("--server", "-s", help="Server to query instead of the default connection")
    @format_option
    def get_cmd(
        identifier: str, fields: Optional[str], server: Optional[str], output_format: str
    ) -> None:
        """Show one record by key or exact name."""
        client = get_client(server)
        try:
            key = resolve_single_key(client, resource, identifier)
            item = client.get(resource, key, fields=_parse_fields(fields))
        except (VergeError, ValueError) as exc:
            handle_api_error(exc)
        _output_resource(item, output_format)

    @group.command(name="create")
    @click.option("--set", "assignments", multiple=True, help="field=value (repeatable)")
    @click.option("--json-file", type=click.Path(dir_okay=False), help="JSON object with fields")
    @click.option("--passthru", is_flag=True, help="Print the created record")
    @click.option("--server", "-s", help="Server to use instead of the default connection")
    @format_option
    def create_cmd(
        assignments: Tuple[str, ...],
        json_file: Optional[str],
        passthru: bool,
        server: Optional[str],
        output_format: str,
    ) -> None:
        """Create a record from --set pairs and/or a JSON file."""
        body = _build_body(definition, assignments, json_file)
        client = get_client(server)
        try:
            result = client.create(resource, body, passthru=passthru)
        except (VergeError, ValueError) as exc:
            handle_api_error(exc)
        if isinstance(result, MappedResource):
            _output_resource(result, output_format)
        else:
            click.echo(f"✓ Created {resource} {result if result is not None else ''}".rstrip())

    @group.command(name="update")
    @click.argument("identifier")
    @click.option("--set", "assignments", multiple=True, help="field=value (repeatable)")
    @click.option("--json-file", type=click.Path(dir_okay=False), help="JSON object with fields")
    @click.option("--passthru", is_flag=True, help="Print the updated record")
    @click.option("--server", "-s", help="Server to use instead of the default connection")
    @format_option
    def update_cmd(
        identifier: str,
        assignments: Tuple[str, ...],
        json_file: Optional[str],
        passthru: bool,
        server: Optional[str],
        output_format: str,
    ) -> None:
        """Update a record by key or exact name."""
        body = _build_body(definition, assignments, json_file)
        client = get_client(server)
        try:
            key = resolve_single_key(client, resource, identifier)
            result = client.update(resource, key, body, passthru=passthru)
        except (VergeError, ValueError) as exc:
            handle_api_error(exc)
        if isinstance(result, MappedResource):
            _output_resource(result, output_format)
        else:
            click.echo(f"✓ Updated {resource} {result}")

    @group.command(name="delete")
    @click.argument("identifiers", nargs=-1, required=True)
    @click.option("--force", is_flag=True, help="Skip confirmation prompt")
    @click.option("--server", "-s", help="Server to use instead of the default connection")
    def delete_cmd(identifiers: Tuple[str, ...], force: bool, server: Optional[str]) -> None:
        """Delete records by key or name pattern. Failures are reported and skipped."""
        if not confirm_bulk_operation("delete", resource, len(identifiers), force):
            click.echo("Aborted.")
            sys.exit(ExitCodes.GENERAL_ERROR)
        client = get_client(server)
        run_bulk(
            client,
            resource,
            identifiers,
            lambda key: client.delete(resource, key),
            "Deleted",
        )

    for command_name, (action, help_text) in POWER_COMMANDS.get(resource, {}).items():
        group.add_command(_make_power_command(definition, command_name, action, help_text))

    return group


def _make_power_command(
    definition: ResourceDefinition, command_name: str, action: str, help_text: str
) -> click.Command:
    resource = definition.name

    @click.command(name=command_name, help=help_text)
    @click.argument("identifiers", nargs=-1, required=True)
    @click.option("--server", "-s", help="Server to use instead of the default connection")
    def power_cmd(identifiers: Tuple[str, ...], server: Optional[str], **options: Any) -> None:
        chosen = GRACEFUL_STOP_ACTION if options.get("graceful") else action
        client = get_client(server)
        run_bulk(
            client,
            resource,
            identifiers,
            lambda key: client.action(resource, key, chosen),
            f"Sent {chosen} to",
        )

    if resource == "vm" and command_name == "stop":
        click.option(
            "--graceful", is_flag=True, help="Ask the guest OS to shut down instead"
        )(power_cmd)
    return power_cmd


def register_resource_commands(cli: Any) -> None:
    """Register one command group per resource definition."""
    for definition in RESOURCES.values():
        cli.add_command(_make_resource_group(definition))
