"""Raw API access: ``vgcli api GET vnets --filter "name eq 'External'"``."""

import json
import sys
from typing import Any, Optional

import click

from .cli_utils import get_client
from .client import SUPPORTED_METHODS
from .errors import VergeError
from .query import Query
from .utils import ExitCodes, dump_json, handle_api_error, load_json_file


def register_api_commands(cli: Any) -> None:
    """Register the 'api' command."""

    @cli.command(name="api")
    @click.argument("method", type=click.Choice(SUPPORTED_METHODS, case_sensitive=False))
    @click.argument("endpoint")
    @click.option("--filter", "filter_expr", help="Filter expression")
    @click.option("--fields", help="Comma-separated fields to return")
    @click.option("--sort", help="Sort field; prefix with '-' for descending")
    @click.option("--limit", "-l", type=click.IntRange(min=1), help="Maximum records to return")
    @click.option("--offset", type=click.IntRange(min=0), help="Records to skip")
    @click.option("--data", "-d", help="JSON request body for POST/PUT")
    @click.option("--data-file", type=click.Path(dir_okay=False), help="File with the JSON body")
    @click.option("--server", "-s", help="Server to use instead of the default connection")
    def api(
        method: str,
        endpoint: str,
        filter_expr: Optional[str],
        fields: Optional[str],
        sort: Optional[str],
        limit: Optional[int],
        offset: Optional[int],
        data: Optional[str],
        data_file: Optional[str],
        server: Optional[str],
    ) -> None:
        """Call an API endpoint below /api/v4 and print the records as JSON.

        The output is always a JSON array: empty, one record or many,
        whatever shape the server answered with.
        """
        body = None
        if data and data_file:
            click.echo("✗ Use either --data or --data-file, not both.", err=True)
            sys.exit(ExitCodes.INVALID_INPUT)
        if data:
            try:
                body = json.loads(data)
            except json.JSONDecodeError as exc:
                click.echo(f"✗ Invalid JSON in --data: {exc}", err=True)
                sys.exit(ExitCodes.INVALID_INPUT)
        elif data_file:
            body = load_json_file(data_file)

        query = Query(
            filter=filter_expr,
            fields=[f.strip() for f in fields.split(",") if f.strip()] if fields else [],
            sort=sort,
            limit=limit,
            offset=offset,
        )
        client = get_client(server)
        try:
            result = client.invoke(method, endpoint, query=query, body=body, allow_keyless=True)
        except (VergeError, ValueError) as exc:
            handle_api_error(exc)

        click.echo(dump_json(result.records))
