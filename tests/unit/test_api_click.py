"""Tests for the raw 'api' command."""

import json
from pathlib import Path
from typing import Any

import click
from click.testing import CliRunner
from conftest import MockResponse, request_calls, request_params

from vgcli.api_click import register_api_commands
from vgcli.utils import ExitCodes


def make_cli() -> click.Group:
    """Create a dummy CLI for testing."""

    @click.group()
    def test_cli() -> None:
        pass

    register_api_commands(test_cli)
    return test_cli


def test_get_with_query_options(connected: Any) -> None:
    session = connected(MockResponse([{"$key": 1, "name": "External"}]))
    runner = CliRunner()
    result = runner.invoke(
        make_cli(),
        [
            "api",
            "get",
            "vnets",
            "--filter",
            "name eq 'External'",
            "--fields",
            "$key, name",
            "--sort",
            "-name",
            "--limit",
            "5",
            "--offset",
            "10",
        ],
    )

    assert result.exit_code == 0, result.output
    assert request_calls(session) == [("GET", "https://verge.test/api/v4/vnets")]
    assert request_params(session) == {
        "filter": "name eq 'External'",
        "fields": "$key,name",
        "sort": "-name",
        "limit": 5,
        "offset": 10,
    }
    assert json.loads(result.output) == [{"$key": 1, "name": "External"}]


def test_single_object_is_wrapped_in_array(connected: Any) -> None:
    connected(MockResponse({"$key": 7, "name": "lan"}))
    runner = CliRunner()
    result = runner.invoke(make_cli(), ["api", "GET", "vnets/7"])

    assert result.exit_code == 0
    assert json.loads(result.output) == [{"$key": 7, "name": "lan"}]


def test_empty_body_prints_empty_array(connected: Any) -> None:
    connected(MockResponse(None, 200))
    runner = CliRunner()
    result = runner.invoke(make_cli(), ["api", "DELETE", "tags/3"])

    assert result.exit_code == 0
    assert json.loads(result.output) == []


def test_post_with_data(connected: Any) -> None:
    session = connected(MockResponse({"$key": 40}, 201))
    runner = CliRunner()
    result = runner.invoke(
        make_cli(), ["api", "POST", "vm_actions", "--data", '{"vm": 3, "action": "poweron"}']
    )

    assert result.exit_code == 0, result.output
    assert session.request.call_args.kwargs["json"] == {"vm": 3, "action": "poweron"}
    assert json.loads(result.output) == [{"$key": 40}]


def test_put_with_data_file(connected: Any, tmp_path: Path) -> None:
    path = tmp_path / "body.json"
    path.write_text(json.dumps({"enabled": False}))
    session = connected(MockResponse({"$key": 2}))
    runner = CliRunner()
    result = runner.invoke(make_cli(), ["api", "put", "vnet_rules/2", "--data-file", str(path)])

    assert result.exit_code == 0, result.output
    assert request_calls(session) == [("PUT", "https://verge.test/api/v4/vnet_rules/2")]
    assert session.request.call_args.kwargs["json"] == {"enabled": False}


def test_invalid_json_data(connected: Any) -> None:
    session = connected()
    runner = CliRunner()
    result = runner.invoke(make_cli(), ["api", "POST", "vms", "--data", "{not json"])

    assert result.exit_code == ExitCodes.INVALID_INPUT
    assert "Invalid JSON" in result.output
    session.request.assert_not_called()


def test_data_and_data_file_conflict(connected: Any, tmp_path: Path) -> None:
    path = tmp_path / "body.json"
    path.write_text("{}")
    connected()
    runner = CliRunner()
    result = runner.invoke(
        make_cli(), ["api", "POST", "vms", "--data", "{}", "--data-file", str(path)]
    )

    assert result.exit_code == ExitCodes.INVALID_INPUT


def test_unsupported_method() -> None:
    runner = CliRunner()
    result = runner.invoke(make_cli(), ["api", "PATCH", "vms"])
    assert result.exit_code == 2
    assert "PATCH" in result.output


def test_api_error_maps_exit_code(connected: Any) -> None:
    connected(MockResponse({"err": "Permission denied"}, 403))
    runner = CliRunner()
    result = runner.invoke(make_cli(), ["api", "GET", "users"])

    assert result.exit_code == ExitCodes.PERMISSION_DENIED
    assert "Permission denied" in result.output
    assert "HTTP 403" in result.output


def test_not_connected() -> None:
    runner = CliRunner()
    result = runner.invoke(make_cli(), ["api", "GET", "vms"])
    assert result.exit_code == ExitCodes.NOT_CONNECTED
