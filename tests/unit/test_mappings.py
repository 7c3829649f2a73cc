"""Unit tests for the shared enum translation tables."""

import pytest

from vgcli.mappings import (
    ENUM_TABLES,
    display_values,
    enum_fields,
    get_table,
    to_display,
    to_wire,
    to_wire_values,
)


def test_to_display_known_value() -> None:
    assert to_display("vm", "power_state", "running") == "Running"
    assert to_display("rule", "protocol", "tcpudp") == "TCP/UDP"


def test_to_display_unknown_value_passes_through() -> None:
    assert to_display("vm", "power_state", "levitating") == "levitating"
    assert to_display("vm", "power_state", None) is None


def test_to_display_untranslated_field_passes_through() -> None:
    assert to_display("vm", "name", "web01") == "web01"


def test_to_wire_accepts_display_and_wire_values() -> None:
    assert to_wire("vm", "on_power_loss", "Leave Off") == "leave_off"
    assert to_wire("vm", "on_power_loss", "leave_off") == "leave_off"
    assert to_wire("network", "type", "dmz") == "dmz"
    assert to_wire("network", "type", "DMZ") == "dmz"


def test_to_wire_shared_display_resolves_to_first_wire_value() -> None:
    assert to_wire("vm", "power_state", "stopped") == "stopped"


def test_to_wire_unknown_value() -> None:
    with pytest.raises(ValueError) as excinfo:
        to_wire("rule", "direction", "sideways")
    assert "Incoming" in str(excinfo.value)


def test_to_wire_without_table_returns_input() -> None:
    assert to_wire("vm", "name", "Web01") == "Web01"


def test_display_values_are_distinct() -> None:
    values = display_values("vm", "power_state")
    assert values.count("Stopped") == 1
    assert values[0] == "Running"


def test_enum_fields_for_resource() -> None:
    assert set(enum_fields("rule")) == {"direction", "action", "protocol"}
    assert enum_fields("tag") == []


def test_every_table_is_keyed_by_resource_and_field() -> None:
    for (resource, field), table in ENUM_TABLES.items():
        assert get_table(resource, field) is table
        assert all(isinstance(k, str) and isinstance(v, str) for k, v in table.items())


def test_to_wire_values_returns_every_wire_value_for_a_shared_display() -> None:
    assert to_wire_values("vm", "power_state", "Stopped") == ["stopped", "poweroff"]
    assert to_wire_values("tenant", "status", "online") == ["online", "running"]


def test_to_wire_values_single_wire_value() -> None:
    assert to_wire_values("vm", "power_state", "poweroff") == ["poweroff"]
    assert to_wire_values("network", "type", "DMZ") == ["dmz"]


def test_to_wire_values_unknown_value() -> None:
    with pytest.raises(ValueError, match="Valid values"):
        to_wire_values("vm", "power_state", "levitating")


def test_to_wire_values_without_table_returns_input() -> None:
    assert to_wire_values("vm", "name", "Web01") == ["Web01"]
