"""Wire value <-> display value tables for enumerated API fields.

All translations live in ``ENUM_TABLES`` keyed by ``(resource, field)``, where
``resource`` is the resource name used in ``vgcli.resources`` and ``field`` the
wire field name. Wire values missing from a table are displayed unchanged.
"""

from typing import Any, Dict, List, Optional, Tuple

_POWER_STATES = {
    "running": "Running",
    "stopped": "Stopped",
    "poweroff": "Stopped",
    "starting": "Starting",
    "stopping": "Stopping",
    "restarting": "Restarting",
    "migrating": "Migrating",
    "hibernating": "Hibernating",
    "hibernated": "Hibernated",
    "paused": "Paused",
    "error": "Error",
}

_ONLINE_STATES = {
    "online": "Online",
    "offline": "Offline",
    "running": "Online",
    "stopped": "Offline",
    "starting": "Starting",
    "stopping": "Stopping",
    "provisioning": "Provisioning",
    "error": "Error",
    "maintenance": "Maintenance",
}

ENUM_TABLES: Dict[Tuple[str, str], Dict[str, str]] = {
    ("vm", "power_state"): _POWER_STATES,
    ("vm", "on_power_loss"): {
        "power_on": "Power On",
        "leave_off": "Leave Off",
        "last_state": "Last State",
    },
    ("vm", "os_family"): {
        "linux": "Linux",
        "windows": "Windows",
        "freebsd": "FreeBSD",
        "other": "Other",
    },
    ("network", "type"): {
        "internal": "Internal",
        "external": "External",
        "dmz": "DMZ",
        "core": "Core",
        "physical": "Physical",
        "bgp": "BGP",
        "vpn": "VPN",
        "wireguard": "WireGuard",
        "tenant": "Tenant",
    },
    ("network", "power_state"): _POWER_STATES,
    ("rule", "direction"): {
        "incoming": "Incoming",
        "outgoing": "Outgoing",
    },
    ("rule", "action"): {
        "accept": "Accept",
        "drop": "Drop",
        "reject": "Reject",
        "translate": "Translate",
        "route": "Route",
    },
    ("rule", "protocol"): {
        "any": "Any",
        "tcp": "TCP",
        "udp": "UDP",
        "tcpudp": "TCP/UDP",
        "icmp": "ICMP",
        "esp": "ESP",
        "ah": "AH",
        "gre": "GRE",
    },
    ("tenant", "status"): _ONLINE_STATES,
    ("node", "status"): _ONLINE_STATES,
    ("cluster", "status"): _ONLINE_STATES,
    ("user", "type"): {
        "normal": "Normal",
        "api": "API",
        "vdi": "VDI",
        "site_sync": "Site Sync",
    },
    ("alarm", "level"): {
        "critical": "Critical",
        "error": "Error",
        "warning": "Warning",
        "message": "Message",
    },
}


def get_table(resource: str, field: str) -> Optional[Dict[str, str]]:
    return ENUM_TABLES.get((resource, field))


def to_display(resource: str, field: str, value: Any) -> Any:
    """Translate a wire value to its display value."""
    table = get_table(resource, field)
    if table is None or not isinstance(value, str):
        return value
    return table.get(value, value)


def to_wire(resource: str, field: str, value: str) -> str:
    """Translate a friendly name (or an existing wire value) to the wire value.

    Matching is case-insensitive. Display names shared by several wire values
    resolve to the first wire value listed.

    Raises:
        ValueError: The value matches neither a display name nor a wire value
    """
    table = get_table(resource, field)
    if table is None:
        return value
    wanted = value.strip().lower()
    for wire in table:
        if wire.lower() == wanted:
            return wire
    for wire, display in table.items():
        if display.lower() == wanted:
            return wire
    raise _invalid_value(resource, field, value)


def to_wire_values(resource: str, field: str, value: str) -> List[str]:
    """Every wire value a friendly name (or wire value) stands for.

    ``Stopped`` gives both ``stopped`` and ``poweroff``. Matching is
    case-insensitive against wire and display values alike.

    Raises:
        ValueError: The value matches neither a display name nor a wire value
    """
    table = get_table(resource, field)
    if table is None:
        return [value]
    wanted = value.strip().lower()
    matches = [
        wire for wire, display in table.items() if wanted in (wire.lower(), display.lower())
    ]
    if not matches:
        raise _invalid_value(resource, field, value)
    return matches


def _invalid_value(resource: str, field: str, value: str) -> ValueError:
    return ValueError(
        f"Invalid {field} '{value}'. Valid values: {', '.join(display_values(resource, field))}"
    )


def display_values(resource: str, field: str) -> List[str]:
    """Distinct display values for a field, in table order."""
    table = get_table(resource, field) or {}
    seen: List[str] = []
    for display in table.values():
        if display not in seen:
            seen.append(display)
    return seen


def enum_fields(resource: str) -> List[str]:
    """Wire field names that have a translation table for a resource."""
    return [field for (res, field) in ENUM_TABLES if res == resource]
