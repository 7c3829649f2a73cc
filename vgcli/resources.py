"""Resource definitions: endpoint, type tag and field layout per resource.

A definition tells the mapper how to turn a raw record into a display object
and tells the CLI which endpoint and columns to use. Enum translations come
from ``vgcli.mappings``.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from .mappings import enum_fields


@dataclass(frozen=True)
class ResourceDefinition:
    """Static description of one API resource."""

    name: str
    endpoint: str
    type_tag: str
    field_map: Dict[str, str] = field(default_factory=dict)
    timestamp_fields: Tuple[str, ...] = ()
    default_fields: Tuple[str, ...] = ()
    default_filter: Optional[str] = None
    name_field: str = "name"
    action_endpoint: Optional[str] = None
    action_key: Optional[str] = None
    columns: Tuple[Tuple[str, int], ...] = (("Key", 8), ("Name", 40))

    @property
    def enum_fields(self) -> List[str]:
        return enum_fields(self.name)

    def display_name(self, wire_field: str) -> str:
        return self.field_map.get(wire_field, wire_field)


_COMMON_TIMESTAMPS = ("created", "modified")

RESOURCES: Dict[str, ResourceDefinition] = {}


def register(definition: ResourceDefinition) -> ResourceDefinition:
    RESOURCES[definition.name] = definition
    return definition


register(
    ResourceDefinition(
        name="vm",
        endpoint="vms",
        type_tag="VergeVM",
        field_map={
            "$key": "Key",
            "name": "Name",
            "description": "Description",
            "enabled": "Enabled",
            "power_state": "PowerState",
            "cpu_cores": "CPUCores",
            "ram": "RAM",
            "os_family": "OSFamily",
            "machine_type": "MachineType",
            "on_power_loss": "PowerLossPolicy",
            "machine": "MachineKey",
            "is_snapshot": "IsSnapshot",
            "created": "Created",
            "modified": "Modified",
        },
        timestamp_fields=_COMMON_TIMESTAMPS,
        default_fields=(
            "$key",
            "name",
            "description",
            "enabled",
            "cpu_cores",
            "ram",
            "os_family",
            "machine_type",
            "on_power_loss",
            "machine",
            "is_snapshot",
            "created",
            "modified",
            "machine#status#status as power_state",
        ),
        default_filter="is_snapshot eq false",
        action_endpoint="vm_actions",
        action_key="vm",
        columns=(("Key", 6), ("Name", 30), ("PowerState", 10), ("CPUCores", 8), ("RAM", 8)),
    )
)

register(
    ResourceDefinition(
        name="network",
        endpoint="vnets",
        type_tag="VergeNetwork",
        field_map={
            "$key": "Key",
            "name": "Name",
            "description": "Description",
            "type": "Type",
            "enabled": "Enabled",
            "network": "NetworkAddress",
            "ipaddress": "IPAddress",
            "gateway": "Gateway",
            "dhcp_enabled": "DHCPEnabled",
            "dhcp_start": "DHCPStart",
            "dhcp_stop": "DHCPStop",
            "layer2_id": "VLAN",
            "power_state": "PowerState",
            "created": "Created",
            "modified": "Modified",
        },
        timestamp_fields=_COMMON_TIMESTAMPS,
        default_fields=(
            "$key",
            "name",
            "description",
            "type",
            "enabled",
            "network",
            "ipaddress",
            "gateway",
            "dhcp_enabled",
            "dhcp_start",
            "dhcp_stop",
            "layer2_id",
            "created",
            "modified",
            "machine#status#status as power_state",
        ),
        action_endpoint="vnet_actions",
        action_key="vnet",
        columns=(
            ("Key", 6),
            ("Name", 30),
            ("Type", 10),
            ("NetworkAddress", 18),
            ("PowerState", 10),
        ),
    )
)

register(
    ResourceDefinition(
        name="rule",
        endpoint="vnet_rules",
        type_tag="VergeNetworkRule",
        field_map={
            "$key": "Key",
            "vnet": "NetworkKey",
            "name": "Name",
            "description": "Description",
            "enabled": "Enabled",
            "orderid": "Order",
            "direction": "Direction",
            "action": "Action",
            "protocol": "Protocol",
            "source_ip": "SourceIP",
            "source_ports": "SourcePorts",
            "destination_ip": "DestinationIP",
            "destination_ports": "DestinationPorts",
            "pin": "Pin",
            "modified": "Modified",
        },
        timestamp_fields=("modified",),
        columns=(
            ("Key", 6),
            ("Name", 24),
            ("Direction", 9),
            ("Action", 9),
            ("Protocol", 8),
            ("DestinationPorts", 16),
        ),
    )
)

register(
    ResourceDefinition(
        name="tenant",
        endpoint="tenants",
        type_tag="VergeTenant",
        field_map={
            "$key": "Key",
            "name": "Name",
            "description": "Description",
            "status": "Status",
            "is_snapshot": "IsSnapshot",
            "created": "Created",
            "modified": "Modified",
        },
        timestamp_fields=_COMMON_TIMESTAMPS,
        default_fields=(
            "$key",
            "name",
            "description",
            "is_snapshot",
            "created",
            "modified",
            "status#status as status",
        ),
        default_filter="is_snapshot eq false",
        action_endpoint="tenant_actions",
        action_key="tenant",
        columns=(("Key", 6), ("Name", 30), ("Status", 12), ("Description", 30)),
    )
)

register(
    ResourceDefinition(
        name="user",
        endpoint="users",
        type_tag="VergeUser",
        field_map={
            "$key": "Key",
            "name": "Name",
            "displayname": "DisplayName",
            "email": "Email",
            "enabled": "Enabled",
            "type": "Type",
            "last_login": "LastLogin",
            "created": "Created",
        },
        timestamp_fields=("last_login", "created"),
        columns=(("Key", 6), ("Name", 24), ("DisplayName", 24), ("Email", 30), ("Enabled", 7)),
    )
)

register(
    ResourceDefinition(
        name="cluster",
        endpoint="clusters",
        type_tag="VergeCluster",
        field_map={
            "$key": "Key",
            "name": "Name",
            "description": "Description",
            "enabled": "Enabled",
            "status": "Status",
            "created": "Created",
        },
        timestamp_fields=("created",),
        default_fields=(
            "$key",
            "name",
            "description",
            "enabled",
            "created",
            "status#status as status",
        ),
        columns=(("Key", 6), ("Name", 30), ("Status", 12), ("Enabled", 7)),
    )
)

register(
    ResourceDefinition(
        name="node",
        endpoint="nodes",
        type_tag="VergeNode",
        field_map={
            "$key": "Key",
            "name": "Name",
            "description": "Description",
            "cluster": "ClusterKey",
            "physical": "Physical",
            "ram": "RAM",
            "cores": "Cores",
            "status": "Status",
            "modified": "Modified",
        },
        timestamp_fields=("modified",),
        default_fields=(
            "$key",
            "name",
            "description",
            "cluster",
            "physical",
            "ram",
            "cores",
            "modified",
            "machine#status#status as status",
        ),
        columns=(("Key", 6), ("Name", 24), ("Status", 12), ("Cores", 6), ("RAM", 10)),
    )
)

register(
    ResourceDefinition(
        name="snapshot",
        endpoint="machine_snapshots",
        type_tag="VergeVMSnapshot",
        field_map={
            "$key": "Key",
            "machine": "MachineKey",
            "name": "Name",
            "description": "Description",
            "created": "Created",
            "expires": "Expires",
            "created_manually": "CreatedManually",
        },
        timestamp_fields=("created", "expires"),
        columns=(("Key", 6), ("Name", 30), ("Created", 16), ("Expires", 16)),
    )
)

register(
    ResourceDefinition(
        name="tag",
        endpoint="tags",
        type_tag="VergeTag",
        field_map={
            "$key": "Key",
            "name": "Name",
            "description": "Description",
            "category": "CategoryKey",
            "created": "Created",
            "modified": "Modified",
        },
        timestamp_fields=_COMMON_TIMESTAMPS,
        columns=(("Key", 6), ("Name", 30), ("CategoryKey", 11), ("Description", 30)),
    )
)

register(
    ResourceDefinition(
        name="alarm",
        endpoint="alarms",
        type_tag="VergeAlarm",
        field_map={
            "$key": "Key",
            "level": "Level",
            "alarm_type": "AlarmType",
            "status": "Status",
            "description": "Description",
            "owner": "Owner",
            "created": "Created",
            "resolvable": "Resolvable",
        },
        timestamp_fields=("created",),
        name_field="description",
        columns=(("Key", 6), ("Level", 9), ("Status", 16), ("Description", 40), ("Created", 16)),
    )
)


def get_definition(resource: str) -> ResourceDefinition:
    """Return the definition for a resource name or endpoint.

    Unknown names get a generic definition using the name as the endpoint and
    no translations.
    """
    if resource in RESOURCES:
        return RESOURCES[resource]
    for definition in RESOURCES.values():
        if definition.endpoint == resource:
            return definition
    return ResourceDefinition(
        name=resource,
        endpoint=resource,
        type_tag=f"Verge{resource.title().replace('_', '')}",
        field_map={"$key": "Key"},
        timestamp_fields=_COMMON_TIMESTAMPS,
    )
