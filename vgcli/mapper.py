"""Map raw API records to typed display objects."""

import datetime
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

from .connection import Connection
from .mappings import to_display
from .resources import ResourceDefinition, get_definition


@dataclass
class MappedResource:
    """A decorated API record.

    ``fields`` holds display names in the order the record defined them.
    ``raw`` keeps the untouched wire record. ``connection`` points back at the
    session the record came from so follow-up calls can reuse it.
    """

    resource_type: str
    key: Any
    fields: Dict[str, Any]
    raw: Dict[str, Any]
    connection: Optional[Connection] = field(default=None, repr=False, compare=False)

    def __getitem__(self, name: str) -> Any:
        return self.fields[name]

    def get(self, name: str, default: Any = None) -> Any:
        return self.fields.get(name, default)

    def __contains__(self, name: object) -> bool:
        return name in self.fields

    def to_dict(self) -> Dict[str, Any]:
        """JSON-friendly dict: datetimes as ISO strings, plus the type tag."""
        result: Dict[str, Any] = {"ResourceType": self.resource_type}
        for name, value in self.fields.items():
            if isinstance(value, datetime.datetime):
                value = value.isoformat()
            result[name] = value
        return result


def epoch_to_datetime(value: Any) -> Optional[datetime.datetime]:
    """Convert epoch seconds to a local timezone-aware datetime.

    Zero, missing, negative or unparsable values give None, never 1970.
    """
    if value is None or isinstance(value, bool):
        return None
    try:
        seconds = float(value)
    except (TypeError, ValueError):
        return None
    if seconds <= 0:
        return None
    try:
        return datetime.datetime.fromtimestamp(seconds).astimezone()
    except (OverflowError, OSError, ValueError):
        return None


def map_record(
    definition: ResourceDefinition,
    record: Dict[str, Any],
    connection: Optional[Connection] = None,
) -> MappedResource:
    """Translate one wire record using its resource definition.

    Enum fields get the display value under the display name and the wire value
    under ``<DisplayName>Raw``. Timestamp fields become datetimes (or None).
    Fields without a display name keep their wire name.
    """
    enum_names = set(definition.enum_fields)
    timestamps = set(definition.timestamp_fields)
    fields: Dict[str, Any] = {}

    for wire_field, value in record.items():
        name = definition.display_name(wire_field)
        if wire_field in enum_names:
            fields[name] = to_display(definition.name, wire_field, value)
            fields[f"{name}Raw"] = value
        elif wire_field in timestamps:
            fields[name] = epoch_to_datetime(value)
        else:
            fields[name] = value

    # Declared timestamps absent from the record still surface as None.
    for wire_field in timestamps:
        name = definition.display_name(wire_field)
        if name not in fields and wire_field in definition.default_fields:
            fields[name] = None

    return MappedResource(
        resource_type=definition.type_tag,
        key=record.get("$key"),
        fields=fields,
        raw=dict(record),
        connection=connection,
    )


def map_records(
    resource: str,
    records: Iterable[Dict[str, Any]],
    connection: Optional[Connection] = None,
) -> List[MappedResource]:
    definition = get_definition(resource)
    return [map_record(definition, record, connection) for record in records]


def expect_type(obj: Any, resource_type: str) -> MappedResource:
    """Check that a pipeline object carries the expected type tag.

    Raises:
        TypeError: Not a MappedResource, or tagged with another type
    """
    if not isinstance(obj, MappedResource):
        raise TypeError(f"Expected a {resource_type} object, got {type(obj).__name__}")
    if obj.resource_type != resource_type:
        raise TypeError(f"Expected a {resource_type} object, got {obj.resource_type}")
    return obj
