"""Filter and query construction for VergeOS list endpoints.

The API filters list results with a small expression language passed in the
``filter`` query parameter::

    name eq 'web01' and enabled eq true

Only conjunctions are supported. The server has no glob matching, so a
wildcard name pattern is sent as a ``ct`` (contains) condition on its longest
literal run and the exact pattern is re-applied to the returned records.
"""

import fnmatch
import re
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

from .mappings import to_wire_values

OPERATORS = ("eq", "ne", "ct", "bw", "gt", "ge", "lt", "le")
WILDCARD_CHARS = "*?"

_WILDCARD_SPLIT = re.compile(r"[*?]+")


def has_wildcard(pattern: str) -> bool:
    return any(ch in pattern for ch in WILDCARD_CHARS)


def format_value(value: Any) -> str:
    """Render a Python value as a filter literal."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(value)
    text = str(value).replace("\\", "\\\\").replace("'", "\\'")
    return f"'{text}'"


@dataclass(frozen=True)
class Condition:
    """A single ``field op value`` comparison."""

    field: str
    op: str
    value: Any

    def __post_init__(self) -> None:
        if self.op not in OPERATORS:
            raise ValueError(f"Unsupported filter operator '{self.op}'")
        if not self.field:
            raise ValueError("Filter field must not be empty")

    def render(self) -> str:
        return f"{self.field} {self.op} {format_value(self.value)}"


class FilterBuilder:
    """Accumulates AND-ed conditions plus client-side glob matches."""

    def __init__(self) -> None:
        self._terms: List[Union[Condition, str]] = []
        self._globs: List[Tuple[str, str]] = []
        self._choices: List[Tuple[str, Tuple[str, ...]]] = []

    def compare(self, field: str, op: str, value: Any) -> "FilterBuilder":
        self._terms.append(Condition(field, op, value))
        return self

    def eq(self, field: str, value: Any) -> "FilterBuilder":
        return self.compare(field, "eq", value)

    def ne(self, field: str, value: Any) -> "FilterBuilder":
        return self.compare(field, "ne", value)

    def contains(self, field: str, value: str) -> "FilterBuilder":
        return self.compare(field, "ct", value)

    def match(self, field: str, pattern: Optional[str]) -> "FilterBuilder":
        """Match a field against a literal or a wildcard pattern.

        ``web01`` becomes ``field eq 'web01'``. ``web*`` becomes
        ``field ct 'web'`` and the glob is kept for ``apply_client_filters``.
        A pattern made only of wildcards constrains nothing.
        """
        if pattern is None or pattern == "":
            return self
        if not has_wildcard(pattern):
            return self.eq(field, pattern)

        literals = [part for part in _WILDCARD_SPLIT.split(pattern) if part]
        if literals:
            self.contains(field, max(literals, key=len))
            self._globs.append((field, pattern))
        return self

    def enum(
        self,
        resource: str,
        field: str,
        value: Optional[str],
        filter_field: Optional[str] = None,
        server_side: bool = True,
    ) -> "FilterBuilder":
        """Filter on an enumerated field given its friendly name.

        A name standing for one wire value becomes ``field eq 'wire'``. A name
        shared by several wire values (``Stopped`` is ``stopped`` and
        ``poweroff``), or a field the server cannot filter on, is matched
        against the returned records by ``apply_client_filters`` instead.

        Args:
            resource: Resource name owning the translation table
            field: Field name the table is keyed by (and the record key)
            value: Friendly (or wire) value; None adds nothing
            filter_field: Field name to use in the expression, if it differs
            server_side: False for projected aliases the server cannot filter

        Raises:
            ValueError: Unknown value for the field
        """
        if value is None:
            return self
        wires = to_wire_values(resource, field, value)
        if server_side and len(wires) == 1:
            return self.eq(filter_field or field, wires[0])
        self._choices.append((field, tuple(wires)))
        return self

    def raw(self, expression: Optional[str]) -> "FilterBuilder":
        """Append a pre-built expression verbatim."""
        if expression and expression.strip():
            self._terms.append(expression.strip())
        return self

    def extend(self, other: "FilterBuilder") -> "FilterBuilder":
        self._terms.extend(other._terms)
        self._globs.extend(other._globs)
        self._choices.extend(other._choices)
        return self

    @property
    def globs(self) -> List[Tuple[str, str]]:
        return list(self._globs)

    @property
    def choices(self) -> List[Tuple[str, Tuple[str, ...]]]:
        return list(self._choices)

    def build(self) -> Optional[str]:
        """Return the filter expression, or None when there is no constraint."""
        parts = [t.render() if isinstance(t, Condition) else t for t in self._terms]
        if not parts:
            return None
        return " and ".join(parts)

    def apply_client_filters(self, records: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """Drop records that fail any kept glob (case-insensitive) or enum choice."""
        result = []
        for record in records:
            if not all(_glob_match(record.get(f), pattern) for f, pattern in self._globs):
                continue
            if all(record.get(f) in wires for f, wires in self._choices):
                result.append(record)
        return result

    def __bool__(self) -> bool:
        return bool(self._terms or self._globs or self._choices)

    def __str__(self) -> str:
        return self.build() or ""


def _glob_match(value: Any, pattern: str) -> bool:
    if value is None:
        return False
    return fnmatch.fnmatchcase(str(value).lower(), pattern.lower())


@dataclass
class Query:
    """Per-call list query: filter, projection, sort and paging."""

    filter: Optional[str] = None
    fields: List[str] = field(default_factory=list)
    sort: Optional[str] = None
    limit: Optional[int] = None
    offset: Optional[int] = None

    def to_params(self) -> Dict[str, Any]:
        """URL parameters; unset values are omitted."""
        params: Dict[str, Any] = {}
        if self.filter:
            params["filter"] = self.filter
        if self.fields:
            params["fields"] = ",".join(self.fields)
        if self.sort:
            params["sort"] = self.sort
        if self.limit is not None:
            params["limit"] = self.limit
        if self.offset is not None:
            params["offset"] = self.offset
        return params

    @classmethod
    def from_builder(cls, builder: FilterBuilder, **kwargs: Any) -> "Query":
        return cls(filter=builder.build(), **kwargs)
