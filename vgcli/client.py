"""Generic VergeOS API invoker and resource client.

``invoke()`` performs one HTTP call against ``https://{server}/api/v4/{endpoint}``
and always returns a ``NormalizedResult`` (zero or more records), whatever JSON
shape the server chose. Failures surface as the typed errors in
``vgcli.errors``. There are no retries: every call is at-most-once.
"""

import enum
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional, Union

import requests

from .config import get_request_timeout
from .connection import Connection, resolve, translate_request_exception
from .errors import ApiError, ErrorKind, api_error_from_body
from .mapper import MappedResource, map_record
from .query import FilterBuilder, Query
from .resources import get_definition

logger = logging.getLogger(__name__)

SUPPORTED_METHODS = ("GET", "POST", "PUT", "DELETE")


class ResponseShape(str, enum.Enum):
    EMPTY = "empty"
    SINGLE = "single"
    MANY = "many"


@dataclass
class NormalizedResult:
    """Zero or more records decoded from one response."""

    shape: ResponseShape
    records: List[Dict[str, Any]] = field(default_factory=list)
    status_code: Optional[int] = None

    def __iter__(self) -> Iterator[Dict[str, Any]]:
        return iter(self.records)

    def __len__(self) -> int:
        return len(self.records)

    def __getitem__(self, index: int) -> Dict[str, Any]:
        return self.records[index]

    def __bool__(self) -> bool:
        return bool(self.records)

    def first(self) -> Optional[Dict[str, Any]]:
        return self.records[0] if self.records else None


def normalize_response(
    payload: Any, status_code: Optional[int] = None, allow_keyless: bool = False
) -> NormalizedResult:
    """Classify a decoded body as empty, a single record, or many records.

    An object without ``$key`` is an empty result unless ``allow_keyless``
    is set (action endpoints answer with keyless status objects).
    """
    if isinstance(payload, list):
        records = [item for item in payload if isinstance(item, dict)]
        return NormalizedResult(ResponseShape.MANY, records, status_code)
    if isinstance(payload, dict) and payload:
        if "$key" in payload or allow_keyless:
            return NormalizedResult(ResponseShape.SINGLE, [payload], status_code)
    return NormalizedResult(ResponseShape.EMPTY, [], status_code)


def _decode_body(resp: requests.Response) -> Any:
    if not resp.content:
        return None
    try:
        return resp.json()
    except ValueError:
        return resp.text


def invoke(
    method: str,
    endpoint: str,
    query: Union[Query, Dict[str, Any], None] = None,
    body: Optional[Dict[str, Any]] = None,
    connection: Union[Connection, str, None] = None,
    timeout: Optional[float] = None,
    allow_keyless: bool = False,
) -> NormalizedResult:
    """Call a REST endpoint and normalize the response.

    Args:
        method: GET, POST, PUT or DELETE
        endpoint: Path below /api/v4, e.g. ``vnets`` or ``vms/12``
        query: Query object or plain dict sent as URL parameters
        body: JSON body for POST/PUT
        connection: Connection or server name; the default when omitted
        timeout: Seconds before the call fails with TransportError
        allow_keyless: Treat a non-empty object without $key as a record

    Returns:
        NormalizedResult with zero or more records

    Raises:
        NotConnectedError: No connection resolved (raised before any I/O)
        ApiError: Non-2xx response
        TLSError: Certificate verification failed
        TransportError: Network failure or timeout
    """
    verb = method.upper()
    if verb not in SUPPORTED_METHODS:
        raise ValueError(f"Unsupported HTTP method: {method}")

    conn = resolve(connection)
    url = f"{conn.base_url}/{endpoint.lstrip('/')}"

    if isinstance(query, Query):
        params: Optional[Dict[str, Any]] = query.to_params()
    elif query:
        params = {k: v for k, v in query.items() if v is not None}
    else:
        params = None

    json_body = body if verb in ("POST", "PUT") else None

    logger.debug("%s %s params=%s", verb, url, params)
    try:
        resp = conn.session.request(
            verb,
            url,
            params=params or None,
            json=json_body,
            timeout=timeout or get_request_timeout(),
        )
    except requests.RequestException as exc:
        raise translate_request_exception(exc, conn.server) from exc

    logger.debug("%s %s -> %s", verb, url, resp.status_code)

    payload = _decode_body(resp)
    if not resp.ok:
        raise api_error_from_body(resp.status_code, payload)

    if isinstance(payload, str):
        logger.debug("Non-JSON body from %s ignored", url)
        payload = None
    return normalize_response(payload, resp.status_code, allow_keyless=allow_keyless)


class VergeClient:
    """Resource-level operations bound to one connection.

    With no connection given, each call resolves the current default.
    """

    def __init__(
        self, connection: Union[Connection, str, None] = None, timeout: Optional[float] = None
    ):
        self._connection = connection
        self.timeout = timeout

    @property
    def connection(self) -> Connection:
        return resolve(self._connection)

    def invoke(
        self,
        method: str,
        endpoint: str,
        query: Union[Query, Dict[str, Any], None] = None,
        body: Optional[Dict[str, Any]] = None,
        allow_keyless: bool = False,
    ) -> NormalizedResult:
        return invoke(
            method,
            endpoint,
            query=query,
            body=body,
            connection=self.connection,
            timeout=self.timeout,
            allow_keyless=allow_keyless,
        )

    def list(
        self,
        resource: str,
        builder: Optional[FilterBuilder] = None,
        fields: Optional[List[str]] = None,
        sort: Optional[str] = None,
        limit: Optional[int] = None,
        include_all: bool = False,
    ) -> List[MappedResource]:
        """List records of a resource.

        Args:
            resource: Resource name (see vgcli.resources) or raw endpoint
            builder: Filter conditions; wildcard globs are applied after fetch
            fields: Field projection; the definition's default when omitted
            sort: Sort expression, e.g. ``name`` or ``-created``
            limit: Maximum number of records the server returns
            include_all: Skip the definition's default filter (e.g. snapshots)
        """
        definition = get_definition(resource)
        conn = self.connection
        combined = FilterBuilder()
        if definition.default_filter and not include_all:
            combined.raw(definition.default_filter)
        if builder is not None:
            combined.extend(builder)

        query = Query(
            filter=combined.build(),
            fields=list(fields) if fields else list(definition.default_fields),
            sort=sort,
            limit=limit,
        )
        result = invoke(
            "GET", definition.endpoint, query=query, connection=conn, timeout=self.timeout
        )
        records = combined.apply_client_filters(result.records)
        return [map_record(definition, record, conn) for record in records]

    def get(self, resource: str, key: Any, fields: Optional[List[str]] = None) -> MappedResource:
        """Fetch one record by key.

        Raises:
            ApiError: NOT_FOUND when the server has no such record
        """
        definition = get_definition(resource)
        conn = self.connection
        query = Query(fields=list(fields) if fields else list(definition.default_fields))
        result = invoke(
            "GET",
            f"{definition.endpoint}/{key}",
            query=query,
            connection=conn,
            timeout=self.timeout,
            allow_keyless=True,
        )
        record = result.first()
        if record is None:
            raise ApiError(
                404, f"{definition.name} {key} not found", kind=ErrorKind.NOT_FOUND
            )
        return map_record(definition, record, conn)

    def find(self, resource: str, name: str, include_all: bool = False) -> List[MappedResource]:
        """List records whose name matches a literal or wildcard pattern."""
        definition = get_definition(resource)
        builder = FilterBuilder().match(definition.name_field, name)
        return self.list(resource, builder=builder, include_all=include_all)

    def create(
        self, resource: str, body: Dict[str, Any], passthru: bool = False
    ) -> Union[Any, MappedResource]:
        """Create a record. Returns its key, or the re-fetched record with passthru."""
        definition = get_definition(resource)
        result = self.invoke("POST", definition.endpoint, body=body)
        key = _key_of(result)
        logger.info("Created %s %s", definition.name, key)
        if passthru and key is not None:
            return self.get(resource, key)
        return key

    def update(
        self, resource: str, key: Any, body: Dict[str, Any], passthru: bool = False
    ) -> Union[Any, MappedResource]:
        """Update a record. Returns the key, or the re-fetched record with passthru."""
        definition = get_definition(resource)
        self.invoke("PUT", f"{definition.endpoint}/{key}", body=body)
        logger.info("Updated %s %s", definition.name, key)
        if passthru:
            return self.get(resource, key)
        return key

    def delete(self, resource: str, key: Any) -> None:
        definition = get_definition(resource)
        self.invoke("DELETE", f"{definition.endpoint}/{key}")
        logger.info("Deleted %s %s", definition.name, key)

    def action(
        self,
        resource: str,
        key: Any,
        action: str,
        params: Optional[Dict[str, Any]] = None,
    ) -> NormalizedResult:
        """Run a power/control action, e.g. ``vm_actions`` with ``poweron``."""
        definition = get_definition(resource)
        if not definition.action_endpoint or not definition.action_key:
            raise ValueError(f"Resource '{definition.name}' does not support actions")
        body: Dict[str, Any] = {definition.action_key: key, "action": action}
        if params:
            body["params"] = params
        logger.info("Action %s on %s %s", action, definition.name, key)
        return self.invoke("POST", definition.action_endpoint, body=body, allow_keyless=True)


def _key_of(result: NormalizedResult) -> Any:
    record = result.first()
    if record is None:
        return None
    return record.get("$key")
