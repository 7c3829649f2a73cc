"""Connection registry for VergeOS sessions.

A ``Connection`` is one authenticated session against one VergeOS server. The
``ConnectionRegistry`` keeps every open connection for the life of the process
and tracks which one is the default. The most recent ``connect()`` becomes the
default unless ``set_default()`` says otherwise.

The module-level functions operate on a process-wide registry so that the CLI
and library callers share the same sessions.
"""

import datetime
import logging
import threading
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Union

import requests

from .config import get_request_timeout
from .errors import (
    AuthenticationError,
    NotConnectedError,
    TLSError,
    TransportError,
    api_error_from_body,
)

logger = logging.getLogger(__name__)

AUTH_SESSION = "session"
AUTH_APIKEY = "apikey"

SESSION_TOKEN_HEADER = "x-yottabyte-token"
USER_AGENT = "vgcli/1.0"


def normalize_server(server: str) -> str:
    """Strip scheme, path and trailing slashes from a server address."""
    host = server.strip()
    if host.startswith("https://"):
        host = host[8:]
    elif host.startswith("http://"):
        host = host[7:]
    return host.split("/", 1)[0]


@dataclass
class Connection:
    """An authenticated session bound to one VergeOS server."""

    server: str
    token: str
    auth_type: str = AUTH_SESSION
    verify_ssl: bool = True
    username: Optional[str] = None
    connected_at: datetime.datetime = field(default_factory=datetime.datetime.now)
    is_default: bool = False
    _session: Optional[requests.Session] = field(default=None, repr=False, compare=False)

    @property
    def base_url(self) -> str:
        return f"https://{self.server}/api/v4"

    @property
    def headers(self) -> Dict[str, str]:
        """Auth header for this connection's credential type."""
        if self.auth_type == AUTH_APIKEY:
            return {"Authorization": f"Bearer {self.token}"}
        return {SESSION_TOKEN_HEADER: self.token}

    @property
    def session(self) -> requests.Session:
        """HTTP session carrying the auth header and TLS policy."""
        if self._session is None:
            session = requests.Session()
            session.headers.update(self.headers)
            session.headers["User-Agent"] = USER_AGENT
            session.verify = self.verify_ssl
            self._session = session
        return self._session

    def close(self) -> None:
        if self._session is not None:
            self._session.close()
            self._session = None

    def to_dict(self) -> Dict[str, object]:
        """Serializable summary; the token is never included."""
        return {
            "server": self.server,
            "username": self.username,
            "auth_type": self.auth_type,
            "verify_ssl": self.verify_ssl,
            "connected_at": self.connected_at.isoformat(),
            "default": self.is_default,
        }


def translate_request_exception(exc: requests.RequestException, server: str) -> Exception:
    """Map a requests failure to a TLSError or TransportError."""
    if isinstance(exc, requests.exceptions.SSLError):
        return TLSError(
            f"Certificate verification failed for {server}: {exc}. "
            "Use --insecure to allow self-signed certificates."
        )
    if isinstance(exc, requests.exceptions.Timeout):
        return TransportError(f"Request to {server} timed out: {exc}")
    if isinstance(exc, requests.exceptions.ConnectionError):
        return TransportError(f"Connection to {server} failed: {exc}")
    return TransportError(f"Request to {server} failed: {exc}")


def _login(
    server: str, username: str, password: str, verify_ssl: bool, timeout: float
) -> str:
    """Exchange username/password for a session token."""
    url = f"https://{server}/api/sys/tokens"
    try:
        resp = requests.post(
            url,
            json={"login": username, "password": password},
            auth=(username, password),
            headers={"User-Agent": USER_AGENT},
            verify=verify_ssl,
            timeout=timeout,
        )
    except requests.RequestException as exc:
        raise translate_request_exception(exc, server) from exc

    if resp.status_code in (401, 403):
        raise AuthenticationError(f"Authentication failed for {username}@{server}")
    if not resp.ok:
        try:
            body = resp.json()
        except ValueError:
            body = resp.text
        raise api_error_from_body(resp.status_code, body)

    try:
        data = resp.json()
    except ValueError:
        data = {}
    token = data.get("$key") if isinstance(data, dict) else None
    if not token:
        raise AuthenticationError(f"Login to {server} did not return a session token")
    return str(token)


def _logout(connection: Connection, timeout: float) -> None:
    """Invalidate a session token server-side. Failures are logged only."""
    if connection.auth_type != AUTH_SESSION:
        return
    url = f"https://{connection.server}/api/sys/tokens/{connection.token}"
    try:
        resp = connection.session.delete(url, timeout=timeout)
        if not resp.ok:
            logger.warning(
                "Session invalidation on %s returned HTTP %s", connection.server, resp.status_code
            )
    except requests.RequestException as exc:
        logger.warning("Session invalidation on %s failed: %s", connection.server, exc)


class ConnectionRegistry:
    """Process-wide map of server -> Connection with a default pointer."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._connections: Dict[str, Connection] = {}
        self._default: Optional[str] = None

    def connect(
        self,
        server: str,
        username: Optional[str] = None,
        password: Optional[str] = None,
        token: Optional[str] = None,
        skip_cert_check: bool = False,
        timeout: Optional[float] = None,
    ) -> Connection:
        """Authenticate against a server and register the session as default.

        Args:
            server: Host name or URL of the VergeOS system
            username: Login name (with password)
            password: Login password
            token: API token used as-is instead of a login exchange
            skip_cert_check: Allow self-signed/untrusted certificates
            timeout: Login timeout in seconds

        Returns:
            The new Connection

        Raises:
            AuthenticationError: Bad credentials
            TLSError: Untrusted certificate and skip_cert_check is False
            TransportError: Server unreachable
        """
        host = normalize_server(server)
        if not host:
            raise ValueError("Server must not be empty")
        verify_ssl = not skip_cert_check

        if token:
            connection = Connection(
                server=host,
                token=token,
                auth_type=AUTH_APIKEY,
                verify_ssl=verify_ssl,
                username=username,
            )
        elif username and password:
            session_token = _login(
                host, username, password, verify_ssl, timeout or get_request_timeout()
            )
            connection = Connection(
                server=host,
                token=session_token,
                auth_type=AUTH_SESSION,
                verify_ssl=verify_ssl,
                username=username,
            )
        else:
            raise ValueError("Either a token or a username and password are required")

        self.add(connection, set_default=True)
        logger.info("Connected to %s (%s)", host, connection.auth_type)
        return connection

    def add(self, connection: Connection, set_default: bool = True) -> Connection:
        """Register an existing connection, replacing any for the same server."""
        with self._lock:
            previous = self._connections.pop(connection.server, None)
            if previous is not None and previous is not connection:
                previous.close()
            self._connections[connection.server] = connection
            if set_default or self._default in (None, connection.server):
                self._set_default_locked(connection.server)
            else:
                connection.is_default = False
        return connection

    def resolve(self, connection: Union[Connection, str, None] = None) -> Connection:
        """Return the explicit connection, or the default one.

        Raises:
            NotConnectedError: Nothing explicit and no default, or an unknown server name
        """
        if isinstance(connection, Connection):
            return connection
        with self._lock:
            if connection:
                host = normalize_server(connection)
                found = self._connections.get(host)
                if found is None:
                    raise NotConnectedError(f"Not connected to {host}")
                return found
            if self._default is None:
                raise NotConnectedError()
            return self._connections[self._default]

    def set_default(self, server: str) -> Connection:
        host = normalize_server(server)
        with self._lock:
            if host not in self._connections:
                raise NotConnectedError(f"Not connected to {host}")
            self._set_default_locked(host)
            return self._connections[host]

    def _set_default_locked(self, host: str) -> None:
        for name, conn in self._connections.items():
            conn.is_default = name == host
        self._default = host

    def disconnect(
        self, server: Optional[str] = None, all: bool = False, timeout: Optional[float] = None
    ) -> List[Connection]:
        """Remove one connection (default when server is None) or all of them.

        Session tokens are invalidated server-side on a best-effort basis.

        Returns:
            The removed connections
        """
        with self._lock:
            if all:
                removed = list(self._connections.values())
                self._connections.clear()
                self._default = None
            else:
                target = self.resolve(server)
                removed = [self._connections.pop(target.server)]
                if self._default == target.server:
                    self._default = None
                    if self._connections:
                        newest = next(reversed(self._connections))
                        self._set_default_locked(newest)

        for conn in removed:
            _logout(conn, timeout or get_request_timeout())
            conn.is_default = False
            conn.close()
            logger.info("Disconnected from %s", conn.server)
        return removed

    def list(self) -> List[Connection]:
        """All registered connections in the order they were added."""
        with self._lock:
            return list(self._connections.values())

    @property
    def default(self) -> Optional[Connection]:
        with self._lock:
            return self._connections.get(self._default) if self._default else None

    def __len__(self) -> int:
        with self._lock:
            return len(self._connections)

    def __contains__(self, server: object) -> bool:
        if not isinstance(server, str):
            return False
        with self._lock:
            return normalize_server(server) in self._connections


_registry = ConnectionRegistry()


def get_registry() -> ConnectionRegistry:
    """Return the process-wide registry."""
    return _registry


def reset_registry() -> ConnectionRegistry:
    """Replace the process-wide registry with an empty one (no server calls)."""
    global _registry
    for conn in _registry.list():
        conn.close()
    _registry = ConnectionRegistry()
    return _registry


def connect(server: str, **kwargs) -> Connection:
    return _registry.connect(server, **kwargs)


def resolve(connection: Union[Connection, str, None] = None) -> Connection:
    return _registry.resolve(connection)


def set_default(server: str) -> Connection:
    return _registry.set_default(server)


def disconnect(server: Optional[str] = None, all: bool = False) -> List[Connection]:
    return _registry.disconnect(server, all=all)


def list_connections() -> List[Connection]:
    return _registry.list()
