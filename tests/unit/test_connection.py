"""Unit tests for the connection registry."""

import threading
from typing import Any, Dict, List
from unittest.mock import MagicMock

import pytest
import requests
from conftest import MockResponse

from vgcli import connection as connection_module
from vgcli.connection import (
    AUTH_APIKEY,
    AUTH_SESSION,
    SESSION_TOKEN_HEADER,
    Connection,
    ConnectionRegistry,
    connect,
    get_registry,
    list_connections,
    normalize_server,
    resolve,
    set_default,
    translate_request_exception,
)
from vgcli.errors import (
    ApiError,
    AuthenticationError,
    NotConnectedError,
    TLSError,
    TransportError,
)


def _fake_login(monkeypatch: Any, response: MockResponse) -> List[Dict[str, Any]]:
    calls: List[Dict[str, Any]] = []

    def fake_post(url: str, **kwargs: Any) -> MockResponse:
        calls.append({"url": url, **kwargs})
        return response

    monkeypatch.setattr("vgcli.connection.requests.post", fake_post)
    return calls


class TestNormalizeServer:
    """Tests for server address normalization."""

    @pytest.mark.parametrize(
        "raw",
        ["verge.lab", "https://verge.lab", "http://verge.lab/", "https://verge.lab/api/v4", " verge.lab "],
    )
    def test_strips_scheme_and_path(self, raw: str) -> None:
        assert normalize_server(raw) == "verge.lab"


class TestConnection:
    """Tests for the Connection object."""

    def test_api_token_uses_bearer_header(self) -> None:
        conn = Connection(server="h", token="abc", auth_type=AUTH_APIKEY)
        assert conn.headers == {"Authorization": "Bearer abc"}

    def test_session_token_header(self) -> None:
        conn = Connection(server="h", token="abc", auth_type=AUTH_SESSION)
        assert conn.headers == {SESSION_TOKEN_HEADER: "abc"}

    def test_session_carries_auth_and_tls_policy(self) -> None:
        conn = Connection(server="h", token="abc", auth_type=AUTH_APIKEY, verify_ssl=False)
        session = conn.session
        assert session.headers["Authorization"] == "Bearer abc"
        assert session.verify is False
        assert conn.session is session
        conn.close()
        assert conn._session is None

    def test_base_url(self) -> None:
        assert Connection(server="h", token="t").base_url == "https://h/api/v4"

    def test_to_dict_never_contains_token(self) -> None:
        data = Connection(server="h", token="secret", username="admin").to_dict()
        assert "secret" not in str(data)
        assert data["server"] == "h"
        assert data["username"] == "admin"


class TestConnect:
    """Tests for ConnectionRegistry.connect."""

    def test_connect_with_token_then_resolve(self) -> None:
        registry = ConnectionRegistry()
        conn = registry.connect("host", token="tok")
        resolved = registry.resolve()
        assert resolved is conn
        assert resolved.server == "host"
        assert resolved.auth_type == AUTH_APIKEY
        assert resolved.is_default

    def test_login_exchanges_credentials_for_session_token(self, monkeypatch: Any) -> None:
        calls = _fake_login(monkeypatch, MockResponse({"$key": "sess-1"}, 201))
        registry = ConnectionRegistry()
        conn = registry.connect("https://verge.lab/", username="admin", password="pw")

        assert conn.token == "sess-1"
        assert conn.auth_type == AUTH_SESSION
        assert conn.username == "admin"
        assert calls[0]["url"] == "https://verge.lab/api/sys/tokens"
        assert calls[0]["json"] == {"login": "admin", "password": "pw"}
        assert calls[0]["auth"] == ("admin", "pw")
        assert calls[0]["verify"] is True

    def test_skip_cert_check_disables_verification(self, monkeypatch: Any) -> None:
        calls = _fake_login(monkeypatch, MockResponse({"$key": "s"}, 200))
        conn = ConnectionRegistry().connect("h", username="u", password="p", skip_cert_check=True)
        assert calls[0]["verify"] is False
        assert conn.verify_ssl is False

    def test_rejected_credentials(self, monkeypatch: Any) -> None:
        _fake_login(monkeypatch, MockResponse({"err": "Invalid login"}, 401))
        registry = ConnectionRegistry()
        with pytest.raises(AuthenticationError):
            registry.connect("h", username="u", password="bad")
        assert len(registry) == 0

    def test_login_without_token_in_response(self, monkeypatch: Any) -> None:
        _fake_login(monkeypatch, MockResponse({}, 200))
        with pytest.raises(AuthenticationError, match="session token"):
            ConnectionRegistry().connect("h", username="u", password="p")

    def test_login_server_error(self, monkeypatch: Any) -> None:
        _fake_login(monkeypatch, MockResponse({"err": "boom"}, 500))
        with pytest.raises(ApiError) as excinfo:
            ConnectionRegistry().connect("h", username="u", password="p")
        assert excinfo.value.status == 500

    def test_tls_failure(self, monkeypatch: Any) -> None:
        def fake_post(url: str, **kwargs: Any) -> None:
            raise requests.exceptions.SSLError("self signed certificate")

        monkeypatch.setattr("vgcli.connection.requests.post", fake_post)
        with pytest.raises(TLSError, match="--insecure"):
            ConnectionRegistry().connect("h", username="u", password="p")

    def test_missing_credentials(self) -> None:
        with pytest.raises(ValueError):
            ConnectionRegistry().connect("h", username="u")

    def test_empty_server(self) -> None:
        with pytest.raises(ValueError):
            ConnectionRegistry().connect("https://", token="t")


class TestRegistry:
    """Tests for default tracking, listing and disconnecting."""

    def test_resolve_without_connection_raises(self) -> None:
        with pytest.raises(NotConnectedError):
            ConnectionRegistry().resolve()

    def test_resolve_unknown_server_raises(self) -> None:
        registry = ConnectionRegistry()
        registry.connect("a", token="t")
        with pytest.raises(NotConnectedError, match="b"):
            registry.resolve("b")

    def test_resolve_is_idempotent(self) -> None:
        registry = ConnectionRegistry()
        registry.connect("a", token="t")
        assert registry.resolve() is registry.resolve()

    def test_explicit_connection_wins(self) -> None:
        registry = ConnectionRegistry()
        registry.connect("a", token="t")
        other = Connection(server="elsewhere", token="x")
        assert registry.resolve(other) is other

    def test_last_connect_becomes_default(self) -> None:
        registry = ConnectionRegistry()
        first = registry.connect("a", token="1")
        second = registry.connect("b", token="2")
        assert registry.resolve() is second
        assert registry.list() == [first, second]
        assert not first.is_default
        assert second.is_default

    def test_set_default(self) -> None:
        registry = ConnectionRegistry()
        first = registry.connect("a", token="1")
        registry.connect("b", token="2")
        assert registry.set_default("https://a") is first
        assert registry.resolve() is first
        assert registry.resolve("b").server == "b"

    def test_set_default_unknown(self) -> None:
        with pytest.raises(NotConnectedError):
            ConnectionRegistry().set_default("nowhere")

    def test_reconnect_replaces_existing(self) -> None:
        registry = ConnectionRegistry()
        registry.connect("a", token="1")
        registry.connect("b", token="2")
        again = registry.connect("a", token="3")
        assert len(registry) == 2
        assert registry.resolve("a").token == "3"
        assert registry.list()[-1] is again

    def test_add_without_default_keeps_current(self) -> None:
        registry = ConnectionRegistry()
        current = registry.connect("a", token="1")
        registry.add(Connection(server="b", token="2"), set_default=False)
        assert registry.default is current
        assert "b" in registry

    def test_disconnect_default_promotes_most_recent(self) -> None:
        registry = ConnectionRegistry()
        registry.connect("a", token="1")
        second = registry.connect("b", token="2")
        registry.connect("c", token="3")
        removed = registry.disconnect()
        assert [c.server for c in removed] == ["c"]
        assert registry.resolve() is second
        assert second.is_default

    def test_disconnect_invalidates_session_tokens(self) -> None:
        registry = ConnectionRegistry()
        session = MagicMock(spec=requests.Session)
        session.delete.return_value = MockResponse({}, 200)
        registry.add(Connection(server="a", token="sess", auth_type=AUTH_SESSION, _session=session))
        registry.disconnect("a")
        url = session.delete.call_args.args[0]
        assert url == "https://a/api/sys/tokens/sess"
        assert len(registry) == 0

    def test_disconnect_survives_logout_failure(self) -> None:
        registry = ConnectionRegistry()
        session = MagicMock(spec=requests.Session)
        session.delete.side_effect = requests.exceptions.ConnectionError("down")
        registry.add(Connection(server="a", token="sess", auth_type=AUTH_SESSION, _session=session))
        removed = registry.disconnect("a")
        assert removed[0].server == "a"
        with pytest.raises(NotConnectedError):
            registry.resolve()

    def test_disconnect_all(self) -> None:
        registry = ConnectionRegistry()
        registry.connect("a", token="1")
        registry.connect("b", token="2")
        removed = registry.disconnect(all=True)
        assert len(removed) == 2
        assert registry.default is None
        assert registry.list() == []

    def test_disconnect_without_connection(self) -> None:
        with pytest.raises(NotConnectedError):
            ConnectionRegistry().disconnect()

    def test_concurrent_connects_are_all_registered(self) -> None:
        registry = ConnectionRegistry()
        threads = [
            threading.Thread(target=registry.connect, args=(f"host{i}",), kwargs={"token": "t"})
            for i in range(20)
        ]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert len(registry) == 20
        assert sum(1 for c in registry.list() if c.is_default) == 1


class TestModuleFunctions:
    """The module-level helpers share the process-wide registry."""

    def test_connect_and_resolve(self) -> None:
        conn = connect("host", token="tok")
        assert resolve() is conn
        assert get_registry().default is conn
        assert list_connections() == [conn]

    def test_set_default(self) -> None:
        first = connect("a", token="1")
        connect("b", token="2")
        set_default("a")
        assert resolve() is first

    def test_disconnect(self) -> None:
        connect("a", token="1")
        connection_module.disconnect("a")
        assert list_connections() == []


class TestTranslateRequestException:
    """Tests for mapping requests failures."""

    def test_timeout(self) -> None:
        err = translate_request_exception(requests.exceptions.ReadTimeout("slow"), "h")
        assert isinstance(err, TransportError)
        assert "timed out" in str(err)

    def test_connection_refused(self) -> None:
        err = translate_request_exception(requests.exceptions.ConnectionError("refused"), "h")
        assert isinstance(err, TransportError)

    def test_ssl(self) -> None:
        err = translate_request_exception(requests.exceptions.SSLError("bad cert"), "h")
        assert isinstance(err, TLSError)
