"""Unit test configuration - runs before any test collection or imports.

Forces the keyring null backend so no test touches the real system keyring
(macOS CI runners hang on a locked Keychain).

Every test also gets an isolated config file, an empty connection registry
and a network guard, so nothing reaches a real VergeOS server.
"""

from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional
from unittest.mock import MagicMock

import keyring
import pytest
import requests
from keyring.backend import KeyringBackend
from keyring.backends.null import Keyring as NullKeyring
from keyring.errors import PasswordDeleteError

from vgcli import profiles
from vgcli.connection import AUTH_APIKEY, Connection, get_registry, reset_registry

# Force the null backend BEFORE any test or doctest-module collection
# triggers a real keyring call.
keyring.set_keyring(NullKeyring())

_ENV_VARS = (
    "VGCLI_PROFILE",
    "VGCLI_TIMEOUT",
    "VERGEOS_HOST",
    "VERGEOS_USERNAME",
    "VERGEOS_PASSWORD",
    "VERGEOS_TOKEN",
    "VERGEOS_INSECURE",
)


class MockResponse:
    """Mock HTTP response for preventing real network calls."""

    def __init__(
        self,
        json_data: Any = None,
        status_code: int = 200,
        text: Optional[str] = None,
    ) -> None:
        """Initialize mock response.

        Args:
            json_data: Decoded JSON body; None means an empty body
            status_code: HTTP status code
            text: Raw non-JSON body, used when json_data is None
        """
        self._json_data = json_data
        self.status_code = status_code
        self.ok = 200 <= status_code < 400
        if json_data is not None:
            self.content = b"json"
            self.text = ""
        else:
            self.text = text or ""
            self.content = self.text.encode()

    def json(self) -> Any:
        """Return the JSON data, or fail like requests does for non-JSON bodies."""
        if self._json_data is None:
            raise ValueError("No JSON object could be decoded")
        return self._json_data


class FakeKeyring(KeyringBackend):
    """In-memory keyring for tests that need stored tokens."""

    priority = 1  # type: ignore[assignment]

    def __init__(self) -> None:
        super().__init__()
        self.passwords: Dict[tuple, str] = {}

    def get_password(self, service: str, username: str) -> Optional[str]:
        return self.passwords.get((service, username))

    def set_password(self, service: str, username: str, password: str) -> None:
        self.passwords[(service, username)] = password

    def delete_password(self, service: str, username: str) -> None:
        if (service, username) not in self.passwords:
            raise PasswordDeleteError(username)
        del self.passwords[(service, username)]


@pytest.fixture(autouse=True)
def isolated_state(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterator[Path]:
    """Point the config file at tmp_path and start from an empty registry."""
    config_file = tmp_path / "config.json"
    monkeypatch.setenv("VGCLI_CONFIG", str(config_file))
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    profiles.set_profile_override(None)
    reset_registry()
    yield config_file
    profiles.set_profile_override(None)
    reset_registry()


@pytest.fixture(autouse=True)
def mock_network_calls(monkeypatch: pytest.MonkeyPatch) -> None:
    """Fail loudly on any HTTP call a test did not mock itself."""

    def blocked(*args: Any, **kwargs: Any) -> None:
        raise AssertionError(f"Unexpected network call: {args!r}")

    monkeypatch.setattr("requests.post", blocked)
    monkeypatch.setattr("requests.Session.request", blocked)


@pytest.fixture
def fake_keyring() -> Iterator[FakeKeyring]:
    """Install an in-memory keyring backend for the test."""
    backend = FakeKeyring()
    keyring.set_keyring(backend)
    yield backend
    keyring.set_keyring(NullKeyring())


def make_session(*responses: MockResponse) -> MagicMock:
    """A stand-in requests.Session whose request() returns the given responses in order."""
    session = MagicMock(spec=requests.Session)
    session.request.side_effect = list(responses)
    session.delete.return_value = MockResponse({}, 200)
    return session


@pytest.fixture
def connected() -> Any:
    """Register a token connection with a mocked session as the default.

    Call the returned function with MockResponse objects; it returns the
    mocked session so tests can inspect the calls made.
    """

    def _connect(*responses: MockResponse, server: str = "verge.test") -> MagicMock:
        session = make_session(*responses)
        conn = Connection(server=server, token="tok", auth_type=AUTH_APIKEY, _session=session)
        get_registry().add(conn)
        return session

    return _connect


def request_params(session: MagicMock, call_index: int = 0) -> Dict[str, Any]:
    """Return the ``params`` passed to the nth session.request call."""
    return session.request.call_args_list[call_index].kwargs.get("params") or {}


def request_calls(session: MagicMock) -> List[tuple]:
    """(method, url) of every request made through a mocked session."""
    return [(c.args[0], c.args[1]) for c in session.request.call_args_list]
