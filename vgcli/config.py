"""Environment-driven settings for vgcli."""

import os
from typing import Any, Dict, Optional

DEFAULT_TIMEOUT = 30.0

_TRUE_VALUES = ("1", "true", "yes", "on")


def _env_flag(name: str, default: bool = False) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in _TRUE_VALUES


def get_request_timeout() -> float:
    """Return the per-request timeout in seconds (VGCLI_TIMEOUT, default 30)."""
    value = os.environ.get("VGCLI_TIMEOUT")
    if not value:
        return DEFAULT_TIMEOUT
    try:
        timeout = float(value)
    except ValueError:
        return DEFAULT_TIMEOUT
    return timeout if timeout > 0 else DEFAULT_TIMEOUT


def get_env_credentials() -> Optional[Dict[str, Any]]:
    """Read one-shot connection settings from VERGEOS_* environment variables.

    Returns:
        Keyword arguments for ``connect()``, or None when VERGEOS_HOST is unset
        or no credentials are present.
    """
    host = os.environ.get("VERGEOS_HOST")
    if not host:
        return None

    token = os.environ.get("VERGEOS_TOKEN")
    username = os.environ.get("VERGEOS_USERNAME")
    password = os.environ.get("VERGEOS_PASSWORD")
    if not token and not (username and password):
        return None

    creds: Dict[str, Any] = {
        "server": host,
        "skip_cert_check": _env_flag("VERGEOS_INSECURE"),
    }
    if token:
        creds["token"] = token
    else:
        creds["username"] = username
        creds["password"] = password
    return creds
