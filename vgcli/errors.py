"""Exception types raised by the VergeOS client layer.

Every failure leaving the client is one of the classes below. API failures carry
an ``ErrorKind`` so callers can branch on the kind of failure instead of
matching message text themselves.
"""

import enum
import json
from typing import Any, Dict, Optional


class ErrorKind(str, enum.Enum):
    """Classification of a non-2xx API response."""

    AUTH = "auth"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    VALIDATION = "validation"
    IN_USE = "in_use"
    SERVER = "server"
    UNKNOWN = "unknown"


class VergeError(Exception):
    """Base class for all client errors."""


class NotConnectedError(VergeError):
    """No connection could be resolved for the call."""

    def __init__(
        self, message: str = "Not connected to a VergeOS server. Run 'vgcli connect' first."
    ):
        super().__init__(message)


class AuthenticationError(VergeError):
    """The server rejected the supplied credentials or token."""


class TLSError(VergeError):
    """The server certificate could not be verified."""


class TransportError(VergeError):
    """The server could not be reached (DNS, refused connection, timeout)."""


class ApiError(VergeError):
    """A request completed with a non-2xx status.

    Attributes:
        status: HTTP status code
        message: Error text reported by the server
        kind: Classified failure kind
        code: Structured error code from the body, when the server sent one
        body: Decoded response body (dict) or raw text
    """

    def __init__(
        self,
        status: int,
        message: str,
        kind: ErrorKind = ErrorKind.UNKNOWN,
        code: Optional[str] = None,
        body: Any = None,
    ):
        super().__init__(f"API request failed: {status} - {message}")
        self.status = status
        self.message = message
        self.kind = kind
        self.code = code
        self.body = body

    @property
    def is_not_found(self) -> bool:
        return self.kind == ErrorKind.NOT_FOUND

    @property
    def is_conflict(self) -> bool:
        return self.kind == ErrorKind.CONFLICT


# Structured codes seen in error bodies. Matched case-insensitively.
_CODE_KINDS: Dict[str, ErrorKind] = {
    "unauthorized": ErrorKind.AUTH,
    "forbidden": ErrorKind.AUTH,
    "permission_denied": ErrorKind.AUTH,
    "not_found": ErrorKind.NOT_FOUND,
    "notfound": ErrorKind.NOT_FOUND,
    "conflict": ErrorKind.CONFLICT,
    "duplicate": ErrorKind.CONFLICT,
    "already_exists": ErrorKind.CONFLICT,
    "validation": ErrorKind.VALIDATION,
    "invalid": ErrorKind.VALIDATION,
    "in_use": ErrorKind.IN_USE,
    "referenced": ErrorKind.IN_USE,
}

_STATUS_KINDS: Dict[int, ErrorKind] = {
    401: ErrorKind.AUTH,
    403: ErrorKind.AUTH,
    404: ErrorKind.NOT_FOUND,
    409: ErrorKind.CONFLICT,
    422: ErrorKind.VALIDATION,
}

# Fallback only: the server's message wording is not a stable contract.
_MESSAGE_KINDS = (
    (("already exists", "duplicate", "unique", "is taken"), ErrorKind.CONFLICT),
    (("in use", "is being used", "referenced by", "still referenced"), ErrorKind.IN_USE),
    (("not found", "does not exist", "no such"), ErrorKind.NOT_FOUND),
    (("permission", "unauthorized", "not authorized", "access denied"), ErrorKind.AUTH),
    (("invalid", "malformed", "must be", "out of range", "required"), ErrorKind.VALIDATION),
)


def extract_error_message(body: Any) -> str:
    """Pull the human-readable message out of an error body.

    VergeOS reports errors as ``{"err": "..."}``; ``error`` and ``message`` keys
    are accepted as well. Anything else is returned as text.
    """
    if isinstance(body, dict):
        for key in ("err", "error", "message"):
            value = body.get(key)
            if isinstance(value, dict):
                value = value.get("message") or value.get("err")
            if value:
                return str(value)
        return json.dumps(body)
    if body is None:
        return ""
    return str(body).strip()


def extract_error_code(body: Any) -> Optional[str]:
    """Return a structured error code from the body, if the server sent one."""
    if not isinstance(body, dict):
        return None
    for key in ("code", "error_code", "err_code"):
        value = body.get(key)
        if value not in (None, ""):
            return str(value)
    error = body.get("error")
    if isinstance(error, dict) and error.get("code") not in (None, ""):
        return str(error["code"])
    return None


def classify_error(status: int, message: str, code: Optional[str] = None) -> ErrorKind:
    """Classify an API failure.

    Order: structured code, then HTTP status, then message substrings.

    Args:
        status: HTTP status code
        message: Server error message
        code: Structured error code, if any

    Returns:
        The classified ErrorKind
    """
    if code:
        kind = _CODE_KINDS.get(code.strip().lower().replace("-", "_").replace(" ", "_"))
        if kind:
            return kind

    kind = _STATUS_KINDS.get(status)
    if kind:
        return kind

    lowered = (message or "").lower()
    for needles, kind in _MESSAGE_KINDS:
        if any(needle in lowered for needle in needles):
            return kind

    if status >= 500:
        return ErrorKind.SERVER
    if status == 400:
        return ErrorKind.VALIDATION
    return ErrorKind.UNKNOWN


def api_error_from_body(status: int, body: Any) -> ApiError:
    """Build a classified ApiError from a status code and decoded body."""
    message = extract_error_message(body) or f"HTTP {status}"
    code = extract_error_code(body)
    kind = classify_error(status, message, code)
    return ApiError(status, message, kind=kind, code=code, body=body)
