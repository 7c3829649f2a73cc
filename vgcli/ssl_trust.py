"""Operating system trust store support for vgcli.

VergeOS appliances are often signed by an internal CA that the user's OS
already trusts but certifi does not. ``inject_os_trust()`` points the
`requests` stack at the OS store through the `truststore` library.

Environment Variables:
    VGCLI_DISABLE_OS_TRUST=1  -> Keep certifi, skip injection
    VGCLI_FORCE_OS_TRUST=1    -> Raise when injection fails
    VGCLI_DEBUG_OS_TRUST=1    -> Log the traceback when injection fails

``--insecure`` connections skip verification entirely and are unaffected.
"""

from __future__ import annotations

import logging
import os

logger = logging.getLogger(__name__)

OS_TRUST_INJECTED: bool = False
OS_TRUST_REASON: str = "not-attempted"

# Preferred order: patch requests directly, then ssl, then urllib3 (older truststore)
INJECTION_ENTRY_POINTS = (
    ("inject_into_requests", "requests"),
    ("inject_into_ssl", "ssl"),
    ("inject_into_urllib3", "urllib3"),
)

__all__ = ["inject_os_trust", "trust_status", "OS_TRUST_INJECTED", "OS_TRUST_REASON"]


def _env_enabled(name: str) -> bool:
    return os.environ.get(name) == "1"


def _inject(truststore_module: object) -> str:
    for attr_name, label in INJECTION_ENTRY_POINTS:
        inject = getattr(truststore_module, attr_name, None)
        if inject is None:
            continue
        try:
            inject()
        except Exception:  # noqa: BLE001 - try the next entry point
            logger.debug("truststore.%s failed", attr_name, exc_info=True)
            continue
        return label
    raise AttributeError(
        "No compatible injection function on truststore module (expected one of: "
        + ", ".join(name for name, _ in INJECTION_ENTRY_POINTS)
        + ")"
    )


def inject_os_trust() -> None:
    """Use the system certificate store for HTTPS verification.

    Silent on success. On failure certifi stays in place and a one-line
    notice goes to the log, unless VGCLI_FORCE_OS_TRUST asks to fail fast.
    """
    global OS_TRUST_INJECTED, OS_TRUST_REASON
    if _env_enabled("VGCLI_DISABLE_OS_TRUST"):
        OS_TRUST_INJECTED = False
        OS_TRUST_REASON = "disabled-env"
        return
    try:
        import truststore  # type: ignore

        variant = _inject(truststore)
        OS_TRUST_INJECTED = True
        OS_TRUST_REASON = f"injected:{variant}"
    except Exception as exc:
        if _env_enabled("VGCLI_FORCE_OS_TRUST"):
            raise
        logger.info(
            "System trust store injection skipped: %s: %s",
            exc.__class__.__name__,
            exc,
            exc_info=_env_enabled("VGCLI_DEBUG_OS_TRUST"),
        )
        OS_TRUST_INJECTED = False
        OS_TRUST_REASON = f"error:{exc.__class__.__name__}"


def trust_status() -> dict:
    """Current injection state, for diagnostics."""
    return {"os_trust_injected": OS_TRUST_INJECTED, "reason": OS_TRUST_REASON}
