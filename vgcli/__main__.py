"""Entry point for the VergeOS CLI application.

Performs system trust store injection (via truststore) before loading the main CLI.
See ``vgcli.ssl_trust`` for the VGCLI_*_OS_TRUST environment controls.
"""

from __future__ import annotations

# Absolute import keeps this working when run as a standalone script
from vgcli.ssl_trust import inject_os_trust  # noqa: E402,I100,I202

# Inject before importing the CLI so requests-based modules see the patched SSL context.
inject_os_trust()

from vgcli.main import cli  # noqa: E402,I100,I202

if __name__ == "__main__":
    cli()
