"""Saved connection profiles for vgcli.

Each ``vgcli`` invocation is a new process, so connections made with
``vgcli connect`` are saved as profiles and loaded into the connection
registry on start-up.

Configuration is stored in ~/.config/vgcli/config.json with the following structure:
{
  "current-profile": "lab",
  "profiles": {
    "lab": {
      "server": "vergeos.lab.example.com",
      "auth-type": "session",
      "username": "admin",
      "insecure": true
    }
  }
}

Tokens are never written to the file. They live in the system keyring under
service ``vergeos-cli`` with the profile name as the key.
"""

import datetime
import json
import logging
import os
import stat
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import click
import keyring
from keyring.errors import KeyringError, PasswordDeleteError

from .config import get_env_credentials
from .connection import AUTH_SESSION, Connection, ConnectionRegistry, get_registry

logger = logging.getLogger(__name__)

KEYRING_SERVICE = "vergeos-cli"


@dataclass
class Profile:
    """A saved VergeOS connection."""

    name: str
    server: str
    auth_type: str = AUTH_SESSION
    username: Optional[str] = None
    insecure: bool = False

    def to_dict(self) -> Dict[str, Any]:
        """Convert profile to dictionary for serialization."""
        result: Dict[str, Any] = {
            "server": self.server,
            "auth-type": self.auth_type,
        }
        if self.username:
            result["username"] = self.username
        if self.insecure:
            result["insecure"] = True
        return result

    @classmethod
    def from_dict(cls, name: str, data: Dict[str, Any]) -> "Profile":
        """Create a Profile from a dictionary."""
        return cls(
            name=name,
            server=data.get("server", ""),
            auth_type=data.get("auth-type", AUTH_SESSION),
            username=data.get("username"),
            insecure=bool(data.get("insecure", False)),
        )

    @classmethod
    def from_connection(cls, name: str, connection: Connection) -> "Profile":
        return cls(
            name=name,
            server=connection.server,
            auth_type=connection.auth_type,
            username=connection.username,
            insecure=not connection.verify_ssl,
        )

    def get_token(self) -> Optional[str]:
        try:
            return keyring.get_password(KEYRING_SERVICE, self.name)
        except KeyringError as exc:
            logger.warning("Could not read token for profile '%s': %s", self.name, exc)
            return None

    def set_token(self, token: str) -> None:
        keyring.set_password(KEYRING_SERVICE, self.name, token)

    def delete_token(self) -> None:
        try:
            keyring.delete_password(KEYRING_SERVICE, self.name)
        except PasswordDeleteError:
            pass
        except KeyringError as exc:
            logger.warning("Could not remove token for profile '%s': %s", self.name, exc)

    def to_connection(self, token: str) -> Connection:
        return Connection(
            server=self.server,
            token=token,
            auth_type=self.auth_type,
            verify_ssl=not self.insecure,
            username=self.username,
            connected_at=datetime.datetime.now(),
        )


@dataclass
class ProfileConfig:
    """Configuration file manager for profiles."""

    current_profile: Optional[str] = None
    profiles: Dict[str, Profile] = field(default_factory=dict)

    # Additional non-profile settings
    settings: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def get_config_path(cls) -> Path:
        """Get the path to the configuration file."""
        # Support override via environment variable
        if "VGCLI_CONFIG" in os.environ:
            return Path(os.environ["VGCLI_CONFIG"])

        # Use XDG_CONFIG_HOME if set, otherwise use ~/.config
        if "XDG_CONFIG_HOME" in os.environ:
            config_dir = Path(os.environ["XDG_CONFIG_HOME"]) / "vgcli"
        else:
            config_dir = Path.home() / ".config" / "vgcli"

        config_dir.mkdir(parents=True, exist_ok=True)
        return config_dir / "config.json"

    @classmethod
    def load(cls) -> "ProfileConfig":
        """Load configuration from file."""
        config_path = cls.get_config_path()

        if not config_path.exists():
            return cls()

        try:
            with open(config_path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (json.JSONDecodeError, OSError) as exc:
            logger.warning("Ignoring unreadable config file %s: %s", config_path, exc)
            return cls()

        profiles: Dict[str, Profile] = {}
        for name, profile_data in data.get("profiles", {}).items():
            profiles[name] = Profile.from_dict(name, profile_data)

        settings: Dict[str, Any] = {}
        for key, value in data.items():
            if key not in ("current-profile", "profiles"):
                settings[key] = value

        return cls(
            current_profile=data.get("current-profile"),
            profiles=profiles,
            settings=settings,
        )

    def save(self) -> None:
        """Save configuration to file with secure permissions."""
        config_path = self.get_config_path()

        data: Dict[str, Any] = {}

        if self.current_profile:
            data["current-profile"] = self.current_profile

        if self.profiles:
            data["profiles"] = {name: profile.to_dict() for name, profile in self.profiles.items()}

        data.update(self.settings)

        try:
            config_path.parent.mkdir(parents=True, exist_ok=True)
            with open(config_path, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2)

            # 600: owner read/write only
            try:
                config_path.chmod(stat.S_IRUSR | stat.S_IWUSR)
            except OSError:
                # chmod is not meaningful on every platform (e.g. Windows)
                pass

        except OSError as e:
            raise RuntimeError(f"Failed to save configuration: {e}")

    def get_profile(self, name: str) -> Optional[Profile]:
        """Get a profile by name."""
        return self.profiles.get(name)

    def find_by_server(self, server: str) -> Optional[Profile]:
        """Get the profile saved for a server, if any."""
        for profile in self.profiles.values():
            if profile.server == server:
                return profile
        return None

    def get_current_profile(self) -> Optional[Profile]:
        """Get the currently active profile."""
        if not self.current_profile:
            return None
        return self.profiles.get(self.current_profile)

    def set_current_profile(self, name: str) -> None:
        """Set the current profile."""
        if name not in self.profiles:
            raise ValueError(f"Profile '{name}' does not exist")
        self.current_profile = name

    def add_profile(self, profile: Profile, set_current: bool = False) -> None:
        """Add or update a profile."""
        self.profiles[profile.name] = profile
        if set_current or not self.current_profile:
            self.current_profile = profile.name

    def delete_profile(self, name: str) -> bool:
        """Delete a profile. Returns True if deleted, False if not found."""
        if name not in self.profiles:
            return False

        del self.profiles[name]

        # If we deleted the current profile, fall back to the most recently added one
        if self.current_profile == name:
            if self.profiles:
                self.current_profile = list(self.profiles.keys())[-1]
            else:
                self.current_profile = None

        return True

    def list_profiles(self) -> List[Profile]:
        """List all profiles."""
        return list(self.profiles.values())


# Global state for profile override (set via --profile CLI option)
_profile_override: Optional[str] = None


def set_profile_override(profile_name: Optional[str]) -> None:
    """Set a profile override for the current command."""
    global _profile_override
    _profile_override = profile_name


def get_profile_override() -> Optional[str]:
    """Get the current profile override."""
    return _profile_override


def get_active_profile(config: Optional[ProfileConfig] = None) -> Optional[Profile]:
    """Get the currently active profile, considering overrides.

    Priority order:
    1. CLI --profile option (stored in _profile_override)
    2. VGCLI_PROFILE environment variable
    3. current-profile from config file
    """
    config = config or ProfileConfig.load()

    override = get_profile_override()
    if override:
        profile = config.get_profile(override)
        if not profile:
            raise click.ClickException(f"Profile '{override}' not found")
        return profile

    env_profile = os.environ.get("VGCLI_PROFILE")
    if env_profile:
        profile = config.get_profile(env_profile)
        if not profile:
            raise click.ClickException(f"Profile '{env_profile}' not found (from VGCLI_PROFILE)")
        return profile

    return config.get_current_profile()


def load_profiles_into(registry: ConnectionRegistry) -> Optional[Connection]:
    """Register every saved profile that has a token; make the active one default.

    Returns:
        The default connection after loading, or None
    """
    config = ProfileConfig.load()
    active = get_active_profile(config)

    for profile in config.list_profiles():
        if profile.server in registry:
            continue
        token = profile.get_token()
        if not token:
            logger.debug("Profile '%s' has no stored token; skipped", profile.name)
            continue
        registry.add(profile.to_connection(token), set_default=False)

    if active is not None and active.server in registry:
        return registry.set_default(active.server)
    return registry.default


def check_config_file_permissions() -> Optional[str]:
    """Check if config file has appropriate permissions.

    Returns a warning message if permissions are too open, None otherwise.
    """
    config_path = ProfileConfig.get_config_path()
    if not config_path.exists():
        return None

    try:
        mode = config_path.stat().st_mode
        if mode & (stat.S_IRWXG | stat.S_IRWXO):
            return (
                f"Warning: Config file {config_path} has overly permissive permissions. "
                "Consider running: chmod 600 " + str(config_path)
            )
    except OSError:
        pass

    return None


def load_saved_connections(registry: Optional[ConnectionRegistry] = None) -> Optional[Connection]:
    """Populate the registry from saved profiles, then VERGEOS_* variables.

    The environment is only consulted when no saved profile yields a
    connection, so a one-shot ``VERGEOS_HOST`` never overrides a profile.
    """
    if registry is None:
        registry = get_registry()
    default = load_profiles_into(registry)
    if default is not None:
        return default

    creds = get_env_credentials()
    if creds is None:
        return None
    logger.debug("Connecting from VERGEOS_* environment to %s", creds["server"])
    return registry.connect(**creds)
