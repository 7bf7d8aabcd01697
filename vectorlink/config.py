"""Configuration loading for VectorLink.

Settings are read from (in order of increasing precedence):
1. ~/.vectorlink/config.json (or the file named by VECTORLINK_CONFIG)
2. Environment variables (OPENAI_API_KEY, VECTORLINK_VECTOR_STORE_ID, ...)

String values in the JSON file may reference ${VAR} or ${VAR:-default}.
"""

import json
import logging
import os
import re
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any

from vectorlink.exceptions import ConfigurationError

__all__ = [
    "VectorLinkConfig",
    "load_config",
    "expand_env_vars",
    "PAGE_SIZE",
    "MAX_HISTORY_DEPTH",
    "REMOTE_FILTER",
]

logger = logging.getLogger(__name__)

# Fixed by the remote API contract, not user configurable
PAGE_SIZE = 100
MAX_HISTORY_DEPTH = 20
REMOTE_FILTER = "completed"

DEFAULT_BASE_URL = "https://api.openai.com/v1"

# Pattern to match ${VAR} or ${VAR:-default} syntax
ENV_VAR_PATTERN = re.compile(r"\$\{([^}:]+)(?::-([^}]*))?\}")

# config key -> environment variable
ENV_OVERRIDES = {
    "api_key": "OPENAI_API_KEY",
    "vector_store_id": "VECTORLINK_VECTOR_STORE_ID",
    "organization": "OPENAI_ORGANIZATION",
    "project": "OPENAI_PROJECT",
    "base_url": "OPENAI_BASE_URL",
    "vault_path": "VECTORLINK_VAULT",
}


def expand_env_vars(value: str) -> str:
    """Expand ${VAR} and ${VAR:-default} references in a string.

    Unset variables without a default expand to an empty string.
    """

    def replacer(match: re.Match) -> str:
        env_value = os.environ.get(match.group(1))
        if env_value is not None:
            return env_value
        default = match.group(2)
        return default if default is not None else ""

    return ENV_VAR_PATTERN.sub(replacer, value)


def _read_config_file(path: Path) -> dict[str, Any]:
    with open(path) as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Invalid config file {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigurationError(f"Config file {path} must contain an object")
    return data


def get_default_config_dir() -> Path:
    """Get the default ~/.vectorlink directory."""
    return Path.home() / ".vectorlink"


@dataclass
class VectorLinkConfig:
    """Resolved settings for the sync engine and the history loader."""

    api_key: str | None = None
    vector_store_id: str | None = None
    organization: str | None = None
    project: str | None = None
    base_url: str = DEFAULT_BASE_URL
    vault_path: Path | None = None
    extension: str = ".md"
    state_file: Path | None = None

    def __post_init__(self):
        if self.vault_path is not None:
            self.vault_path = Path(self.vault_path).expanduser()
        if self.state_file is None:
            self.state_file = get_default_config_dir() / "conversations.json"
        else:
            self.state_file = Path(self.state_file).expanduser()
        if not self.extension.startswith("."):
            self.extension = f".{self.extension}"

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "VectorLinkConfig":
        """Create a config from a dictionary, ignoring unknown keys.

        Empty strings are treated as unset so that an unexpanded
        ${VAR} does not masquerade as a real value.
        """
        known = {f.name for f in fields(cls)}
        values = {}
        for key, value in data.items():
            if key not in known:
                logger.debug(f"Ignoring unknown config key: {key}")
                continue
            if isinstance(value, str):
                value = expand_env_vars(value)
                if not value:
                    continue
            values[key] = value
        return cls(**values)

    @classmethod
    def from_file(cls, path: Path) -> "VectorLinkConfig":
        """Load a config from a JSON file.

        Raises:
            FileNotFoundError: If the file doesn't exist.
            ConfigurationError: If the file is not valid JSON.
        """
        return cls.from_dict(_read_config_file(path))

    def require_api_key(self) -> str:
        """Return the API key or fail fast before any network call."""
        if not self.api_key:
            raise ConfigurationError(
                f"API key not configured. Set {ENV_OVERRIDES['api_key']} "
                "or 'api_key' in the config file."
            )
        return self.api_key

    def require_vector_store_id(self) -> str:
        """Return the remote index id or fail fast before any network call."""
        if not self.vector_store_id:
            raise ConfigurationError(
                "Vector store id not configured. Set "
                f"{ENV_OVERRIDES['vector_store_id']} or 'vector_store_id' "
                "in the config file."
            )
        return self.vector_store_id

    def require_vault_path(self) -> Path:
        """Return the local collection root."""
        if self.vault_path is None:
            raise ConfigurationError(
                f"Vault path not configured. Set {ENV_OVERRIDES['vault_path']} "
                "or 'vault_path' in the config file."
            )
        return self.vault_path


def load_config(path: Path | None = None) -> VectorLinkConfig:
    """Load configuration from the config file and the environment.

    Args:
        path: Explicit config file. Defaults to $VECTORLINK_CONFIG or
            ~/.vectorlink/config.json.

    Returns:
        Merged VectorLinkConfig with environment > file precedence.
    """
    if path is None:
        env_path = os.environ.get("VECTORLINK_CONFIG")
        path = (
            Path(env_path) if env_path else get_default_config_dir() / "config.json"
        )

    data: dict[str, Any] = {}
    if path.exists():
        data.update(_read_config_file(path))
    else:
        logger.debug(f"No config file at {path}, using environment only")

    for key, env_var in ENV_OVERRIDES.items():
        env_value = os.environ.get(env_var)
        if env_value:
            data[key] = env_value

    return VectorLinkConfig.from_dict(data)
