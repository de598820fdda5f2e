"""
Configuration loader with priority: CLI > env > TOML > defaults
"""
import os
import tomllib
from pathlib import Path
from typing import Dict, Any, Optional

from ...core.config import ConnectionConfig
from ...core.constants import DEFAULT_SSH_PORT, DEFAULT_SSH_TIMEOUT
from ...core.exceptions import ConfigError
from ...core.utils import load_ssh_config


class ConfigLoader:
    """Configuration loader with priority support"""

    def __init__(self, environ: Optional[Dict[str, str]] = None):
        self._env_prefix = "SSHKIT_"
        self._environ = os.environ if environ is None else environ

    def load_toml(self, path: Path) -> Dict[str, Any]:
        """Load TOML configuration file"""
        if not path.exists():
            raise ConfigError(f"Configuration file not found: {path}")

        try:
            return tomllib.loads(path.read_text(encoding='utf-8'))
        except tomllib.TOMLDecodeError as e:
            raise ConfigError(f"Failed to parse TOML configuration: {e}") from e

    def load_env(self) -> Dict[str, Any]:
        """Load configuration from environment variables"""
        config = {}

        env_mappings = {
            "HOST": "host",
            "PORT": "port",
            "USER": "user",
            "PASSWORD": "password",
            "KEY": "key",
            "PASSPHRASE": "passphrase",
            "AGENT": "agent",
            "TIMEOUT": "timeout",
        }

        for suffix, config_key in env_mappings.items():
            value = self._environ.get(self._env_prefix + suffix)
            if value:
                config[config_key] = value

        return config

    def merge_configs(self, *configs: Dict[str, Any]) -> Dict[str, Any]:
        """
        Merge multiple configurations with priority.
        Later configs override earlier ones.
        """
        result = {}

        for config in configs:
            result = self._deep_merge(result, config)

        return result

    def _deep_merge(self, base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
        """Deep merge two dictionaries"""
        result = base.copy()

        for key, value in override.items():
            if value is None:
                continue
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._deep_merge(result[key], value)
            else:
                result[key] = value

        return result

    def load(
        self,
        toml_path: Optional[Path] = None,
        cli_overrides: Optional[Dict[str, Any]] = None,
        use_env: bool = True,
    ) -> Dict[str, Any]:
        """
        Load configuration with priority: CLI > env > TOML

        Args:
            toml_path: Path to TOML configuration file
            cli_overrides: CLI parameter overrides (None values are ignored)
            use_env: Whether to load from environment variables

        Returns:
            Merged configuration dictionary
        """
        configs = []

        # 1. Load TOML if provided
        if toml_path:
            configs.append(self.load_toml(toml_path))

        # 2. Load environment variables
        if use_env:
            env_config = self.load_env()
            if env_config:
                configs.append(env_config)

        # 3. Apply CLI overrides (highest priority)
        if cli_overrides:
            configs.append(cli_overrides)

        return self.merge_configs(*configs)


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("true", "yes", "1", "on")
    return bool(value)


def build_connection_config(
    cfg: Dict[str, Any],
    ssh_config_path: Optional[Path] = None,
) -> ConnectionConfig:
    """
    Build a ConnectionConfig from a merged configuration dictionary.

    Supports:
    - ssh_config: alias resolved through ~/.ssh/config (host/user/port/key)
    - host/user/port/password/key/passphrase/agent/timeout: direct values,
      overriding the alias

    Raises:
        ConfigError: If host is missing or no credential is given
    """
    params: Dict[str, Any] = {}

    if cfg.get("ssh_config"):
        entry = load_ssh_config(cfg["ssh_config"], ssh_config_path)
        params.update({
            "host": entry["host"],
            "user": entry["user"],
            "port": entry["port"],
            "key": entry["key_file"],
        })

    for key in ("host", "user", "port", "password", "key", "passphrase", "agent", "timeout"):
        if cfg.get(key) is not None:
            params[key] = cfg[key]

    if not params.get("host"):
        raise ConfigError("host is required")

    try:
        port = int(params.get("port") or DEFAULT_SSH_PORT)
        timeout = float(params.get("timeout") or DEFAULT_SSH_TIMEOUT)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"invalid port or timeout: {e}") from e

    return ConnectionConfig.create(
        hostname=str(params["host"]),
        port=port,
        username=str(params.get("user") or os.getenv("USER", "root")),
        password=str(params.get("password") or ""),
        private_key_filename=str(params.get("key") or ""),
        private_key_passphrase=str(params.get("passphrase") or ""),
        use_agent=_as_bool(params.get("agent", False)),
        timeout=timeout,
    )
