"""
Core utility functions
"""
import io
from pathlib import Path
from typing import Any, Dict, Optional

import paramiko

from .constants import DEFAULT_SSH_PORT, SSH_CONFIG_PATH
from .exceptions import ConfigError

# Tried in order; the first class that parses the material wins
KEY_CLASSES = (paramiko.Ed25519Key, paramiko.ECDSAKey, paramiko.RSAKey)


# ============================================================
# SSH Config Management
# ============================================================

def load_ssh_config(hostname: str, config_path: Optional[Path] = None) -> Dict[str, Any]:
    """
    Load configuration for specified Host from ~/.ssh/config.

    Args:
        hostname: Host name in SSH configuration
        config_path: Alternative config file

    Returns:
        Dictionary containing host, user, port, key_file

    Raises:
        ConfigError: If the config file doesn't exist
    """
    path = config_path or Path(SSH_CONFIG_PATH).expanduser()
    if not path.exists():
        raise ConfigError(f"{path} does not exist")

    ssh_config = paramiko.SSHConfig.from_path(str(path))
    entry = ssh_config.lookup(hostname)

    return {
        "host": entry.get("hostname", hostname),
        "user": entry.get("user", None),
        "port": int(entry.get("port", DEFAULT_SSH_PORT)),
        "key_file": entry.get("identityfile", [None])[0],
    }


# ============================================================
# Private Keys
# ============================================================

def load_private_key(material: bytes, passphrase: Optional[str] = None) -> paramiko.PKey:
    """
    Parse private key material, probing Ed25519, ECDSA and RSA.

    Raises:
        ConfigError: If no key type accepts the material
    """
    text = material.decode("utf-8", errors="replace")
    errors = []

    for key_class in KEY_CLASSES:
        try:
            return key_class.from_private_key(io.StringIO(text), password=passphrase)
        except paramiko.PasswordRequiredException as e:
            raise ConfigError(f"private key is encrypted, passphrase required: {e}") from e
        except (paramiko.SSHException, ValueError) as e:
            errors.append(f"{key_class.__name__}: {e}")

    raise ConfigError(f"failed to parse private key ({'; '.join(errors)})")
