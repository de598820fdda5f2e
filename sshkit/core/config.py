"""
Connection descriptor and credential types
"""
from __future__ import annotations
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from .constants import DEFAULT_SSH_PORT, DEFAULT_SSH_TIMEOUT
from .exceptions import ConfigError


@dataclass(frozen=True)
class Password:
    secret: str

    def __post_init__(self) -> None:
        if not self.secret:
            raise ConfigError("password credential is empty")

    def __repr__(self) -> str:
        return "Password(secret='***')"


@dataclass(frozen=True)
class PrivateKey:
    """Private key given as a file path or as raw key material"""
    path: Optional[str] = None
    material: Optional[bytes] = None
    passphrase: Optional[str] = None

    def __post_init__(self) -> None:
        if not self.path and not self.material:
            raise ConfigError("private key credential needs a path or key material")

    def read_material(self) -> bytes:
        """Key bytes, read from disk when only a path was given"""
        if self.material:
            return self.material
        return Path(self.path).expanduser().read_bytes()

    def __repr__(self) -> str:
        source = self.path if self.path else "<material>"
        return f"PrivateKey(source={source!r}, passphrase={'***' if self.passphrase else None})"


@dataclass(frozen=True)
class Agent:
    """Keys served by the local ssh agent (SSH_AUTH_SOCK)"""
    forward: bool = True


Credential = Union[Password, PrivateKey, Agent]


@dataclass(frozen=True)
class ConnectionConfig:
    hostname: str
    username: str
    credential: Credential
    port: int = DEFAULT_SSH_PORT
    timeout: float = DEFAULT_SSH_TIMEOUT

    def __post_init__(self) -> None:
        if not isinstance(self.credential, (Password, PrivateKey, Agent)):
            raise ConfigError(
                "failed to construct ssh client, no credential supplied "
                "(password, private key or agent)"
            )
        if not self.hostname:
            raise ConfigError("hostname is required")

    @property
    def address(self) -> str:
        return f"{self.hostname}:{self.port}"

    @classmethod
    def create(
        cls,
        hostname: str,
        port: int = DEFAULT_SSH_PORT,
        username: str = "",
        password: Optional[str] = "",
        private_key_filename: Optional[str] = "",
        private_key_passphrase: Optional[str] = "",
        use_agent: bool = False,
        timeout: float = DEFAULT_SSH_TIMEOUT,
    ) -> ConnectionConfig:
        """
        Build a config from flat fields.

        Precedence: agent, then private key (with optional passphrase), then
        password.

        Raises:
            ConfigError: If no credential field is set
        """
        credential: Optional[Credential] = None
        if use_agent:
            credential = Agent()
        elif private_key_filename:
            credential = PrivateKey(
                path=private_key_filename,
                passphrase=private_key_passphrase or None,
            )
        elif password:
            credential = Password(password)
        else:
            raise ConfigError(
                "failed to construct ssh client, both password and private key are empty"
            )

        return cls(
            hostname=hostname,
            username=username,
            credential=credential,
            port=int(port),
            timeout=timeout,
        )
