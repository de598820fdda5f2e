"""
sshkit - remote command execution and file transfer over SSH

Provides a small client on top of paramiko, supporting:
- Lazy, idempotent connection management (password, private key or agent)
- Command execution with concurrent stdout/stderr streaming
- Interactive execution on a pty with automatic prompt answering
- scp-style file upload with live progress
- Cancellation and deadlines for every blocking operation
"""

__version__ = "0.1.0"

from .client import RemoteClient

from .core import (
    Agent,
    Connection,
    ConnectionConfig,
    OperationContext,
    OutputSink,
    Password,
    PrivateKey,
    setup_logging,
)

from .core.exceptions import (
    SSHKitError,
    ConfigError,
    ConnectError,
    SessionError,
    PtyError,
    StreamError,
    StartError,
    WaitError,
    ScanError,
    UploadError,
    CloseError,
    CancelledError,
    DeadlineExceeded,
)

__all__ = [
    # Version
    "__version__",
    # Client
    "RemoteClient",
    "Connection",
    # Configuration
    "ConnectionConfig",
    "Password",
    "PrivateKey",
    "Agent",
    # Runtime
    "OperationContext",
    "OutputSink",
    "setup_logging",
    # Errors
    "SSHKitError",
    "ConfigError",
    "ConnectError",
    "SessionError",
    "PtyError",
    "StreamError",
    "StartError",
    "WaitError",
    "ScanError",
    "UploadError",
    "CloseError",
    "CancelledError",
    "DeadlineExceeded",
]
