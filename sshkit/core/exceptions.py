"""
Unified exception definitions
"""
from typing import Optional


class SSHKitError(Exception):
    """Base exception class"""
    pass


class ConfigError(SSHKitError):
    """No usable credential or otherwise invalid configuration"""
    pass


class ConnectError(SSHKitError):
    """Dial or handshake failure, including timeouts"""
    pass


class SessionError(SSHKitError):
    """Channel allocation failure"""
    pass


class PtyError(SSHKitError):
    """Pseudo-terminal allocation failure"""
    pass


class StreamError(SSHKitError):
    """Failure obtaining or writing a stdin/stdout/stderr handle"""
    pass


class StartError(SSHKitError):
    """Remote command failed to start"""
    pass


class WaitError(SSHKitError):
    """
    Remote command exited abnormally or the wait itself failed.

    ``exit_status`` is the numeric status reported by the remote side, or
    None when the wait failed before one was available.
    """

    def __init__(
        self,
        message: str,
        exit_status: Optional[int] = None,
        output: Optional[str] = None,
    ):
        super().__init__(message)
        self.exit_status = exit_status
        self.output = output


class ScanError(SSHKitError):
    """Reading a stream failed before it was closed"""
    pass


class UploadError(SSHKitError):
    """Transfer failure in the open/stat, invoke or write phase"""
    pass


class CloseError(SSHKitError):
    """Transport teardown reported an error"""
    pass


class CancelledError(SSHKitError):
    """Operation was cancelled through its context"""
    pass


class DeadlineExceeded(CancelledError):
    """Operation context deadline passed"""
    pass
