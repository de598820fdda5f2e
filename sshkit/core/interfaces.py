"""
Core interfaces for dependency injection
"""
from abc import ABC, abstractmethod
from typing import BinaryIO, Dict, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from .config import ConnectionConfig


class Session(ABC):
    """One logical channel on a connection, used for a single operation"""

    @abstractmethod
    def get_pty(self, term: str, rows: int, cols: int, modes: Dict[int, int]) -> None:
        """Request a pseudo-terminal"""
        pass

    @abstractmethod
    def stdin(self) -> BinaryIO:
        """Writable handle for remote standard input"""
        pass

    @abstractmethod
    def stdout(self) -> BinaryIO:
        """Readable handle for remote standard output"""
        pass

    @abstractmethod
    def stderr(self) -> BinaryIO:
        """Readable handle for remote standard error"""
        pass

    @abstractmethod
    def combine_stderr(self) -> None:
        """Merge standard error into standard output"""
        pass

    @abstractmethod
    def start(self, command: str) -> None:
        """Start the remote command"""
        pass

    @abstractmethod
    def wait(self, timeout: Optional[float]) -> Optional[int]:
        """
        Wait for the remote command to exit.

        Returns the exit status, None if still running after ``timeout``,
        or -1 when the channel closed without a status.
        """
        pass

    @abstractmethod
    def close(self) -> None:
        """Close the channel"""
        pass


class Transport(ABC):
    """Authenticated connection to one host"""

    @abstractmethod
    def open_session(self) -> Session:
        """Open a new session channel"""
        pass

    @abstractmethod
    def close(self) -> None:
        """Tear down the connection"""
        pass


class Dialer(ABC):
    """Connection factory interface"""

    @abstractmethod
    def dial(self, config: "ConnectionConfig", timeout: Optional[float]) -> Transport:
        """
        Dial and authenticate.

        Raises:
            ConnectError: If dial, authentication or handshake fails
        """
        pass
