"""
Connection manager and session factory
"""
from __future__ import annotations
import threading
from typing import Dict, Optional

from .config import ConnectionConfig
from .context import OperationContext
from .exceptions import CloseError, ConnectError, SessionError
from .interfaces import Dialer, Session, Transport
from .logging import get_logger
from .transport import ParamikoDialer

logger = get_logger(__name__)


class Connection:
    """
    A single lazily established connection to one host.

    - connect() is idempotent and dials at most once
    - new_session() connects on first use
    - close() is idempotent and a no-op when never connected
    - the property bag holds caller hints and is never read by the transport

    Not meant for unsynchronised concurrent operations; connect/close are
    locked, but callers should serialise operations or use one Connection
    per concurrent operation.
    """

    def __init__(self, config: ConnectionConfig, dialer: Optional[Dialer] = None) -> None:
        self.config = config
        self._dialer = dialer or ParamikoDialer()
        self._transport: Optional[Transport] = None
        self._connected = False
        self._properties: Dict[str, str] = {}
        self._lock = threading.Lock()

    @property
    def connected(self) -> bool:
        return self._connected

    # --------------------
    # Properties
    # --------------------
    def set_property(self, key: str, value: str) -> None:
        self._properties[key] = value

    def get_property(self, key: str, default: Optional[str] = None) -> Optional[str]:
        return self._properties.get(key, default)

    @property
    def properties(self) -> Dict[str, str]:
        return dict(self._properties)

    # --------------------
    # Connection management
    # --------------------
    def connect(self, ctx: Optional[OperationContext] = None) -> None:
        """
        Dial and authenticate unless already connected.

        Raises:
            ConnectError: If dial, authentication or handshake fails
            CancelledError: If ctx was cancelled before or during the dial
        """
        ctx = ctx or OperationContext()

        ctx.check()

        with self._lock:
            if self._connected:
                return

            timeout = self.config.timeout
            remaining = ctx.remaining()
            if remaining is not None:
                timeout = min(timeout, remaining) if timeout else remaining

            logger.debug(f"Dialing {self.config.address} (timeout={timeout})")
            transport = self._dialer.dial(self.config, timeout)

            if ctx.cancelled:
                transport.close()
                ctx.check()

            self._transport = transport
            self._connected = True

    def new_session(self, ctx: Optional[OperationContext] = None) -> Session:
        """
        Open a new session, connecting first if needed.

        The caller owns the returned session and must close it.

        Raises:
            SessionError: If connecting or allocating the channel fails
        """
        try:
            self.connect(ctx)
        except ConnectError as e:
            raise SessionError(str(e)) from e

        try:
            session = self._transport.open_session()
        except Exception as e:
            raise SessionError(
                f"failed to create SSH session for {self.config.hostname}, {e}"
            ) from e

        logger.debug(f"Opened session on {self.config.address}")
        return session

    def close(self) -> None:
        """
        Tear down the connection.

        Raises:
            CloseError: If the transport reports a teardown error; callers
                should log it and continue
        """
        with self._lock:
            if not self._connected:
                return

            transport = self._transport
            self._transport = None
            self._connected = False

            try:
                transport.close()
            except Exception as e:
                raise CloseError(f"failed to close SSH connection {e}") from e

        logger.debug(f"Closed connection to {self.config.address}")

    # --------------------
    # Context manager
    # --------------------
    def __enter__(self) -> Connection:
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        try:
            self.close()
        except CloseError as e:
            logger.warning(str(e))
