from __future__ import annotations
from typing import BinaryIO, Dict, Optional

from .core.config import ConnectionConfig
from .core.connection import Connection
from .core.constants import DEFAULT_PERMISSION
from .core.context import OperationContext
from .core.interfaces import Dialer, Session
from .core.output import OutputSink
from .domain.exec import executor, interactive
from .domain.transfer import uploader


class RemoteClient(Connection):
    """
    Remote command and file transfer client for one host.

    - lazy connect on first operation, explicit close()
    - execute / capture / execute_interactively / upload
    - with-statement closes the connection

        config = ConnectionConfig.create("web1", 22, "deploy", password="...")
        with RemoteClient(config) as client:
            client.execute("uptime")
            client.upload("./app.tar.gz", "/srv/app.tar.gz", "0644")
    """

    def __init__(
        self,
        config: ConnectionConfig,
        sink: Optional[OutputSink] = None,
        dialer: Optional[Dialer] = None,
    ) -> None:
        super().__init__(config, dialer)
        self.sink = sink or OutputSink()

    # --------------------
    # Execution
    # --------------------
    def execute(self, command: str, ctx: Optional[OperationContext] = None) -> None:
        """Run a command, streaming stdout as info and stderr as warn lines"""
        executor.execute(self, command, self.sink, ctx)

    def capture(self, command: str, ctx: Optional[OperationContext] = None) -> str:
        """Run a command and return combined output, trimmed"""
        return executor.capture(self, command, ctx)

    def execute_interactively(
        self,
        command: str,
        prompts: Optional[Dict[str, str]] = None,
        ctx: Optional[OperationContext] = None,
    ) -> None:
        """Run a command on a pty, answering prompts matched by regex"""
        interactive.execute_interactively(self, command, prompts, self.sink, ctx)

    def request_pty(self, session: Session) -> None:
        interactive.request_pty(session)

    # --------------------
    # Transfer
    # --------------------
    def upload(
        self,
        local_path: str,
        remote_path: str,
        permission: str = DEFAULT_PERMISSION,
        debug: bool = False,
        ctx: Optional[OperationContext] = None,
    ) -> None:
        """Upload a local file, scp style"""
        uploader.upload(self, local_path, remote_path, permission, debug, self.sink, ctx)

    def upload_stream(
        self,
        reader: BinaryIO,
        remote_path: str,
        size: int,
        permission: str = DEFAULT_PERMISSION,
        debug: bool = False,
        ctx: Optional[OperationContext] = None,
    ) -> None:
        """Upload ``size`` bytes read from ``reader``"""
        uploader.upload_stream(self, reader, remote_path, size, permission, debug, self.sink, ctx)
