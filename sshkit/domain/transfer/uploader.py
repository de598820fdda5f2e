"""
scp-style single file upload

The remote side runs ``scp -qt <dir>`` and reads, in this exact order on
stdin:

    C<permission> <size> <basename>\\n
    <size bytes of content>
    \\x00
"""
from __future__ import annotations
import os
import posixpath
import re
import shlex
import threading
from typing import TYPE_CHECKING, BinaryIO, Callable, List, Optional, Tuple

from rich.console import Console

from ...core.constants import (
    DEFAULT_PERMISSION,
    PROGRESS_DOING,
    PROGRESS_DONE,
    SCP_BENIGN_EXIT_STATUS,
    SCP_PROGRAM,
    SCP_RECEIVE_FLAGS,
    UPLOAD_CHUNK_SIZE,
)
from ...core.context import OperationContext
from ...core.exceptions import (
    CancelledError,
    ConfigError,
    SSHKitError,
    UploadError,
    WaitError,
)
from ...core.logging import get_logger
from ...core.output import OutputSink
from ..exec.drain import join_all, spawn_drain
from ..exec.executor import DRAIN_JOIN_TIMEOUT, wait_for_exit
from .progress import ProgressWriter

if TYPE_CHECKING:
    from ...core.connection import Connection

logger = get_logger(__name__)

PERMISSION_PATTERN = re.compile(r"^[0-7]{3,4}$")

ProgressFactory = Callable[[int, str, str, Optional[Console]], ProgressWriter]


def split_remote_path(remote_path: str) -> Tuple[str, str]:
    """
    Split ``remote_path`` into (directory, name), ignoring trailing slashes.

    Raises:
        ConfigError: If no file name is left, e.g. "" or "/"
    """
    trimmed = (remote_path or "").rstrip("/")
    if not trimmed:
        raise ConfigError(f"invalid remote path {remote_path!r}, a file name is required")
    return posixpath.dirname(trimmed) or ".", posixpath.basename(trimmed)


def scp_header(permission: str, size: int, remote_path: str) -> bytes:
    """Build the ``C<perm> <size> <name>`` control line"""
    _, name = split_remote_path(remote_path)
    return f"C{permission} {size} {name}\n".encode("utf-8")


def scp_command(remote_path: str) -> str:
    """Receiver command for the directory holding ``remote_path``"""
    directory, _ = split_remote_path(remote_path)
    return f"{SCP_PROGRAM} {SCP_RECEIVE_FLAGS} {shlex.quote(directory)}"


def validate_permission(permission: str) -> str:
    if not PERMISSION_PATTERN.match(permission or ""):
        raise ConfigError(f"invalid permission {permission!r}, expected octal like 0644")
    return permission


class _StreamWriter:
    """Writes header, body and terminator to stdin on a background thread"""

    def __init__(
        self,
        reader: BinaryIO,
        stdin: BinaryIO,
        header: bytes,
        size: int,
        progress: ProgressWriter,
        ctx: OperationContext,
    ):
        self.reader = reader
        self.stdin = stdin
        self.header = header
        self.size = size
        self.progress = progress
        self.ctx = ctx
        self.error: Optional[BaseException] = None
        self.written = 0
        self.thread = threading.Thread(target=self._run, daemon=True, name="scp-writer")

    def start(self) -> None:
        self.thread.start()

    def _run(self) -> None:
        try:
            self.stdin.write(self.header)
            while self.written < self.size:
                if self.ctx.cancelled:
                    raise CancelledError("upload cancelled")
                chunk = self.reader.read(min(UPLOAD_CHUNK_SIZE, self.size - self.written))
                if not chunk:
                    raise UploadError(
                        f"failed to copy io: short read, {self.written} of {self.size} bytes"
                    )
                self.stdin.write(chunk)
                self.progress.write(chunk)
                self.written += len(chunk)
            self.stdin.write(b"\x00")
            self.stdin.flush()
            self.stdin.close()
        except Exception as e:
            self.error = e
            # the receiver only exits once stdin reaches EOF
            try:
                self.stdin.close()
            except Exception as close_error:
                logger.debug(f"Closing stdin after write failure: {close_error}")
        finally:
            self.progress.stop()


def upload_stream(
    conn: Connection,
    reader: BinaryIO,
    remote_path: str,
    size: int,
    permission: str = DEFAULT_PERMISSION,
    debug: bool = False,
    sink: Optional[OutputSink] = None,
    ctx: Optional[OperationContext] = None,
    progress_factory: ProgressFactory = ProgressWriter,
) -> None:
    """
    Upload exactly ``size`` bytes from ``reader`` to ``remote_path``.

    Extra bytes left in ``reader`` are not sent. A reader that ends early
    fails the upload without sending the terminator. Exit status 1 from the receiver is treated as success.

    Raises:
        ConfigError: Invalid permission string or remote path
        UploadError: Session, pipe, start, write or wait failure
        CancelledError: If ctx is cancelled
    """
    validate_permission(permission)
    command = scp_command(remote_path)
    header = scp_header(permission, size, remote_path)
    ctx = ctx or OperationContext()
    sink = sink or OutputSink()

    try:
        session = conn.new_session(ctx)
    except CancelledError:
        raise
    except SSHKitError as e:
        raise UploadError(f"failed to create session: {e}") from e

    drains: List[threading.Thread] = []
    writer: Optional[_StreamWriter] = None
    try:
        with ctx.bound(session.close):
            try:
                stdin = session.stdin()
            except Exception as e:
                raise UploadError(f"failed to create stdin pipe: {e}") from e

            if debug:
                try:
                    stdout = session.stdout()
                except Exception as e:
                    raise UploadError(f"failed to create stdout pipe: {e}") from e
                drains.append(spawn_drain(stdout, sink.echo, sink, name="scp-stdout"))

            logger.debug(f"Starting '{command}' for {size} bytes")
            try:
                session.start(command)
            except Exception as e:
                raise UploadError(f"failed to start session: {e}") from e

            progress = progress_factory(size, PROGRESS_DOING, PROGRESS_DONE, sink.console)
            writer = _StreamWriter(reader, stdin, header, size, progress, ctx)
            writer.start()

            benign_exit = False
            try:
                wait_for_exit(session, ctx)
            except WaitError as e:
                if e.exit_status != SCP_BENIGN_EXIT_STATUS:
                    raise UploadError(f"error on session wait: {e}") from e
                benign_exit = True
                logger.debug(f"Receiver exited with status {e.exit_status}, treated as success")

            writer.thread.join()
            if writer.error is not None:
                ctx.check()
                if isinstance(writer.error, UploadError):
                    raise writer.error
                if not benign_exit:
                    raise UploadError(f"failed to copy io: {writer.error}") from writer.error
                sink.error(f"failed to copy io: {writer.error}")
            join_all(drains)
    finally:
        session.close()
        if writer is not None:
            writer.thread.join(DRAIN_JOIN_TIMEOUT)
        join_all(drains, DRAIN_JOIN_TIMEOUT)


def upload(
    conn: Connection,
    local_path: str,
    remote_path: str,
    permission: str = DEFAULT_PERMISSION,
    debug: bool = False,
    sink: Optional[OutputSink] = None,
    ctx: Optional[OperationContext] = None,
    progress_factory: ProgressFactory = ProgressWriter,
) -> None:
    """
    Upload a local file to ``remote_path`` with ``permission`` (e.g. "0644").

    Raises:
        UploadError: If the local file cannot be opened or stat'ed, or the
            transfer fails
    """
    try:
        fh = open(os.path.expanduser(local_path), "rb")
    except OSError as e:
        raise UploadError(f"failed to open local file: {e}") from e

    with fh:
        try:
            size = os.fstat(fh.fileno()).st_size
        except OSError as e:
            raise UploadError(f"failed to stat the local file: {e}") from e

        upload_stream(
            conn,
            fh,
            remote_path,
            size,
            permission=permission,
            debug=debug,
            sink=sink,
            ctx=ctx,
            progress_factory=progress_factory,
        )
