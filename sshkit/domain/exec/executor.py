"""
Non-interactive command execution
"""
from __future__ import annotations
from typing import TYPE_CHECKING, BinaryIO, Callable, List, Optional
import threading

from ...core.constants import WAIT_POLL_INTERVAL
from ...core.context import OperationContext
from ...core.exceptions import ScanError, StartError, StreamError, WaitError
from ...core.interfaces import Session
from ...core.logging import get_logger
from ...core.output import OutputSink
from .drain import join_all, spawn_drain

if TYPE_CHECKING:
    from ...core.connection import Connection

logger = get_logger(__name__)

# Bound on joining drains after a failure, once the session is closed
DRAIN_JOIN_TIMEOUT = 5.0


# ============================================================
# Session Helpers
# ============================================================

def open_pipe(factory: Callable[[], BinaryIO], name: str) -> BinaryIO:
    """Obtain a stream handle, raising StreamError('<name> pipe: ...')"""
    try:
        return factory()
    except Exception as e:
        raise StreamError(f"{name} pipe: {e}") from e


def start_command(session: Session, command: str, phase: str = "session start") -> None:
    try:
        session.start(command)
    except Exception as e:
        raise StartError(f"{phase}: {e}") from e


def wait_for_exit(
    session: Session,
    ctx: OperationContext,
    phase: str = "session wait",
) -> None:
    """
    Block until the remote command exits.

    Raises:
        WaitError: Non-zero exit (``exit_status`` set), missing status, or a
            failing wait
        CancelledError: If ctx is cancelled while waiting
    """
    while True:
        ctx.check()
        try:
            status = session.wait(WAIT_POLL_INTERVAL)
        except Exception as e:
            raise WaitError(f"{phase}: {e}") from e
        if status is not None:
            break

    if status < 0:
        ctx.check()
        raise WaitError(f"{phase}: process exited without reporting a status")
    if status != 0:
        raise WaitError(f"{phase}: process exited with status {status}", exit_status=status)


# ============================================================
# Command Execution
# ============================================================

def execute(
    conn: Connection,
    command: str,
    sink: OutputSink,
    ctx: Optional[OperationContext] = None,
) -> None:
    """
    Run ``command`` streaming stdout to ``sink.info`` and stderr to
    ``sink.warn``.

    Returns only after the command exited and both drain threads finished.

    Raises:
        SessionError, StreamError, StartError, WaitError, CancelledError
    """
    ctx = ctx or OperationContext()
    started = sink.start(command)
    passed = False

    try:
        session = conn.new_session(ctx)
        drains: List[threading.Thread] = []
        try:
            with ctx.bound(session.close):
                stdout = open_pipe(session.stdout, "stdout")
                stderr = open_pipe(session.stderr, "stderr")

                drains.append(spawn_drain(stdout, sink.info, sink, name="drain-stdout"))
                drains.append(spawn_drain(stderr, sink.warn, sink, name="drain-stderr"))

                start_command(session, command)
                wait_for_exit(session, ctx)
                join_all(drains)
        finally:
            session.close()
            join_all(drains, DRAIN_JOIN_TIMEOUT)
        passed = True
    except Exception as e:
        logger.debug(f"Execute '{command}' failed: {e}")
        raise
    finally:
        sink.end(started, passed)


def capture(
    conn: Connection,
    command: str,
    ctx: Optional[OperationContext] = None,
) -> str:
    """
    Run ``command`` and return its combined stdout and stderr, trimmed.

    Raises:
        WaitError: On non-zero exit, with the captured text in ``output``
    """
    ctx = ctx or OperationContext()
    session = conn.new_session(ctx)

    try:
        with ctx.bound(session.close):
            try:
                session.combine_stderr()
            except Exception as e:
                raise StreamError(f"combine stderr: {e}") from e
            stdout = open_pipe(session.stdout, "stdout")
            start_command(session, command, "failed to execute")

            try:
                raw = stdout.read()
            except Exception as e:
                ctx.check()
                raise ScanError(f"failed to execute: {e}") from e

            output = raw.decode("utf-8", errors="replace").strip()
            try:
                wait_for_exit(session, ctx, "failed to execute")
            except WaitError as e:
                e.output = output
                raise
            return output
    finally:
        session.close()
