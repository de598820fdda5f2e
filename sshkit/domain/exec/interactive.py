"""
Interactive command execution over a pseudo-terminal

Terminal prompts such as "Password: " usually arrive without a trailing
newline, and the remote side then blocks waiting for input. Reading whole
lines would deadlock, so stdout is scanned one byte at a time and the
partial line is tested against the prompt patterns after every byte.
"""
from __future__ import annotations
import re
import threading
from typing import TYPE_CHECKING, BinaryIO, Callable, Dict, List, Optional, Tuple

from ...core.constants import PTY_COLS, PTY_MODES, PTY_ROWS, PTY_TERM
from ...core.context import OperationContext
from ...core.exceptions import ConfigError, PtyError, ScanError, StreamError
from ...core.interfaces import Session
from ...core.logging import get_logger
from ...core.output import OutputSink
from .drain import decode_line, join_all, spawn_drain
from .executor import DRAIN_JOIN_TIMEOUT, open_pipe, start_command, wait_for_exit

if TYPE_CHECKING:
    from ...core.connection import Connection

logger = get_logger(__name__)

Prompt = Tuple[re.Pattern, str]


def request_pty(session: Session) -> None:
    """Request an xterm pty, 40x80, echo off, 14400 baud in and out"""
    try:
        session.get_pty(PTY_TERM, PTY_ROWS, PTY_COLS, dict(PTY_MODES))
    except Exception as e:
        raise PtyError(f"failed to request pty: {e}") from e


def compile_prompts(prompts: Optional[Dict[str, str]]) -> List[Prompt]:
    """Compile each prompt pattern once, keeping mapping order"""
    compiled = []
    for pattern, answer in (prompts or {}).items():
        try:
            compiled.append((re.compile(pattern), answer))
        except re.error as e:
            raise ConfigError(f"invalid prompt pattern {pattern!r}: {e}") from e
    return compiled


class PromptScanner:
    """
    Byte-wise stdout scanner that answers prompts.

    Every byte extends the current line. A newline emits the line (without
    CR) to ``on_line`` and starts a new one. After each other byte the
    partial line is searched against the prompts; the first match writes
    its answer plus newline to ``answers`` before the next byte is read.
    Each line answers at most one prompt.
    """

    def __init__(
        self,
        prompts: List[Prompt],
        answers: BinaryIO,
        on_line: Callable[[str], None],
    ):
        self.prompts = prompts
        self.answers = answers
        self.on_line = on_line
        self._line = bytearray()
        self._answered = False

    def feed(self, byte: bytes) -> Optional[str]:
        """Consume one byte; returns the answer sent, if any"""
        if byte == b"\n":
            self.on_line(decode_line(bytes(self._line)))
            self._line.clear()
            self._answered = False
            return None

        self._line += byte
        if self._answered or not self.prompts:
            return None

        partial = self._line.decode("utf-8", errors="replace")
        for pattern, answer in self.prompts:
            if pattern.search(partial):
                self._send(answer)
                self._answered = True
                return answer
        return None

    def _send(self, answer: str) -> None:
        try:
            self.answers.write(answer.encode("utf-8") + b"\n")
            self.answers.flush()
        except Exception as e:
            raise StreamError(f"stdin write: {e}") from e

    def scan(self, stream: BinaryIO) -> None:
        """
        Scan until EOF. A non-empty unterminated tail is emitted at the end.

        Raises:
            ScanError: If reading fails before EOF
        """
        while True:
            try:
                byte = stream.read(1)
            except Exception as e:
                raise ScanError(f"scanner: {e}") from e
            if not byte:
                break
            self.feed(byte)

        if self._line:
            self.on_line(decode_line(bytes(self._line)))
            self._line.clear()


def execute_interactively(
    conn: Connection,
    command: str,
    prompts: Optional[Dict[str, str]],
    sink: OutputSink,
    ctx: Optional[OperationContext] = None,
) -> None:
    """
    Run ``command`` on a pty, answering prompts found in its output.

    ``prompts`` maps regular expressions to the literal text typed when the
    current output line matches, e.g. {"[Pp]assword:": "secret"}.

    Raises:
        ConfigError, SessionError, PtyError, StreamError, StartError,
        ScanError, WaitError, CancelledError
    """
    ctx = ctx or OperationContext()
    compiled = compile_prompts(prompts)
    started = sink.start(command)
    passed = False

    try:
        session = conn.new_session(ctx)
        drains: List[threading.Thread] = []
        try:
            with ctx.bound(session.close):
                request_pty(session)
                stdin = open_pipe(session.stdin, "stdin")
                stdout = open_pipe(session.stdout, "stdout")
                stderr = open_pipe(session.stderr, "stderr")

                drains.append(spawn_drain(stderr, sink.warn, sink, name="drain-stderr"))
                start_command(session, command, "starting the session")

                scanner = PromptScanner(compiled, stdin, sink.info)
                try:
                    scanner.scan(stdout)
                except ScanError as e:
                    ctx.check()
                    sink.error(e)
                    raise

                wait_for_exit(session, ctx)
                join_all(drains)
        finally:
            session.close()
            join_all(drains, DRAIN_JOIN_TIMEOUT)
        passed = True
    except Exception as e:
        logger.debug(f"Interactive execute '{command}' failed: {e}")
        raise
    finally:
        sink.end(started, passed)
