"""Shared test fixtures and fake transports."""

import io
import threading
import time
from typing import Dict, List, Optional

import pytest
from rich.console import Console

from sshkit.core.config import ConnectionConfig
from sshkit.core.exceptions import ConnectError
from sshkit.core.interfaces import Dialer, Session, Transport
from sshkit.core.output import OutputSink


class FakeStream:
    """Readable byte stream with an optional delay before the first byte.

    With ``hang_until`` set, reads at EOF block until that event is set, the
    way a channel read blocks until the session is closed.
    """

    def __init__(self, data: bytes = b"", delay: float = 0.0, error: Optional[Exception] = None,
                 events: Optional[list] = None, name: str = "stdout",
                 hang_until: Optional[threading.Event] = None):
        self._hang_until = hang_until
        self._buf = io.BytesIO(data)
        self._delay = delay
        self._error = error
        self._events = events
        self._name = name
        self._lock = threading.Lock()
        self.closed = False

    def _pause(self):
        if self._delay:
            time.sleep(self._delay)
            self._delay = 0.0

    def _hang(self):
        if self._hang_until is not None:
            self._hang_until.wait(5)

    def read(self, n: int = -1) -> bytes:
        self._pause()
        with self._lock:
            chunk = self._buf.read(n)
        if not chunk:
            self._hang()
        if not chunk and self._error is not None:
            raise self._error
        if self._events is not None and chunk:
            self._events.append(("read", chunk))
        return chunk

    def readline(self, limit: int = -1) -> bytes:
        self._pause()
        with self._lock:
            line = self._buf.readline(limit)
        if not line:
            self._hang()
        if not line and self._error is not None:
            raise self._error
        return line

    def close(self):
        self.closed = True


class CapturingPipe:
    """Writable stdin that keeps everything written, even after close."""

    def __init__(self, events: Optional[list] = None, fail_after: Optional[int] = None):
        self.data = bytearray()
        self.closed = False
        self.flushes = 0
        self._events = events
        self._fail_after = fail_after

    def write(self, data: bytes) -> int:
        if self.closed:
            raise OSError("write on closed pipe")
        if self._fail_after is not None and len(self.data) + len(data) > self._fail_after:
            raise OSError("Socket is closed")
        self.data += data
        if self._events is not None:
            self._events.append(("write", bytes(data)))
        return len(data)

    def flush(self):
        self.flushes += 1

    def close(self):
        self.closed = True


class FakeSession(Session):
    def __init__(
        self,
        stdout: bytes = b"",
        stderr: bytes = b"",
        exit_status: int = 0,
        stdout_delay: float = 0.0,
        exit_delay: float = 0.0,
        fail: Optional[Dict[str, Exception]] = None,
        stdout_error: Optional[Exception] = None,
        events: Optional[list] = None,
        stdin: Optional[CapturingPipe] = None,
        block_until_closed: bool = False,
        stdout_hangs: bool = False,
    ):
        self._stdout = stdout
        self._stderr = stderr
        self._stdout_delay = stdout_delay
        self._stdout_error = stdout_error
        self._events = events
        self.exit_status = exit_status
        self.exit_delay = exit_delay
        self.fail = fail or {}
        self.stdin_pipe = stdin or CapturingPipe(events=events)
        self.block_until_closed = block_until_closed
        self.stdout_hangs = stdout_hangs
        self.commands: List[str] = []
        self.pty = None
        self.combined = False
        self.close_count = 0
        self._closed = threading.Event()
        self._started_at: Optional[float] = None

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    def _maybe_fail(self, phase: str):
        if phase in self.fail:
            raise self.fail[phase]

    def get_pty(self, term, rows, cols, modes):
        self._maybe_fail("pty")
        self.pty = (term, rows, cols, modes)

    def stdin(self):
        self._maybe_fail("stdin")
        return self.stdin_pipe

    def stdout(self):
        self._maybe_fail("stdout")
        data = self._stdout + self._stderr if self.combined else self._stdout
        return FakeStream(data, delay=self._stdout_delay, error=self._stdout_error,
                          events=self._events,
                          hang_until=self._closed if self.stdout_hangs else None)

    def stderr(self):
        self._maybe_fail("stderr")
        return FakeStream(self._stderr, name="stderr")

    def combine_stderr(self):
        self.combined = True

    def start(self, command):
        self._maybe_fail("start")
        self.commands.append(command)
        self._started_at = time.monotonic()

    def wait(self, timeout):
        self._maybe_fail("wait")
        if self.block_until_closed:
            if self._closed.wait(timeout):
                return -1
            return None
        elapsed = time.monotonic() - (self._started_at or time.monotonic())
        if elapsed < self.exit_delay:
            time.sleep(min(timeout or 0.01, self.exit_delay - elapsed))
            return None
        return self.exit_status

    def close(self):
        self.close_count += 1
        self._closed.set()


class FakeTransport(Transport):
    def __init__(self, sessions: Optional[List[FakeSession]] = None, open_error: Optional[Exception] = None,
                 close_error: Optional[Exception] = None):
        self.sessions = list(sessions or [])
        self.opened: List[FakeSession] = []
        self.open_error = open_error
        self.close_error = close_error
        self.close_calls = 0

    def open_session(self):
        if self.open_error is not None:
            raise self.open_error
        session = self.sessions.pop(0) if self.sessions else FakeSession()
        self.opened.append(session)
        return session

    def close(self):
        self.close_calls += 1
        if self.close_error is not None:
            raise self.close_error


class FakeDialer(Dialer):
    def __init__(self, transport: Optional[FakeTransport] = None, error: Optional[Exception] = None):
        self.transport = transport or FakeTransport()
        self.error = error
        self.calls = 0
        self.timeouts: List[Optional[float]] = []

    def dial(self, config, timeout):
        self.calls += 1
        self.timeouts.append(timeout)
        if self.error is not None:
            raise self.error
        return self.transport


@pytest.fixture
def config():
    return ConnectionConfig.create("localhost", 22, "testuser", password="testpass")


@pytest.fixture
def console():
    return Console(file=io.StringIO(), no_color=True, width=200, highlight=False)


@pytest.fixture
def sink(console):
    return OutputSink(console=console, no_color=True)


@pytest.fixture
def output(console):
    """Everything printed to the test console so far."""
    return lambda: console.file.getvalue()


@pytest.fixture
def make_dialer():
    def factory(*sessions, **kwargs):
        return FakeDialer(FakeTransport(list(sessions), **kwargs))
    return factory


@pytest.fixture
def failing_dialer():
    return FakeDialer(error=ConnectError("failed to connect to nonexistent.host, no route"))
