"""Tests for pty requests, the prompt scanner and interactive execution."""

import threading
import time

import pytest

from sshkit.client import RemoteClient
from sshkit.core.constants import ECHO, TTY_OP_ISPEED, TTY_OP_OSPEED
from sshkit.core.context import OperationContext
from sshkit.core.exceptions import CancelledError, ConfigError, PtyError, ScanError, WaitError
from sshkit.domain.exec.interactive import PromptScanner, compile_prompts, request_pty

from conftest import CapturingPipe, FakeSession, FakeStream


class TestRequestPty:
    def test_terminal_settings(self):
        session = FakeSession()
        request_pty(session)
        term, rows, cols, modes = session.pty
        assert (term, rows, cols) == ("xterm", 40, 80)
        assert modes == {ECHO: 0, TTY_OP_ISPEED: 14400, TTY_OP_OSPEED: 14400}

    def test_failure(self):
        session = FakeSession(fail={"pty": OSError("denied")})
        with pytest.raises(PtyError, match="failed to request pty"):
            request_pty(session)


class TestCompilePrompts:
    def test_keeps_order(self):
        compiled = compile_prompts({"a": "1", "b": "2"})
        assert [answer for _, answer in compiled] == ["1", "2"]

    def test_empty(self):
        assert compile_prompts(None) == []

    def test_invalid_pattern(self):
        with pytest.raises(ConfigError):
            compile_prompts({"(unclosed": "x"})


class TestPromptScanner:
    def test_answers_prompt_without_newline(self):
        events = []
        stdin = CapturingPipe(events=events)
        lines = []
        scanner = PromptScanner(compile_prompts({"Password:": "secret123"}), stdin, lines.append)

        scanner.scan(FakeStream(b"Password: \r\nwelcome\n", events=events))

        assert bytes(stdin.data) == b"secret123\n"
        assert lines == ["Password: ", "welcome"]

        # the answer follows the ':' byte and precedes the next read
        reads_before = [e for e in events[:events.index(("write", b"secret123\n"))] if e[0] == "read"]
        assert b"".join(chunk for _, chunk in reads_before) == b"Password:"

    def test_answer_flushed(self):
        stdin = CapturingPipe()
        scanner = PromptScanner(compile_prompts({"Password:": "pw"}), stdin, lambda line: None)
        scanner.scan(FakeStream(b"Password:"))
        assert stdin.flushes == 1

    def test_one_answer_per_line(self):
        stdin = CapturingPipe()
        scanner = PromptScanner(compile_prompts({"Password:": "pw"}), stdin, lambda line: None)
        scanner.scan(FakeStream(b"Password: \nPassword: \n"))
        assert bytes(stdin.data) == b"pw\npw\n"

    def test_first_match_wins(self):
        stdin = CapturingPipe()
        prompts = compile_prompts({"[Pp]assword": "first", "password": "second"})
        scanner = PromptScanner(prompts, stdin, lambda line: None)
        scanner.scan(FakeStream(b"password"))
        assert bytes(stdin.data) == b"first\n"

    def test_regex_search_semantics(self):
        stdin = CapturingPipe()
        scanner = PromptScanner(compile_prompts({r"\[sudo\] password for \w+:": "pw"}), stdin, lambda line: None)
        scanner.scan(FakeStream(b"[sudo] password for deploy: "))
        assert bytes(stdin.data) == b"pw\n"

    def test_no_prompts_only_lines(self):
        lines = []
        scanner = PromptScanner([], CapturingPipe(), lines.append)
        scanner.scan(FakeStream(b"a\r\nb\nc"))
        assert lines == ["a", "b", "c"]

    def test_multibyte_output(self):
        lines = []
        scanner = PromptScanner(compile_prompts({"mot de passe": "x"}), CapturingPipe(), lines.append)
        scanner.scan(FakeStream("héllo wörld\n".encode("utf-8")))
        assert lines == ["héllo wörld"]

    def test_read_error(self):
        scanner = PromptScanner([], CapturingPipe(), lambda line: None)
        with pytest.raises(ScanError):
            scanner.scan(FakeStream(b"abc", error=OSError("reset")))


class TestExecuteInteractively:
    def test_answers_and_streams(self, config, sink, output, make_dialer):
        session = FakeSession(stdout=b"[sudo] Password: \r\ndone\r\n", stderr=b"notice\n")
        client = RemoteClient(config, sink=sink, dialer=make_dialer(session))

        client.execute_interactively("sudo ls", {"Password:": "testpass"})

        assert bytes(session.stdin_pipe.data) == b"testpass\n"
        assert session.pty[0] == "xterm"
        assert session.commands == ["sudo ls"]
        text = output()
        assert "done" in text
        assert "%%% notice" in text
        assert "✓ End:" in text
        assert session.closed

    def test_pty_failure(self, config, sink, make_dialer):
        session = FakeSession(fail={"pty": OSError("no pty")})
        client = RemoteClient(config, sink=sink, dialer=make_dialer(session))
        with pytest.raises(PtyError):
            client.execute_interactively("sudo ls", {})
        assert session.commands == []

    def test_scan_error_reported(self, config, sink, output, make_dialer):
        session = FakeSession(stdout=b"partial", stdout_error=OSError("reset by peer"))
        client = RemoteClient(config, sink=sink, dialer=make_dialer(session))
        with pytest.raises(ScanError):
            client.execute_interactively("x", {})
        assert "~~~" in output()

    def test_exit_failure(self, config, sink, make_dialer):
        session = FakeSession(stdout=b"Sorry, try again.\n", exit_status=1)
        client = RemoteClient(config, sink=sink, dialer=make_dialer(session))
        with pytest.raises(WaitError):
            client.execute_interactively("sudo ls", {"Password:": "wrong"})

    def test_invalid_pattern_before_connect(self, config, sink, make_dialer):
        dialer = make_dialer()
        client = RemoteClient(config, sink=sink, dialer=dialer)
        with pytest.raises(ConfigError):
            client.execute_interactively("x", {"(": "y"})
        assert dialer.calls == 0

    def test_cancel_while_scanning(self, config, sink, output, make_dialer):
        session = FakeSession(stdout=b"Password: ", stdout_hangs=True, block_until_closed=True)
        client = RemoteClient(config, sink=sink, dialer=make_dialer(session))
        ctx = OperationContext()
        threading.Timer(0.2, ctx.cancel).start()

        started = time.monotonic()
        with pytest.raises(CancelledError):
            client.execute_interactively("sudo ls", {"Password:": "testpass"}, ctx=ctx)

        assert time.monotonic() - started < 5
        assert bytes(session.stdin_pipe.data) == b"testpass\n"
        assert session.closed
        assert "✗ End:" in output()
