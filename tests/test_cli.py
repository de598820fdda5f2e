"""Tests for CLI commands via typer.testing.CliRunner."""

from unittest.mock import patch

import pytest
import typer
from typer.testing import CliRunner

from sshkit.adapters.cli.app import app, parse_answers
from sshkit.client import RemoteClient

from conftest import FakeDialer, FakeSession, FakeTransport

runner = CliRunner()

BASE_ARGS = ["--host", "localhost", "--user", "testuser", "--password", "testpass", "--no-color"]
CLEAN_ENV = {"SSHKIT_HOST": "", "SSHKIT_PASSWORD": "", "SSHKIT_KEY": "", "SSHKIT_AGENT": ""}


def _client_factory(*sessions):
    """Build RemoteClients that talk to fake sessions instead of paramiko"""
    dialer = FakeDialer(FakeTransport(list(sessions)))

    def factory(config, sink=None):
        return RemoteClient(config, sink=sink, dialer=dialer)

    return factory


class TestParseAnswers:
    def test_pairs(self):
        assert parse_answers(["Password:=secret", "Continue\\?=yes"]) == {
            "Password:": "secret",
            "Continue\\?": "yes",
        }

    def test_splits_on_first_equals(self):
        assert parse_answers(["token:=a=b"]) == {"token:": "a=b"}

    def test_empty_answer_allowed(self):
        assert parse_answers(["Press enter="]) == {"Press enter": ""}

    @pytest.mark.parametrize("item", ["no-separator", "=answer"])
    def test_invalid(self, item):
        with pytest.raises(typer.BadParameter):
            parse_answers([item])


class TestConnectionOptions:
    def test_no_args_shows_help(self):
        result = runner.invoke(app, [])
        assert "Usage" in result.output

    def test_missing_host(self):
        result = runner.invoke(app, ["--password", "pw", "exec", "uptime"], env=CLEAN_ENV)
        assert result.exit_code == 1
        assert "host is required" in result.output

    def test_missing_credential(self):
        result = runner.invoke(app, ["--host", "localhost", "exec", "uptime"], env=CLEAN_ENV)
        assert result.exit_code == 1
        assert "both password and private key are empty" in result.output


class TestExecCommand:
    def test_streams_output(self):
        session = FakeSession(stdout=b"up 3 days\n")
        with patch("sshkit.adapters.cli.app.RemoteClient", side_effect=_client_factory(session)):
            result = runner.invoke(app, BASE_ARGS + ["exec", "uptime"], env=CLEAN_ENV)
        assert result.exit_code == 0
        assert "up 3 days" in result.output
        assert session.commands == ["uptime"]

    def test_failure_exit_code(self):
        session = FakeSession(exit_status=3)
        with patch("sshkit.adapters.cli.app.RemoteClient", side_effect=_client_factory(session)):
            result = runner.invoke(app, BASE_ARGS + ["exec", "false"], env=CLEAN_ENV)
        assert result.exit_code == 1
        assert "process exited with status 3" in result.output


class TestCaptureCommand:
    def test_prints_output(self):
        session = FakeSession(stdout=b"  42\n")
        with patch("sshkit.adapters.cli.app.RemoteClient", side_effect=_client_factory(session)):
            result = runner.invoke(app, BASE_ARGS + ["capture", "echo 42"], env=CLEAN_ENV)
        assert result.exit_code == 0
        assert result.output.strip() == "42"


class TestInteractiveCommand:
    def test_answers_prompt(self):
        session = FakeSession(stdout=b"Password: \nok\n")
        with patch("sshkit.adapters.cli.app.RemoteClient", side_effect=_client_factory(session)):
            result = runner.invoke(
                app,
                BASE_ARGS + ["interactive", "sudo id", "--answer", "Password:=testpass"],
                env=CLEAN_ENV,
            )
        assert result.exit_code == 0
        assert bytes(session.stdin_pipe.data) == b"testpass\n"

    def test_bad_answer(self):
        result = runner.invoke(app, BASE_ARGS + ["interactive", "sudo id", "-a", "nope"], env=CLEAN_ENV)
        assert result.exit_code == 2


class TestUploadCommand:
    def test_missing_local_file(self, tmp_path):
        result = runner.invoke(
            app, BASE_ARGS + ["upload", str(tmp_path / "missing"), "/tmp/x"], env=CLEAN_ENV,
        )
        assert result.exit_code == 1
        assert "failed to open local file" in result.output

    def test_invalid_mode(self, tmp_path):
        local = tmp_path / "f.txt"
        local.write_text("x")
        result = runner.invoke(
            app, BASE_ARGS + ["upload", str(local), "/tmp/f.txt", "--mode", "rw"], env=CLEAN_ENV,
        )
        assert result.exit_code == 1
        assert "invalid permission" in result.output

    def test_uploads(self, tmp_path):
        local = tmp_path / "f.txt"
        local.write_bytes(b"data")
        session = FakeSession()
        with patch("sshkit.adapters.cli.app.RemoteClient", side_effect=_client_factory(session)):
            result = runner.invoke(
                app, BASE_ARGS + ["upload", str(local), "/srv/f.txt", "-m", "0600"], env=CLEAN_ENV,
            )
        assert result.exit_code == 0
        assert bytes(session.stdin_pipe.data) == b"C0600 4 f.txt\ndata\x00"
        assert session.commands == ["/usr/bin/scp -qt /srv"]
