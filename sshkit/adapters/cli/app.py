"""
Main CLI application
"""
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import typer
from rich.console import Console
from rich.text import Text

from ...client import RemoteClient
from ...core.context import OperationContext
from ...core.exceptions import SSHKitError
from ...core.logging import setup_logging, get_logger
from ...core.output import OutputSink
from ..config.loader import ConfigLoader, build_connection_config

logger = get_logger(__name__)

app = typer.Typer(
    name="sshkit",
    add_completion=False,
    help="Run remote commands and upload files over SSH",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


@dataclass
class CLIState:
    overrides: Dict[str, Any] = field(default_factory=dict)
    config_path: Optional[Path] = None
    no_color: bool = False


def parse_answers(items: List[str]) -> Dict[str, str]:
    """Parse PATTERN=TEXT pairs, splitting on the first '='"""
    answers: Dict[str, str] = {}
    for item in items:
        pattern, sep, text = item.partition("=")
        if not sep or not pattern:
            raise typer.BadParameter(f"expected PATTERN=TEXT, got {item!r}", param_hint="--answer")
        answers[pattern] = text
    return answers


def _make_client(state: CLIState) -> RemoteClient:
    loader = ConfigLoader()
    cfg = loader.load(toml_path=state.config_path, cli_overrides=state.overrides)
    config = build_connection_config(cfg)
    return RemoteClient(config, sink=OutputSink(no_color=state.no_color))


def _run(state: CLIState, action, deadline: Optional[float]) -> Any:
    stderr_console = Console(stderr=True, no_color=state.no_color, highlight=False)
    try:
        with OperationContext(timeout=deadline) as op:
            with _make_client(state) as client:
                return action(client, op)
    except SSHKitError as e:
        message = Text("Error:", style="" if state.no_color else "red")
        message.append(f" {e}")
        stderr_console.print(message, soft_wrap=True)
        raise typer.Exit(1)


@app.callback()
def main(
    ctx: typer.Context,
    host: Optional[str] = typer.Option(None, "--host", "-H", help="Remote host"),
    port: Optional[int] = typer.Option(None, "--port", "-p", help="SSH port"),
    user: Optional[str] = typer.Option(None, "--user", "-u", help="SSH username"),
    password: Optional[str] = typer.Option(None, "--password", help="SSH password"),
    key: Optional[str] = typer.Option(None, "--key", "-i", help="Private key file"),
    passphrase: Optional[str] = typer.Option(None, "--passphrase", help="Private key passphrase"),
    agent: bool = typer.Option(False, "--agent", help="Authenticate with the ssh agent"),
    ssh_config: Optional[str] = typer.Option(None, "--ssh-config", help="Host alias from ~/.ssh/config"),
    timeout: Optional[float] = typer.Option(None, "--timeout", help="Dial/handshake timeout in seconds"),
    config: Optional[Path] = typer.Option(None, "--config", "-c", help="TOML connection config"),
    log_level: str = typer.Option(
        "WARNING",
        "--log-level",
        "-l",
        help="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    ),
    log_file: Optional[Path] = typer.Option(None, "--log-file", help="Log file path"),
    no_color: bool = typer.Option(False, "--no-color", help="Disable colored output"),
):
    """
    sshkit - remote command execution and file upload

    Connection settings come from --config, SSHKIT_* environment variables
    and the options below, later sources winning.
    """
    setup_logging(level=log_level, log_file=log_file)
    ctx.obj = CLIState(
        overrides={
            "host": host,
            "port": port,
            "user": user,
            "password": password,
            "key": key,
            "passphrase": passphrase,
            "agent": True if agent else None,
            "ssh_config": ssh_config,
            "timeout": timeout,
        },
        config_path=config,
        no_color=no_color,
    )


@app.command("exec")
def exec_command(
    ctx: typer.Context,
    command: str = typer.Argument(..., help="Command to run"),
    deadline: Optional[float] = typer.Option(None, "--deadline", help="Abort after N seconds"),
):
    """Run a command, streaming its output"""
    _run(ctx.obj, lambda client, op: client.execute(command, ctx=op), deadline)


@app.command("capture")
def capture_command(
    ctx: typer.Context,
    command: str = typer.Argument(..., help="Command to run"),
    deadline: Optional[float] = typer.Option(None, "--deadline", help="Abort after N seconds"),
):
    """Run a command and print its combined output"""
    output = _run(ctx.obj, lambda client, op: client.capture(command, ctx=op), deadline)
    typer.echo(output)


@app.command("interactive")
def interactive_command(
    ctx: typer.Context,
    command: str = typer.Argument(..., help="Command to run"),
    answer: List[str] = typer.Option([], "--answer", "-a", help="PATTERN=TEXT prompt answer, repeatable"),
    deadline: Optional[float] = typer.Option(None, "--deadline", help="Abort after N seconds"),
):
    """Run a command on a pty, answering prompts"""
    prompts = parse_answers(answer)
    _run(ctx.obj, lambda client, op: client.execute_interactively(command, prompts, ctx=op), deadline)


@app.command("upload")
def upload_command(
    ctx: typer.Context,
    local_path: Path = typer.Argument(..., help="Local file"),
    remote_path: str = typer.Argument(..., help="Remote destination path"),
    mode: str = typer.Option("0644", "--mode", "-m", help="Octal permission"),
    debug: bool = typer.Option(False, "--debug", help="Echo remote receiver output"),
    deadline: Optional[float] = typer.Option(None, "--deadline", help="Abort after N seconds"),
):
    """Upload a file to the remote host"""
    _run(
        ctx.obj,
        lambda client, op: client.upload(str(local_path), remote_path, mode, debug, ctx=op),
        deadline,
    )


def run():
    """CLI entry point"""
    app()


if __name__ == "__main__":
    run()
