"""
User-facing output sink for command execution
"""
import sys
import time
from datetime import datetime, timedelta
from typing import Optional, Union

from rich.console import Console
from rich.text import Text


class OutputSink:
    """
    Line-oriented output for remote commands.

    info: remote stdout lines
    warn: remote stderr lines
    error: operation and scanner failures

    Colour is decided by the ``no_color`` argument alone; the environment is
    never consulted, so independent sinks behave the same in parallel tests.
    Remote text is printed literally and never parsed as rich markup.
    """

    def __init__(self, console: Optional[Console] = None, no_color: bool = False):
        self.no_color = no_color
        self.console = console or Console(
            file=sys.stdout,
            no_color=no_color,
            color_system=None if no_color else "auto",
            highlight=False,
            soft_wrap=True,
        )

    def _print(self, text: Union[str, Text], style: str = "") -> None:
        if isinstance(text, str):
            text = Text(text, style="" if self.no_color else style)
        self.console.print(text, highlight=False, soft_wrap=True)

    def info(self, line: str) -> None:
        self._print(line, "green")

    def warn(self, line: str) -> None:
        self._print(f"%%% {line}", "red")

    def error(self, error: Union[BaseException, str]) -> None:
        self._print(f"~~~ {error}", "bold red")

    def echo(self, line: str) -> None:
        self._print(line)

    # --------------------
    # Banners
    # --------------------
    def start(self, command: str) -> float:
        """Print the execution banner and return a monotonic start mark"""
        now = datetime.now().strftime("%H:%M:%S")
        highlight = "" if self.no_color else "yellow"
        banner = Text("=== Executing: '")
        banner.append(command, style=highlight)
        banner.append("' at ")
        banner.append(now, style=highlight)
        self._print(banner)
        return time.monotonic()

    def end(self, started: float, passed: bool) -> None:
        """Print the completion banner with pass/fail status and elapsed time"""
        elapsed = timedelta(seconds=round(time.monotonic() - started, 3))
        now = datetime.now().strftime("%H:%M:%S")
        highlight = "" if self.no_color else "yellow"
        status_style = "" if self.no_color else ("bold green" if passed else "bold red")

        banner = Text("=== ")
        banner.append("✓" if passed else "✗", style=status_style)
        banner.append(" End: ")
        banner.append(now, style=highlight)
        banner.append(", Total: ")
        banner.append(str(elapsed), style=highlight)
        self._print(banner)
