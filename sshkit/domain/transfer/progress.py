"""
Single-line live progress display for transfers
"""
import threading
from typing import Optional

from rich.console import Console
from rich.live import Live
from rich.text import Text

from ...core.logging import get_logger

logger = get_logger(__name__)


class ProgressWriter:
    """
    Byte-counting writer that renders "<doing>... NN.NN%" on one live line.

    Pure observability: ``write`` always reports the full length written and
    never raises, so a display problem cannot abort a transfer.
    """

    def __init__(
        self,
        total: int,
        doing: str,
        done: str,
        console: Optional[Console] = None,
    ):
        self.total = total
        self.progress = 0
        self.doing = doing
        self.done = done
        self._lock = threading.Lock()
        self._stopped = False
        self._live = Live(
            Text(self._render()),
            console=console,
            auto_refresh=False,
            transient=False,
        )
        try:
            self._live.start()
        except Exception as e:
            logger.debug(f"Progress display unavailable: {e}")

    @property
    def percentage(self) -> float:
        if self.total <= 0:
            return 100.0
        return 100 * self.progress / self.total

    def _render(self) -> str:
        return f"{self.doing}... {self.percentage:0.2f}%"

    def write(self, data: bytes) -> int:
        n = len(data)
        with self._lock:
            self.progress += n
            if self._stopped:
                return n
            try:
                self._live.update(Text(self._render()), refresh=True)
            except Exception as e:
                logger.debug(f"Progress render failed: {e}")
        return n

    def stop(self) -> None:
        """Render the done label and release the live display"""
        with self._lock:
            if self._stopped:
                return
            self._stopped = True
            try:
                self._live.update(Text(f"{self.done}."))
            except Exception as e:
                logger.debug(f"Progress render failed: {e}")
            try:
                self._live.stop()
            except Exception as e:
                logger.debug(f"Progress stop failed: {e}")
