"""
Line-oriented stream draining on background threads
"""
import threading
from typing import BinaryIO, Callable, Optional

from ...core.constants import MAX_SCAN_TOKEN
from ...core.exceptions import ScanError
from ...core.logging import get_logger
from ...core.output import OutputSink

logger = get_logger(__name__)


def decode_line(raw: bytes) -> str:
    """Decode one line and drop its terminator (\\n or \\r\\n)"""
    if raw.endswith(b"\n"):
        raw = raw[:-1]
    if raw.endswith(b"\r"):
        raw = raw[:-1]
    return raw.decode("utf-8", errors="replace")


def drain_lines(
    stream: BinaryIO,
    on_line: Callable[[str], None],
    sink: OutputSink,
    limit: int = MAX_SCAN_TOKEN,
) -> None:
    """
    Read ``stream`` line by line until EOF, calling ``on_line`` per line.

    A line longer than ``limit`` is handed over in ``limit``-sized pieces.
    Read errors are reported to the sink rather than raised, since this runs
    on a background thread.
    """
    try:
        while True:
            raw = stream.readline(limit)
            if not raw:
                break
            on_line(decode_line(raw))
    except Exception as e:
        sink.error(ScanError(f"SCANNER failed to read from reader {e}"))


def spawn_drain(
    stream: BinaryIO,
    on_line: Callable[[str], None],
    sink: OutputSink,
    name: Optional[str] = None,
) -> threading.Thread:
    """
    Start ``drain_lines`` on a daemon thread.

    The thread finishing is the completion signal; join it before returning
    from the operation that started it.
    """
    thread = threading.Thread(
        target=drain_lines,
        args=(stream, on_line, sink),
        daemon=True,
        name=name,
    )
    thread.start()
    return thread


def join_all(threads, timeout: Optional[float] = None) -> None:
    """Join every started thread"""
    for thread in threads:
        thread.join(timeout)
        if thread.is_alive():
            logger.debug(f"Drain thread {thread.name} still running after {timeout}s")
