"""
Remote command execution
"""
from .drain import decode_line, drain_lines, spawn_drain
from .executor import capture, execute, wait_for_exit
from .interactive import PromptScanner, compile_prompts, execute_interactively, request_pty

__all__ = [
    "decode_line",
    "drain_lines",
    "spawn_drain",
    "capture",
    "execute",
    "wait_for_exit",
    "PromptScanner",
    "compile_prompts",
    "execute_interactively",
    "request_pty",
]
