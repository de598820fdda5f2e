"""
Core infrastructure layer
"""
from .config import Agent, ConnectionConfig, Credential, Password, PrivateKey
from .connection import Connection
from .constants import *
from .context import OperationContext
from .exceptions import *
from .interfaces import Dialer, Session, Transport
from .logging import setup_logging, get_logger
from .output import OutputSink
from .transport import ParamikoDialer, ParamikoSession, ParamikoTransport, encode_terminal_modes
from .utils import load_private_key, load_ssh_config

__all__ = [
    "Agent",
    "ConnectionConfig",
    "Credential",
    "Password",
    "PrivateKey",
    "Connection",
    "OperationContext",
    "Dialer",
    "Session",
    "Transport",
    "setup_logging",
    "get_logger",
    "OutputSink",
    "ParamikoDialer",
    "ParamikoSession",
    "ParamikoTransport",
    "encode_terminal_modes",
    "load_private_key",
    "load_ssh_config",
]
