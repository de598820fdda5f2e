"""
Paramiko-backed transport, session and dialer
"""
import struct
from typing import BinaryIO, Dict, Optional

import paramiko
from paramiko.agent import AgentRequestHandler
from paramiko.common import cMSG_CHANNEL_REQUEST

from .config import Agent, ConnectionConfig, Password, PrivateKey
from .constants import TTY_OP_END
from .exceptions import ConfigError, ConnectError, PtyError
from .interfaces import Dialer, Session, Transport
from .logging import get_logger
from .utils import load_private_key

logger = get_logger(__name__)


def encode_terminal_modes(modes: Dict[int, int]) -> bytes:
    """Encode pty modes as opcode byte + uint32 pairs, terminated by TTY_OP_END"""
    encoded = b"".join(struct.pack(">BI", opcode, value) for opcode, value in modes.items())
    return encoded + bytes([TTY_OP_END])


class ParamikoSession(Session):
    """Session over a paramiko Channel"""

    def __init__(self, channel: paramiko.Channel, agent_handler: Optional[AgentRequestHandler] = None):
        self.channel = channel
        self._agent_handler = agent_handler

    def get_pty(self, term: str, rows: int, cols: int, modes: Dict[int, int]) -> None:
        # Channel.get_pty always sends an empty mode list, so the request
        # is built here to carry ECHO and the line speeds.
        chan = self.channel
        if chan.closed or chan.eof_received or chan.eof_sent or not chan.active:
            raise PtyError("channel is not open")

        m = paramiko.Message()
        m.add_byte(cMSG_CHANNEL_REQUEST)
        m.add_int(chan.remote_chanid)
        m.add_string("pty-req")
        m.add_boolean(True)
        m.add_string(term)
        m.add_int(cols)
        m.add_int(rows)
        m.add_int(0)
        m.add_int(0)
        m.add_string(encode_terminal_modes(modes))
        chan._event_pending()
        chan.transport._send_user_message(m)
        chan._wait_for_event()

    def stdin(self) -> BinaryIO:
        return self.channel.makefile_stdin("wb")

    def stdout(self) -> BinaryIO:
        return self.channel.makefile("rb")

    def stderr(self) -> BinaryIO:
        return self.channel.makefile_stderr("rb")

    def combine_stderr(self) -> None:
        self.channel.set_combine_stderr(True)

    def start(self, command: str) -> None:
        self.channel.exec_command(command)

    def wait(self, timeout: Optional[float]) -> Optional[int]:
        if not self.channel.status_event.wait(timeout):
            return None
        return self.channel.recv_exit_status()

    def close(self) -> None:
        if self._agent_handler is not None:
            self._agent_handler.close()
            self._agent_handler = None
        self.channel.close()


class ParamikoTransport(Transport):
    """Transport over a connected paramiko SSHClient"""

    def __init__(self, client: paramiko.SSHClient, forward_agent: bool = False):
        self.client = client
        self.forward_agent = forward_agent

    def open_session(self) -> ParamikoSession:
        transport = self.client.get_transport()
        if transport is None or not transport.is_active():
            raise paramiko.SSHException("SSH transport is not active")

        channel = transport.open_session()
        handler = AgentRequestHandler(channel) if self.forward_agent else None
        return ParamikoSession(channel, handler)

    def close(self) -> None:
        self.client.close()


class ParamikoDialer(Dialer):
    """Dial with paramiko.SSHClient, accepting unknown host keys"""

    def dial(self, config: ConnectionConfig, timeout: Optional[float]) -> ParamikoTransport:
        kwargs = {
            "hostname": config.hostname,
            "port": config.port,
            "username": config.username,
            "timeout": timeout,
            "banner_timeout": timeout,
            "auth_timeout": timeout,
            "allow_agent": False,
            "look_for_keys": False,
        }

        credential = config.credential
        if isinstance(credential, Password):
            kwargs["password"] = credential.secret
        elif isinstance(credential, PrivateKey):
            try:
                kwargs["pkey"] = load_private_key(credential.read_material(), credential.passphrase)
            except (OSError, ConfigError) as e:
                raise ConnectError(f"failed to connect to {config.hostname}, load private key: {e}") from e
        elif isinstance(credential, Agent):
            agent = paramiko.Agent()
            try:
                keys = agent.get_keys()
            finally:
                agent.close()
            if not keys:
                raise ConnectError(f"failed to connect to {config.hostname}, ssh agent offers no keys")
            for key in keys:
                logger.debug(f"Agent key: {key.get_name()} {key.get_base64()[:24]}...")
            kwargs["allow_agent"] = True

        client = paramiko.SSHClient()
        client.set_missing_host_key_policy(paramiko.AutoAddPolicy())

        try:
            client.connect(**kwargs)
        except (paramiko.SSHException, OSError) as e:
            client.close()
            raise ConnectError(f"failed to connect to {config.hostname}, {e}") from e

        logger.debug(f"Connected to {config.address} as {config.username}")
        return ParamikoTransport(client, forward_agent=isinstance(credential, Agent) and credential.forward)
