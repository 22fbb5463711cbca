"""Stand-ins for the paramiko objects the SSH layer talks to."""

from __future__ import annotations

import io
import socket
import threading
from typing import List, Optional

import paramiko


def generate_rsa_pem(passphrase: Optional[str] = None) -> str:
    buffer = io.StringIO()
    paramiko.RSAKey.generate(2048).write_private_key(buffer, password=passphrase)
    return buffer.getvalue()


class FakeChannel:
    """Exec channel that reports closed after ``close_after`` keep-alives.

    With ``close_on_eof`` it closes once stdin has been shut instead, the way
    ``cat`` finishes.
    """

    def __init__(
        self,
        transport: "FakeTransport",
        stdout: bytes = b"",
        stderr: bytes = b"",
        status: int = 0,
        close_after: Optional[int] = 1,
        close_on_eof: bool = False,
    ) -> None:
        self.transport = transport
        self._stdout = [stdout] if stdout else []
        self._stderr = [stderr] if stderr else []
        self.status = status
        self.close_after = close_after
        self.close_on_eof = close_on_eof
        self.exit_status = status
        self.command: Optional[str] = None
        self.received = bytearray()
        self.write_shut = False
        self.status_reads = 0
        self.close_error: Optional[Exception] = None

    @property
    def closed(self) -> bool:
        if self.close_on_eof:
            return self.write_shut
        if self.close_after is None:
            return False
        return self.transport.probes >= self.close_after

    def exec_command(self, command: str) -> None:
        self.command = command

    def recv(self, size: int) -> bytes:
        return self._stdout.pop(0) if self._stdout else b""

    def recv_stderr(self, size: int) -> bytes:
        return self._stderr.pop(0) if self._stderr else b""

    def sendall(self, data: bytes) -> None:
        self.received.extend(data)

    def shutdown_write(self) -> None:
        self.write_shut = True

    def recv_exit_status(self) -> int:
        self.status_reads += 1
        return self.status

    def close(self) -> None:
        self.transport.events.append("channel.close")
        if self.close_error is not None:
            raise self.close_error


class FakeTransport:
    def __init__(self, **channel_kwargs) -> None:
        self.events: List[str] = []
        self.probes = 0
        self.active = True
        self.keepalive: Optional[int] = None
        self.probe_error: Optional[Exception] = None
        self.open_error: Optional[Exception] = None
        self.die_after: Optional[int] = None
        self.channel = FakeChannel(self, **channel_kwargs)

    def is_active(self) -> bool:
        return self.active

    def set_keepalive(self, interval: int) -> None:
        self.keepalive = interval

    def open_session(self, timeout=None) -> FakeChannel:
        self.events.append("channel.open")
        if self.open_error is not None:
            raise self.open_error
        return self.channel

    def send_ignore(self) -> None:
        if self.probe_error is not None:
            raise self.probe_error
        self.probes += 1
        if self.die_after is not None and self.probes >= self.die_after:
            self.active = False


class FakeSSHClient:
    """Mimics paramiko.SSHClient closely enough for open_session/run_command."""

    connect_error: Optional[Exception] = None

    def __init__(self, transport: Optional[FakeTransport] = None) -> None:
        self.transport = transport or FakeTransport()
        self.policy = None
        self.kwargs: dict = {}
        self.closed = False

    def set_missing_host_key_policy(self, policy) -> None:
        self.policy = policy

    def connect(self, **kwargs) -> None:
        self.kwargs = kwargs
        if self.connect_error is not None:
            raise self.connect_error

    def get_transport(self) -> FakeTransport:
        return self.transport

    def close(self) -> None:
        self.closed = True
        self.transport.events.append("session.close")


class ExecOnlyServer(paramiko.ServerInterface):
    """Server side of a real paramiko connection that accepts any password
    and any exec request but never answers the command."""

    def __init__(self) -> None:
        self.exec_started = threading.Event()

    def get_allowed_auths(self, username: str) -> str:
        return "password"

    def check_auth_password(self, username: str, password: str) -> int:
        return paramiko.AUTH_SUCCESSFUL

    def check_channel_request(self, kind: str, chanid: int) -> int:
        if kind == "session":
            return paramiko.OPEN_SUCCEEDED
        return paramiko.OPEN_FAILED_ADMINISTRATIVELY_PROHIBITED

    def check_channel_exec_request(self, channel, command) -> bool:
        self.exec_started.set()
        return True


class TransportClient:
    """The slice of paramiko.SSHClient run_command needs, over a bare Transport."""

    def __init__(self, transport: paramiko.Transport) -> None:
        self.transport = transport

    def get_transport(self) -> paramiko.Transport:
        return self.transport

    def close(self) -> None:
        self.transport.close()


def connect_socketpair(server: paramiko.ServerInterface):
    """Connect a client and a server Transport over an in-process socket pair."""
    client_sock, server_sock = socket.socketpair()
    server_transport = paramiko.Transport(server_sock)
    server_transport.add_server_key(paramiko.RSAKey.generate(2048))
    negotiation = threading.Thread(
        target=server_transport.start_server, kwargs={"server": server}, daemon=True
    )
    negotiation.start()
    client_transport = paramiko.Transport(client_sock)
    client_transport.start_client(timeout=10)
    client_transport.auth_password("ops", "secret")
    negotiation.join(10)
    return TransportClient(client_transport), server_transport
