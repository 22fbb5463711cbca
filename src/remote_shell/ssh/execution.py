"""Run one command over an open SSH session and collect its exit code."""

from __future__ import annotations

import logging
import threading
import time
from typing import BinaryIO, Callable, List, Optional

import paramiko

from ..errors import SSHError

logger = logging.getLogger(__name__)

_CHUNK_SIZE = 32768

# paramiko leaves exit_status at -1 until the server reports one
_NO_EXIT_STATUS = -1


class _StreamPump(threading.Thread):
    """Copies chunks from ``read`` to ``write`` until ``read`` returns nothing.

    Once ``stop`` is set nothing more is written, but a ``read`` that is
    already blocked (a terminal or an idle pipe) cannot be interrupted.
    """

    def __init__(
        self,
        name: str,
        read: Callable[[int], bytes],
        write: Callable[[bytes], object],
        stop: threading.Event,
        finish: Optional[Callable[[], object]] = None,
    ) -> None:
        super().__init__(name=name, daemon=True)
        self._read = read
        self._write = write
        self._stop_event = stop
        self._finish = finish
        self.error: Optional[Exception] = None

    def run(self) -> None:
        try:
            while True:
                chunk = self._read(_CHUNK_SIZE)
                if not chunk or self._stop_event.is_set():
                    break
                self._write(chunk)
            if self._finish is not None and not self._stop_event.is_set():
                self._finish()
        except Exception as exc:
            self.error = exc


def run_command(
    client: paramiko.SSHClient,
    command: str,
    stdin: BinaryIO,
    stdout: BinaryIO,
    stderr: BinaryIO,
    *,
    poll_interval: float = 1.0,
    channel_timeout: float = 10.0,
    cancel: Optional[threading.Event] = None,
    host: Optional[str] = None,
) -> int:
    """Run ``command`` on ``client`` and return its exit code.

    The session is consumed: the exec channel and then the client are closed
    before this returns, whatever the outcome, and the threads copying the
    streams are stopped and joined. ``cancel`` aborts the wait for the
    command when set.

    Raises:
        SSHError: If the channel cannot be opened, the connection dies while
            waiting, output cannot be delivered or the wait is cancelled
    """
    code: Optional[int] = None
    try:
        transport = client.get_transport()
        if transport is None or not transport.is_active():
            raise SSHError("SSH session is not connected", host=host, command=command)
        try:
            channel = transport.open_session(timeout=channel_timeout)
        except (paramiko.SSHException, OSError, EOFError) as exc:
            raise SSHError(
                f"Cannot open exec channel: {exc}", host=host, command=command
            ) from exc
        execution = _Execution(
            transport,
            channel,
            command,
            host=host,
            poll_interval=poll_interval,
            drain_timeout=channel_timeout,
            cancel=cancel or threading.Event(),
        )
        try:
            code = execution.run(stdin, stdout, stderr)
        finally:
            execution.stop.set()
            _close_quietly(channel.close, "exec channel", code)
            execution.join()
    finally:
        _close_quietly(client.close, "SSH session", code)
    return code


class _Execution:
    """OPENING_CHANNEL -> RUNNING -> POLLING -> CLOSED for one exec channel."""

    def __init__(
        self,
        transport: paramiko.Transport,
        channel: paramiko.Channel,
        command: str,
        *,
        host: Optional[str],
        poll_interval: float,
        drain_timeout: float,
        cancel: threading.Event,
    ) -> None:
        self.transport = transport
        self.channel = channel
        self.command = command
        self.host = host
        self.poll_interval = poll_interval
        self.drain_timeout = drain_timeout
        self.cancel = cancel
        self.stop = threading.Event()
        self.output_pumps: List[_StreamPump] = []
        self.input_pump: Optional[_StreamPump] = None

    def run(self, stdin: BinaryIO, stdout: BinaryIO, stderr: BinaryIO) -> int:
        try:
            self.channel.exec_command(self.command)
        except (paramiko.SSHException, OSError, EOFError) as exc:
            raise self._error(f"Cannot start command: {exc}") from exc
        logger.info("+ %s", self.command)

        self.output_pumps = [
            _StreamPump("ssh-stdout", self.channel.recv, stdout.write, self.stop),
            _StreamPump("ssh-stderr", self.channel.recv_stderr, stderr.write, self.stop),
        ]
        self.input_pump = _StreamPump(
            "ssh-stdin", stdin.read, self.channel.sendall, self.stop,
            self.channel.shutdown_write,
        )
        for pump in self.output_pumps:
            pump.start()
        self.input_pump.start()

        self._wait_closed()
        self._drain()
        self._check_connection()
        stdout.flush()
        stderr.flush()
        return self.channel.recv_exit_status()

    def _wait_closed(self) -> None:
        start = time.monotonic()
        while not self.channel.closed:
            self._check_output()
            self._check_connection()
            try:
                self.transport.send_ignore()
            except Exception as exc:
                raise self._error("Failed to send keep-alive to the SSH session") from exc
            if self.cancel.wait(self.poll_interval):
                raise self._error(
                    f"Interrupted after {time.monotonic() - start:.1f}s of waiting"
                )
            logger.debug(
                "Waiting for SSH session to %s to close, already %.1fs...",
                self.host,
                time.monotonic() - start,
            )

    def _check_output(self) -> None:
        for pump in self.output_pumps:
            if pump.error is not None:
                raise self._error(f"Failed to deliver {pump.name}: {pump.error}") from pump.error

    def _check_connection(self) -> None:
        # A dying transport closes its channels without an exit status
        if self.transport.is_active():
            return
        if self.channel.closed and self.channel.exit_status != _NO_EXIT_STATUS:
            return
        raise self._error("SSH connection lost before the command reported an exit status")

    def _drain(self) -> None:
        for pump in self.output_pumps:
            pump.join(self.drain_timeout)
            if pump.is_alive():
                raise self._error(f"Timed out draining {pump.name} after the channel closed")
        self._check_output()

    def join(self) -> None:
        """Wait for the stream threads after the channel has been closed."""
        pumps = list(self.output_pumps)
        if self.input_pump is not None:
            pumps.append(self.input_pump)
        for pump in pumps:
            pump.join(self.drain_timeout)
            if pump.is_alive():
                logger.warning(
                    "%s of %r is still blocked reading after %.1fs; it will not write again",
                    pump.name,
                    self.command,
                    self.drain_timeout,
                )
        if self.input_pump is not None and self.input_pump.error is not None:
            logger.debug("Stdin of %r not fully delivered: %s", self.command, self.input_pump.error)

    def _error(self, message: str) -> SSHError:
        return SSHError(message, host=self.host, command=self.command)


def _close_quietly(close: Callable[[], object], what: str, code: Optional[int]) -> None:
    try:
        close()
    except Exception as exc:
        if code is None:
            logger.warning("Failed to close %s after an error: %s", what, exc)
        else:
            logger.warning("Failed to close %s after exit code %d: %s", what, code, exc)
