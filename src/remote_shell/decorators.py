"""Wrappers that add behavior around any Shell."""

from __future__ import annotations

import io
import logging
from typing import BinaryIO, Union

from .errors import NonZeroExitError
from .shell import Shell
from .utils.streams import LogStream, TeeStream, dead_input

logger = logging.getLogger(__name__)

_DRAIN_CHUNK = 2048


class Fake(Shell):
    """Shell for unit tests that returns canned output and exit code.

    The command is ignored but stdin is always read to the end, like a real
    command consuming its input would.
    """

    def __init__(
        self,
        code: int = 0,
        stdout: Union[str, bytes] = b"",
        stderr: Union[str, bytes] = b"",
    ) -> None:
        self.code = code
        self.stdout = stdout.encode("utf-8") if isinstance(stdout, str) else bytes(stdout)
        self.stderr = stderr.encode("utf-8") if isinstance(stderr, str) else bytes(stderr)

    def execute(self, command: str, stdin: BinaryIO, stdout: BinaryIO, stderr: BinaryIO) -> int:
        while stdin.read(_DRAIN_CHUNK):
            pass
        stdout.write(self.stdout)
        stdout.flush()
        stderr.write(self.stderr)
        stderr.flush()
        return self.code

    def __repr__(self) -> str:
        return f"Fake(code={self.code})"


class Safe(Shell):
    """Raises :class:`NonZeroExitError` when the command exits with nonzero."""

    def __init__(self, origin: Shell) -> None:
        self.origin = origin

    def execute(self, command: str, stdin: BinaryIO, stdout: BinaryIO, stderr: BinaryIO) -> int:
        code = self.origin.execute(command, stdin, stdout, stderr)
        if code != 0:
            raise NonZeroExitError(code, command)
        return code


class Verbose(Shell):
    """Copies stdout to the info log and stderr to the warning log."""

    def __init__(self, origin: Shell) -> None:
        self.origin = origin

    def execute(self, command: str, stdin: BinaryIO, stdout: BinaryIO, stderr: BinaryIO) -> int:
        out = TeeStream(stdout, LogStream(logger, logging.INFO))
        err = TeeStream(stderr, LogStream(logger, logging.WARNING))
        try:
            return self.origin.execute(command, stdin, out, err)
        finally:
            out.close()
            err.close()


class Empty:
    """Runs commands without input, sending their output to the log."""

    def __init__(self, origin: Shell) -> None:
        self.origin = origin

    def execute(self, command: str) -> int:
        out = LogStream(logger, logging.INFO)
        err = LogStream(logger, logging.WARNING)
        try:
            return self.origin.execute(command, dead_input(), out, err)
        finally:
            out.close()
            err.close()


class Plain:
    """Runs commands without input and returns stdout and stderr as text.

    The exit code is dropped; wrap the origin in :class:`Safe` to fail on it.
    """

    def __init__(self, origin: Shell) -> None:
        self.origin = origin

    def execute(self, command: str) -> str:
        buffer = io.BytesIO()
        self.origin.execute(command, dead_input(), buffer, buffer)
        return buffer.getvalue().decode("utf-8", errors="replace")
