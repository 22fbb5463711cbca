"""The Shell capability and its SSH implementation."""

from __future__ import annotations

import threading
import time
from abc import ABC, abstractmethod
from typing import BinaryIO, Callable, Optional, Union

from .config import ShellSettings
from .ssh.credentials import DEFAULT_PORT, Credential, Endpoint, Password, PrivateKey
from .ssh.execution import run_command
from .ssh.session import open_session, open_with_retry


class Shell(ABC):
    """Something that can run a command and report its exit code."""

    @abstractmethod
    def execute(
        self,
        command: str,
        stdin: BinaryIO,
        stdout: BinaryIO,
        stderr: BinaryIO,
    ) -> int:
        """
        Run a command to completion.

        Args:
            command: Command line, passed to the remote shell as is
            stdin: Readable byte stream fed to the command
            stdout: Writable byte stream receiving the command's stdout
            stderr: Writable byte stream receiving the command's stderr

        Returns:
            The exit code of the command, zero or not

        Raises:
            SSHError: If the command could not be run to completion
        """
        pass


class SshShell(Shell):
    """Runs each command in a fresh, authenticated SSH session.

    Sessions are never cached: two calls to :meth:`execute` open two
    sessions, so one instance can be shared between threads.
    """

    def __init__(
        self,
        endpoint: Endpoint,
        credential: Credential,
        settings: Optional[ShellSettings] = None,
        *,
        opener: Callable[..., object] = open_session,
        runner: Callable[..., int] = run_command,
        cancel: Optional[threading.Event] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if not isinstance(credential, (PrivateKey, Password)):
            raise TypeError(f"Unsupported credential: {type(credential).__name__}")
        self.endpoint = endpoint
        self.credential = credential
        self.settings = settings or ShellSettings()
        self._opener = opener
        self._runner = runner
        self._cancel = cancel
        self._sleep = sleep

    @classmethod
    def by_key(
        cls,
        host: str,
        login: str,
        key: Union[str, PrivateKey],
        *,
        port: int = DEFAULT_PORT,
        passphrase: Optional[str] = None,
        settings: Optional[ShellSettings] = None,
        **kwargs,
    ) -> "SshShell":
        """Shell authenticating with a private key, encrypted or not."""
        if not isinstance(key, PrivateKey):
            key = PrivateKey(key, passphrase)
        return cls(Endpoint.resolve(host, login, port), key, settings, **kwargs)

    @classmethod
    def by_password(
        cls,
        host: str,
        login: str,
        password: str,
        *,
        port: int = DEFAULT_PORT,
        settings: Optional[ShellSettings] = None,
        **kwargs,
    ) -> "SshShell":
        """Shell authenticating with a password."""
        return cls(Endpoint.resolve(host, login, port), Password(password), settings, **kwargs)

    def execute(
        self,
        command: str,
        stdin: BinaryIO,
        stdout: BinaryIO,
        stderr: BinaryIO,
    ) -> int:
        session = open_with_retry(
            lambda: self._opener(self.endpoint, self.credential, self.settings),
            self.settings.retry,
            sleep=self._sleep,
        )
        return self._runner(
            session,
            command,
            stdin,
            stdout,
            stderr,
            poll_interval=self.settings.poll_interval,
            channel_timeout=self.settings.channel_timeout,
            cancel=self._cancel,
            host=str(self.endpoint),
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SshShell):
            return NotImplemented
        return (self.endpoint, self.credential) == (other.endpoint, other.credential)

    def __hash__(self) -> int:
        return hash((self.endpoint, self.credential))

    def __repr__(self) -> str:
        auth = "key" if isinstance(self.credential, PrivateKey) else "password"
        return f"SshShell({self.endpoint}, auth={auth})"
