"""Exceptions raised by remote-shell."""

from __future__ import annotations

from typing import Optional


class HostResolutionError(ValueError):
    """Raised when an endpoint address cannot be resolved."""

    def __init__(self, host: str, reason: object = None) -> None:
        self.host = host
        message = f"Cannot resolve host {host!r}"
        if reason is not None:
            message = f"{message}: {reason}"
        super().__init__(message)


class SSHError(IOError):
    """Raised when a remote command cannot be run to completion."""

    def __init__(
        self,
        message: str,
        *,
        host: Optional[str] = None,
        command: Optional[str] = None,
    ) -> None:
        self.host = host
        self.command = command
        super().__init__(message)

    def __str__(self) -> str:
        message = super().__str__()
        context = []
        if self.host:
            context.append(f"host={self.host}")
        if self.command is not None:
            context.append(f"command={self.command!r}")
        if context:
            return f"{message} ({', '.join(context)})"
        return message


class SSHConnectionError(SSHError):
    """Raised when an SSH session cannot be established.

    ``retryable`` is False for failures another attempt cannot fix, such as
    rejected credentials or unreadable key material.
    """

    def __init__(
        self,
        message: str,
        *,
        host: Optional[str] = None,
        retryable: bool = True,
    ) -> None:
        super().__init__(message, host=host)
        self.retryable = retryable


class NonZeroExitError(RuntimeError):
    """Raised by the Safe decorator when a command exits with a nonzero code."""

    def __init__(self, code: int, command: str) -> None:
        self.code = code
        self.command = command
        super().__init__(f"non-zero exit code #{code}: {command}")
