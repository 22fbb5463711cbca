"""SSH endpoint and credential types."""

from __future__ import annotations

import re
import socket
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Union

from ..errors import HostResolutionError

DEFAULT_PORT = 22

_KEY_LINE_BREAKS = re.compile(r"\n\s+|\n{2,}")


@dataclass(frozen=True)
class Endpoint:
    """Resolved network address, port and login of a remote host.

    A host name given as ``address`` is resolved on construction and replaced
    by its first numeric address.
    """

    address: str
    port: int = DEFAULT_PORT
    login: str = ""

    def __post_init__(self) -> None:
        if not self.login:
            raise ValueError("SSH login cannot be empty")
        if not 0 < self.port < 65536:
            raise ValueError(f"Invalid SSH port: {self.port}")
        object.__setattr__(self, "address", _resolve_address(self.address, self.port))

    @classmethod
    def resolve(cls, host: str, login: str, port: int = DEFAULT_PORT) -> "Endpoint":
        """Resolve ``host`` to a numeric address and build the endpoint."""
        return cls(address=host, port=port, login=login)

    def __str__(self) -> str:
        return f"{self.login}@{self.address}:{self.port}"


def _resolve_address(host: str, port: int) -> str:
    try:
        infos = socket.getaddrinfo(host, port, type=socket.SOCK_STREAM)
    except (socket.gaierror, UnicodeError) as exc:
        raise HostResolutionError(host, exc) from exc
    if not infos:
        raise HostResolutionError(host)
    return infos[0][4][0]


@dataclass(frozen=True)
class PrivateKey:
    """PEM/OpenSSH private key material, optionally encrypted."""

    material: str = field(repr=False)
    passphrase: Optional[str] = field(default=None, repr=False)

    @classmethod
    def from_file(cls, path: Union[str, Path], passphrase: Optional[str] = None) -> "PrivateKey":
        return cls(Path(path).read_text(encoding="utf-8"), passphrase)

    @property
    def normalized(self) -> str:
        return normalize_key(self.material)


@dataclass(frozen=True)
class Password:
    value: str = field(repr=False)


Credential = Union[PrivateKey, Password]


def normalize_key(material: str) -> str:
    """Undo the damage config formats do to pasted key material.

    Carriage returns are dropped, indented continuation lines and runs of
    blank lines collapse into single line breaks, and surrounding whitespace
    is trimmed.
    """
    return _KEY_LINE_BREAKS.sub("\n", material.replace("\r", "")).strip()
