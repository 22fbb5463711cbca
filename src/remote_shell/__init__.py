"""remote-shell: run one command on a remote host over SSH."""

from .decorators import Empty, Fake, Plain, Safe, Verbose
from .errors import HostResolutionError, NonZeroExitError, SSHConnectionError, SSHError
from .escape import escape
from .shell import Shell, SshShell
from .ssh import Endpoint, InsecureHostKeyPolicy, Password, PrivateKey

__all__ = [
    "Empty",
    "Fake",
    "Plain",
    "Safe",
    "Verbose",
    "HostResolutionError",
    "NonZeroExitError",
    "SSHConnectionError",
    "SSHError",
    "escape",
    "Shell",
    "SshShell",
    "Endpoint",
    "InsecureHostKeyPolicy",
    "Password",
    "PrivateKey",
]
